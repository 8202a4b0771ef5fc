"""
Draw surfaces a quadtree can paint onto.

The tree only needs ``fill(region, color)``. How a swatch looks (square or
inscribed circle) is decided by the surface.
"""

from typing import List, Protocol, Tuple

import numpy as np

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False

from .config import SwatchShape
from .quadtree import Color, Region


class DrawSurface(Protocol):
    """Capability to fill a square region with an RGB colour."""

    def fill(self, region: Region, color: Color) -> None:
        ...


class RecordingSurface:
    """Surface that keeps every fill command instead of painting it."""

    def __init__(self):
        self.commands: List[Tuple[Region, Color]] = []

    def fill(self, region: Region, color: Color) -> None:
        self.commands.append((region, tuple(color)))

    def clear(self) -> None:
        self.commands = []


class ArraySurface:
    """
    Rasterises swatches into a numpy canvas.

    Region coordinates are multiplied by ``scale`` to get canvas pixels.
    """

    def __init__(self, size: int,
                 background: Tuple[int, int, int] = (0, 0, 0),
                 shape: SwatchShape = SwatchShape.RECTANGLE,
                 scale: float = 1.0):
        if size <= 0:
            raise ValueError(f"Canvas size must be positive, got {size}")
        self.size = size
        self.background = background
        self.shape = shape
        self.scale = scale
        self.canvas = np.zeros((size, size, 3), dtype=np.uint8)
        self.clear()

    def clear(self) -> None:
        self.canvas[:, :] = self.background

    def _bounds(self, region: Region) -> Tuple[int, int, int, int]:
        x0 = int(round(region.x * self.scale))
        y0 = int(round(region.y * self.scale))
        x1 = int(round((region.x + region.side_len) * self.scale))
        y1 = int(round((region.y + region.side_len) * self.scale))
        return (
            max(x0, 0), max(y0, 0),
            min(x1, self.size), min(y1, self.size),
        )

    def fill(self, region: Region, color: Color) -> None:
        x0, y0, x1, y1 = self._bounds(region)
        if x1 <= x0 or y1 <= y0:
            return

        if self.shape is SwatchShape.RECTANGLE:
            self.canvas[y0:y1, x0:x1] = color
            return

        cx, cy = region.center
        cx *= self.scale
        cy *= self.scale
        radius = region.inscribed_radius() * self.scale
        # Sample each canvas pixel at its centre
        y, x = np.ogrid[y0:y1, x0:x1]
        mask = (x + 0.5 - cx) ** 2 + (y + 0.5 - cy) ** 2 <= radius ** 2
        self.canvas[y0:y1, x0:x1][mask] = color


class PygameSurface:
    """Paints swatches onto a pygame surface."""

    def __init__(self, surface: 'pygame.Surface',
                 shape: SwatchShape = SwatchShape.CIRCLE,
                 scale: float = 1.0,
                 background: Tuple[int, int, int] = (0, 0, 0)):
        if not PYGAME_AVAILABLE:
            raise RuntimeError("pygame is required for PygameSurface")
        self.surface = surface
        self.shape = shape
        self.scale = scale
        self.background = background

    def clear(self) -> None:
        self.surface.fill(self.background)

    def fill(self, region: Region, color: Color) -> None:
        if self.shape is SwatchShape.RECTANGLE:
            left = int(round(region.x * self.scale))
            top = int(round(region.y * self.scale))
            right = int(round((region.x + region.side_len) * self.scale))
            bottom = int(round((region.y + region.side_len) * self.scale))
            pygame.draw.rect(
                self.surface, color,
                pygame.Rect(left, top, right - left, bottom - top)
            )
            return

        cx, cy = region.center
        pygame.draw.circle(
            self.surface, color,
            (cx * self.scale, cy * self.scale),
            region.inscribed_radius() * self.scale
        )
