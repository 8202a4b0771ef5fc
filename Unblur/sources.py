"""
Pixel sources for populating a quadtree.

A pixel source reports its ``(width, height)`` and yields ``(x, y, (r, g, b))``
for every pixel. Images are loaded with pygame and handled as numpy arrays.
"""

import logging
from pathlib import Path
from typing import Iterator, Protocol, Tuple, Union

import numpy as np

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False

logger = logging.getLogger(__name__)

Pixel = Tuple[int, int, Tuple[int, int, int]]


class PixelSource(Protocol):
    """Anything that can stream its pixels into a quadtree."""

    @property
    def size(self) -> Tuple[int, int]:
        ...

    def pixels(self) -> Iterator[Pixel]:
        ...


class ArrayPixelSource:
    """Pixel source backed by an ``(H, W, 3)`` or ``(H, W, 4)`` array."""

    def __init__(self, array: np.ndarray):
        """
        Args:
            array: Image in (height, width, channels) order. Alpha is ignored.

        Raises:
            ValueError: If the array is not an RGB or RGBA image.
        """
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ValueError(
                f"Expected an (H, W, 3) or (H, W, 4) image, got shape {array.shape}"
            )
        self._array = array

    @property
    def size(self) -> Tuple[int, int]:
        height, width = self._array.shape[:2]
        return width, height

    @property
    def array(self) -> np.ndarray:
        return self._array

    def pixels(self) -> Iterator[Pixel]:
        """Yield every pixel, column by column."""
        height, width = self._array.shape[:2]
        rows = self._array[:, :, :3].astype(int).tolist()
        for x in range(width):
            for y in range(height):
                r, g, b = rows[y][x]
                yield x, y, (r, g, b)


class ImageLoader:
    """Handles loading and synthesising square images."""

    @staticmethod
    def load_image(path: Union[str, Path], size: int) -> np.ndarray:
        """
        Load an image and scale it to a ``size`` x ``size`` square.

        Args:
            path: Path to the image file.
            size: Target side length.

        Returns:
            Numpy array of the image in RGB format.

        Raises:
            FileNotFoundError: If image file doesn't exist.
            ValueError: If image cannot be loaded.
        """
        if not PYGAME_AVAILABLE:
            raise RuntimeError("pygame is required for image loading")

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Image not found: {path}")

        try:
            surface = pygame.image.load(str(path))
            surface = pygame.transform.scale(surface, (size, size))

            array = pygame.surfarray.array3d(surface)
            # Pygame uses (width, height, channels), numpy uses (height, width, channels)
            array = np.transpose(array, (1, 0, 2))
            logger.debug(f"Loaded {path} scaled to {size}x{size}")

            return array

        except pygame.error as e:
            raise ValueError(f"Failed to load image: {e}")

    @staticmethod
    def create_gradient_image(size: int) -> np.ndarray:
        """
        Create a colorful diagonal gradient.

        Args:
            size: Image side length.

        Returns:
            Numpy array with gradient image.
        """
        y_coords, x_coords = np.ogrid[:size, :size]
        image = np.zeros((size, size, 3), dtype=np.uint8)
        image[:, :, 0] = (x_coords * 255 // size).astype(np.uint8)
        image[:, :, 1] = (y_coords * 255 // size).astype(np.uint8)
        image[:, :, 2] = ((x_coords + y_coords) * 255 // (2 * size)).astype(np.uint8)
        return image

    @staticmethod
    def create_test_pattern(size: int) -> np.ndarray:
        """
        Create a test pattern with fine detail that only shows once revealed.

        Args:
            size: Image side length.

        Returns:
            Numpy array with test pattern.
        """
        image = ImageLoader.create_gradient_image(size)
        image[:, :, 2] = 128

        # Grid lines
        grid_spacing = max(size // 8, 2)
        image[::grid_spacing, :] = [255, 255, 255]
        image[:, ::grid_spacing] = [255, 255, 255]

        # Concentric rings around the centre
        y_coords, x_coords = np.ogrid[:size, :size]
        center = size / 2
        distance = np.sqrt((x_coords - center) ** 2 + (y_coords - center) ** 2)
        ring_spacing = max(size // 6, 2)
        rings = np.abs(distance % ring_spacing - ring_spacing / 2) < 0.75
        image[rings] = [255, 255, 0]

        return image
