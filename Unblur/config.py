"""
Configuration module for the unblur quadtree.

Defines containment, reveal and averaging policies plus the tunable
parameters of the interactive viewer.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple
from enum import Enum, auto


class ContainmentPolicy(Enum):
    """How a point is tested against a node's square."""
    STRICT = auto()      # x < p < x + side on both axes
    HALF_OPEN = auto()   # x <= p < x + side on both axes


class RevealPolicy(Enum):
    """How far a single reveal call opens a collapsed node."""
    ONE_LEVEL = auto()   # Expand the node only
    CASCADE = auto()     # Expand the node and flag its four children as well


class AveragingMode(Enum):
    """Leaf colour accumulation rule."""
    RUNNING_MEAN = auto()  # sum of samples / n, from exact per-leaf sums
    LEGACY = auto()        # avg * n + sample / (n + 1), wrapped into 8 bits


class SwatchShape(Enum):
    """Shape used to paint a collapsed node."""
    RECTANGLE = auto()
    CIRCLE = auto()


def is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


@dataclass(frozen=True)
class TreeConfig:
    """
    Behaviour of a single quadtree.

    Attributes:
        containment: Boundary policy for insertion and reveal.
        reveal: Disclosure policy applied when a collapsed node is hit.
        averaging: Leaf accumulation rule.
        sample_offset: Added to integer pixel coordinates when a pixel source
            is streamed into the tree. 0.5 samples pixel centres.
        max_height: Optional cap on the height derived from the image side.
        initial_color: Colour every node starts with before any insertion.
    """
    containment: ContainmentPolicy = ContainmentPolicy.STRICT
    reveal: RevealPolicy = RevealPolicy.ONE_LEVEL
    averaging: AveragingMode = AveragingMode.RUNNING_MEAN
    sample_offset: float = 0.5
    max_height: Optional[int] = None
    initial_color: Tuple[int, int, int] = (255, 255, 255)

    def __post_init__(self):
        if not 0.0 <= self.sample_offset < 1.0:
            raise ValueError(
                f"sample_offset must be in [0, 1), got {self.sample_offset}"
            )
        if self.max_height is not None and self.max_height < 0:
            raise ValueError(f"max_height cannot be negative, got {self.max_height}")
        if len(self.initial_color) != 3 or \
           any(not 0 <= c <= 255 for c in self.initial_color):
            raise ValueError(f"initial_color must be an RGB triple, got {self.initial_color}")


@dataclass
class AppConfig:
    """
    Complete configuration for the interactive viewer.

    Attributes:
        image_size: Side length the source image is scaled to. Must be a
            power of two so the derived tree height divides it evenly.
        window_size: Side length of the square window in pixels.
        swatch_shape: Shape used to paint collapsed nodes.
        background_color: RGB color behind the swatches.
        min_update_interval_ms: Minimum time between two focus-driven redraws.
        fps: Frame rate cap of the main loop.
        tree: Quadtree behaviour.
    """
    image_size: int = 256
    window_size: int = 512
    swatch_shape: SwatchShape = SwatchShape.CIRCLE
    background_color: Tuple[int, int, int] = (0, 0, 0)
    min_update_interval_ms: float = 0.0
    fps: int = 60
    tree: TreeConfig = field(default_factory=TreeConfig)

    def __post_init__(self):
        if not is_power_of_two(self.image_size):
            raise ValueError(f"image_size must be a power of two, got {self.image_size}")
        if self.window_size <= 0:
            raise ValueError("Window size must be positive")
        if self.min_update_interval_ms < 0:
            raise ValueError("Update interval cannot be negative")
        if self.fps <= 0:
            raise ValueError("FPS cap must be positive")

    @property
    def scale(self) -> float:
        """Window pixels per image pixel."""
        return self.window_size / self.image_size


def create_default_config() -> AppConfig:
    """Factory function to create a default viewer configuration."""
    return AppConfig()


def create_config_for_size(size: int) -> AppConfig:
    """
    Factory function to create a configuration for a given window size.

    The image side is the largest power of two that fits the window, capped
    at 1024 so population stays interactive.

    Args:
        size: Window side length in pixels.

    Returns:
        AppConfig sized for the window.
    """
    if size <= 0:
        raise ValueError("Window size must be positive")
    image_size = 1
    while image_size * 2 <= min(size, 1024):
        image_size *= 2

    return AppConfig(image_size=image_size, window_size=size)
