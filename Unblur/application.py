"""
Main application module for the unblur viewer.

Provides a pygame-based interactive window where moving the mouse over a
blurred image progressively reveals finer quadtree levels under the pointer.
"""

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from dataclasses import dataclass, replace
from enum import Enum, auto

import numpy as np

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False

from .config import (
    AppConfig,
    AveragingMode,
    ContainmentPolicy,
    RevealPolicy,
    SwatchShape,
    create_default_config,
)
from .quadtree import Quadtree
from .sources import ArrayPixelSource, ImageLoader
from .surfaces import ArraySurface, PygameSurface
from .utils import Timer, parse_point

logger = logging.getLogger(__name__)


class AppState(Enum):
    """Application state enumeration."""
    INITIALIZING = auto()
    RUNNING = auto()
    STOPPED = auto()


@dataclass
class AppStats:
    """Runtime statistics for the application."""
    frame_count: int = 0
    total_render_time: float = 0.0
    last_frame_time: float = 0.0
    fps: float = 0.0

    def update(self, frame_time: float) -> None:
        """Update statistics with new frame data."""
        self.frame_count += 1
        self.total_render_time += frame_time
        self.last_frame_time = frame_time
        if self.total_render_time > 0:
            self.fps = self.frame_count / self.total_render_time


def save_array_as_png(array: np.ndarray, path: Union[str, Path]) -> None:
    """Write an (H, W, 3) uint8 array to a PNG file."""
    if not PYGAME_AVAILABLE:
        raise RuntimeError("pygame is required to save images")
    # Transpose from (H, W, C) to (W, H, C) for pygame
    surface = pygame.surfarray.make_surface(np.transpose(array, (1, 0, 2)))
    pygame.image.save(surface, str(path))
    logger.info(f"Saved snapshot to {path}")


class UnblurApp:
    """
    Interactive viewer for a quadtree-compressed image.

    The image starts as a single swatch. Every mouse move reveals one more
    level of the nodes under the pointer.
    """

    def __init__(self,
                 config: Optional[AppConfig] = None,
                 image_path: Optional[Union[str, Path]] = None):
        """
        Initialize the viewer.

        Args:
            config: Viewer configuration (uses defaults if None).
            image_path: Optional path to an image file to display.
        """
        if not PYGAME_AVAILABLE:
            raise RuntimeError(
                "pygame is required for the application. "
                "Install with: pip install pygame"
            )

        self.config = config or create_default_config()
        self.image_path = image_path
        self.state = AppState.INITIALIZING
        self.stats = AppStats()

        self._screen: Optional[pygame.Surface] = None
        self._clock: Optional[pygame.time.Clock] = None
        self._source_image: Optional[np.ndarray] = None
        self._tree: Optional[Quadtree] = None
        self._surface: Optional[PygameSurface] = None

        # Interaction state
        self._focus: Optional[Tuple[float, float]] = None
        self._last_update = float('-inf')
        self._needs_redraw = True
        self._show_debug = False
        self._snapshot_count = 0

        logger.info("UnblurApp initialized")

    @property
    def tree(self) -> Optional[Quadtree]:
        return self._tree

    def _init_pygame(self) -> None:
        """Initialize pygame and create the window."""
        pygame.init()
        pygame.display.set_caption("Unblur - move the mouse to reveal detail")

        size = self.config.window_size
        self._screen = pygame.display.set_mode((size, size))
        self._clock = pygame.time.Clock()
        self._surface = PygameSurface(
            self._screen,
            shape=self.config.swatch_shape,
            scale=self.config.scale,
            background=self.config.background_color,
        )

        logger.info(f"Pygame initialized: {size}x{size}")

    def _load_source_image(self) -> None:
        """Load or generate the source image."""
        size = self.config.image_size
        if self.image_path:
            try:
                self._source_image = ImageLoader.load_image(self.image_path, size)
                logger.info(f"Loaded image: {self.image_path}")
            except (FileNotFoundError, ValueError) as e:
                logger.warning(f"Failed to load image: {e}. Using test pattern.")
                self._source_image = ImageLoader.create_test_pattern(size)
        else:
            self._source_image = ImageLoader.create_test_pattern(size)
            logger.info("Using generated test pattern")

    def _build_tree(self) -> None:
        """Build and populate the quadtree from the source image."""
        with Timer("tree construction", log=False) as timer:
            self._tree = Quadtree.from_pixels(
                ArrayPixelSource(self._source_image), self.config.tree
            )
        stats = self._tree.stats()
        logger.info(
            f"Quadtree ready: {stats['nodes']} nodes, "
            f"{stats['pixels_inserted']} pixels in {timer.elapsed:.2f}s"
        )

    def _window_to_image(self, pos: Sequence[int]) -> Tuple[float, float]:
        """Map a window pixel to image coordinates, sampling its centre."""
        offset = self.config.tree.sample_offset
        scale = self.config.scale
        return (pos[0] + offset) / scale, (pos[1] + offset) / scale

    def _on_pointer_move(self, pos: Sequence[int]) -> None:
        """Reveal under the pointer unless the previous update was too recent."""
        if self._tree is None:
            return

        now = time.perf_counter()
        if (now - self._last_update) * 1000 < self.config.min_update_interval_ms:
            return
        self._last_update = now

        self._focus = self._window_to_image(pos)
        if self._tree.reveal(*self._focus):
            self._needs_redraw = True

    def _render_frame(self) -> None:
        """Repaint the tree onto the window surface."""
        if self._tree is None or self._surface is None:
            return

        start_time = time.perf_counter()
        self._surface.clear()
        self._tree.draw(self._surface)
        self.stats.update(time.perf_counter() - start_time)
        self._needs_redraw = False

    def _draw_debug_overlay(self) -> None:
        """Draw debug information overlay."""
        if not self._show_debug or self._screen is None or self._tree is None:
            return

        font = pygame.font.Font(None, 24)
        stats = self._tree.stats()

        lines = [
            f"Redraws/s: {self.stats.fps:.1f}",
            f"Draw time: {self.stats.last_frame_time * 1000:.2f}ms",
            f"Height: {stats['height']}",
            f"Focus: {self._focus[0]:.1f}, {self._focus[1]:.1f}"
                if self._focus else "Focus: None",
            f"Expanded: {stats['expanded']}/{stats['internal']}",
            f"Pixels: {stats['pixels_inserted']} ({stats['pixels_dropped']} dropped)",
            "",
            "Controls:",
            "Move - Reveal detail",
            "R - Reset blur",
            "S - Save snapshot",
            "D - Toggle debug overlay",
            "ESC - Quit"
        ]

        overlay_height = len(lines) * 22 + 10
        overlay_surface = pygame.Surface((260, overlay_height))
        overlay_surface.set_alpha(180)
        overlay_surface.fill((0, 0, 0))
        self._screen.blit(overlay_surface, (10, 10))

        y_offset = 15
        for line in lines:
            text_surface = font.render(line, True, (255, 255, 255))
            self._screen.blit(text_surface, (15, y_offset))
            y_offset += 22

    def _save_window_snapshot(self) -> None:
        if self._screen is None:
            return
        self._snapshot_count += 1
        path = Path(f"unblur_snapshot_{self._snapshot_count:03d}.png")
        pygame.image.save(self._screen, str(path))
        logger.info(f"Saved snapshot to {path}")

    def _handle_events(self) -> bool:
        """
        Handle pygame events.

        Returns:
            False if application should quit, True otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    return False
                elif event.key == pygame.K_d:
                    self._show_debug = not self._show_debug
                    self._needs_redraw = True
                elif event.key == pygame.K_r:
                    if self._tree:
                        self._tree.reset_reveal()
                        self._needs_redraw = True
                elif event.key == pygame.K_s:
                    self._save_window_snapshot()

            elif event.type == pygame.MOUSEMOTION:
                self._on_pointer_move(event.pos)

        return True

    def run(self) -> None:
        """
        Run the main application loop.

        This method blocks until the application is closed.
        """
        try:
            self._init_pygame()
            self._load_source_image()
            self._build_tree()

            self.state = AppState.RUNNING
            logger.info("Application started")

            running = True
            while running:
                running = self._handle_events()

                if self._needs_redraw:
                    self._render_frame()
                    self._draw_debug_overlay()
                    pygame.display.flip()

                self._clock.tick(self.config.fps)

        except Exception as e:
            logger.error(f"Application error: {e}", exc_info=True)
            raise

        finally:
            self.state = AppState.STOPPED
            pygame.quit()
            logger.info("Application stopped")

    def run_single_frame(self,
                         focus_points: Iterable[Tuple[float, float]]) -> np.ndarray:
        """
        Reveal at each focus point in order and rasterise the result.

        Useful for testing or integration with other systems. Focus points
        are given in image coordinates.

        Args:
            focus_points: Sequence of (x, y) reveal calls to replay.

        Returns:
            Rendered image as numpy array of window size.
        """
        if self._source_image is None:
            self._load_source_image()

        if self._tree is None:
            self._build_tree()

        for fx, fy in focus_points:
            self._tree.reveal(fx, fy)

        surface = ArraySurface(
            self.config.window_size,
            background=self.config.background_color,
            shape=self.config.swatch_shape,
            scale=self.config.scale,
        )
        self._tree.draw(surface)
        return surface.canvas


def build_config(args) -> AppConfig:
    """Translate parsed command line arguments into an AppConfig."""
    config = create_default_config()
    tree = replace(
        config.tree,
        containment=ContainmentPolicy[args.containment.upper().replace('-', '_')],
        reveal=RevealPolicy[args.reveal_policy.upper().replace('-', '_')],
        averaging=AveragingMode.LEGACY if args.legacy_averaging else AveragingMode.RUNNING_MEAN,
        max_height=args.max_height,
    )
    return AppConfig(
        image_size=args.size,
        window_size=args.window if args.window else args.size,
        swatch_shape=SwatchShape[args.shape.upper()],
        min_update_interval_ms=args.interval,
        tree=tree,
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the application."""
    import argparse
    parser = argparse.ArgumentParser(
        description='Progressively unblur an image with the mouse'
    )
    parser.add_argument(
        '--image', '-i',
        type=str,
        help='Path to an image file to display'
    )
    parser.add_argument(
        '--size', '-s',
        type=int,
        default=256,
        help='Side the image is scaled to, a power of two (default: 256)'
    )
    parser.add_argument(
        '--window', '-W',
        type=int,
        default=None,
        help='Window side in pixels (default: same as --size)'
    )
    parser.add_argument(
        '--shape',
        choices=['circle', 'rectangle'],
        default='circle',
        help='Swatch shape for collapsed regions (default: circle)'
    )
    parser.add_argument(
        '--reveal-policy',
        choices=['one-level', 'cascade'],
        default='one-level',
        help='How far one reveal opens a region (default: one-level)'
    )
    parser.add_argument(
        '--containment',
        choices=['strict', 'half-open'],
        default='strict',
        help='Boundary policy for pixels and focus points (default: strict)'
    )
    parser.add_argument(
        '--legacy-averaging',
        action='store_true',
        help='Use the legacy 8-bit leaf accumulator instead of a running mean'
    )
    parser.add_argument(
        '--max-height',
        type=int,
        default=None,
        help='Cap on the tree height'
    )
    parser.add_argument(
        '--interval',
        type=float,
        default=0.0,
        help='Minimum milliseconds between reveals (default: 0)'
    )
    parser.add_argument(
        '--snapshot',
        type=str,
        help='Render headlessly to this PNG file instead of opening a window'
    )
    parser.add_argument(
        '--focus',
        type=parse_point,
        action='append',
        default=[],
        metavar='X,Y',
        help='Focus point to reveal at before a snapshot (repeatable)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    app = UnblurApp(config=config, image_path=args.image)
    if args.snapshot:
        frame = app.run_single_frame(args.focus)
        save_array_as_png(frame, args.snapshot)
        return

    app.run()


if __name__ == '__main__':
    main()
