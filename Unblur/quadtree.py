"""
Fixed-depth quadtree over a square image.

The tree is built once with a fixed shape, populated once by streaming every
source pixel through ``insert``, and then read many times by ``reveal`` (which
only flips collapse flags) and ``draw`` (read-only). Nodes live in an arena
and refer to their children by index.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from .config import AveragingMode, ContainmentPolicy, RevealPolicy, TreeConfig
from .errors import OutOfBoundsPixel, ShapeError
from .utils import Timer, timed, to_uint8_color

logger = logging.getLogger(__name__)

# Gap between a circular swatch and the edge of its square, as a fraction of the side.
INSCRIBED_MARGIN = 0.1

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class Region:
    """
    Axis-aligned square.

    Attributes:
        x: X coordinate of the top-left corner.
        y: Y coordinate of the top-left corner.
        side_len: Length of each edge.
    """
    x: float
    y: float
    side_len: float

    def __post_init__(self):
        if self.side_len <= 0:
            raise ShapeError(f"side_len must be positive, got {self.side_len}")

    def contains(self, px: float, py: float,
                 policy: ContainmentPolicy = ContainmentPolicy.STRICT) -> bool:
        """
        Test whether a point lies inside this square.

        Under ``STRICT`` both edges are excluded, so points on a split line
        belong to no quadrant. ``HALF_OPEN`` includes the top and left edges.
        """
        right = self.x + self.side_len
        bottom = self.y + self.side_len
        if policy is ContainmentPolicy.STRICT:
            return self.x < px < right and self.y < py < bottom
        return self.x <= px < right and self.y <= py < bottom

    def quadrants(self) -> Tuple['Region', 'Region', 'Region', 'Region']:
        """Split into top-left, top-right, bottom-left and bottom-right."""
        half = self.side_len / 2
        return (
            Region(self.x, self.y, half),
            Region(self.x + half, self.y, half),
            Region(self.x, self.y + half, half),
            Region(self.x + half, self.y + half, half),
        )

    @property
    def center(self) -> Tuple[float, float]:
        half = self.side_len / 2
        return self.x + half, self.y + half

    def inscribed_radius(self) -> float:
        """Radius of the circular swatch drawn for this square."""
        return self.side_len / 2 - INSCRIBED_MARGIN * self.side_len


@dataclass
class Leaf:
    """Node without children. Accumulates pixel samples directly."""
    region: Region
    color: List[float]
    collapsed: bool = True
    pixel_count: int = 0
    # Exact per-channel totals; the running mean is recomputed from these.
    channel_sums: List[float] = field(default_factory=lambda: [0, 0, 0])


@dataclass
class Internal:
    """Node with exactly four children (tl, tr, bl, br arena indices)."""
    region: Region
    children: Tuple[int, int, int, int]
    color: List[float]
    collapsed: bool = True


Node = Union[Leaf, Internal]


class PopulateResult(NamedTuple):
    """Outcome of streaming a pixel source into a tree."""
    inserted: int
    dropped: int


def tree_height(side: int) -> int:
    """
    Height of the tree for an ``side`` x ``side`` image: ``floor(log2(side))``.

    Raises:
        ShapeError: If side is smaller than one pixel.
    """
    if side < 1:
        raise ShapeError(f"Image side must be at least 1, got {side}")
    return int(side).bit_length() - 1


class Quadtree:
    """
    Perfect 4-ary tree of average colours with point-driven reveal.

    Every public method that reads or mutates the arena holds a single
    re-entrant lock, so one tree can be shared between an event thread and a
    render thread.
    """

    def __init__(self, height: int, region: Region,
                 config: Optional[TreeConfig] = None):
        """
        Build the fixed-shape skeleton.

        Args:
            height: Number of subdivision levels below the root.
            region: Square covered by the root.
            config: Tree behaviour (defaults if None).

        Raises:
            ShapeError: If height is negative or region.side_len is not evenly
                divisible by 2 ** height.
        """
        if isinstance(height, bool) or not isinstance(height, int) or height < 0:
            raise ShapeError(f"height must be a non-negative integer, got {height!r}")
        if region.side_len % (2 ** height) != 0:
            raise ShapeError(
                f"side_len {region.side_len} is not divisible by 2**{height}"
            )

        self.config = config or TreeConfig()
        self._height = height
        self._nodes: List[Node] = []
        self._lock = threading.RLock()
        self._pixels_inserted = 0
        self._pixels_dropped = 0

        with Timer("build") as timer:
            self._root = self._allocate(height, region)

        logger.info(
            f"Quadtree built: height {height}, {len(self._nodes)} nodes, "
            f"leaf side {region.side_len / 2 ** height} in {timer.elapsed * 1000:.1f}ms"
        )

    @classmethod
    def build(cls, height: int, region: Region,
              config: Optional[TreeConfig] = None) -> 'Quadtree':
        """Allocate a perfect tree of ``height`` over ``region``."""
        return cls(height, region, config)

    @classmethod
    @timed
    def from_pixels(cls, source, config: Optional[TreeConfig] = None) -> 'Quadtree':
        """
        Build a tree sized for a square pixel source and populate it.

        Args:
            source: Object with ``size`` and ``pixels()`` (see ``PixelSource``).
            config: Tree behaviour (defaults if None).

        Returns:
            Populated tree.

        Raises:
            ShapeError: If the source is not square or its side is not
                divisible by 2 ** height.
        """
        width, height = source.size
        if width != height:
            raise ShapeError(f"Image must be square, got {width}x{height}")

        config = config or TreeConfig()
        levels = tree_height(width)
        if config.max_height is not None:
            levels = min(levels, config.max_height)

        tree = cls(levels, Region(0, 0, width), config)
        tree.populate(source)
        return tree

    def _allocate(self, height: int, region: Region) -> int:
        # Children are appended before their parent.
        color = [float(c) for c in self.config.initial_color]
        if height == 0:
            self._nodes.append(Leaf(region, color))
        else:
            children = tuple(
                self._allocate(height - 1, quadrant)
                for quadrant in region.quadrants()
            )
            self._nodes.append(Internal(region, children, color))
        return len(self._nodes) - 1

    def insert(self, px: float, py: float, color: Sequence[float]) -> int:
        """
        Add one pixel sample to the leaf containing ``(px, py)``.

        Every ancestor of that leaf recomputes its colour as the unweighted
        mean of its four children on the way back up.

        Args:
            px: X coordinate of the sample.
            py: Y coordinate of the sample.
            color: RGB (or RGBA, alpha ignored) channels in 0-255.

        Returns:
            Arena index of the leaf that accepted the sample.

        Raises:
            OutOfBoundsPixel: If no node contains the point.
        """
        sample = (float(color[0]), float(color[1]), float(color[2]))
        with self._lock:
            leaf = self._insert(self._root, px, py, sample)
            if leaf is None:
                raise OutOfBoundsPixel(px, py, self.root_region)
            self._pixels_inserted += 1
            return leaf

    def _insert(self, index: int, px: float, py: float,
                sample: Tuple[float, float, float]) -> Optional[int]:
        node = self._nodes[index]
        if not node.region.contains(px, py, self.config.containment):
            return None

        if isinstance(node, Leaf):
            self._accumulate(node, sample)
            return index

        # Quadrants are disjoint, so the first child that accepts is the only one.
        for child in node.children:
            leaf = self._insert(child, px, py, sample)
            if leaf is not None:
                self._roll_up(node)
                return leaf
        return None

    def _accumulate(self, leaf: Leaf, sample: Tuple[float, float, float]) -> None:
        n = leaf.pixel_count
        if self.config.averaging is AveragingMode.LEGACY:
            leaf.color = [
                float(int(old * n + value / (n + 1)) % 256)
                for old, value in zip(leaf.color, sample)
            ]
        else:
            leaf.channel_sums = [
                total + value for total, value in zip(leaf.channel_sums, sample)
            ]
            leaf.color = [total / (n + 1) for total in leaf.channel_sums]
        leaf.pixel_count = n + 1

    def _roll_up(self, node: Internal) -> None:
        tl, tr, bl, br = (self._nodes[child].color for child in node.children)
        mean = [(a + b + c + d) / 4 for a, b, c, d in zip(tl, tr, bl, br)]
        if self.config.averaging is AveragingMode.LEGACY:
            mean = [float(int(value)) for value in mean]
        node.color = mean

    def populate(self, source) -> PopulateResult:
        """
        Stream every pixel of ``source`` into the tree.

        Pixel ``(x, y)`` is sampled at ``(x + sample_offset, y + sample_offset)``.
        Pixels no node accepts are counted and skipped rather than aborting
        the population phase.

        Returns:
            Number of pixels inserted and dropped.
        """
        offset = self.config.sample_offset
        inserted = dropped = 0

        with self._lock, Timer("populate") as timer:
            for x, y, color in source.pixels():
                try:
                    self.insert(x + offset, y + offset, color)
                except OutOfBoundsPixel as e:
                    dropped += 1
                    logger.debug(f"Dropped pixel: {e}")
                else:
                    inserted += 1
            self._pixels_dropped += dropped

        if dropped:
            logger.warning(
                f"{dropped} pixels fell on rejected boundaries and were dropped"
            )
        logger.info(
            f"Populated quadtree with {inserted} pixels in {timer.elapsed * 1000:.1f}ms"
        )
        return PopulateResult(inserted, dropped)

    def reveal(self, fx: float, fy: float) -> int:
        """
        Advance disclosure under the focus point ``(fx, fy)``.

        Each collapsed internal node on the focus path opens by one level and
        the traversal stops there; already expanded nodes pass the call on to
        all four children. Points outside the tree are ignored.

        Returns:
            Number of nodes that changed from collapsed to expanded.
        """
        with self._lock:
            expanded = self._reveal(self._root, fx, fy)
        if expanded:
            logger.debug(f"Reveal at ({fx}, {fy}) expanded {expanded} nodes")
        return expanded

    def _reveal(self, index: int, fx: float, fy: float) -> int:
        node = self._nodes[index]
        if not node.region.contains(fx, fy, self.config.containment):
            return 0
        if isinstance(node, Leaf):
            return 0

        if node.collapsed:
            node.collapsed = False
            expanded = 1
            if self.config.reveal is RevealPolicy.CASCADE:
                for child in node.children:
                    child_node = self._nodes[child]
                    if child_node.collapsed:
                        child_node.collapsed = False
                        expanded += 1
            return expanded

        return sum(self._reveal(child, fx, fy) for child in node.children)

    def reset_reveal(self) -> None:
        """
        Collapse every node again to start a new session.

        This is a session reset, not a step of the per-node reveal state
        machine. Within a session ``reveal`` only ever expands nodes; the
        reset discards that session and begins another with the whole tree
        collapsed, as it was right after population.
        """
        with self._lock:
            for node in self._nodes:
                node.collapsed = True
        logger.info("Reveal state reset")

    def draw(self, surface) -> int:
        """
        Paint the current level of detail onto ``surface``.

        A collapsed node is painted as one swatch of its average colour and
        its children are skipped.

        Args:
            surface: Object with ``fill(region, color)``.

        Returns:
            Number of swatches painted.
        """
        with self._lock:
            count = 0
            for region, color in self._fills(self._root):
                surface.fill(region, color)
                count += 1
        return count

    def fill_commands(self) -> List[Tuple[Region, Color]]:
        """The ``(region, color)`` sequence ``draw`` would emit."""
        with self._lock:
            return list(self._fills(self._root))

    def _fills(self, index: int) -> Iterator[Tuple[Region, Color]]:
        node = self._nodes[index]
        if node.collapsed:
            yield node.region, to_uint8_color(node.color)
            return
        # An expanded leaf has nothing finer to show.
        if isinstance(node, Internal):
            for child in node.children:
                yield from self._fills(child)

    @property
    def root(self) -> int:
        return self._root

    @property
    def height(self) -> int:
        return self._height

    @property
    def root_region(self) -> Region:
        return self._nodes[self._root].region

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, index: int) -> Node:
        with self._lock:
            return self._nodes[index]

    def children_of(self, index: int) -> Tuple[int, ...]:
        with self._lock:
            node = self._nodes[index]
            return node.children if isinstance(node, Internal) else ()

    def is_collapsed(self, index: int) -> bool:
        with self._lock:
            return self._nodes[index].collapsed

    def average_color(self, index: Optional[int] = None) -> Color:
        """8-bit average colour of a node (the root if index is None)."""
        with self._lock:
            node = self._nodes[self._root if index is None else index]
            return to_uint8_color(node.color)

    def leaves(self) -> List[int]:
        """Leaf indices in tl, tr, bl, br depth-first order."""
        found = []
        with self._lock:
            stack = [self._root]
            while stack:
                index = stack.pop()
                node = self._nodes[index]
                if isinstance(node, Leaf):
                    found.append(index)
                else:
                    stack.extend(reversed(node.children))
        return found

    def locate(self, px: float, py: float) -> Optional[int]:
        """Index of the leaf containing a point, or None."""
        policy = self.config.containment
        with self._lock:
            index = self._root
            if not self._nodes[index].region.contains(px, py, policy):
                return None
            while True:
                node = self._nodes[index]
                if isinstance(node, Leaf):
                    return index
                for child in node.children:
                    if self._nodes[child].region.contains(px, py, policy):
                        index = child
                        break
                else:
                    return None

    def stats(self) -> Dict[str, int]:
        """
        Get counters describing the current tree state.

        Returns:
            Dictionary with node, leaf, expansion and pixel counters.
        """
        with self._lock:
            leaves = sum(1 for node in self._nodes if isinstance(node, Leaf))
            expanded = sum(
                1 for node in self._nodes
                if isinstance(node, Internal) and not node.collapsed
            )
            return {
                'height': self._height,
                'nodes': len(self._nodes),
                'leaves': leaves,
                'internal': len(self._nodes) - leaves,
                'expanded': expanded,
                'pixels_inserted': self._pixels_inserted,
                'pixels_dropped': self._pixels_dropped,
            }
