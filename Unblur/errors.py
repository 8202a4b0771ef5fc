"""
Error types raised by the quadtree.

Only construction and insertion can fail. Reveal and draw treat points
outside the tree and empty nodes as ordinary cases.
"""


class QuadtreeError(Exception):
    """Base class for quadtree errors."""


class ShapeError(QuadtreeError, ValueError):
    """The requested geometry cannot be represented by a perfect quadtree."""


class OutOfBoundsPixel(QuadtreeError, IndexError):
    """
    No node accepted a pixel.

    Raised for coordinates outside the root region and for coordinates that
    fall on a boundary rejected by the containment policy.
    """

    def __init__(self, x, y, region):
        self.x = x
        self.y = y
        self.region = region
        super().__init__(f"Pixel ({x}, {y}) is not inside any node of {region}")
