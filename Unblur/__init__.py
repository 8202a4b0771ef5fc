"""
Unblur Package

A fixed-depth quadtree that compresses a square image into average-colour
regions and reveals finer detail wherever a focus point moves.
"""

from .config import (
    AppConfig,
    AveragingMode,
    ContainmentPolicy,
    RevealPolicy,
    SwatchShape,
    TreeConfig,
)
from .errors import OutOfBoundsPixel, QuadtreeError, ShapeError
from .quadtree import Internal, Leaf, PopulateResult, Quadtree, Region, tree_height
from .sources import ArrayPixelSource, ImageLoader, PixelSource
from .surfaces import ArraySurface, DrawSurface, PygameSurface, RecordingSurface
from .application import UnblurApp

__all__ = [
    'AppConfig',
    'AveragingMode',
    'ContainmentPolicy',
    'RevealPolicy',
    'SwatchShape',
    'TreeConfig',
    'OutOfBoundsPixel',
    'QuadtreeError',
    'ShapeError',
    'Internal',
    'Leaf',
    'PopulateResult',
    'Quadtree',
    'Region',
    'tree_height',
    'ArrayPixelSource',
    'ImageLoader',
    'PixelSource',
    'ArraySurface',
    'DrawSurface',
    'PygameSurface',
    'RecordingSurface',
    'UnblurApp',
]

__version__ = '1.0.0'
