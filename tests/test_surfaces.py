import numpy as np
import pygame
import pytest

from Unblur.config import SwatchShape
from Unblur.quadtree import Quadtree, Region
from Unblur.surfaces import ArraySurface, PygameSurface, RecordingSurface

RED = (200, 10, 10)
BACKGROUND = (0, 0, 0)


def test_recording_surface_keeps_commands_in_order():
    surface = RecordingSurface()

    surface.fill(Region(0, 0, 2), RED)
    surface.fill(Region(2, 0, 2), BACKGROUND)

    assert surface.commands == [(Region(0, 0, 2), RED), (Region(2, 0, 2), BACKGROUND)]
    surface.clear()
    assert surface.commands == []


def test_array_surface_fills_rectangles():
    surface = ArraySurface(8)

    surface.fill(Region(2, 4, 4), RED)

    canvas = surface.canvas
    assert np.all(canvas[4:8, 2:6] == RED)
    assert np.all(canvas[:4] == BACKGROUND)
    assert np.all(canvas[:, :2] == BACKGROUND)


def test_array_surface_scales_regions():
    surface = ArraySurface(8, scale=2.0)

    surface.fill(Region(1, 1, 1), RED)

    assert np.all(surface.canvas[2:4, 2:4] == RED)
    assert int((surface.canvas == RED).all(axis=2).sum()) == 4


def test_array_surface_paints_inscribed_circles():
    surface = ArraySurface(10, shape=SwatchShape.CIRCLE)

    surface.fill(Region(0, 0, 10), RED)

    assert tuple(surface.canvas[5, 5]) == RED
    assert tuple(surface.canvas[0, 0]) == BACKGROUND
    assert tuple(surface.canvas[9, 9]) == BACKGROUND


def test_array_surface_clips_regions_outside_canvas():
    surface = ArraySurface(4, background=(1, 2, 3))

    surface.fill(Region(2, 2, 4), RED)
    surface.fill(Region(10, 10, 2), RED)

    assert np.all(surface.canvas[2:, 2:] == RED)
    assert tuple(surface.canvas[0, 0]) == (1, 2, 3)

    surface.clear()
    assert np.all(surface.canvas == (1, 2, 3))


def test_array_surface_rejects_empty_canvas():
    with pytest.raises(ValueError):
        ArraySurface(0)


def test_tree_draws_root_average_over_whole_canvas():
    tree = Quadtree.build(1, Region(0, 0, 4))
    tree.insert(1, 1, (0, 0, 0))
    surface = ArraySurface(4)

    assert tree.draw(surface) == 1

    assert np.all(surface.canvas == tree.average_color())


def test_pygame_surface_draws_rectangles():
    target = pygame.Surface((8, 8))
    surface = PygameSurface(target, shape=SwatchShape.RECTANGLE, scale=2.0)

    surface.fill(Region(0, 0, 2), RED)

    assert tuple(target.get_at((1, 1)))[:3] == RED
    assert tuple(target.get_at((3, 3)))[:3] == RED
    assert tuple(target.get_at((5, 5)))[:3] == BACKGROUND


def test_pygame_surface_draws_inscribed_circles():
    target = pygame.Surface((20, 20))
    surface = PygameSurface(target, shape=SwatchShape.CIRCLE)

    surface.fill(Region(0, 0, 20), RED)

    assert tuple(target.get_at((10, 10)))[:3] == RED
    assert tuple(target.get_at((0, 0)))[:3] == BACKGROUND


def test_pygame_surface_clear_uses_background():
    target = pygame.Surface((4, 4))
    surface = PygameSurface(target, background=(9, 9, 9))

    surface.clear()

    assert tuple(target.get_at((2, 2)))[:3] == (9, 9, 9)
