import pytest

from gridpath.core.grid import Grid
from gridpath.core.presets import Preset
from gridpath.core.types import Coordinate, Role


def C(x, y):
    return Coordinate(x, y)


def walled_grid(width=10, height=10, start=(0, 0), goal=(9, 9), walls=()):
    grid = Grid(width, height)
    grid.apply_preset(Preset.build("test", start, goal, walls))
    return grid


def roles(grid):
    return {c: grid.role_of(c) for c in grid.coordinates()}


def tags(grid):
    return {c: grid.cell_snapshot(c).tag for c in grid.coordinates()}


def assert_valid_path(grid, path):
    assert path[0] == grid.start
    assert path[-1] == grid.goal
    for a, b in zip(path, path[1:]):
        assert abs(a.x - b.x) + abs(a.y - b.y) == 1, f"{a} -> {b} is not a single step"
    for c in path:
        assert grid.role_of(c) is not Role.WALL


@pytest.fixture
def grid():
    return Grid(10, 10)
