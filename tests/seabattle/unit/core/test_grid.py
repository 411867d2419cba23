from __future__ import annotations

import pytest

from seabattle.core.grid import Grid
from seabattle.core.models import CellState, Coord


def test_new_grid_is_all_unknown() -> None:
    grid = Grid()
    assert grid.size == 10
    assert grid.count(CellState.UNKNOWN) == 100
    assert grid.shot_count() == 0
    assert len(grid.unshot_cells()) == 100


def test_unshot_covers_unknown_and_object() -> None:
    grid = Grid(3)
    grid.set(Coord(0, 0), CellState.OBJECT)
    grid.set(Coord(1, 0), CellState.EMPTY)
    grid.set(Coord(2, 0), CellState.HIT)
    assert grid.is_unshot(Coord(0, 0))
    assert not grid.is_unshot(Coord(1, 0))
    assert not grid.is_unshot(Coord(2, 0))
    assert grid.shot_count() == 2
    assert Coord(0, 0) in grid.unshot_cells()


def test_hit_count_includes_destroyed() -> None:
    grid = Grid()
    grid.set(Coord(1, 1), CellState.HIT)
    grid.set(Coord(2, 2), CellState.DESTROYED)
    grid.set(Coord(3, 3), CellState.EMPTY)
    assert grid.hit_count() == 2


def test_rows_are_indexed_by_x_then_y() -> None:
    grid = Grid(4)
    grid.set(Coord(3, 1), CellState.HIT)
    rows = grid.to_rows()
    assert rows[3][1] == "hit"
    assert rows[1][3] == "unknown"
    assert Grid.from_rows(rows) == grid


def test_copy_is_independent() -> None:
    grid = Grid()
    clone = grid.copy()
    clone.set(Coord(0, 0), CellState.EMPTY)
    assert grid.get(Coord(0, 0)) is CellState.UNKNOWN
    assert grid != clone


@pytest.mark.parametrize(
    "rows",
    [
        [],
        "not rows",
        [["unknown", "unknown"], ["unknown"]],
        [["unknown", "bogus"], ["unknown", "unknown"]],
    ],
)
def test_from_rows_rejects_malformed_input(rows) -> None:
    with pytest.raises(ValueError):
        Grid.from_rows(rows)


def test_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Grid(0)
