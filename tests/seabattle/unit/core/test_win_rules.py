from __future__ import annotations

from seabattle.core.grid import Grid
from seabattle.core.models import TOTAL_OBJECT_CELLS, CellState, Coord
from seabattle.core.rules import check_win, is_valid_target


def test_win_threshold() -> None:
    assert TOTAL_OBJECT_CELLS == 20
    assert not check_win(19)
    assert check_win(20)
    assert check_win(21)
    assert check_win(3, total=3)


def test_valid_target_requires_unknown_in_bounds() -> None:
    view = Grid()
    view.set(Coord(1, 1), CellState.EMPTY)
    assert is_valid_target(view, Coord(0, 0))
    assert not is_valid_target(view, Coord(1, 1))
    assert not is_valid_target(view, Coord(10, 0))

