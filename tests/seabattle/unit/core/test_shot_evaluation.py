from __future__ import annotations

import pytest

from seabattle.core.board import BoardModel
from seabattle.core.grid import Grid
from seabattle.core.models import CellState, Coord, ShipInfo, ShipPosition, ShotResult, ship_from_position
from seabattle.core.shot_resolution import apply_reported_result, evaluate_shot


def _three_ship() -> ShipInfo:
    return ship_from_position(0, ShipPosition(4, 4, 3, True))


def test_miss_marks_empty() -> None:
    grid = Grid()
    ship = _three_ship()
    assert evaluate_shot(grid, [ship], Coord(0, 0)) is ShotResult.MISS
    assert grid.get(Coord(0, 0)) is CellState.EMPTY
    assert ship.hit_cells == 0


def test_hits_then_destroyed_marks_every_ship_cell() -> None:
    grid = Grid()
    ship = _three_ship()
    assert evaluate_shot(grid, [ship], Coord(4, 4)) is ShotResult.HIT
    assert grid.get(Coord(4, 4)) is CellState.HIT
    assert evaluate_shot(grid, [ship], Coord(6, 4)) is ShotResult.HIT
    assert evaluate_shot(grid, [ship], Coord(5, 4)) is ShotResult.DESTROYED

    assert ship.destroyed
    assert ship.hit_cells == 3
    assert all(grid.get(cell) is CellState.DESTROYED for cell in ship.cells)
    neighbours = [Coord(3, 4), Coord(7, 4), Coord(5, 3), Coord(5, 5)]
    assert all(grid.get(cell) is CellState.UNKNOWN for cell in neighbours)


def test_cells_never_return_to_unshot() -> None:
    grid = Grid()
    ship = _three_ship()
    seen: dict[Coord, list[CellState]] = {cell: [] for cell in ship.cells}
    for cell in ship.cells:
        evaluate_shot(grid, [ship], cell)
        for tracked in ship.cells:
            seen[tracked].append(grid.get(tracked))
    for cell, history in seen.items():
        shot_from = history.index(next(state for state in history if state is not CellState.UNKNOWN))
        assert all(state in (CellState.HIT, CellState.DESTROYED) for state in history[shot_from:])
    assert grid.hit_count() == 3


def test_reported_destroyed_without_fleet_marks_connected_hits() -> None:
    view = Grid()
    apply_reported_result(view, Coord(2, 2), ShotResult.HIT)
    apply_reported_result(view, Coord(2, 3), ShotResult.HIT)
    apply_reported_result(view, Coord(5, 5), ShotResult.HIT)
    apply_reported_result(view, Coord(2, 4), ShotResult.DESTROYED)

    assert [view.get(Coord(2, y)) for y in (2, 3, 4)] == [CellState.DESTROYED] * 3
    assert view.get(Coord(5, 5)) is CellState.HIT


def test_reported_destroyed_with_known_fleet_uses_ship_cells() -> None:
    view = Grid()
    ship = _three_ship()
    apply_reported_result(view, Coord(4, 4), ShotResult.HIT, [ship])
    assert ship.hit_cells == 1
    apply_reported_result(view, Coord(9, 9), ShotResult.MISS, [ship])
    apply_reported_result(view, Coord(5, 4), ShotResult.DESTROYED, [ship])

    assert ship.destroyed
    assert all(view.get(cell) is CellState.DESTROYED for cell in ship.cells)
    assert view.get(Coord(9, 9)) is CellState.EMPTY
    assert view.count(CellState.OBJECT) == 0


def test_board_model_lookup_and_objects(fixed_fleet) -> None:
    board = BoardModel()
    board.load_fleet(fixed_fleet)
    assert board.has_ship_at(Coord(0, 0))
    assert not board.has_ship_at(Coord(9, 9))
    assert not board.has_ship_at(Coord(-1, 0))
    assert board.ship_at(Coord(6, 1)) is fixed_fleet[1]
    assert board.occupied_cell_count() == 20

    grid = Grid()
    board.mark_objects(grid)
    assert grid.count(CellState.OBJECT) == 20
    assert board.evaluate_shot(Coord(3, 7), grid) is ShotResult.DESTROYED
    assert grid.count(CellState.OBJECT) == 19


def test_board_model_rejects_overlap(fixed_fleet) -> None:
    board = BoardModel()
    fixed_fleet[1].cells = list(fixed_fleet[0].cells[:3])
    with pytest.raises(ValueError, match="overlaps"):
        board.load_fleet(fixed_fleet)


def test_restore_damage_recomputes_counters(fixed_fleet) -> None:
    board = BoardModel()
    board.load_fleet(fixed_fleet)
    grid = Grid()
    board.mark_objects(grid)
    for cell in fixed_fleet[0].cells:
        board.evaluate_shot(cell, grid)

    rebuilt = BoardModel()
    fresh = [ship_from_position(ship.id, ship.to_position()) for ship in fixed_fleet]
    rebuilt.load_fleet(fresh)
    rebuilt.restore_damage(grid)
    assert fresh[0].destroyed
    assert fresh[0].hit_cells == 4
    assert not rebuilt.all_destroyed()
    assert rebuilt.positions() == board.positions()
