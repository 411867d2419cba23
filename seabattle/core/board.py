"""Board state representation and mutation helpers."""

from __future__ import annotations

import numpy as np

from seabattle.core.grid import Grid
from seabattle.core.models import (
    GRID_SIZE,
    CellState,
    Coord,
    ShipInfo,
    ShipPosition,
    ShotResult,
    positions_from_ships,
)
from seabattle.core.shot_resolution import evaluate_shot

_NO_SHIP = -1


class BoardModel:
    """Live ship occupancy for one player's own board."""

    def __init__(self, size: int = GRID_SIZE) -> None:
        self.size = size
        self._ships: list[ShipInfo] = []
        self._owner = np.full((size, size), _NO_SHIP, dtype=np.int16)

    @property
    def ships(self) -> list[ShipInfo]:
        return self._ships

    def load_fleet(self, ships: list[ShipInfo]) -> None:
        """Replace the fleet. Ships must already satisfy placement rules."""
        self._owner.fill(_NO_SHIP)
        for idx, ship in enumerate(ships):
            for cell in ship.cells:
                if not cell.in_bounds(self.size):
                    raise ValueError(f"Ship {ship.id} leaves the board at ({cell.x}, {cell.y}).")
                if self._owner[cell.x, cell.y] != _NO_SHIP:
                    raise ValueError(f"Ship {ship.id} overlaps another ship.")
                self._owner[cell.x, cell.y] = idx
        self._ships = ships

    def clear(self) -> None:
        self._ships = []
        self._owner.fill(_NO_SHIP)

    def has_ship_at(self, coord: Coord) -> bool:
        if not coord.in_bounds(self.size):
            return False
        return bool(self._owner[coord.x, coord.y] != _NO_SHIP)

    def ship_at(self, coord: Coord) -> ShipInfo | None:
        if not self.has_ship_at(coord):
            return None
        return self._ships[int(self._owner[coord.x, coord.y])]

    def occupied_cell_count(self) -> int:
        return int((self._owner != _NO_SHIP).sum())

    def evaluate_shot(self, coord: Coord, grid: Grid) -> ShotResult:
        """Resolve a shot at an unshot cell of this board, recording it on ``grid``."""
        return evaluate_shot(grid, self._ships, coord, ship=self.ship_at(coord))

    def mark_objects(self, grid: Grid) -> None:
        """Show this fleet as ``object`` cells on the owner's own grid."""
        for ship in self._ships:
            for cell in ship.cells:
                if grid.get(cell) is CellState.UNKNOWN:
                    grid.set(cell, CellState.OBJECT)

    def restore_damage(self, grid: Grid) -> None:
        """Recompute hit counters from a persisted own grid."""
        for ship in self._ships:
            damaged = [cell for cell in ship.cells if grid.get(cell) in (CellState.HIT, CellState.DESTROYED)]
            ship.hit_cells = len(damaged)
            ship.destroyed = ship.hit_cells >= ship.length

    def all_destroyed(self) -> bool:
        return bool(self._ships) and all(ship.destroyed for ship in self._ships)

    def positions(self) -> list[ShipPosition]:
        return positions_from_ships(self._ships)
