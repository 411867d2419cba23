"""Shot outcome evaluation (hit/miss/destroyed)."""

from __future__ import annotations

from seabattle.core.grid import Grid
from seabattle.core.models import CellState, Coord, ShipInfo, ShotResult


def find_ship_at(ships: list[ShipInfo], coord: Coord) -> ShipInfo | None:
    for ship in ships:
        if ship.occupies(coord):
            return ship
    return None


def evaluate_shot(
    grid: Grid,
    ships: list[ShipInfo],
    coord: Coord,
    *,
    ship: ShipInfo | None = None,
) -> ShotResult:
    """Resolve a shot at a cell that has not been fired upon.

    ``ship`` may be passed when the caller already knows the owner of the cell.
    """
    owner = ship if ship is not None else find_ship_at(ships, coord)
    if owner is None:
        grid.set(coord, CellState.EMPTY)
        return ShotResult.MISS

    grid.set(coord, CellState.HIT)
    owner.hit_cells += 1
    if owner.hit_cells >= owner.length:
        owner.destroyed = True
        for cell in owner.cells:
            grid.set(cell, CellState.DESTROYED)
        return ShotResult.DESTROYED
    return ShotResult.HIT


def apply_reported_result(
    grid: Grid,
    coord: Coord,
    result: ShotResult,
    ships: list[ShipInfo] | None = None,
) -> None:
    """Record a result reported by the defender on an opponent-view grid."""
    if result is ShotResult.MISS:
        grid.set(coord, CellState.EMPTY)
        return
    grid.set(coord, CellState.HIT)
    owner = find_ship_at(ships, coord) if ships else None
    if result is not ShotResult.DESTROYED:
        if owner is not None:
            owner.hit_cells = min(owner.length, owner.hit_cells + 1)
        return

    if owner is not None:
        owner.hit_cells = owner.length
        owner.destroyed = True
        for cell in owner.cells:
            grid.set(cell, CellState.DESTROYED)
        return
    for cell in _connected_hits(grid, coord):
        grid.set(cell, CellState.DESTROYED)


def _connected_hits(grid: Grid, start: Coord) -> list[Coord]:
    seen = {start}
    stack = [start]
    while stack:
        current = stack.pop()
        for nxt in current.orthogonal_neighbors():
            if nxt in seen or not grid.in_bounds(nxt):
                continue
            if grid.get(nxt) is CellState.HIT:
                seen.add(nxt)
                stack.append(nxt)
    return sorted(seen, key=lambda cell: (cell.x, cell.y))
