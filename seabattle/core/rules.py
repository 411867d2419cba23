"""Win and shot-legality rules."""

from __future__ import annotations

from seabattle.core.grid import Grid
from seabattle.core.models import TOTAL_OBJECT_CELLS, CellState, Coord


def check_win(hits: int, total: int = TOTAL_OBJECT_CELLS) -> bool:
    """Return whether ``hits`` landed shots sink the whole fleet."""
    return hits >= total


def is_valid_target(view: Grid, coord: Coord) -> bool:
    """Whether a shot at ``coord`` on an opponent view is legal."""
    return view.in_bounds(coord) and view.get(coord) is CellState.UNKNOWN

