"""Numpy-backed cell-state grid."""

from __future__ import annotations

from collections.abc import Iterator

import numpy as np

from seabattle.core.models import GRID_SIZE, CellState, Coord

_CODES: dict[CellState, int] = {
    CellState.UNKNOWN: 0,
    CellState.EMPTY: 1,
    CellState.HIT: 2,
    CellState.OBJECT: 3,
    CellState.DESTROYED: 4,
}
_STATES: tuple[CellState, ...] = tuple(sorted(_CODES, key=_CODES.__getitem__))

# Cells that have not been fired upon yet.
_UNSHOT_CODES = (_CODES[CellState.UNKNOWN], _CODES[CellState.OBJECT])
_HIT_CODES = (_CODES[CellState.HIT], _CODES[CellState.DESTROYED])


class Grid:
    """Square matrix of ``CellState`` indexed ``[x][y]``."""

    __slots__ = ("_cells", "size")

    def __init__(self, size: int = GRID_SIZE) -> None:
        if size <= 0:
            raise ValueError("size must be > 0")
        self.size = size
        self._cells = np.zeros((size, size), dtype=np.int8)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self._cells, other._cells))

    def __repr__(self) -> str:
        return f"Grid(size={self.size}, shot={self.shot_count()}, hits={self.hit_count()})"

    def in_bounds(self, coord: Coord) -> bool:
        return coord.in_bounds(self.size)

    def get(self, coord: Coord) -> CellState:
        return _STATES[int(self._cells[coord.x, coord.y])]

    def set(self, coord: Coord, state: CellState) -> None:
        self._cells[coord.x, coord.y] = _CODES[state]

    def is_unshot(self, coord: Coord) -> bool:
        """Whether the cell has not been fired upon (``unknown`` or ``object``)."""
        return int(self._cells[coord.x, coord.y]) in _UNSHOT_CODES

    def unshot_cells(self) -> list[Coord]:
        xs, ys = np.nonzero(np.isin(self._cells, _UNSHOT_CODES))
        return [Coord(int(x), int(y)) for x, y in zip(xs, ys, strict=True)]

    def cells_in(self, state: CellState) -> list[Coord]:
        xs, ys = np.nonzero(self._cells == _CODES[state])
        return [Coord(int(x), int(y)) for x, y in zip(xs, ys, strict=True)]

    def hit_count(self) -> int:
        """Count cells reading ``hit`` or ``destroyed``."""
        return int(np.isin(self._cells, _HIT_CODES).sum())

    def shot_count(self) -> int:
        return int(self._cells.size - np.isin(self._cells, _UNSHOT_CODES).sum())

    def count(self, state: CellState) -> int:
        return int((self._cells == _CODES[state]).sum())

    def coords(self) -> Iterator[Coord]:
        for x in range(self.size):
            for y in range(self.size):
                yield Coord(x, y)

    def copy(self) -> Grid:
        clone = Grid(self.size)
        clone._cells = self._cells.copy()
        return clone

    def clear(self) -> None:
        self._cells.fill(_CODES[CellState.UNKNOWN])

    def to_rows(self) -> list[list[str]]:
        """Serialize as ``size`` columns of state strings (``rows[x][y]``)."""
        return [[_STATES[int(code)].value for code in column] for column in self._cells]

    @classmethod
    def from_rows(cls, rows: list[list[str]]) -> Grid:
        """Inverse of ``to_rows``. Raises ``ValueError`` on malformed input."""
        if not isinstance(rows, list) or not rows:
            raise ValueError("grid rows must be a non-empty list")
        size = len(rows)
        grid = cls(size)
        for x, column in enumerate(rows):
            if not isinstance(column, list) or len(column) != size:
                raise ValueError("grid must be square")
            for y, raw in enumerate(column):
                grid._cells[x, y] = _CODES[CellState(str(raw))]
        return grid
