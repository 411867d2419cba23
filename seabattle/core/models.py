"""Core domain models used by game logic."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

GRID_SIZE = 10

# (length, count) for the classic fleet: 4 + 3*2 + 2*3 + 1*4 = 20 cells.
SHIP_CONFIG: tuple[tuple[int, int], ...] = (
    (4, 1),
    (3, 2),
    (2, 3),
    (1, 4),
)

TOTAL_OBJECT_CELLS = sum(length * count for length, count in SHIP_CONFIG)


class CellState(StrEnum):
    """State of one grid cell."""

    UNKNOWN = "unknown"
    EMPTY = "empty"
    HIT = "hit"
    OBJECT = "object"
    DESTROYED = "destroyed"


class ShotResult(StrEnum):
    """Result of a resolved shot."""

    HIT = "hit"
    MISS = "miss"
    DESTROYED = "destroyed"

    @property
    def is_hit(self) -> bool:
        return self is not ShotResult.MISS


class GameMode(StrEnum):
    SINGLE = "single"
    MULTIPLAYER = "multiplayer"


class GamePhase(StrEnum):
    """Game phases across both modes."""

    INTRO = "intro"
    WAITING = "waiting"
    SETUP = "setup"
    SETUP_PENDING = "setup_pending"
    PLAYING = "playing"
    AIMING = "aiming"
    CONFIRM_SEND = "confirm_send"
    GAMEOVER = "gameover"


class TurnState(StrEnum):
    """Current turn owner."""

    PLAYER = "player"
    OPPONENT = "opponent"
    WAITING = "waiting"


class Side(StrEnum):
    """A participant, always from the local player's perspective."""

    PLAYER = "player"
    OPPONENT = "opponent"

    @property
    def other(self) -> Side:
        return Side.OPPONENT if self is Side.PLAYER else Side.PLAYER


@dataclass(frozen=True, slots=True)
class Coord:
    """Board coordinate; ``x`` is the column, ``y`` the row."""

    x: int
    y: int

    def in_bounds(self, size: int = GRID_SIZE) -> bool:
        return 0 <= self.x < size and 0 <= self.y < size

    def orthogonal_neighbors(self) -> tuple[Coord, ...]:
        # up, down, left, right
        return (
            Coord(self.x, self.y - 1),
            Coord(self.x, self.y + 1),
            Coord(self.x - 1, self.y),
            Coord(self.x + 1, self.y),
        )


@dataclass(frozen=True, slots=True)
class ShipPosition:
    """Wire form of a ship: origin cell, length and orientation."""

    x: int
    y: int
    length: int
    horizontal: bool

    def cells(self) -> list[Coord]:
        if self.horizontal:
            return [Coord(self.x + i, self.y) for i in range(self.length)]
        return [Coord(self.x, self.y + i) for i in range(self.length)]


@dataclass(slots=True)
class ShipInfo:
    """A placed ship and its damage."""

    id: int
    length: int
    cells: list[Coord]
    hit_cells: int = 0
    destroyed: bool = False

    @property
    def horizontal(self) -> bool:
        if len(self.cells) < 2:
            return True
        return self.cells[0].y == self.cells[1].y

    def occupies(self, coord: Coord) -> bool:
        return coord in self.cells

    def to_position(self) -> ShipPosition:
        origin = min(self.cells, key=lambda cell: (cell.x, cell.y))
        return ShipPosition(x=origin.x, y=origin.y, length=self.length, horizontal=self.horizontal)


@dataclass(frozen=True, slots=True)
class ShotHistoryEntry:
    x: int
    y: int
    result: ShotResult

    @property
    def coord(self) -> Coord:
        return Coord(self.x, self.y)


@dataclass(slots=True)
class AIState:
    """Hunt/target bookkeeping owned by the AI."""

    mode: str = "hunt"  # hunt|target
    target_cells: list[Coord] = field(default_factory=list)
    hit_cells: list[Coord] = field(default_factory=list)
    last_hit_direction: str | None = None  # horizontal|vertical


def ship_from_position(ship_id: int, position: ShipPosition) -> ShipInfo:
    return ShipInfo(id=ship_id, length=position.length, cells=position.cells())


def ships_from_positions(positions: list[ShipPosition]) -> list[ShipInfo]:
    return [ship_from_position(idx, position) for idx, position in enumerate(positions)]


def positions_from_ships(ships: list[ShipInfo]) -> list[ShipPosition]:
    return [ship.to_position() for ship in ships]
