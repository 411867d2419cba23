"""Canonical session state and the read-only views handed to callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from seabattle.core.grid import Grid
from seabattle.core.models import (
    TOTAL_OBJECT_CELLS,
    GameMode,
    GamePhase,
    ShipInfo,
    ShotResult,
    Side,
    TurnState,
)


class RejectReason(StrEnum):
    WRONG_PHASE = "wrong_phase"
    NOT_YOUR_TURN = "not_your_turn"
    OUT_OF_BOUNDS = "out_of_bounds"
    ALREADY_RESOLVED = "already_resolved"
    FLEET_LOCKED = "fleet_locked"
    NO_AIM = "no_aim"
    GAME_OVER = "game_over"


@dataclass(slots=True)
class GameState:
    """Mutable session state. Only the orchestrator writes to it."""

    mode: GameMode | None = None
    phase: GamePhase = GamePhase.INTRO
    turn: TurnState = TurnState.WAITING
    player_grid: Grid = field(default_factory=Grid)
    opponent_grid: Grid = field(default_factory=Grid)
    player_ships: list[ShipInfo] = field(default_factory=list)
    opponent_ships: list[ShipInfo] = field(default_factory=list)
    player_hits: int = 0
    opponent_hits: int = 0
    winner: Side | None = None
    setup_complete: bool = False
    total_object_cells: int = TOTAL_OBJECT_CELLS
    turn_number: int = 0

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            mode=self.mode,
            phase=self.phase,
            turn=self.turn,
            player_grid=self.player_grid.copy(),
            opponent_grid=self.opponent_grid.copy(),
            player_hits=self.player_hits,
            opponent_hits=self.opponent_hits,
            winner=self.winner,
            setup_complete=self.setup_complete,
            total_object_cells=self.total_object_cells,
            turn_number=self.turn_number,
        )


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Frozen projection of ``GameState`` for presentation code."""

    mode: GameMode | None
    phase: GamePhase
    turn: TurnState
    player_grid: Grid
    opponent_grid: Grid
    player_hits: int
    opponent_hits: int
    winner: Side | None
    setup_complete: bool
    total_object_cells: int
    turn_number: int

    @property
    def is_over(self) -> bool:
        return self.winner is not None


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a player action."""

    accepted: bool
    message: str = ""
    shot_result: ShotResult | None = None
    reason: RejectReason | None = None

    @classmethod
    def ok(cls, message: str = "", shot_result: ShotResult | None = None) -> ActionResult:
        return cls(accepted=True, message=message, shot_result=shot_result)

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> ActionResult:
        return cls(accepted=False, message=message, reason=reason)
