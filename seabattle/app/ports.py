"""Interfaces between the orchestrator and its collaborators."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from seabattle.core.grid import Grid
from seabattle.core.models import Coord, GamePhase, ShipInfo, ShotResult, Side

if TYPE_CHECKING:
    from seabattle.app.game_state import ActionResult, GameState


class CellMark(StrEnum):
    HIT = "hit"
    MISS = "miss"

    @classmethod
    def for_result(cls, result: ShotResult) -> CellMark:
        return cls.HIT if result.is_hit else cls.MISS


class PresentationPort(Protocol):
    """Rendering callbacks. Implementations must not mutate game state."""

    def show_grid(self, which: Side) -> None: ...

    def hide_grid(self, which: Side) -> None: ...

    def set_cell_visual(self, which: Side, x: int, y: int, mark: CellMark) -> None: ...

    def show_aim_marker(self, x: int, y: int) -> None: ...

    def hide_aim_marker(self) -> None: ...

    def play_transition(self, kind: str, on_complete: Callable[[], None]) -> None:
        """Play a transition and call ``on_complete`` exactly once."""

    def show_message(self, status: str, hint: str = "") -> None: ...


class TurnHandler(Protocol):
    """Drives the opponent's side of a session."""

    def begin_opponent_turn(self) -> None: ...

    def notify_shot_complete(self, coord: Coord, result: ShotResult) -> None: ...

    def notify_game_over(self, winner: Side) -> None: ...

    def reset(self) -> None: ...


@runtime_checkable
class MultiplayerTurnHandler(TurnHandler, Protocol):
    """Turn handler that also owns aiming, submission and resume."""

    def on_fleet_confirmed(self) -> None: ...

    def select_aim(self, coord: Coord) -> ActionResult: ...

    def cancel_aim(self) -> ActionResult: ...

    def submit_selected_aim(self) -> ActionResult: ...

    def resume(self, player_index: int, on_done: Callable[[bool], None] | None = None) -> None: ...


class AIHost(Protocol):
    """What the AI turn handler needs from the orchestrator."""

    @property
    def state(self) -> GameState: ...

    def process_opponent_shot(self, coord: Coord) -> ShotResult | None: ...


class MultiplayerHost(AIHost, Protocol):
    """Primitives the turn protocol adapter calls back into."""

    @property
    def presentation(self) -> PresentationPort: ...

    def enter_phase(self, phase: GamePhase) -> bool: ...

    def resolve_incoming_shot(self, coord: Coord) -> ShotResult: ...

    def apply_outgoing_result(self, coord: Coord, result: ShotResult) -> None: ...

    def load_opponent_fleet(self, ships: list[ShipInfo]) -> None: ...

    def restore_boards(
        self,
        *,
        player_ships: list[ShipInfo] | None,
        player_grid: Grid | None,
        opponent_view: Grid | None,
        opponent_ships: list[ShipInfo] | None,
    ) -> None: ...

    def end_game(self, winner: Side) -> bool: ...
