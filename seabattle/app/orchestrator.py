"""Game orchestrator: owns session state and enforces turn rules."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping
from typing import TypeAlias

from seabattle.app.game_state import ActionResult, GameSnapshot, GameState, RejectReason
from seabattle.app.ports import CellMark, MultiplayerTurnHandler, PresentationPort, TurnHandler
from seabattle.app.state_machine import PhaseMachine
from seabattle.core.board import BoardModel
from seabattle.core.fleet import generate_fleet
from seabattle.core.grid import Grid
from seabattle.core.models import (
    CellState,
    Coord,
    GameMode,
    GamePhase,
    ShipInfo,
    ShotResult,
    Side,
    TurnState,
)
from seabattle.core.rules import check_win, is_valid_target
from seabattle.core.shot_resolution import apply_reported_result
from seabattle.infra.config import GameConfig
from seabattle.runtime.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

TurnHandlerFactory: TypeAlias = "Callable[[GameOrchestrator], TurnHandler]"

_MULTIPLAYER_AIM_PHASES = (GamePhase.AIMING, GamePhase.CONFIRM_SEND)
_SETUP_PHASES = (GamePhase.SETUP, GamePhase.SETUP_PENDING)


class GameOrchestrator:
    """Single entry point for player actions in both game modes.

    Presentation is reached only through ``PresentationPort``; the opponent is
    driven by the ``TurnHandler`` built for the selected mode.
    """

    def __init__(
        self,
        *,
        presentation: PresentationPort,
        scheduler: Scheduler,
        config: GameConfig,
        rng: random.Random,
        turn_handler_factories: Mapping[GameMode, TurnHandlerFactory],
    ) -> None:
        self._presentation = presentation
        self._scheduler = scheduler
        self._config = config
        self._rng = rng
        self._factories = dict(turn_handler_factories)
        self._phases = PhaseMachine()
        self._state = GameState()
        self._player_board = BoardModel()
        self._opponent_board = BoardModel()
        self._handler: TurnHandler | None = None
        self._timers: list[TimerHandle] = []
        self._epoch = 0

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def presentation(self) -> PresentationPort:
        return self._presentation

    @property
    def turn_handler(self) -> TurnHandler | None:
        return self._handler

    @property
    def phase(self) -> GamePhase:
        return self._phases.phase

    def snapshot(self) -> GameSnapshot:
        return self._state.snapshot()

    # Player actions

    def select_mode(self, mode: GameMode) -> ActionResult:
        if self._phases.phase is not GamePhase.INTRO:
            return self._reject(RejectReason.WRONG_PHASE, "A game is already in progress.")
        factory = self._factories.get(mode)
        if factory is None:
            raise ValueError(f"no turn handler registered for mode {mode.value}")
        self._state.mode = mode
        self._handler = factory(self)
        logger.info("mode_selected mode=%s epoch=%d", mode.value, self._epoch)

        if mode is GameMode.SINGLE:
            self.enter_phase(GamePhase.SETUP)
            self._presentation.show_message("Place your fleet", "Reshuffle or confirm.")
        else:
            self.enter_phase(GamePhase.WAITING)
            self._presentation.show_message("Waiting for opponent", "")
        return ActionResult.ok()

    def reshuffle(self) -> ActionResult:
        if self._state.setup_complete:
            return self._reject(RejectReason.FLEET_LOCKED, "Fleet is already confirmed.")
        if self._phases.phase not in _SETUP_PHASES:
            return self._reject(RejectReason.WRONG_PHASE, "Ships can only be moved during setup.")
        self._install_player_fleet(self._generate_fleet())
        return ActionResult.ok("Fleet reshuffled.")

    def confirm_setup(self) -> ActionResult:
        if self._state.setup_complete:
            return self._reject(RejectReason.FLEET_LOCKED, "Fleet is already confirmed.")
        if self._phases.phase not in _SETUP_PHASES:
            return self._reject(RejectReason.WRONG_PHASE, "Nothing to confirm right now.")
        if not self._state.player_ships:
            self._install_player_fleet(self._generate_fleet())
        self._state.setup_complete = True
        logger.info("setup_confirmed mode=%s ships=%d", self._mode_name(), len(self._state.player_ships))

        if self._state.mode is GameMode.SINGLE:
            self._start_single_player_battle()
        else:
            self._multiplayer_handler().on_fleet_confirmed()
        return ActionResult.ok()

    def tap_cell(self, x: int, y: int) -> ActionResult:
        coord = Coord(x, y)
        reason = self._tap_rejection(coord)
        if reason is not None:
            return self._reject(reason, _REJECT_MESSAGES[reason])
        if self._state.mode is GameMode.MULTIPLAYER:
            return self._multiplayer_handler().select_aim(coord)
        return self._fire_single_player(coord)

    def can_tap_cell(self, x: int, y: int) -> bool:
        """Whether ``tap_cell(x, y)`` would be accepted right now."""
        return self._tap_rejection(Coord(x, y)) is None

    def confirm_send(self) -> ActionResult:
        if self._state.mode is not GameMode.MULTIPLAYER:
            return self._reject(RejectReason.WRONG_PHASE, "Nothing to send.")
        if self._phases.phase is not GamePhase.CONFIRM_SEND:
            return self._reject(RejectReason.NO_AIM, "Select a target first.")
        return self._multiplayer_handler().submit_selected_aim()

    def cancel_aim(self) -> ActionResult:
        if self._state.mode is not GameMode.MULTIPLAYER or self._phases.phase is not GamePhase.CONFIRM_SEND:
            return self._reject(RejectReason.NO_AIM, "No target selected.")
        return self._multiplayer_handler().cancel_aim()

    def resume_multiplayer(self, player_index: int, on_done: Callable[[bool], None] | None = None) -> ActionResult:
        """Reload a multiplayer session from the durable store."""
        if self._phases.phase is GamePhase.INTRO:
            self.select_mode(GameMode.MULTIPLAYER)
        if self._state.mode is not GameMode.MULTIPLAYER or self._phases.phase is not GamePhase.WAITING:
            return self._reject(RejectReason.WRONG_PHASE, "Cannot resume now.")
        self._multiplayer_handler().resume(player_index, on_done)
        return ActionResult.ok()

    def play_again(self) -> ActionResult:
        mode = self._state.mode
        self.reset()
        if mode is GameMode.SINGLE:
            return self.select_mode(mode)
        return ActionResult.ok()

    def reset(self) -> None:
        """Cancel all pending work and return to the intro phase."""
        self._epoch += 1
        cancelled = 0
        for handle in self._timers:
            if handle.pending:
                handle.cancel()
                cancelled += 1
        self._timers.clear()
        if self._handler is not None:
            self._handler.reset()
        self._handler = None
        self._state = GameState()
        self._player_board.clear()
        self._opponent_board.clear()
        self._phases.reset()
        self._presentation.hide_aim_marker()
        self._presentation.hide_grid(Side.PLAYER)
        self._presentation.hide_grid(Side.OPPONENT)
        self._presentation.show_message("Sea Battle", "Choose a mode.")
        logger.info("session_reset epoch=%d cancelled_timers=%d", self._epoch, cancelled)

    # Shot resolution

    def process_opponent_shot(self, coord: Coord) -> ShotResult | None:
        """Resolve the single-player opponent's shot at the player's board."""
        state = self._state
        if state.mode is not GameMode.SINGLE or self._phases.phase is not GamePhase.PLAYING:
            logger.warning("opponent_shot_ignored phase=%s", self._phases.phase.value)
            return None
        if state.turn is not TurnState.OPPONENT:
            logger.warning("opponent_shot_out_of_turn turn=%s", state.turn.value)
            return None
        if not state.player_grid.in_bounds(coord) or not state.player_grid.is_unshot(coord):
            logger.warning("opponent_shot_invalid x=%d y=%d", coord.x, coord.y)
            return None

        result = self.resolve_incoming_shot(coord)
        if self.check_win():
            return result
        self._pace(TurnState.PLAYER, self._announce_player_turn)
        return result

    def resolve_incoming_shot(self, coord: Coord) -> ShotResult:
        """Evaluate a shot at the player's own board and show it."""
        state = self._state
        result = self._player_board.evaluate_shot(coord, state.player_grid)
        state.opponent_hits = state.player_grid.hit_count()
        state.turn_number += 1
        self._show_cells(Side.PLAYER, state.player_grid, coord, result)
        logger.info(
            "incoming_shot x=%d y=%d result=%s opponent_hits=%d",
            coord.x,
            coord.y,
            result.value,
            state.opponent_hits,
        )
        return result

    def apply_outgoing_result(self, coord: Coord, result: ShotResult) -> None:
        """Record the defender's verdict on the player's earlier shot."""
        state = self._state
        ships = state.opponent_ships or None
        apply_reported_result(state.opponent_grid, coord, result, ships)
        state.player_hits = state.opponent_grid.hit_count()
        self._show_cells(Side.OPPONENT, state.opponent_grid, coord, result)
        logger.info(
            "outgoing_result x=%d y=%d result=%s player_hits=%d",
            coord.x,
            coord.y,
            result.value,
            state.player_hits,
        )

    def check_win(self) -> bool:
        """End the game if either side has sunk the whole fleet."""
        state = self._state
        if state.winner is not None:
            return True
        if check_win(state.player_hits, state.total_object_cells):
            return self.end_game(Side.PLAYER)
        if check_win(state.opponent_hits, state.total_object_cells):
            return self.end_game(Side.OPPONENT)
        return False

    def end_game(self, winner: Side) -> bool:
        """Finish the session. Returns False if it had already ended."""
        state = self._state
        if state.winner is not None:
            return False
        state.winner = winner
        state.turn = TurnState.WAITING
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
        if not self.enter_phase(GamePhase.GAMEOVER):
            self._phases.restore(GamePhase.GAMEOVER)
            state.phase = GamePhase.GAMEOVER
        self._presentation.hide_aim_marker()
        if winner is Side.PLAYER:
            self._presentation.show_message("Victory!", "All enemy ships destroyed.")
        else:
            self._presentation.show_message("Defeat", "Your fleet has been sunk.")
        logger.info(
            "game_over winner=%s player_hits=%d opponent_hits=%d turns=%d",
            winner.value,
            state.player_hits,
            state.opponent_hits,
            state.turn_number,
        )
        if self._handler is not None:
            self._handler.notify_game_over(winner)
        return True

    # Host primitives for the multiplayer adapter

    def enter_phase(self, phase: GamePhase) -> bool:
        if self._phases.phase is phase and phase is not GamePhase.CONFIRM_SEND:
            return True
        if not self._phases.enter(phase, self._state.mode):
            logger.warning(
                "phase_rejected source=%s target=%s mode=%s",
                self._phases.phase.value,
                phase.value,
                self._mode_name(),
            )
            return False
        self._state.phase = phase
        if phase is GamePhase.AIMING:
            self._state.turn = TurnState.PLAYER
            self._presentation.show_grid(Side.OPPONENT)
        elif phase is GamePhase.WAITING:
            self._state.turn = TurnState.OPPONENT if self._state.setup_complete else TurnState.WAITING
        elif phase in _SETUP_PHASES:
            if not self._state.player_ships:
                self._install_player_fleet(self._generate_fleet())
            self._presentation.show_grid(Side.PLAYER)
        logger.debug("phase_entered phase=%s", phase.value)
        return True

    def load_opponent_fleet(self, ships: list[ShipInfo]) -> None:
        self._opponent_board.load_fleet(ships)
        self._opponent_board.restore_damage(self._state.opponent_grid)
        self._state.opponent_ships = self._opponent_board.ships

    def restore_boards(
        self,
        *,
        player_ships: list[ShipInfo] | None,
        player_grid: Grid | None,
        opponent_view: Grid | None,
        opponent_ships: list[ShipInfo] | None,
    ) -> None:
        """Rebuild boards from persisted records."""
        state = self._state
        state.player_grid = player_grid.copy() if player_grid is not None else Grid()
        state.opponent_grid = opponent_view.copy() if opponent_view is not None else Grid()
        if player_ships:
            self._player_board.load_fleet(player_ships)
            self._player_board.mark_objects(state.player_grid)
            self._player_board.restore_damage(state.player_grid)
            state.player_ships = self._player_board.ships
            state.setup_complete = True
        else:
            self._player_board.clear()
            state.player_ships = []
            state.setup_complete = False
        if opponent_ships:
            self.load_opponent_fleet(opponent_ships)
        state.player_hits = state.opponent_grid.hit_count()
        state.opponent_hits = state.player_grid.hit_count()
        state.turn_number = state.player_grid.shot_count() + state.opponent_grid.shot_count()
        self._redraw()

    # Internals

    def _start_single_player_battle(self) -> None:
        self._opponent_board.load_fleet(self._generate_fleet())
        self._state.opponent_ships = self._opponent_board.ships
        self._state.opponent_grid.clear()
        self.enter_phase(GamePhase.PLAYING)
        self._state.turn = TurnState.WAITING
        self._presentation.show_grid(Side.OPPONENT)
        epoch = self._epoch

        def _on_transition_done() -> None:
            if epoch != self._epoch or self._state.winner is not None:
                return
            self._state.turn = TurnState.PLAYER
            self._announce_player_turn()

        self._presentation.play_transition("battle_start", _on_transition_done)

    def _fire_single_player(self, coord: Coord) -> ActionResult:
        state = self._state
        result = self._opponent_board.evaluate_shot(coord, state.opponent_grid)
        state.player_hits = state.opponent_grid.hit_count()
        state.turn_number += 1
        self._show_cells(Side.OPPONENT, state.opponent_grid, coord, result)
        logger.info(
            "player_shot x=%d y=%d result=%s player_hits=%d",
            coord.x,
            coord.y,
            result.value,
            state.player_hits,
        )
        if self._handler is not None:
            self._handler.notify_shot_complete(coord, result)
        if not self.check_win():
            self._pace(TurnState.OPPONENT, self._begin_opponent_turn)
        return ActionResult.ok(f"Shot at ({coord.x}, {coord.y}): {result.value}.", shot_result=result)

    def _tap_rejection(self, coord: Coord) -> RejectReason | None:
        state = self._state
        phase = self._phases.phase
        if phase is GamePhase.GAMEOVER or state.winner is not None:
            return RejectReason.GAME_OVER
        if not state.opponent_grid.in_bounds(coord):
            return RejectReason.OUT_OF_BOUNDS
        if state.mode is GameMode.MULTIPLAYER:
            if phase not in _MULTIPLAYER_AIM_PHASES:
                return RejectReason.WRONG_PHASE
        elif phase is not GamePhase.PLAYING:
            return RejectReason.WRONG_PHASE
        if state.turn is not TurnState.PLAYER:
            return RejectReason.NOT_YOUR_TURN
        if not is_valid_target(state.opponent_grid, coord):
            return RejectReason.ALREADY_RESOLVED
        return None

    def _pace(self, next_turn: TurnState, then: Callable[[], None]) -> None:
        """Hold the turn in ``waiting`` for the pacing delay, then hand it over."""
        self._state.turn = TurnState.WAITING

        def _flip() -> None:
            if self._state.winner is not None:
                return
            self._state.turn = next_turn
            then()

        self._schedule(self._config.turn_delay_seconds, _flip)

    def _schedule(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        if delay_seconds <= 0.0:
            callback()
            return
        epoch = self._epoch

        def _run() -> None:
            if epoch == self._epoch:
                callback()

        self._timers = [handle for handle in self._timers if handle.pending]
        self._timers.append(self._scheduler.call_later(delay_seconds, _run))

    def _begin_opponent_turn(self) -> None:
        self._presentation.show_message("Opponent's turn", "")
        if self._handler is not None:
            self._handler.begin_opponent_turn()

    def _announce_player_turn(self) -> None:
        self._presentation.show_message("Your turn", "Tap a cell on the enemy grid.")

    def _generate_fleet(self) -> list[ShipInfo]:
        return generate_fleet(
            self._rng,
            max_trials=self._config.placement_max_trials,
            board_attempts=self._config.placement_board_attempts,
        )

    def _install_player_fleet(self, ships: list[ShipInfo]) -> None:
        self._player_board.load_fleet(ships)
        self._state.player_ships = self._player_board.ships
        self._state.player_grid.clear()
        self._player_board.mark_objects(self._state.player_grid)

    def _show_cells(self, which: Side, grid: Grid, coord: Coord, result: ShotResult) -> None:
        if result is ShotResult.DESTROYED:
            for cell in grid.cells_in(CellState.DESTROYED):
                self._presentation.set_cell_visual(which, cell.x, cell.y, CellMark.HIT)
            return
        self._presentation.set_cell_visual(which, coord.x, coord.y, CellMark.for_result(result))

    def _redraw(self) -> None:
        for which, grid in ((Side.PLAYER, self._state.player_grid), (Side.OPPONENT, self._state.opponent_grid)):
            for cell in grid.cells_in(CellState.EMPTY):
                self._presentation.set_cell_visual(which, cell.x, cell.y, CellMark.MISS)
            for state in (CellState.HIT, CellState.DESTROYED):
                for cell in grid.cells_in(state):
                    self._presentation.set_cell_visual(which, cell.x, cell.y, CellMark.HIT)

    def _multiplayer_handler(self) -> MultiplayerTurnHandler:
        handler = self._handler
        if not isinstance(handler, MultiplayerTurnHandler):
            raise RuntimeError("multiplayer action without a multiplayer turn handler")
        return handler

    def _reject(self, reason: RejectReason, message: str) -> ActionResult:
        self._presentation.show_message(message, "")
        logger.debug("action_rejected reason=%s phase=%s", reason.value, self._phases.phase.value)
        return ActionResult.rejected(reason, message)

    def _mode_name(self) -> str:
        return self._state.mode.value if self._state.mode is not None else "none"


_REJECT_MESSAGES: dict[RejectReason, str] = {
    RejectReason.WRONG_PHASE: "You can't fire right now.",
    RejectReason.NOT_YOUR_TURN: "Wait for your turn.",
    RejectReason.OUT_OF_BOUNDS: "That cell is off the grid.",
    RejectReason.ALREADY_RESOLVED: "You already fired at that cell.",
    RejectReason.GAME_OVER: "The game is over.",
}
