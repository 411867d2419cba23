"""Turn protocol adapter: bridges the turn channel and durable store to the orchestrator.

Shots are never judged by the sender. Each side evaluates the shot fired at it
against its own board and reports the verdict in its next turn payload.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from seabattle.app.game_state import ActionResult, GameState, RejectReason
from seabattle.app.ports import MultiplayerHost
from seabattle.core.fleet import validate_fleet
from seabattle.core.models import (
    CellState,
    Coord,
    GamePhase,
    ShipInfo,
    ShipPosition,
    ShotHistoryEntry,
    ShotResult,
    Side,
    positions_from_ships,
    ships_from_positions,
)
from seabattle.core.rules import check_win, is_valid_target
from seabattle.net.channel import ChannelError, TurnChannel, TurnStartEvent
from seabattle.net.codec import TurnPayload, decode_coord, decode_turn_payload, encode_turn_payload
from seabattle.net.persistence import RecordKey, SessionSnapshot, encode_record, load_snapshot, save_records
from seabattle.net.store import DurableStore, StoreReply

logger = logging.getLogger(__name__)

_GRID_RESULTS: dict[CellState, ShotResult] = {
    CellState.EMPTY: ShotResult.MISS,
    CellState.HIT: ShotResult.HIT,
    CellState.DESTROYED: ShotResult.DESTROYED,
}


@dataclass(slots=True)
class MultiplayerState:
    """Adapter-owned protocol state; the durable subset is mirrored per player index."""

    player_index: int = 0
    turn_count: int = 0
    pending_shot: Coord | None = None
    selected_aim: Coord | None = None
    opponent_ship_positions: list[ShipPosition] | None = None
    our_ship_positions: list[ShipPosition] | None = None
    has_sent_first_turn: bool = False
    previous_shot_result: ShotResult | None = None
    last_sent_aim: Coord | None = None
    incoming_result: ShotResult | None = None
    awaiting_turn: bool = True
    final_turn_sent: bool = False
    outgoing_shots: list[ShotHistoryEntry] = field(default_factory=list)
    incoming_shots: list[ShotHistoryEntry] = field(default_factory=list)

    @property
    def opponent_index(self) -> int:
        return 1 - self.player_index


class TurnProtocolAdapter:
    """Multiplayer turn handler over a ``TurnChannel`` and a ``DurableStore``."""

    def __init__(
        self,
        host: MultiplayerHost,
        channel: TurnChannel,
        store: DurableStore,
        *,
        player_index: int | None = None,
    ) -> None:
        if player_index not in (None, 0, 1):
            raise ValueError("player_index must be 0 or 1")
        self._configured_index = player_index
        self._host = host
        self._channel = channel
        self._store = store
        self._mp = MultiplayerState(player_index=player_index or 0)
        self._epoch = 0
        self._detached = False
        channel.on_turn_start(self.on_turn_start)
        channel.on_game_over(self._on_channel_game_over)
        channel.on_error(self._on_channel_error)

    @property
    def state(self) -> MultiplayerState:
        return self._mp

    # TurnHandler

    def begin_opponent_turn(self) -> None:
        logger.debug("awaiting_opponent index=%d", self._mp.player_index)

    def notify_shot_complete(self, coord: Coord, result: ShotResult) -> None:
        logger.debug("shot_complete index=%d x=%d y=%d result=%s", self._mp.player_index, coord.x, coord.y, result)

    def notify_game_over(self, winner: Side) -> None:
        mp = self._mp
        if winner is not Side.OPPONENT or mp.final_turn_sent or mp.awaiting_turn:
            return
        # The losing side closes the game with its verdict on the last shot.
        payload = TurnPayload(
            incoming_result=mp.incoming_result,
            is_game_over=True,
            winner=Side.OPPONENT,
            hits_count=self._host.state.player_hits,
        )
        self._send(payload, final=True)
        mp.final_turn_sent = True
        logger.info("final_turn_sent index=%d", mp.player_index)

    def reset(self) -> None:
        self._epoch += 1
        self._detached = True
        self._mp = MultiplayerState(player_index=self._mp.player_index)

    # Channel callbacks

    def on_turn_start(self, event: TurnStartEvent) -> None:
        if self._detached:
            return
        self._adopt_player_index(event.current_user_index)
        mp = self._mp
        state = self._host.state
        mp.turn_count = event.turn_count
        mp.awaiting_turn = False
        logger.info(
            "turn_start index=%d turn_count=%d keys=%s",
            mp.player_index,
            event.turn_count,
            ",".join(sorted(event.previous_turn_variables or {})),
        )
        if state.winner is not None:
            return

        if event.turn_count == 0:
            if state.setup_complete:
                self._host.enter_phase(GamePhase.AIMING)
            else:
                self._host.enter_phase(GamePhase.SETUP)
                self._host.presentation.show_message("Place your fleet", "You fire first.")
            return

        payload = decode_turn_payload(event.previous_turn_variables)
        if payload.ship_positions and mp.opponent_ship_positions is None:
            self._store_opponent_fleet(list(payload.ship_positions))
        if payload.incoming_result is not None:
            self._apply_reported_result(payload.incoming_result)
        if payload.is_game_over:
            # Payload winner is from the sender's side.
            winner = payload.winner.other if payload.winner is not None else Side.PLAYER
            logger.info("opponent_reported_game_over index=%d winner=%s", mp.player_index, winner.value)
            self._host.end_game(winner)
            return
        if check_win(state.player_hits, state.total_object_cells):
            self._host.end_game(Side.PLAYER)
            return

        epoch = self._epoch
        self._store.get_user_variable(
            mp.player_index,
            RecordKey.PENDING_SHOT.value,
            lambda reply: self._reconcile_pending_shot(epoch, payload.shot, reply),
        )

    def _adopt_player_index(self, index: int) -> None:
        """Records are keyed by the index the channel reports, not the configured one."""
        mp = self._mp
        if index not in (0, 1) or index == mp.player_index:
            return
        if self._configured_index is not None:
            logger.warning(
                "player_index_mismatch configured=%d channel=%d", self._configured_index, index
            )
        else:
            logger.info("player_index_adopted index=%d", index)
        mp.player_index = index

    def _on_channel_game_over(self) -> None:
        logger.info("channel_game_over index=%d", self._mp.player_index)

    def _on_channel_error(self, error: ChannelError) -> None:
        logger.warning(
            "channel_error index=%d code=%s description=%s",
            self._mp.player_index,
            error.code,
            error.description,
        )

    # Orchestrator-driven operations

    def on_fleet_confirmed(self) -> None:
        mp = self._mp
        state = self._host.state
        mp.our_ship_positions = positions_from_ships(state.player_ships)
        self._persist(
            {
                RecordKey.FLEET: mp.our_ship_positions,
                RecordKey.OWN_GRID: state.player_grid,
            }
        )
        if mp.pending_shot is not None:
            self.evaluate_pending_shot()
            if state.winner is not None:
                return
        self._host.enter_phase(GamePhase.AIMING)
        self._host.presentation.show_message("Choose a target", "Tap a cell on the enemy grid.")

    def select_aim(self, coord: Coord) -> ActionResult:
        state = self._host.state
        if state.phase not in (GamePhase.AIMING, GamePhase.CONFIRM_SEND):
            return self._rejected(RejectReason.WRONG_PHASE, "You can't aim right now.")
        if self._mp.awaiting_turn:
            return self._rejected(RejectReason.NOT_YOUR_TURN, "Wait for your turn.")
        if not state.opponent_grid.in_bounds(coord):
            return self._rejected(RejectReason.OUT_OF_BOUNDS, "That cell is off the grid.")
        if not is_valid_target(state.opponent_grid, coord):
            return self._rejected(RejectReason.ALREADY_RESOLVED, "You already fired at that cell.")
        self._mp.selected_aim = coord
        self._host.presentation.show_aim_marker(coord.x, coord.y)
        self._host.enter_phase(GamePhase.CONFIRM_SEND)
        self._host.presentation.show_message("Fire?", "Confirm to send your shot.")
        return ActionResult.ok(f"Aiming at ({coord.x}, {coord.y}).")

    def cancel_aim(self) -> ActionResult:
        if self._mp.selected_aim is None:
            return self._rejected(RejectReason.NO_AIM, "No target selected.")
        self._mp.selected_aim = None
        self._host.presentation.hide_aim_marker()
        self._host.enter_phase(GamePhase.AIMING)
        return ActionResult.ok("Aim cleared.")

    def submit_selected_aim(self) -> ActionResult:
        mp = self._mp
        state = self._host.state
        aim = mp.selected_aim
        if aim is None or state.phase is not GamePhase.CONFIRM_SEND:
            return self._rejected(RejectReason.NO_AIM, "Select a target first.")
        if mp.awaiting_turn:
            return self._rejected(RejectReason.NOT_YOUR_TURN, "Your shot is already on its way.")

        first_turn = not mp.has_sent_first_turn
        payload = TurnPayload(
            shot=aim,
            incoming_result=mp.incoming_result,
            ship_positions=tuple(mp.our_ship_positions or ()) if first_turn else None,
            hits_count=state.player_hits,
        )
        # Redundant copy for the receiver; its durable store wins over the payload.
        self._store.set_user_variable(
            mp.opponent_index,
            RecordKey.PENDING_SHOT.value,
            encode_record(RecordKey.PENDING_SHOT, aim),
            self._log_store_failure(RecordKey.PENDING_SHOT),
        )
        mp.last_sent_aim = aim
        mp.has_sent_first_turn = True
        mp.selected_aim = None
        mp.incoming_result = None
        self._persist(
            {
                RecordKey.LAST_SENT_AIM: aim,
                RecordKey.HAS_SENT_FIRST_TURN: True,
            }
        )
        self._host.presentation.hide_aim_marker()
        self._host.enter_phase(GamePhase.WAITING)
        self._host.presentation.show_message("Shot sent", "Waiting for opponent.")
        logger.info("aim_submitted index=%d x=%d y=%d first_turn=%s", mp.player_index, aim.x, aim.y, first_turn)
        self._send(payload, final=False)
        return ActionResult.ok(f"Fired at ({aim.x}, {aim.y}).")

    def evaluate_pending_shot(self) -> ShotResult | None:
        """Resolve the opponent's pending shot against our own board."""
        mp = self._mp
        state = self._host.state
        shot = mp.pending_shot
        if shot is None:
            return None

        result = self._known_incoming_result(shot)
        if result is not None:
            logger.info("pending_shot_already_resolved index=%d x=%d y=%d result=%s", mp.player_index, shot.x, shot.y, result)
        else:
            result = self._host.resolve_incoming_shot(shot)
            mp.incoming_shots.append(ShotHistoryEntry(shot.x, shot.y, result))
        mp.incoming_result = result
        mp.pending_shot = None
        self._persist(
            {
                RecordKey.OWN_GRID: state.player_grid,
                RecordKey.INCOMING_SHOTS: mp.incoming_shots,
                RecordKey.PENDING_SHOT: None,
            }
        )
        if check_win(state.opponent_hits, state.total_object_cells):
            self._host.end_game(Side.OPPONENT)
        return result

    def resume(self, player_index: int, on_done: Callable[[bool], None] | None = None) -> None:
        """Reload this player's records and rebuild the session from them."""
        if player_index not in (0, 1):
            raise ValueError("player_index must be 0 or 1")
        self._configured_index = player_index
        self._mp.player_index = player_index
        epoch = self._epoch
        load_snapshot(
            self._store,
            player_index,
            lambda snapshot, errors: self._apply_snapshot(epoch, snapshot, on_done),
        )

    # Internals

    def _reconcile_pending_shot(self, epoch: int, payload_shot: Coord | None, reply: StoreReply) -> None:
        if epoch != self._epoch or self._detached:
            logger.debug("stale_store_reply index=%d", self._mp.player_index)
            return
        mp = self._mp
        durable: Coord | None = None
        if reply.ok:
            durable = decode_coord(reply.value)
        else:
            logger.warning("pending_shot_read_failed index=%d error=%s", mp.player_index, reply.error)

        shot = payload_shot
        if durable is not None:
            if payload_shot is not None and payload_shot != durable:
                logger.warning(
                    "pending_shot_mismatch index=%d payload=%d,%d durable=%d,%d",
                    mp.player_index,
                    payload_shot.x,
                    payload_shot.y,
                    durable.x,
                    durable.y,
                )
            shot = durable
        mp.pending_shot = shot
        if shot is not None:
            self._persist({RecordKey.PENDING_SHOT: shot})
        self._continue_turn()

    def _continue_turn(self) -> None:
        mp = self._mp
        state = self._host.state
        if not state.setup_complete:
            target = GamePhase.SETUP_PENDING if mp.pending_shot is not None else GamePhase.SETUP
            self._host.enter_phase(target)
            self._host.presentation.show_message("Place your fleet", "Your opponent is ready.")
            return
        if mp.pending_shot is not None:
            self.evaluate_pending_shot()
            if state.winner is not None:
                return
        self._host.enter_phase(GamePhase.AIMING)
        self._host.presentation.show_message("Your turn", "Tap a cell on the enemy grid.")

    def _store_opponent_fleet(self, positions: list[ShipPosition]) -> None:
        ships = ships_from_positions(positions)
        valid, reason = validate_fleet(ships)
        if not valid:
            logger.warning("opponent_fleet_invalid index=%d reason=%s", self._mp.player_index, reason)
            return
        self._mp.opponent_ship_positions = positions
        self._host.load_opponent_fleet(ships)
        self._persist({RecordKey.OPPONENT_FLEET: positions})
        logger.info("opponent_fleet_received index=%d ships=%d", self._mp.player_index, len(ships))

    def _apply_reported_result(self, result: ShotResult) -> None:
        mp = self._mp
        aim = mp.last_sent_aim
        if aim is None:
            logger.warning("reported_result_without_aim index=%d result=%s", mp.player_index, result)
            return
        if any(entry.coord == aim for entry in mp.outgoing_shots):
            logger.debug("reported_result_duplicate index=%d x=%d y=%d", mp.player_index, aim.x, aim.y)
            return
        self._host.apply_outgoing_result(aim, result)
        mp.outgoing_shots.append(ShotHistoryEntry(aim.x, aim.y, result))
        mp.previous_shot_result = result
        self._persist(
            {
                RecordKey.OPPONENT_VIEW: self._host.state.opponent_grid,
                RecordKey.OUTGOING_SHOTS: mp.outgoing_shots,
                RecordKey.LAST_SHOT_RESULT: result,
            }
        )

    def _known_incoming_result(self, shot: Coord) -> ShotResult | None:
        for entry in reversed(self._mp.incoming_shots):
            if entry.coord == shot:
                return entry.result
        grid = self._host.state.player_grid
        if grid.is_unshot(shot):
            return None
        return _GRID_RESULTS.get(grid.get(shot))

    def _apply_snapshot(
        self,
        epoch: int,
        snapshot: SessionSnapshot,
        on_done: Callable[[bool], None] | None,
    ) -> None:
        if epoch != self._epoch or self._detached:
            return
        mp = self._mp
        own_ships = self._checked_ships(snapshot.fleet, "fleet")
        opponent_ships = self._checked_ships(snapshot.opponent_fleet, "opponentFleet")
        self._host.restore_boards(
            player_ships=own_ships,
            player_grid=snapshot.own_grid if own_ships else None,
            opponent_view=snapshot.opponent_view,
            opponent_ships=opponent_ships,
        )
        mp.our_ship_positions = list(snapshot.fleet) if own_ships else None
        mp.opponent_ship_positions = list(snapshot.opponent_fleet) if opponent_ships else None
        mp.outgoing_shots = list(snapshot.outgoing_shots)
        mp.incoming_shots = list(snapshot.incoming_shots)
        mp.pending_shot = snapshot.pending_shot
        mp.previous_shot_result = snapshot.last_shot_result
        mp.last_sent_aim = snapshot.last_sent_aim
        mp.has_sent_first_turn = snapshot.has_sent_first_turn
        mp.incoming_result = mp.incoming_shots[-1].result if mp.incoming_shots else None
        mp.awaiting_turn = True
        logger.info(
            "session_resumed index=%d fleet=%s opponent_fleet=%s outgoing=%d incoming=%d",
            mp.player_index,
            own_ships is not None,
            opponent_ships is not None,
            len(mp.outgoing_shots),
            len(mp.incoming_shots),
        )

        state = self._host.state
        if own_ships is None:
            target = GamePhase.SETUP_PENDING if mp.pending_shot is not None else GamePhase.SETUP
            self._host.enter_phase(target)
            self._host.presentation.show_message("Place your ships", "No saved fleet was found.")
        elif not self._resume_finished(state):
            if opponent_ships is None:
                self._host.presentation.show_message("Waiting for opponent", "Opponent has not placed ships yet.")
            else:
                self._host.presentation.show_message("Waiting for opponent", "")
        if on_done is not None:
            on_done(own_ships is not None)

    def _resume_finished(self, state: GameState) -> bool:
        if check_win(state.player_hits, state.total_object_cells):
            return self._host.end_game(Side.PLAYER)
        if check_win(state.opponent_hits, state.total_object_cells):
            return self._host.end_game(Side.OPPONENT)
        return False

    def _checked_ships(self, positions: list[ShipPosition] | None, label: str) -> list[ShipInfo] | None:
        if not positions:
            return None
        ships = ships_from_positions(positions)
        valid, reason = validate_fleet(ships)
        if not valid:
            logger.warning("restored_fleet_invalid index=%d record=%s reason=%s", self._mp.player_index, label, reason)
            return None
        return ships

    def _send(self, payload: TurnPayload, *, final: bool) -> None:
        mp = self._mp
        for key, value in encode_turn_payload(payload).items():
            self._channel.set_turn_variable(key, value)
        if final:
            self._channel.set_is_final_turn(True)
        mp.awaiting_turn = True
        self._channel.end_turn()

    def _persist(self, records: dict[RecordKey, Any]) -> None:
        encoded = {key: encode_record(key, value) for key, value in records.items()}
        save_records(self._store, self._mp.player_index, encoded)

    def _rejected(self, reason: RejectReason, message: str) -> ActionResult:
        self._host.presentation.show_message(message, "")
        return ActionResult.rejected(reason, message)

    def _log_store_failure(self, key: RecordKey) -> Callable[[StoreReply], None]:
        index = self._mp.opponent_index

        def _callback(reply: StoreReply) -> None:
            if not reply.ok:
                logger.warning("redundant_write_failed index=%d key=%s error=%s", index, key, reply.error)

        return _callback
