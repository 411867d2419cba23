"""Per-player session records kept in the durable store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from seabattle.core.grid import Grid
from seabattle.core.models import GRID_SIZE, Coord, ShipPosition, ShotHistoryEntry, ShotResult
from seabattle.net.codec import (
    decode_coord,
    decode_history,
    decode_positions,
    decode_result,
    encode_coord,
    encode_history,
    encode_positions,
)
from seabattle.net.store import DurableStore, StoreReply, fetch_user_variables

logger = logging.getLogger(__name__)


class RecordKey(StrEnum):
    """User-variable keys, stored under the owning player's index."""

    FLEET = "fleet"
    OWN_GRID = "ownGrid"
    OPPONENT_VIEW = "opponentView"
    OUTGOING_SHOTS = "outgoingShots"
    INCOMING_SHOTS = "incomingShots"
    PENDING_SHOT = "pendingShot"
    LAST_SHOT_RESULT = "lastShotResult"
    OPPONENT_FLEET = "opponentFleet"
    LAST_SENT_AIM = "lastSentAim"
    HAS_SENT_FIRST_TURN = "hasSentFirstTurn"


@dataclass(slots=True)
class SessionSnapshot:
    """Everything one player needs to resume a multiplayer session."""

    fleet: list[ShipPosition] | None = None
    own_grid: Grid | None = None
    opponent_view: Grid | None = None
    outgoing_shots: list[ShotHistoryEntry] = field(default_factory=list)
    incoming_shots: list[ShotHistoryEntry] = field(default_factory=list)
    pending_shot: Coord | None = None
    last_shot_result: ShotResult | None = None
    opponent_fleet: list[ShipPosition] | None = None
    last_sent_aim: Coord | None = None
    has_sent_first_turn: bool = False

    @property
    def has_fleet(self) -> bool:
        return bool(self.fleet)

    @property
    def has_opponent_fleet(self) -> bool:
        return bool(self.opponent_fleet)


def encode_record(key: RecordKey, value: Any) -> Any:
    """Encode one record value; ``None`` clears the record."""
    if value is None:
        return None
    match key:
        case RecordKey.FLEET | RecordKey.OPPONENT_FLEET:
            return encode_positions(value)
        case RecordKey.OWN_GRID | RecordKey.OPPONENT_VIEW:
            return value.to_rows()
        case RecordKey.OUTGOING_SHOTS | RecordKey.INCOMING_SHOTS:
            return encode_history(value)
        case RecordKey.PENDING_SHOT | RecordKey.LAST_SENT_AIM:
            return encode_coord(value)
        case RecordKey.LAST_SHOT_RESULT:
            return ShotResult(value).value
        case RecordKey.HAS_SENT_FIRST_TURN:
            return bool(value)
    raise ValueError(f"unknown record key: {key}")


def decode_snapshot(values: Mapping[str, Any]) -> SessionSnapshot:
    """Decode fetched records into a snapshot; bad records decode as absent."""
    fleet = decode_positions(values.get(RecordKey.FLEET))
    opponent_fleet = decode_positions(values.get(RecordKey.OPPONENT_FLEET))
    return SessionSnapshot(
        fleet=list(fleet) if fleet else None,
        own_grid=_decode_grid(RecordKey.OWN_GRID, values.get(RecordKey.OWN_GRID)),
        opponent_view=_decode_grid(RecordKey.OPPONENT_VIEW, values.get(RecordKey.OPPONENT_VIEW)),
        outgoing_shots=decode_history(values.get(RecordKey.OUTGOING_SHOTS)),
        incoming_shots=decode_history(values.get(RecordKey.INCOMING_SHOTS)),
        pending_shot=decode_coord(values.get(RecordKey.PENDING_SHOT)),
        last_shot_result=decode_result(values.get(RecordKey.LAST_SHOT_RESULT)),
        opponent_fleet=list(opponent_fleet) if opponent_fleet else None,
        last_sent_aim=decode_coord(values.get(RecordKey.LAST_SENT_AIM)),
        has_sent_first_turn=values.get(RecordKey.HAS_SENT_FIRST_TURN) is True,
    )


def save_records(store: DurableStore, index: int, records: Mapping[RecordKey, Any]) -> None:
    """Write already-encoded records; failures are logged by the callback."""
    for key, value in records.items():
        store.set_user_variable(index, key.value, value, _log_failure(index, key))


def load_snapshot(
    store: DurableStore,
    index: int,
    on_done: Callable[[SessionSnapshot, dict[str, str]], None],
) -> None:
    """Fetch every record for ``index`` and decode them into a snapshot."""

    def _decode(values: dict[str, Any], errors: dict[str, str]) -> None:
        for key, error in errors.items():
            logger.warning("record_load_failed index=%d key=%s error=%s", index, key, error)
        on_done(decode_snapshot(values), errors)

    fetch_user_variables(store, index, [key.value for key in RecordKey], _decode)


def _decode_grid(key: RecordKey, raw: object) -> Grid | None:
    if raw is None:
        return None
    try:
        grid = Grid.from_rows(raw)  # type: ignore[arg-type]
    except (ValueError, TypeError) as exc:
        logger.warning("record_grid_invalid key=%s error=%s", key, exc)
        return None
    if grid.size != GRID_SIZE:
        logger.warning("record_grid_invalid key=%s error=size %d != %d", key, grid.size, GRID_SIZE)
        return None
    return grid


def _log_failure(index: int, key: RecordKey) -> Callable[[StoreReply], None]:
    def _callback(reply: StoreReply) -> None:
        if not reply.ok:
            logger.warning("record_save_failed index=%d key=%s error=%s", index, key, reply.error)

    return _callback
