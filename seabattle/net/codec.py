"""Turn payload and persisted record codecs.

Decoders in this module are tolerant: malformed or missing fields decode as
absent and nothing here raises on bad wire data.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from seabattle.core.models import (
    GRID_SIZE,
    Coord,
    ShipPosition,
    ShotHistoryEntry,
    ShotResult,
    Side,
)
from seabattle.infra.json_codec import dumps_text, loads

logger = logging.getLogger(__name__)

KEY_SHOT_X = "shotX"
KEY_SHOT_Y = "shotY"
KEY_INCOMING_RESULT = "incomingShotResult"
KEY_SHIP_POSITIONS = "shipPositions"
KEY_IS_GAME_OVER = "isGameOver"
KEY_WINNER = "winner"
KEY_HITS_COUNT = "hitsCount"


@dataclass(frozen=True, slots=True)
class TurnPayload:
    """One player's turn variables.

    ``winner`` is from the sender's perspective: ``Side.PLAYER`` means the
    sender won.
    """

    shot: Coord | None = None
    incoming_result: ShotResult | None = None
    ship_positions: tuple[ShipPosition, ...] | None = None
    is_game_over: bool = False
    winner: Side | None = None
    hits_count: int | None = None


def encode_turn_payload(payload: TurnPayload) -> dict[str, Any]:
    """Encode a payload as turn-channel variables; absent fields are omitted."""
    variables: dict[str, Any] = {KEY_IS_GAME_OVER: bool(payload.is_game_over)}
    if payload.shot is not None:
        variables[KEY_SHOT_X] = payload.shot.x
        variables[KEY_SHOT_Y] = payload.shot.y
    if payload.incoming_result is not None:
        variables[KEY_INCOMING_RESULT] = payload.incoming_result.value
    if payload.ship_positions:
        variables[KEY_SHIP_POSITIONS] = dumps_text(encode_positions(payload.ship_positions))
    if payload.winner is not None:
        variables[KEY_WINNER] = payload.winner.value
    if payload.hits_count is not None:
        variables[KEY_HITS_COUNT] = int(payload.hits_count)
    return variables


def decode_turn_payload(variables: Mapping[str, Any] | None, *, size: int = GRID_SIZE) -> TurnPayload:
    """Decode turn-channel variables; never raises."""
    if not isinstance(variables, Mapping):
        return TurnPayload()
    shot = _decode_shot(variables.get(KEY_SHOT_X), variables.get(KEY_SHOT_Y), size)
    incoming = decode_result(variables.get(KEY_INCOMING_RESULT))
    positions = _decode_ship_field(variables.get(KEY_SHIP_POSITIONS), size)
    winner_raw = variables.get(KEY_WINNER)
    try:
        winner = Side(winner_raw) if isinstance(winner_raw, str) else None
    except ValueError:
        winner = None
    return TurnPayload(
        shot=shot,
        incoming_result=incoming,
        ship_positions=positions,
        is_game_over=variables.get(KEY_IS_GAME_OVER) is True,
        winner=winner,
        hits_count=_as_int(variables.get(KEY_HITS_COUNT)),
    )


def decode_result(raw: object) -> ShotResult | None:
    if not isinstance(raw, str):
        return None
    try:
        return ShotResult(raw)
    except ValueError:
        return None


def encode_coord(coord: Coord) -> dict[str, int]:
    return {"x": coord.x, "y": coord.y}


def decode_coord(raw: object, *, size: int = GRID_SIZE) -> Coord | None:
    if not isinstance(raw, Mapping):
        return None
    return _decode_shot(raw.get("x"), raw.get("y"), size)


def encode_positions(positions: tuple[ShipPosition, ...] | list[ShipPosition]) -> list[dict[str, Any]]:
    return [
        {"x": pos.x, "y": pos.y, "length": pos.length, "horizontal": pos.horizontal}
        for pos in positions
    ]


def decode_positions(raw: object, *, size: int = GRID_SIZE) -> tuple[ShipPosition, ...] | None:
    """Decode a list of ship positions; any malformed entry voids the list."""
    if not isinstance(raw, list) or not raw:
        return None
    positions: list[ShipPosition] = []
    for item in raw:
        if not isinstance(item, Mapping):
            return None
        x = _as_int(item.get("x"))
        y = _as_int(item.get("y"))
        length = _as_int(item.get("length"))
        horizontal = item.get("horizontal")
        if x is None or y is None or length is None or not isinstance(horizontal, bool):
            return None
        if not (0 <= x < size and 0 <= y < size and 1 <= length <= size):
            return None
        positions.append(ShipPosition(x, y, length, horizontal))
    return tuple(positions)


def encode_history(entries: list[ShotHistoryEntry]) -> list[dict[str, Any]]:
    return [{"x": entry.x, "y": entry.y, "result": entry.result.value} for entry in entries]


def decode_history(raw: object, *, size: int = GRID_SIZE) -> list[ShotHistoryEntry]:
    """Decode a shot history, skipping malformed entries."""
    if not isinstance(raw, list):
        return []
    entries: list[ShotHistoryEntry] = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        coord = _decode_shot(item.get("x"), item.get("y"), size)
        result = decode_result(item.get("result"))
        if coord is None or result is None:
            continue
        entries.append(ShotHistoryEntry(coord.x, coord.y, result))
    return entries


def _decode_ship_field(raw: object, size: int) -> tuple[ShipPosition, ...] | None:
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        try:
            raw = loads(raw)
        except ValueError:
            logger.warning("payload_ship_positions_undecodable length=%d", len(raw))
            return None
    return decode_positions(raw, size=size)


def _decode_shot(raw_x: object, raw_y: object, size: int) -> Coord | None:
    x = _as_int(raw_x)
    y = _as_int(raw_y)
    if x is None or y is None:
        return None
    coord = Coord(x, y)
    if not coord.in_bounds(size):
        logger.debug("payload_shot_out_of_bounds x=%d y=%d", x, y)
        return None
    return coord


def _as_int(raw: object) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    return None
