from __future__ import annotations

import orjson
import pytest

from seabattle.core.fleet import FALLBACK_LAYOUT
from seabattle.core.models import Coord, ShotHistoryEntry, ShotResult, Side
from seabattle.net.codec import (
    TurnPayload,
    decode_history,
    decode_positions,
    decode_turn_payload,
    encode_history,
    encode_turn_payload,
)


def test_decode_shot_and_incoming_result() -> None:
    payload = decode_turn_payload({"shotX": 3, "shotY": 7, "incomingShotResult": "hit"})
    assert payload.shot == Coord(3, 7)
    assert payload.incoming_result is ShotResult.HIT
    assert payload.ship_positions is None
    assert payload.is_game_over is False
    assert payload.winner is None


def test_fleet_round_trips_through_json_string() -> None:
    variables = encode_turn_payload(TurnPayload(shot=Coord(0, 9), ship_positions=FALLBACK_LAYOUT))
    assert isinstance(variables["shipPositions"], str)
    decoded = decode_turn_payload(variables)
    assert decoded.ship_positions == FALLBACK_LAYOUT
    assert decoded.shot == Coord(0, 9)


def test_encode_omits_absent_fields() -> None:
    variables = encode_turn_payload(
        TurnPayload(incoming_result=ShotResult.DESTROYED, is_game_over=True, winner=Side.OPPONENT, hits_count=12)
    )
    assert variables == {
        "isGameOver": True,
        "incomingShotResult": "destroyed",
        "winner": "opponent",
        "hitsCount": 12,
    }


@pytest.mark.parametrize(
    "variables",
    [
        None,
        "garbage",
        {},
        {"shotX": "3", "shotY": 7},
        {"shotX": 3},
        {"shotX": 10, "shotY": 0},
        {"shotX": -1, "shotY": 0},
        {"shotX": True, "shotY": 1},
        {"shotX": 1.5, "shotY": 1},
    ],
)
def test_undecodable_shot_is_dropped(variables) -> None:
    assert decode_turn_payload(variables).shot is None


def test_integral_floats_are_accepted() -> None:
    assert decode_turn_payload({"shotX": 2.0, "shotY": 4.0}).shot == Coord(2, 4)


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        '[{"x": 0, "y": 0, "length": 4}]',
        '[{"x": 0, "y": 0, "length": 9, "horizontal": "yes"}]',
        '{"x": 0}',
        orjson.dumps([{"x": 12, "y": 0, "length": 1, "horizontal": True}]).decode(),
    ],
)
def test_malformed_ship_positions_are_absent(raw: str) -> None:
    payload = decode_turn_payload({"shotX": 1, "shotY": 1, "shipPositions": raw})
    assert payload.ship_positions is None
    assert payload.shot == Coord(1, 1)


def test_unknown_result_and_winner_are_absent() -> None:
    payload = decode_turn_payload({"incomingShotResult": "sunk", "winner": "nobody", "isGameOver": "yes"})
    assert payload.incoming_result is None
    assert payload.winner is None
    assert payload.is_game_over is False
    assert payload.shot is None


def test_positions_accept_decoded_lists() -> None:
    raw = [{"x": 1, "y": 2, "length": 3, "horizontal": False}]
    assert decode_positions(raw)[0].cells() == [Coord(1, 2), Coord(1, 3), Coord(1, 4)]


def test_history_skips_bad_entries() -> None:
    entries = [ShotHistoryEntry(1, 2, ShotResult.MISS), ShotHistoryEntry(3, 4, ShotResult.DESTROYED)]
    raw = encode_history(entries) + [{"x": 1}, "junk", {"x": 0, "y": 0, "result": "bogus"}]
    assert decode_history(raw) == entries
    assert decode_history("nope") == []
