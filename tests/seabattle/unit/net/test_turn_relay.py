from __future__ import annotations

from seabattle.net.channel import ERROR_GAME_OVER, ERROR_NOT_YOUR_TURN, ChannelError, LocalTurnRelay, TurnStartEvent
from seabattle.runtime.scheduler import Scheduler


def _record(relay: LocalTurnRelay) -> dict[str, list]:
    seen: dict[str, list] = {"turns0": [], "turns1": [], "errors0": [], "errors1": [], "over": []}
    for index in (0, 1):
        endpoint = relay.endpoint(index)
        endpoint.on_turn_start(seen[f"turns{index}"].append)
        endpoint.on_error(seen[f"errors{index}"].append)
        endpoint.on_game_over(lambda index=index: seen["over"].append(index))
    return seen


def test_start_delivers_turn_zero_to_first_player() -> None:
    relay = LocalTurnRelay()
    seen = _record(relay)
    relay.start()
    assert seen["turns0"] == [TurnStartEvent(0, 0, {})]
    assert seen["turns1"] == []


def test_end_turn_forwards_staged_variables() -> None:
    relay = LocalTurnRelay()
    seen = _record(relay)
    first = relay.endpoint(0)
    first.set_turn_variable("shotX", 3)
    first.set_turn_variable("shotY", 7)
    first.end_turn()

    (event,) = seen["turns1"]
    assert event.turn_count == 1
    assert event.current_user_index == 1
    assert dict(event.previous_turn_variables) == {"shotX": 3, "shotY": 7}
    assert relay.current_user_index == 1


def test_out_of_turn_calls_report_errors() -> None:
    relay = LocalTurnRelay()
    seen = _record(relay)
    relay.endpoint(1).set_turn_variable("shotX", 1)
    relay.endpoint(1).end_turn()
    assert [error.code for error in seen["errors1"]] == [ERROR_NOT_YOUR_TURN, ERROR_NOT_YOUR_TURN]
    assert seen["errors1"][1] == ChannelError(ERROR_NOT_YOUR_TURN, "end_turn outside own turn")
    assert relay.turn_count == 0


def test_final_turn_ends_game_for_both() -> None:
    relay = LocalTurnRelay()
    seen = _record(relay)
    first = relay.endpoint(0)
    first.set_turn_variable("isGameOver", True)
    first.set_is_final_turn(True)
    first.end_turn()

    assert seen["turns1"][0].previous_turn_variables["isGameOver"] is True
    assert sorted(seen["over"]) == [0, 1]
    assert relay.is_game_over
    relay.endpoint(1).end_turn()
    assert seen["errors1"][-1].code == ERROR_GAME_OVER


def test_scheduler_delivery_is_deferred() -> None:
    scheduler = Scheduler()
    relay = LocalTurnRelay(scheduler=scheduler)
    seen = _record(relay)
    relay.endpoint(0).end_turn()
    assert seen["turns1"] == []
    scheduler.run_until_idle()
    assert len(seen["turns1"]) == 1


def test_redeliver_replays_last_turn() -> None:
    relay = LocalTurnRelay()
    seen = _record(relay)
    relay.endpoint(0).set_turn_variable("shotX", 2)
    relay.endpoint(0).end_turn()
    relay.redeliver()
    assert len(seen["turns1"]) == 2
    assert seen["turns1"][0] == seen["turns1"][1]


def test_staged_values_are_copied() -> None:
    relay = LocalTurnRelay()
    seen = _record(relay)
    value = {"nested": [1]}
    relay.endpoint(0).set_turn_variable("data", value)
    value["nested"].append(2)
    relay.endpoint(0).end_turn()
    assert seen["turns1"][0].previous_turn_variables["data"] == {"nested": [1]}
