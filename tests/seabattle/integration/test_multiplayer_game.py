from __future__ import annotations

import random

import pytest

from seabattle.app.simulation import AutopilotPlayer, simulate_multiplayer
from seabattle.core.models import GameMode, GamePhase, Side
from seabattle.infra.config import GameConfig
from seabattle.infra.json_codec import loads


@pytest.mark.parametrize("seed", [3, 19])
def test_multiplayer_game_ends_with_opposite_winners(seed: int) -> None:
    result = simulate_multiplayer(GameConfig(), seed=seed)
    assert result.mode is GameMode.MULTIPLAYER
    assert result.finished
    first, second = result.winners
    assert first is not None and second is first.other


def test_multiplayer_game_over_file_store(tmp_path) -> None:
    result = simulate_multiplayer(GameConfig(store_backend="file"), seed=5, saves_dir=tmp_path)
    assert result.finished
    document = loads((tmp_path / "sim_5.json").read_bytes())
    assert set(document["users"]) == {"0", "1"}
    assert "fleet" in document["users"]["0"]
    assert "pendingShot" not in document["users"]["0"]


def test_rig_game_with_store_latency_closes_relay(multiplayer_rig_factory) -> None:
    rig = multiplayer_rig_factory(seed=21, store_latency=0.2, turn_delay=0.5)
    pilots = [AutopilotPlayer(player, random.Random(100 + idx)) for idx, player in enumerate(rig.players)]
    rig.start()
    for _ in range(2_000):
        if all(player.state.winner is not None for player in rig.players):
            break
        for pilot in pilots:
            pilot.step()
        rig.settle()
    rig.settle()

    first, second = rig.players
    assert first.phase is GamePhase.GAMEOVER
    assert second.phase is GamePhase.GAMEOVER
    assert {first.state.winner, second.state.winner} == {Side.PLAYER, Side.OPPONENT}
    assert rig.relay.is_game_over
    loser = rig.adapter(0) if first.state.winner is Side.OPPONENT else rig.adapter(1)
    assert loser.state.final_turn_sent
