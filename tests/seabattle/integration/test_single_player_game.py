from __future__ import annotations

import pytest

from seabattle.app.simulation import simulate_single
from seabattle.core.models import GameMode
from seabattle.infra.config import GameConfig


@pytest.mark.parametrize("seed", [1, 7, 2024])
def test_autopilot_finishes_single_player_game(seed: int) -> None:
    result = simulate_single(GameConfig(), seed=seed)
    assert result.mode is GameMode.SINGLE
    assert result.finished
    assert result.turns >= 20
    assert result.scheduler_seconds > 0.0


def test_single_player_game_is_deterministic_per_seed() -> None:
    assert simulate_single(GameConfig(), seed=11) == simulate_single(GameConfig(), seed=11)
