from __future__ import annotations

import os

from seabattle.infra.config import GameConfig, load_default_env_files, load_env_file, load_game_config


def test_load_env_file_sets_values_with_overwrite_by_default(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("SB_A=1\nSB_B='two'\n#comment\nINVALID\nSB_C=three\n", encoding="utf-8")
    monkeypatch.setenv("SB_C", "already")
    monkeypatch.delenv("SB_A", raising=False)
    monkeypatch.delenv("SB_B", raising=False)
    load_env_file(str(env_file))
    assert os.environ.get("SB_A") == "1"
    assert os.environ.get("SB_B") == "two"
    assert os.environ.get("SB_C") == "three"


def test_load_env_file_can_preserve_existing_values(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("SB_C=three\n", encoding="utf-8")
    monkeypatch.setenv("SB_C", "already")
    load_env_file(str(env_file), override_existing=False)
    assert os.environ.get("SB_C") == "already"


def test_load_default_env_files_later_files_win(tmp_path, monkeypatch) -> None:
    first = tmp_path / ".env"
    second = tmp_path / ".env.local"
    first.write_text("SB_X=base\nSB_Y=base\n", encoding="utf-8")
    second.write_text("SB_Y=local\n", encoding="utf-8")
    monkeypatch.delenv("SB_X", raising=False)
    monkeypatch.delenv("SB_Y", raising=False)
    load_default_env_files(paths=(str(first), str(second), str(tmp_path / "missing")))
    assert os.environ.get("SB_X") == "base"
    assert os.environ.get("SB_Y") == "local"


def test_game_config_defaults() -> None:
    assert load_game_config(env={}) == GameConfig()


def test_game_config_reads_and_clamps_values() -> None:
    config = load_game_config(
        env={
            "SEABATTLE_AI_DELAY_SECONDS": "0.25",
            "SEABATTLE_TURN_DELAY_SECONDS": "-3",
            "SEABATTLE_PLACEMENT_MAX_TRIALS": "0",
            "SEABATTLE_PLACEMENT_BOARD_ATTEMPTS": "bogus",
            "SEABATTLE_RNG_SEED": "42",
            "SEABATTLE_STORE_BACKEND": "FILE",
            "SEABATTLE_APP_DATA_DIR": "  ",
        }
    )
    assert config.ai_delay_seconds == 0.25
    assert config.turn_delay_seconds == 0.0
    assert config.placement_max_trials == 1
    assert config.placement_board_attempts == 5
    assert config.rng_seed == 42
    assert config.store_backend == "file"
    assert config.app_data_dir is None


def test_game_config_rejects_unknown_backend_and_seed() -> None:
    config = load_game_config(env={"SEABATTLE_STORE_BACKEND": "redis", "SEABATTLE_RNG_SEED": "x"})
    assert config.store_backend == "memory"
    assert config.rng_seed is None
