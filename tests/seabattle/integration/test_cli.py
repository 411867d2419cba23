from __future__ import annotations

import logging

import pytest

from seabattle.infra.logging import shutdown_logging
from seabattle.main import build_parser, main


@pytest.fixture
def isolated_app(monkeypatch, tmp_path):
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SEABATTLE_APP_DATA_DIR", str(tmp_path / "appdata"))
    monkeypatch.delenv("SEABATTLE_LOG_DIR", raising=False)
    monkeypatch.delenv("SEABATTLE_STORE_BACKEND", raising=False)
    monkeypatch.delenv("SEABATTLE_RNG_SEED", raising=False)
    yield tmp_path / "appdata"
    shutdown_logging()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_simulate_single_from_cli(isolated_app, capsys) -> None:
    assert main(["simulate", "--mode", "single", "--seed", "3", "--no-log-file"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("mode=single winners=")
    assert (isolated_app / "saves").is_dir()
    assert not list((isolated_app / "logs").glob("*.jsonl"))


def test_simulate_multiplayer_with_file_store_and_run_log(isolated_app, capsys) -> None:
    assert main(["simulate", "--mode", "multiplayer", "--seed", "5", "--store", "file"]) == 0
    assert "mode=multiplayer" in capsys.readouterr().out
    assert (isolated_app / "saves" / "sim_5.json").exists()
    assert list((isolated_app / "logs").glob("seabattle_run_*.jsonl"))
