"""Application configuration and env loading."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class GameConfig:
    """Resolved gameplay and runtime settings."""

    ai_delay_seconds: float = 1.0
    turn_delay_seconds: float = 0.5
    placement_max_trials: int = 1000
    placement_board_attempts: int = 5
    rng_seed: int | None = None
    app_data_dir: str | None = None
    store_backend: str = "memory"  # memory|file


def load_env_file(path: str = ".env", *, override_existing: bool = True) -> None:
    """Load KEY=VALUE pairs from an env file into process environment.

    By default, values from the env file overwrite existing environment variables.
    """
    env_path = Path(path)
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        if override_existing or key not in os.environ:
            os.environ[key] = value


def load_default_env_files(
    *, override_existing: bool = True, paths: Sequence[str] | None = None
) -> None:
    """Load env files left-to-right; later files win.

    Default order: appdata/config/.env, appdata/config/.env.local, .env, .env.local.
    """
    to_load = (
        tuple(paths)
        if paths is not None
        else (
            "appdata/config/.env",
            "appdata/config/.env.local",
            ".env",
            ".env.local",
        )
    )
    for path in to_load:
        load_env_file(path, override_existing=override_existing)


def load_game_config(*, env: Mapping[str, str] | None = None) -> GameConfig:
    """Resolve ``GameConfig`` from environment variables."""
    seed_raw = _text("SEABATTLE_RNG_SEED", "", env=env)
    try:
        seed = int(seed_raw) if seed_raw else None
    except ValueError:
        seed = None
    app_data_dir = _text("SEABATTLE_APP_DATA_DIR", "", env=env)
    backend = _text("SEABATTLE_STORE_BACKEND", "memory", env=env).lower()
    if backend not in {"memory", "file"}:
        backend = "memory"
    return GameConfig(
        ai_delay_seconds=_float("SEABATTLE_AI_DELAY_SECONDS", 1.0, minimum=0.0, env=env),
        turn_delay_seconds=_float("SEABATTLE_TURN_DELAY_SECONDS", 0.5, minimum=0.0, env=env),
        placement_max_trials=_int("SEABATTLE_PLACEMENT_MAX_TRIALS", 1000, minimum=1, env=env),
        placement_board_attempts=_int(
            "SEABATTLE_PLACEMENT_BOARD_ATTEMPTS", 5, minimum=1, env=env
        ),
        rng_seed=seed,
        app_data_dir=app_data_dir or None,
        store_backend=backend,
    )


def _raw(name: str, *, env: Mapping[str, str] | None = None) -> str | None:
    value = os.getenv(name) if env is None else env.get(name)
    return None if value is None else str(value)


def _int(
    name: str,
    default: int,
    *,
    minimum: int | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    raw = _raw(name, env=env)
    if raw is None:
        value = int(default)
    else:
        try:
            value = int(raw.strip())
        except ValueError:
            value = int(default)
    if minimum is None:
        return value
    return max(int(minimum), value)


def _float(
    name: str,
    default: float,
    *,
    minimum: float | None = None,
    env: Mapping[str, str] | None = None,
) -> float:
    raw = _raw(name, env=env)
    if raw is None:
        value = float(default)
    else:
        try:
            value = float(raw.strip())
        except ValueError:
            value = float(default)
    if minimum is None:
        return value
    return max(float(minimum), value)


def _text(name: str, default: str, *, env: Mapping[str, str] | None = None) -> str:
    raw = _raw(name, env=env)
    if raw is None:
        return str(default)
    value = raw.strip()
    return value if value else str(default)
