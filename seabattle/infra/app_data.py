"""Where SeaBattle keeps run logs and multiplayer session saves."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

APP_DATA_ENV = "SEABATTLE_APP_DATA_DIR"


@dataclass(frozen=True, slots=True)
class AppDataPaths:
    root: Path
    logs: Path
    saves: Path


def resolve_app_data_root(*, env: Mapping[str, str] | None = None) -> Path:
    """Return ``SEABATTLE_APP_DATA_DIR`` or ``<install>/appdata``.

    Relative values are taken from the install root.
    """
    raw = os.getenv(APP_DATA_ENV, "") if env is None else env.get(APP_DATA_ENV, "")
    configured = raw.strip()
    if not configured:
        return resolve_install_root() / "appdata"
    candidate = Path(configured)
    return candidate if candidate.is_absolute() else resolve_install_root() / candidate


def resolve_install_root() -> Path:
    # Frozen builds keep data next to the executable.
    if getattr(sys, "frozen", False) and getattr(sys, "executable", ""):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[2]


def resolve_logs_dir(*, env: Mapping[str, str] | None = None) -> Path:
    return resolve_app_data_root(env=env) / "logs"


def resolve_saves_dir(*, env: Mapping[str, str] | None = None) -> Path:
    """Directory holding one ``<session>.json`` per file-backed durable store."""
    return resolve_app_data_root(env=env) / "saves"


def ensure_app_data_dirs(*, env: Mapping[str, str] | None = None) -> AppDataPaths:
    root = resolve_app_data_root(env=env)
    paths = AppDataPaths(root=root, logs=root / "logs", saves=root / "saves")
    for directory in (paths.root, paths.logs, paths.saves):
        directory.mkdir(parents=True, exist_ok=True)
    return paths
