"""Command-line entry point for headless SeaBattle games."""

from __future__ import annotations

import argparse
import logging
import os
import time
from dataclasses import replace

from seabattle.app.simulation import SimulationResult, simulate_multiplayer, simulate_single
from seabattle.infra.app_data import ensure_app_data_dirs
from seabattle.infra.config import load_default_env_files, load_game_config
from seabattle.infra.logging import setup_logging, shutdown_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="seabattle", description="Headless SeaBattle runner.")
    commands = parser.add_subparsers(dest="command", required=True)
    simulate = commands.add_parser("simulate", help="Play one full game with autopilot players.")
    simulate.add_argument("--mode", choices=("single", "multiplayer"), default="single")
    simulate.add_argument("--seed", type=int, default=None, help="RNG seed; defaults to SEABATTLE_RNG_SEED.")
    simulate.add_argument(
        "--store",
        choices=("memory", "file"),
        default=None,
        help="Durable store backend for multiplayer; defaults to SEABATTLE_STORE_BACKEND.",
    )
    simulate.add_argument("--no-log-file", action="store_true", help="Log to console only.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_default_env_files()
    config = load_game_config()
    if config.app_data_dir:
        os.environ.setdefault("SEABATTLE_APP_DATA_DIR", config.app_data_dir)
    paths = ensure_app_data_dirs()
    setup_logging(to_file=not args.no_log_file)
    logger.info("app_data_paths root=%s logs=%s saves=%s", paths.root, paths.logs, paths.saves)
    try:
        if args.store is not None:
            config = replace(config, store_backend=args.store)
        seed = args.seed if args.seed is not None else config.rng_seed
        if seed is None:
            seed = time.time_ns() & 0xFFFFFFFF
        logger.info("simulation_start mode=%s seed=%d store=%s", args.mode, seed, config.store_backend)
        if args.mode == "single":
            result = simulate_single(config, seed=seed)
        else:
            result = simulate_multiplayer(config, seed=seed, saves_dir=paths.saves)
        _report(result)
        return 0 if result.finished else 1
    finally:
        shutdown_logging()


def _report(result: SimulationResult) -> None:
    winners = ",".join(winner.value if winner is not None else "none" for winner in result.winners)
    logger.info(
        "simulation_done mode=%s winners=%s turns=%d clock=%.1f",
        result.mode.value,
        winners,
        result.turns,
        result.scheduler_seconds,
    )
    print(f"mode={result.mode.value} winners={winners} turns={result.turns}")


if __name__ == "__main__":
    raise SystemExit(main())
