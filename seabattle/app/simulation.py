"""Composition helpers and autopilot players for headless games."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path

from seabattle.ai.hunt_target import HuntTargetAI
from seabattle.app.ai_turn_handler import AITurnHandler
from seabattle.app.orchestrator import GameOrchestrator
from seabattle.app.presentation import HeadlessPresentation
from seabattle.core.models import CellState, Coord, GameMode, GamePhase, ShotResult, Side, TurnState
from seabattle.infra.config import GameConfig
from seabattle.net.adapter import TurnProtocolAdapter
from seabattle.net.channel import LocalTurnRelay
from seabattle.net.store import DurableStore, InMemoryDurableStore, JsonFileDurableStore
from seabattle.runtime.scheduler import Scheduler

logger = logging.getLogger(__name__)

_VIEW_RESULTS = {
    CellState.EMPTY: ShotResult.MISS,
    CellState.HIT: ShotResult.HIT,
    CellState.DESTROYED: ShotResult.DESTROYED,
}


@dataclass(frozen=True, slots=True)
class SimulationResult:
    mode: GameMode
    winners: tuple[Side | None, ...]
    turns: int
    scheduler_seconds: float

    @property
    def finished(self) -> bool:
        return all(winner is not None for winner in self.winners)


class AutopilotPlayer:
    """Plays one orchestrator's human side with a hunt/target strategy."""

    def __init__(self, orchestrator: GameOrchestrator, rng: random.Random) -> None:
        self._orchestrator = orchestrator
        self._strategy = HuntTargetAI(rng)
        self._last_aim: Coord | None = None

    def step(self) -> bool:
        """Take at most one action. Returns whether anything was done."""
        orch = self._orchestrator
        state = orch.state
        phase = orch.phase
        if state.winner is not None:
            return False
        if phase in (GamePhase.SETUP, GamePhase.SETUP_PENDING) and not state.setup_complete:
            return orch.confirm_setup().accepted
        if phase is GamePhase.CONFIRM_SEND:
            return orch.confirm_send().accepted
        can_fire = phase is GamePhase.AIMING or (phase is GamePhase.PLAYING and state.turn is TurnState.PLAYER)
        if not can_fire:
            return False
        self._learn_last_result()
        coord = self._strategy.choose_shot(state.opponent_grid)
        self._last_aim = coord
        return orch.tap_cell(coord.x, coord.y).accepted

    def _learn_last_result(self) -> None:
        if self._last_aim is None:
            return
        view = self._orchestrator.state.opponent_grid
        result = _VIEW_RESULTS.get(view.get(self._last_aim))
        if result is not None:
            self._strategy.notify_result(self._last_aim, result, view)
        self._last_aim = None


def build_single_player(
    config: GameConfig,
    *,
    rng: random.Random,
    scheduler: Scheduler,
    presentation: HeadlessPresentation | None = None,
) -> GameOrchestrator:
    def _ai_handler(host: GameOrchestrator) -> AITurnHandler:
        return AITurnHandler(host, HuntTargetAI(rng), scheduler, delay_seconds=config.ai_delay_seconds)

    return GameOrchestrator(
        presentation=presentation or HeadlessPresentation(label="single"),
        scheduler=scheduler,
        config=config,
        rng=rng,
        turn_handler_factories={GameMode.SINGLE: _ai_handler},
    )


def build_multiplayer_pair(
    config: GameConfig,
    *,
    rng: random.Random,
    scheduler: Scheduler,
    store: DurableStore,
    relay: LocalTurnRelay,
) -> tuple[GameOrchestrator, GameOrchestrator]:
    players: list[GameOrchestrator] = []
    for index in (0, 1):

        def _adapter(host: GameOrchestrator, index: int = index) -> TurnProtocolAdapter:
            return TurnProtocolAdapter(host, relay.endpoint(index), store, player_index=index)

        players.append(
            GameOrchestrator(
                presentation=HeadlessPresentation(label=f"player{index}"),
                scheduler=scheduler,
                config=config,
                rng=random.Random(rng.getrandbits(32)),
                turn_handler_factories={GameMode.MULTIPLAYER: _adapter},
            )
        )
    return players[0], players[1]


def build_store(
    config: GameConfig,
    *,
    scheduler: Scheduler,
    saves_dir: Path | None,
    session_id: str,
    fresh: bool = False,
) -> DurableStore:
    if config.store_backend == "file" and saves_dir is not None:
        store = JsonFileDurableStore(saves_dir, session_id)
        if fresh:
            store.clear()
        return store
    return InMemoryDurableStore(scheduler=scheduler)


def simulate_single(config: GameConfig, *, seed: int, max_steps: int = 2_000) -> SimulationResult:
    rng = random.Random(seed)
    scheduler = Scheduler()
    game = build_single_player(config, rng=rng, scheduler=scheduler)
    pilot = AutopilotPlayer(game, random.Random(seed + 1))
    game.select_mode(GameMode.SINGLE)
    _drive(scheduler, [pilot], [game], max_steps)
    return SimulationResult(
        mode=GameMode.SINGLE,
        winners=(game.state.winner,),
        turns=game.state.turn_number,
        scheduler_seconds=scheduler.now_seconds,
    )


def simulate_multiplayer(
    config: GameConfig,
    *,
    seed: int,
    saves_dir: Path | None = None,
    max_steps: int = 4_000,
) -> SimulationResult:
    rng = random.Random(seed)
    scheduler = Scheduler()
    relay = LocalTurnRelay(scheduler=scheduler)
    store = build_store(config, scheduler=scheduler, saves_dir=saves_dir, session_id=f"sim_{seed}", fresh=True)
    first, second = build_multiplayer_pair(config, rng=rng, scheduler=scheduler, store=store, relay=relay)
    pilots = [AutopilotPlayer(first, random.Random(seed + 1)), AutopilotPlayer(second, random.Random(seed + 2))]
    first.select_mode(GameMode.MULTIPLAYER)
    second.select_mode(GameMode.MULTIPLAYER)
    relay.start()
    _drive(scheduler, pilots, [first, second], max_steps)
    return SimulationResult(
        mode=GameMode.MULTIPLAYER,
        winners=(first.state.winner, second.state.winner),
        turns=relay.turn_count,
        scheduler_seconds=scheduler.now_seconds,
    )


def _drive(
    scheduler: Scheduler,
    pilots: list[AutopilotPlayer],
    games: list[GameOrchestrator],
    max_steps: int,
) -> None:
    for _ in range(max_steps):
        if all(game.state.winner is not None for game in games):
            scheduler.run_until_idle()
            return
        acted = False
        for pilot in pilots:
            acted = pilot.step() or acted
        ran = scheduler.run_until_idle()
        if not acted and ran == 0:
            logger.warning("simulation_stalled phases=%s", ",".join(game.phase.value for game in games))
            return
    logger.warning("simulation_step_limit steps=%d queued=%d", max_steps, scheduler.queued_task_count)
