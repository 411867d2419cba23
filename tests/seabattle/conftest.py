from __future__ import annotations

import random

import pytest

from seabattle.ai.hunt_target import HuntTargetAI
from seabattle.app.ai_turn_handler import AITurnHandler
from seabattle.app.orchestrator import GameOrchestrator
from seabattle.app.presentation import HeadlessPresentation
from seabattle.core.fleet import FALLBACK_LAYOUT
from seabattle.core.models import GameMode, ShipInfo, ships_from_positions
from seabattle.infra.config import GameConfig
from seabattle.net.adapter import TurnProtocolAdapter
from seabattle.net.channel import LocalTurnRelay
from seabattle.net.store import InMemoryDurableStore
from seabattle.runtime.scheduler import Scheduler


def make_fixed_fleet() -> list[ShipInfo]:
    return ships_from_positions(list(FALLBACK_LAYOUT))


def make_config(**overrides: object) -> GameConfig:
    values: dict[str, object] = {"ai_delay_seconds": 1.0, "turn_delay_seconds": 0.5}
    values.update(overrides)
    return GameConfig(**values)  # type: ignore[arg-type]


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1337)


@pytest.fixture
def fixed_fleet() -> list[ShipInfo]:
    return make_fixed_fleet()


@pytest.fixture
def scheduler() -> Scheduler:
    return Scheduler()


@pytest.fixture
def presentation() -> HeadlessPresentation:
    return HeadlessPresentation(label="test")


@pytest.fixture
def single_player_factory(scheduler: Scheduler, presentation: HeadlessPresentation):
    def _make(seed: int = 1337, **config_overrides: object) -> GameOrchestrator:
        config = make_config(**config_overrides)
        rng = random.Random(seed)

        def _handler(host: GameOrchestrator) -> AITurnHandler:
            return AITurnHandler(host, HuntTargetAI(random.Random(seed + 1)), scheduler, delay_seconds=config.ai_delay_seconds)

        return GameOrchestrator(
            presentation=presentation,
            scheduler=scheduler,
            config=config,
            rng=rng,
            turn_handler_factories={GameMode.SINGLE: _handler},
        )

    return _make


class MultiplayerRig:
    """Two orchestrators wired through an in-process relay and shared store."""

    def __init__(self, *, seed: int = 7, store_latency: float = 0.0, turn_delay: float = 0.0) -> None:
        self.scheduler = Scheduler()
        self.relay = LocalTurnRelay(scheduler=self.scheduler)
        self.store = InMemoryDurableStore(scheduler=self.scheduler, latency_seconds=store_latency)
        self.config = make_config(turn_delay_seconds=turn_delay)
        self.presentations = (HeadlessPresentation(label="p0"), HeadlessPresentation(label="p1"))
        self.players = tuple(self._make_player(index, seed + index) for index in (0, 1))

    def _make_player(self, index: int, seed: int) -> GameOrchestrator:
        def _adapter(host: GameOrchestrator) -> TurnProtocolAdapter:
            return TurnProtocolAdapter(host, self.relay.endpoint(index), self.store, player_index=index)

        return GameOrchestrator(
            presentation=self.presentations[index],
            scheduler=self.scheduler,
            config=self.config,
            rng=random.Random(seed),
            turn_handler_factories={GameMode.MULTIPLAYER: _adapter},
        )

    def adapter(self, index: int) -> TurnProtocolAdapter:
        handler = self.players[index].turn_handler
        assert isinstance(handler, TurnProtocolAdapter)
        return handler

    def start(self) -> None:
        for player in self.players:
            player.select_mode(GameMode.MULTIPLAYER)
        self.relay.start()
        self.settle()

    def settle(self) -> None:
        self.scheduler.run_until_idle()


@pytest.fixture
def multiplayer_rig() -> MultiplayerRig:
    return MultiplayerRig()


@pytest.fixture
def multiplayer_rig_factory():
    return MultiplayerRig
