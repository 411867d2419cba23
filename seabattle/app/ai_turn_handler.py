"""Single-player turn handler driving an AI strategy."""

from __future__ import annotations

import logging

from seabattle.ai.strategy import AIStrategy
from seabattle.app.ports import AIHost
from seabattle.core.models import Coord, ShotResult, Side, TurnState
from seabattle.runtime.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class AITurnHandler:
    """Fires the AI's shot after a delay each time the opponent's turn begins."""

    def __init__(
        self,
        host: AIHost,
        strategy: AIStrategy,
        scheduler: Scheduler,
        *,
        delay_seconds: float = 1.0,
    ) -> None:
        if delay_seconds < 0.0:
            raise ValueError("delay_seconds must be >= 0")
        self._host = host
        self._strategy = strategy
        self._scheduler = scheduler
        self._delay = delay_seconds
        self._timer: TimerHandle | None = None
        self._epoch = 0

    @property
    def strategy(self) -> AIStrategy:
        return self._strategy

    def begin_opponent_turn(self) -> None:
        self._cancel_timer()
        if self._delay <= 0.0:
            self._fire()
            return
        epoch = self._epoch
        self._timer = self._scheduler.call_later(self._delay, lambda: self._fire_if_current(epoch))
        logger.debug("ai_turn_scheduled delay=%.2f", self._delay)

    def notify_shot_complete(self, coord: Coord, result: ShotResult) -> None:
        logger.debug("player_shot x=%d y=%d result=%s", coord.x, coord.y, result.value)

    def notify_game_over(self, winner: Side) -> None:
        self._cancel_timer()
        logger.info("ai_game_over winner=%s", winner.value)

    def reset(self) -> None:
        self._epoch += 1
        self._cancel_timer()
        self._strategy.reset()

    def _fire_if_current(self, epoch: int) -> None:
        if epoch != self._epoch:
            return
        self._timer = None
        self._fire()

    def _fire(self) -> None:
        state = self._host.state
        if state.winner is not None or state.turn is not TurnState.OPPONENT:
            logger.debug("ai_turn_skipped turn=%s winner=%s", state.turn.value, state.winner)
            return
        grid = state.player_grid
        coord = self._strategy.choose_shot(grid)
        result = self._host.process_opponent_shot(coord)
        if result is None:
            logger.warning("ai_shot_rejected x=%d y=%d", coord.x, coord.y)
            return
        self._strategy.notify_result(coord, result, grid)
        logger.debug("ai_shot x=%d y=%d result=%s", coord.x, coord.y, result.value)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
