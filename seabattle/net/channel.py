"""Turn-channel contract and an in-process relay implementing it."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias

from seabattle.infra.json_codec import clone
from seabattle.runtime.scheduler import Scheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TurnStartEvent:
    """Delivered to the player whose turn begins."""

    turn_count: int
    current_user_index: int
    previous_turn_variables: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChannelError:
    """Reported to a player whose channel call was refused."""

    code: str
    description: str


ERROR_GAME_OVER = "game_over"
ERROR_NOT_YOUR_TURN = "not_your_turn"


TurnStartCallback: TypeAlias = "Callable[[TurnStartEvent], None]"
GameOverCallback: TypeAlias = "Callable[[], None]"
ErrorCallback: TypeAlias = "Callable[[ChannelError], None]"


class TurnChannel(Protocol):
    """Store-and-forward channel delivering at most one message per turn."""

    def set_turn_variable(self, key: str, value: Any) -> None:
        """Stage a variable for the current turn."""

    def end_turn(self) -> None:
        """Send staged variables and hand the turn to the other player."""

    def set_is_final_turn(self, value: bool) -> None:
        """Mark the current turn as the last one of the game."""

    def on_turn_start(self, callback: TurnStartCallback) -> None: ...

    def on_game_over(self, callback: GameOverCallback) -> None: ...

    def on_error(self, callback: ErrorCallback) -> None: ...


class LocalTurnRelay:
    """Two-player in-process relay.

    With a scheduler, deliveries are queued as zero-delay tasks so a handler
    calling ``end_turn`` never re-enters the other player's handler.
    """

    def __init__(self, *, scheduler: Scheduler | None = None, delivery_delay_seconds: float = 0.0) -> None:
        if delivery_delay_seconds < 0.0:
            raise ValueError("delivery_delay_seconds must be >= 0")
        self._scheduler = scheduler
        self._delay = delivery_delay_seconds
        self._endpoints = (_RelayEndpoint(self, 0), _RelayEndpoint(self, 1))
        self._current_index = 0
        self._turn_count = 0
        self._staged: dict[str, Any] = {}
        self._final = False
        self._game_over = False
        self._last_event = TurnStartEvent(0, 0, {})

    @property
    def current_user_index(self) -> int:
        return self._current_index

    @property
    def turn_count(self) -> int:
        return self._turn_count

    @property
    def is_game_over(self) -> bool:
        return self._game_over

    def endpoint(self, index: int) -> _RelayEndpoint:
        if index not in (0, 1):
            raise ValueError("index must be 0 or 1")
        return self._endpoints[index]

    def start(self) -> None:
        """Deliver turn zero to the first player."""
        event = TurnStartEvent(0, 0, {})
        self._last_event = event
        first = self._endpoints[0]
        self._deliver(lambda: first.emit_turn_start(event))

    def redeliver(self) -> None:
        """Replay the last turn start; models a client reloading mid-turn."""
        event = self._last_event
        endpoint = self._endpoints[self._current_index]
        self._deliver(lambda: endpoint.emit_turn_start(event))

    def _stage(self, index: int, key: str, value: Any) -> None:
        if not self._accepts(index, "set_turn_variable"):
            return
        self._staged[key] = clone(value)

    def _set_final(self, index: int, value: bool) -> None:
        if not self._accepts(index, "set_is_final_turn"):
            return
        self._final = bool(value)

    def _end_turn(self, index: int) -> None:
        if not self._accepts(index, "end_turn"):
            return
        variables = self._staged
        final = self._final
        self._staged = {}
        self._final = False
        self._turn_count += 1
        self._current_index = 1 - index
        event = TurnStartEvent(self._turn_count, self._current_index, variables)
        self._last_event = event
        receiver = self._endpoints[self._current_index]
        logger.debug(
            "relay_end_turn sender=%d turn_count=%d keys=%s final=%s",
            index,
            self._turn_count,
            ",".join(sorted(variables)),
            final,
        )
        self._deliver(lambda: receiver.emit_turn_start(event))
        if final:
            self._game_over = True
            for endpoint in self._endpoints:
                self._deliver(endpoint.emit_game_over)

    def _accepts(self, index: int, operation: str) -> bool:
        if self._game_over:
            self._error(index, ChannelError(ERROR_GAME_OVER, f"{operation} after game over"))
            return False
        if index != self._current_index:
            self._error(index, ChannelError(ERROR_NOT_YOUR_TURN, f"{operation} outside own turn"))
            return False
        return True

    def _error(self, index: int, error: ChannelError) -> None:
        logger.warning("relay_error index=%d code=%s description=%s", index, error.code, error.description)
        endpoint = self._endpoints[index]
        self._deliver(lambda: endpoint.emit_error(error))

    def _deliver(self, callback: Callable[[], None]) -> None:
        if self._scheduler is None:
            callback()
            return
        self._scheduler.call_later(self._delay, callback)


class _RelayEndpoint:
    """One player's view of a ``LocalTurnRelay``."""

    def __init__(self, relay: LocalTurnRelay, index: int) -> None:
        self._relay = relay
        self.index = index
        self._turn_start: list[TurnStartCallback] = []
        self._game_over: list[GameOverCallback] = []
        self._errors: list[ErrorCallback] = []

    def set_turn_variable(self, key: str, value: Any) -> None:
        self._relay._stage(self.index, key, value)

    def end_turn(self) -> None:
        self._relay._end_turn(self.index)

    def set_is_final_turn(self, value: bool) -> None:
        self._relay._set_final(self.index, value)

    def on_turn_start(self, callback: TurnStartCallback) -> None:
        self._turn_start.append(callback)

    def on_game_over(self, callback: GameOverCallback) -> None:
        self._game_over.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        self._errors.append(callback)

    def emit_turn_start(self, event: TurnStartEvent) -> None:
        for callback in tuple(self._turn_start):
            callback(event)

    def emit_game_over(self) -> None:
        for callback in tuple(self._game_over):
            callback()

    def emit_error(self, error: ChannelError) -> None:
        for callback in tuple(self._errors):
            callback(error)
