"""Generic state-flow transition table."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

TState = TypeVar("TState")


@dataclass(frozen=True, slots=True)
class FlowContext(Generic[TState]):
    """Transition execution context."""

    trigger: str
    source: TState
    target: TState
    payload: object | None = None


TransitionGuard: TypeAlias = "Callable[[FlowContext[TState]], bool]"
TransitionHook: TypeAlias = "Callable[[FlowContext[TState]], None]"


@dataclass(frozen=True, slots=True)
class FlowTransition(Generic[TState]):
    """One transition. ``source=None`` matches any state."""

    trigger: str
    source: TState | None
    target: TState
    guard: TransitionGuard[TState] | None = None
    after: TransitionHook[TState] | None = None


class FlowMachine(Generic[TState]):
    """Deterministic transition table executor."""

    def __init__(
        self,
        initial_state: TState,
        transitions: tuple[FlowTransition[TState], ...] = (),
    ) -> None:
        self._state = initial_state
        self._transitions: list[FlowTransition[TState]] = list(transitions)

    @property
    def state(self) -> TState:
        return self._state

    def add_transition(self, transition: FlowTransition[TState]) -> None:
        """Register one transition."""
        self._transitions.append(transition)

    def can_trigger(self, event: str, *, payload: object | None = None) -> bool:
        return self._match(event, payload) is not None

    def trigger(self, event: str, *, payload: object | None = None) -> bool:
        """Execute first matching transition. Returns whether a transition ran."""
        matched = self._match(event, payload)
        if matched is None:
            return False
        transition, context = matched
        self._state = transition.target
        if transition.after is not None:
            transition.after(context)
        return True

    def force(self, state: TState) -> None:
        """Set state without a transition; used when restoring a saved session."""
        self._state = state

    def _match(
        self, event: str, payload: object | None
    ) -> tuple[FlowTransition[TState], FlowContext[TState]] | None:
        source_state = self._state
        for transition in self._transitions:
            if transition.trigger != event:
                continue
            if transition.source is not None and transition.source != source_state:
                continue
            context = FlowContext(
                trigger=event,
                source=source_state,
                target=transition.target,
                payload=payload,
            )
            if transition.guard is not None and not transition.guard(context):
                continue
            return transition, context
        return None
