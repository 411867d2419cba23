"""Phase transitions for single-player and multiplayer sessions."""

from __future__ import annotations

from seabattle.core.models import GameMode, GamePhase
from seabattle.runtime.flow import FlowContext, FlowMachine, FlowTransition


def _single(context: FlowContext[GamePhase]) -> bool:
    return context.payload is GameMode.SINGLE


def _multiplayer(context: FlowContext[GamePhase]) -> bool:
    return context.payload is GameMode.MULTIPLAYER


def _trigger(target: GamePhase) -> str:
    return f"to_{target.value}"


def _edge(source: GamePhase | None, target: GamePhase, guard=None) -> FlowTransition[GamePhase]:
    return FlowTransition(trigger=_trigger(target), source=source, target=target, guard=guard)


def phase_transitions() -> tuple[FlowTransition[GamePhase], ...]:
    """Allowed phase edges; guards receive the session mode as payload."""
    P = GamePhase
    return (
        _edge(P.INTRO, P.SETUP, _single),
        _edge(P.SETUP, P.PLAYING, _single),
        _edge(P.PLAYING, P.GAMEOVER, _single),
        _edge(P.INTRO, P.WAITING, _multiplayer),
        _edge(P.WAITING, P.SETUP, _multiplayer),
        _edge(P.WAITING, P.SETUP_PENDING, _multiplayer),
        _edge(P.WAITING, P.AIMING, _multiplayer),
        _edge(P.WAITING, P.GAMEOVER, _multiplayer),
        _edge(P.SETUP, P.AIMING, _multiplayer),
        _edge(P.SETUP_PENDING, P.AIMING, _multiplayer),
        _edge(P.SETUP_PENDING, P.GAMEOVER, _multiplayer),
        _edge(P.AIMING, P.CONFIRM_SEND, _multiplayer),
        _edge(P.AIMING, P.GAMEOVER, _multiplayer),
        _edge(P.CONFIRM_SEND, P.CONFIRM_SEND, _multiplayer),
        _edge(P.CONFIRM_SEND, P.AIMING, _multiplayer),
        _edge(P.CONFIRM_SEND, P.WAITING, _multiplayer),
        _edge(P.CONFIRM_SEND, P.GAMEOVER, _multiplayer),
        _edge(None, P.INTRO),
    )


class PhaseMachine:
    """Validates phase changes against the transition table."""

    def __init__(self) -> None:
        self._flow: FlowMachine[GamePhase] = FlowMachine(GamePhase.INTRO, phase_transitions())

    @property
    def phase(self) -> GamePhase:
        return self._flow.state

    def can_enter(self, target: GamePhase, mode: GameMode | None) -> bool:
        return self._flow.can_trigger(_trigger(target), payload=mode)

    def enter(self, target: GamePhase, mode: GameMode | None) -> bool:
        """Move to ``target``. Returns False if the edge is not allowed."""
        return self._flow.trigger(_trigger(target), payload=mode)

    def reset(self) -> None:
        self._flow.trigger(_trigger(GamePhase.INTRO))

    def restore(self, phase: GamePhase) -> None:
        self._flow.force(phase)
