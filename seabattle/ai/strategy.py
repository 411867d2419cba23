"""AI strategy interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from seabattle.core.grid import Grid
from seabattle.core.models import Coord, ShotResult


class AIStrategy(ABC):
    """Opponent strategy contract polled by the AI turn handler."""

    @abstractmethod
    def choose_shot(self, grid: Grid) -> Coord:
        """Return next coordinate to fire at on the human player's grid."""

    @abstractmethod
    def notify_result(self, coord: Coord, result: ShotResult, grid: Grid) -> None:
        """Update strategy state with shot result."""

    def reset(self) -> None:
        """Forget all targeting state."""
