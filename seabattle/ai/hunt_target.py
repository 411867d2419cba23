"""Hunt/Target AI strategy."""

from __future__ import annotations

import logging
import random

from seabattle.ai.strategy import AIStrategy
from seabattle.core.grid import Grid
from seabattle.core.models import AIState, Coord, ShotResult

logger = logging.getLogger(__name__)


class HuntTargetAI(AIStrategy):
    """Random hunting, then a LIFO stack of neighbours around confirmed hits."""

    def __init__(self, rng: random.Random) -> None:
        self._rng = rng
        self._state = AIState()

    @property
    def state(self) -> AIState:
        return self._state

    def reset(self) -> None:
        self._state = AIState()

    def choose_shot(self, grid: Grid) -> Coord:
        state = self._state
        if state.mode == "target":
            while state.target_cells:
                coord = state.target_cells.pop()
                if grid.in_bounds(coord) and grid.is_unshot(coord):
                    return coord
            state.mode = "hunt"

        candidates = grid.unshot_cells()
        if not candidates:
            raise ValueError("no unshot cells left on grid")
        return self._rng.choice(candidates)

    def notify_result(self, coord: Coord, result: ShotResult, grid: Grid) -> None:
        state = self._state
        if result is ShotResult.DESTROYED:
            logger.debug("ai_ship_destroyed x=%d y=%d hits=%d", coord.x, coord.y, len(state.hit_cells) + 1)
            self.reset()
            return
        if result is not ShotResult.HIT:
            return

        state.hit_cells.append(coord)
        state.mode = "target"
        self._push_neighbors(coord, grid)
        self._narrow_by_direction()

    def _push_neighbors(self, coord: Coord, grid: Grid) -> None:
        stack = self._state.target_cells
        for cell in coord.orthogonal_neighbors():
            if not grid.in_bounds(cell) or not grid.is_unshot(cell):
                continue
            if cell in stack:
                continue
            stack.append(cell)

    def _narrow_by_direction(self) -> None:
        state = self._state
        if len(state.hit_cells) < 2:
            return
        xs = {cell.x for cell in state.hit_cells}
        ys = {cell.y for cell in state.hit_cells}
        if len(xs) == 1:
            state.last_hit_direction = "vertical"
            x = next(iter(xs))
            state.target_cells = [cell for cell in state.target_cells if cell.x == x]
        elif len(ys) == 1:
            state.last_hit_direction = "horizontal"
            y = next(iter(ys))
            state.target_cells = [cell for cell in state.target_cells if cell.y == y]
