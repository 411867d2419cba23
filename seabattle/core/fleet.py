"""Fleet placement validation and construction."""

from __future__ import annotations

import logging
import random
from collections import Counter

import numpy as np

from seabattle.core.models import (
    GRID_SIZE,
    SHIP_CONFIG,
    Coord,
    ShipInfo,
    ShipPosition,
    ships_from_positions,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TRIALS = 1000
DEFAULT_BOARD_ATTEMPTS = 5

# Known-valid layout for the standard 10x10 board and SHIP_CONFIG.
FALLBACK_LAYOUT: tuple[ShipPosition, ...] = (
    ShipPosition(0, 0, 4, True),
    ShipPosition(6, 0, 3, False),
    ShipPosition(0, 2, 3, True),
    ShipPosition(8, 4, 2, False),
    ShipPosition(4, 4, 2, True),
    ShipPosition(0, 5, 2, False),
    ShipPosition(3, 7, 1, True),
    ShipPosition(6, 6, 1, True),
    ShipPosition(9, 8, 1, True),
    ShipPosition(5, 9, 1, True),
)


def fleet_lengths(ship_config: tuple[tuple[int, int], ...] = SHIP_CONFIG) -> list[int]:
    return [length for length, count in ship_config for _ in range(count)]


def place_fleet(
    rng: random.Random,
    size: int = GRID_SIZE,
    ship_config: tuple[tuple[int, int], ...] = SHIP_CONFIG,
    *,
    max_trials: int = DEFAULT_MAX_TRIALS,
) -> list[ShipInfo] | None:
    """One randomized placement pass; ``None`` if any ship runs out of trials."""
    blocked = np.zeros((size, size), dtype=bool)
    ships: list[ShipInfo] = []

    for ship_id, length in enumerate(fleet_lengths(ship_config)):
        ship = _place_one(rng, ship_id, length, size, blocked, max_trials)
        if ship is None:
            logger.debug("placement_exhausted ship_id=%d length=%d trials=%d", ship_id, length, max_trials)
            return None
        ships.append(ship)
    return ships


def generate_fleet(
    rng: random.Random,
    size: int = GRID_SIZE,
    ship_config: tuple[tuple[int, int], ...] = SHIP_CONFIG,
    *,
    max_trials: int = DEFAULT_MAX_TRIALS,
    board_attempts: int = DEFAULT_BOARD_ATTEMPTS,
) -> list[ShipInfo]:
    """Generate a random valid fleet, falling back to a fixed layout."""
    for attempt in range(1, board_attempts + 1):
        ships = place_fleet(rng, size, ship_config, max_trials=max_trials)
        if ships is not None:
            return ships
        logger.info("placement_retry attempt=%d/%d", attempt, board_attempts)

    if size != GRID_SIZE or ship_config != SHIP_CONFIG:
        raise RuntimeError("Failed to place fleet and no fallback layout exists for this board.")
    logger.warning("placement_fallback attempts=%d", board_attempts)
    return ships_from_positions(list(FALLBACK_LAYOUT))


def validate_fleet(
    ships: list[ShipInfo],
    size: int = GRID_SIZE,
    ship_config: tuple[tuple[int, int], ...] = SHIP_CONFIG,
) -> tuple[bool, str]:
    """Validate whether a fleet exactly matches the placement rules."""
    expected = Counter(fleet_lengths(ship_config))
    actual = Counter(ship.length for ship in ships)
    if actual != expected:
        return False, "Fleet composition does not match the ship configuration."

    owner: dict[Coord, int] = {}
    for ship in ships:
        if len(ship.cells) != ship.length:
            return False, f"Ship {ship.id} has {len(ship.cells)} cells for length {ship.length}."
        if not _is_straight_run(ship.cells):
            return False, f"Ship {ship.id} is not a straight contiguous run."
        for cell in ship.cells:
            if not cell.in_bounds(size):
                return False, f"Ship {ship.id} is out of bounds."
            if cell in owner:
                return False, f"Ship {ship.id} overlaps ship {owner[cell]}."
            owner[cell] = ship.id

    for ship in ships:
        for cell in ship.cells:
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    other = owner.get(Coord(cell.x + dx, cell.y + dy))
                    if other is not None and other != ship.id:
                        return False, f"Ship {ship.id} touches ship {other}."
    return True, ""


def _place_one(
    rng: random.Random,
    ship_id: int,
    length: int,
    size: int,
    blocked: np.ndarray,
    max_trials: int,
) -> ShipInfo | None:
    for _ in range(max_trials):
        x = rng.randrange(size)
        y = rng.randrange(size)
        horizontal = rng.random() < 0.5
        cells = ShipPosition(x, y, length, horizontal).cells()
        if not all(cell.in_bounds(size) and not blocked[cell.x, cell.y] for cell in cells):
            continue
        # Neighbours are blocked for later ships but are not ship cells.
        for cell in cells:
            blocked[
                max(0, cell.x - 1) : min(size, cell.x + 2),
                max(0, cell.y - 1) : min(size, cell.y + 2),
            ] = True
        return ShipInfo(id=ship_id, length=length, cells=cells)
    return None


def _is_straight_run(cells: list[Coord]) -> bool:
    if len(cells) <= 1:
        return True
    xs = {cell.x for cell in cells}
    ys = {cell.y for cell in cells}
    if len(xs) == 1:
        values = sorted(cell.y for cell in cells)
    elif len(ys) == 1:
        values = sorted(cell.x for cell in cells)
    else:
        return False
    return values == list(range(values[0], values[0] + len(values)))
