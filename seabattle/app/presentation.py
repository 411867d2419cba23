"""Presentation implementation for headless runs and tests."""

from __future__ import annotations

import logging
from collections.abc import Callable

from seabattle.app.ports import CellMark
from seabattle.core.models import Coord, Side

logger = logging.getLogger(__name__)


class HeadlessPresentation:
    """Records presentation calls; transitions complete immediately."""

    def __init__(self, *, label: str = "") -> None:
        self.label = label
        self.calls: list[tuple[str, tuple[object, ...]]] = []
        self.visible: set[Side] = set()
        self.cells: dict[tuple[Side, int, int], CellMark] = {}
        self.aim: Coord | None = None
        self.status = ""
        self.hint = ""

    def show_grid(self, which: Side) -> None:
        self._record("show_grid", which)
        self.visible.add(which)

    def hide_grid(self, which: Side) -> None:
        self._record("hide_grid", which)
        self.visible.discard(which)

    def set_cell_visual(self, which: Side, x: int, y: int, mark: CellMark) -> None:
        self._record("set_cell_visual", which, x, y, mark)
        self.cells[(which, x, y)] = mark

    def show_aim_marker(self, x: int, y: int) -> None:
        self._record("show_aim_marker", x, y)
        self.aim = Coord(x, y)

    def hide_aim_marker(self) -> None:
        self._record("hide_aim_marker")
        self.aim = None

    def play_transition(self, kind: str, on_complete: Callable[[], None]) -> None:
        self._record("play_transition", kind)
        on_complete()

    def show_message(self, status: str, hint: str = "") -> None:
        self._record("show_message", status, hint)
        self.status = status
        self.hint = hint

    def clear(self) -> None:
        self.calls.clear()
        self.visible.clear()
        self.cells.clear()
        self.aim = None
        self.status = ""
        self.hint = ""

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, args))
        logger.debug("presentation label=%s call=%s args=%s", self.label, name, args)
