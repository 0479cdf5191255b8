"""Which capture is on screen, and whether it tracks the newest one."""

from __future__ import annotations

import enum
import logging
from typing import Callable

from a555watch.diffengine import DiffMode
from a555watch.history import Capture, HistoryStore, RecordResult

__all__ = ["Direction", "Predicate", "SelectionState"]

log = logging.getLogger(__name__)

Predicate = Callable[[Capture], bool]


class Direction(enum.Enum):
    UP = "up"      # towards newer captures
    DOWN = "down"  # towards older captures


class SelectionState:
    """Cursor over the newest-first capture list.

    While *follow* is set, *current* is kept on the newest capture.  Any
    manual move clears *follow* until follow_latest() is called again.
    """

    def __init__(self, history: HistoryStore, diff_mode: DiffMode = DiffMode.LINE) -> None:
        self._history = history
        self.current: float | None = None
        self.follow = True
        self.diff_mode = diff_mode
        self.filter: Predicate | None = None

    # -- read side ---------------------------------------------------------

    @property
    def capture(self) -> Capture | None:
        return self._history.get(self.current)

    def visible(self) -> list[Capture]:
        captures = self._history.newest_first()
        if self.filter is None:
            return captures
        return [c for c in captures if self.filter(c)]

    def index(self) -> int:
        """Position of *current* in visible(), or -1."""
        for i, c in enumerate(self.visible()):
            if c.timestamp == self.current:
                return i
        return -1

    @property
    def filtered(self) -> bool:
        return self.filter is not None

    # -- history hook ------------------------------------------------------

    def on_recorded(self, result: RecordResult) -> bool:
        """Apply a History Store mutation.  Returns True if *current* moved."""
        newest = self._history.newest
        if newest is None:
            return False
        if self.follow or self.current is None:
            return self._move(newest.timestamp)
        if self.current not in self._history:
            # evicted from under the cursor
            oldest = next(iter(self._history))
            return self._move(oldest.timestamp)
        return False

    # -- user intents ------------------------------------------------------

    def follow_latest(self) -> bool:
        self.follow = True
        self.filter = None
        newest = self._history.newest
        if newest is None:
            return False
        return self._move(newest.timestamp)

    def toggle_follow(self) -> bool:
        if self.follow:
            self.follow = False
            return False
        return self.follow_latest()

    def navigate(self, direction: Direction) -> bool:
        self.follow = False
        visible = self.visible()
        if not visible:
            return False
        i = self.index()
        if i == -1:
            return self._move(visible[0].timestamp)
        if direction is Direction.UP:
            i = max(i - 1, 0)
        else:
            i = min(i + 1, len(visible) - 1)
        return self._move(visible[i].timestamp)

    def select(self, capture: Capture) -> bool:
        self.follow = False
        return self._move(capture.timestamp)

    def toggle_diff_mode(self) -> DiffMode:
        self.diff_mode = self.diff_mode.toggled()
        log.debug("diff mode now %s", self.diff_mode.value)
        return self.diff_mode

    def set_filter(self, predicate: Predicate) -> bool:
        """Restrict navigation to captures matching *predicate*.

        Filtering is browsing, so it stops following.  The cursor jumps to
        the first match when the current capture is filtered out.
        """
        self.follow = False
        self.filter = predicate
        visible = self.visible()
        if visible and self.index() == -1:
            return self._move(visible[0].timestamp)
        return False

    def clear_filter(self) -> None:
        self.filter = None

    def _move(self, key: float) -> bool:
        if key == self.current:
            return False
        log.debug("selection -> %r (follow=%s)", key, self.follow)
        self.current = key
        return True
