"""Lazy, memoized diffs between a capture and its predecessor."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from a555watch import diff
from a555watch.history import Capture, HistoryStore

__all__ = ["DiffArtifact", "DiffEngine", "DiffMode"]

log = logging.getLogger(__name__)


class DiffMode(enum.Enum):
    CHAR = "char"
    LINE = "line"

    def toggled(self) -> DiffMode:
        return DiffMode.LINE if self is DiffMode.CHAR else DiffMode.CHAR


@dataclass(frozen=True)
class DiffArtifact:
    mode: DiffMode
    pretty_text: str
    edit_distance: int = 0
    insertions: int = 0
    deletions: int = 0


class DiffEngine:
    """Computes each (capture, mode) artifact at most once.

    Artifacts are keyed by capture timestamp; the store decides which
    capture precedes which.
    """

    def __init__(self, history: HistoryStore) -> None:
        self._history = history
        self._cache: dict[tuple[float, DiffMode], DiffArtifact] = {}
        self.computed = 0

    def cached(self, capture: Capture, mode: DiffMode) -> DiffArtifact | None:
        return self._cache.get((capture.timestamp, mode))

    def diff_of(self, capture: Capture, mode: DiffMode) -> DiffArtifact:
        key = (capture.timestamp, mode)
        artifact = self._cache.get(key)
        if artifact is None:
            artifact = self._compute(capture, mode)
            self._cache[key] = artifact
            self.computed += 1
        return artifact

    def forget(self, timestamp: float) -> None:
        for mode in DiffMode:
            self._cache.pop((timestamp, mode), None)

    def _compute(self, capture: Capture, mode: DiffMode) -> DiffArtifact:
        previous = self._history.previous_of(capture)
        if previous is None:
            log.debug("no predecessor for %s, showing raw content", capture.title)
            return DiffArtifact(mode, capture.content)

        log.debug("computing %s diff for %s", mode.value, capture.title)
        if mode is DiffMode.LINE:
            diffs = diff.diff_lines(previous.content, capture.content)
        else:
            diffs = diff.diff_chars(previous.content, capture.content)

        return DiffArtifact(
            mode=mode,
            pretty_text=diff.pretty_text(diffs),
            edit_distance=diff.levenshtein(diffs),
            insertions=sum(1 for op, _ in diffs if op == diff.INSERT),
            deletions=sum(1 for op, _ in diffs if op == diff.DELETE),
        )
