"""Deduplicated, append-only history of command outputs."""

from __future__ import annotations

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

__all__ = ["Capture", "HistoryStore", "RecordResult"]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capture:
    """One distinct output of the watched command.

    *timestamp* is a monotonic instant and doubles as the capture's key in
    the store.  *previous* is the key of the capture it replaced, or None for
    the first one.
    """

    timestamp: float
    wall: datetime
    content: str
    previous: float | None = None

    @property
    def title(self) -> str:
        return self.wall.strftime("%Y-%m-%d %H:%M:%S.%f")

    @property
    def n_chars(self) -> int:
        return len(self.content)

    @property
    def n_lines(self) -> int:
        return self.content.count("\n")


@dataclass(frozen=True)
class RecordResult:
    capture: Capture | None
    changed: bool
    evicted: tuple[float, ...] = ()

    @property
    def deduped(self) -> bool:
        return self.capture is None


class HistoryStore:
    """Owns every Capture, keyed by timestamp, oldest first.

    A new output is stored only when it differs from the newest capture.
    With *max_history* > 0 the oldest captures are dropped once the bound is
    exceeded; their successors keep the dangling *previous* key.
    """

    def __init__(self, max_history: int = 0) -> None:
        self._captures: OrderedDict[float, Capture] = OrderedDict()
        self._newest: Capture | None = None
        self._max = max_history

    def __len__(self) -> int:
        return len(self._captures)

    def __iter__(self) -> Iterator[Capture]:
        return iter(self._captures.values())

    def __contains__(self, key: object) -> bool:
        return key in self._captures

    @property
    def newest(self) -> Capture | None:
        return self._newest

    def get(self, key: float | None) -> Capture | None:
        if key is None:
            return None
        return self._captures.get(key)

    def previous_of(self, capture: Capture) -> Capture | None:
        return self.get(capture.previous)

    def newest_first(self) -> list[Capture]:
        return list(reversed(self._captures.values()))

    def record(
        self,
        now: float,
        content: str,
        wall: datetime | None = None,
    ) -> RecordResult:
        newest = self._newest
        if newest is not None and newest.content == content:
            log.debug("output unchanged, not stored")
            return RecordResult(None, False)

        if newest is not None and now <= newest.timestamp:
            now = math.nextafter(newest.timestamp, math.inf)

        capture = Capture(
            timestamp=now,
            wall=wall or datetime.now(),
            content=content,
            previous=newest.timestamp if newest is not None else None,
        )
        self._captures[now] = capture
        self._newest = capture
        log.debug("stored capture %s (%d chars)", capture.title, capture.n_chars)

        evicted = []
        if self._max:
            while len(self._captures) > self._max:
                key, _ = self._captures.popitem(last=False)
                evicted.append(key)
                log.debug("evicted capture %r", key)

        return RecordResult(capture, True, tuple(evicted))
