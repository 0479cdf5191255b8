"""Interval timer state machine driving command re-execution.

The scheduler never touches threads or clocks itself: callers pass in the
current monotonic time and turn its answers into effects.  A timer is
identified by a generation number so a timeout that fires after a pause can
be told apart from the live one.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

__all__ = ["Phase", "Scheduler", "SchedulerState"]

log = logging.getLogger(__name__)


class Phase(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    ARMED = "armed"
    PAUSED = "paused"


@dataclass
class SchedulerState:
    interval: float
    paused: bool = False
    armed: bool = False
    running: bool = False
    started: bool = False
    generation: int = 0
    deadline: float | None = None


class Scheduler:
    def __init__(self, interval: float) -> None:
        self.state = SchedulerState(interval=interval)

    @property
    def phase(self) -> Phase:
        s = self.state
        if not s.started:
            return Phase.IDLE
        if s.running:
            return Phase.RUNNING
        if s.paused:
            return Phase.PAUSED
        return Phase.ARMED if s.armed else Phase.IDLE

    @property
    def paused(self) -> bool:
        return self.state.paused

    def remaining(self, now: float) -> float | None:
        """Seconds until the next execution, None when no timer is counting."""
        s = self.state
        if not s.armed or s.deadline is None:
            return None
        return max(s.deadline - now, 0.0)

    def start(self) -> bool:
        """Idle → running.  True when the caller must execute right away."""
        s = self.state
        if s.started:
            return False
        s.started = True
        s.running = True
        return True

    def timeout(self, generation: int) -> bool:
        """An armed timer elapsed.  True when the caller must execute now."""
        s = self.state
        if generation != s.generation or not s.armed or s.running:
            log.debug("ignoring stale timer %d (current %d)", generation, s.generation)
            return False
        s.armed = False
        s.deadline = None
        s.running = True
        return True

    def completed(self, now: float) -> int | None:
        """The in-flight execution was fully handled.

        Returns the generation of a freshly armed timer, or None while paused.
        """
        s = self.state
        s.running = False
        if s.paused:
            return None
        return self._arm(now)

    def pause(self) -> bool:
        s = self.state
        if s.paused:
            return False
        s.paused = True
        if s.armed:
            # remaining time is discarded, the pending timer goes stale
            s.armed = False
            s.deadline = None
            s.generation += 1
        log.debug("scheduler paused")
        return True

    def resume(self, now: float) -> int | None:
        """Returns the generation of a fresh full-interval timer to arm.

        Nothing is armed while a command is in flight; completed() arms it.
        """
        s = self.state
        if not s.paused:
            return None
        s.paused = False
        log.debug("scheduler resumed")
        if s.running or not s.started:
            return None
        return self._arm(now)

    def toggle_pause(self, now: float) -> int | None:
        if self.state.paused:
            return self.resume(now)
        self.pause()
        return None

    def _arm(self, now: float) -> int:
        s = self.state
        s.generation += 1
        s.armed = True
        s.deadline = now + s.interval
        return s.generation
