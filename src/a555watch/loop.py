"""Event loop: one queue, one model, one update function.

``update(model, event)`` is the only code that mutates the model.  It
returns effects (run the command, arm a timer, exit) instead of performing
them; ``EventLoop`` performs them, and the threads it starts talk back only
by posting events onto the queue.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Sequence, Union

from a555watch.config import WatchConfig
from a555watch.diffengine import DiffArtifact, DiffEngine, DiffMode
from a555watch.exits import ExitDecision, Reason, evaluate
from a555watch.history import Capture, HistoryStore
from a555watch.runner import FailedToLaunch, Outcome, decode_output, execute
from a555watch.scheduler import Scheduler
from a555watch.selection import Direction, Predicate, SelectionState

__all__ = [
    "ArmTimer",
    "ClearFilter",
    "CommandCompleted",
    "EventLoop",
    "Exit",
    "FollowLatest",
    "Input",
    "ListEntry",
    "Model",
    "Navigate",
    "Pause",
    "Quit",
    "Redraw",
    "Resume",
    "RunCommand",
    "Select",
    "SetFilter",
    "Start",
    "TimerFired",
    "ToggleDiffMode",
    "ToggleFollow",
    "TogglePause",
    "update",
]

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class TimerFired:
    generation: int


@dataclass(frozen=True)
class CommandCompleted:
    outcome: Outcome
    at: float
    wall: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Navigate:
    direction: Direction


@dataclass(frozen=True)
class FollowLatest:
    pass


@dataclass(frozen=True)
class ToggleFollow:
    pass


@dataclass(frozen=True)
class Select:
    key: float


@dataclass(frozen=True)
class ToggleDiffMode:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class TogglePause:
    pass


@dataclass(frozen=True)
class SetFilter:
    predicate: Predicate


@dataclass(frozen=True)
class ClearFilter:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Input:
    """A raw key press, translated into core events by the front-end."""

    key: str


@dataclass(frozen=True)
class Redraw:
    """No state change; lets the presentation repaint (resize, keys it
    handles itself)."""

# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RunCommand:
    command: tuple[str, ...]


@dataclass(frozen=True)
class ArmTimer:
    generation: int
    delay: float


@dataclass(frozen=True)
class Exit:
    decision: ExitDecision


Effect = Union[RunCommand, ArmTimer, Exit]

# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ListEntry:
    key: float
    title: str
    chars: int
    lines: int
    edit_distance: int | None = None
    insertions: int | None = None
    deletions: int | None = None

    @property
    def description(self) -> str:
        def fmt(v: int | None) -> str:
            return "n/a" if v is None else str(v)
        return (
            f"chars={self.chars} lines={self.lines} lev={fmt(self.edit_distance)}"
            f" +{fmt(self.insertions)} -{fmt(self.deletions)}"
        )


class Model:
    """Everything the core knows, plus read accessors for presentation."""

    def __init__(
        self,
        config: WatchConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.clock = clock
        self.history = HistoryStore(config.max_history)
        self.engine = DiffEngine(self.history)
        self.selection = SelectionState(self.history)
        self.scheduler = Scheduler(config.interval)
        self.last_outcome: Outcome | None = None
        self.exit: ExitDecision | None = None
        self.runs = 0

    @property
    def current(self) -> Capture | None:
        return self.selection.capture

    @property
    def diff_mode(self) -> DiffMode:
        return self.selection.diff_mode

    @property
    def follow(self) -> bool:
        return self.selection.follow

    @property
    def paused(self) -> bool:
        return self.scheduler.paused

    def remaining(self) -> float | None:
        return self.scheduler.remaining(self.clock())

    def artifact(self) -> DiffArtifact | None:
        capture = self.current
        if capture is None:
            return None
        return self.engine.diff_of(capture, self.diff_mode)

    def content(self) -> str:
        artifact = self.artifact()
        return "" if artifact is None else artifact.pretty_text

    def entries(self) -> list[ListEntry]:
        out = []
        for c in self.selection.visible():
            art = self.engine.cached(c, self.diff_mode) or self.engine.cached(
                c, self.diff_mode.toggled()
            )
            if art is None or self.history.previous_of(c) is None:
                out.append(ListEntry(c.timestamp, c.title, c.n_chars, c.n_lines))
            else:
                out.append(ListEntry(
                    c.timestamp, c.title, c.n_chars, c.n_lines,
                    art.edit_distance, art.insertions, art.deletions,
                ))
        return out

    def refresh(self) -> None:
        """Compute the displayed diff now, inside the handler that moved the
        selection."""
        self.artifact()

# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

def _arm(model: Model, generation: int | None) -> list[Effect]:
    if generation is None:
        return []
    return [ArmTimer(generation, model.config.interval)]


def _run(model: Model) -> list[Effect]:
    model.runs += 1
    return [RunCommand(model.config.command)]


def _on_start(model: Model, event: Start) -> list[Effect]:
    if model.scheduler.start():
        return _run(model)
    return []


def _on_timer(model: Model, event: TimerFired) -> list[Effect]:
    if model.scheduler.timeout(event.generation):
        return _run(model)
    return []


def _on_completed(model: Model, event: CommandCompleted) -> list[Effect]:
    outcome = event.outcome
    if model.scheduler.paused and not isinstance(outcome, FailedToLaunch):
        # the run started before the pause; nothing is recorded while paused
        log.debug("paused, discarding %s", type(outcome).__name__)
        model.scheduler.completed(model.clock())
        return []

    model.last_outcome = outcome
    log.debug("command completed: %s", type(outcome).__name__)

    result = None
    first = False
    if not isinstance(outcome, FailedToLaunch):
        first = model.history.newest is None
        result = model.history.record(event.at, decode_output(outcome.output), event.wall)
        for key in result.evicted:
            model.engine.forget(key)
        if model.selection.on_recorded(result):
            model.refresh()

    decision = evaluate(model.config, outcome, result, first)
    if decision is not None:
        log.info("exiting: %s", decision.message)
        model.exit = decision
        return [Exit(decision)]

    return _arm(model, model.scheduler.completed(model.clock()))


def _on_navigate(model: Model, event: Navigate) -> list[Effect]:
    if model.selection.navigate(event.direction):
        model.refresh()
    return []


def _on_follow(model: Model, event: FollowLatest) -> list[Effect]:
    if model.selection.follow_latest():
        model.refresh()
    return []


def _on_toggle_follow(model: Model, event: ToggleFollow) -> list[Effect]:
    if model.selection.toggle_follow():
        model.refresh()
    return []


def _on_select(model: Model, event: Select) -> list[Effect]:
    capture = model.history.get(event.key)
    if capture is not None and model.selection.select(capture):
        model.refresh()
    return []


def _on_diff_mode(model: Model, event: ToggleDiffMode) -> list[Effect]:
    model.selection.toggle_diff_mode()
    model.refresh()
    return []


def _on_pause(model: Model, event: Pause) -> list[Effect]:
    model.scheduler.pause()
    return []


def _on_resume(model: Model, event: Resume) -> list[Effect]:
    return _arm(model, model.scheduler.resume(model.clock()))


def _on_toggle_pause(model: Model, event: TogglePause) -> list[Effect]:
    effects = _arm(model, model.scheduler.toggle_pause(model.clock()))
    log.debug("timer toggle, paused=%s", model.scheduler.paused)
    return effects


def _on_set_filter(model: Model, event: SetFilter) -> list[Effect]:
    if model.selection.set_filter(event.predicate):
        model.refresh()
    return []


def _on_clear_filter(model: Model, event: ClearFilter) -> list[Effect]:
    model.selection.clear_filter()
    return []


def _on_quit(model: Model, event: Quit) -> list[Effect]:
    model.exit = ExitDecision(Reason.QUIT, "", code=0)
    return [Exit(model.exit)]


def _on_redraw(model: Model, event: Redraw) -> list[Effect]:
    return []


_HANDLERS: dict[type, Callable[[Model, object], list[Effect]]] = {
    Start:            _on_start,
    TimerFired:       _on_timer,
    CommandCompleted: _on_completed,
    Navigate:         _on_navigate,
    FollowLatest:     _on_follow,
    ToggleFollow:     _on_toggle_follow,
    Select:           _on_select,
    ToggleDiffMode:   _on_diff_mode,
    Pause:            _on_pause,
    Resume:           _on_resume,
    TogglePause:      _on_toggle_pause,
    SetFilter:        _on_set_filter,
    ClearFilter:      _on_clear_filter,
    Quit:             _on_quit,
    Redraw:           _on_redraw,
}


def update(model: Model, event: object) -> list[Effect]:
    """Apply *event* to *model* and return the effects to perform."""
    log.debug("event %s", type(event).__name__)
    if model.exit is not None:
        return []
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"unknown event: {event!r}")
    return handler(model, event)

# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class EventLoop:
    """Runs ``update`` on events taken one at a time from a queue.

    *runner* executes the command on a worker thread; *on_update* is called
    with the model after every handled event and every *refresh* seconds of
    idleness, so a front-end can repaint a countdown.  *on_input* turns an
    Input key into core events, on the loop thread.
    """

    def __init__(
        self,
        model: Model,
        runner: Callable[[Sequence[str]], Outcome] = execute,
        on_update: Callable[[Model], None] | None = None,
        on_input: Callable[[Model, str], list] | None = None,
        refresh: float = 1.0,
    ) -> None:
        self.model = model
        self.queue: queue.Queue = queue.Queue()
        self._runner = runner
        self._on_update = on_update
        self._on_input = on_input
        self._refresh = refresh
        self._timers: list[threading.Timer] = []

    def post(self, event: object) -> None:
        self.queue.put(event)

    def run(self) -> ExitDecision:
        self.post(Start())
        try:
            while True:
                try:
                    event = self.queue.get(timeout=self._refresh)
                except queue.Empty:
                    self._notify()
                    continue
                for item in self._expand(event):
                    for effect in update(self.model, item):
                        self._perform(effect)
                self._notify()
                if self.model.exit is not None:
                    return self.model.exit
        finally:
            for t in self._timers:
                t.cancel()
            self._timers.clear()

    def _expand(self, event: object) -> list:
        if not isinstance(event, Input):
            return [event]
        if self._on_input is None:
            return []
        return self._on_input(self.model, event.key)

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.model)

    def _perform(self, effect: Effect) -> None:
        if isinstance(effect, RunCommand):
            worker = threading.Thread(
                target=self._execute, args=(effect.command,),
                name="a555watch-command", daemon=True,
            )
            worker.start()
        elif isinstance(effect, ArmTimer):
            self._timers = [t for t in self._timers if t.is_alive()]
            timer = threading.Timer(effect.delay, self.post, args=(TimerFired(effect.generation),))
            timer.daemon = True
            timer.start()
            self._timers.append(timer)
        elif isinstance(effect, Exit):
            log.debug("exit requested (%s)", effect.decision.reason.value)

    def _execute(self, command: Sequence[str]) -> None:
        outcome = self._runner(command)
        self.post(CommandCompleted(outcome, self.model.clock()))
