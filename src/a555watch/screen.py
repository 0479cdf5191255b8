"""Full-screen terminal front-end.

Only reads the model and turns key presses into core events; all of its own
state (focus, scroll, help, filter prompt) is touched on the loop thread.
"""

from __future__ import annotations

import fcntl
import os
import re
import select
import struct
import sys
import termios
import threading
import tty
from contextlib import contextmanager
from typing import BinaryIO, Callable, Iterator

from a555watch.config import ConfigurationError, WatchConfig, format_duration
from a555watch.exits import ExitDecision
from a555watch.history import Capture
from a555watch.loop import (
    ClearFilter,
    EventLoop,
    Input,
    Model,
    Navigate,
    Quit,
    Redraw,
    SetFilter,
    ToggleDiffMode,
    ToggleFollow,
    TogglePause,
)
from a555watch.selection import Direction

__all__ = ["KeyReader", "Screen", "parse_keys", "run_tui"]

# ---------------------------------------------------------------------------
# Terminal helpers
# ---------------------------------------------------------------------------

ALT_ON = "\x1b[?1049h"
ALT_OFF = "\x1b[?1049l"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"

_ANSI_RE = re.compile(r"\x1b\[[?!0-9;]*[a-zA-Z]")

_STYLE_HEADER = "\x1b[48;5;55;38;5;225m"
_STYLE_TITLE = "\x1b[38;5;219m"
_STYLE_KEY = "\x1b[38;5;141m"
_STYLE_VAL = "\x1b[38;5;219m"
_STYLE_SEP = "\x1b[38;5;19m"
_STYLE_SELECTED = "\x1b[38;5;135m"
_RESET = "\x1b[0m"


def _term_size(fd: int | None = None) -> tuple[int, int]:
    try:
        if fd is None:
            fd = sys.stdout.fileno()
        ts = fcntl.ioctl(fd, termios.TIOCGWINSZ, b"\x00" * 8)
        rows, cols = struct.unpack_from("HH", ts)
        if rows > 0 and cols > 0:
            return rows, cols
    except (OSError, ValueError):
        pass
    return 24, 80


@contextmanager
def _raw_terminal(fd: int):
    """Context manager: put *fd* in raw mode, restore on exit."""
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)


def _clip(line: str, width: int) -> str:
    """Cut *line* to *width* visible cells, keeping escape sequences."""
    out = []
    visible = 0
    pos = 0
    while pos < len(line) and visible < width:
        m = _ANSI_RE.match(line, pos)
        if m:
            out.append(m.group())
            pos = m.end()
            continue
        out.append(line[pos])
        visible += 1
        pos += 1
    # keep colour changes that sit beyond the cut so runs stay balanced
    out.extend(_ANSI_RE.findall(line, pos))
    return "".join(out)


def _visible_len(text: str) -> int:
    return len(_ANSI_RE.sub("", text))

# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

_ESCAPES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[1;2A": "shift+up",
    "\x1b[1;2B": "shift+down",
    "\x1b[5~": "pgup",
    "\x1b[6~": "pgdown",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
}

_CONTROLS = {
    "\x03": "ctrl+c",
    "\t": "tab",
    "\r": "enter",
    "\n": "enter",
    "\x7f": "backspace",
    "\x08": "backspace",
}

_ESC_SEQ_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z~]")


def parse_keys(data: str) -> list[str]:
    """Split a chunk read from the terminal into key names."""
    keys = []
    pos = 0
    while pos < len(data):
        m = _ESC_SEQ_RE.match(data, pos)
        if m:
            name = _ESCAPES.get(m.group())
            if name:
                keys.append(name)
            pos = m.end()
            continue
        ch = data[pos]
        pos += 1
        if ch == "\x1b":
            keys.append("esc")
        elif ch in _CONTROLS:
            keys.append(_CONTROLS[ch])
        elif ch.isprintable():
            keys.append(ch)
    return keys


class KeyReader(threading.Thread):
    """Reads stdin and posts Input events; also posts Redraw on resize."""

    def __init__(self, fd: int, post: Callable[[object], None]) -> None:
        super().__init__(name="a555watch-keys", daemon=True)
        self._fd = fd
        self._post = post
        self._halt = threading.Event()

    def stop(self) -> None:
        self._halt.set()

    def run(self) -> None:
        size = _term_size()
        while not self._halt.is_set():
            try:
                r, _, _ = select.select([self._fd], [], [], 0.1)
            except (ValueError, OSError):
                break
            if self._fd in r:
                try:
                    data = os.read(self._fd, 1024)
                except OSError:
                    break
                if not data:
                    break
                for key in parse_keys(data.decode("utf-8", errors="ignore")):
                    self._post(Input(key))
            new_size = _term_size()
            if new_size != size:
                size = new_size
                self._post(Redraw())

# ---------------------------------------------------------------------------
# Screen
# ---------------------------------------------------------------------------

def _matcher(text: str) -> Callable[[Capture], bool]:
    needle = text.lower()

    def match(capture: Capture) -> bool:
        return needle in capture.title.lower() or needle in capture.content.lower()

    return match


def _yn(v: bool) -> str:
    return "y" if v else "n"


class Screen:
    PAGER = "pager"
    LIST = "list"

    def __init__(
        self,
        config: WatchConfig,
        out: BinaryIO,
        size: Callable[[], tuple[int, int]] = _term_size,
    ) -> None:
        self.config = config
        self.out = out
        self.size = size
        self.focus = self.PAGER
        self.alt = config.alt_screen
        self.scroll = 0
        self.show_help = False
        self.typing: str | None = None
        self.filter_text = ""
        self._shown: float | None = None

    # -- output ------------------------------------------------------------

    def write(self, text: str) -> None:
        self.out.write(text.encode("utf-8", errors="surrogateescape"))
        self.out.flush()

    @contextmanager
    def session(self, fd: int) -> Iterator[None]:
        with _raw_terminal(fd):
            self.write((ALT_ON if self.alt else "") + HIDE_CURSOR)
            try:
                yield
            finally:
                self.write(SHOW_CURSOR + (ALT_OFF if self.alt else "\r\n"))

    # -- input -------------------------------------------------------------

    def on_key(self, model: Model, key: str) -> list:
        """Translate *key* into core events (or handle it locally)."""
        if self.typing is not None:
            return self._on_prompt_key(key)

        if key in ("q", "ctrl+c"):
            return [Quit()]
        if key in ("K", "shift+up"):
            return [Navigate(Direction.UP)]
        if key in ("J", "shift+down"):
            return [Navigate(Direction.DOWN)]
        if key == "d":
            return [ToggleDiffMode()]
        if key == "f":
            return [ToggleFollow()]
        if key == "p":
            return [TogglePause()]
        if key == "/":
            self.typing = ""
            return [Redraw()]
        if key == "esc":
            self.filter_text = ""
            return [ClearFilter()]
        if key == "?":
            self.show_help = not self.show_help
            return [Redraw()]
        if key == "a":
            self.alt = not self.alt
            self.write(ALT_ON if self.alt else ALT_OFF)
            return [Redraw()]
        if key == "tab":
            self.focus = self.LIST if self.focus == self.PAGER else self.PAGER
            return [Redraw()]
        if key == "enter" and self.focus == self.LIST:
            self.focus = self.PAGER
            return [Redraw()]

        if self.focus == self.LIST:
            if key in ("up", "k"):
                return [Navigate(Direction.UP)]
            if key in ("down", "j"):
                return [Navigate(Direction.DOWN)]
            return []

        rows, _ = self.size()
        page = max(rows - 6, 1)
        moves = {
            "up": -1, "k": -1, "down": 1, "j": 1,
            "pgup": -page, "pgdown": page,
            "home": -10**9, "g": -10**9, "end": 10**9, "G": 10**9,
        }
        if key in moves:
            self.scroll = max(self.scroll + moves[key], 0)
            return [Redraw()]
        return []

    def _on_prompt_key(self, key: str) -> list:
        if key == "enter":
            text, self.typing = self.typing, None
            if not text:
                self.filter_text = ""
                return [ClearFilter()]
            self.filter_text = text
            return [SetFilter(_matcher(text))]
        if key in ("esc", "ctrl+c"):
            self.typing = None
            return [Redraw()]
        if key == "backspace":
            self.typing = self.typing[:-1]
            return [Redraw()]
        if len(key) == 1:
            self.typing += key
            return [Redraw()]
        return []

    # -- rendering ---------------------------------------------------------

    def render(self, model: Model) -> None:
        rows, cols = self.size()
        if model.selection.current != self._shown:
            self._shown = model.selection.current
            self.scroll = 0

        header = self._header(model, cols)
        footer = [self._status(model, cols), self._help(cols)]
        body_rows = max(rows - 1 - len(footer), 1)
        if self.focus == self.LIST:
            body = self._list(model, body_rows)
        else:
            body = self._pager(model, body_rows)

        frame = [header, *body, *footer]
        text = "\x1b[H" + "".join(_clip(line, cols) + _RESET + "\x1b[K\r\n" for line in frame[:-1])
        text += _clip(frame[-1], cols) + _RESET + "\x1b[K\x1b[J"
        self.write(text)

    def _header(self, model: Model, cols: int) -> str:
        left = f"Every {format_duration(self.config.interval)}: {self.config.command_line}"
        remaining = model.remaining()
        if model.paused:
            right = "Paused"
        elif remaining is None:
            right = "Running…"
        else:
            right = f"Next in {remaining:.1f}s"
        gap = max(cols - len(left) - len(right) - 2, 1)
        return f"{_STYLE_HEADER} {left}{' ' * gap}{right} "

    def _pager(self, model: Model, height: int) -> list[str]:
        capture = model.current
        title = capture.title if capture is not None else "n/a"
        lines = [f"{_STYLE_TITLE}{title.center(self.size()[1])}{_RESET}"]
        content = model.content().split("\n")
        height -= 1
        self.scroll = min(self.scroll, max(len(content) - height, 0))
        # re-open the colour run that started above the visible window
        carry = ""
        for line in content[:self.scroll]:
            for seq in _ANSI_RE.findall(line):
                carry = "" if seq == _RESET else seq
        window = content[self.scroll:self.scroll + height]
        if window:
            window[0] = carry + window[0]
        lines.extend(window)
        lines.extend([""] * (height - len(window)))
        return lines

    def _list(self, model: Model, height: int) -> list[str]:
        lines = []
        current = model.selection.current
        entries = model.entries()
        per_item = 3
        start = 0
        idx = model.selection.index()
        if idx >= 0 and (idx + 1) * per_item > height:
            start = idx - height // per_item + 1
        for entry in entries[start:]:
            if len(lines) + per_item > height:
                break
            if entry.key == current:
                lines.append(f"{_STYLE_SELECTED}│ {_STYLE_TITLE}{entry.title}{_RESET}")
                lines.append(f"{_STYLE_SELECTED}│ {_RESET}{entry.description}")
            else:
                lines.append(f"  {entry.title}")
                lines.append(f"  {entry.description}")
            lines.append("")
        lines.extend([""] * (height - len(lines)))
        return lines

    def _status(self, model: Model, cols: int) -> str:
        sep = f"{_STYLE_SEP} • {_RESET}"

        def kv(k: str, v: str) -> str:
            return f"{_STYLE_KEY}{k}{_STYLE_SEP}={_STYLE_VAL}{v}{_RESET}"

        n = len(model.selection.visible())
        filtered = "(filtered)" if model.selection.filtered else ""
        selected = f"{model.selection.index() + 1}/{n}{filtered}"
        parts = [
            kv("diff", model.diff_mode.value),
            kv("follow", _yn(model.follow)),
            kv("paused", _yn(model.paused)),
            kv("alt", _yn(self.alt)),
            kv("selected", selected),
        ]
        if self.typing is not None:
            parts.append(kv("filter", self.typing + "▏"))
        elif self.filter_text:
            parts.append(kv("filter", self.filter_text))
        status = sep.join(parts)
        pad = max((cols - _visible_len(status)) // 2, 0)
        return " " * pad + status

    def _help(self, cols: int) -> str:
        if not self.show_help:
            short = f"tab {'content' if self.focus == self.LIST else 'list'} • ? more • q quit"
            return short.center(cols)
        return (
            "↑/k ↓/j scroll • ⇧+k/⇧+j content • d diff • f follow • p pause"
            " • / filter • esc clear • a alt • enter select • ? close • q quit"
        )

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run_tui(config: WatchConfig) -> ExitDecision:
    stdin_fd = sys.stdin.fileno()
    if not os.isatty(stdin_fd) or not sys.stdout.isatty():
        raise ConfigurationError("interactive mode needs a terminal (try --no-tui)")

    model = Model(config)
    screen = Screen(config, sys.stdout.buffer)
    loop = EventLoop(model, on_update=screen.render, on_input=screen.on_key)
    reader = KeyReader(stdin_fd, loop.post)

    with screen.session(stdin_fd):
        reader.start()
        try:
            return loop.run()
        finally:
            reader.stop()
            reader.join(timeout=1)
