"""Immutable run configuration, built once at startup by the CLI."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "ConfigurationError",
    "DEFAULT_INTERVAL",
    "WatchConfig",
    "format_duration",
    "parse_duration",
]

DEFAULT_INTERVAL = 2.0

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ConfigurationError(Exception):
    """Startup problem (bad flag value, unusable log file, no command)."""

# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s":  1.0,
    "m":  60.0,
    "h":  3600.0,
}

_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_BARE_RE = re.compile(r"^(\d+(?:\.\d*)?|\.\d+)$")


def parse_duration(text: str) -> float:
    """Parse ``2s``, ``500ms``, ``1m30s`` or a bare number of seconds.

    Returns seconds.  Raises ConfigurationError for anything else, and for
    durations that are not strictly positive.
    """
    raw = text.strip()
    if _BARE_RE.match(raw):
        seconds = float(raw)
    else:
        pos = 0
        seconds = 0.0
        for m in _PART_RE.finditer(raw):
            if m.start() != pos:
                break
            seconds += float(m.group(1)) * _UNITS[m.group(2)]
            pos = m.end()
        if pos == 0 or pos != len(raw):
            raise ConfigurationError(f"invalid duration: {text!r}")
    if seconds <= 0:
        raise ConfigurationError(f"interval must be positive: {text!r}")
    return seconds


def format_duration(seconds: float) -> str:
    """Render *seconds* the way durations are typed on the command line."""
    if seconds < 1:
        ms = seconds * 1000
        return f"{ms:g}ms"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{int(hours)}h"
    if hours or minutes:
        out += f"{int(minutes)}m"
    out += f"{round(secs, 3):g}s"
    return out

# ---------------------------------------------------------------------------
# Configuration value
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WatchConfig:
    command: tuple[str, ...]
    interval: float = DEFAULT_INTERVAL
    errexit: bool = False
    chgexit: bool = False
    classic: bool = False
    alt_screen: bool = True
    log_path: Path | None = None
    debug: bool = False
    max_history: int = 0

    def __post_init__(self) -> None:
        if not self.command:
            raise ConfigurationError("no command specified")
        if self.interval <= 0:
            raise ConfigurationError(f"interval must be positive: {self.interval}")
        if self.max_history < 0:
            raise ConfigurationError(f"max history cannot be negative: {self.max_history}")

    @property
    def command_line(self) -> str:
        return " ".join(self.command)
