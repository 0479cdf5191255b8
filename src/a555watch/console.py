"""Error output shared by the interactive and plain front-ends."""

from __future__ import annotations

import sys
from typing import TextIO

from a555watch.exits import ExitDecision

__all__ = ["ERR_STYLE", "RESET", "print_err", "report"]

ERR_STYLE = "\033[38;5;162m"
RESET = "\033[0m"


def print_err(msg: str, stream: TextIO | None = None) -> None:
    """Print *msg* to stderr, coloured when it is a terminal."""
    stream = stream if stream is not None else sys.stderr
    if stream.isatty():
        msg = f"{ERR_STYLE}{msg}{RESET}"
    print(msg, file=stream)


def report(decision: ExitDecision, stream: TextIO | None = None) -> None:
    """Print why the watch ended, followed by the child's stderr if any."""
    if decision.message:
        print_err(decision.message, stream)
    if decision.detail:
        print_err(decision.detail.rstrip("\n"), stream)
