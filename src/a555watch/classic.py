"""Plain print loop, used with --no-tui."""

from __future__ import annotations

import logging
import sys
import time
from typing import BinaryIO, Callable, Sequence, TextIO

from a555watch.config import WatchConfig
from a555watch.console import report
from a555watch.exits import Reason, evaluate
from a555watch.history import HistoryStore
from a555watch.runner import FailedToLaunch, Outcome, decode_output, execute

__all__ = ["CLEAR", "run_classic"]

log = logging.getLogger(__name__)

CLEAR = b"\x1b[2J\x1b[1;1H"


def run_classic(
    config: WatchConfig,
    runner: Callable[[Sequence[str]], Outcome] = execute,
    sleep: Callable[[float], None] = time.sleep,
    out: BinaryIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Clear, run, print, sleep, forever.  Returns the process exit code.

    Fatal decisions come from the same evaluator as the interactive mode;
    errexit and chgexit end with the child's own exit code.
    """
    out = out if out is not None else sys.stdout.buffer
    err = err if err is not None else sys.stderr
    history = HistoryStore(max_history=1)

    while True:
        out.write(CLEAR + b"\n")
        outcome = runner(config.command)

        result = None
        first = False
        if not isinstance(outcome, FailedToLaunch):
            out.write(outcome.output + b"\n")
            first = history.newest is None
            result = history.record(time.monotonic(), decode_output(outcome.output))
        out.flush()

        decision = evaluate(config, outcome, result, first)
        if decision is not None:
            report(decision, err)
            log.info("classic mode exiting: %s", decision.message)
            if decision.reason is Reason.LAUNCH:
                return decision.code
            return decision.child_code

        sleep(config.interval)
