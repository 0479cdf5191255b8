"""The single place that decides whether a command result ends the watch."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from a555watch.config import WatchConfig
from a555watch.history import RecordResult
from a555watch.runner import FailedNonZero, FailedToLaunch, Outcome

__all__ = [
    "ERR_TXT_CHG",
    "ERR_TXT_EXIT",
    "ExitDecision",
    "Reason",
    "evaluate",
]

ERR_TXT_EXIT = "Watched program exit with non-zero exit status"
ERR_TXT_CHG = "Watched program output changed"


class Reason(enum.Enum):
    LAUNCH = "launch"
    ERREXIT = "errexit"
    CHGEXIT = "chgexit"
    QUIT = "quit"


@dataclass(frozen=True)
class ExitDecision:
    reason: Reason
    message: str
    code: int = 1
    # what classic mode exits with
    child_code: int = 0
    detail: str = ""


def evaluate(
    config: WatchConfig,
    outcome: Outcome,
    result: RecordResult | None,
    first: bool,
) -> ExitDecision | None:
    """Return the reason to stop, or None to keep watching.

    *result* is what the History Store did with the output (None when there
    was nothing to record).  *first* is True when that output was the first
    capture ever stored.  Launch failures win over everything else and do
    not depend on any flag.
    """
    if isinstance(outcome, FailedToLaunch):
        return ExitDecision(
            Reason.LAUNCH,
            f"Failed to run command: {outcome.cause}",
            child_code=1,
        )

    child_code = outcome.exit_code if isinstance(outcome, FailedNonZero) else 0

    if isinstance(outcome, FailedNonZero) and config.errexit:
        detail = ""
        if outcome.stderr:
            detail = outcome.stderr.decode("utf-8", errors="replace")
        return ExitDecision(Reason.ERREXIT, ERR_TXT_EXIT, child_code=child_code, detail=detail)

    if config.chgexit and result is not None and result.changed and not first:
        return ExitDecision(Reason.CHGEXIT, ERR_TXT_CHG, child_code=child_code)

    return None
