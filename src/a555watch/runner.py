"""Run the watched command once and report what happened as a value."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Sequence, Union

__all__ = [
    "FailedNonZero",
    "FailedToLaunch",
    "Outcome",
    "Succeeded",
    "decode_output",
    "execute",
]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Succeeded:
    output: bytes


@dataclass(frozen=True)
class FailedNonZero:
    output: bytes
    exit_code: int
    stderr: bytes | None = None


@dataclass(frozen=True)
class FailedToLaunch:
    cause: OSError

    def __str__(self) -> str:
        return str(self.cause)


Outcome = Union[Succeeded, FailedNonZero, FailedToLaunch]


def decode_output(data: bytes) -> str:
    """Decode captured bytes losslessly.

    ``surrogateescape`` maps every byte sequence to a distinct string, so two
    captures compare equal as text exactly when their bytes are equal.
    """
    return data.decode("utf-8", errors="surrogateescape")


def _exit_code(returncode: int) -> int:
    # killed by signal N → shell convention 128+N
    if returncode < 0:
        return 128 - returncode
    return returncode


def execute(command: Sequence[str]) -> Outcome:
    """Spawn *command* directly (no shell), wait for it and capture its output.

    Never raises for process-level problems: a command that cannot be
    started comes back as FailedToLaunch.
    """
    try:
        proc = subprocess.run(
            list(command),
            stdin=subprocess.DEVNULL,
            capture_output=True,
        )
    except OSError as exc:
        log.info("launch failed: %s", exc)
        return FailedToLaunch(exc)

    if proc.returncode == 0:
        log.debug("command succeeded, %d bytes", len(proc.stdout))
        return Succeeded(proc.stdout)

    code = _exit_code(proc.returncode)
    log.debug("command exited %d, %d bytes", code, len(proc.stdout))
    return FailedNonZero(proc.stdout, code, proc.stderr or None)
