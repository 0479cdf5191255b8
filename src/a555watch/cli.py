#!/usr/bin/env python3
"""a555watch — watch a command, keep its history, show what changed.

Runs a command every interval, stores every distinct output and renders
character- or line-level diffs between successive outputs.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from a555watch.classic import run_classic
from a555watch.console import print_err, report
from a555watch.config import ConfigurationError, WatchConfig, parse_duration
from a555watch.screen import run_tui

__all__ = ["main"]

log = logging.getLogger("a555watch")

_LOG_FORMAT = "time=%(asctime)s level=%(levelname)s source=%(filename)s:%(lineno)d msg=%(message)s"

# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

def _get_version() -> str:
    try:
        from importlib.metadata import version
        return version("a555watch")
    except Exception:
        from a555watch import __version__
        return __version__

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def _setup_logging(path: Path | None, debug: bool) -> None:
    """Send the package's log records to *path* (appending).

    Without a path nothing is logged: the package logger only carries its
    NullHandler.
    """
    if path is None:
        return
    try:
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot open log file: {exc}") from exc
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    log.addHandler(handler)
    log.setLevel(logging.DEBUG if debug else logging.INFO)
    log.propagate = False

# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="a555watch", add_help=False, allow_abbrev=False)
    p.add_argument("-h", "--help", action="store_true", default=False)
    p.add_argument("-V", "-v", "--version", action="store_true", default=False)
    p.add_argument("-n", "--interval", default="2s", metavar="DURATION",
                   help="Time to wait between updates")
    p.add_argument("-e", "--errexit", action="store_true", default=False,
                   help="Exit if command has a non-zero exit")
    p.add_argument("-g", "--chgexit", action="store_true", default=False,
                   help="Exit when the output of command changes")
    p.add_argument("--no-tui", dest="no_tui", action="store_true", default=False,
                   help="Do not use the TUI")
    p.add_argument("--no-alt", dest="no_alt", action="store_true", default=False,
                   help="Do not start the TUI in alt screen")
    p.add_argument("--log", default="", metavar="FILE",
                   help="Write debug logs to file")
    p.add_argument("--debug", action="store_true", default=False,
                   help="Enable tracing logs")
    p.add_argument("--max-history", dest="max_history", type=int, default=0, metavar="N",
                   help="Keep at most N captures (0 = unbounded)")
    p.add_argument("command", nargs=argparse.REMAINDER)
    return p


# Module-level parser instance (importable for tests)
_PARSER = _build_parser()


def _build_config(ns: argparse.Namespace) -> WatchConfig:
    """Turn parsed flags into the immutable configuration."""
    command = list(ns.command)
    # REMAINDER keeps an explicit end-of-options marker
    if command[:1] == ["--"]:
        command = command[1:]
    return WatchConfig(
        command=tuple(command),
        interval=parse_duration(ns.interval),
        errexit=ns.errexit,
        chgexit=ns.chgexit,
        classic=ns.no_tui,
        alt_screen=not ns.no_alt,
        log_path=Path(ns.log) if ns.log else None,
        debug=ns.debug,
        max_history=ns.max_history,
    )

# ---------------------------------------------------------------------------
# Usage string
# ---------------------------------------------------------------------------

USAGE = """\
a555watch — a `watch` that remembers.

Usage:
  a555watch [options] <command> [args...]
  a555watch --help | --version

Options:
  -n, --interval <dur>  Time to wait between updates (default 2s).
                        Accepts 500ms, 2s, 1m30s or plain seconds.
  -e, --errexit         Exit if command has a non-zero exit
  -g, --chgexit         Exit when the output of command changes
      --no-tui          Do not use the TUI; plain clear-and-print loop
      --no-alt          Do not start the TUI in alt screen
      --log <file>      Write logs to file
      --debug           Enable tracing logs (with --log)
      --max-history <n> Keep at most n captures (default: unbounded)

Keys (TUI):
  ⇧+k / ⇧+j             Previous / next capture
  d                     Switch diff mode (line / char)
  f                     Toggle follow (always show newest capture)
  p                     Toggle pause
  tab                   Switch between content and capture list
  /  esc                Filter the capture list / clear the filter
  a                     Toggle alt screen
  ?                     More help
  q                     Quit

Exit status:
  0   quit from the TUI
  1   --errexit / --chgexit triggered, or the command could not be run
      (with --no-tui: the command's own exit status)

Examples:
  a555watch date
  a555watch -n 500ms ls -l
  a555watch -g -n 10s curl -s https://example.com/status
  a555watch --no-tui -e make test
"""

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    try:
        _main(argv)
    except KeyboardInterrupt:
        sys.exit(130)


def _main(argv: list[str] | None = None) -> None:
    raw = list(argv) if argv is not None else sys.argv[1:]

    if not raw:
        print(USAGE)
        sys.exit(1)

    # nargs=REMAINDER: everything from the command name on belongs to the
    # watched command, including option-like strings.
    try:
        ns = _PARSER.parse_args(raw)
    except SystemExit:
        print(USAGE, file=sys.stderr)
        sys.exit(2)

    if ns.help:
        print(USAGE)
        sys.exit(0)

    if ns.version:
        print(f"a555watch {_get_version()}")
        sys.exit(0)

    if not ns.command:
        print("a555watch: error: no command specified\n", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    try:
        config = _build_config(ns)
        _setup_logging(config.log_path, config.debug)
    except ConfigurationError as exc:
        print_err(str(exc))
        sys.exit(1)

    log.debug("startup: %s", config)

    if config.classic:
        sys.exit(run_classic(config))

    try:
        decision = run_tui(config)
    except ConfigurationError as exc:
        print_err(str(exc))
        sys.exit(1)

    report(decision)
    sys.exit(decision.code)


if __name__ == "__main__":
    main()
