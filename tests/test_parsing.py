"""Tests for CLI argument parsing via the module-level _PARSER instance."""

from pathlib import Path

import pytest
from a555watch.cli import _PARSER, _build_config, main
from a555watch.config import ConfigurationError


# ---------------------------------------------------------------------------
# Basic flag parsing
# ---------------------------------------------------------------------------

def test_no_flags():
    ns = _PARSER.parse_args(["ls", "-l", "/tmp"])
    assert ns.interval == "2s"
    assert ns.errexit is False
    assert ns.chgexit is False
    assert ns.no_tui is False
    assert ns.no_alt is False
    assert ns.log == ""
    assert ns.debug is False
    assert ns.max_history == 0
    assert ns.command == ["ls", "-l", "/tmp"]


def test_interval_short():
    ns = _PARSER.parse_args(["-n", "500ms", "date"])
    assert ns.interval == "500ms"
    assert ns.command == ["date"]


def test_interval_long():
    ns = _PARSER.parse_args(["--interval", "1m", "date"])
    assert ns.interval == "1m"
    assert ns.command == ["date"]


def test_errexit_short():
    ns = _PARSER.parse_args(["-e", "date"])
    assert ns.errexit is True


def test_chgexit_long():
    ns = _PARSER.parse_args(["--chgexit", "date"])
    assert ns.chgexit is True


def test_no_tui_and_no_alt():
    ns = _PARSER.parse_args(["--no-tui", "--no-alt", "date"])
    assert ns.no_tui is True
    assert ns.no_alt is True


def test_log_and_debug():
    ns = _PARSER.parse_args(["--log", "/tmp/w.log", "--debug", "date"])
    assert ns.log == "/tmp/w.log"
    assert ns.debug is True


# ---------------------------------------------------------------------------
# Combined short flags
# ---------------------------------------------------------------------------

def test_combined_errexit_chgexit():
    # -eg → -e -g
    ns = _PARSER.parse_args(["-eg", "date"])
    assert ns.errexit is True
    assert ns.chgexit is True
    assert ns.command == ["date"]


def test_combined_with_interval():
    # -en 1s → -e -n 1s
    ns = _PARSER.parse_args(["-en", "1s", "date"])
    assert ns.errexit is True
    assert ns.interval == "1s"


# ---------------------------------------------------------------------------
# REMAINDER behaviour: child flags are NOT consumed
# ---------------------------------------------------------------------------

def test_child_flags_after_command_not_consumed():
    ns = _PARSER.parse_args(["ls", "-e", "-n", "3"])
    assert ns.errexit is False
    assert ns.interval == "2s"
    assert ns.command == ["ls", "-e", "-n", "3"]


def test_child_flags_preserved_in_command():
    ns = _PARSER.parse_args(["-g", "curl", "-s", "--max-time", "2", "http://localhost"])
    assert ns.chgexit is True
    assert ns.command == ["curl", "-s", "--max-time", "2", "http://localhost"]


# ---------------------------------------------------------------------------
# Building the configuration
# ---------------------------------------------------------------------------

def test_build_config():
    ns = _PARSER.parse_args(["-n", "250ms", "-e", "--no-alt", "--log", "w.log", "date", "-u"])
    config = _build_config(ns)
    assert config.command == ("date", "-u")
    assert config.interval == 0.25
    assert config.errexit is True
    assert config.chgexit is False
    assert config.alt_screen is False
    assert config.log_path == Path("w.log")


def test_build_config_drops_option_separator():
    ns = _PARSER.parse_args(["--", "ls", "-l"])
    assert _build_config(ns).command == ("ls", "-l")


def test_build_config_drops_separator_after_flags():
    ns = _PARSER.parse_args(["-n", "1s", "-g", "--", "ls", "--", "x"])
    config = _build_config(ns)
    assert config.command == ("ls", "--", "x")
    assert config.chgexit is True


def test_separator_alone_exits_one(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--"])
    assert exc.value.code == 1
    assert "no command specified" in capsys.readouterr().err


def test_build_config_bad_interval():
    ns = _PARSER.parse_args(["-n", "soon", "date"])
    with pytest.raises(ConfigurationError):
        _build_config(ns)


# ---------------------------------------------------------------------------
# Version / help flags
# ---------------------------------------------------------------------------

def test_version_flag():
    ns = _PARSER.parse_args(["--version"])
    assert ns.version is True


def test_help_flag():
    ns = _PARSER.parse_args(["--help"])
    assert ns.help is True


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--help"])
    assert exc.value.code == 0
    assert "Usage:" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Empty command / startup errors
# ---------------------------------------------------------------------------

def test_empty_command():
    ns = _PARSER.parse_args(["-e"])
    assert ns.command == []


def test_no_command_exits_one(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["-e"])
    assert exc.value.code == 1
    assert "no command specified" in capsys.readouterr().err


def test_unopenable_log_exits_one(tmp_path, capsys):
    bad = tmp_path / "missing-dir" / "w.log"
    with pytest.raises(SystemExit) as exc:
        main(["--no-tui", "--log", str(bad), "true"])
    assert exc.value.code == 1
    assert "Cannot open log file" in capsys.readouterr().err
