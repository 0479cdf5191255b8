"""Tests for running the watched command in a real subprocess."""

import sys

from a555watch.runner import (
    FailedNonZero,
    FailedToLaunch,
    Succeeded,
    decode_output,
    execute,
)


def _py(code):
    return (sys.executable, "-c", code)


def test_success_captures_stdout():
    outcome = execute(_py("print('hello')"))
    assert isinstance(outcome, Succeeded)
    assert outcome.output.replace(b"\r\n", b"\n") == b"hello\n"


def test_nonzero_exit_keeps_output_and_stderr():
    code = "import sys; sys.stdout.write('partial'); sys.stderr.write('boom'); sys.exit(3)"
    outcome = execute(_py(code))
    assert isinstance(outcome, FailedNonZero)
    assert outcome.output == b"partial"
    assert outcome.exit_code == 3
    assert outcome.stderr == b"boom"


def test_nonzero_exit_without_stderr():
    outcome = execute(_py("raise SystemExit(1)"))
    assert isinstance(outcome, FailedNonZero)
    assert outcome.stderr is None


def test_missing_program_is_launch_failure():
    outcome = execute(("a555watch-this-program-does-not-exist",))
    assert isinstance(outcome, FailedToLaunch)
    assert isinstance(outcome.cause, OSError)
    assert str(outcome)


def test_stdin_is_not_inherited():
    outcome = execute(_py("import sys; print(repr(sys.stdin.read()))"))
    assert isinstance(outcome, Succeeded)
    assert outcome.output.strip() == b"''"


def test_decode_output_is_lossless():
    raw = b"ok \xff\xfe \xc3\xa9"
    text = decode_output(raw)
    assert text.encode("utf-8", errors="surrogateescape") == raw
    assert decode_output(b"\xff") != decode_output(b"\xfe")
