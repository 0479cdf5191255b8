"""Tests for the exit evaluator."""

import pytest
from a555watch.config import WatchConfig
from a555watch.exits import ERR_TXT_CHG, ERR_TXT_EXIT, Reason, evaluate
from a555watch.history import RecordResult
from a555watch.runner import FailedNonZero, FailedToLaunch, Succeeded

CHANGED = RecordResult(capture=None, changed=True)
UNCHANGED = RecordResult(capture=None, changed=False)


def _config(**kw):
    return WatchConfig(command=("cmd",), **kw)


# ---------------------------------------------------------------------------
# Launch failures
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("errexit", [False, True])
@pytest.mark.parametrize("chgexit", [False, True])
def test_launch_failure_always_fatal(errexit, chgexit):
    outcome = FailedToLaunch(FileNotFoundError(2, "No such file or directory", "nope"))
    decision = evaluate(_config(errexit=errexit, chgexit=chgexit), outcome, None, False)
    assert decision.reason == Reason.LAUNCH
    assert decision.code == 1
    assert decision.message.startswith("Failed to run command:")


# ---------------------------------------------------------------------------
# errexit
# ---------------------------------------------------------------------------

def test_nonzero_without_errexit_continues():
    outcome = FailedNonZero(b"out", 1)
    assert evaluate(_config(), outcome, CHANGED, True) is None


def test_nonzero_with_errexit_is_fatal():
    outcome = FailedNonZero(b"out", 3, b"boom\n")
    decision = evaluate(_config(errexit=True), outcome, CHANGED, True)
    assert decision.reason == Reason.ERREXIT
    assert decision.message == ERR_TXT_EXIT
    assert decision.code == 1
    assert decision.child_code == 3
    assert decision.detail == "boom\n"


def test_success_with_errexit_continues():
    assert evaluate(_config(errexit=True), Succeeded(b"x"), CHANGED, True) is None


# ---------------------------------------------------------------------------
# chgexit
# ---------------------------------------------------------------------------

def test_change_with_chgexit_is_fatal():
    decision = evaluate(_config(chgexit=True), Succeeded(b"b"), CHANGED, False)
    assert decision.reason == Reason.CHGEXIT
    assert decision.message == ERR_TXT_CHG
    assert decision.code == 1
    assert decision.child_code == 0


def test_first_capture_never_triggers_chgexit():
    assert evaluate(_config(chgexit=True), Succeeded(b"a"), CHANGED, True) is None


def test_unchanged_never_triggers_chgexit():
    assert evaluate(_config(chgexit=True), Succeeded(b"a"), UNCHANGED, False) is None


def test_change_without_chgexit_continues():
    assert evaluate(_config(), Succeeded(b"b"), CHANGED, False) is None


def test_errexit_reported_before_chgexit():
    outcome = FailedNonZero(b"b", 2)
    decision = evaluate(_config(errexit=True, chgexit=True), outcome, CHANGED, False)
    assert decision.reason == Reason.ERREXIT


def test_chgexit_carries_child_code():
    outcome = FailedNonZero(b"b", 2)
    decision = evaluate(_config(chgexit=True), outcome, CHANGED, False)
    assert decision.reason == Reason.CHGEXIT
    assert decision.child_code == 2


def test_reasons_are_enum_members():
    outcome = FailedNonZero(b"", 1)
    decision = evaluate(_config(errexit=True), outcome, CHANGED, True)
    assert decision.reason is Reason.ERREXIT
    assert {r.value for r in Reason} == {"launch", "errexit", "chgexit", "quit"}
