"""Tests for HistoryStore dedup and chaining."""

from a555watch.history import HistoryStore


def _record_all(store, outputs, start=0.0, step=2.0):
    results = []
    for i, out in enumerate(outputs):
        results.append(store.record(start + i * step, out))
    return results


# ---------------------------------------------------------------------------
# Dedup
# ---------------------------------------------------------------------------

def test_first_record_always_inserts():
    store = HistoryStore()
    result = store.record(1.0, "")
    assert result.changed is True
    assert result.capture is not None
    assert result.capture.previous is None
    assert len(store) == 1


def test_identical_consecutive_output_is_deduped():
    store = HistoryStore()
    store.record(1.0, "same")
    result = store.record(2.0, "same")
    assert result.deduped
    assert result.changed is False
    assert len(store) == 1


def test_scenario_one_two_two_three():
    store = HistoryStore()
    _record_all(store, ["1", "2", "2", "3"])
    captures = list(store)
    assert [c.content for c in captures] == ["1", "2", "3"]
    assert captures[0].previous is None
    assert captures[1].previous == captures[0].timestamp
    assert captures[2].previous == captures[1].timestamp
    assert store.previous_of(captures[2]) is captures[1]


def test_one_capture_per_run_of_identical_outputs():
    outputs = ["a", "a", "b", "b", "b", "a", "c", "c", "a"]
    store = HistoryStore()
    _record_all(store, outputs)
    assert [c.content for c in store] == ["a", "b", "a", "c", "a"]


def test_non_adjacent_duplicate_counts_as_change():
    store = HistoryStore()
    _record_all(store, ["a", "b"])
    result = store.record(10.0, "a")
    assert result.changed is True
    assert len(store) == 3


def test_dedup_is_exact():
    store = HistoryStore()
    store.record(1.0, "x\n")
    assert store.record(2.0, "x").changed is True
    assert store.record(3.0, "x ").changed is True


# ---------------------------------------------------------------------------
# Ordering and lookup
# ---------------------------------------------------------------------------

def test_timestamps_strictly_increase():
    store = HistoryStore()
    store.record(5.0, "a")
    store.record(5.0, "b")
    store.record(4.0, "c")
    stamps = [c.timestamp for c in store]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == 3


def test_newest_and_newest_first():
    store = HistoryStore()
    _record_all(store, ["a", "b", "c"])
    assert store.newest.content == "c"
    assert [c.content for c in store.newest_first()] == ["c", "b", "a"]


def test_get_and_contains():
    store = HistoryStore()
    capture = store.record(1.0, "a").capture
    assert store.get(capture.timestamp) is capture
    assert capture.timestamp in store
    assert store.get(None) is None
    assert store.get(99.0) is None


def test_display_fields():
    store = HistoryStore()
    capture = store.record(1.0, "one\ntwo\n").capture
    assert capture.n_chars == 8
    assert capture.n_lines == 2
    assert capture.title


def test_empty_store():
    store = HistoryStore()
    assert store.newest is None
    assert len(store) == 0
    assert store.newest_first() == []


# ---------------------------------------------------------------------------
# Bounded history
# ---------------------------------------------------------------------------

def test_unbounded_by_default():
    store = HistoryStore()
    _record_all(store, [str(i) for i in range(100)])
    assert len(store) == 100


def test_max_history_evicts_oldest():
    store = HistoryStore(max_history=2)
    results = _record_all(store, ["a", "b", "c"])
    assert [c.content for c in store] == ["b", "c"]
    assert results[2].evicted == (results[0].capture.timestamp,)
    # the survivor keeps its dangling predecessor key
    oldest = next(iter(store))
    assert oldest.previous == results[0].capture.timestamp
    assert store.previous_of(oldest) is None
