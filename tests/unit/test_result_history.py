"""
Unit tests for ResultStore.

Tests latest-result storage and bounded execution/batch history.
"""

import pytest

from naascalc.core.results import CalculationResult, Totals
from naascalc.dependencies.history import BatchRecord, ExecutionRecord, ResultStore


class TestResults:
    """Latest result per component."""

    def test_set_and_get(self):
        store = ResultStore()
        result = CalculationResult(totals=Totals(monthly=10))
        store.set_result("support", result)
        assert store.get_result("support") is result
        assert store.get_result("capital") is None

    def test_snapshot_is_a_copy(self):
        store = ResultStore()
        store.set_result("a", CalculationResult())
        snap = store.snapshot()
        snap["b"] = CalculationResult()
        assert store.get_result("b") is None

    def test_clear(self):
        store = ResultStore()
        store.set_result("a", CalculationResult())
        store.record_execution("a", 1.0, True)
        store.clear()
        assert store.snapshot() == {}
        assert store.get_history() == []


class TestExecutionHistory:
    """Rolling execution history."""

    def test_history_bounded(self):
        store = ResultStore(history_size=3)
        for i in range(5):
            store.record_execution(f"c{i}", float(i), True)

        history = store.get_history()
        assert [r.component_id for r in history] == ["c2", "c3", "c4"]
        assert store.total_executions == 5

    def test_filter_and_limit(self):
        store = ResultStore()
        store.record_execution("a", 1.0, True)
        store.record_execution("b", 2.0, False, "boom")
        store.record_execution("a", 3.0, True)

        assert len(store.get_history("a")) == 2
        assert [r.duration_ms for r in store.get_history(limit=2)] == [2.0, 3.0]
        assert store.get_history(limit=0) == []

    def test_component_stats(self):
        store = ResultStore()
        store.record_execution("a", 2.0, True)
        store.record_execution("a", 4.0, False, "bad")
        stats = store.get_component_stats("a")
        assert stats["executions"] == 2
        assert stats["failures"] == 1
        assert stats["average_duration_ms"] == pytest.approx(3.0)
        assert stats["has_result"] is False

    def test_record_to_dict(self):
        record = ExecutionRecord("a", 1.23456, False, "err", "batch1")
        data = record.to_dict()
        assert data["duration_ms"] == 1.235
        assert data["error"] == "err"
        assert data["batch_id"] == "batch1"

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            ResultStore(history_size=0)


class TestBatchHistory:
    """Rolling batch history."""

    def test_batches_bounded(self):
        store = ResultStore(batch_history_size=2)
        for i in range(3):
            store.record_batch(BatchRecord(batch_id=f"b{i}", order=["a"]))
        assert [b.batch_id for b in store.get_batches()] == ["b1", "b2"]
        assert [b.batch_id for b in store.get_batches(limit=1)] == ["b2"]

    def test_batch_record_to_dict(self):
        record = BatchRecord(
            batch_id="b1",
            order=["capital", "support"],
            sources={"capital": "user"},
            levels={"capital": 0, "support": 1},
            totals={"capital": {"monthly": 0.0}},
            failed=["support"],
        )
        data = record.to_dict()
        assert data["calculations"][0] == {"component": "capital", "level": 0, "source": "user"}
        assert data["calculations"][1]["source"] == "dependency"
        assert data["results"]["support"] == {"error": True}
        assert not record.success
