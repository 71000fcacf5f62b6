"""
Unit tests for the Debouncer.

Tests coalescing, window restart, the max-wait cap and draining.
"""

import pytest

from naascalc.dependencies.debounce import Debouncer, DebounceState, ScheduledTask


class FakeClock:
    def __init__(self):
        self.t = 100.0

    def __call__(self):
        return self.t

    def advance_ms(self, ms):
        self.t += ms / 1000.0


@pytest.fixture
def clock():
    return FakeClock()


class TestDebouncerBasics:
    """Tests for construction and state."""

    def test_starts_idle(self, clock):
        d = Debouncer(clock=clock)
        assert d.state is DebounceState.IDLE
        assert d.deadline is None
        assert len(d) == 0
        assert d.time_until_due() is None
        assert not d.is_due()

    def test_negative_windows_rejected(self):
        with pytest.raises(ValueError):
            Debouncer(debounce_ms=-1)
        with pytest.raises(ValueError):
            Debouncer(max_wait_ms=-5)

    def test_max_wait_never_below_debounce(self):
        d = Debouncer(debounce_ms=100, max_wait_ms=10)
        assert d.max_wait_ms == 100

    def test_submit_opens_window(self, clock):
        d = Debouncer(50, 500, clock=clock)
        deadline = d.submit("capital")
        assert d.state is DebounceState.PENDING
        assert d.opened_at == pytest.approx(100.0)
        assert deadline == pytest.approx(100.05)
        assert d.pending_ids == ["capital"]


class TestCoalescing:
    """Repeated requests collapse into one pending task."""

    def test_same_component_deduplicated(self, clock):
        d = Debouncer(50, 500, clock=clock)
        d.submit("capital", "user")
        clock.advance_ms(10)
        d.submit("capital", "store")

        assert len(d) == 1
        assert d.coalesced_count == 1
        task = d.pending[0]
        assert task.source_tag == "store"
        assert task.requested_at == pytest.approx(100.01)

    def test_each_request_restarts_window(self, clock):
        d = Debouncer(50, 500, clock=clock)
        d.submit("a")
        clock.advance_ms(40)
        d.submit("b")
        assert d.deadline == pytest.approx(100.09)
        clock.advance_ms(45)
        assert not d.is_due()
        clock.advance_ms(6)
        assert d.is_due()

    def test_submission_order_preserved(self, clock):
        d = Debouncer(clock=clock)
        for cid in ("c", "a", "b", "a"):
            d.submit(cid)
        assert d.pending_ids == ["c", "a", "b"]

    def test_per_request_delay(self, clock):
        d = Debouncer(50, 500, clock=clock)
        deadline = d.submit("a", delay_ms=200)
        assert deadline == pytest.approx(100.2)
        assert d.pending[0].delay_ms == 200


class TestMaxWait:
    """A stream of requests cannot hold the batch back indefinitely."""

    def test_deadline_capped(self, clock):
        d = Debouncer(50, 500, clock=clock)
        d.submit("a")
        for _ in range(20):
            clock.advance_ms(40)
            d.submit("a")
            assert d.deadline <= d.opened_at + 0.5 + 1e-9

    def test_due_by_max_wait(self, clock):
        d = Debouncer(50, 500, clock=clock)
        d.submit("a")
        for _ in range(12):
            clock.advance_ms(40)
            d.submit("a")
        # 480ms in; the last submit cannot push past 500ms
        clock.advance_ms(21)
        assert d.is_due()

    def test_time_until_due(self, clock):
        d = Debouncer(50, 500, clock=clock)
        d.submit("a")
        assert d.time_until_due() == pytest.approx(0.05)
        clock.advance_ms(80)
        assert d.time_until_due() == 0.0


class TestDrain:
    """Draining hands over the batch and resets the window."""

    def test_drain_returns_tasks_and_resets(self, clock):
        d = Debouncer(clock=clock)
        d.submit("a")
        d.submit("b", "dependency")
        tasks = d.drain()

        assert [t.component_id for t in tasks] == ["a", "b"]
        assert all(isinstance(t, ScheduledTask) for t in tasks)
        assert d.state is DebounceState.IDLE
        assert d.opened_at is None
        assert len(d) == 0

    def test_new_window_after_drain(self, clock):
        d = Debouncer(50, 500, clock=clock)
        d.submit("a")
        clock.advance_ms(400)
        d.drain()
        clock.advance_ms(10)
        d.submit("b")
        assert d.opened_at == pytest.approx(100.41)
        assert d.deadline == pytest.approx(100.46)

    def test_clear_counts_dropped(self, clock):
        d = Debouncer(clock=clock)
        d.submit("a")
        d.submit("b")
        assert d.clear() == 2
        assert d.clear() == 0
        assert d.state is DebounceState.IDLE

    def test_to_dict(self, clock):
        d = Debouncer(50, 500, clock=clock)
        d.submit("a")
        data = d.to_dict()
        assert data["state"] == "pending"
        assert data["pending"][0]["component_id"] == "a"
        assert data["max_wait_ms"] == 500
