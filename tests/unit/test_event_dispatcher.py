"""
Unit tests for EventDispatcher and calculation events.

Tests event subscription, emission, failure isolation and history.
"""

import pytest
from unittest.mock import Mock

from naascalc.core.results import CalculationResult, Totals
from naascalc.kernel.event_dispatcher import EventDispatcher
from naascalc.kernel.events import (
    BatchCompletedEvent,
    BatchStartedEvent,
    CalculationEventType,
    CalculationFailedEvent,
    CalculationScheduledEvent,
    QueueClearedEvent,
    ResultUpdatedEvent,
)


class TestEventDispatcherBasics:
    """Tests for basic EventDispatcher functionality."""

    def test_creation(self):
        """Can create an EventDispatcher."""
        dispatcher = EventDispatcher()
        assert dispatcher.handler_count == 0
        assert dispatcher.event_count == 0

    def test_creation_with_history_limit(self):
        """Can create dispatcher with custom history limit."""
        dispatcher = EventDispatcher(max_history=50)
        assert dispatcher._max_history == 50


class TestSubscription:
    """Tests for event subscription."""

    def test_subscribe_to_event_type(self):
        dispatcher = EventDispatcher()
        sub_id = dispatcher.subscribe(CalculationEventType.BATCH_COMPLETED, Mock())
        assert sub_id != ""
        assert dispatcher.handler_count == 1

    def test_duplicate_subscription_ignored(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(CalculationEventType.BATCH_COMPLETED, handler)
        assert dispatcher.subscribe(CalculationEventType.BATCH_COMPLETED, handler) == ""
        assert dispatcher.handler_count == 1

    def test_subscribe_all(self):
        dispatcher = EventDispatcher()
        assert dispatcher.subscribe_all(Mock()).startswith("sub_all_")
        assert dispatcher.get_handler_summary()["wildcard"] == 1

    def test_unsubscribe(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(CalculationEventType.RESULT_UPDATED, handler)
        assert dispatcher.unsubscribe(CalculationEventType.RESULT_UPDATED, handler) is True
        assert dispatcher.unsubscribe(CalculationEventType.RESULT_UPDATED, handler) is False
        assert dispatcher.handler_count == 0

    def test_unsubscribe_all(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)
        assert dispatcher.unsubscribe_all(handler) is True
        assert dispatcher.unsubscribe_all(handler) is False

    def test_clear_handlers(self):
        dispatcher = EventDispatcher()
        dispatcher.subscribe(CalculationEventType.RESULT_UPDATED, Mock())
        dispatcher.subscribe(CalculationEventType.BATCH_STARTED, Mock())
        dispatcher.subscribe_all(Mock())

        dispatcher.clear_handlers(CalculationEventType.RESULT_UPDATED)
        assert dispatcher.handler_count == 2
        dispatcher.clear_handlers()
        assert dispatcher.handler_count == 0


class TestEmission:
    """Tests for event delivery."""

    def test_typed_handler_receives_matching_events(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(CalculationEventType.BATCH_STARTED, handler)

        event = BatchStartedEvent(batch_id="b1", order=["a"])
        dispatcher.emit(event)
        dispatcher.emit(QueueClearedEvent(dropped=1))

        handler.assert_called_once_with(event)

    def test_wildcard_receives_everything(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        dispatcher.emit(BatchStartedEvent())
        dispatcher.emit(QueueClearedEvent())

        assert handler.call_count == 2

    def test_failing_handler_isolated(self):
        dispatcher = EventDispatcher()
        bad = Mock(side_effect=RuntimeError("handler broke"))
        good = Mock()
        dispatcher.subscribe(CalculationEventType.BATCH_STARTED, bad)
        dispatcher.subscribe(CalculationEventType.BATCH_STARTED, good)
        dispatcher.subscribe_all(good)

        dispatcher.emit(BatchStartedEvent())

        assert good.call_count == 2
        assert dispatcher.handler_failures == 1

    def test_pause_drops_events(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        dispatcher.pause()
        assert dispatcher.is_paused
        dispatcher.emit(BatchStartedEvent())
        dispatcher.resume()
        dispatcher.emit(BatchStartedEvent())

        assert handler.call_count == 1
        assert dispatcher.event_count == 1


class TestHistory:
    """Tests for bounded event history."""

    def test_history_bounded(self):
        dispatcher = EventDispatcher(max_history=3)
        for i in range(5):
            dispatcher.emit(QueueClearedEvent(dropped=i))
        assert [e.dropped for e in dispatcher.get_history()] == [2, 3, 4]

    def test_history_filter_and_limit(self):
        dispatcher = EventDispatcher()
        dispatcher.emit(BatchStartedEvent(batch_id="b1"))
        dispatcher.emit(QueueClearedEvent())
        dispatcher.emit(BatchStartedEvent(batch_id="b2"))

        started = dispatcher.get_history(event_type=CalculationEventType.BATCH_STARTED)
        assert [e.batch_id for e in started] == ["b1", "b2"]
        assert len(dispatcher.get_history(limit=1)) == 1
        assert dispatcher.get_history(limit=0) == []

    def test_clear_history(self):
        dispatcher = EventDispatcher()
        dispatcher.emit(QueueClearedEvent())
        dispatcher.clear_history()
        assert dispatcher.event_count == 0


class TestEvents:
    """Tests for event payloads."""

    def test_event_types(self):
        assert CalculationScheduledEvent().event_type is CalculationEventType.CALCULATION_SCHEDULED
        assert ResultUpdatedEvent().event_type is CalculationEventType.RESULT_UPDATED
        assert CalculationFailedEvent().event_type is CalculationEventType.CALCULATION_FAILED
        assert BatchCompletedEvent().event_type is CalculationEventType.BATCH_COMPLETED

    def test_unique_ids(self):
        assert BatchStartedEvent().event_id != BatchStartedEvent().event_id

    def test_result_updated_to_dict(self):
        event = ResultUpdatedEvent(
            batch_id="b1",
            component_id="support",
            result=CalculationResult(totals=Totals(monthly=925)),
        )
        data = event.to_dict()
        assert data["event_type"] == "result_updated"
        assert data["component_id"] == "support"
        assert data["result"]["totals"]["monthly"] == 925

    def test_batch_completed_success(self):
        assert BatchCompletedEvent().success
        event = BatchCompletedEvent(failed=["capital"], results={"capital": CalculationResult.fallback("x")})
        assert not event.success
        assert event.to_dict()["results"]["capital"]["error"] == "x"

    @pytest.mark.parametrize("event_type", list(CalculationEventType))
    def test_event_type_values_are_strings(self, event_type):
        assert isinstance(event_type.value, str)
        assert event_type == event_type.value
