"""
kernel/event_dispatcher.py - Calculation event fan-out.

Each engine instance owns a dispatcher; nothing is registered globally,
so two quote sessions (or two tests) never see each other's events.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional
import itertools
import logging

from naascalc.kernel.events import CalculationEvent, CalculationEventType

logger = logging.getLogger("naascalc.kernel.event_dispatcher")

EventHandler = Callable[[CalculationEvent], None]


@dataclass(frozen=True)
class Subscription:
    """A handler bound to one event type, or to every type when None."""
    sub_id: str
    handler: EventHandler
    event_type: Optional[CalculationEventType] = None

    @property
    def is_wildcard(self) -> bool:
        return self.event_type is None

    def matches(self, event: CalculationEvent) -> bool:
        return self.event_type is None or self.event_type == event.event_type


class EventDispatcher:
    """
    Delivers calculation events to subscribers.

    Typed subscribers run before wildcard subscribers. A handler that
    raises is logged and counted; delivery to the rest continues. The last
    ``max_history`` emitted events are kept for inspection.
    """

    def __init__(self, max_history: int = 100):
        self._max_history = max_history
        self._subscriptions: List[Subscription] = []
        self._history: Deque[CalculationEvent] = deque(maxlen=max_history)
        self._ids = itertools.count(1)
        self._paused = False
        self._handler_failures = 0

    # ==================== Subscriptions ====================

    def subscribe(self, event_type: CalculationEventType, handler: EventHandler) -> str:
        """
        Subscribe to one event type.

        Returns:
            Subscription ID, or "" if the handler was already subscribed
        """
        return self._add(handler, event_type, "sub")

    def subscribe_all(self, handler: EventHandler) -> str:
        """Subscribe to every event type."""
        return self._add(handler, None, "sub_all")

    def _add(
        self,
        handler: EventHandler,
        event_type: Optional[CalculationEventType],
        prefix: str,
    ) -> str:
        if self._find(handler, event_type) is not None:
            return ""
        sub = Subscription(f"{prefix}_{next(self._ids)}", handler, event_type)
        self._subscriptions.append(sub)
        logger.debug(f"Subscribed {sub.sub_id} to {event_type.value if event_type else '*'}")
        return sub.sub_id

    def _find(
        self,
        handler: EventHandler,
        event_type: Optional[CalculationEventType],
    ) -> Optional[Subscription]:
        for sub in self._subscriptions:
            if sub.handler == handler and sub.event_type == event_type:
                return sub
        return None

    def unsubscribe(self, event_type: CalculationEventType, handler: EventHandler) -> bool:
        return self._remove(self._find(handler, event_type))

    def unsubscribe_all(self, handler: EventHandler) -> bool:
        """Remove a wildcard subscription."""
        return self._remove(self._find(handler, None))

    def _remove(self, sub: Optional[Subscription]) -> bool:
        if sub is None:
            return False
        self._subscriptions.remove(sub)
        return True

    def clear_handlers(self, event_type: Optional[CalculationEventType] = None) -> None:
        """Drop subscriptions for one type, or every subscription."""
        if event_type is None:
            self._subscriptions = []
        else:
            self._subscriptions = [s for s in self._subscriptions if s.event_type != event_type]

    # ==================== Delivery ====================

    def emit(self, event: CalculationEvent) -> None:
        if self._paused:
            logger.debug(f"Dispatcher paused, dropping {event.event_type.value}")
            return

        self._history.append(event)
        targets = [s for s in self._subscriptions if s.matches(event)]
        targets.sort(key=lambda s: s.is_wildcard)

        for sub in targets:
            try:
                sub.handler(event)
            except Exception as e:
                self._handler_failures += 1
                logger.error(f"Handler {sub.sub_id} failed on {event.event_type.value}: {e}")

    def pause(self) -> None:
        """Drop events until resume()."""
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    @property
    def is_paused(self) -> bool:
        return self._paused

    # ==================== Inspection ====================

    def get_history(
        self,
        limit: int = 20,
        event_type: Optional[CalculationEventType] = None,
    ) -> List[CalculationEvent]:
        """Most recent events, oldest first."""
        if limit <= 0:
            return []
        events = [e for e in self._history if event_type is None or e.event_type == event_type]
        return events[-limit:]

    def clear_history(self) -> None:
        self._history.clear()

    @property
    def handler_count(self) -> int:
        return len(self._subscriptions)

    @property
    def event_count(self) -> int:
        return len(self._history)

    @property
    def handler_failures(self) -> int:
        return self._handler_failures

    def get_handler_summary(self) -> Dict[str, int]:
        """Subscription count per event type, wildcards under "wildcard"."""
        summary: Dict[str, int] = {}
        for sub in self._subscriptions:
            key = "wildcard" if sub.is_wildcard else sub.event_type.value
            summary[key] = summary.get(key, 0) + 1
        summary.setdefault("wildcard", 0)
        return summary
