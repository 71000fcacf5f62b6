"""
naascalc Debouncer

Coalesces calculation requests into batches. Every new request restarts
one global window; the window can never extend past ``max_wait_ms`` from
the first request of the batch, so a steady stream of input still gets
calculated.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging
import time

from naascalc.core.constants import CALCULATION_DEBOUNCE_MS, CALCULATION_MAX_WAIT_MS

logger = logging.getLogger(__name__)


class DebounceState(Enum):
    """Debouncer states."""
    IDLE = "idle"
    PENDING = "pending"


@dataclass(frozen=True)
class ScheduledTask:
    """A pending request for one component. Latest request wins."""
    component_id: str
    requested_at: float
    source_tag: str = "user"
    delay_ms: float = CALCULATION_DEBOUNCE_MS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_id": self.component_id,
            "requested_at": self.requested_at,
            "source_tag": self.source_tag,
            "delay_ms": self.delay_ms,
        }


class Debouncer:
    """
    Deduplicating, time-windowed request buffer.

    States:
        IDLE     nothing pending, no deadline
        PENDING  at least one task, deadline set

    The debouncer never fires anything itself; the owner arms a timer for
    ``deadline`` and calls ``drain()`` when it expires.
    """

    def __init__(
        self,
        debounce_ms: float = CALCULATION_DEBOUNCE_MS,
        max_wait_ms: float = CALCULATION_MAX_WAIT_MS,
        clock: Optional[Callable[[], float]] = None,
    ):
        if debounce_ms < 0 or max_wait_ms < 0:
            raise ValueError("debounce_ms and max_wait_ms must be non-negative")
        self.debounce_ms = debounce_ms
        self.max_wait_ms = max(max_wait_ms, debounce_ms)
        self._clock = clock or time.monotonic

        self._state = DebounceState.IDLE
        self._pending: Dict[str, ScheduledTask] = {}
        self._opened_at: Optional[float] = None
        self._deadline: Optional[float] = None
        self._coalesced = 0

    @property
    def state(self) -> DebounceState:
        return self._state

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def opened_at(self) -> Optional[float]:
        return self._opened_at

    @property
    def coalesced_count(self) -> int:
        """Requests absorbed into an already pending entry since construction."""
        return self._coalesced

    def submit(
        self,
        component_id: str,
        source_tag: str = "user",
        delay_ms: Optional[float] = None,
    ) -> float:
        """
        Add (or refresh) a pending task and restart the window.

        Returns the new deadline in clock seconds.
        """
        now = self._clock()
        delay = self.debounce_ms if delay_ms is None else max(0.0, delay_ms)

        if self._state is DebounceState.IDLE:
            self._state = DebounceState.PENDING
            self._opened_at = now

        if component_id in self._pending:
            self._coalesced += 1
            logger.debug(f"Coalesced request for {component_id} (source={source_tag})")

        self._pending[component_id] = ScheduledTask(
            component_id=component_id,
            requested_at=now,
            source_tag=source_tag,
            delay_ms=delay,
        )

        self._deadline = min(now + delay / 1000.0, self._opened_at + self.max_wait_ms / 1000.0)
        return self._deadline

    def is_due(self, now: Optional[float] = None) -> bool:
        if self._state is DebounceState.IDLE:
            return False
        now = self._clock() if now is None else now
        return now >= self._deadline

    def time_until_due(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds until the deadline, 0 when overdue, None when idle."""
        if self._state is DebounceState.IDLE:
            return None
        now = self._clock() if now is None else now
        return max(0.0, self._deadline - now)

    @property
    def pending_ids(self) -> List[str]:
        return list(self._pending)

    @property
    def pending(self) -> List[ScheduledTask]:
        return list(self._pending.values())

    def __len__(self) -> int:
        return len(self._pending)

    def drain(self) -> List[ScheduledTask]:
        """Hand over the whole pending batch and return to IDLE."""
        tasks = list(self._pending.values())
        self._reset()
        return tasks

    def clear(self) -> int:
        """Drop everything pending. Returns how many tasks were dropped."""
        count = len(self._pending)
        self._reset()
        if count:
            logger.warning(f"Debouncer cleared, dropped {count} pending tasks")
        return count

    def _reset(self) -> None:
        self._pending = {}
        self._state = DebounceState.IDLE
        self._opened_at = None
        self._deadline = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "pending": [t.to_dict() for t in self._pending.values()],
            "opened_at": self._opened_at,
            "deadline": self._deadline,
            "debounce_ms": self.debounce_ms,
            "max_wait_ms": self.max_wait_ms,
        }
