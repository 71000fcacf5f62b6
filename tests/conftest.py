"""
naascalc Test Configuration and Fixtures

Provides a manually advanced timer service so debounce behaviour can be
tested without sleeping, plus ready-wired engine fixtures.
"""

import pytest
from typing import Any, Callable, Coroutine, List, Optional

from naascalc.core.quote_store import QuoteStore
from naascalc.dependencies.graph import DependencyGraph, build_default_graph
from naascalc.dependencies.history import ResultStore
from naascalc.kernel.event_dispatcher import EventDispatcher
from naascalc.kernel.orchestrator import CalculationOrchestrator
from naascalc.kernel.registry import default_registry


class ManualTimerHandle:
    """Handle returned by ManualTimerService.call_later."""

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerService:
    """
    Deterministic TimerService for tests.

    Time only moves on advance(). Spawned coroutines are collected and run
    by run_spawned(), so a test decides exactly when a batch executes.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._handles: List[ManualTimerHandle] = []
        self.spawned: List[Coroutine[Any, Any, Any]] = []
        self.fired: List[float] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ManualTimerHandle:
        handle = ManualTimerHandle(self._now + max(0.0, delay_s), callback)
        self._handles.append(handle)
        return handle

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Coroutine[Any, Any, Any]:
        self.spawned.append(coro)
        return coro

    @property
    def active_handles(self) -> List[ManualTimerHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, ms: float) -> None:
        """Move the clock forward, firing due timers in deadline order."""
        target = self._now + ms / 1000.0
        while True:
            due = [h for h in self.active_handles if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            handle.cancelled = True
            self._now = max(self._now, handle.when)
            self.fired.append(handle.when)
            handle.callback()
        self._now = target

    async def run_spawned(self) -> List[Any]:
        """Await every spawned coroutine, including ones spawned meanwhile."""
        results = []
        while self.spawned:
            results.append(await self.spawned.pop(0))
        return results

    def discard_spawned(self) -> None:
        for coro in self.spawned:
            coro.close()
        self.spawned.clear()


@pytest.fixture
def timers():
    service = ManualTimerService()
    yield service
    service.discard_spawned()


@pytest.fixture
def graph() -> DependencyGraph:
    return build_default_graph()


@pytest.fixture
def store(graph) -> QuoteStore:
    return QuoteStore(graph.component_ids)


@pytest.fixture
def dispatcher() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture
def orchestrator(graph, store, dispatcher, timers) -> CalculationOrchestrator:
    """Default graph and calculators on a manual clock, subscribed to the store."""
    orch = CalculationOrchestrator(
        graph=graph,
        provider=store,
        registry=default_registry(),
        dispatcher=dispatcher,
        results=ResultStore(),
        timers=timers,
    )
    store.subscribe(orch.handle_store_change)
    return orch


@pytest.fixture
def capital_params():
    """Factory for capital params with one equipment line."""

    def make(quantity: int = 5, unit_cost: float = 1000, financing: bool = False,
             term_months: Optional[int] = None) -> dict:
        params = {
            "equipment": [{"description": "Switch", "quantity": quantity, "unitCost": unit_cost}],
            "financing": financing,
        }
        if term_months is not None:
            params["termMonths"] = term_months
        return params

    return make
