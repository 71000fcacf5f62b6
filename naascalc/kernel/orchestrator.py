"""
kernel/orchestrator.py - Calculation orchestrator.

Turns "component X changed" into one ordered recalculation of X and
everything downstream of it:

    schedule_calculation()  closure -> debouncer -> one batch timer
    timer expiry            drain -> live closure -> topological order
                            -> calculator walk -> results + events

A failing calculator only costs its own slot in the batch; it gets a
zero-valued fallback result and the walk continues.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, TYPE_CHECKING
import copy
import inspect
import logging
import math
import time
import uuid

from naascalc.core.constants import (
    CALCULATION_DEBOUNCE_MS,
    CALCULATION_MAX_WAIT_MS,
    SOURCE_DEPENDENCY,
    SOURCE_STORE,
)
from naascalc.core.results import ZERO_TOTALS, CalculationContext, CalculationResult
from naascalc.dependencies.debounce import Debouncer, ScheduledTask
from naascalc.dependencies.history import BatchRecord, ResultStore
from naascalc.errors import CalculationError, ErrorCode, ErrorRecord, UnknownComponentError
from naascalc.kernel.event_dispatcher import EventDispatcher
from naascalc.kernel.events import (
    BatchCompletedEvent,
    BatchStartedEvent,
    CalculationFailedEvent,
    CalculationScheduledEvent,
    QueueClearedEvent,
    ResultUpdatedEvent,
)
from naascalc.kernel.registry import CalculatorRegistry
from naascalc.kernel.timers import AsyncioTimerService, TimerHandle, TimerService

if TYPE_CHECKING:
    from naascalc.core.quote_store import ParamsProvider, StoreChange
    from naascalc.dependencies.graph import DependencyGraph

logger = logging.getLogger(__name__)


class CyclePhase(Enum):
    """Orchestrator state within one schedule/execute cycle."""
    IDLE = "idle"
    CLOSURE_COMPUTED = "closure_computed"
    SCHEDULED = "scheduled"
    EXECUTING = "executing"
    SETTLED = "settled"


@dataclass
class SortMetrics:
    """Timing of the topological sort step."""
    total_sorts: int = 0
    total_sort_time_ms: float = 0.0
    last_sort_time_ms: float = 0.0

    @property
    def average_sort_time_ms(self) -> float:
        return self.total_sort_time_ms / self.total_sorts if self.total_sorts else 0.0

    def record(self, elapsed_ms: float) -> None:
        self.total_sorts += 1
        self.total_sort_time_ms += elapsed_ms
        self.last_sort_time_ms = elapsed_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_sorts": self.total_sorts,
            "total_sort_time_ms": self.total_sort_time_ms,
            "average_sort_time_ms": self.average_sort_time_ms,
            "last_sort_time_ms": self.last_sort_time_ms,
        }


class CalculationOrchestrator:
    """
    Dependency-aware, debounced calculation scheduler.

    Only one batch walk runs at a time. Requests arriving during a walk
    are queued and picked up by a fresh timer once the walk ends.
    """

    def __init__(
        self,
        graph: "DependencyGraph",
        provider: "ParamsProvider",
        registry: CalculatorRegistry,
        dispatcher: Optional[EventDispatcher] = None,
        results: Optional[ResultStore] = None,
        timers: Optional[TimerService] = None,
        debounce_ms: float = CALCULATION_DEBOUNCE_MS,
        max_wait_ms: float = CALCULATION_MAX_WAIT_MS,
    ):
        """
        Args:
            graph: Validated component graph
            provider: Source of params and enabled flags
            registry: Calculators keyed by component type
            dispatcher: Event sink (a private one is created if omitted)
            results: Result store (a private one is created if omitted)
            timers: Clock and timer source (asyncio loop if omitted)
            debounce_ms: Window restarted by every request
            max_wait_ms: Cap on how long a batch can be held back
        """
        self.graph = graph
        self.provider = provider
        self.registry = registry
        self.dispatcher = dispatcher or EventDispatcher()
        self.results = results or ResultStore()
        self.timers = timers or AsyncioTimerService()

        self._debouncer = Debouncer(debounce_ms, max_wait_ms, clock=self.timers.now)
        self._timer_handle: Optional[TimerHandle] = None
        self._processing = False
        self._phase = CyclePhase.IDLE
        self._sort_metrics = SortMetrics()
        self._batches_run = 0

        missing = [
            cid for cid in graph.component_ids
            if not registry.has_calculator(graph.get_definition(cid).component_type)
        ]
        if missing:
            logger.warning(f"No calculator registered for: {', '.join(missing)}")

    # ==================== Properties ====================

    @property
    def phase(self) -> CyclePhase:
        return self._phase

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def pending_ids(self) -> List[str]:
        return self._debouncer.pending_ids

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    # ==================== Scheduling ====================

    def schedule_calculation(
        self,
        component_id: str,
        delay_ms: Optional[float] = None,
        source_tag: str = "user",
    ) -> Set[str]:
        """
        Request recalculation of a component and everything downstream.

        Returns:
            The affected closure that was enqueued

        Raises:
            UnknownComponentError: component_id is not in the graph
        """
        if not self.graph.has_component(component_id):
            raise UnknownComponentError(component_id)

        # The requested component always propagates, so disabling it still
        # refreshes its wildcard dependents.
        enabled = self._read_enabled() | {component_id}
        closure = self.graph.get_affected_closure(component_id, enabled)
        if not self._processing:
            self._phase = CyclePhase.CLOSURE_COMPUTED

        deadline = None
        for cid in self.graph.topological_order(closure, enabled):
            tag = source_tag if cid == component_id else SOURCE_DEPENDENCY
            deadline = self._debouncer.submit(cid, tag, delay_ms)

        logger.debug(
            f"Scheduled {component_id} (source={source_tag}): "
            f"{len(closure)} components, {len(self._debouncer)} pending"
        )

        if not self._processing:
            self._phase = CyclePhase.SCHEDULED
            self._arm_timer()

        self.dispatcher.emit(CalculationScheduledEvent(
            component_id=component_id,
            closure=sorted(closure),
            source_tag=source_tag,
            deadline=deadline,
        ))
        return closure

    def handle_store_change(self, change: "StoreChange") -> None:
        """Store listener: every change reschedules the changed component."""
        if not self.graph.has_component(change.component_id):
            logger.warning(f"Ignoring change for unknown component: {change.component_id}")
            return
        self.schedule_calculation(change.component_id, source_tag=change.source or SOURCE_STORE)

    def _arm_timer(self) -> None:
        if self._processing:
            return
        self._cancel_timer()
        delay = self._debouncer.time_until_due(self.timers.now())
        if delay is None:
            return
        self._timer_handle = self.timers.call_later(delay, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer_handle is not None:
            self._timer_handle.cancel()
            self._timer_handle = None

    def _on_timer(self) -> None:
        self._timer_handle = None
        if self._processing:
            # the running walk re-arms when it finishes
            return
        self.timers.spawn(self.process_pending())

    # ==================== Execution ====================

    async def process_pending(self) -> Optional[BatchCompletedEvent]:
        """
        Run one batch for everything pending.

        Returns the completion event, or None if nothing ran.
        """
        if self._processing or not len(self._debouncer):
            return None

        self._processing = True
        self._cancel_timer()
        try:
            return await self._run_batch(self._debouncer.drain())
        finally:
            self._processing = False
            if len(self._debouncer):
                self._phase = CyclePhase.SCHEDULED
                self._arm_timer()

    async def flush(self) -> Optional[BatchCompletedEvent]:
        """Run pending work now instead of waiting for the timer."""
        return await self.process_pending()

    async def _run_batch(self, tasks: List[ScheduledTask]) -> BatchCompletedEvent:
        batch_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()
        sources = {t.component_id: t.source_tag for t in tasks}

        # Enabled state is read once, at batch start.
        enabled = self._read_enabled()
        closure: Set[str] = set()
        for task in tasks:
            closure |= self.graph.get_affected_closure(
                task.component_id, enabled | {task.component_id}
            )
        self._phase = CyclePhase.CLOSURE_COMPUTED

        report = self.graph.check_relationships(enabled)
        for message in report.errors:
            logger.warning(f"Dependency check: {message}")
        for message in report.warnings:
            logger.debug(f"Dependency check: {message}")

        sort_start = time.perf_counter()
        order = self.graph.topological_order(closure, enabled)
        self._sort_metrics.record((time.perf_counter() - sort_start) * 1000)
        self._phase = CyclePhase.SCHEDULED

        self.dispatcher.emit(BatchStartedEvent(batch_id=batch_id, order=list(order)))
        self._phase = CyclePhase.EXECUTING
        logger.debug(f"Batch {batch_id} executing: {' -> '.join(order)}")

        batch_results: Dict[str, CalculationResult] = {}
        failed: List[str] = []
        for cid in order:
            result, error = await self._execute(cid, enabled, batch_results, batch_id)
            batch_results[cid] = result
            self.results.set_result(cid, result)
            self.dispatcher.emit(ResultUpdatedEvent(
                batch_id=batch_id, component_id=cid, result=result,
            ))
            if result.is_error:
                failed.append(cid)
                self.dispatcher.emit(CalculationFailedEvent(
                    batch_id=batch_id,
                    component_id=cid,
                    error=result.error,
                    error_record=error.to_dict() if error else None,
                ))

        duration_ms = (time.perf_counter() - started) * 1000
        self.results.record_batch(BatchRecord(
            batch_id=batch_id,
            order=list(order),
            sources=sources,
            levels={cid: self.graph.get_level(cid) for cid in order},
            totals={cid: r.totals.to_dict() for cid, r in batch_results.items()},
            failed=list(failed),
            duration_ms=duration_ms,
        ))
        self._batches_run += 1
        self._phase = CyclePhase.SETTLED

        event = BatchCompletedEvent(
            batch_id=batch_id,
            results=dict(batch_results),
            order=list(order),
            failed=list(failed),
            duration_ms=duration_ms,
        )
        self.dispatcher.emit(event)

        logger.info(
            f"Batch {batch_id} completed: {len(order)} components, "
            f"{len(failed)} failed, {duration_ms:.1f}ms"
        )
        return event

    async def _execute(
        self,
        component_id: str,
        enabled: Set[str],
        batch_results: Mapping[str, CalculationResult],
        batch_id: str,
    ) -> Tuple[CalculationResult, Optional[ErrorRecord]]:
        if component_id not in enabled:
            return CalculationResult.disabled(), None

        component_type = self.graph.get_definition(component_id).component_type
        calculator = self.registry.get_calculator(component_type)
        started = time.perf_counter()
        error: Optional[CalculationError] = None
        result: Optional[CalculationResult] = None

        if calculator is None:
            error = CalculationError(
                component_id,
                f"No calculator registered for component type '{component_type}'",
                code=ErrorCode.CLC_NO_CALCULATOR,
            )
        else:
            context = self._build_context(component_id, enabled, batch_results, batch_id)
            params = copy.deepcopy(self.provider.get_component_params(component_id) or {})
            try:
                value = calculator(params, context)
                if inspect.isawaitable(value):
                    value = await value
                result = self._check_result(component_id, value)
            except CalculationError as e:
                error = e
            except Exception as e:
                error = CalculationError(component_id, str(e) or type(e).__name__, cause=e)

        duration_ms = (time.perf_counter() - started) * 1000

        if error is not None:
            logger.error(f"Calculation failed for {component_id}: {error.message}")
            record = ErrorRecord.from_exception(error, component_id, batch_id)
            self.results.record_execution(
                component_id, duration_ms, False, error.message, batch_id
            )
            fallback = CalculationResult.fallback(
                error.message, component_id=component_id, code=error.code.value
            )
            return fallback, record

        self.results.record_execution(
            component_id, duration_ms, not result.is_error, result.error, batch_id
        )
        return result, None

    def _check_result(self, component_id: str, value: Any) -> CalculationResult:
        if isinstance(value, Mapping):
            try:
                value = CalculationResult.from_dict(value)
            except (TypeError, ValueError) as e:
                raise CalculationError(
                    component_id, f"Malformed result: {e}", cause=e,
                    code=ErrorCode.CLC_INVALID_RESULT,
                ) from e

        if not isinstance(value, CalculationResult):
            raise CalculationError(
                component_id,
                f"Calculator returned {type(value).__name__}, expected CalculationResult",
                code=ErrorCode.CLC_INVALID_RESULT,
            )

        totals = value.totals
        amounts = (totals.one_time, totals.monthly, totals.annual, totals.three_year)
        if not all(math.isfinite(a) for a in amounts) or not totals.is_non_negative():
            raise CalculationError(
                component_id,
                f"Invalid totals: {totals.to_dict()}",
                code=ErrorCode.CLC_INVALID_RESULT,
            )
        if value.is_error and totals != ZERO_TOTALS:
            raise CalculationError(
                component_id,
                f"Error result carries totals: {value.error}",
                code=ErrorCode.CLC_INVALID_RESULT,
            )
        return value

    def _build_context(
        self,
        component_id: str,
        enabled: Set[str],
        batch_results: Mapping[str, CalculationResult],
        batch_id: str,
    ) -> CalculationContext:
        """Dependency results: in-batch first, then last known."""
        deps: Dict[str, CalculationResult] = {}
        for dep in self.graph.get_dependency_ids(component_id, enabled):
            if dep not in enabled:
                deps[dep] = CalculationResult.disabled()
                continue
            result = batch_results.get(dep) or self.results.get_result(dep)
            if result is not None:
                deps[dep] = result
        return CalculationContext(component_id, deps, frozenset(enabled), batch_id)

    def _read_enabled(self) -> Set[str]:
        return {
            cid for cid in self.graph.component_ids
            if self.provider.is_component_enabled(cid)
        }

    # ==================== Queries ====================

    def get_result(self, component_id: str) -> Optional[CalculationResult]:
        return self.results.get_result(component_id)

    def get_results(self) -> Dict[str, CalculationResult]:
        return self.results.snapshot()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "history_count": len(self.results.get_batches()),
            "batches_run": self._batches_run,
            "pending_calculations": self._debouncer.pending_ids,
            "queue_length": len(self._debouncer),
            "coalesced_requests": self._debouncer.coalesced_count,
            "performance_metrics": self._sort_metrics.to_dict(),
            "is_processing": self._processing,
            "phase": self._phase.value,
            "recent_batches": [b.to_dict() for b in self.results.get_batches(limit=5)],
        }

    # ==================== Reset ====================

    def clear_queue(self) -> int:
        """Emergency reset: drop pending work and the armed timer."""
        self._cancel_timer()
        dropped = self._debouncer.clear()
        if not self._processing:
            self._phase = CyclePhase.IDLE
        logger.warning(f"Calculation queue cleared ({dropped} pending dropped)")
        self.dispatcher.emit(QueueClearedEvent(dropped=dropped))
        return dropped

    def close(self) -> None:
        self._cancel_timer()
