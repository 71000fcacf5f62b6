"""
naascalc Result Store

Latest result per component plus bounded rolling histories of individual
executions and whole batches. History is diagnostic; nothing in the
calculation path reads it.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional
import logging
import uuid

from naascalc.core.constants import MAX_BATCH_HISTORY_SIZE, MAX_EXECUTION_HISTORY_SIZE
from naascalc.core.results import CalculationResult

logger = logging.getLogger(__name__)


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class ExecutionRecord:
    """One calculator invocation."""
    component_id: str
    duration_ms: float
    success: bool
    error: Optional[str] = None
    batch_id: Optional[str] = None
    record_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "component_id": self.component_id,
            "duration_ms": round(self.duration_ms, 3),
            "success": self.success,
            "error": self.error,
            "batch_id": self.batch_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class BatchRecord:
    """Summary of one executed batch."""
    batch_id: str
    order: List[str]
    sources: Dict[str, str] = field(default_factory=dict)
    levels: Dict[str, int] = field(default_factory=dict)
    totals: Dict[str, Dict[str, float]] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)
    duration_ms: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "timestamp": self.timestamp.isoformat(),
            "calculations": [
                {
                    "component": cid,
                    "level": self.levels.get(cid),
                    "source": self.sources.get(cid, "dependency"),
                }
                for cid in self.order
            ],
            "results": {
                cid: ({"error": True} if cid in self.failed else self.totals.get(cid, {}))
                for cid in self.order
            },
            "failed": list(self.failed),
            "duration_ms": round(self.duration_ms, 3),
        }


# =============================================================================
# RESULT STORE
# =============================================================================

class ResultStore:
    """Latest results and bounded execution history."""

    def __init__(
        self,
        history_size: int = MAX_EXECUTION_HISTORY_SIZE,
        batch_history_size: int = MAX_BATCH_HISTORY_SIZE,
    ):
        if history_size < 1 or batch_history_size < 1:
            raise ValueError("history sizes must be at least 1")
        self._results: Dict[str, CalculationResult] = {}
        self._history: Deque[ExecutionRecord] = deque(maxlen=history_size)
        self._batches: Deque[BatchRecord] = deque(maxlen=batch_history_size)
        self._total_executions = 0

    @property
    def history_size(self) -> int:
        return self._history.maxlen

    @property
    def batch_history_size(self) -> int:
        return self._batches.maxlen

    # ==================== Results ====================

    def get_result(self, component_id: str) -> Optional[CalculationResult]:
        return self._results.get(component_id)

    def set_result(self, component_id: str, result: CalculationResult) -> None:
        self._results[component_id] = result

    def snapshot(self) -> Dict[str, CalculationResult]:
        """Shallow copy of all latest results (results themselves are immutable)."""
        return dict(self._results)

    def clear(self) -> None:
        self._results.clear()
        self._history.clear()
        self._batches.clear()
        logger.info("Result store cleared")

    # ==================== History ====================

    def record_execution(
        self,
        component_id: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
        batch_id: Optional[str] = None,
    ) -> ExecutionRecord:
        record = ExecutionRecord(
            component_id=component_id,
            duration_ms=duration_ms,
            success=success,
            error=error,
            batch_id=batch_id,
        )
        self._history.append(record)
        self._total_executions += 1
        return record

    def record_batch(self, batch: BatchRecord) -> None:
        self._batches.append(batch)
        logger.debug(
            f"Batch {batch.batch_id} recorded: {len(batch.order)} components "
            f"in {batch.duration_ms:.1f}ms"
        )

    def get_history(
        self,
        component_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ExecutionRecord]:
        """Execution records, oldest first, optionally filtered and truncated to the newest ``limit``."""
        records = [
            r for r in self._history
            if component_id is None or r.component_id == component_id
        ]
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records

    def get_batches(self, limit: Optional[int] = None) -> List[BatchRecord]:
        batches = list(self._batches)
        if limit is not None:
            batches = batches[-limit:] if limit > 0 else []
        return batches

    def get_component_stats(self, component_id: str) -> Dict[str, Any]:
        records = self.get_history(component_id)
        failures = sum(1 for r in records if not r.success)
        avg = sum(r.duration_ms for r in records) / len(records) if records else 0.0
        return {
            "component_id": component_id,
            "executions": len(records),
            "failures": failures,
            "average_duration_ms": avg,
            "has_result": component_id in self._results,
        }

    @property
    def total_executions(self) -> int:
        """Executions recorded since construction, including evicted ones."""
        return self._total_executions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": {cid: r.to_dict() for cid, r in self._results.items()},
            "history": [r.to_dict() for r in self._history],
            "batches": [b.to_dict() for b in self._batches],
            "total_executions": self._total_executions,
        }
