"""
naascalc Kernel Events

Typed events emitted by the calculation orchestrator. Subscribers (a UI
layer, the CLI, tests) learn about results only through these.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from naascalc.core.results import CalculationResult


# =============================================================================
# EVENT TYPES
# =============================================================================

class CalculationEventType(str, Enum):
    """Types of calculation events."""

    CALCULATION_SCHEDULED = "calculation_scheduled"
    BATCH_STARTED = "batch_started"
    RESULT_UPDATED = "result_updated"
    CALCULATION_FAILED = "calculation_failed"
    BATCH_COMPLETED = "batch_completed"
    QUEUE_CLEARED = "queue_cleared"


# =============================================================================
# BASE EVENT
# =============================================================================

@dataclass
class CalculationEvent:
    """Base class for calculation events."""
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    event_type: CalculationEventType = CalculationEventType.RESULT_UPDATED
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


# =============================================================================
# SCHEDULING EVENTS
# =============================================================================

@dataclass
class CalculationScheduledEvent(CalculationEvent):
    """Emitted when a request has been enqueued with its affected closure."""
    event_type: CalculationEventType = field(default=CalculationEventType.CALCULATION_SCHEDULED)
    component_id: str = ""
    closure: List[str] = field(default_factory=list)
    source_tag: str = "user"
    deadline: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "component_id": self.component_id,
            "closure": list(self.closure),
            "source_tag": self.source_tag,
            "deadline": self.deadline,
        })
        return base


@dataclass
class QueueClearedEvent(CalculationEvent):
    """Emitted on an emergency queue reset."""
    event_type: CalculationEventType = field(default=CalculationEventType.QUEUE_CLEARED)
    dropped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({"dropped": self.dropped})
        return base


# =============================================================================
# BATCH EVENTS
# =============================================================================

@dataclass
class BatchStartedEvent(CalculationEvent):
    """Emitted once the batch order is fixed, before the first calculator runs."""
    event_type: CalculationEventType = field(default=CalculationEventType.BATCH_STARTED)
    batch_id: str = ""
    order: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "batch_id": self.batch_id,
            "order": list(self.order),
        })
        return base


@dataclass
class ResultUpdatedEvent(CalculationEvent):
    """Emitted for every component whose result was replaced."""
    event_type: CalculationEventType = field(default=CalculationEventType.RESULT_UPDATED)
    batch_id: str = ""
    component_id: str = ""
    result: CalculationResult = field(default_factory=CalculationResult)

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "batch_id": self.batch_id,
            "component_id": self.component_id,
            "result": self.result.to_dict(),
        })
        return base


@dataclass
class CalculationFailedEvent(CalculationEvent):
    """Emitted when a calculator failed and a fallback result was stored."""
    event_type: CalculationEventType = field(default=CalculationEventType.CALCULATION_FAILED)
    batch_id: str = ""
    component_id: str = ""
    error: str = ""
    error_record: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "batch_id": self.batch_id,
            "component_id": self.component_id,
            "error": self.error,
            "error_record": self.error_record,
        })
        return base


@dataclass
class BatchCompletedEvent(CalculationEvent):
    """Emitted once per batch with every closure member's result."""
    event_type: CalculationEventType = field(default=CalculationEventType.BATCH_COMPLETED)
    batch_id: str = ""
    results: Dict[str, CalculationResult] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "batch_id": self.batch_id,
            "results": {cid: r.to_dict() for cid, r in self.results.items()},
            "order": list(self.order),
            "failed": list(self.failed),
            "duration_ms": self.duration_ms,
        })
        return base
