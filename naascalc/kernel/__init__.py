"""
kernel/ - Calculation orchestration.

Scheduling, event dispatch, calculator registry and timer abstraction.
"""

from .events import (
    CalculationEventType,
    CalculationEvent,
    CalculationScheduledEvent,
    BatchStartedEvent,
    ResultUpdatedEvent,
    CalculationFailedEvent,
    BatchCompletedEvent,
    QueueClearedEvent,
)
from .event_dispatcher import EventDispatcher, EventHandler
from .registry import CalculatorRegistry, CalculatorFunc, default_registry
from .timers import TimerService, TimerHandle, AsyncioTimerService
from .orchestrator import CalculationOrchestrator, CyclePhase, SortMetrics

__all__ = [
    # Events
    "CalculationEventType",
    "CalculationEvent",
    "CalculationScheduledEvent",
    "BatchStartedEvent",
    "ResultUpdatedEvent",
    "CalculationFailedEvent",
    "BatchCompletedEvent",
    "QueueClearedEvent",
    "EventDispatcher",
    "EventHandler",
    # Registry
    "CalculatorRegistry",
    "CalculatorFunc",
    "default_registry",
    # Timers
    "TimerService",
    "TimerHandle",
    "AsyncioTimerService",
    # Orchestrator
    "CalculationOrchestrator",
    "CyclePhase",
    "SortMetrics",
]
