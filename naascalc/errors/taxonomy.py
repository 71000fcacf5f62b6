"""
errors/taxonomy.py - Error classification for the calculation engine.

Three failure classes matter to callers:

- GraphConstructionError: fatal, the component graph is unusable.
- UnknownComponentError: caller error, surfaced synchronously.
- CalculationError: recoverable, isolated to one component in a batch.

ErrorRecord is the structured form kept in execution history and attached
to failure events.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from naascalc.dependencies.graph import GraphViolation


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    GRAPH = "graph"
    CALLER = "caller"
    CALCULATION = "calculation"
    CONFIGURATION = "configuration"


class ErrorCode(Enum):
    """Specific error codes."""

    # Graph (1xxx)
    GRF_CYCLE = 1001
    GRF_SELF_REFERENCE = 1002
    GRF_DANGLING = 1003
    GRF_LEVEL = 1004
    GRF_DUPLICATE = 1005

    # Caller (2xxx)
    CAL_UNKNOWN_COMPONENT = 2001

    # Calculation (3xxx)
    CLC_RAISED = 3001
    CLC_INVALID_RESULT = 3002
    CLC_NO_CALCULATOR = 3003
    CLC_INVALID_PARAMS = 3004

    # Configuration (4xxx)
    CFG_INVALID = 4001


# =============================================================================
# EXCEPTIONS
# =============================================================================

class NaaSCalcError(Exception):
    """Base exception for the calculation engine."""

    code: ErrorCode = ErrorCode.CLC_RAISED
    category: ErrorCategory = ErrorCategory.CALCULATION
    severity: ErrorSeverity = ErrorSeverity.ERROR


class GraphConstructionError(NaaSCalcError):
    """Raised when the component graph fails validation at construction."""

    code = ErrorCode.GRF_CYCLE
    category = ErrorCategory.GRAPH
    severity = ErrorSeverity.CRITICAL

    def __init__(self, violations: List["GraphViolation"]):
        self.violations = list(violations)
        details = "; ".join(str(v) for v in self.violations)
        super().__init__(
            f"Invalid component graph ({len(self.violations)} violations): {details}"
        )


class UnknownComponentError(NaaSCalcError, KeyError):
    """Raised when an unregistered component id is used."""

    code = ErrorCode.CAL_UNKNOWN_COMPONENT
    category = ErrorCategory.CALLER

    def __init__(self, component_id: str):
        self.component_id = component_id
        super().__init__(f"Unknown component type: {component_id}")

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return self.args[0]


class CalculationError(NaaSCalcError):
    """A component calculation failed. Never escapes its batch slot."""

    code = ErrorCode.CLC_RAISED
    category = ErrorCategory.CALCULATION

    def __init__(
        self,
        component_id: str,
        message: str,
        cause: Optional[BaseException] = None,
        code: ErrorCode = ErrorCode.CLC_RAISED,
    ):
        self.component_id = component_id
        self.cause = cause
        self.code = code
        super().__init__(f"{component_id}: {message}")
        self.message = message


# =============================================================================
# STRUCTURED RECORD
# =============================================================================

@dataclass
class ErrorRecord:
    """Structured error representation."""

    error_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    code: ErrorCode = ErrorCode.CLC_RAISED
    category: ErrorCategory = ErrorCategory.CALCULATION
    severity: ErrorSeverity = ErrorSeverity.ERROR

    message: str = ""
    component_id: Optional[str] = None
    batch_id: Optional[str] = None
    exception_type: Optional[str] = None

    recoverable: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        component_id: Optional[str] = None,
        batch_id: Optional[str] = None,
    ) -> "ErrorRecord":
        """Build a record from any exception, unwrapping CalculationError."""
        if isinstance(exc, NaaSCalcError):
            root = getattr(exc, "cause", None) or exc
            message = getattr(exc, "message", None) or str(exc)
            return cls(
                code=exc.code,
                category=exc.category,
                severity=exc.severity,
                message=message,
                component_id=component_id or getattr(exc, "component_id", None),
                batch_id=batch_id,
                exception_type=type(root).__name__,
                recoverable=exc.category is ErrorCategory.CALCULATION,
            )

        return cls(
            message=str(exc) or type(exc).__name__,
            component_id=component_id,
            batch_id=batch_id,
            exception_type=type(exc).__name__,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "component_id": self.component_id,
            "batch_id": self.batch_id,
            "exception_type": self.exception_type,
            "recoverable": self.recoverable,
            "created_at": self.created_at.isoformat(),
        }
