"""
errors/ - Error taxonomy for the calculation engine.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    ErrorRecord,
    NaaSCalcError,
    GraphConstructionError,
    UnknownComponentError,
    CalculationError,
)

__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "ErrorRecord",
    "NaaSCalcError",
    "GraphConstructionError",
    "UnknownComponentError",
    "CalculationError",
]
