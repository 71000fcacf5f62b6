"""
core/ - Shared types: results, calculation context, quote store.
"""

from .results import (
    Totals,
    ZERO_TOTALS,
    CalculationResult,
    CalculationContext,
)
from .quote_store import (
    ParamsProvider,
    ComponentState,
    StoreChange,
    QuoteStore,
)

__all__ = [
    "Totals",
    "ZERO_TOTALS",
    "CalculationResult",
    "CalculationContext",
    "ParamsProvider",
    "ComponentState",
    "StoreChange",
    "QuoteStore",
]
