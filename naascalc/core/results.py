"""
core/results.py - Calculation result and context types.

CalculationResult is immutable: a component's result is replaced as a
whole on every execution, never patched in place.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, Optional


# =============================================================================
# TOTALS
# =============================================================================

@dataclass(frozen=True)
class Totals:
    """Price totals for one component (GBP)."""
    one_time: float = 0.0
    monthly: float = 0.0
    annual: float = 0.0
    three_year: float = 0.0

    def is_non_negative(self) -> bool:
        return min(self.one_time, self.monthly, self.annual, self.three_year) >= 0

    def __add__(self, other: "Totals") -> "Totals":
        return Totals(
            one_time=self.one_time + other.one_time,
            monthly=self.monthly + other.monthly,
            annual=self.annual + other.annual,
            three_year=self.three_year + other.three_year,
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "oneTime": self.one_time,
            "monthly": self.monthly,
            "annual": self.annual,
            "threeYear": self.three_year,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "Totals":
        """Accepts camelCase (UI contract) or snake_case keys."""
        def pick(camel: str, snake: str) -> float:
            value = data.get(camel, data.get(snake, 0))
            return float(value or 0)

        return cls(
            one_time=pick("oneTime", "one_time"),
            monthly=pick("monthly", "monthly"),
            annual=pick("annual", "annual"),
            three_year=pick("threeYear", "three_year"),
        )


ZERO_TOTALS = Totals()


# =============================================================================
# CALCULATION RESULT
# =============================================================================

@dataclass(frozen=True)
class CalculationResult:
    """
    Result of one component calculation.

    A result with ``error`` set is a fallback: all totals are zero and the
    UI should render a degraded state rather than a real zero price.
    """
    totals: Totals = ZERO_TOTALS
    breakdown: Dict[str, float] = field(default_factory=dict)
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def is_disabled(self) -> bool:
        return bool(self.metadata.get("disabled"))

    @classmethod
    def fallback(cls, error: str, **metadata: Any) -> "CalculationResult":
        """Zero-valued result substituted for a failed calculation."""
        return cls(totals=ZERO_TOTALS, breakdown={}, error=error, metadata=metadata)

    @classmethod
    def disabled(cls) -> "CalculationResult":
        return cls(metadata={"disabled": True})

    @classmethod
    def zero(cls) -> "CalculationResult":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "totals": self.totals.to_dict(),
            "breakdown": dict(self.breakdown),
        }
        if self.error is not None:
            data["error"] = self.error
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Mapping) -> "CalculationResult":
        breakdown = data.get("breakdown") or {}
        if not isinstance(breakdown, Mapping):
            raise TypeError(
                f"breakdown must be a mapping, got {type(breakdown).__name__}"
            )
        return cls(
            totals=Totals.from_dict(data.get("totals") or {}),
            breakdown={str(k): float(v) for k, v in breakdown.items()},
            error=data.get("error"),
            metadata=dict(data.get("metadata") or {}),
        )


# =============================================================================
# CALCULATION CONTEXT
# =============================================================================

class CalculationContext(Mapping):
    """
    Read-only view of the dependency results handed to a calculator.

    Maps dependency component id -> CalculationResult. Only the component's
    declared dependencies are present (every enabled non-wildcard component
    for wildcard components).
    """

    def __init__(
        self,
        component_id: str,
        results: Mapping[str, CalculationResult],
        enabled: FrozenSet[str] = frozenset(),
        batch_id: str = "",
    ):
        self._component_id = component_id
        self._results = MappingProxyType(dict(results))
        self._enabled = frozenset(enabled)
        self._batch_id = batch_id

    @property
    def component_id(self) -> str:
        return self._component_id

    @property
    def enabled(self) -> FrozenSet[str]:
        return self._enabled

    @property
    def batch_id(self) -> str:
        return self._batch_id

    def __getitem__(self, key: str) -> CalculationResult:
        return self._results[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def breakdown_value(self, component_id: str, key: str) -> Optional[float]:
        """Value from a dependency's breakdown, or None if unavailable."""
        result = self._results.get(component_id)
        if result is None or result.is_error:
            return None
        return result.breakdown.get(key)

    def sum_totals(self) -> Totals:
        """Sum of every dependency's totals (fallbacks contribute zero)."""
        total = ZERO_TOTALS
        for result in self._results.values():
            total = total + result.totals
        return total

    def __repr__(self) -> str:
        return (
            f"CalculationContext(component_id={self._component_id!r}, "
            f"dependencies={sorted(self._results)!r})"
        )
