"""
kernel/registry.py - Calculator registry.

Maps a component type to the pure function that prices it. The
orchestrator looks calculators up by ComponentDefinition.component_type,
so components sharing a formula (the dynamics contracts, the NaaS
packages) share one registration.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union, TYPE_CHECKING
import functools

from naascalc.core.results import CalculationContext, CalculationResult

if TYPE_CHECKING:
    from naascalc.pricing.catalog import PricingRates

CalculatorResult = Union[CalculationResult, Awaitable[CalculationResult]]
CalculatorFunc = Callable[[Mapping[str, Any], CalculationContext], CalculatorResult]


class CalculatorRegistry:
    """Registry of calculator functions keyed by component type."""

    def __init__(self):
        self._calculators: Dict[str, CalculatorFunc] = {}
        self._calculator_metadata: Dict[str, Dict[str, Any]] = {}

    def register(
        self,
        component_type: str,
        calculator: CalculatorFunc,
        description: str = "",
    ) -> None:
        """Register (or replace) the calculator for a component type."""
        self._calculators[component_type] = calculator
        target = calculator.func if isinstance(calculator, functools.partial) else calculator
        self._calculator_metadata[component_type] = {
            "description": description or (target.__doc__ or "").strip().split("\n")[0],
            "name": getattr(target, "__name__", repr(target)),
        }

    def unregister(self, component_type: str) -> bool:
        self._calculator_metadata.pop(component_type, None)
        return self._calculators.pop(component_type, None) is not None

    def has_calculator(self, component_type: str) -> bool:
        return component_type in self._calculators

    def get_calculator(self, component_type: str) -> Optional[CalculatorFunc]:
        return self._calculators.get(component_type)

    def get_metadata(self, component_type: str) -> Dict[str, Any]:
        return dict(self._calculator_metadata.get(component_type, {}))

    def list_calculators(self) -> List[str]:
        """List all registered component types."""
        return list(self._calculators.keys())

    def __contains__(self, component_type: object) -> bool:
        return component_type in self._calculators

    def __len__(self) -> int:
        return len(self._calculators)


def default_registry(rates: Optional["PricingRates"] = None) -> CalculatorRegistry:
    """Registry with the standard pricing calculators bound to ``rates``."""
    from naascalc.pricing import calculators
    from naascalc.pricing.catalog import DEFAULT_RATES

    rates = rates or DEFAULT_RATES
    standard = {
        "help": calculators.calculate_help,
        "prtg": calculators.calculate_prtg,
        "capital": calculators.calculate_capital,
        "support": calculators.calculate_support,
        "onboarding": calculators.calculate_onboarding,
        "pbsFoundation": calculators.calculate_pbs_foundation,
        "assessment": calculators.calculate_assessment,
        "admin": calculators.calculate_admin,
        "otherCosts": calculators.calculate_other_costs,
        "enhancedSupport": calculators.calculate_enhanced_support,
        "naas": calculators.calculate_naas,
        "dynamics": calculators.calculate_dynamics,
    }

    registry = CalculatorRegistry()
    for component_type, func in standard.items():
        registry.register(component_type, functools.partial(func, rates=rates))
    return registry
