"""
pricing/ - Component pricing formulas and the combined quote.
"""

from .catalog import PricingRates, DEFAULT_RATES, get_equipment_catalog
from .calculators import (
    calculate_help,
    calculate_prtg,
    calculate_capital,
    calculate_support,
    calculate_onboarding,
    calculate_pbs_foundation,
    calculate_assessment,
    calculate_admin,
    calculate_other_costs,
    calculate_enhanced_support,
    calculate_naas,
    calculate_dynamics,
    parse_params,
    pmt,
    round_half_up,
)
from .quote import Quote, VolumeDiscounts, build_quote, calculate_volume_discounts

__all__ = [
    "PricingRates",
    "DEFAULT_RATES",
    "get_equipment_catalog",
    "calculate_help",
    "calculate_prtg",
    "calculate_capital",
    "calculate_support",
    "calculate_onboarding",
    "calculate_pbs_foundation",
    "calculate_assessment",
    "calculate_admin",
    "calculate_other_costs",
    "calculate_enhanced_support",
    "calculate_naas",
    "calculate_dynamics",
    "parse_params",
    "pmt",
    "round_half_up",
    "Quote",
    "VolumeDiscounts",
    "build_quote",
    "calculate_volume_discounts",
]
