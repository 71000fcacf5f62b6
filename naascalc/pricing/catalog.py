"""
pricing/catalog.py - Price book.

All monetary values are GBP. Monthly figures are per month, license and
one-time figures are totals.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class PricingRates:
    """Financial rates shared by the financing and escalation formulas."""
    apr_rate: float = 0.05
    cpi_rate: float = 0.03
    default_term_months: int = 36


DEFAULT_RATES = PricingRates()


# =============================================================================
# PRTG MONITORING
# =============================================================================

# (upper sensor bound, tier key); the last tier is open-ended
PRTG_SENSOR_TIERS: List[Tuple[float, str]] = [
    (100, "up_to_100"),
    (500, "up_to_500"),
    (1000, "up_to_1000"),
    (2500, "up_to_2500"),
    (float("inf"), "unlimited"),
]

PRTG_BASE_LICENSE: Dict[str, float] = {
    "up_to_100": 2340,
    "up_to_500": 5850,
    "up_to_1000": 11700,
    "up_to_2500": 23400,
    "unlimited": 46800,
}

PRTG_SETUP_COSTS: Dict[str, float] = {
    "standard": 1500,
    "enhanced": 2500,
    "enterprise": 4000,
}

PRTG_MONTHLY_SERVICE: Dict[str, Dict[str, float]] = {
    "standard": {
        "up_to_100": 250,
        "up_to_500": 450,
        "up_to_1000": 750,
        "up_to_2500": 1200,
        "unlimited": 2000,
    },
    "enhanced": {
        "up_to_100": 450,
        "up_to_500": 750,
        "up_to_1000": 1200,
        "up_to_2500": 1800,
        "unlimited": 3000,
    },
}
# Enterprise monitoring is billed on the enhanced service table.
PRTG_MONTHLY_SERVICE["enterprise"] = PRTG_MONTHLY_SERVICE["enhanced"]

PRTG_LOCATIONS_PER_UNIT = 5
PRTG_RECIPIENTS_PER_UNIT = 10


# =============================================================================
# CAPITAL EQUIPMENT
# =============================================================================

EQUIPMENT_TYPES: Dict[str, Dict[str, object]] = {
    "router_small": {"cost": 2500, "category": "Router"},
    "router_medium": {"cost": 8500, "category": "Router"},
    "router_large": {"cost": 18500, "category": "Router"},
    "switch_24port": {"cost": 1200, "category": "Switch"},
    "switch_48port": {"cost": 2400, "category": "Switch"},
    "firewall_small": {"cost": 3500, "category": "Firewall"},
    "firewall_medium": {"cost": 12000, "category": "Firewall"},
    "firewall_large": {"cost": 25000, "category": "Firewall"},
    "wireless_ap": {"cost": 450, "category": "Wireless"},
    "wireless_controller": {"cost": 2800, "category": "Wireless"},
}


def get_equipment_catalog() -> Dict[str, List[Dict[str, object]]]:
    """Equipment types grouped by category, for selection lists."""
    catalog: Dict[str, List[Dict[str, object]]] = {}
    for key, item in EQUIPMENT_TYPES.items():
        catalog.setdefault(str(item["category"]), []).append({
            "id": key,
            "name": key.replace("_", " ").title(),
            "cost": item["cost"],
        })
    return catalog


# =============================================================================
# SUPPORT
# =============================================================================

SUPPORT_PACKAGES: Dict[str, Dict[str, object]] = {
    "basic": {"hours": "8x5", "monthly_base": 500, "per_device_monthly": 25},
    "standard": {"hours": "12x5", "monthly_base": 750, "per_device_monthly": 35},
    "enhanced": {"hours": "24x7", "monthly_base": 1200, "per_device_monthly": 50},
}

SUPPORT_HOURLY_RATES: Dict[str, float] = {
    "l1_support": 85,
    "l2_support": 125,
    "l3_support": 185,
    "engineer": 225,
}

ENHANCED_SUPPORT_BASE: Dict[str, float] = {
    "enhanced": 1200,
    "premium": 2000,
    "enterprise": 3500,
}
ENHANCED_SUPPORT_PER_DEVICE = 50


# =============================================================================
# ONBOARDING / ASSESSMENT
# =============================================================================

IMPLEMENTATION_BASE: Dict[str, float] = {
    "simple": 2500,
    "standard": 4500,
    "complex": 8500,
    "enterprise": 15000,
}

ONBOARDING_PER_SITE: Dict[str, float] = {
    "simple": 500,
    "standard": 1000,
    "complex": 2000,
}

ONBOARDING_ASSESSMENT: Dict[str, float] = {
    "network": 1500,
    "security": 2000,
    "comprehensive": 3500,
}

ASSESSMENT_DEVICE_BASE = 10
ASSESSMENT_REPORT_COST = 500


# =============================================================================
# PBS FOUNDATION
# =============================================================================

PBS_BASE_MONTHLY = 200
PBS_PER_USER_MONTHLY = 25
PBS_PER_LOCATION_MONTHLY = 100

PBS_FEATURES: Dict[str, float] = {
    "advanced_reporting": 150,
    "api_access": 100,
    "sso_integration": 200,
    "custom_branding": 75,
    "multi_tenant": 300,
    "advanced_analytics": 125,
}


# =============================================================================
# ADMIN
# =============================================================================

ADMIN_REVIEW_COST = 650
ADMIN_TECHNICAL_DAY = 1250
ADMIN_L3_ENGINEERING_DAY = 950
ADMIN_REPORTING_SERVICE = 450
ADMIN_BACKUP_SERVICE = 50


# =============================================================================
# PACKAGES / CONTRACTS
# =============================================================================

NAAS_BASE: Dict[str, float] = {
    "standard": 800,
    "enhanced": 1200,
}
NAAS_PER_DEVICE = 40

DYNAMICS_PER_DEVICE = 25
DYNAMICS_DEFAULT_TERM_YEARS = 3


# =============================================================================
# VOLUME DISCOUNTS
# =============================================================================

# (minimum monthly total, discount), highest threshold first
VOLUME_DISCOUNT_TIERS: List[Tuple[float, float]] = [
    (5000, 0.10),
    (3000, 0.075),
    (1500, 0.05),
]

# (minimum component count, additional discount), largest bundle first
BUNDLE_DISCOUNT_TIERS: List[Tuple[int, float]] = [
    (4, 0.05),
    (3, 0.025),
]

ANNUAL_PAYMENT_DISCOUNT = 0.02
TERM_COMMITMENT_DISCOUNT = 0.03

MAX_MONTHLY_DISCOUNT = 0.20
MAX_ANNUAL_DISCOUNT = 0.25
MAX_TERM_DISCOUNT = 0.30
