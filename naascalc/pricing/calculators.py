"""
pricing/calculators.py - Component pricing functions.

Every calculator has the signature

    calculate_x(params, context, rates=DEFAULT_RATES) -> CalculationResult

``params`` is the component's raw parameter dict, ``context`` holds the
results of its dependencies. Invalid parameters raise CalculationError;
the orchestrator turns that into a fallback result.
"""

from __future__ import annotations
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar
import logging
import math
import re

from pydantic import ValidationError

from naascalc.core.constants import DEFAULT_DEVICE_COUNT, MONTHS_PER_YEAR
from naascalc.core.results import CalculationContext, CalculationResult, Totals
from naascalc.errors import CalculationError, ErrorCode
from naascalc.pricing import catalog
from naascalc.pricing.catalog import DEFAULT_RATES, PricingRates
from naascalc.pricing.schemas import (
    AdminParams,
    AssessmentParams,
    CapitalParams,
    ComponentParams,
    DynamicsParams,
    EnhancedSupportParams,
    NaaSParams,
    OnboardingParams,
    OtherCostsParams,
    PBSFoundationParams,
    PRTGParams,
    SupportParams,
)

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=ComponentParams)


# =============================================================================
# HELPERS
# =============================================================================

def round_half_up(value: float) -> float:
    """Round to whole pounds, halves away from zero for positive amounts."""
    return float(math.floor(value + 0.5))


def parse_params(model: Type[P], params: Optional[Mapping[str, Any]], component_id: str) -> P:
    """Validate raw params against a model, raising CalculationError on failure."""
    try:
        return model.model_validate(dict(params or {}))
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
            for err in e.errors()
        )
        raise CalculationError(
            component_id,
            f"Invalid parameters: {details}",
            cause=e,
            code=ErrorCode.CLC_INVALID_PARAMS,
        ) from e


def pmt(principal: float, annual_rate: float, months: int) -> float:
    """Level monthly payment repaying ``principal`` over ``months``."""
    if principal <= 0 or months <= 0:
        return 0.0
    r = annual_rate / MONTHS_PER_YEAR
    if r <= 0:
        return principal / months
    growth = (1 + r) ** months
    return principal * r * growth / (growth - 1)


def escalated_years(monthly: float, cpi_rate: float, years: Iterable[int]) -> float:
    """Sum of twelve-month costs, each year escalated by CPI from year 1."""
    return sum(monthly * MONTHS_PER_YEAR * (1 + cpi_rate) ** (y - 1) for y in years)


def resolve_device_count(
    context: CalculationContext,
    sources: Tuple[str, ...],
    explicit: Optional[int],
) -> Tuple[int, str]:
    """
    Device count for device-priced components.

    Upstream results win over params so the quote stays consistent with the
    equipment list; returns (count, where it came from).
    A fractional upstream count is rounded up to whole devices.
    """
    for source in sources:
        value = context.breakdown_value(source, "deviceCount")
        if value is not None and value > 0:
            return math.ceil(value), source
    if explicit is not None:
        return explicit, "params"
    return DEFAULT_DEVICE_COUNT, "default"


def _component_id(context: CalculationContext, fallback: str) -> str:
    return context.component_id or fallback


# =============================================================================
# CALCULATORS
# =============================================================================

def calculate_help(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    """Help page carries no cost."""
    return CalculationResult.zero()


def calculate_prtg(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    """PRTG monitoring: annual license by sensor tier plus monthly service."""
    p = parse_params(PRTGParams, params, _component_id(context, "prtg"))

    tier = next(key for bound, key in catalog.PRTG_SENSOR_TIERS if p.sensors <= bound)
    license_cost = catalog.PRTG_BASE_LICENSE[tier]
    setup_cost = catalog.PRTG_SETUP_COSTS[p.service_level]
    service = catalog.PRTG_MONTHLY_SERVICE[p.service_level][tier]

    location_multiplier = max(1.0, p.locations / catalog.PRTG_LOCATIONS_PER_UNIT)
    alert_multiplier = max(1.0, p.alert_recipients / catalog.PRTG_RECIPIENTS_PER_UNIT)
    monthly_service = round_half_up(service * location_multiplier * alert_multiplier)

    return CalculationResult(
        totals=Totals(
            one_time=setup_cost,
            monthly=monthly_service + round_half_up(license_cost / MONTHS_PER_YEAR),
            annual=license_cost + monthly_service * 12,
            three_year=license_cost * 3 + monthly_service * 36 + setup_cost,
        ),
        breakdown={
            "annualLicense": license_cost,
            "oneTimeSetup": setup_cost,
            "monthlyService": monthly_service,
            "sensors": p.sensors,
            "locations": p.locations,
        },
        metadata={"sensorTier": tier, "serviceLevel": p.service_level},
    )


def calculate_capital(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    """Capital equipment, optionally financed at the configured APR."""
    p = parse_params(CapitalParams, params, _component_id(context, "capital"))
    term = p.term_months or rates.default_term_months

    items = [
        {
            "description": item.description,
            "quantity": item.quantity,
            "unitCost": item.unit_cost,
            "totalCost": item.quantity * item.unit_cost,
        }
        for item in p.equipment
    ]
    total_cost = sum(i["totalCost"] for i in items)
    device_count = sum(item.quantity for item in p.equipment)

    breakdown = {
        "totalEquipmentCost": total_cost,
        "deviceCount": device_count,
        "termMonths": term,
    }
    metadata = {"equipment": items, "financing": p.financing}

    if total_cost == 0:
        return CalculationResult(breakdown=breakdown, metadata=metadata)

    down_payment = min(p.down_payment, total_cost)
    payment = 0.0
    if p.financing and total_cost > down_payment:
        loan = total_cost - down_payment
        payment = pmt(loan, rates.apr_rate, term)
        breakdown.update({
            "downPayment": down_payment,
            "loanAmount": loan,
            "monthlyPayment": round_half_up(payment),
            "totalInterest": round_half_up(payment * term - loan),
            "totalPayments": round_half_up(payment * term),
        })

    if p.financing:
        one_time = down_payment
        three_year = round_half_up(down_payment + payment * min(36, term))
    else:
        one_time = total_cost
        three_year = total_cost

    return CalculationResult(
        totals=Totals(
            one_time=one_time,
            monthly=round_half_up(payment),
            annual=round_half_up(payment * 12),
            three_year=three_year,
        ),
        breakdown=breakdown,
        metadata=metadata,
    )


def calculate_support(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    """Support package priced per device, CPI-escalated over the term."""
    p = parse_params(SupportParams, params, _component_id(context, "support"))
    package = catalog.SUPPORT_PACKAGES.get(p.level, catalog.SUPPORT_PACKAGES["standard"])
    term = p.term_months or rates.default_term_months
    device_count, source = resolve_device_count(context, ("capital",), p.device_count)

    base_monthly = float(package["monthly_base"])
    device_monthly = float(package["per_device_monthly"]) * device_count
    total_monthly = base_monthly + device_monthly

    escalation: List[dict] = []
    if p.include_escalation:
        term_total = 0.0
        for year in range(1, math.ceil(term / 12) + 1):
            rate = total_monthly * (1 + rates.cpi_rate) ** (year - 1)
            months = min(12, term - (year - 1) * 12)
            term_total += rate * months
            escalation.append({
                "year": year,
                "monthlyRate": round_half_up(rate),
                "months": months,
                "totalCost": round_half_up(rate * months),
            })
        three_year = round_half_up(term_total)
    else:
        three_year = total_monthly * term

    return CalculationResult(
        totals=Totals(
            one_time=0,
            monthly=total_monthly,
            annual=total_monthly * 12,
            three_year=three_year,
        ),
        breakdown={
            "baseMonthly": base_monthly,
            "deviceMonthly": device_monthly,
            "deviceCount": device_count,
            "totalMonthly": total_monthly,
            "termMonths": term,
        },
        metadata={
            "level": p.level,
            "hours": package["hours"],
            "deviceCountSource": source,
            "escalation": escalation if p.include_escalation else None,
        },
    )


def calculate_onboarding(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    p = parse_params(OnboardingParams, params, _component_id(context, "onboarding"))

    base = catalog.IMPLEMENTATION_BASE.get(p.complexity, catalog.IMPLEMENTATION_BASE["standard"])
    per_site = catalog.ONBOARDING_PER_SITE.get(p.complexity, catalog.ONBOARDING_PER_SITE["standard"])
    additional_sites = max(0, p.sites - 1)
    sites_cost = additional_sites * per_site
    assessment = catalog.ONBOARDING_ASSESSMENT.get(p.assessment_type, 0) if p.include_assessment else 0
    custom = sum(s.cost for s in p.custom_services)

    total = base + sites_cost + assessment + custom
    return CalculationResult(
        totals=Totals(one_time=total, three_year=total),
        breakdown={
            "baseImplementation": base,
            "additionalSites": additional_sites,
            "sitesCost": sites_cost,
            "assessment": assessment,
            "customServices": custom,
        },
        metadata={"complexity": p.complexity, "assessmentType": p.assessment_type},
    )


def calculate_pbs_foundation(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    p = parse_params(PBSFoundationParams, params, _component_id(context, "pbsFoundation"))

    user_cost = catalog.PBS_PER_USER_MONTHLY * p.users
    location_cost = catalog.PBS_PER_LOCATION_MONTHLY * (p.locations - 1)
    features_cost = sum(catalog.PBS_FEATURES.get(f, 0) for f in p.features)
    monthly = catalog.PBS_BASE_MONTHLY + user_cost + location_cost + features_cost

    return CalculationResult(
        totals=Totals(monthly=monthly, annual=monthly * 12, three_year=monthly * 36),
        breakdown={
            "baseMonthly": catalog.PBS_BASE_MONTHLY,
            "userCost": user_cost,
            "locationCost": location_cost,
            "featuresCost": features_cost,
        },
        metadata={"features": list(p.features)},
    )


def calculate_assessment(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    p = parse_params(AssessmentParams, params, _component_id(context, "assessment"))

    base = catalog.IMPLEMENTATION_BASE.get(p.complexity, catalog.IMPLEMENTATION_BASE["standard"])
    device_multiplier = max(1.0, p.device_count / catalog.ASSESSMENT_DEVICE_BASE)
    site_multiplier = max(1, p.site_count)
    report = catalog.ASSESSMENT_REPORT_COST if p.include_report else 0

    one_time = base * device_multiplier * site_multiplier + report
    return CalculationResult(
        totals=Totals(one_time=one_time),
        breakdown={
            "baseCost": base,
            "deviceMultiplier": device_multiplier,
            "siteMultiplier": site_multiplier,
            "reportCost": report,
        },
        metadata={"complexity": p.complexity},
    )


def calculate_admin(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    p = parse_params(AdminParams, params, _component_id(context, "admin"))

    reviews = p.annual_reviews + p.quarterly_reviews + p.bi_annual_reviews
    breakdown = {
        "reviewCost": reviews * catalog.ADMIN_REVIEW_COST,
        "technicalCost": p.technical_days * catalog.ADMIN_TECHNICAL_DAY,
        "engineeringCost": p.l3_engineering_days * catalog.ADMIN_L3_ENGINEERING_DAY,
        "reportingCost": p.reporting_service * catalog.ADMIN_REPORTING_SERVICE,
        "backupCost": p.backup_service * catalog.ADMIN_BACKUP_SERVICE,
    }
    return CalculationResult(
        totals=Totals(one_time=sum(breakdown.values())),
        breakdown=breakdown,
    )


def calculate_other_costs(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    p = parse_params(OtherCostsParams, params, _component_id(context, "otherCosts"))

    items = [
        {
            "description": item.description,
            "quantity": item.quantity,
            "unitCost": item.unit_cost,
            "totalCost": item.quantity * item.unit_cost,
        }
        for item in p.items
    ]
    total = sum(i["totalCost"] for i in items)
    return CalculationResult(
        totals=Totals(one_time=total),
        breakdown={"itemCount": len(items), "totalCost": total},
        metadata={"items": items},
    )


def calculate_enhanced_support(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    """Premium support tier; device count follows the support result."""
    p = parse_params(EnhancedSupportParams, params, _component_id(context, "enhancedSupport"))
    device_count, source = resolve_device_count(context, ("support", "capital"), p.device_count)

    base = catalog.ENHANCED_SUPPORT_BASE.get(p.level, catalog.ENHANCED_SUPPORT_BASE["enhanced"])
    device_cost = device_count * catalog.ENHANCED_SUPPORT_PER_DEVICE
    monthly = base + device_cost

    if p.include_escalation:
        annual = monthly * 12 * (1 + rates.cpi_rate)
        three_year = escalated_years(monthly, rates.cpi_rate, range(2, 5))
    else:
        annual = monthly * 12
        three_year = annual * 3

    return CalculationResult(
        totals=Totals(monthly=monthly, annual=annual, three_year=three_year),
        breakdown={
            "baseMonthly": base,
            "deviceCost": device_cost,
            "deviceCount": device_count,
        },
        metadata={
            "level": p.level,
            "deviceCountSource": source,
            "escalation": f"{rates.cpi_rate:.0%} CPI" if p.include_escalation else "None",
        },
    )


def calculate_naas(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    """NaaS packages; the package defaults from the component id."""
    component_id = _component_id(context, "naasStandard")
    p = parse_params(NaaSParams, params, component_id)
    package = p.package_type or ("enhanced" if "enhanced" in component_id.lower() else "standard")
    device_count, source = resolve_device_count(
        context, ("support", "naasStandard", "enhancedSupport"), p.device_count
    )

    base = catalog.NAAS_BASE.get(package, catalog.NAAS_BASE["standard"])
    device_cost = device_count * catalog.NAAS_PER_DEVICE
    monthly = base + device_cost

    if p.include_escalation:
        annual = monthly * 12 * (1 + rates.cpi_rate)
        three_year = escalated_years(monthly, rates.cpi_rate, range(2, 5))
    else:
        annual = monthly * 12
        three_year = annual * 3

    return CalculationResult(
        totals=Totals(monthly=monthly, annual=annual, three_year=three_year),
        breakdown={
            "baseMonthly": base,
            "deviceCost": device_cost,
            "deviceCount": device_count,
        },
        metadata={"packageType": package, "deviceCountSource": source},
    )


_TERM_PATTERN = re.compile(r"(\d+)Year")


def calculate_dynamics(params, context, rates: PricingRates = DEFAULT_RATES) -> CalculationResult:
    """
    Dynamics contracts over every enabled component.

    ``baseMonthly`` defaults to the summed monthly price of the rest of the
    quote; the contract term comes from the component id.
    """
    component_id = _component_id(context, "dynamics3Year")
    p = parse_params(DynamicsParams, params, component_id)

    match = _TERM_PATTERN.search(component_id)
    term_years = int(match.group(1)) if match else catalog.DYNAMICS_DEFAULT_TERM_YEARS
    term_months = term_years * 12
    cpi = rates.cpi_rate if p.cpi_rate is None else p.cpi_rate
    apr = rates.apr_rate if p.apr_rate is None else p.apr_rate

    included = [cid for cid, r in context.items() if not r.is_error and not r.is_disabled]
    if p.base_monthly is None:
        base_monthly = sum(context[cid].totals.monthly for cid in included)
    else:
        base_monthly = p.base_monthly
    device_count, source = resolve_device_count(context, ("capital", "support"), p.device_count)

    device_cost = device_count * catalog.DYNAMICS_PER_DEVICE
    monthly = base_monthly + device_cost

    annual = monthly * 12
    term_total = annual * term_years
    if p.include_escalation:
        term_total = escalated_years(monthly, cpi, range(1, term_years + 1))
        annual = monthly * 12 * (1 + cpi)

    breakdown = {
        "termYears": term_years,
        "termMonths": term_months,
        "baseMonthly": base_monthly,
        "deviceCost": device_cost,
        "deviceCount": device_count,
        "monthlyCost": monthly,
        "termTotal": term_total,
        "cpiRate": cpi * 100,
        "aprRate": apr * 100,
    }
    if base_monthly > 0 and apr > 0:
        payment = pmt(term_total, apr, term_months)
        breakdown["financedMonthlyPayment"] = round_half_up(payment)
        breakdown["totalInterest"] = round_half_up(payment * term_months - term_total)

    return CalculationResult(
        totals=Totals(
            monthly=monthly,
            annual=annual,
            three_year=term_total if term_years == 3 else annual * 3,
        ),
        breakdown=breakdown,
        metadata={
            "includedComponents": sorted(included),
            "deviceCountSource": source,
            "escalation": f"{cpi:.0%} CPI" if p.include_escalation else "None",
        },
    )
