"""
pricing/quote.py - Combined quote with volume discounts.

Contract components (the dynamics options) already price the rest of the
quote, so they are excluded from the combined totals by default.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional
import logging

from naascalc.core.results import CalculationResult, Totals, ZERO_TOTALS
from naascalc.pricing import catalog
from naascalc.pricing.calculators import round_half_up

if TYPE_CHECKING:
    from naascalc.dependencies.graph import DependencyGraph

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_CATEGORIES = ("contracts",)


@dataclass(frozen=True)
class VolumeDiscounts:
    """Discount rates applied to the combined quote."""
    monthly_discount: float = 0.0
    annual_discount: float = 0.0
    term_discount: float = 0.0
    volume_discount: bool = False
    bundle_discount: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monthlyDiscount": self.monthly_discount,
            "annualDiscount": self.annual_discount,
            "termDiscount": self.term_discount,
            "reasons": {
                "volumeDiscount": self.volume_discount,
                "bundleDiscount": self.bundle_discount,
                "annualPayment": True,
                "termCommitment": True,
            },
        }


def calculate_volume_discounts(monthly_total: float, component_count: int) -> VolumeDiscounts:
    """
    Discount rates for a quote.

    Volume tiers on the monthly total plus a bundle bonus on the number of
    priced components; annual and term payment add fixed steps on top.
    Each rate is capped after the steps are applied.
    """
    monthly = next(
        (rate for threshold, rate in catalog.VOLUME_DISCOUNT_TIERS if monthly_total >= threshold),
        0.0,
    )
    monthly += next(
        (rate for threshold, rate in catalog.BUNDLE_DISCOUNT_TIERS if component_count >= threshold),
        0.0,
    )
    annual = monthly + catalog.ANNUAL_PAYMENT_DISCOUNT
    term = annual + catalog.TERM_COMMITMENT_DISCOUNT

    return VolumeDiscounts(
        monthly_discount=min(monthly, catalog.MAX_MONTHLY_DISCOUNT),
        annual_discount=min(annual, catalog.MAX_ANNUAL_DISCOUNT),
        term_discount=min(term, catalog.MAX_TERM_DISCOUNT),
        volume_discount=monthly_total >= catalog.VOLUME_DISCOUNT_TIERS[-1][0],
        bundle_discount=component_count >= catalog.BUNDLE_DISCOUNT_TIERS[-1][0],
    )


@dataclass
class Quote:
    """Combined quote over a set of component results."""
    components: Dict[str, CalculationResult] = field(default_factory=dict)
    subtotals: Totals = ZERO_TOTALS
    discounts: VolumeDiscounts = field(default_factory=VolumeDiscounts)
    totals: Totals = ZERO_TOTALS
    failed: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """False when any priced component fell back after an error."""
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "components": {cid: r.to_dict() for cid, r in self.components.items()},
            "subtotals": self.subtotals.to_dict(),
            "discounts": self.discounts.to_dict(),
            "totals": self.totals.to_dict(),
            "failed": list(self.failed),
            "excluded": list(self.excluded),
        }


def build_quote(
    results: Mapping[str, CalculationResult],
    graph: Optional["DependencyGraph"] = None,
    exclude_categories: Iterable[str] = DEFAULT_EXCLUDED_CATEGORIES,
) -> Quote:
    """
    Combine component results into a discounted quote.

    Disabled components are skipped. Failed components are listed in
    ``failed`` and contribute nothing. With a graph, components in
    ``exclude_categories`` are left out of the totals.
    """
    excluded_categories = set(exclude_categories)
    quote = Quote()
    subtotal = ZERO_TOTALS

    for cid, result in results.items():
        if result.is_disabled:
            continue
        if graph is not None and cid in graph:
            if graph.get_definition(cid).category in excluded_categories:
                quote.excluded.append(cid)
                continue
        if result.is_error:
            quote.failed.append(cid)
            continue
        quote.components[cid] = result
        subtotal = subtotal + result.totals

    if quote.failed:
        logger.warning(f"Quote built with failed components: {', '.join(quote.failed)}")

    discounts = calculate_volume_discounts(subtotal.monthly, len(quote.components))
    quote.subtotals = subtotal
    quote.discounts = discounts
    quote.totals = Totals(
        one_time=subtotal.one_time,
        monthly=round_half_up(subtotal.monthly * (1 - discounts.monthly_discount)),
        annual=round_half_up(subtotal.annual * (1 - discounts.annual_discount)),
        three_year=round_half_up(subtotal.three_year * (1 - discounts.term_discount)),
    )
    return quote
