"""
pricing/schemas.py - Pydantic parameter models.

One model per component type. Field aliases match the camelCase keys the
quote UI stores; unknown keys are ignored so older saved quotes still load.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class ComponentParams(BaseModel):
    """Base for all component parameter models."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Monitoring / Infrastructure
# =============================================================================


class PRTGParams(ComponentParams):
    sensors: int = Field(default=100, ge=1, description="Monitored sensors")
    locations: int = Field(default=5, ge=1)
    alert_recipients: int = Field(default=10, ge=1, alias="alertRecipients")
    service_level: Literal["standard", "enhanced", "enterprise"] = Field(
        default="enhanced", alias="serviceLevel"
    )


class EquipmentItem(ComponentParams):
    description: str = ""
    quantity: float = Field(default=1, ge=0)
    unit_cost: float = Field(default=0, ge=0, alias="unitCost")


class CapitalParams(ComponentParams):
    equipment: List[EquipmentItem] = Field(default_factory=list)
    financing: StrictBool = True
    term_months: Optional[int] = Field(default=None, ge=1, alias="termMonths")
    down_payment: float = Field(default=0, ge=0, alias="downPayment")


# =============================================================================
# Services
# =============================================================================


class SupportParams(ComponentParams):
    level: str = "enhanced"
    device_count: Optional[int] = Field(default=None, ge=0, alias="deviceCount")
    include_escalation: bool = Field(default=True, alias="includeEscalation")
    term_months: Optional[int] = Field(default=None, ge=1, alias="termMonths")


class EnhancedSupportParams(ComponentParams):
    level: str = "enhanced"
    device_count: Optional[int] = Field(default=None, ge=0, alias="deviceCount")
    include_escalation: bool = Field(default=True, alias="includeEscalation")


class CustomService(ComponentParams):
    description: str = ""
    cost: float = Field(default=0, ge=0)


class OnboardingParams(ComponentParams):
    complexity: str = "standard"
    sites: int = Field(default=1, ge=1)
    include_assessment: bool = Field(default=True, alias="includeAssessment")
    assessment_type: str = Field(default="comprehensive", alias="assessmentType")
    custom_services: List[CustomService] = Field(
        default_factory=list, alias="customServices"
    )


class AssessmentParams(ComponentParams):
    complexity: str = "standard"
    device_count: int = Field(default=10, ge=0, alias="deviceCount")
    site_count: int = Field(default=1, ge=0, alias="siteCount")
    include_report: bool = Field(default=True, alias="includeReport")


class AdminParams(ComponentParams):
    annual_reviews: int = Field(default=0, ge=0, alias="annualReviews")
    quarterly_reviews: int = Field(default=0, ge=0, alias="quarterlyReviews")
    bi_annual_reviews: int = Field(default=0, ge=0, alias="biAnnualReviews")
    technical_days: float = Field(default=0, ge=0, alias="technicalDays")
    l3_engineering_days: float = Field(default=0, ge=0, alias="l3EngineeringDays")
    reporting_service: float = Field(default=0, ge=0, alias="reportingService")
    backup_service: float = Field(default=0, ge=0, alias="backupService")


class CostItem(ComponentParams):
    description: str = ""
    quantity: float = Field(default=1, ge=0)
    unit_cost: float = Field(default=0, ge=0, alias="unitCost")


class OtherCostsParams(ComponentParams):
    items: List[CostItem] = Field(default_factory=list)


# =============================================================================
# Platform / Packages / Contracts
# =============================================================================


class PBSFoundationParams(ComponentParams):
    users: int = Field(default=10, ge=0)
    locations: int = Field(default=1, ge=1)
    features: List[str] = Field(default_factory=lambda: ["basic"])


class NaaSParams(ComponentParams):
    package_type: str = Field(default="", alias="package")
    device_count: Optional[int] = Field(default=None, ge=0, alias="deviceCount")
    include_escalation: bool = Field(default=True, alias="includeEscalation")


class DynamicsParams(ComponentParams):
    cpi_rate: Optional[float] = Field(default=None, ge=0, alias="cpiRate")
    apr_rate: Optional[float] = Field(default=None, ge=0, alias="aprRate")
    base_monthly: Optional[float] = Field(default=None, ge=0, alias="baseMonthly")
    device_count: Optional[int] = Field(default=None, ge=0, alias="deviceCount")
    include_escalation: bool = Field(default=True, alias="includeEscalation")
