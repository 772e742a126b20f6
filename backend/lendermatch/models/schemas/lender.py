"""Pydantic schemas for lender policies, programs and their criteria.

Criterion groups are optional; ``None`` means the lender did not set the
criterion and it is not evaluated. Cross-field consistency (for example
``min_amount <= max_amount``) is checked by the save-time policy validator,
not here, so that the engine can still receive and reject a malformed
program without failing the whole run.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from lendermatch.models.schemas.base import CamelModel


# ==================== Criteria Schemas ====================


class FicoTier(CamelModel):
    """One named FICO band within a tiered FICO rule."""

    min_score: int
    program_name: str


class FicoCriteria(CamelModel):
    """FICO requirement, either a single band or named tiers."""

    min_score: Optional[int] = None
    max_score: Optional[int] = None
    tiered: Optional[list[FicoTier]] = None


class PayNetCriteria(CamelModel):
    """PayNet score band; either bound may be open."""

    min_score: Optional[int] = None
    max_score: Optional[int] = None


class LoanAmountCriteria(CamelModel):
    """Accepted loan amount band, inclusive on both ends."""

    min_amount: Decimal
    max_amount: Decimal


class TimeInBusinessCriteria(CamelModel):
    """Minimum years the business must have operated."""

    min_years: float


class GeographicRestriction(CamelModel):
    """State allow/exclude lists; exclusion takes precedence."""

    allowed_states: Optional[list[str]] = None
    excluded_states: Optional[list[str]] = None


class IndustryRestriction(CamelModel):
    """Industry allow/exclude lists; exclusion takes precedence."""

    allowed_industries: Optional[list[str]] = None
    excluded_industries: Optional[list[str]] = None


class EquipmentRestriction(CamelModel):
    """Equipment type lists and maximum equipment age."""

    allowed_types: Optional[list[str]] = None
    excluded_types: Optional[list[str]] = None
    max_equipment_age_years: Optional[float] = None


class CustomRule(CamelModel):
    """Named rule evaluated by a registered predicate."""

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    expression: Optional[str] = None


class LenderPolicyCriteria(CamelModel):
    """Full criteria set of one program."""

    fico: Optional[FicoCriteria] = None
    paynet: Optional[PayNetCriteria] = None
    loan_amount: Optional[LoanAmountCriteria] = Field(
        None, description="Required; a program without it is never eligible"
    )
    time_in_business: Optional[TimeInBusinessCriteria] = None
    geographic: Optional[GeographicRestriction] = None
    industry: Optional[IndustryRestriction] = None
    equipment: Optional[EquipmentRestriction] = None
    min_revenue: Optional[Decimal] = None
    custom_rules: Optional[list[CustomRule]] = None


# ==================== Program & Policy Schemas ====================


class LenderProgram(CamelModel):
    """Named sub-offer (often a credit tier) with its own criteria."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    tier: Optional[str] = None
    description: Optional[str] = None
    criteria: LenderPolicyCriteria


class LenderPolicy(CamelModel):
    """A lender and its programs, in declaration order."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    source_document: Optional[str] = None
    programs: list[LenderProgram] = Field(default_factory=list)
