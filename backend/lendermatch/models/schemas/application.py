"""Pydantic schemas for the loan application consumed by the engine."""

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from lendermatch.models.schemas.base import CamelModel


# ==================== Business Schemas ====================


class Business(CamelModel):
    """Borrowing business with industry, location and financial facts."""

    industry: str = Field(..., min_length=1, max_length=100)
    industry_code: Optional[str] = Field(None, max_length=20)
    state: str = Field(..., min_length=2, max_length=2, description="2-letter state code")
    years_in_business: float = Field(..., ge=0)
    annual_revenue: Decimal = Field(..., ge=0)
    entity_type: Optional[str] = Field(None, max_length=50)

    @field_validator("state")
    @classmethod
    def validate_state(cls, v: str) -> str:
        """Ensure state is uppercase."""
        return v.upper()


# ==================== Personal Guarantor Schemas ====================


class PersonalGuarantor(CamelModel):
    """Personal guarantor credit facts."""

    fico_score: Optional[int] = Field(None, ge=300, le=850)
    has_bankruptcy: Optional[bool] = None
    has_tax_liens: Optional[bool] = None
    has_judgments: Optional[bool] = None
    years_at_address: Optional[float] = Field(None, ge=0)


# ==================== Business Credit Schemas ====================


class BusinessCredit(CamelModel):
    """Business credit bureau facts (PayNet and trade lines)."""

    paynet_score: Optional[int] = Field(None, ge=0, le=100)
    trade_lines_count: Optional[int] = Field(None, ge=0)
    average_trade_age_months: Optional[float] = Field(None, ge=0)


# ==================== Loan Request Schemas ====================


class EquipmentDetails(CamelModel):
    """Equipment being financed."""

    type: str = Field(..., min_length=1, max_length=100)
    category: Optional[str] = Field(None, max_length=100)
    age_years: Optional[float] = Field(None, ge=0)
    cost: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None


class LoanRequest(CamelModel):
    """Requested financing terms."""

    amount: Decimal = Field(..., gt=0)
    term_months: int = Field(..., gt=0)
    equipment: EquipmentDetails
    purpose: Optional[str] = None


# ==================== Loan Application Schemas ====================


class LoanApplication(CamelModel):
    """Complete loan application, supplied read-only by the calling layer."""

    id: str = Field(..., min_length=1)
    business: Business
    guarantor: PersonalGuarantor
    business_credit: Optional[BusinessCredit] = None
    loan_request: LoanRequest

    @property
    def paynet_score(self) -> Optional[int]:
        """PayNet score if business credit was provided."""
        if self.business_credit is None:
            return None
        return self.business_credit.paynet_score
