"""Pydantic schemas for match results and underwriting runs."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from lendermatch.core.enums import UnderwritingStatus
from lendermatch.models.schemas.base import CamelModel


# ==================== Criterion Result Schemas ====================


class CriterionResult(CamelModel):
    """Explanation of one evaluated criterion."""

    name: str
    met: bool
    reason: str
    expected: Optional[str] = None
    actual: Optional[str] = None


# ==================== Lender Match Schemas ====================


class BestProgram(CamelModel):
    """Identity of the program a lender would fund under."""

    id: str
    name: str
    tier: Optional[str] = None


class LenderMatchResult(CamelModel):
    """Per-lender verdict, fit score and explanation."""

    lender_id: str
    lender_name: str
    eligible: bool
    fit_score: int = Field(..., ge=0, le=100)
    best_program: Optional[BestProgram] = None
    rejection_reasons: list[str] = Field(default_factory=list)
    criteria_results: list[CriterionResult] = Field(default_factory=list)


# ==================== Underwriting Run Schemas ====================


class UnderwritingRun(CamelModel):
    """Point-in-time snapshot of an underwriting run."""

    id: str
    application_id: str
    status: UnderwritingStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    results: Optional[list[LenderMatchResult]] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


# ==================== Summary Schemas ====================


class RunSummary(CamelModel):
    """Counts and best match for a completed run."""

    total_evaluated: int
    eligible_count: int
    ineligible_count: int
    average_fit_score: Optional[Decimal] = None
    best_match: Optional[LenderMatchResult] = None
