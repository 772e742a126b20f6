"""Pydantic schemas for the engine's inputs and outputs."""

from lendermatch.models.schemas.application import (
    Business,
    BusinessCredit,
    EquipmentDetails,
    LoanApplication,
    LoanRequest,
    PersonalGuarantor,
)
from lendermatch.models.schemas.lender import (
    CustomRule,
    EquipmentRestriction,
    FicoCriteria,
    FicoTier,
    GeographicRestriction,
    IndustryRestriction,
    LenderPolicy,
    LenderPolicyCriteria,
    LenderProgram,
    LoanAmountCriteria,
    PayNetCriteria,
    TimeInBusinessCriteria,
)
from lendermatch.models.schemas.match import (
    BestProgram,
    CriterionResult,
    LenderMatchResult,
    RunSummary,
    UnderwritingRun,
)

__all__ = [
    # Application schemas
    "Business",
    "PersonalGuarantor",
    "BusinessCredit",
    "EquipmentDetails",
    "LoanRequest",
    "LoanApplication",
    # Lender schemas
    "FicoTier",
    "FicoCriteria",
    "PayNetCriteria",
    "LoanAmountCriteria",
    "TimeInBusinessCriteria",
    "GeographicRestriction",
    "IndustryRestriction",
    "EquipmentRestriction",
    "CustomRule",
    "LenderPolicyCriteria",
    "LenderProgram",
    "LenderPolicy",
    # Match schemas
    "CriterionResult",
    "BestProgram",
    "LenderMatchResult",
    "UnderwritingRun",
    "RunSummary",
]
