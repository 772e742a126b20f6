"""Rule engine foundation with evaluation context, results, and base evaluator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.application import (
    Business,
    BusinessCredit,
    EquipmentDetails,
    LoanApplication,
    PersonalGuarantor,
)
from lendermatch.models.schemas.lender import LenderPolicyCriteria, LenderProgram
from lendermatch.models.schemas.match import CriterionResult


@dataclass(frozen=True)
class EvaluationContext:
    """
    Evaluation context containing all application data for criterion evaluation.

    This context is passed to criterion evaluators and contains all
    information needed to assess whether an application meets a program's
    criteria.

    Attributes:
        application: The loan application being evaluated
        program: The lender program being evaluated against
        strict_custom_rules: Treat unknown custom rule names as not met
    """

    application: LoanApplication
    program: LenderProgram
    strict_custom_rules: bool = False

    @property
    def criteria(self) -> LenderPolicyCriteria:
        return self.program.criteria

    @property
    def business(self) -> Business:
        return self.application.business

    @property
    def guarantor(self) -> PersonalGuarantor:
        return self.application.guarantor

    @property
    def business_credit(self) -> Optional[BusinessCredit]:
        return self.application.business_credit

    @property
    def equipment(self) -> EquipmentDetails:
        return self.application.loan_request.equipment


@dataclass(frozen=True)
class EvaluationResult:
    """
    Result of evaluating a single criterion against an application.

    Carries the human-readable explanation plus the numeric evidence the
    fit score model needs to compute a normalized margin.

    Attributes:
        family: Criterion family that produced this result
        name: Display name of the criterion
        met: Whether the criterion is satisfied
        reason: Human-readable explanation of the result
        expected: Display form of the requirement
        actual: Display form of the applicant's value
        evidence: Numeric values used for scoring (actual vs. thresholds)
    """

    family: CriterionFamily
    name: str
    met: bool
    reason: str
    expected: Optional[str] = None
    actual: Optional[str] = None
    evidence: dict = field(default_factory=dict)

    def to_criterion_result(self) -> CriterionResult:
        """Convert to the boundary schema shown to users."""
        return CriterionResult(
            name=self.name,
            met=self.met,
            reason=self.reason,
            expected=self.expected,
            actual=self.actual,
        )


class CriterionEvaluator(ABC):
    """
    Abstract base class for criterion evaluators using the Strategy pattern.

    Each concrete evaluator handles one criterion family. ``criteria_field``
    names the attribute of ``LenderPolicyCriteria`` the evaluator reads;
    ``evaluate`` receives that value, which is ``None`` when the lender did
    not set the criterion.
    """

    family: CriterionFamily
    criteria_field: str

    def select(self, criteria: LenderPolicyCriteria) -> List[Any]:
        """
        Pick the criterion items this evaluator should run for a program.

        Args:
            criteria: The program's criteria set

        Returns:
            Items passed one at a time to evaluate()
        """
        return [getattr(criteria, self.criteria_field, None)]

    @abstractmethod
    def evaluate(
        self, criterion: Any, context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        """
        Evaluate one criterion against the provided context.

        Args:
            criterion: The criterion sub-object, or None when absent
            context: EvaluationContext containing all application data

        Returns:
            EvaluationResult, or None when the criterion is not applicable
        """
        pass

    def _result(
        self,
        name: str,
        met: bool,
        reason: str,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        **evidence: Any,
    ) -> EvaluationResult:
        return EvaluationResult(
            family=self.family,
            name=name,
            met=met,
            reason=reason,
            expected=expected,
            actual=actual,
            evidence=evidence,
        )


# ==================== Formatting & matching helpers ====================


def format_currency(value: Any) -> str:
    """Format an amount as dollars, dropping cents for whole amounts."""
    amount = Decimal(str(value))
    if amount == amount.to_integral_value():
        return f"${amount:,.0f}"
    return f"${amount:,.2f}"


def format_number(value: Any) -> str:
    """Format a count or score without a trailing .0."""
    number = Decimal(str(value))
    if number == number.to_integral_value():
        return f"{number:.0f}"
    return f"{number.normalize():f}"


def format_years(value: Any) -> str:
    """Format a duration in years, e.g. '1 year' or '2.5 years'."""
    text = format_number(value)
    return f"{text} year" if text == "1" else f"{text} years"


def normalize_terms(values: Optional[Iterable[str]]) -> List[str]:
    """Normalize a list of names for case-insensitive comparison."""
    if not values:
        return []
    return [value.strip().lower() for value in values if value and value.strip()]


def check_allow_exclude(
    value: str,
    allowed: Optional[Iterable[str]],
    excluded: Optional[Iterable[str]],
) -> Optional[str]:
    """
    Apply allow/exclude lists with exclusion taking precedence.

    Args:
        value: The applicant's value (state, industry, equipment type)
        allowed: Allow-list; empty or None means no restriction
        excluded: Exclude-list; empty or None means no exclusion

    Returns:
        "excluded", "not_allowed", or None when the value is acceptable
    """
    needle = value.strip().lower()
    if needle in normalize_terms(excluded):
        return "excluded"
    allowed_terms = normalize_terms(allowed)
    if allowed_terms and needle not in allowed_terms:
        return "not_allowed"
    return None
