"""Core enums for type safety across the engine."""

from enum import Enum


class UnderwritingStatus(str, Enum):
    """Underwriting run lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (UnderwritingStatus.COMPLETED, UnderwritingStatus.FAILED)


class CriterionFamily(str, Enum):
    """
    Criterion families evaluated for every program.

    Declaration order is the order in which criteria are evaluated and
    reported in a program's criteria results.
    """

    FICO = "fico"
    PAYNET = "paynet"
    LOAN_AMOUNT = "loan_amount"
    TIME_IN_BUSINESS = "time_in_business"
    GEOGRAPHIC = "geographic"
    INDUSTRY = "industry"
    EQUIPMENT = "equipment"
    MIN_REVENUE = "min_revenue"
    CUSTOM = "custom"

    @property
    def is_margin_scored(self) -> bool:
        """Whether the fit score uses a normalized margin for this family."""
        return self in (
            CriterionFamily.FICO,
            CriterionFamily.PAYNET,
            CriterionFamily.LOAN_AMOUNT,
            CriterionFamily.TIME_IN_BUSINESS,
        )
