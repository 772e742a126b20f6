"""Business evaluators for time in business and minimum revenue."""

from decimal import Decimal
from typing import Optional

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.lender import TimeInBusinessCriteria
from lendermatch.services.rule_engine.base import (
    CriterionEvaluator,
    EvaluationContext,
    EvaluationResult,
    format_currency,
    format_years,
)


class TimeInBusinessEvaluator(CriterionEvaluator):
    """Evaluator for the minimum years the business has operated."""

    family = CriterionFamily.TIME_IN_BUSINESS
    criteria_field = "time_in_business"

    NAME = "Time in Business"

    def evaluate(
        self, criterion: Optional[TimeInBusinessCriteria], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        if criterion is None:
            return None

        years = context.business.years_in_business
        min_years = criterion.min_years
        met = years >= min_years

        if met:
            reason = f"{format_years(years)} ≥ {format_years(min_years)}"
        else:
            reason = (
                f"Minimum {format_years(min_years)} in business required; "
                f"business has {format_years(years)}"
            )

        return self._result(
            self.NAME,
            met=met,
            reason=reason,
            expected=f"≥ {format_years(min_years)}",
            actual=format_years(years),
            actual_value=years,
            minimum=min_years,
        )


class MinRevenueEvaluator(CriterionEvaluator):
    """Evaluator for the minimum annual revenue."""

    family = CriterionFamily.MIN_REVENUE
    criteria_field = "min_revenue"

    NAME = "Minimum Revenue"

    def evaluate(
        self, criterion: Optional[Decimal], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        if criterion is None:
            return None

        revenue = context.business.annual_revenue
        met = revenue >= criterion

        if met:
            reason = f"Revenue meets minimum {format_currency(criterion)}"
        else:
            reason = (
                f"Annual revenue {format_currency(revenue)} is below minimum "
                f"{format_currency(criterion)}"
            )

        return self._result(
            self.NAME,
            met=met,
            reason=reason,
            expected=f"≥ {format_currency(criterion)}",
            actual=format_currency(revenue),
        )
