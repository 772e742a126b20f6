"""Loan amount evaluator."""

from typing import Optional

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.lender import LoanAmountCriteria
from lendermatch.services.rule_engine.base import (
    CriterionEvaluator,
    EvaluationContext,
    EvaluationResult,
    format_currency,
)


class LoanAmountEvaluator(CriterionEvaluator):
    """
    Evaluator for the program's loan amount band.

    Always applicable: a program with no band, or with an inverted band,
    produces a failed result so the program can never be eligible.
    """

    family = CriterionFamily.LOAN_AMOUNT
    criteria_field = "loan_amount"

    NAME = "Loan Amount"

    def evaluate(
        self, criterion: Optional[LoanAmountCriteria], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        amount = context.application.loan_request.amount
        actual = format_currency(amount)

        if criterion is None:
            return self._result(
                self.NAME,
                met=False,
                reason="Loan amount range is not configured for this program",
                expected="Not configured",
                actual=actual,
                actual_value=amount,
                minimum=None,
                maximum=None,
            )

        min_amount = criterion.min_amount
        max_amount = criterion.max_amount
        expected = f"{format_currency(min_amount)} – {format_currency(max_amount)}"

        if min_amount > max_amount:
            return self._result(
                self.NAME,
                met=False,
                reason=(
                    f"Invalid loan amount range: minimum {format_currency(min_amount)} "
                    f"exceeds maximum {format_currency(max_amount)}"
                ),
                expected=expected,
                actual=actual,
                actual_value=amount,
                minimum=None,
                maximum=None,
            )

        if amount < min_amount:
            met = False
            reason = (
                f"Loan amount {actual} is below minimum "
                f"{format_currency(min_amount)} for this program"
            )
        elif amount > max_amount:
            met = False
            reason = (
                f"Loan amount {actual} exceeds maximum "
                f"{format_currency(max_amount)} for this program"
            )
        else:
            met = True
            reason = f"Within {expected}"

        return self._result(
            self.NAME,
            met=met,
            reason=reason,
            expected=expected,
            actual=actual,
            actual_value=amount,
            minimum=min_amount,
            maximum=max_amount,
        )
