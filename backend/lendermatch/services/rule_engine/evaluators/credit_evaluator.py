"""Credit score evaluators for FICO and PayNet criteria."""

from typing import Optional

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.lender import FicoCriteria, PayNetCriteria
from lendermatch.services.rule_engine.base import (
    CriterionEvaluator,
    EvaluationContext,
    EvaluationResult,
)


def _band_label(min_score: Optional[int], max_score: Optional[int]) -> str:
    if min_score is not None and max_score is not None:
        return f"{min_score} – {max_score}"
    if min_score is not None:
        return f"≥ {min_score}"
    if max_score is not None:
        return f"≤ {max_score}"
    return "Any"


class FicoEvaluator(CriterionEvaluator):
    """
    Evaluator for the guarantor's FICO score.

    Handles both a single band (minScore/maxScore, inclusive) and tiered
    rules, where the highest tier whose minimum the applicant reaches is
    selected.
    """

    family = CriterionFamily.FICO
    criteria_field = "fico"

    NAME = "FICO Score"

    def evaluate(
        self, criterion: Optional[FicoCriteria], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        if criterion is None:
            return None

        score = context.guarantor.fico_score
        tiers = sorted(criterion.tiered or [], key=lambda tier: tier.min_score)

        if tiers:
            return self._evaluate_tiered(criterion, tiers, score)
        return self._evaluate_band(criterion, score)

    def _evaluate_tiered(self, criterion, tiers, score) -> EvaluationResult:
        """
        Evaluate tiered FICO bands.

        Criteria format: {"tiered": [{"minScore": 650, "programName": "B"}, ...]}

        ``expected`` shows the matched tier's threshold, or the lowest tier's
        threshold when none matched.
        """
        lowest = tiers[0]

        if score is None:
            return self._result(
                self.NAME,
                met=False,
                reason="FICO score not provided",
                expected=f"≥ {lowest.min_score}",
                actual="N/A",
                actual_value=None,
                floor=lowest.min_score,
            )

        matched = None
        for tier in tiers:
            if tier.min_score <= score:
                matched = tier

        if matched is None:
            return self._result(
                self.NAME,
                met=False,
                reason=(
                    f"FICO score {score} is below the lowest tier minimum "
                    f"{lowest.min_score}"
                ),
                expected=f"≥ {lowest.min_score}",
                actual=str(score),
                actual_value=score,
                floor=lowest.min_score,
            )

        return self._result(
            self.NAME,
            met=True,
            reason=f"Qualifies for tier {matched.program_name} (minimum {matched.min_score})",
            expected=f"≥ {matched.min_score}",
            actual=str(score),
            actual_value=score,
            floor=lowest.min_score,
            tier=matched.program_name,
        )

    def _evaluate_band(self, criterion: FicoCriteria, score) -> EvaluationResult:
        """
        Evaluate a single inclusive FICO band.

        Criteria format: {"minScore": 680, "maxScore": 850}
        """
        min_score = criterion.min_score
        max_score = criterion.max_score
        expected = _band_label(min_score, max_score)

        if score is None:
            return self._result(
                self.NAME,
                met=False,
                reason="FICO score not provided",
                expected=expected,
                actual="N/A",
                actual_value=None,
                floor=min_score,
            )

        if min_score is not None and score < min_score:
            met = False
            reason = f"FICO score {score} is below minimum {min_score}"
        elif max_score is not None and score > max_score:
            met = False
            reason = f"FICO score {score} exceeds maximum {max_score}"
        elif min_score is not None:
            met = True
            reason = f"Meets minimum {min_score}"
        else:
            met = True
            reason = f"Within FICO range {expected}"

        return self._result(
            self.NAME,
            met=met,
            reason=reason,
            expected=expected,
            actual=str(score),
            actual_value=score,
            floor=min_score,
        )


class PayNetEvaluator(CriterionEvaluator):
    """
    Evaluator for the business PayNet score.

    A configured PayNet bound with no PayNet score on the application is a
    failed criterion, not a skipped one.
    """

    family = CriterionFamily.PAYNET
    criteria_field = "paynet"

    NAME = "PayNet Score"

    def evaluate(
        self, criterion: Optional[PayNetCriteria], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        if criterion is None:
            return None

        min_score = criterion.min_score
        max_score = criterion.max_score
        expected = _band_label(min_score, max_score)
        score = context.application.paynet_score

        if score is None:
            if min_score is None and max_score is None:
                return self._result(
                    self.NAME,
                    met=True,
                    reason="No PayNet bounds configured",
                    expected=expected,
                    actual="N/A",
                    actual_value=None,
                    minimum=None,
                )
            return self._result(
                self.NAME,
                met=False,
                reason="PayNet score not provided",
                expected=expected,
                actual="N/A",
                actual_value=None,
                minimum=min_score,
            )

        if min_score is not None and score < min_score:
            met = False
            reason = f"PayNet score {score} is below minimum {min_score}"
        elif max_score is not None and score > max_score:
            met = False
            reason = f"PayNet score {score} exceeds maximum {max_score}"
        elif min_score is not None:
            met = True
            reason = f"Meets minimum {min_score}"
        else:
            met = True
            reason = f"Within PayNet range {expected}"

        return self._result(
            self.NAME,
            met=met,
            reason=reason,
            expected=expected,
            actual=str(score),
            actual_value=score,
            minimum=min_score,
        )
