"""Geographic and industry evaluators.

Both families use the same list semantics: a value on the exclude-list is
rejected even when it also appears on the allow-list; an empty allow-list
places no restriction.
"""

from typing import List, Optional

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.lender import GeographicRestriction, IndustryRestriction
from lendermatch.services.rule_engine.base import (
    CriterionEvaluator,
    EvaluationContext,
    EvaluationResult,
    check_allow_exclude,
)


def _describe_lists(allowed: Optional[List[str]], excluded: Optional[List[str]]) -> str:
    parts = []
    if allowed:
        parts.append("Allowed: " + ", ".join(allowed))
    if excluded:
        parts.append("Excludes: " + ", ".join(excluded))
    return "; ".join(parts) if parts else "No restriction"


class GeographicEvaluator(CriterionEvaluator):
    """Evaluator for the business's state against state allow/exclude lists."""

    family = CriterionFamily.GEOGRAPHIC
    criteria_field = "geographic"

    NAME = "Geographic"

    def evaluate(
        self, criterion: Optional[GeographicRestriction], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        if criterion is None:
            return None

        state = context.business.state.upper()
        outcome = check_allow_exclude(
            state, criterion.allowed_states, criterion.excluded_states
        )

        if outcome == "excluded":
            reason = f"State {state} is excluded by this program"
        elif outcome == "not_allowed":
            reason = f"State {state} is not in the allowed list"
        else:
            reason = f"State {state} is permitted"

        return self._result(
            self.NAME,
            met=outcome is None,
            reason=reason,
            expected=_describe_lists(criterion.allowed_states, criterion.excluded_states),
            actual=state,
        )


class IndustryEvaluator(CriterionEvaluator):
    """Evaluator for the business's industry against industry allow/exclude lists."""

    family = CriterionFamily.INDUSTRY
    criteria_field = "industry"

    NAME = "Industry"

    def evaluate(
        self, criterion: Optional[IndustryRestriction], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        if criterion is None:
            return None

        industry = context.business.industry
        outcome = check_allow_exclude(
            industry, criterion.allowed_industries, criterion.excluded_industries
        )

        if outcome == "excluded":
            reason = f"Industry {industry} is excluded by this program"
        elif outcome == "not_allowed":
            reason = f"Industry {industry} is not in the allowed list"
        elif criterion.excluded_industries:
            reason = f"{industry} not excluded"
        else:
            reason = f"Industry {industry} is permitted"

        return self._result(
            self.NAME,
            met=outcome is None,
            reason=reason,
            expected=_describe_lists(
                criterion.allowed_industries, criterion.excluded_industries
            ),
            actual=industry,
        )
