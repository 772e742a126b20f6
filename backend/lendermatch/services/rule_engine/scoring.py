"""Fit score model and ranking logic for lender matching."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Optional, Sequence

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.match import LenderMatchResult
from lendermatch.services.rule_engine.base import EvaluationResult

ZERO = Decimal("0")
ONE = Decimal("1")


def _dec(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _clamp(value: Decimal, low: Decimal = ZERO, high: Decimal = ONE) -> Decimal:
    return max(low, min(high, value))


@dataclass(frozen=True)
class FitScoreModel:
    """
    Scoring model converting criterion results into a 0-100 fit score.

    Numeric criteria (FICO, PayNet, loan amount, time in business) earn
    credit by how far the applicant clears the threshold; all other
    criteria are pass/fail and share one weight between them.

    Per-criterion credit:
    - met: ``met_base_credit + (1 - met_base_credit) * margin``
    - unmet: 0

    Program contribution:
    - every criterion met: the weighted credit, in [met_base_credit, 1]
    - ``u`` criteria unmet: the weighted credit mapped into the band
      ``[met_base_credit / (u + 1), met_base_credit / u)``, so a program
      missing fewer criteria always outranks one missing more

    Weights and saturation constants are a calibration, not learned
    parameters; replace the instance to recalibrate.
    """

    fico_weight: Decimal = Decimal("0.30")
    paynet_weight: Decimal = Decimal("0.20")
    loan_amount_weight: Decimal = Decimal("0.25")
    time_in_business_weight: Decimal = Decimal("0.15")
    other_weight: Decimal = Decimal("0.10")

    fico_saturation: Decimal = Decimal("150")
    paynet_saturation: Decimal = Decimal("30")
    time_in_business_saturation: Decimal = Decimal("5")

    met_base_credit: Decimal = Decimal("0.80")

    # ===== Margins =====

    def normalized_margin(self, result: EvaluationResult) -> Decimal:
        """
        Normalized margin in [0, 1] for one criterion result.

        0 at the threshold, 1 once the applicant exceeds it by the
        family's saturation constant. Loan amount peaks at the center of
        the band and decays linearly to 0 at either edge. Pass/fail
        families return 1 when met.

        Args:
            result: Evaluated criterion

        Returns:
            Margin between 0 and 1
        """
        if not result.met:
            return ZERO

        evidence = result.evidence
        family = result.family

        if family == CriterionFamily.FICO:
            return self._threshold_margin(
                evidence.get("actual_value"), evidence.get("floor"), self.fico_saturation
            )
        if family == CriterionFamily.PAYNET:
            return self._threshold_margin(
                evidence.get("actual_value"), evidence.get("minimum"), self.paynet_saturation
            )
        if family == CriterionFamily.TIME_IN_BUSINESS:
            return self._threshold_margin(
                evidence.get("actual_value"),
                evidence.get("minimum"),
                self.time_in_business_saturation,
            )
        if family == CriterionFamily.LOAN_AMOUNT:
            return self._band_margin(
                evidence.get("actual_value"), evidence.get("minimum"), evidence.get("maximum")
            )
        return ONE

    @staticmethod
    def _threshold_margin(actual: Any, threshold: Any, saturation: Decimal) -> Decimal:
        if threshold is None:
            return ONE
        if actual is None:
            return ZERO
        return _clamp((_dec(actual) - _dec(threshold)) / saturation)

    @staticmethod
    def _band_margin(actual: Any, minimum: Any, maximum: Any) -> Decimal:
        if actual is None or minimum is None or maximum is None:
            return ZERO
        low, high, value = _dec(minimum), _dec(maximum), _dec(actual)
        half_width = (high - low) / 2
        if half_width <= 0:
            return ONE if value == low else ZERO
        center = low + half_width
        return _clamp(ONE - abs(value - center) / half_width)

    # ===== Aggregation =====

    def criterion_credit(self, result: EvaluationResult) -> Decimal:
        """Credit earned by one criterion, 0 when unmet."""
        if not result.met:
            return ZERO
        margin = self.normalized_margin(result)
        return self.met_base_credit + (ONE - self.met_base_credit) * margin

    def weights(self, results: Sequence[EvaluationResult]) -> List[Decimal]:
        """Weight of each result; pass/fail criteria split the shared weight."""
        family_weights = {
            CriterionFamily.FICO: self.fico_weight,
            CriterionFamily.PAYNET: self.paynet_weight,
            CriterionFamily.LOAN_AMOUNT: self.loan_amount_weight,
            CriterionFamily.TIME_IN_BUSINESS: self.time_in_business_weight,
        }
        other_count = sum(1 for r in results if not r.family.is_margin_scored)
        other_share = self.other_weight / other_count if other_count else ZERO

        return [
            family_weights[r.family] if r.family.is_margin_scored else other_share
            for r in results
        ]

    def weighted_credit(self, results: Sequence[EvaluationResult]) -> Decimal:
        """Weighted average credit across the applicable criteria, in [0, 1]."""
        if not results:
            return ZERO

        weights = self.weights(results)
        total_weight = sum(weights, ZERO)
        if total_weight == 0:
            return ZERO

        total = sum(
            (w * self.criterion_credit(r) for w, r in zip(weights, results)), ZERO
        )
        return _clamp(total / total_weight)

    def fit_contribution(self, results: Sequence[EvaluationResult]) -> Decimal:
        """
        Program-level fit contribution in [0, 1].

        Args:
            results: All criterion results produced for the program

        Returns:
            Contribution, banded by the number of unmet criteria
        """
        if not results:
            return ZERO

        credit = self.weighted_credit(results)
        unmet = sum(1 for r in results if not r.met)
        if unmet == 0:
            return credit

        upper = self.met_base_credit / unmet
        lower = self.met_base_credit / (unmet + 1)
        return lower + (upper - lower) * credit

    @staticmethod
    def to_score(contribution: Decimal) -> int:
        """Scale a contribution to an integer 0-100, rounding half up."""
        scaled = (_dec(contribution) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return int(_clamp(scaled, ZERO, Decimal("100")))


DEFAULT_FIT_SCORE_MODEL = FitScoreModel()


def rank_results(results: Sequence[LenderMatchResult]) -> List[LenderMatchResult]:
    """
    Order lender results for presentation.

    Eligible lenders first, then by fit score descending, then by lender
    name so equal scores have a stable order.

    Args:
        results: Lender results in any order

    Returns:
        New sorted list
    """
    return sorted(
        results,
        key=lambda r: (not r.eligible, -r.fit_score, r.lender_name.lower(), r.lender_id),
    )


def best_match(results: Sequence[LenderMatchResult]) -> Optional[LenderMatchResult]:
    """Highest-ranked eligible lender, or None if no lender qualified."""
    ranked = rank_results(results)
    if ranked and ranked[0].eligible:
        return ranked[0]
    return None
