"""Lender-level matching: program selection and result aggregation."""

from typing import List, Optional

from lendermatch.models.schemas.application import LoanApplication
from lendermatch.models.schemas.lender import LenderPolicy
from lendermatch.models.schemas.match import BestProgram, LenderMatchResult
from lendermatch.services.rule_engine.engine import ProgramEvaluationResult, RuleEngine

NO_PROGRAMS_REASON = "No programs defined for this lender"
EVALUATION_ERROR_REASON = "Evaluation error"


class Matcher:
    """
    Matches an application against lender policies.

    For each lender:
        - Evaluate every program with the rule engine
        - If any program is eligible, the best program is the eligible one
          with the highest fit contribution (first declared wins ties)
        - Otherwise report the program with the fewest unmet criteria,
          then the highest fit contribution, then first declared

    The lender fit score is the chosen program's contribution scaled to
    0-100.
    """

    def __init__(self, rule_engine: Optional[RuleEngine] = None):
        """Initialize the matcher with a rule engine."""
        self.rule_engine = rule_engine or RuleEngine()

    def evaluate_programs(
        self,
        application: LoanApplication,
        policy: LenderPolicy,
    ) -> List[ProgramEvaluationResult]:
        """Evaluate every program of a lender, in declaration order."""
        return [
            self.rule_engine.evaluate_program(application, program, index=index)
            for index, program in enumerate(policy.programs)
        ]

    def evaluate_lender(
        self,
        application: LoanApplication,
        policy: LenderPolicy,
    ) -> LenderMatchResult:
        """
        Evaluate one lender and aggregate its programs into a single result.

        Args:
            application: Loan application
            policy: Lender policy with its programs

        Returns:
            LenderMatchResult for the lender
        """
        if not policy.programs:
            return LenderMatchResult(
                lender_id=policy.id,
                lender_name=policy.name,
                eligible=False,
                fit_score=0,
                best_program=None,
                rejection_reasons=[NO_PROGRAMS_REASON],
                criteria_results=[],
            )

        evaluations = self.evaluate_programs(application, policy)
        best = self.select_best_program(evaluations)
        if best is not None:
            return LenderMatchResult(
                lender_id=policy.id,
                lender_name=policy.name,
                eligible=True,
                fit_score=best.fit_score,
                best_program=BestProgram(
                    id=best.program.id,
                    name=best.program.name,
                    tier=best.program.tier,
                ),
                rejection_reasons=[],
                criteria_results=best.criteria_results,
            )

        reported = self.select_reported_program(evaluations)
        return LenderMatchResult(
            lender_id=policy.id,
            lender_name=policy.name,
            eligible=False,
            fit_score=reported.fit_score,
            best_program=None,
            rejection_reasons=reported.rejection_reasons,
            criteria_results=reported.criteria_results,
        )

    @staticmethod
    def select_best_program(
        evaluations: List[ProgramEvaluationResult],
    ) -> Optional[ProgramEvaluationResult]:
        """
        Pick the eligible program with the highest fit contribution.

        Args:
            evaluations: Program evaluations in declaration order

        Returns:
            Best eligible program, or None if no program is eligible
        """
        best: Optional[ProgramEvaluationResult] = None
        for evaluation in evaluations:
            if not evaluation.is_eligible:
                continue
            # Strict comparison keeps the first declared program on ties
            if best is None or evaluation.fit_contribution > best.fit_contribution:
                best = evaluation
        return best

    @staticmethod
    def select_reported_program(
        evaluations: List[ProgramEvaluationResult],
    ) -> ProgramEvaluationResult:
        """Pick the closest-to-qualifying program among ineligible ones."""
        return min(
            evaluations,
            key=lambda e: (e.unmet_count, -e.fit_contribution, e.index),
        )

    @staticmethod
    def evaluation_error_result(lender_id: str, lender_name: str) -> LenderMatchResult:
        """Result reported for a lender whose evaluation raised."""
        return LenderMatchResult(
            lender_id=lender_id,
            lender_name=lender_name,
            eligible=False,
            fit_score=0,
            best_program=None,
            rejection_reasons=[EVALUATION_ERROR_REASON],
            criteria_results=[],
        )

    def match_application_to_lenders(
        self,
        application: LoanApplication,
        policies: List[LenderPolicy],
    ) -> List[LenderMatchResult]:
        """
        Evaluate an application against every lender, sequentially.

        Args:
            application: Loan application
            policies: Lender catalog

        Returns:
            One result per lender, in catalog order
        """
        return [self.evaluate_lender(application, policy) for policy in policies]
