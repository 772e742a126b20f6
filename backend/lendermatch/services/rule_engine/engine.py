"""Rule engine coordinating criterion evaluations for one program."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.application import LoanApplication
from lendermatch.models.schemas.lender import LenderProgram
from lendermatch.models.schemas.match import CriterionResult
from lendermatch.services.rule_engine.base import (
    CriterionEvaluator,
    EvaluationContext,
    EvaluationResult,
)
from lendermatch.services.rule_engine.evaluators import (
    CustomRuleEvaluator,
    CustomRuleRegistry,
    EquipmentEvaluator,
    FicoEvaluator,
    GeographicEvaluator,
    IndustryEvaluator,
    LoanAmountEvaluator,
    MinRevenueEvaluator,
    PayNetEvaluator,
    TimeInBusinessEvaluator,
)
from lendermatch.services.rule_engine.scoring import DEFAULT_FIT_SCORE_MODEL, FitScoreModel


@dataclass
class ProgramEvaluationResult:
    """
    Result of evaluating all criteria for a program.

    Attributes:
        program: The program evaluated
        index: Position of the program in the lender's declaration order
        is_eligible: True when every produced criterion result is met
        fit_contribution: Program fit contribution in [0, 1]
        fit_score: Contribution scaled to an integer 0-100
        results: Criterion results in evaluation order
    """

    program: LenderProgram
    index: int
    is_eligible: bool
    fit_contribution: Decimal
    fit_score: int
    results: List[EvaluationResult] = field(default_factory=list)

    @property
    def unmet_results(self) -> List[EvaluationResult]:
        return [r for r in self.results if not r.met]

    @property
    def unmet_count(self) -> int:
        return len(self.unmet_results)

    @property
    def rejection_reasons(self) -> List[str]:
        return [r.reason for r in self.unmet_results]

    @property
    def criteria_results(self) -> List[CriterionResult]:
        return [r.to_criterion_result() for r in self.results]


class RuleEngine:
    """
    Rule engine for coordinating criterion evaluations.

    This class:
    - Maintains a registry of criterion evaluators keyed by family
    - Runs every applicable evaluator for a program
    - Aggregates eligibility and fit contribution

    The engine holds no per-evaluation state and can be shared between
    threads once configured.
    """

    def __init__(
        self,
        scoring_model: Optional[FitScoreModel] = None,
        custom_rules: Optional[CustomRuleRegistry] = None,
        strict_custom_rules: bool = False,
    ):
        """
        Initialize the rule engine with the default evaluator registry.

        Args:
            scoring_model: Fit score model, defaults to the standard calibration
            custom_rules: Custom rule predicate registry
            strict_custom_rules: Treat unknown custom rule names as not met
        """
        self.scoring_model = scoring_model or DEFAULT_FIT_SCORE_MODEL
        self.custom_rules = custom_rules or CustomRuleRegistry()
        self.strict_custom_rules = strict_custom_rules
        self._evaluators: Dict[CriterionFamily, CriterionEvaluator] = {}
        self._register_default_evaluators()

    def _register_default_evaluators(self) -> None:
        """Register one evaluator per criterion family, in reporting order."""
        for evaluator in (
            FicoEvaluator(),
            PayNetEvaluator(),
            LoanAmountEvaluator(),
            TimeInBusinessEvaluator(),
            GeographicEvaluator(),
            IndustryEvaluator(),
            EquipmentEvaluator(),
            MinRevenueEvaluator(),
            CustomRuleEvaluator(self.custom_rules),
        ):
            self._evaluators[evaluator.family] = evaluator

    def register_evaluator(self, evaluator: CriterionEvaluator) -> None:
        """
        Register or replace the evaluator for its criterion family.

        Args:
            evaluator: The evaluator instance
        """
        self._evaluators[evaluator.family] = evaluator

    def evaluate_criteria(
        self,
        application: LoanApplication,
        program: LenderProgram,
    ) -> List[EvaluationResult]:
        """
        Run every registered evaluator for one program.

        Args:
            application: The loan application to evaluate
            program: The program whose criteria are applied

        Returns:
            Applicable criterion results, in family order
        """
        context = EvaluationContext(
            application=application,
            program=program,
            strict_custom_rules=self.strict_custom_rules,
        )

        results: List[EvaluationResult] = []
        for family in CriterionFamily:
            evaluator = self._evaluators.get(family)
            if evaluator is None:
                continue
            for criterion in evaluator.select(program.criteria):
                result = evaluator.evaluate(criterion, context)
                if result is not None:
                    results.append(result)

        return results

    def evaluate_program(
        self,
        application: LoanApplication,
        program: LenderProgram,
        index: int = 0,
    ) -> ProgramEvaluationResult:
        """
        Evaluate all criteria in a program against an application.

        Args:
            application: The loan application to evaluate
            program: The program to evaluate against
            index: Declaration position of the program within its lender

        Returns:
            ProgramEvaluationResult with eligibility and fit contribution
        """
        results = self.evaluate_criteria(application, program)
        contribution = self.scoring_model.fit_contribution(results)

        return ProgramEvaluationResult(
            program=program,
            index=index,
            is_eligible=all(r.met for r in results),
            fit_contribution=contribution,
            fit_score=self.scoring_model.to_score(contribution),
            results=results,
        )
