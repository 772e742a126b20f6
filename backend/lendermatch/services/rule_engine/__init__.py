"""Rule engine for evaluating loan applications against lender policies."""

from .base import CriterionEvaluator, EvaluationContext, EvaluationResult
from .engine import ProgramEvaluationResult, RuleEngine
from .matcher import Matcher
from .scoring import DEFAULT_FIT_SCORE_MODEL, FitScoreModel, best_match, rank_results

__all__ = [
    "CriterionEvaluator",
    "DEFAULT_FIT_SCORE_MODEL",
    "EvaluationContext",
    "EvaluationResult",
    "FitScoreModel",
    "Matcher",
    "ProgramEvaluationResult",
    "RuleEngine",
    "best_match",
    "rank_results",
]
