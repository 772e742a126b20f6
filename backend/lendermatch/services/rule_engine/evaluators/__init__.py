"""Criterion evaluators, one per criterion family."""

from .business_evaluator import MinRevenueEvaluator, TimeInBusinessEvaluator
from .credit_evaluator import FicoEvaluator, PayNetEvaluator
from .custom_evaluator import CustomRuleEvaluator, CustomRuleRegistry
from .equipment_evaluator import EquipmentEvaluator
from .geographic_evaluator import GeographicEvaluator, IndustryEvaluator
from .loan_evaluator import LoanAmountEvaluator

__all__ = [
    "CustomRuleEvaluator",
    "CustomRuleRegistry",
    "EquipmentEvaluator",
    "FicoEvaluator",
    "GeographicEvaluator",
    "IndustryEvaluator",
    "LoanAmountEvaluator",
    "MinRevenueEvaluator",
    "PayNetEvaluator",
    "TimeInBusinessEvaluator",
]
