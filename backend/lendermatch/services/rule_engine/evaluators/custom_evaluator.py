"""Custom rule evaluator backed by a registry of named predicates."""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Tuple

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.lender import CustomRule, LenderPolicyCriteria
from lendermatch.services.rule_engine.base import (
    CriterionEvaluator,
    EvaluationContext,
    EvaluationResult,
    format_number,
)

logger = logging.getLogger(__name__)

# (met, reason, expected, actual)
PredicateOutcome = Tuple[bool, str, Optional[str], Optional[str]]
CustomRulePredicate = Callable[[CustomRule, EvaluationContext], PredicateOutcome]


def normalize_rule_name(name: str) -> str:
    """Registry key for a rule name: lower-case, spaces and hyphens as underscores."""
    return re.sub(r"[\s\-]+", "_", name.strip().lower())


def parse_threshold(expression: Optional[str]) -> Optional[Decimal]:
    """Parse a numeric rule parameter, returning None when absent or invalid."""
    if expression is None:
        return None
    try:
        value = Decimal(expression.strip())
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


# ==================== Built-in predicates ====================


def _flag_absent(attribute: str, label: str) -> CustomRulePredicate:
    """Predicate passing when a guarantor flag is not set."""

    def predicate(rule: CustomRule, context: EvaluationContext) -> PredicateOutcome:
        flagged = bool(getattr(context.guarantor, attribute))
        if flagged:
            return False, f"Guarantor has {label} on record", "None", "Reported"
        return True, f"No {label} reported", "None", "None reported"

    return predicate


def _invalid_expression(rule: CustomRule) -> PredicateOutcome:
    return (
        False,
        f"Custom rule '{rule.name}' has an invalid rule expression",
        rule.expression,
        None,
    )


def _min_trade_lines(rule: CustomRule, context: EvaluationContext) -> PredicateOutcome:
    minimum = parse_threshold(rule.expression)
    if minimum is None:
        return _invalid_expression(rule)

    expected = f"≥ {format_number(minimum)} trade lines"
    credit = context.business_credit
    count = credit.trade_lines_count if credit else None
    if count is None:
        return False, "Trade line count not provided", expected, "N/A"
    if count < minimum:
        return (
            False,
            f"{count} trade lines is below minimum {format_number(minimum)}",
            expected,
            str(count),
        )
    return True, f"{count} trade lines meets minimum {format_number(minimum)}", expected, str(count)


def _min_average_trade_age(rule: CustomRule, context: EvaluationContext) -> PredicateOutcome:
    minimum = parse_threshold(rule.expression)
    if minimum is None:
        return _invalid_expression(rule)

    expected = f"≥ {format_number(minimum)} months"
    credit = context.business_credit
    age = credit.average_trade_age_months if credit else None
    if age is None:
        return False, "Average trade age not provided", expected, "N/A"
    actual = f"{format_number(age)} months"
    if Decimal(str(age)) < minimum:
        return False, f"Average trade age {actual} is below minimum", expected, actual
    return True, f"Average trade age {actual} meets minimum", expected, actual


def _term_bound(upper: bool) -> CustomRulePredicate:
    """Predicate bounding the requested term in months."""

    def predicate(rule: CustomRule, context: EvaluationContext) -> PredicateOutcome:
        bound = parse_threshold(rule.expression)
        if bound is None:
            return _invalid_expression(rule)

        term = context.application.loan_request.term_months
        actual = f"{term} months"
        if upper:
            expected = f"≤ {format_number(bound)} months"
            if term > bound:
                return False, f"Term {actual} exceeds maximum", expected, actual
        else:
            expected = f"≥ {format_number(bound)} months"
            if term < bound:
                return False, f"Term {actual} is below minimum", expected, actual
        return True, f"Term {actual} is within {expected}", expected, actual

    return predicate


BUILTIN_PREDICATES: Dict[str, CustomRulePredicate] = {
    "no_bankruptcy": _flag_absent("has_bankruptcy", "a bankruptcy"),
    "no_tax_liens": _flag_absent("has_tax_liens", "tax liens"),
    "no_judgments": _flag_absent("has_judgments", "judgments"),
    "min_trade_lines": _min_trade_lines,
    "min_average_trade_age_months": _min_average_trade_age,
    "max_term_months": _term_bound(upper=True),
    "min_term_months": _term_bound(upper=False),
}


class CustomRuleRegistry:
    """
    Registry mapping normalized custom rule names to predicates.

    Registration is expected at setup time; lookups during evaluation do
    not mutate the registry.
    """

    def __init__(self, include_builtins: bool = True):
        self._predicates: Dict[str, CustomRulePredicate] = {}
        if include_builtins:
            for name, predicate in BUILTIN_PREDICATES.items():
                self.register(name, predicate)

    def register(self, name: str, predicate: CustomRulePredicate) -> None:
        """
        Register or replace the predicate for a rule name.

        Args:
            name: Rule name as written in lender policies
            predicate: Callable returning (met, reason, expected, actual)
        """
        self._predicates[normalize_rule_name(name)] = predicate

    def get(self, name: str) -> Optional[CustomRulePredicate]:
        return self._predicates.get(normalize_rule_name(name))

    def __contains__(self, name: str) -> bool:
        return normalize_rule_name(name) in self._predicates

    def names(self) -> List[str]:
        return sorted(self._predicates)


class CustomRuleEvaluator(CriterionEvaluator):
    """
    Evaluator for a program's custom rules, one result per rule.

    Unknown rule names are reported as met and not evaluated unless the
    context asks for strict handling.
    """

    family = CriterionFamily.CUSTOM
    criteria_field = "custom_rules"

    def __init__(self, registry: Optional[CustomRuleRegistry] = None):
        self.registry = registry or CustomRuleRegistry()

    def select(self, criteria: LenderPolicyCriteria) -> List[CustomRule]:
        return list(criteria.custom_rules or [])

    def evaluate(
        self, criterion: Optional[CustomRule], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        if criterion is None:
            return None

        predicate = self.registry.get(criterion.name)

        if predicate is None:
            logger.warning(
                "Custom rule %r on program %s has no registered predicate",
                criterion.name,
                context.program.id,
            )
            if context.strict_custom_rules:
                return self._result(
                    criterion.name,
                    met=False,
                    reason=f"Custom rule '{criterion.name}' is not recognized",
                    expected=criterion.expression,
                )
            return self._result(
                criterion.name,
                met=True,
                reason=f"Custom rule '{criterion.name}' was not evaluated (no predicate registered)",
                expected=criterion.expression,
            )

        met, reason, expected, actual = predicate(criterion, context)
        return self._result(
            criterion.name,
            met=met,
            reason=reason,
            expected=expected,
            actual=actual,
        )
