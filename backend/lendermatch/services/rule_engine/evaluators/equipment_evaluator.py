"""Equipment evaluator for equipment type and age criteria."""

from typing import List, Optional

from lendermatch.core.enums import CriterionFamily
from lendermatch.models.schemas.lender import EquipmentRestriction
from lendermatch.services.rule_engine.base import (
    CriterionEvaluator,
    EvaluationContext,
    EvaluationResult,
    check_allow_exclude,
    format_years,
)


class EquipmentEvaluator(CriterionEvaluator):
    """
    Evaluator for equipment-related criteria.

    Handles:
    - Type allow/exclude lists (exclusion wins over inclusion)
    - Maximum equipment age in years

    An application without an equipment age passes the age check; the type
    check still applies.
    """

    family = CriterionFamily.EQUIPMENT
    criteria_field = "equipment"

    NAME = "Equipment"

    def evaluate(
        self, criterion: Optional[EquipmentRestriction], context: EvaluationContext
    ) -> Optional[EvaluationResult]:
        if criterion is None:
            return None

        equipment = context.equipment
        failures: List[str] = []

        outcome = check_allow_exclude(
            equipment.type, criterion.allowed_types, criterion.excluded_types
        )
        if outcome == "excluded":
            failures.append(f"Equipment type {equipment.type} is excluded")
        elif outcome == "not_allowed":
            failures.append(f"Equipment type {equipment.type} is not in the allowed list")

        max_age = criterion.max_equipment_age_years
        age = equipment.age_years
        if max_age is not None and age is not None and age > max_age:
            failures.append(
                f"Equipment age {format_years(age)} exceeds maximum {format_years(max_age)}"
            )

        if failures:
            reason = "; ".join(failures)
        elif max_age is not None and age is None:
            reason = "Equipment type accepted; age not provided"
        elif max_age is not None:
            reason = f"Within {format_years(max_age)}"
        else:
            reason = f"Equipment type {equipment.type} accepted"

        return self._result(
            self.NAME,
            met=not failures,
            reason=reason,
            expected=self._describe(criterion),
            actual=self._describe_actual(equipment.type, age),
        )

    @staticmethod
    def _describe(criterion: EquipmentRestriction) -> str:
        parts = []
        if criterion.allowed_types:
            parts.append("Allowed: " + ", ".join(criterion.allowed_types))
        if criterion.excluded_types:
            parts.append("Excludes: " + ", ".join(criterion.excluded_types))
        if criterion.max_equipment_age_years is not None:
            parts.append(f"≤ {format_years(criterion.max_equipment_age_years)}")
        return "; ".join(parts) if parts else "No restriction"

    @staticmethod
    def _describe_actual(equipment_type: str, age: Optional[float]) -> str:
        if age is None:
            return equipment_type
        return f"{equipment_type}, {format_years(age)}"
