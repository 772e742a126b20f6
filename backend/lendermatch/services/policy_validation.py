"""Save-time validation of lender policies.

The engine tolerates malformed programs at evaluation time and reports
them as ineligible; this module lets the storage layer reject them before
they are saved.
"""

from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from lendermatch.core.exceptions import PolicyValidationError
from lendermatch.models.schemas.lender import LenderPolicy, LenderProgram
from lendermatch.services.rule_engine.base import normalize_terms

FICO_MIN = 300
FICO_MAX = 850

ERROR = "error"
WARNING = "warning"

Issue = Tuple[str, str]


def _coerce(policy: Union[LenderPolicy, Mapping[str, Any]]) -> LenderPolicy:
    if isinstance(policy, LenderPolicy):
        return policy
    return LenderPolicy.model_validate(policy)


def _overlap(
    label: str,
    program: LenderProgram,
    allowed: Optional[List[str]],
    excluded: Optional[List[str]],
) -> List[Issue]:
    both = sorted(set(normalize_terms(allowed)) & set(normalize_terms(excluded)))
    if not both:
        return []
    return [
        (
            WARNING,
            f"Program '{program.id}': {label} {', '.join(both)} both allowed and "
            f"excluded; exclusion applies",
        )
    ]


def _program_issues(program: LenderProgram) -> List[Issue]:
    """Collect issues for one program's criteria."""
    issues: List[Issue] = []
    criteria = program.criteria
    prefix = f"Program '{program.id}'"

    loan = criteria.loan_amount
    if loan is None:
        issues.append((ERROR, f"{prefix}: loan amount range is required"))
    else:
        if loan.min_amount < 0 or loan.max_amount < 0:
            issues.append((ERROR, f"{prefix}: loan amounts cannot be negative"))
        if loan.min_amount > loan.max_amount:
            issues.append((ERROR, f"{prefix}: minimum loan amount exceeds maximum"))

    fico = criteria.fico
    if fico is not None:
        if (
            fico.min_score is not None
            and fico.max_score is not None
            and fico.min_score > fico.max_score
        ):
            issues.append((ERROR, f"{prefix}: FICO minimum exceeds maximum"))
        for score in (fico.min_score, fico.max_score):
            if score is not None and not FICO_MIN <= score <= FICO_MAX:
                issues.append(
                    (ERROR, f"{prefix}: FICO score {score} outside {FICO_MIN}-{FICO_MAX}")
                )
        for tier in fico.tiered or []:
            if not FICO_MIN <= tier.min_score <= FICO_MAX:
                issues.append(
                    (
                        ERROR,
                        f"{prefix}: FICO tier '{tier.program_name}' threshold "
                        f"{tier.min_score} outside {FICO_MIN}-{FICO_MAX}",
                    )
                )

    paynet = criteria.paynet
    if (
        paynet is not None
        and paynet.min_score is not None
        and paynet.max_score is not None
        and paynet.min_score > paynet.max_score
    ):
        issues.append((ERROR, f"{prefix}: PayNet minimum exceeds maximum"))

    if criteria.time_in_business is not None and criteria.time_in_business.min_years < 0:
        issues.append((ERROR, f"{prefix}: minimum years in business cannot be negative"))

    if criteria.min_revenue is not None and criteria.min_revenue < Decimal("0"):
        issues.append((ERROR, f"{prefix}: minimum revenue cannot be negative"))

    equipment = criteria.equipment
    if (
        equipment is not None
        and equipment.max_equipment_age_years is not None
        and equipment.max_equipment_age_years < 0
    ):
        issues.append((ERROR, f"{prefix}: maximum equipment age cannot be negative"))

    if criteria.geographic is not None:
        issues.extend(
            _overlap(
                "states",
                program,
                criteria.geographic.allowed_states,
                criteria.geographic.excluded_states,
            )
        )
    if criteria.industry is not None:
        issues.extend(
            _overlap(
                "industries",
                program,
                criteria.industry.allowed_industries,
                criteria.industry.excluded_industries,
            )
        )
    if equipment is not None:
        issues.extend(
            _overlap("equipment types", program, equipment.allowed_types, equipment.excluded_types)
        )

    return issues


def collect_issues(policy: Union[LenderPolicy, Mapping[str, Any]]) -> List[Issue]:
    """
    Collect (severity, message) issues for a policy.

    Args:
        policy: Policy model or its JSON mapping

    Returns:
        Issues in program declaration order; empty when the policy is valid
    """
    try:
        policy = _coerce(policy)
    except ValidationError as e:
        return [
            (ERROR, f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}")
            for err in e.errors()
        ]

    issues: List[Issue] = []
    seen = set()
    for program in policy.programs:
        if program.id in seen:
            issues.append((ERROR, f"Duplicate program id '{program.id}'"))
        seen.add(program.id)
        issues.extend(_program_issues(program))
    return issues


def validate_policy(policy: Union[LenderPolicy, Mapping[str, Any]]) -> List[str]:
    """
    Validate a policy before it is saved.

    Warnings are prefixed with ``"Warning: "`` and do not make the policy
    invalid.

    Args:
        policy: Policy model or its JSON mapping

    Returns:
        Human-readable issues; empty when there is nothing to report
    """
    return [
        f"Warning: {message}" if severity == WARNING else message
        for severity, message in collect_issues(policy)
    ]


def ensure_valid_policy(policy: Union[LenderPolicy, Mapping[str, Any]]) -> LenderPolicy:
    """
    Validate a policy and return it as a model.

    Raises:
        PolicyValidationError: If the policy has any error-level issue
    """
    errors = [message for severity, message in collect_issues(policy) if severity == ERROR]
    if errors:
        raise PolicyValidationError(errors)
    return _coerce(policy)
