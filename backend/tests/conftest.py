"""Shared fixtures: the reference applicant and lender policies."""

from typing import Any, Dict, List, Optional

import pytest

from lendermatch.config import Settings
from lendermatch.models.schemas import LenderPolicy, LoanApplication
from lendermatch.services.rule_engine import Matcher, RuleEngine
from lendermatch.services.underwriting_service import UnderwritingService


def application_payload(
    *,
    app_id: str = "app-001",
    fico: Optional[int] = 720,
    paynet: Optional[int] = 65,
    amount: Any = 150_000,
    term_months: int = 60,
    years_in_business: float = 8,
    annual_revenue: Any = 1_200_000,
    state: str = "TX",
    industry: str = "Construction",
    equipment_type: str = "Excavator",
    equipment_age: Optional[float] = 3,
    guarantor: Optional[Dict[str, Any]] = None,
    business_credit: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """camelCase JSON for an application, as the API layer would pass it."""
    credit = {"paynetScore": paynet}
    credit.update(business_credit or {})
    return {
        "id": app_id,
        "business": {
            "industry": industry,
            "state": state,
            "yearsInBusiness": years_in_business,
            "annualRevenue": annual_revenue,
        },
        "guarantor": {"ficoScore": fico, **(guarantor or {})},
        "businessCredit": credit,
        "loanRequest": {
            "amount": amount,
            "termMonths": term_months,
            "equipment": {"type": equipment_type, "ageYears": equipment_age},
        },
    }


def program_payload(
    program_id: str = "standard",
    name: str = "Standard",
    tier: Optional[str] = None,
    **criteria: Any,
) -> Dict[str, Any]:
    """Program JSON; the loan amount band defaults to $25,000 - $500,000."""
    criteria.setdefault("loanAmount", {"minAmount": 25_000, "maxAmount": 500_000})
    return {"id": program_id, "name": name, "tier": tier, "criteria": criteria}


def policy_payload(
    policy_id: str = "lender-a",
    name: str = "Lender A",
    programs: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    return {"id": policy_id, "name": name, "programs": programs if programs is not None else []}


@pytest.fixture
def make_application():
    """Factory for validated applications."""

    def _make(**kwargs: Any) -> LoanApplication:
        return LoanApplication.model_validate(application_payload(**kwargs))

    return _make


@pytest.fixture
def make_policy():
    """Factory for validated lender policies."""

    def _make(
        policy_id: str = "lender-a",
        name: str = "Lender A",
        programs: Optional[List[Dict[str, Any]]] = None,
    ) -> LenderPolicy:
        return LenderPolicy.model_validate(policy_payload(policy_id, name, programs))

    return _make


@pytest.fixture
def applicant(make_application) -> LoanApplication:
    """FICO 720, PayNet 65, $1.2M revenue, 8 years, $150,000 over 60 months."""
    return make_application()


@pytest.fixture
def standard_policy(make_policy) -> LenderPolicy:
    """FICO >= 700, PayNet >= 60, $25K - $500K, >= 2 years."""
    return make_policy(
        "apex",
        "Apex Capital",
        [
            program_payload(
                "apex-standard",
                "Standard",
                tier="A",
                fico={"minScore": 700},
                paynet={"minScore": 60},
                timeInBusiness={"minYears": 2},
            )
        ],
    )


@pytest.fixture
def capped_policy(make_policy) -> LenderPolicy:
    """Same requirements with a $75,000 ceiling."""
    return make_policy(
        "smallticket",
        "Small Ticket Leasing",
        [
            program_payload(
                "st-core",
                "Core",
                fico={"minScore": 700},
                paynet={"minScore": 60},
                timeInBusiness={"minYears": 2},
                loanAmount={"minAmount": 25_000, "maxAmount": 75_000},
            )
        ],
    )


@pytest.fixture
def empty_policy(make_policy) -> LenderPolicy:
    return make_policy("hollow", "Hollow Funding", [])


@pytest.fixture
def tiered_programs_policy(make_policy) -> LenderPolicy:
    """A 750 program listed before a 650 program."""
    return make_policy(
        "tiered",
        "Tiered Finance",
        [
            program_payload("tier-a", "Tier A", tier="A", fico={"minScore": 750}),
            program_payload("tier-b", "Tier B", tier="B", fico={"minScore": 650}),
        ],
    )


@pytest.fixture
def catalog(standard_policy, capped_policy, empty_policy, tiered_programs_policy):
    return [standard_policy, capped_policy, empty_policy, tiered_programs_policy]


@pytest.fixture
def engine() -> RuleEngine:
    return RuleEngine()


@pytest.fixture
def matcher() -> Matcher:
    return Matcher()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        UNDERWRITING_MAX_WORKERS=4,
        UNDERWRITING_MAX_CONCURRENT_RUNS=2,
        UNDERWRITING_CANCEL_POLL_SECONDS=0.01,
        STRICT_CUSTOM_RULES=False,
    )


@pytest.fixture
def service(test_settings):
    svc = UnderwritingService(settings=test_settings)
    yield svc
    svc.shutdown(wait=True)
