"""Service layer for business logic."""

from lendermatch.services.policy_validation import ensure_valid_policy, validate_policy
from lendermatch.services.underwriting_service import UnderwritingService

__all__ = ["UnderwritingService", "ensure_valid_policy", "validate_policy"]
