"""Exception types raised by the engine's public services."""

from typing import Iterable, List


class LenderMatchError(Exception):
    """Base class for engine errors."""


class PolicyValidationError(LenderMatchError, ValueError):
    """A lender policy failed save-time validation."""

    def __init__(self, issues: Iterable[str]):
        self.issues: List[str] = list(issues)
        super().__init__("; ".join(self.issues) or "Invalid lender policy")


class RunNotFoundError(LenderMatchError, LookupError):
    """No underwriting run exists with the given identifier."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Underwriting run {run_id} not found")


class InvalidRunTransitionError(LenderMatchError):
    """A run state change was requested that the lifecycle does not allow."""

    def __init__(self, run_id: str, current: str, target: str):
        self.run_id = run_id
        self.current = current
        self.target = target
        super().__init__(
            f"Underwriting run {run_id} cannot move from {current} to {target}"
        )
