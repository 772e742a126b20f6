"""In-memory underwriting run with a compare-and-set lifecycle."""

import threading
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional
from uuid import uuid4

from lendermatch.core.enums import UnderwritingStatus
from lendermatch.core.exceptions import InvalidRunTransitionError
from lendermatch.models.schemas.match import LenderMatchResult, UnderwritingRun

CANCELLED_ERROR = "cancelled"

# pending -> running -> {completed, failed}; a pending run may also be cancelled
ALLOWED_TRANSITIONS: Dict[UnderwritingStatus, FrozenSet[UnderwritingStatus]] = {
    UnderwritingStatus.PENDING: frozenset(
        {UnderwritingStatus.RUNNING, UnderwritingStatus.FAILED}
    ),
    UnderwritingStatus.RUNNING: frozenset(
        {UnderwritingStatus.COMPLETED, UnderwritingStatus.FAILED}
    ),
    UnderwritingStatus.COMPLETED: frozenset(),
    UnderwritingStatus.FAILED: frozenset(),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunHandle:
    """
    Mutable state of one underwriting run, owned by the orchestrator.

    All state changes go through ``transition``, which applies a change
    only if the run is still in the expected state. Readers take
    ``snapshot()`` copies and never see the handle itself.
    """

    def __init__(self, application_id: str, run_id: Optional[str] = None):
        self.id = run_id or str(uuid4())
        self.application_id = application_id
        self.status = UnderwritingStatus.PENDING
        self.started_at = utcnow()
        self.completed_at: Optional[datetime] = None
        self.results: Optional[List[LenderMatchResult]] = None
        self.error: Optional[str] = None

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._cancel_requested = threading.Event()

    @property
    def is_terminal(self) -> bool:
        with self._lock:
            return self.status.is_terminal

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def transition(
        self,
        expected: UnderwritingStatus,
        target: UnderwritingStatus,
        results: Optional[List[LenderMatchResult]] = None,
        error: Optional[str] = None,
    ) -> bool:
        """
        Move from ``expected`` to ``target`` if the run is still in ``expected``.

        Args:
            expected: State the caller believes the run is in
            target: State to move to
            results: Lender results, stored on completion
            error: Error text, stored on failure

        Returns:
            True if the transition was applied
        """
        with self._lock:
            if self.status != expected or target not in ALLOWED_TRANSITIONS[expected]:
                return False
            self._apply(target, results, error)
            return True

    def start(self) -> None:
        """Move a pending run to running, raising if it is no longer pending."""
        with self._lock:
            if self.status != UnderwritingStatus.PENDING:
                raise InvalidRunTransitionError(
                    self.id, self.status.value, UnderwritingStatus.RUNNING.value
                )
            self._apply(UnderwritingStatus.RUNNING, None, None)

    def fail(self, error: str) -> bool:
        """Fail the run from whichever active state it is in."""
        with self._lock:
            if self.status.is_terminal:
                return False
            self._apply(UnderwritingStatus.FAILED, None, error)
            return True

    def cancel(self) -> bool:
        """
        Request cancellation.

        Returns:
            True if the run was still active and is now failed as cancelled
        """
        self._cancel_requested.set()
        return self.fail(CANCELLED_ERROR)

    def _apply(
        self,
        target: UnderwritingStatus,
        results: Optional[List[LenderMatchResult]],
        error: Optional[str],
    ) -> None:
        self.status = target
        if target == UnderwritingStatus.COMPLETED:
            self.results = list(results or [])
        if target == UnderwritingStatus.FAILED:
            self.error = error
        if target.is_terminal:
            self.completed_at = utcnow()
            self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the run is terminal; returns False on timeout."""
        return self._done.wait(timeout)

    def snapshot(self) -> UnderwritingRun:
        """Immutable copy of the run's current state."""
        with self._lock:
            return UnderwritingRun(
                id=self.id,
                application_id=self.application_id,
                status=self.status,
                started_at=self.started_at,
                completed_at=self.completed_at,
                results=list(self.results) if self.results is not None else None,
                error=self.error,
            )

    def __repr__(self) -> str:
        return f"<RunHandle {self.id} {self.application_id} {self.status.value}>"
