"""In-memory registry of underwriting runs keyed by run and application."""

import threading
from typing import Dict, List, Optional, Tuple

from lendermatch.models.domain.run import RunHandle


class RunRegistry:
    """
    Registry of underwriting runs.

    Holds every run by id, the run history per application, and at most
    one active (pending or running) run per application. Registration is
    an atomic insert-if-absent on the active slot.

    With ``history_limit`` set, an application keeps at most that many
    runs; the oldest finished runs are forgotten when a new run is
    registered. Active runs are never dropped.
    """

    def __init__(self, history_limit: Optional[int] = None):
        if history_limit is not None and history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self.history_limit = history_limit
        self._lock = threading.Lock()
        self._runs: Dict[str, RunHandle] = {}
        self._history: Dict[str, List[RunHandle]] = {}
        self._active: Dict[str, RunHandle] = {}

    def register_if_absent(self, handle: RunHandle) -> Tuple[RunHandle, bool]:
        """
        Register a new run unless its application already has an active one.

        Args:
            handle: Newly created pending run

        Returns:
            (registered or existing active run, True if ``handle`` was registered)
        """
        with self._lock:
            existing = self._active.get(handle.application_id)
            if existing is not None and not existing.is_terminal:
                return existing, False

            self._active[handle.application_id] = handle
            self._runs[handle.id] = handle
            history = self._history.setdefault(handle.application_id, [])
            history.append(handle)
            self._prune(history)
            return handle, True

    def release(self, handle: RunHandle) -> None:
        """Clear the application's active slot if it still holds this run."""
        with self._lock:
            if self._active.get(handle.application_id) is handle:
                del self._active[handle.application_id]

    def get(self, run_id: str) -> Optional[RunHandle]:
        with self._lock:
            return self._runs.get(run_id)

    def latest(self, application_id: str) -> Optional[RunHandle]:
        with self._lock:
            history = self._history.get(application_id)
            return history[-1] if history else None

    def list_for_application(self, application_id: str) -> List[RunHandle]:
        """Runs for an application, most recent first."""
        with self._lock:
            return list(reversed(self._history.get(application_id, [])))

    def _prune(self, history: List[RunHandle]) -> None:
        # Caller holds the lock
        if self.history_limit is None:
            return
        excess = len(history) - self.history_limit
        for old in [h for h in history if h.is_terminal][:max(excess, 0)]:
            history.remove(old)
            del self._runs[old.id]
