"""Underwriting service for orchestrating the matching process."""

import logging
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union
from uuid import uuid4

from lendermatch.config import Settings
from lendermatch.config import settings as default_settings
from lendermatch.core.enums import UnderwritingStatus
from lendermatch.core.exceptions import (
    InvalidRunTransitionError,
    LenderMatchError,
    RunNotFoundError,
)
from lendermatch.models.domain.run import RunHandle
from lendermatch.models.schemas.application import LoanApplication
from lendermatch.models.schemas.lender import LenderPolicy
from lendermatch.models.schemas.match import LenderMatchResult, RunSummary, UnderwritingRun
from lendermatch.repositories.run_registry import RunRegistry
from lendermatch.services.rule_engine.engine import RuleEngine
from lendermatch.services.rule_engine.matcher import Matcher
from lendermatch.services.rule_engine.scoring import best_match

logger = logging.getLogger(__name__)

ApplicationInput = Union[LoanApplication, Mapping[str, Any]]
PolicyInput = Union[LenderPolicy, Mapping[str, Any]]


class UnderwritingService:
    """
    Underwriting service to orchestrate the matching process.

    This service:
    - Creates and tracks underwriting runs, at most one active per application
    - Evaluates every lender of the catalog on a bounded worker pool
    - Isolates per-lender faults so one bad policy cannot fail the run
    - Applies run state changes atomically and supports cancellation
    - Keeps run history for status and result lookups
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        matcher: Optional[Matcher] = None,
        registry: Optional[RunRegistry] = None,
    ):
        """
        Initialize the underwriting service.

        Args:
            settings: Engine settings, defaults to the environment settings
            matcher: Lender matcher, defaults to one built from settings
            registry: Run registry, defaults to an empty in-memory registry
        """
        self.settings = settings or default_settings
        self.matcher = matcher or Matcher(
            RuleEngine(strict_custom_rules=self.settings.STRICT_CUSTOM_RULES)
        )
        self.registry = registry or RunRegistry(
            history_limit=self.settings.UNDERWRITING_RUN_HISTORY_LIMIT
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.UNDERWRITING_MAX_CONCURRENT_RUNS,
            thread_name_prefix="underwriting-run",
        )
        self._closed = False

    def __enter__(self) -> "UnderwritingService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    # ===== Run submission =====

    def submit(
        self,
        application: ApplicationInput,
        catalog: Sequence[PolicyInput],
    ) -> UnderwritingRun:
        """
        Start underwriting for an application against a lender catalog.

        If the application already has a pending or running run, that
        run is returned and no new run is started.

        Args:
            application: Loan application, as a model or its JSON mapping
            catalog: Lender policies, as models or JSON mappings

        Returns:
            Snapshot of the new or already active run

        Raises:
            LenderMatchError: If the service has been shut down
        """
        if self._closed:
            raise LenderMatchError("Underwriting service is shut down")

        handle, created = self.registry.register_if_absent(
            RunHandle(application_id=self._application_id(application))
        )
        if not created:
            logger.info(
                f"Application {handle.application_id} already has active "
                f"underwriting run {handle.id}"
            )
            return handle.snapshot()

        try:
            self._executor.submit(self._execute, handle, application, list(catalog))
        except RuntimeError as e:
            handle.fail(str(e))
            self.registry.release(handle)
            raise LenderMatchError("Underwriting service is shut down") from e

        return handle.snapshot()

    def rerun(
        self,
        application: ApplicationInput,
        catalog: Sequence[PolicyInput],
    ) -> UnderwritingRun:
        """
        Re-run underwriting for an application.

        Useful when policies have been updated or application data has
        changed. Returns the active run instead while one exists.
        """
        run = self.submit(application, catalog)
        logger.info(f"Re-run requested for application {run.application_id}: run {run.id}")
        return run

    def evaluate(
        self,
        application: ApplicationInput,
        catalog: Sequence[PolicyInput],
        timeout: Optional[float] = None,
    ) -> UnderwritingRun:
        """Submit a run and block until it finishes."""
        run = self.submit(application, catalog)
        return self.wait(run.id, timeout=timeout)

    def wait(self, run_id: str, timeout: Optional[float] = None) -> UnderwritingRun:
        """
        Block until a run is terminal or the timeout elapses.

        Args:
            run_id: Underwriting run id
            timeout: Seconds to wait, None to wait indefinitely

        Returns:
            Snapshot of the run, which may still be active on timeout
        """
        handle = self._get_handle(run_id)
        handle.wait(timeout)
        return handle.snapshot()

    def cancel(self, run_id: str) -> UnderwritingRun:
        """
        Cancel an active run; results of in-flight lenders are discarded.

        Cancelling a run that already finished has no effect.
        """
        handle = self._get_handle(run_id)
        if handle.cancel():
            self.registry.release(handle)
            logger.info(f"Underwriting run {run_id} cancelled")
        return handle.snapshot()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting runs and release the run worker pool."""
        self._closed = True
        self._executor.shutdown(wait=wait)

    # ===== Run lookups =====

    def get_run(self, run_id: str) -> UnderwritingRun:
        """
        Retrieve an underwriting run.

        Raises:
            RunNotFoundError: If no run has this id
        """
        return self._get_handle(run_id).snapshot()

    def get_latest_run(self, application_id: str) -> Optional[UnderwritingRun]:
        """Most recent run for an application, or None if it was never underwritten."""
        handle = self.registry.latest(application_id)
        return handle.snapshot() if handle else None

    def list_runs(self, application_id: str) -> List[UnderwritingRun]:
        """All runs for an application, most recent first."""
        return [h.snapshot() for h in self.registry.list_for_application(application_id)]

    @staticmethod
    def summarize(run: UnderwritingRun) -> RunSummary:
        """
        Summary statistics of a run's results.

        Args:
            run: Run snapshot; runs without results summarize as empty

        Returns:
            RunSummary with counts, average fit score and best match
        """
        results = run.results or []
        eligible_count = sum(1 for r in results if r.eligible)

        average = None
        if results:
            average = (
                Decimal(sum(r.fit_score for r in results)) / len(results)
            ).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        return RunSummary(
            total_evaluated=len(results),
            eligible_count=eligible_count,
            ineligible_count=len(results) - eligible_count,
            average_fit_score=average,
            best_match=best_match(results),
        )

    # ===== Execution =====

    def _execute(
        self,
        handle: RunHandle,
        application: ApplicationInput,
        catalog: List[PolicyInput],
    ) -> None:
        """Run body executed on the run worker pool."""
        try:
            try:
                handle.start()
            except InvalidRunTransitionError:
                # Cancelled before it started
                return

            loan_application = self._coerce_application(application)
            logger.info(
                f"Underwriting run {handle.id} started for application "
                f"{loan_application.id} against {len(catalog)} lenders"
            )

            results = self._evaluate_catalog(handle, loan_application, catalog)
            if results is None:
                return

            if handle.transition(
                UnderwritingStatus.RUNNING, UnderwritingStatus.COMPLETED, results=results
            ):
                matched_count = sum(1 for r in results if r.eligible)
                logger.info(
                    f"Underwriting run {handle.id} completed: "
                    f"{matched_count} matched, {len(results) - matched_count} rejected"
                )

        except Exception as e:
            logger.error(
                f"Underwriting run {handle.id} failed for application "
                f"{handle.application_id}: {e}",
                exc_info=True,
            )
            handle.transition(
                UnderwritingStatus.RUNNING,
                UnderwritingStatus.FAILED,
                error=str(e) or e.__class__.__name__,
            )

        finally:
            self.registry.release(handle)

    def _evaluate_catalog(
        self,
        handle: RunHandle,
        application: LoanApplication,
        policies: List[PolicyInput],
    ) -> Optional[List[LenderMatchResult]]:
        """
        Evaluate every lender on a pool sized to the catalog.

        Returns:
            Results in catalog order, or None if the run was cancelled
        """
        if not policies:
            return []

        executor = ThreadPoolExecutor(
            max_workers=self.settings.worker_count(len(policies)),
            thread_name_prefix=f"lender-{handle.id[:8]}",
        )
        try:
            futures = [
                executor.submit(self._evaluate_lender, application, policy)
                for policy in policies
            ]
            pending = set(futures)
            while pending:
                if handle.cancel_requested:
                    return None
                _, pending = wait_futures(
                    pending,
                    timeout=self.settings.UNDERWRITING_CANCEL_POLL_SECONDS,
                    return_when=FIRST_COMPLETED,
                )
            if handle.cancel_requested:
                return None
            return [future.result() for future in futures]
        finally:
            executor.shutdown(wait=not handle.cancel_requested, cancel_futures=True)

    def _evaluate_lender(
        self,
        application: LoanApplication,
        policy: PolicyInput,
    ) -> LenderMatchResult:
        """
        Evaluate one lender, reporting a fault as an ineligible result.

        A policy that fails schema validation is a fault of that lender
        only; it is reported under the id and name found in the raw mapping.
        """
        try:
            if not isinstance(policy, LenderPolicy):
                policy = LenderPolicy.model_validate(policy)
            return self.matcher.evaluate_lender(application, policy)
        except Exception as e:
            lender_id, lender_name = self._policy_identity(policy)
            logger.warning(
                f"Evaluation failed for lender {lender_id} ({lender_name}): {e}",
                exc_info=True,
            )
            return Matcher.evaluation_error_result(lender_id, lender_name)

    @staticmethod
    def _coerce_application(application: ApplicationInput) -> LoanApplication:
        """Validate a raw application into its schema model."""
        if isinstance(application, LoanApplication):
            return application
        return LoanApplication.model_validate(application)

    @staticmethod
    def _policy_identity(policy: Any) -> Tuple[str, str]:
        if isinstance(policy, LenderPolicy):
            return policy.id, policy.name
        if isinstance(policy, Mapping):
            return str(policy.get("id") or ""), str(policy.get("name") or "")
        return "", ""

    @staticmethod
    def _application_id(application: ApplicationInput) -> str:
        """
        Active-slot key of an application.

        Submissions without an id get a fresh key, so unrelated malformed
        applications never share an active run.
        """
        if isinstance(application, LoanApplication):
            return application.id
        if isinstance(application, Mapping) and application.get("id"):
            return str(application["id"])
        return f"unidentified-{uuid4()}"

    def _get_handle(self, run_id: str) -> RunHandle:
        handle = self.registry.get(run_id)
        if handle is None:
            raise RunNotFoundError(run_id)
        return handle
