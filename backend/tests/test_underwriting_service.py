"""Tests for the underwriting run orchestrator."""

import logging
import threading
from decimal import Decimal

import pytest

from conftest import application_payload, policy_payload, program_payload
from lendermatch.config import Settings
from lendermatch.core.enums import UnderwritingStatus
from lendermatch.core.exceptions import LenderMatchError, RunNotFoundError
from lendermatch.services.rule_engine import Matcher
from lendermatch.services.underwriting_service import UnderwritingService


class BlockingMatcher(Matcher):
    """Matcher that holds every lender evaluation until released."""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def evaluate_lender(self, application, policy):
        self.started.set()
        self.release.wait(timeout=10)
        return super().evaluate_lender(application, policy)


class FaultyMatcher(Matcher):
    """Matcher that raises for one lender."""

    def evaluate_lender(self, application, policy):
        if policy.id == "broken":
            raise RuntimeError("corrupt policy")
        return super().evaluate_lender(application, policy)


@pytest.fixture
def blocking_service(test_settings):
    matcher = BlockingMatcher()
    svc = UnderwritingService(settings=test_settings, matcher=matcher)
    yield svc, matcher
    matcher.release.set()
    svc.shutdown(wait=True)


class TestRunLifecycle:
    def test_completed_run(self, service, applicant, catalog):
        run = service.evaluate(applicant, catalog, timeout=10)

        assert run.status == UnderwritingStatus.COMPLETED
        assert run.application_id == "app-001"
        assert run.error is None
        assert run.started_at.tzinfo is not None
        assert run.completed_at >= run.started_at
        assert [r.lender_id for r in run.results] == [p.id for p in catalog]

    def test_zero_eligible_is_still_completed(self, service, applicant, capped_policy):
        run = service.evaluate(applicant, [capped_policy], timeout=10)
        assert run.status == UnderwritingStatus.COMPLETED
        assert not any(r.eligible for r in run.results)

    def test_empty_catalog(self, service, applicant):
        run = service.evaluate(applicant, [], timeout=10)
        assert run.status == UnderwritingStatus.COMPLETED
        assert run.results == []

    def test_accepts_json_inputs(self, service):
        catalog = [policy_payload("json", "Json Lender", [program_payload(fico={"minScore": 700})])]
        run = service.evaluate(application_payload(app_id="app-json"), catalog, timeout=10)
        assert run.status == UnderwritingStatus.COMPLETED
        assert run.results[0].eligible is True

    def test_repeated_runs_are_identical(self, service, applicant, catalog):
        first = service.evaluate(applicant, catalog, timeout=10)
        second = service.evaluate(applicant, catalog, timeout=10)
        assert first.id != second.id
        assert [r.model_dump_json() for r in first.results] == [
            r.model_dump_json() for r in second.results
        ]

    def test_single_worker_keeps_catalog_order(self, applicant, catalog):
        settings = Settings(UNDERWRITING_MAX_WORKERS=1, UNDERWRITING_CANCEL_POLL_SECONDS=0.01)
        with UnderwritingService(settings=settings) as svc:
            run = svc.evaluate(applicant, catalog, timeout=10)
        assert [r.lender_id for r in run.results] == [p.id for p in catalog]

    def test_serializes_camel_case(self, service, applicant, standard_policy):
        run = service.evaluate(applicant, [standard_policy], timeout=10)
        payload = run.model_dump(by_alias=True, mode="json")
        assert payload["applicationId"] == "app-001"
        assert payload["results"][0]["fitScore"] == 88
        assert payload["results"][0]["bestProgram"]["id"] == "apex-standard"


class TestFaults:
    def test_lender_fault_is_isolated(self, test_settings, applicant, standard_policy, make_policy, caplog):
        broken = make_policy("broken", "Broken Lender", [program_payload()])
        with UnderwritingService(settings=test_settings, matcher=FaultyMatcher()) as svc:
            with caplog.at_level(logging.WARNING):
                run = svc.evaluate(applicant, [broken, standard_policy], timeout=10)

        assert run.status == UnderwritingStatus.COMPLETED
        assert run.results[0].rejection_reasons == ["Evaluation error"]
        assert run.results[0].fit_score == 0
        assert run.results[1].eligible is True
        assert "broken" in caplog.text

    def test_malformed_application_fails_run(self, service, catalog, caplog):
        payload = application_payload(app_id="app-bad")
        del payload["business"]
        with caplog.at_level(logging.ERROR):
            run = service.evaluate(payload, catalog, timeout=10)

        assert run.status == UnderwritingStatus.FAILED
        assert run.results is None
        assert "business" in run.error
        assert run.completed_at is not None
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_malformed_policy_is_ineligible_not_fatal(self, service, applicant, make_policy):
        inverted = make_policy(
            "inverted",
            "Inverted Band",
            [program_payload(loanAmount={"minAmount": 500_000, "maxAmount": 25_000})],
        )
        run = service.evaluate(applicant, [inverted], timeout=10)
        assert run.status == UnderwritingStatus.COMPLETED
        assert run.results[0].eligible is False
        assert run.results[0].rejection_reasons[0].startswith("Invalid loan amount range")

    def test_policy_failing_schema_is_isolated(self, service, applicant, standard_policy, caplog):
        bad = {
            "id": "bad",
            "name": "Bad Lender",
            "programs": [{"name": "no id", "criteria": {}}],
        }
        with caplog.at_level(logging.WARNING):
            run = service.evaluate(applicant, [standard_policy, bad], timeout=10)

        assert run.status == UnderwritingStatus.COMPLETED
        assert [r.lender_id for r in run.results] == ["apex", "bad"]
        assert run.results[0].eligible is True
        assert run.results[1].lender_name == "Bad Lender"
        assert run.results[1].eligible is False
        assert run.results[1].fit_score == 0
        assert run.results[1].rejection_reasons == ["Evaluation error"]
        assert "Bad Lender" in caplog.text

    def test_policy_that_is_not_a_mapping_is_isolated(self, service, applicant, standard_policy):
        run = service.evaluate(applicant, ["not a policy", standard_policy], timeout=10)
        assert run.status == UnderwritingStatus.COMPLETED
        assert run.results[0].lender_id == ""
        assert run.results[0].rejection_reasons == ["Evaluation error"]
        assert run.results[1].lender_id == "apex"

    def test_applications_without_id_do_not_share_a_run(self, service, catalog):
        first = service.submit({"business": {"name": "Anon"}}, catalog)
        second = service.submit({}, catalog)
        assert second.id != first.id
        assert second.application_id != first.application_id

        for run in (first, second):
            assert service.wait(run.id, timeout=10).status == UnderwritingStatus.FAILED


class TestIdempotentSubmission:
    def test_active_run_is_returned(self, blocking_service, applicant, catalog):
        svc, matcher = blocking_service
        first = svc.submit(applicant, catalog)
        second = svc.submit(applicant, catalog)
        assert second.id == first.id

        matcher.release.set()
        assert svc.wait(first.id, timeout=10).status == UnderwritingStatus.COMPLETED

        third = svc.submit(applicant, catalog)
        assert third.id != first.id
        svc.wait(third.id, timeout=10)
        assert [r.id for r in svc.list_runs("app-001")] == [third.id, first.id]
        assert svc.get_latest_run("app-001").id == third.id

    def test_rerun_while_active_returns_active(self, blocking_service, applicant, catalog):
        svc, _ = blocking_service
        first = svc.submit(applicant, catalog)
        assert svc.rerun(applicant, catalog).id == first.id

    def test_other_applications_are_independent(self, blocking_service, make_application, catalog):
        svc, _ = blocking_service
        first = svc.submit(make_application(app_id="app-1"), catalog)
        second = svc.submit(make_application(app_id="app-2"), catalog)
        assert first.id != second.id

    def test_wait_times_out_on_active_run(self, blocking_service, applicant, catalog):
        svc, matcher = blocking_service
        run = svc.submit(applicant, catalog)
        assert matcher.started.wait(timeout=10)
        assert svc.wait(run.id, timeout=0.05).status == UnderwritingStatus.RUNNING


class TestCancellation:
    def test_cancel_running_run(self, blocking_service, applicant, catalog):
        svc, matcher = blocking_service
        run = svc.submit(applicant, catalog)
        assert matcher.started.wait(timeout=10)

        cancelled = svc.cancel(run.id)
        assert cancelled.status == UnderwritingStatus.FAILED
        assert cancelled.error == "cancelled"

        matcher.release.set()
        svc.shutdown(wait=True)
        final = svc.get_run(run.id)
        assert final.status == UnderwritingStatus.FAILED
        assert final.results is None

    def test_cancel_pending_run(self, applicant, make_application, catalog):
        settings = Settings(UNDERWRITING_MAX_CONCURRENT_RUNS=1, UNDERWRITING_CANCEL_POLL_SECONDS=0.01)
        matcher = BlockingMatcher()
        svc = UnderwritingService(settings=settings, matcher=matcher)
        try:
            svc.submit(applicant, catalog)
            assert matcher.started.wait(timeout=10)
            queued = svc.submit(make_application(app_id="app-queued"), catalog)
            assert queued.status == UnderwritingStatus.PENDING

            cancelled = svc.cancel(queued.id)
            assert cancelled.error == "cancelled"
        finally:
            matcher.release.set()
            svc.shutdown(wait=True)

        assert svc.get_run(queued.id).status == UnderwritingStatus.FAILED

    def test_cancel_finished_run_is_noop(self, service, applicant, standard_policy):
        run = service.evaluate(applicant, [standard_policy], timeout=10)
        assert service.cancel(run.id).status == UnderwritingStatus.COMPLETED

    def test_new_run_allowed_after_cancel(self, blocking_service, applicant, catalog):
        svc, _ = blocking_service
        run = svc.submit(applicant, catalog)
        svc.cancel(run.id)
        assert svc.submit(applicant, catalog).id != run.id


class TestLookups:
    def test_unknown_run(self, service):
        with pytest.raises(RunNotFoundError):
            service.get_run("missing")
        with pytest.raises(RunNotFoundError):
            service.cancel("missing")

    def test_no_runs_for_application(self, service):
        assert service.get_latest_run("nobody") is None
        assert service.list_runs("nobody") == []

    def test_history_is_capped(self, applicant, standard_policy):
        settings = Settings(UNDERWRITING_RUN_HISTORY_LIMIT=2, UNDERWRITING_CANCEL_POLL_SECONDS=0.01)
        with UnderwritingService(settings=settings) as svc:
            runs = [svc.evaluate(applicant, [standard_policy], timeout=10) for _ in range(3)]
            history = svc.list_runs(applicant.id)

        assert [r.id for r in history] == [runs[2].id, runs[1].id]
        with pytest.raises(RunNotFoundError):
            svc.get_run(runs[0].id)

    def test_submit_after_shutdown(self, test_settings, applicant):
        svc = UnderwritingService(settings=test_settings)
        svc.shutdown()
        with pytest.raises(LenderMatchError):
            svc.submit(applicant, [])


class TestSummary:
    def test_summarize(self, service, applicant, catalog):
        run = service.evaluate(applicant, catalog, timeout=10)
        summary = service.summarize(run)

        assert summary.total_evaluated == 4
        assert summary.eligible_count == 2
        assert summary.ineligible_count == 2
        assert summary.average_fit_score == Decimal("60.75")
        assert summary.best_match.lender_id == "tiered"

    def test_summarize_failed_run(self, service, catalog):
        run = service.evaluate({"id": "app-empty"}, catalog, timeout=10)
        summary = service.summarize(run)
        assert summary.total_evaluated == 0
        assert summary.average_fit_score is None
        assert summary.best_match is None
