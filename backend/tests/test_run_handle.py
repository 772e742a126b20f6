"""Tests for run state transitions and the run registry."""

import threading

import pytest

from lendermatch.core.enums import UnderwritingStatus
from lendermatch.core.exceptions import InvalidRunTransitionError
from lendermatch.models.domain import CANCELLED_ERROR, RunHandle
from lendermatch.repositories import RunRegistry

PENDING = UnderwritingStatus.PENDING
RUNNING = UnderwritingStatus.RUNNING
COMPLETED = UnderwritingStatus.COMPLETED
FAILED = UnderwritingStatus.FAILED


class TestRunHandle:
    def test_new_run_is_pending(self):
        handle = RunHandle("app-1")
        snapshot = handle.snapshot()
        assert snapshot.status == PENDING
        assert snapshot.is_terminal is False
        assert snapshot.started_at.tzinfo is not None
        assert snapshot.completed_at is None

    def test_ids_are_unique(self):
        assert RunHandle("app-1").id != RunHandle("app-1").id

    def test_happy_path(self):
        handle = RunHandle("app-1")
        handle.start()
        assert handle.transition(RUNNING, COMPLETED, results=[])

        snapshot = handle.snapshot()
        assert snapshot.status == COMPLETED
        assert snapshot.results == []
        assert snapshot.is_terminal is True
        assert handle.wait(timeout=0)

    @pytest.mark.parametrize(
        "expected,target",
        [(PENDING, COMPLETED), (RUNNING, PENDING), (COMPLETED, FAILED), (FAILED, RUNNING)],
    )
    def test_illegal_transitions_are_rejected(self, expected, target):
        handle = RunHandle("app-1")
        handle.status = expected
        assert handle.transition(expected, target) is False
        assert handle.status == expected

    def test_stale_expected_state_is_rejected(self):
        handle = RunHandle("app-1")
        handle.start()
        assert handle.transition(PENDING, RUNNING) is False

    def test_start_twice_raises(self):
        handle = RunHandle("app-1")
        handle.start()
        with pytest.raises(InvalidRunTransitionError):
            handle.start()

    def test_completed_run_is_immutable(self):
        handle = RunHandle("app-1")
        handle.start()
        handle.transition(RUNNING, COMPLETED, results=[])
        assert handle.cancel() is False
        assert handle.fail("late") is False
        assert handle.snapshot().status == COMPLETED

    def test_cancel(self):
        handle = RunHandle("app-1")
        handle.start()
        assert handle.cancel() is True
        assert handle.cancel_requested
        snapshot = handle.snapshot()
        assert snapshot.status == FAILED
        assert snapshot.error == CANCELLED_ERROR
        assert handle.transition(RUNNING, COMPLETED, results=[]) is False

    def test_racing_completions_apply_once(self):
        handle = RunHandle("app-1")
        handle.start()
        outcomes = []
        barrier = threading.Barrier(8)

        def finish(i):
            barrier.wait()
            if i % 2:
                outcomes.append(handle.transition(RUNNING, COMPLETED, results=[]))
            else:
                outcomes.append(handle.cancel())

        threads = [threading.Thread(target=finish, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count(True) == 1
        assert handle.snapshot().is_terminal


class TestRunRegistry:
    def test_insert_if_absent(self):
        registry = RunRegistry()
        first, created = registry.register_if_absent(RunHandle("app-1"))
        assert created
        second, created = registry.register_if_absent(RunHandle("app-1"))
        assert not created
        assert second is first

    def test_terminal_active_run_does_not_block(self):
        registry = RunRegistry()
        first, _ = registry.register_if_absent(RunHandle("app-1"))
        first.cancel()
        second, created = registry.register_if_absent(RunHandle("app-1"))
        assert created
        assert second is not first

    def test_release_only_clears_own_slot(self):
        registry = RunRegistry()
        first, _ = registry.register_if_absent(RunHandle("app-1"))
        first.cancel()
        second, _ = registry.register_if_absent(RunHandle("app-1"))
        registry.release(first)
        _, created = registry.register_if_absent(RunHandle("app-1"))
        assert not created

    def test_history(self):
        registry = RunRegistry()
        first, _ = registry.register_if_absent(RunHandle("app-1"))
        registry.release(first)
        second, _ = registry.register_if_absent(RunHandle("app-1"))

        assert registry.get(first.id) is first
        assert registry.get("missing") is None
        assert registry.latest("app-1") is second
        assert registry.list_for_application("app-1") == [second, first]
        assert registry.latest("app-2") is None

    def test_history_limit_drops_oldest_finished_runs(self):
        registry = RunRegistry(history_limit=2)
        handles = []
        for _ in range(3):
            handle, created = registry.register_if_absent(RunHandle("app-1"))
            assert created
            handle.cancel()
            registry.release(handle)
            handles.append(handle)

        first, second, third = handles
        assert registry.list_for_application("app-1") == [third, second]
        assert registry.get(first.id) is None
        assert registry.get(second.id) is second

    def test_history_limit_keeps_active_run(self):
        registry = RunRegistry(history_limit=1)
        first, _ = registry.register_if_absent(RunHandle("app-1"))
        first.cancel()
        second, _ = registry.register_if_absent(RunHandle("app-1"))

        assert registry.list_for_application("app-1") == [second]
        assert registry.get(second.id) is second
        assert registry.get(first.id) is None

    def test_history_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            RunRegistry(history_limit=0)
