"""
Tests for the blocking state controller.
"""

import threading

import pytest

from focusshield.core.blocking_controller import BlockingStateController
from focusshield.utils.constants import PendingAction
from tests.fakes import FakeClock, FakeShield, at


@pytest.fixture
def controller(shield, clock):
    return BlockingStateController(shield, clock=clock, retry_attempts=3, sleep=lambda s: None)


class TestActivate:
    def test_idle_to_blocking(self, controller, shield):
        assert controller.activate("t1", "Deep work", at(9, 30))

        state = controller.state
        assert state.task_id == "t1"
        assert state.title == "Deep work"
        assert state.end_time == at(9, 30)
        assert state.pending is None
        assert shield.start_calls == 1

    def test_same_task_is_noop(self, controller, shield):
        controller.activate("t1", "Deep work", at(9, 30))

        assert not controller.activate("t1", "Deep work", at(9, 30))
        assert shield.start_calls == 1

    def test_other_task_does_not_preempt(self, controller, shield):
        controller.activate("t1", "First", at(9, 30))

        assert not controller.activate("t2", "Second", at(10, 0))
        assert controller.active_task_id == "t1"
        assert shield.start_calls == 1

    def test_refuses_end_not_in_future(self, controller, shield, clock):
        clock.now = at(9, 30)

        assert not controller.activate("t1", "Late", at(9, 30))
        assert not controller.is_blocking
        assert shield.start_calls == 0

    def test_explicit_now_overrides_clock(self, controller, clock):
        clock.now = at(12, 0)

        assert controller.activate("t1", "T", at(9, 30), now=at(9, 10))

    def test_shield_unavailable_is_silent(self, clock):
        shield = FakeShield(available=False)
        controller = BlockingStateController(shield, clock=clock)

        assert not controller.activate("t1", "T", at(9, 30))
        assert not controller.is_blocking
        assert shield.start_calls == 0


class TestDeactivate:
    def test_idle_is_noop(self, controller, shield):
        assert not controller.deactivate()
        assert shield.stop_calls == 0

    def test_blocking_to_idle(self, controller, shield):
        controller.activate("t1", "T", at(9, 30))

        assert controller.deactivate()
        assert not controller.is_blocking
        assert controller.state.end_time is None
        assert shield.stop_calls == 1

    def test_twice_stops_once(self, controller, shield):
        controller.activate("t1", "T", at(9, 30))
        controller.deactivate()
        controller.deactivate()

        assert shield.stop_calls == 1


class TestShieldRetries:
    def test_start_succeeds_after_retry(self, controller, shield):
        shield.fail_starts = 2

        assert controller.activate("t1", "T", at(9, 30))
        assert shield.start_calls == 3
        assert controller.state.pending is None

    def test_start_exhausts_retries_and_stays_pending(self, controller, shield):
        shield.fail_starts = 5

        assert not controller.activate("t1", "T", at(9, 30))
        assert shield.start_calls == 3
        assert controller.active_task_id == "t1"
        assert controller.state.pending == PendingAction.START

    def test_pending_start_retried_on_next_activate(self, controller, shield):
        shield.fail_starts = 3
        controller.activate("t1", "T", at(9, 30))

        assert controller.activate("t1", "T", at(9, 30))
        assert controller.state.pending is None
        assert shield.start_calls == 4

    def test_pending_start_still_holds_session(self, controller, shield):
        shield.fail_starts = 3
        controller.activate("t1", "T", at(9, 30))

        assert not controller.activate("t2", "Other", at(10, 0))
        assert controller.active_task_id == "t1"

    def test_stop_failure_keeps_session_pending(self, controller, shield):
        controller.activate("t1", "T", at(9, 30))
        shield.fail_stops = 3

        assert not controller.deactivate()
        assert controller.active_task_id == "t1"
        assert controller.state.pending == PendingAction.STOP

        assert controller.deactivate()
        assert not controller.is_blocking
        assert shield.stop_calls == 4

    def test_retry_waits_between_attempts(self, shield, clock):
        delays = []
        controller = BlockingStateController(
            shield, clock=clock, retry_attempts=3, retry_delay=0.25, sleep=delays.append
        )
        shield.fail_starts = 5

        controller.activate("t1", "T", at(9, 30))

        assert delays == [0.25, 0.25]

    def test_shield_exception_counts_as_failure(self, clock):
        class ExplodingShield(FakeShield):
            def start_blocking(self):
                self.start_calls += 1
                raise RuntimeError("boom")

        shield = ExplodingShield()
        controller = BlockingStateController(shield, clock=clock, retry_attempts=2, sleep=lambda s: None)

        assert not controller.activate("t1", "T", at(9, 30))
        assert shield.start_calls == 2
        assert controller.state.pending == PendingAction.START


def test_state_change_callback(shield, clock):
    seen = []
    controller = BlockingStateController(shield, clock=clock, on_state_change=seen.append)

    controller.activate("t1", "T", at(9, 30))
    controller.activate("t1", "T", at(9, 30))
    controller.deactivate()

    assert [s.task_id for s in seen] == ["t1", None]


def test_concurrent_activations_hold_one_session():
    shield = FakeShield()
    controller = BlockingStateController(shield, clock=FakeClock(at(9, 0)))
    barrier = threading.Barrier(8)

    def worker(n):
        barrier.wait()
        controller.activate(f"t{n}", "T", at(10, 0))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert controller.is_blocking
    assert shield.start_calls == 1
