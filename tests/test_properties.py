"""
Property tests over generated task lists and delivery orders.
"""

from datetime import timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from focusshield.core.blocking_service import ScheduledBlockingService
from focusshield.core.reconciler import desired_state
from focusshield.data.config import Config
from tests.fakes import UTC, FakeClock, FakeShield, FakeWakeScheduler, at, make_task


def hhmm(minutes):
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@st.composite
def task_lists(draw):
    count = draw(st.integers(min_value=0, max_value=6))
    tasks = []
    for n in range(count):
        start = draw(st.integers(min_value=0, max_value=1380))
        length = draw(st.integers(min_value=1, max_value=180))
        end = min(start + length, 1439)
        tasks.append(make_task(
            f"t{n}",
            hhmm(start),
            hhmm(end),
            blocking=draw(st.booleans()),
        ))
    return tasks


minutes_of_day = st.integers(min_value=0, max_value=1439)


def new_service(now):
    clock = FakeClock(now)
    shield = FakeShield()
    wake = FakeWakeScheduler(clock)
    config = Config(auto_blocking_enabled=True, shield_retry_delay_seconds=0)
    service = ScheduledBlockingService(config, shield, wake, clock=clock, tz=UTC, sleep=lambda s: None)
    return service, shield, wake


def at_minute(minute):
    return at(0, 0) + timedelta(minutes=minute)


@given(task_lists(), minutes_of_day)
@settings(max_examples=200, deadline=None)
def test_trigger_count(tasks, minute):
    now = at_minute(minute)
    service, shield, wake = new_service(now)

    service.schedule_for_tasks(tasks, now=now)

    windows = [t.blocking_window(UTC) for t in tasks if t.is_eligible(now.date())]
    future = sum(1 for w in windows if w.is_future(now))
    running = sum(1 for w in windows if w.contains(now))
    assert len(wake.triggers) == 2 * future + running
    assert shield.start_calls == (1 if running else 0)


@given(task_lists(), minutes_of_day)
@settings(max_examples=200, deadline=None)
def test_reconcile_reaches_desired_state(tasks, minute):
    now = at_minute(minute)
    service, shield, wake = new_service(now)

    service.refresh(tasks, now=now)

    desired = desired_state(tasks, now, True, UTC)
    assert service.state.task_id == (desired.task_id if desired else None)
    assert shield.is_blocking == (desired is not None)
    assert service.reconcile(tasks, now=now) is None


@given(task_lists(), st.randoms(use_true_random=False))
@settings(max_examples=100, deadline=None)
def test_shuffled_deliveries_keep_one_session(tasks, rnd):
    service, shield, wake = new_service(at(0, 0))
    service.schedule_for_tasks(tasks, now=at(0, 0))

    deliveries = [(tid, fire_at, payload) for tid, (fire_at, payload) in wake.triggers.items()]
    rnd.shuffle(deliveries)
    # each trigger may be delivered twice
    deliveries += rnd.sample(deliveries, len(deliveries) // 2)

    for trigger_id, fire_at, payload in deliveries:
        service.handle_wake(trigger_id, payload, now=fire_at)
        assert shield.is_blocking == service.state.is_active
        assert shield.start_calls - shield.stop_calls in (0, 1)

    end_of_day = at(23, 59)
    service.reconcile(tasks, now=end_of_day)
    desired = desired_state(tasks, end_of_day, True, UTC)
    assert service.state.task_id == (desired.task_id if desired else None)
