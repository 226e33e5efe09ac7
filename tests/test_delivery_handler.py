"""
Tests for applying delivered wake triggers.
"""

from focusshield.data.models import WakePayload
from focusshield.utils.constants import TriggerKind
from tests.fakes import at, make_task


def start_payload(task_id="t1", end=None, title="Deep work"):
    return WakePayload(TriggerKind.START, task_id, title, end or at(10, 0)).encode()


def end_payload(task_id="t1", end=None):
    return WakePayload(TriggerKind.END, task_id, "", end or at(10, 0)).encode()


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    def notify(self, title, message):
        self.messages.append((title, message))


def test_start_activates_until_window_end(service, shield):
    assert service.handle_wake("blocking.start.t1", start_payload(), now=at(9, 0))

    assert service.state.task_id == "t1"
    assert service.state.title == "Deep work"
    assert service.state.end_time == at(10, 0)
    assert shield.start_calls == 1


def test_late_start_is_dropped(service, shield):
    assert not service.handle_wake("blocking.start.t1", start_payload(), now=at(10, 0))
    assert not service.state.is_active
    assert shield.calls == 0


def test_end_for_active_task_deactivates(service, shield):
    service.handle_wake("blocking.start.t1", start_payload(), now=at(9, 0))

    assert service.handle_wake("blocking.end.t1", end_payload(), now=at(10, 0))
    assert not service.state.is_active
    assert shield.stop_calls == 1


def test_stale_end_for_other_task_is_ignored(service, shield):
    service.handle_wake("blocking.start.t2", start_payload("t2", at(11, 0)), now=at(10, 0))

    assert not service.handle_wake("blocking.end.t1", end_payload("t1"), now=at(10, 0))
    assert service.state.task_id == "t2"
    assert shield.stop_calls == 0


def test_end_while_idle_is_ignored(service, shield):
    assert not service.handle_wake("blocking.end.t1", end_payload(), now=at(10, 0))
    assert shield.calls == 0


def test_duplicate_deliveries_have_one_effect(service, shield):
    for _ in range(2):
        service.handle_wake("blocking.start.t1", start_payload(), now=at(9, 0))
    for _ in range(2):
        service.handle_wake("blocking.end.t1", end_payload(), now=at(10, 0))

    assert shield.start_calls == 1
    assert shield.stop_calls == 1


def test_start_for_second_task_does_not_preempt(service, shield):
    service.handle_wake("blocking.start.t1", start_payload("t1", at(10, 0)), now=at(9, 0))

    assert not service.handle_wake("blocking.start.t2", start_payload("t2", at(11, 0)), now=at(9, 30))
    assert service.state.task_id == "t1"


def test_end_delivered_before_start_leaves_start_to_reconcile(service, shield):
    service.handle_wake("blocking.end.t1", end_payload(), now=at(9, 0))
    service.handle_wake("blocking.start.t1", start_payload(), now=at(9, 0))

    assert service.state.task_id == "t1"


def test_malformed_payload_is_dropped(service, shield):
    assert not service.handle_wake("blocking.start.t1", b"garbage", now=at(9, 0))
    assert shield.calls == 0


def test_disabled_drops_deliveries(service, config, shield):
    config.auto_blocking_enabled = False

    assert not service.handle_wake("blocking.start.t1", start_payload(), now=at(9, 0))
    assert shield.calls == 0


def test_uses_clock_when_no_time_given(service, clock, shield):
    clock.now = at(9, 59)
    assert service.handle_wake("blocking.start.t1", start_payload())


def test_notifies_on_applied_transitions(service, shield):
    notifier = RecordingNotifier()
    service.delivery.notifier = notifier

    service.handle_wake("blocking.start.t1", start_payload(title="Thesis"), now=at(9, 0))
    service.handle_wake("blocking.start.t1", start_payload(title="Thesis"), now=at(9, 1))
    service.handle_wake("blocking.end.t1", end_payload(), now=at(10, 0))

    assert notifier.messages == [
        ("Focus Time", "Starting: Thesis - Apps blocked"),
        ("Focus Complete", "Task finished - Apps unblocked"),
    ]


def test_fake_scheduler_delivers_through_service(service, wake, shield):
    service.schedule_for_tasks(
        [make_task("t1", "09:00", "09:30")],
        now=at(8, 0),
    )

    wake.advance_to(at(9, 10))
    assert service.state.task_id == "t1"

    wake.advance_to(at(9, 45))
    assert not service.state.is_active
    assert (shield.start_calls, shield.stop_calls) == (1, 1)
