"""
Scheduling engine: turns today's eligible tasks into wake triggers and
starts blocking right away for a window that is already running.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Callable, Iterable, List, Optional, Set

from focusshield.core.blocking_controller import BlockingStateController
from focusshield.core.reconciler import eligible_windows, select_window
from focusshield.core.wake_scheduler import WakeScheduler
from focusshield.data.models import (
    BlockingWindow,
    Task,
    WakePayload,
    end_trigger_id,
    localize,
    start_trigger_id,
    trigger_ids_for,
)
from focusshield.utils.constants import TRIGGER_PREFIX, TriggerKind

logger = logging.getLogger(__name__)


@dataclass
class ScheduleResult:
    """Outcome of one scheduling pass."""

    scheduled: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    activated: Optional[str] = None
    skipped_reason: Optional[str] = None


class SchedulingEngine:
    """
    Converts eligible tasks into start/end wake triggers.

    Every pass cancels the triggers it owns (ids under ``blocking.``) before
    creating new ones. Passes are serialized on the controller lock, so a
    second call waits for the one in flight.
    """

    def __init__(
        self,
        controller: BlockingStateController,
        wake_scheduler: WakeScheduler,
        is_enabled: Callable[[], bool],
        tz: tzinfo,
    ):
        self._controller = controller
        self._wake_scheduler = wake_scheduler
        self._is_enabled = is_enabled
        self.tz = tz
        self._outstanding: Set[str] = set()

    @property
    def outstanding(self) -> Set[str]:
        """Trigger ids this engine scheduled and has not cancelled."""
        return set(self._outstanding)

    def schedule_for_tasks(self, tasks: Iterable[Task], now: Optional[datetime] = None) -> ScheduleResult:
        """Recompute all wake triggers for ``tasks`` as of ``now``."""
        with self._controller.lock:
            now = localize(now or self._controller.now(), self.tz)
            result = ScheduleResult()

            if not self._is_enabled():
                self._cancel_outstanding()
                self._controller.deactivate()
                result.skipped_reason = "disabled"
                return result

            if not self._controller.shield.is_available():
                logger.info("Shield unavailable, nothing scheduled")
                self._cancel_outstanding()
                result.skipped_reason = "shield_unavailable"
                return result

            self.cancel_all()

            windows = eligible_windows(tasks, now, self.tz)
            running = [w for w in windows if w.contains(now)]
            current = select_window(running)

            for window in windows:
                if window.has_elapsed(now):
                    continue

                if window.contains(now):
                    if window is current and self._controller.activate(
                        window.task_id, window.title, window.end, now=now
                    ):
                        result.activated = window.task_id
                    self._schedule_trigger(window, TriggerKind.END, result)
                else:
                    if self._schedule_trigger(window, TriggerKind.END, result):
                        self._schedule_trigger(window, TriggerKind.START, result)

            logger.info(
                "Scheduled %d wake triggers for %d blocking tasks", len(result.scheduled), len(windows)
            )
            return result

    def cancel_all(self) -> List[str]:
        """Cancel every trigger in the engine's namespace, including ones from earlier runs."""
        with self._controller.lock:
            ids = {i for i in self._wake_scheduler.pending_ids() if i.startswith(TRIGGER_PREFIX)}
            ids.update(self._outstanding)
            if ids:
                self._wake_scheduler.cancel(sorted(ids))
            self._outstanding.clear()
            logger.debug("Cancelled %d scheduled blocking triggers", len(ids))
            return sorted(ids)

    def cancel_for_task(self, task_id: str) -> None:
        """Drop both triggers for ``task_id`` and end its session if it holds one."""
        with self._controller.lock:
            ids = trigger_ids_for(task_id)
            self._wake_scheduler.cancel(ids)
            self._outstanding.difference_update(ids)

            if self._controller.active_task_id == task_id:
                self._controller.deactivate()

    def _cancel_outstanding(self) -> None:
        if self._outstanding:
            self._wake_scheduler.cancel(sorted(self._outstanding))
            self._outstanding.clear()

    def _schedule_trigger(self, window: BlockingWindow, kind: str, result: ScheduleResult) -> bool:
        if kind == TriggerKind.START:
            trigger_id, fire_at = start_trigger_id(window.task_id), window.start
        else:
            trigger_id, fire_at = end_trigger_id(window.task_id), window.end

        payload = WakePayload(
            kind=kind,
            task_id=window.task_id,
            title=window.title,
            window_end=window.end,
        )

        try:
            success, error = self._wake_scheduler.schedule(trigger_id, fire_at, payload.encode())
        except Exception as e:
            success, error = False, str(e)

        if not success:
            logger.error("Failed to schedule %s for task %s: %s", kind, window.task_id, error)
            if window.task_id not in result.failed:
                result.failed.append(window.task_id)
            return False

        self._outstanding.add(trigger_id)
        result.scheduled.append(trigger_id)
        logger.debug("Scheduled %s at %s", trigger_id, fire_at)
        return True
