"""
Scheduled blocking service: wires the scheduling engine, blocking
controller, delivery handler and reconciliation loop around injected
collaborators.
"""

import logging
import time
from datetime import datetime, tzinfo
from typing import Callable, Iterable, List, Optional

from focusshield.core.blocking_controller import BlockingStateController, utc_now
from focusshield.core.delivery_handler import DeliveryHandler
from focusshield.core.notifier import DesktopNotifier
from focusshield.core.reconciler import ReconciliationLoop
from focusshield.core.scheduling_engine import ScheduleResult, SchedulingEngine
from focusshield.core.shield import ShieldService
from focusshield.core.wake_scheduler import WakeScheduler
from focusshield.data.config import Config
from focusshield.data.models import ActiveBlockState, Task
from focusshield.data.task_source import TaskSource

logger = logging.getLogger(__name__)


class ScheduledBlockingService:
    """
    Manages automatic blocking driven by today's time-boxed tasks.

    The host application must call ``refresh`` (or ``reconcile``) every
    time it comes to the foreground: the active session lives only in
    memory and is rebuilt from tasks and the clock.
    """

    def __init__(
        self,
        config: Config,
        shield: ShieldService,
        wake_scheduler: WakeScheduler,
        task_source: Optional[TaskSource] = None,
        notifier: Optional[DesktopNotifier] = None,
        clock: Callable[[], datetime] = utc_now,
        tz: Optional[tzinfo] = None,
        on_state_change: Optional[Callable[[ActiveBlockState], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.task_source = task_source
        self.tz = tz or config.get_timezone()

        self.controller = BlockingStateController(
            shield,
            clock=clock,
            retry_attempts=config.shield_retry_attempts,
            retry_delay=config.shield_retry_delay_seconds,
            on_state_change=on_state_change,
            sleep=sleep,
        )
        self.engine = SchedulingEngine(self.controller, wake_scheduler, self.is_enabled, self.tz)
        self.reconciler = ReconciliationLoop(self.controller, self.is_enabled, self.tz)
        self.delivery = DeliveryHandler(self.controller, self.is_enabled, notifier=notifier)

        wake_scheduler.set_on_fired(self.handle_wake)

    def is_enabled(self) -> bool:
        return self.config.auto_blocking_enabled

    @property
    def state(self) -> ActiveBlockState:
        return self.controller.state

    def schedule_for_tasks(
        self, tasks: Optional[Iterable[Task]] = None, now: Optional[datetime] = None
    ) -> Optional[ScheduleResult]:
        tasks = self._resolve_tasks(tasks)
        if tasks is None:
            return None
        return self.engine.schedule_for_tasks(tasks, now)

    def reconcile(self, tasks: Optional[Iterable[Task]] = None, now: Optional[datetime] = None) -> Optional[str]:
        tasks = self._resolve_tasks(tasks)
        if tasks is None:
            return None
        return self.reconciler.reconcile(tasks, now)

    def refresh(self, tasks: Optional[Iterable[Task]] = None, now: Optional[datetime] = None) -> Optional[str]:
        """Reschedule triggers and reconcile; what the host runs on foreground entry."""
        tasks = self._resolve_tasks(tasks)
        if tasks is None:
            return None
        with self.controller.lock:
            self.engine.schedule_for_tasks(tasks, now)
            return self.reconciler.reconcile(tasks, now)

    def handle_wake(self, trigger_id: str, payload: bytes, now: Optional[datetime] = None) -> bool:
        return self.delivery.handle(trigger_id, payload, now)

    def cancel_for_task(self, task_id: str) -> None:
        self.engine.cancel_for_task(task_id)

    def handle_task_mutation(
        self,
        task_id: str,
        tasks: Optional[Iterable[Task]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Apply a task change: deletion, completion, skip, blocking flag
        toggled, or window edit. Cancels the task's triggers, then
        recomputes everything from the new task list.
        """
        with self.controller.lock:
            self.engine.cancel_for_task(task_id)
            tasks = self._resolve_tasks(tasks)
            if tasks is None:
                return
            self.engine.schedule_for_tasks(tasks, now)
            self.reconciler.reconcile(tasks, now)

    def set_auto_blocking_enabled(
        self,
        enabled: bool,
        tasks: Optional[Iterable[Task]] = None,
        now: Optional[datetime] = None,
        persist: bool = True,
    ) -> None:
        """
        Set the global toggle and bring triggers and state in line with it.

        ``persist=False`` applies a value that is already on disk, e.g. one
        written by another process.
        """
        with self.controller.lock:
            if persist:
                self.config.set_auto_blocking_enabled(enabled)
            else:
                self.config.auto_blocking_enabled = enabled
            logger.info("Auto-blocking %s", "enabled" if enabled else "disabled")

            if not enabled:
                self.engine.cancel_all()
                self.controller.deactivate()
                return

            if tasks is not None or self.task_source is not None:
                self.refresh(tasks, now)

    def _resolve_tasks(self, tasks: Optional[Iterable[Task]]) -> Optional[List[Task]]:
        if tasks is not None:
            return list(tasks)
        if self.task_source is None:
            return []
        try:
            return self.task_source.get_tasks()
        except Exception as e:
            logger.error("Task source unavailable: %s", e)
            return None
