"""
Wake scheduler: fire-at-wall-clock triggers that carry an opaque payload.

The APScheduler adapter stands in for the OS notification facility. With a
persistent job store the triggers survive a restart of the host process and
are delivered late (within the misfire grace period) if the process was not
running when they came due.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from focusshield.utils.constants import DEFAULT_MISFIRE_GRACE_SECONDS

logger = logging.getLogger(__name__)

DeliveryCallback = Callable[[str, bytes], None]

# Job functions must be importable by name for persistent job stores, so
# deliveries go through a module-level function and this registry.
_delivery_callbacks: Dict[str, DeliveryCallback] = {}


class WakeScheduler(Protocol):
    """Schedules triggers and delivers them to the callback set with ``set_on_fired``."""

    def set_on_fired(self, callback: DeliveryCallback) -> None:
        ...

    def schedule(self, trigger_id: str, fire_at: datetime, payload: bytes) -> Tuple[bool, str]:
        ...

    def cancel(self, trigger_ids: Iterable[str]) -> None:
        ...

    def pending_ids(self) -> List[str]:
        ...


def deliver_wake(scheduler_name: str, trigger_id: str, payload: bytes) -> None:
    """APScheduler job entry point: hand a fired trigger to its owner."""
    callback = _delivery_callbacks.get(scheduler_name)
    if callback is None:
        logger.warning("Wake trigger %s fired with no handler registered", trigger_id)
        return
    callback(trigger_id, payload)


class APSchedulerWakeScheduler:
    """
    Wake scheduler backed by an APScheduler ``BackgroundScheduler``.

    Each trigger is a one-shot ``date`` job whose id is the trigger id, so
    rescheduling an id replaces the previous job.
    """

    def __init__(
        self,
        timezone=None,
        jobstore=None,
        misfire_grace_seconds: int = DEFAULT_MISFIRE_GRACE_SECONDS,
        name: str = "focusshield",
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        """
        Args:
            timezone: Zone for the underlying scheduler
            jobstore: Optional APScheduler job store (e.g. SQLAlchemyJobStore)
            misfire_grace_seconds: How late a trigger may still be delivered
            name: Registry key tying stored jobs back to this instance
            scheduler: Pre-built scheduler (tests)
        """
        self.name = name
        self.misfire_grace_seconds = misfire_grace_seconds
        if scheduler is None:
            scheduler = BackgroundScheduler(timezone=timezone) if timezone else BackgroundScheduler()
        self._scheduler = scheduler
        self._jobstore_alias = "default"
        if jobstore is not None:
            self._jobstore_alias = "wake"
            self._scheduler.add_jobstore(jobstore, alias=self._jobstore_alias)

    def set_on_fired(self, callback: DeliveryCallback) -> None:
        _delivery_callbacks[self.name] = callback

    def start(self, paused: bool = False) -> None:
        if not self._scheduler.running:
            self._scheduler.start(paused=paused)

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        _delivery_callbacks.pop(self.name, None)

    def schedule(self, trigger_id: str, fire_at: datetime, payload: bytes) -> Tuple[bool, str]:
        try:
            self._scheduler.add_job(
                deliver_wake,
                "date",
                run_date=fire_at,
                args=[self.name, trigger_id, payload],
                id=trigger_id,
                jobstore=self._jobstore_alias,
                replace_existing=True,
                misfire_grace_time=self.misfire_grace_seconds,
                coalesce=True,
            )
        except Exception as e:
            return False, f"Could not schedule {trigger_id}: {e}"
        return True, ""

    def cancel(self, trigger_ids: Iterable[str]) -> None:
        for trigger_id in trigger_ids:
            try:
                self._scheduler.remove_job(trigger_id, jobstore=self._jobstore_alias)
            except JobLookupError:
                pass

    def pending_ids(self) -> List[str]:
        return [job.id for job in self._scheduler.get_jobs(jobstore=self._jobstore_alias)]

    def fire_time(self, trigger_id: str) -> Optional[datetime]:
        """When a pending trigger will fire, or None if it is not scheduled."""
        job = self._scheduler.get_job(trigger_id, jobstore=self._jobstore_alias)
        if job is None:
            return None
        # Jobs added before start() have no next_run_time yet
        return getattr(job, "next_run_time", None) or job.trigger.run_date
