"""
Blocking state controller: the single owner of the active blocking session.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from focusshield.core.shield import ShieldService
from focusshield.data.models import ActiveBlockState, IDLE
from focusshield.utils.constants import (
    DEFAULT_SHIELD_RETRY_ATTEMPTS,
    DEFAULT_SHIELD_RETRY_DELAY_SECONDS,
    PendingAction,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BlockingStateController:
    """
    Two-state machine, Idle and Blocking(task_id, end_time), and the only
    caller of the shield.

    At most one task holds the session. A task that holds it keeps it until
    it is deactivated; activating a different task meanwhile is a no-op.
    A shield call that still fails after the retries leaves the session
    marked ``pending`` so the next activate/deactivate or reconcile retries it.

    ``lock`` is re-entrant and shared with the scheduling engine, delivery
    handler and reconciler so that no two of them mutate state concurrently.
    """

    def __init__(
        self,
        shield: ShieldService,
        clock: Callable[[], datetime] = utc_now,
        retry_attempts: int = DEFAULT_SHIELD_RETRY_ATTEMPTS,
        retry_delay: float = DEFAULT_SHIELD_RETRY_DELAY_SECONDS,
        on_state_change: Optional[Callable[[ActiveBlockState], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._shield = shield
        self._clock = clock
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delay = retry_delay
        self.on_state_change = on_state_change
        self._sleep = sleep

        self._state = IDLE
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def state(self) -> ActiveBlockState:
        """Get a snapshot of the current session."""
        return self._state

    @property
    def active_task_id(self) -> Optional[str]:
        return self._state.task_id

    @property
    def is_blocking(self) -> bool:
        return self._state.is_active

    @property
    def shield(self) -> ShieldService:
        return self._shield

    def now(self) -> datetime:
        return self._clock()

    def activate(self, task_id: str, title: str, until: datetime, now: Optional[datetime] = None) -> bool:
        """
        Start a blocking session for ``task_id`` lasting until ``until``.

        Returns:
            True if the shield was switched on by this call
        """
        with self._lock:
            now = now or self._clock()
            current = self._state

            if current.is_active and current.task_id != task_id:
                logger.info(
                    "Session held by task %s, not starting task %s", current.task_id, task_id
                )
                return False

            if current.is_active and current.pending is None:
                return False

            if until <= now:
                logger.debug("Refusing to block task %s: window ended at %s", task_id, until)
                return False

            if not self._shield.is_available():
                logger.info("Shield unavailable, not blocking for task %s", task_id)
                return False

            success = self._call_shield(self._shield.start_blocking, "start")
            self._set_state(ActiveBlockState(
                task_id=task_id,
                title=title,
                end_time=until,
                pending=None if success else PendingAction.START,
            ))

            if success:
                logger.info("Blocking started for task %s (%s) until %s", task_id, title, until)
            return success

    def deactivate(self) -> bool:
        """
        End the current session, if any.

        Returns:
            True if the shield was switched off by this call
        """
        with self._lock:
            current = self._state
            if not current.is_active:
                return False

            if self._call_shield(self._shield.stop_blocking, "stop"):
                self._set_state(IDLE)
                logger.info("Blocking stopped for task %s", current.task_id)
                return True

            self._set_state(current.with_pending(PendingAction.STOP))
            return False

    def _call_shield(self, action: Callable[[], Tuple[bool, str]], name: str) -> bool:
        """Run a shield call with bounded retries."""
        for attempt in range(1, self.retry_attempts + 1):
            try:
                success, error = action()
            except Exception as e:
                success, error = False, str(e)

            if success:
                return True

            logger.warning(
                "Shield %s failed (attempt %d/%d): %s", name, attempt, self.retry_attempts, error
            )
            if attempt < self.retry_attempts:
                self._sleep(self.retry_delay)
        return False

    def _set_state(self, new_state: ActiveBlockState) -> None:
        """Set the state and trigger callback."""
        old_state = self._state
        self._state = new_state

        if old_state != new_state and self.on_state_change:
            self.on_state_change(new_state)
