"""
Reconciliation: recompute the desired blocking state from (tasks, now) and
correct whatever the controller actually holds.

This is the recovery path for wake triggers that were missed, delivered out
of order, or lost with the process's in-memory state.
"""

import logging
from datetime import datetime, tzinfo
from typing import Callable, Iterable, List, Optional

from focusshield.core.blocking_controller import BlockingStateController
from focusshield.data.models import BlockingWindow, Task, localize

logger = logging.getLogger(__name__)


class Transition:
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    SWITCH = "switch"


def eligible_windows(tasks: Iterable[Task], now: datetime, tz: tzinfo) -> List[BlockingWindow]:
    """Blocking windows of today's eligible tasks, ordered by start then task id."""
    today = localize(now, tz).date()
    windows = [task.blocking_window(tz) for task in tasks if task.is_eligible(today)]
    return sorted(windows, key=lambda w: (w.start, w.task_id))


def select_window(windows: Iterable[BlockingWindow]) -> Optional[BlockingWindow]:
    """Pick among overlapping windows: earliest start wins, then lowest task id."""
    windows = list(windows)
    if not windows:
        return None
    return min(windows, key=lambda w: (w.start, w.task_id))


def desired_state(
    tasks: Iterable[Task], now: datetime, enabled: bool, tz: tzinfo
) -> Optional[BlockingWindow]:
    """
    The window that should hold the session at ``now``, or None for Idle.

    Pure: depends only on its arguments.
    """
    if not enabled:
        return None
    now = localize(now, tz)
    return select_window(w for w in eligible_windows(tasks, now, tz) if w.contains(now))


class ReconciliationLoop:
    """Converges the controller onto the desired state, one transition per pass."""

    def __init__(
        self,
        controller: BlockingStateController,
        is_enabled: Callable[[], bool],
        tz: tzinfo,
    ):
        self._controller = controller
        self._is_enabled = is_enabled
        self.tz = tz

    def reconcile(self, tasks: Iterable[Task], now: Optional[datetime] = None) -> Optional[str]:
        """
        Compare desired and actual state and apply the transition that closes the gap.

        A switch is the one case that touches the shield twice in a pass: the
        old task is stopped and the desired one started. If the stop fails,
        the start is left to a later pass.

        Returns:
            The transition applied ("activate", "deactivate", "switch") or None
        """
        with self._controller.lock:
            now = localize(now or self._controller.now(), self.tz)
            enabled = self._is_enabled()

            if enabled and not self._controller.shield.is_available():
                logger.info("Shield unavailable, skipping reconciliation")
                return None

            desired = desired_state(tasks, now, enabled, self.tz)
            actual = self._controller.state

            if desired is None:
                if not actual.is_active:
                    return None
                logger.info("State drift: task %s holds the session, none should", actual.task_id)
                self._controller.deactivate()
                return Transition.DEACTIVATE

            if actual.task_id == desired.task_id and actual.pending is None:
                return None

            if actual.is_active and actual.task_id != desired.task_id:
                logger.info(
                    "State drift: task %s holds the session, task %s should",
                    actual.task_id, desired.task_id,
                )
                if not self._controller.deactivate():
                    return Transition.DEACTIVATE
                self._controller.activate(desired.task_id, desired.title, desired.end, now=now)
                return Transition.SWITCH

            if not actual.is_active:
                logger.info("State drift: task %s should hold the session", desired.task_id)
            self._controller.activate(desired.task_id, desired.title, desired.end, now=now)
            return Transition.ACTIVATE
