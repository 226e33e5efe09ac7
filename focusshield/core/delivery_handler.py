"""
Delivery handler: applies a fired wake trigger to the blocking controller.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from focusshield.core.blocking_controller import BlockingStateController
from focusshield.core.notifier import DesktopNotifier
from focusshield.data.models import InvalidPayload, WakePayload, localize
from focusshield.utils.constants import (
    END_NOTIFICATION_TITLE,
    START_NOTIFICATION_TITLE,
    TriggerKind,
)

logger = logging.getLogger(__name__)


class DeliveryHandler:
    """
    Handles start/end payloads. Deliveries may arrive late, twice, or out
    of order; none of that may break the single-session invariant.
    """

    def __init__(
        self,
        controller: BlockingStateController,
        is_enabled: Callable[[], bool],
        notifier: Optional[DesktopNotifier] = None,
    ):
        self._controller = controller
        self._is_enabled = is_enabled
        self.notifier = notifier

    def handle(self, trigger_id: str, raw_payload: bytes, now: Optional[datetime] = None) -> bool:
        """
        Apply one delivered trigger.

        Returns:
            True if the delivery changed the blocking state
        """
        try:
            payload = WakePayload.decode(raw_payload)
        except InvalidPayload as e:
            logger.warning("Dropping wake trigger %s: %s", trigger_id, e)
            return False

        with self._controller.lock:
            if not self._is_enabled():
                logger.debug("Auto-blocking disabled, ignoring %s", trigger_id)
                return False

            now = localize(now or self._controller.now(), payload.window_end.tzinfo)

            if payload.kind == TriggerKind.START:
                return self._handle_start(payload, now)
            return self._handle_end(payload)

    def _handle_start(self, payload: WakePayload, now: datetime) -> bool:
        if now >= payload.window_end:
            logger.debug("Stale start for task %s: window ended %s", payload.task_id, payload.window_end)
            return False

        applied = self._controller.activate(payload.task_id, payload.title, payload.window_end, now=now)
        if applied:
            self._notify(START_NOTIFICATION_TITLE, f"Starting: {payload.title} - Apps blocked")
        return applied

    def _handle_end(self, payload: WakePayload) -> bool:
        active = self._controller.active_task_id
        if active != payload.task_id:
            logger.debug("Stale end for task %s: active task is %s", payload.task_id, active)
            return False

        applied = self._controller.deactivate()
        if applied:
            self._notify(END_NOTIFICATION_TITLE, "Task finished - Apps unblocked")
        return applied

    def _notify(self, title: str, message: str) -> None:
        if self.notifier is not None:
            self.notifier.notify(title, message)
