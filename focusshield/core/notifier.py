"""
Desktop notifications shown when a wake trigger switches blocking.
"""

import logging

from plyer import notification

from focusshield.utils.constants import APP_NAME

logger = logging.getLogger(__name__)


class DesktopNotifier:
    """Thin wrapper over plyer; failures are logged, never raised."""

    def __init__(self, timeout: int = 6):
        self.timeout = timeout

    def notify(self, title: str, message: str) -> None:
        try:
            notification.notify(title=title, message=message, app_name=APP_NAME, timeout=self.timeout)
        except Exception as e:
            logger.warning("Notification error: %s", e)
