"""
Shield service: the primitive that actually switches blocking on and off.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Protocol, Set, Tuple

from focusshield.core.process_blocker import ProcessBlocker
from focusshield.core.website_blocker import WebsiteBlocker
from focusshield.utils.admin import is_admin

logger = logging.getLogger(__name__)


class ShieldService(Protocol):
    """
    Idempotent start/stop over an externally configured set of targets.

    ``start_blocking`` and ``stop_blocking`` report ``(success, error_message)``.
    """

    def is_available(self) -> bool:
        ...

    def start_blocking(self) -> Tuple[bool, str]:
        ...

    def stop_blocking(self) -> Tuple[bool, str]:
        ...


class HostShield:
    """
    Desktop shield: kills blocked processes and blackholes blocked domains
    through the hosts file.

    Website blocking needs administrator rights; without them only the
    process part is applied.
    """

    def __init__(
        self,
        blocked_apps: Set[str],
        blocked_websites: Set[str],
        hosts_path: Optional[Path] = None,
        check_admin: Callable[[], bool] = is_admin,
    ):
        self.process_blocker = ProcessBlocker(blocked_apps)
        self.website_blocker = WebsiteBlocker(blocked_websites, hosts_path=hosts_path)
        self._check_admin = check_admin
        self._is_blocking = False

    @property
    def is_blocking(self) -> bool:
        return self._is_blocking

    def _websites_usable(self) -> bool:
        return bool(self.website_blocker.blocked_sites) and self._check_admin()

    def is_available(self) -> bool:
        """True when there is at least one target this process is allowed to block."""
        return bool(self.process_blocker.blocked_apps) or self._websites_usable()

    def start_blocking(self) -> Tuple[bool, str]:
        if not self.is_available():
            return False, "No blockable targets configured"

        if self.process_blocker.blocked_apps:
            self.process_blocker.start()

        if self._websites_usable():
            success, error = self.website_blocker.block()
            if not success:
                logger.warning("Website blocking failed: %s", error)
                return False, error
        elif self.website_blocker.blocked_sites:
            logger.info("Not running as administrator, website blocking skipped")

        self._is_blocking = True
        return True, ""

    def stop_blocking(self) -> Tuple[bool, str]:
        self.process_blocker.stop()

        if self.website_blocker.blocked_sites and self._check_admin():
            success, error = self.website_blocker.unblock()
            if not success:
                logger.warning("Could not unblock websites: %s", error)
                return False, error

        self._is_blocking = False
        return True, ""
