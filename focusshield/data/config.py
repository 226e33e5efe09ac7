"""
Configuration management for FocusShield.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tzlocal import get_localzone

from focusshield.utils.constants import (
    CONFIG_FILE,
    TASKS_FILE,
    DEFAULT_RECONCILE_INTERVAL_SECONDS,
    DEFAULT_SHIELD_RETRY_ATTEMPTS,
    DEFAULT_SHIELD_RETRY_DELAY_SECONDS,
    DEFAULT_MISFIRE_GRACE_SECONDS,
)

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration."""

    # Global toggle for scheduled blocking
    auto_blocking_enabled: bool = False

    # Blockable targets (the selection UI lives outside this package)
    blocked_apps: List[str] = field(default_factory=list)
    blocked_websites: List[str] = field(default_factory=list)

    # Task source
    tasks_file: str = str(TASKS_FILE)

    # IANA zone for task windows, empty means the machine's zone
    timezone: str = ""

    # Reconciliation while in the foreground
    reconcile_interval_seconds: int = DEFAULT_RECONCILE_INTERVAL_SECONDS

    # Shield retry policy
    shield_retry_attempts: int = DEFAULT_SHIELD_RETRY_ATTEMPTS
    shield_retry_delay_seconds: float = DEFAULT_SHIELD_RETRY_DELAY_SECONDS

    # Wake triggers
    misfire_grace_seconds: int = DEFAULT_MISFIRE_GRACE_SECONDS
    show_notifications: bool = True

    # Where this config was loaded from; not persisted
    path: Optional[Path] = field(default=None, repr=False, compare=False)

    def save(self) -> None:
        """Save configuration to file."""
        target = self.path or CONFIG_FILE
        target.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(self)
        data.pop("path")
        with open(target, 'w') as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'Config':
        """Load configuration from file, or create default if not exists."""
        source = path or CONFIG_FILE
        if source.exists():
            try:
                with open(source, 'r') as f:
                    data = json.load(f)
                data.pop("path", None)
                return cls(**data, path=source)
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning("Invalid config at %s, using defaults: %s", source, e)
                return cls(path=source)
        return cls(path=source)

    def set_auto_blocking_enabled(self, enabled: bool) -> None:
        """Persist the global scheduled-blocking toggle."""
        self.auto_blocking_enabled = enabled
        self.save()

    def read_persisted_toggle(self) -> Optional[bool]:
        """
        Read ``auto_blocking_enabled`` as currently stored on disk.

        Returns:
            The stored value, or None if the file is missing or unreadable
        """
        source = self.path or CONFIG_FILE
        try:
            with open(source, 'r') as f:
                data = json.load(f)
            return bool(data["auto_blocking_enabled"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("Could not read toggle from %s: %s", source, e)
            return None

    def get_timezone(self):
        """Resolve the zone used to turn task dates and times into instants."""
        if self.timezone:
            try:
                return ZoneInfo(self.timezone)
            except ZoneInfoNotFoundError:
                logger.warning("Unknown timezone %r, falling back to local zone", self.timezone)
        return get_localzone()

    def get_all_blocked_apps(self) -> set[str]:
        """Get all blocked app process names."""
        return {app.strip().lower() for app in self.blocked_apps if app.strip()}

    def get_all_blocked_websites(self) -> set[str]:
        """Get all blocked website domains."""
        return {site.strip().lower() for site in self.blocked_websites if site.strip()}
