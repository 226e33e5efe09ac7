"""
Website blocker using the system hosts file.

Blocked domains are resolved to 0.0.0.0 inside a section delimited by the
FocusShield marker lines; everything outside that section is left untouched.
"""

import logging
import platform
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from focusshield.utils.constants import HOSTS_PATH, HOSTS_MARKER_START, HOSTS_MARKER_END

logger = logging.getLogger(__name__)

BLACKHOLE_ADDRESS = "0.0.0.0"

DNS_FLUSH_COMMANDS = {
    "Windows": ["ipconfig", "/flushdns"],
    "Darwin": ["dscacheutil", "-flushcache"],
}


def hosts_entries(sites: Iterable[str]) -> List[str]:
    """Hosts lines for ``sites``, adding the www. variant of bare domains."""
    entries = []
    for site in sorted({s.strip().lower() for s in sites if s.strip()}):
        entries.append(f"{BLACKHOLE_ADDRESS} {site}")
        if not site.startswith("www."):
            entries.append(f"{BLACKHOLE_ADDRESS} www.{site}")
    return entries


def strip_marked_section(content: str) -> str:
    """Drop every marker-delimited section and trailing blank lines."""
    kept = []
    inside = False
    for line in content.split("\n"):
        if HOSTS_MARKER_START in line:
            inside = True
        elif HOSTS_MARKER_END in line:
            inside = False
        elif not inside:
            kept.append(line)

    return "\n".join(kept).rstrip()


class WebsiteBlocker:
    """
    Blocks websites through a marked section of the hosts file.

    Writing the system hosts file requires administrator privileges.
    """

    def __init__(self, blocked_sites: Set[str], hosts_path: Optional[Path] = None):
        self.blocked_sites = set(blocked_sites)
        self.hosts_path = Path(hosts_path) if hosts_path else HOSTS_PATH
        self._backup_path = self.hosts_path.parent / "hosts.focusshield.backup"
        self._is_blocking = False
        self._last_error = ""

    def block(self) -> Tuple[bool, str]:
        """
        Write (or rewrite) the blocking section.

        Returns:
            Tuple of (success, error_message)
        """
        if not self.hosts_path.exists():
            return self._fail(f"Hosts file not found at {self.hosts_path}")

        try:
            base = strip_marked_section(self._read_hosts())
            section = [HOSTS_MARKER_START, *hosts_entries(self.blocked_sites), HOSTS_MARKER_END]
            self._write_hosts(f"{base}\n\n" + "\n".join(section) + "\n")
        except PermissionError as e:
            return self._fail(f"Permission denied. Run as administrator. ({e})")
        except OSError as e:
            return self._fail(f"Error blocking websites: {e}")

        self._flush_dns()
        self._is_blocking = True
        logger.debug("Hosts file now blocks %d sites", len(self.blocked_sites))
        return True, ""

    def unblock(self) -> Tuple[bool, str]:
        """
        Remove the blocking section. A file without one is left as is.

        Returns:
            Tuple of (success, error_message)
        """
        try:
            if self.hosts_path.exists():
                content = self._read_hosts()
                if HOSTS_MARKER_START in content:
                    self._write_hosts(strip_marked_section(content) + "\n")
                    self._flush_dns()
        except PermissionError as e:
            return self._fail(f"Permission denied: {e}")
        except OSError as e:
            return self._fail(f"Error unblocking websites: {e}")

        self._is_blocking = False
        return True, ""

    def is_blocking(self) -> bool:
        return self._is_blocking

    def get_last_error(self) -> str:
        return self._last_error

    def restore_backup(self) -> bool:
        """Put back the hosts file saved before the last write (emergency recovery)."""
        if not self._backup_path.exists():
            return False
        try:
            shutil.copy2(str(self._backup_path), str(self.hosts_path))
        except OSError as e:
            logger.error("Could not restore hosts backup: %s", e)
            return False

        self._flush_dns()
        self._is_blocking = False
        return True

    def _fail(self, message: str) -> Tuple[bool, str]:
        self._last_error = message
        logger.warning(message)
        return False, message

    def _read_hosts(self) -> str:
        try:
            return self.hosts_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return self.hosts_path.read_text(encoding="latin-1")

    def _write_hosts(self, content: str) -> None:
        """Replace the hosts file, keeping a copy of what was there."""
        try:
            shutil.copy2(str(self.hosts_path), str(self._backup_path))
        except OSError as e:
            logger.debug("Hosts backup skipped: %s", e)

        self.hosts_path.write_text(content, encoding="utf-8")

    def _flush_dns(self) -> None:
        """Flush the OS DNS cache where the platform has a command for it."""
        command = DNS_FLUSH_COMMANDS.get(platform.system())
        if command is None:
            return
        try:
            subprocess.run(command, capture_output=True, timeout=10)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("DNS flush failed: %s", e)
