"""
Application-wide constants for FocusShield.
"""

import platform
from pathlib import Path

# App info
APP_NAME = "FocusShield"
APP_VERSION = "1.0.0"

# Paths
if platform.system() == "Windows":
    APP_DATA_DIR = Path.home() / "AppData" / "Local" / APP_NAME
    HOSTS_PATH = Path(r"C:\Windows\System32\drivers\etc\hosts")
elif platform.system() == "Darwin":
    APP_DATA_DIR = Path.home() / "Library" / "Application Support" / APP_NAME
    HOSTS_PATH = Path("/etc/hosts")
else:
    APP_DATA_DIR = Path.home() / ".local" / "share" / APP_NAME
    HOSTS_PATH = Path("/etc/hosts")

CONFIG_FILE = APP_DATA_DIR / "config.json"
TASKS_FILE = APP_DATA_DIR / "tasks.json"

# Wake trigger identifiers
TRIGGER_PREFIX = "blocking."
START_TRIGGER_PREFIX = TRIGGER_PREFIX + "start."
END_TRIGGER_PREFIX = TRIGGER_PREFIX + "end."

# Reconciliation while in the foreground
DEFAULT_RECONCILE_INTERVAL_SECONDS = 60

# Shield retry policy
DEFAULT_SHIELD_RETRY_ATTEMPTS = 3
DEFAULT_SHIELD_RETRY_DELAY_SECONDS = 0.5

# How late a wake trigger may still be delivered
DEFAULT_MISFIRE_GRACE_SECONDS = 6 * 60 * 60

# Process blocker settings
PROCESS_CHECK_INTERVAL = 2  # seconds

# Hosts file markers
HOSTS_MARKER_START = "# === FOCUSSHIELD BLOCK START ==="
HOSTS_MARKER_END = "# === FOCUSSHIELD BLOCK END ==="

# Notification text shown when a wake trigger is applied
START_NOTIFICATION_TITLE = "Focus Time"
END_NOTIFICATION_TITLE = "Focus Complete"


# Task statuses
class TaskStatus:
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"

    ALL = (PENDING, IN_PROGRESS, COMPLETED, SKIPPED)
    CLOSED = (COMPLETED, SKIPPED)


# Wake trigger kinds
class TriggerKind:
    START = "start"
    END = "end"


# Shield calls that did not go through
class PendingAction:
    START = "start"
    STOP = "stop"
