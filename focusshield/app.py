"""
Host application for FocusShield: runs the scheduled blocking service as a
desktop daemon.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from focusshield.core.blocking_service import ScheduledBlockingService
from focusshield.core.notifier import DesktopNotifier
from focusshield.core.shield import HostShield, ShieldService
from focusshield.core.timer import ReconcileTimer
from focusshield.core.wake_scheduler import APSchedulerWakeScheduler
from focusshield.data.config import Config
from focusshield.data.models import ActiveBlockState
from focusshield.data.task_source import JsonFileTaskSource, TaskSource

logger = logging.getLogger(__name__)


class FocusShieldApp:
    """
    Main application class that orchestrates all components.
    """

    def __init__(
        self,
        config: Config,
        shield: Optional[ShieldService] = None,
        wake_scheduler: Optional[APSchedulerWakeScheduler] = None,
        task_source: Optional[TaskSource] = None,
    ):
        """
        Initialize the application.

        Args:
            config: Application configuration
            shield: Shield to drive (defaults to the hosts-file/process shield)
            wake_scheduler: Wake scheduler (defaults to an APScheduler one)
            task_source: Where tasks come from (defaults to the configured JSON file)
        """
        self.config = config
        self._stop_event = threading.Event()
        self._tasks_mtime: Optional[float] = None
        self._config_lock = threading.Lock()

        self.shield = shield or HostShield(
            config.get_all_blocked_apps(),
            config.get_all_blocked_websites(),
        )
        self.wake_scheduler = wake_scheduler or APSchedulerWakeScheduler(
            timezone=config.get_timezone(),
            misfire_grace_seconds=config.misfire_grace_seconds,
        )
        self.task_source = task_source or JsonFileTaskSource(Path(config.tasks_file))

        self._init_service()
        self._init_timer()
        self._config_mtime = self._config_file_mtime()

    def _init_service(self) -> None:
        """Initialize the scheduled blocking service."""
        notifier = DesktopNotifier() if self.config.show_notifications else None
        self.service = ScheduledBlockingService(
            self.config,
            self.shield,
            self.wake_scheduler,
            task_source=self.task_source,
            notifier=notifier,
            on_state_change=self._on_state_change,
        )
        # Deliveries re-read the persisted toggle before acting
        self.wake_scheduler.set_on_fired(self._on_wake)

    def _init_timer(self) -> None:
        """Initialize the foreground reconcile timer."""
        self.timer = ReconcileTimer(
            interval_seconds=self.config.reconcile_interval_seconds,
            on_due=self._on_timer_due,
        )

    def _on_state_change(self, state: ActiveBlockState) -> None:
        """Handle blocking state change."""
        if state.is_active and state.pending is None:
            logger.info("Blocking for '%s' until %s", state.title, state.end_time)
        elif state.is_active:
            logger.warning("Shield %s pending for '%s'", state.pending, state.title)
        else:
            logger.info("Blocking idle")

    def _tasks_file_mtime(self) -> Optional[float]:
        path = getattr(self.task_source, "path", None)
        if path is None or not path.exists():
            return None
        return path.stat().st_mtime

    def _config_file_mtime(self) -> Optional[float]:
        path = self.config.path
        if path is None or not path.exists():
            return None
        return path.stat().st_mtime

    def _sync_config(self) -> None:
        """Apply an auto-blocking toggle written to the config file by another process."""
        with self._config_lock:
            mtime = self._config_file_mtime()
            if mtime is None or mtime == self._config_mtime:
                return
            enabled = self.config.read_persisted_toggle()
            if enabled is None:
                # Half-written or broken file; retry on the next pass
                return
            self._config_mtime = mtime

            if enabled != self.config.auto_blocking_enabled:
                logger.info("Auto-blocking turned %s in %s", "on" if enabled else "off", self.config.path)
                self.service.set_auto_blocking_enabled(enabled, persist=False)

    def _on_wake(self, trigger_id: str, payload: bytes) -> None:
        self._sync_config()
        self.service.handle_wake(trigger_id, payload)

    def _on_timer_due(self) -> None:
        """Periodic pass: pick up config changes, then refresh if the tasks file changed, otherwise reconcile."""
        self._sync_config()
        mtime = self._tasks_file_mtime()
        if mtime != self._tasks_mtime:
            self._tasks_mtime = mtime
            logger.info("Tasks changed, rescheduling")
            self.service.refresh()
        else:
            self.service.reconcile()

    def on_foreground(self) -> None:
        """Host came to the foreground: reschedule, reconcile, start the periodic pass."""
        self._sync_config()
        self._tasks_mtime = self._tasks_file_mtime()
        self.service.refresh()
        self.timer.start()

    def on_background(self) -> None:
        """Host is being suspended: only wake triggers act from here on."""
        self.timer.stop()

    def on_task_changed(self, task_id: str) -> None:
        """A task was created, edited, completed, skipped or deleted."""
        self._tasks_mtime = self._tasks_file_mtime()
        self.service.handle_task_mutation(task_id)

    def set_auto_blocking_enabled(self, enabled: bool) -> None:
        with self._config_lock:
            self.service.set_auto_blocking_enabled(enabled)
            self._config_mtime = self._config_file_mtime()

    def run(self) -> None:
        """Run until ``stop`` is called or the process is interrupted."""
        self.wake_scheduler.start()
        self.on_foreground()
        logger.info(
            "FocusShield running (auto-blocking %s)",
            "on" if self.config.auto_blocking_enabled else "off",
        )
        try:
            while not self._stop_event.wait(1):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.shutdown()

    def stop(self) -> None:
        self._stop_event.set()

    def shutdown(self) -> None:
        """Handle application exit."""
        self.timer.stop()
        self.service.controller.deactivate()
        self.wake_scheduler.shutdown()
