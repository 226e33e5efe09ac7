"""
Process blocker: terminates blocked applications while a session holds.
"""

import logging
import threading
import time
from typing import Optional, Set

import psutil

from focusshield.utils.constants import PROCESS_CHECK_INTERVAL

logger = logging.getLogger(__name__)


class ProcessBlocker:
    """
    Sweeps the process table on a background thread and terminates any
    process whose name is in ``blocked_apps`` (case-insensitive).
    """

    def __init__(self, blocked_apps: Set[str], check_interval: float = PROCESS_CHECK_INTERVAL):
        self.blocked_apps = {app.lower() for app in blocked_apps}
        self.check_interval = check_interval
        self._running = False
        self._monitor_thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._kill_count = 0

    @property
    def kill_count(self) -> int:
        """Processes terminated since the last start."""
        return self._kill_count

    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start sweeping; a no-op if a sweep thread is already running."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._kill_count = 0
            self._monitor_thread = threading.Thread(target=self._sweep_loop, daemon=True)
            self._monitor_thread.start()

    def stop(self) -> None:
        """Let the sweep thread exit after its current pass."""
        with self._lock:
            self._running = False

    def is_blocked(self, name: Optional[str]) -> bool:
        return bool(name) and name.lower() in self.blocked_apps

    def kill_blocked_processes(self) -> int:
        """Terminate every running blocked process. Returns how many went away."""
        killed = 0
        for proc in psutil.process_iter(['name', 'pid']):
            try:
                if self.is_blocked(proc.info['name']) and self._terminate(proc):
                    killed += 1
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return killed

    def _sweep_loop(self) -> None:
        while self._running:
            self.kill_blocked_processes()
            time.sleep(self.check_interval)

    def _terminate(self, proc: psutil.Process) -> bool:
        """Ask the process to exit, then kill it if it is still there after 3s."""
        try:
            proc.terminate()
            try:
                proc.wait(timeout=3)
            except psutil.TimeoutExpired:
                proc.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False

        self._kill_count += 1
        logger.info("Terminated blocked process %s (pid %s)", proc.info.get('name'), proc.pid)
        return True
