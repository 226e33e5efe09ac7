"""
Foreground reconcile timer for FocusShield.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ReconcileTimer:
    """
    Calls ``on_due`` every ``interval_seconds`` while the host is in the
    foreground. It is stopped when the host goes to the background; the
    wake scheduler is the only thing that acts while suspended.

    Each start gets its own stop event, so a thread left over from an
    earlier run exits even if the timer is restarted before it wakes.
    """

    def __init__(self, interval_seconds: int, on_due: Callable[[], None]):
        """
        Initialize the timer.

        Args:
            interval_seconds: Seconds between reconciliation passes
            on_due: Callback run when a pass is due
        """
        self.interval_seconds = max(1, int(interval_seconds))
        self.on_due = on_due

        self._time_remaining = self.interval_seconds
        self._timer_thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._lock = threading.Lock()

    @property
    def time_remaining(self) -> int:
        """Get seconds until the next pass."""
        return self._time_remaining

    @property
    def is_running(self) -> bool:
        return self._stop_event is not None and not self._stop_event.is_set()

    def start(self) -> None:
        """Start ticking; a no-op if already running."""
        with self._lock:
            if self.is_running:
                return
            previous = self._timer_thread
            self._time_remaining = self.interval_seconds
            self._stop_event = threading.Event()
            self._timer_thread = threading.Thread(
                target=self._run_timer, args=(self._stop_event,), daemon=True
            )

        if previous is not None and previous is not threading.current_thread():
            previous.join(timeout=2)
        self._timer_thread.start()

    def stop(self) -> None:
        """Stop the timer; its thread exits without waiting out the current second."""
        with self._lock:
            if self._stop_event is not None:
                self._stop_event.set()

    def tick(self) -> bool:
        """
        Advance the timer by one second.

        Returns:
            True if a pass ran on this tick
        """
        with self._lock:
            self._time_remaining -= 1
            if self._time_remaining > 0:
                return False
            self._time_remaining = self.interval_seconds

        try:
            self.on_due()
        except Exception:
            logger.exception("Periodic reconciliation failed")
        return True

    def update_interval(self, interval_seconds: int) -> None:
        """Update the interval (takes effect after the current countdown)."""
        self.interval_seconds = max(1, int(interval_seconds))

    def _run_timer(self, stop_event: threading.Event) -> None:
        """Timer thread main loop, bound to the stop event of one run."""
        while not stop_event.wait(1):
            self.tick()
