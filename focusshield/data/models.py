"""
Data model for scheduled blocking: tasks, blocking windows, wake payloads
and the in-memory active block state.
"""

import json
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time, tzinfo
from typing import Any, Dict, Optional

from focusshield.utils.constants import (
    END_TRIGGER_PREFIX,
    START_TRIGGER_PREFIX,
    TaskStatus,
    TriggerKind,
)

logger = logging.getLogger(__name__)


class InvalidPayload(ValueError):
    """A wake trigger payload that cannot be decoded."""


def parse_hhmm(value: Optional[str]) -> Optional[time]:
    """Parse an "HH:MM" string (seconds are tolerated and ignored)."""
    if value is None or value == "":
        return None
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time '{value}'. Use HH:MM")
    return time(int(parts[0]), int(parts[1]))


def localize(moment: datetime, tz: tzinfo) -> datetime:
    """Return ``moment`` as an aware datetime in ``tz``. Naive values are taken as local."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


@dataclass(frozen=True)
class Task:
    """A time-boxed task for one calendar day, as supplied by the task source."""

    id: str
    title: str
    date: date
    window_start: Optional[time] = None
    window_end: Optional[time] = None
    blocking_requested: bool = False
    status: str = TaskStatus.PENDING

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Build a task from its backend representation."""
        status = data.get("status") or TaskStatus.PENDING
        if status not in TaskStatus.ALL:
            status = TaskStatus.PENDING

        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            date=date.fromisoformat(data["date"]),
            window_start=parse_hhmm(data.get("scheduled_start")),
            window_end=parse_hhmm(data.get("scheduled_end")),
            blocking_requested=bool(data.get("block_apps", False)),
            status=status,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date.isoformat(),
            "scheduled_start": self.window_start.strftime("%H:%M") if self.window_start else None,
            "scheduled_end": self.window_end.strftime("%H:%M") if self.window_end else None,
            "block_apps": self.blocking_requested,
            "status": self.status,
        }

    def is_eligible(self, today: date) -> bool:
        """
        Check whether the task may drive a blocking session today.

        A window whose end is not after its start never qualifies.
        """
        if self.date != today or not self.blocking_requested:
            return False
        if self.status in TaskStatus.CLOSED:
            return False
        if self.window_start is None or self.window_end is None:
            return False
        return self.window_end > self.window_start

    def blocking_window(self, tz: tzinfo) -> Optional["BlockingWindow"]:
        """Combine the task date with its window bounds in ``tz``."""
        if self.window_start is None or self.window_end is None:
            return None
        return BlockingWindow(
            task_id=self.id,
            title=self.title,
            start=datetime.combine(self.date, self.window_start, tzinfo=tz),
            end=datetime.combine(self.date, self.window_end, tzinfo=tz),
        )


@dataclass(frozen=True)
class BlockingWindow:
    """The half-open interval [start, end) during which a task wants blocking."""

    task_id: str
    title: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def is_future(self, moment: datetime) -> bool:
        return self.start > moment

    def has_elapsed(self, moment: datetime) -> bool:
        return self.end <= moment


def start_trigger_id(task_id: str) -> str:
    return f"{START_TRIGGER_PREFIX}{task_id}"


def end_trigger_id(task_id: str) -> str:
    return f"{END_TRIGGER_PREFIX}{task_id}"


def trigger_ids_for(task_id: str) -> list:
    return [start_trigger_id(task_id), end_trigger_id(task_id)]


@dataclass(frozen=True)
class WakePayload:
    """
    Data carried by a wake trigger.

    Holds everything needed to act on delivery without asking the task
    source again, since it may be unreachable at that point.
    """

    kind: str
    task_id: str
    title: str
    window_end: datetime

    def encode(self) -> bytes:
        return json.dumps({
            "kind": self.kind,
            "task_id": self.task_id,
            "title": self.title,
            "window_end": self.window_end.isoformat(),
        }).encode("utf-8")

    @classmethod
    def decode(cls, raw: bytes) -> "WakePayload":
        try:
            data = json.loads(raw.decode("utf-8"))
            kind = data["kind"]
            if kind not in (TriggerKind.START, TriggerKind.END):
                raise InvalidPayload(f"Unknown trigger kind: {kind!r}")
            window_end = datetime.fromisoformat(data["window_end"])
            if window_end.tzinfo is None:
                raise InvalidPayload("window_end must carry a UTC offset")
            return cls(
                kind=kind,
                task_id=str(data["task_id"]),
                title=data.get("title") or "",
                window_end=window_end,
            )
        except InvalidPayload:
            raise
        except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise InvalidPayload(f"Malformed wake payload: {e}") from e


@dataclass(frozen=True)
class ActiveBlockState:
    """
    Snapshot of the blocking session held by the controller.

    ``task_id`` is set if and only if a session is held. ``pending`` names
    the shield call that failed after all retries, if any.
    """

    task_id: Optional[str] = None
    title: Optional[str] = None
    end_time: Optional[datetime] = None
    pending: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.task_id is not None

    def with_pending(self, pending: Optional[str]) -> "ActiveBlockState":
        return replace(self, pending=pending)


IDLE = ActiveBlockState()
