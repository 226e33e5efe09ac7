"""
Task sources: where the orchestrator reads today's tasks from.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Protocol

from focusshield.data.models import Task

logger = logging.getLogger(__name__)


class TaskSource(Protocol):
    """Supplies the current list of time-boxed tasks."""

    def get_tasks(self) -> List[Task]:
        ...


class StaticTaskSource:
    """Task source over an in-memory list, replaced wholesale on mutation."""

    def __init__(self, tasks: Iterable[Task] = ()):
        self._tasks = list(tasks)

    def get_tasks(self) -> List[Task]:
        return list(self._tasks)

    def set_tasks(self, tasks: Iterable[Task]) -> None:
        self._tasks = list(tasks)


class JsonFileTaskSource:
    """
    Reads tasks from a JSON file holding a list of task objects
    (or an object with a "tasks" list).

    A missing or unreadable file yields no tasks; individual malformed
    entries are skipped.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_tasks(self) -> List[Task]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read tasks from %s: %s", self.path, e)
            return []

        if isinstance(data, dict):
            data = data.get("tasks", [])
        if not isinstance(data, list):
            logger.warning("Tasks file %s does not hold a list", self.path)
            return []

        tasks = []
        for entry in data:
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed task %r", entry)
                continue
            try:
                tasks.append(Task.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed task %r: %s", entry, e)
        return tasks

    def save_tasks(self, tasks: Iterable[Task]) -> None:
        """Write tasks back in the same format."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump([task.to_dict() for task in tasks], f, indent=2)
