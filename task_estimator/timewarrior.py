"""Timewarrior client: tracked time for tasks.

Reads intervals through ``timew export``. Intervals are linked to tasks
by tags: ``task_<uuid>`` for the task and ``project_<name>`` for its
project (spaces replaced with underscores).
"""

import json
import logging
import shutil
import subprocess
from datetime import datetime
from typing import Any, List

from .error_handling import handle_tracked_time_errors
from .interfaces import TrackedTimeSourceInterface
from .models import TrackedEntry
from .utils import parse_timestamp

logger = logging.getLogger(__name__)


class TimewarriorClient(TrackedTimeSourceInterface):
    """Read-only client for the timewarrior CLI."""

    def __init__(self, command: str = "timew", timeout: int = 30):
        """Initialize client.

        Args:
            command: timewarrior executable
            timeout: Seconds to wait for an export
        """
        self.command = command
        self.timeout = timeout

    def is_available(self) -> bool:
        """Whether the timewarrior executable can be found."""
        return shutil.which(self.command) is not None

    @handle_tracked_time_errors
    def export(self, *args: str) -> List[TrackedEntry]:
        """Export intervals matching the given filter arguments.

        Args:
            *args: timewarrior filter (tags and/or a date range)

        Returns:
            Parsed intervals (empty list for empty output)

        Raises:
            TrackedTimeError: If timewarrior fails or its output is invalid
        """
        result = subprocess.run(
            [self.command, "export", *args],
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=True,
        )

        output = result.stdout.strip()
        if not output or output == "[]":
            return []

        return [self._parse_entry(item) for item in json.loads(output)]

    @staticmethod
    def _parse_entry(item: dict[str, Any]) -> TrackedEntry:
        start = parse_timestamp(item["start"])
        if start is None:
            raise ValueError(f"Invalid interval start: {item['start']!r}")
        return TrackedEntry(
            id=int(item.get("id", 0)),
            start=start,
            end=parse_timestamp(item.get("end")),
            tags=tuple(item.get("tags") or ()),
        )

    def entries_for_task(self, task_uuid: str) -> List[TrackedEntry]:
        """Return all intervals tagged with the task's UUID."""
        task_tag = f"task_{task_uuid}"
        return [entry for entry in self.export(task_tag) if task_tag in entry.tags]

    def entries_for_project(self, project_name: str) -> List[TrackedEntry]:
        """Return all intervals tagged with a project."""
        project_tag = f"project_{project_name.replace(' ', '_')}"
        return [entry for entry in self.export(project_tag) if project_tag in entry.tags]

    def entries_for_date_range(self, start: datetime, end: datetime) -> List[TrackedEntry]:
        """Return all intervals within a date range."""
        return self.export(
            start.strftime("%Y-%m-%dT%H:%M:%S"),
            "-",
            end.strftime("%Y-%m-%dT%H:%M:%S"),
        )

    def total_hours(self, entries: List[TrackedEntry]) -> float:
        """Total hours of closed intervals; running intervals are ignored."""
        return sum(entry.duration_hours for entry in entries)
