"""Teardown report model.

Aggregate outcome of one teardown run.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils.timestamps import as_utc, format_timestamp, utc_now
from .deletion_task import DeletionTask, TaskOutcome


class ReportStatus(Enum):
    """Overall run status."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial-failure"


@dataclass
class DiscoveryError:
    """A list call that failed, leaving an unknown number of resources behind."""

    kind: str
    region: str
    error_code: str
    error_message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "region": self.region,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


@dataclass
class TeardownReport:
    """Teardown report entity.

    Created fresh for every run and filled in while tasks execute. Tasks may
    complete concurrently, so every mutation goes through the report lock.

    Status rules:
        success: every task succeeded or was already gone, and discovery was complete
        partial-failure: anything else (failed, blocked, cancelled, discovery errors)

    Attributes:
        run_id: Unique identifier for the run
        identity: Deployment prefix that was torn down
        regions: Regions covered, home region first
        started_at: When the run started
        completed_at: When the run finished (optional)
        tasks: Deletion tasks in discovery order
        discovery_errors: Failed list calls
        cancelled: Whether the run was cancelled before all tasks started
        dry_run: Whether deletions were only planned
    """

    identity: str
    regions: list[str]
    run_id: str = field(default_factory=lambda: f"run_{uuid.uuid4()}")
    started_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    tasks: list[DeletionTask] = field(default_factory=list)
    discovery_errors: list[DiscoveryError] = field(default_factory=list)
    cancelled: bool = False
    dry_run: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.started_at = as_utc(self.started_at)

    def add_task(self, task: DeletionTask) -> None:
        with self._lock:
            self.tasks.append(task)

    def add_discovery_error(self, error: DiscoveryError) -> None:
        with self._lock:
            self.discovery_errors.append(error)

    def record(self, task: DeletionTask, update) -> None:
        """Apply a state change to one of the report's tasks under the report lock.

        Args:
            task: Task to update
            update: Callable receiving the task, e.g. ``lambda t: t.mark_succeeded()``
        """
        with self._lock:
            update(task)

    def get_task(self, task_id: str) -> Optional[DeletionTask]:
        for task in self.tasks:
            if task.task_id == task_id:
                return task
        return None

    def finish(self) -> None:
        with self._lock:
            self.completed_at = utc_now()

    @property
    def status(self) -> ReportStatus:
        if self.discovery_errors or self.cancelled:
            return ReportStatus.PARTIAL_FAILURE
        if self.dry_run:
            # Planned tasks stay pending
            return ReportStatus.SUCCESS
        if all(task.outcome.is_clean for task in self.tasks):
            return ReportStatus.SUCCESS
        return ReportStatus.PARTIAL_FAILURE

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def count(self, outcome: TaskOutcome) -> int:
        return sum(1 for task in self.tasks if task.outcome == outcome)

    def counts(self) -> dict[str, int]:
        return {outcome.value: self.count(outcome) for outcome in TaskOutcome}

    def failed_tasks(self) -> list[DeletionTask]:
        return [task for task in self.tasks if task.outcome == TaskOutcome.FAILED]

    def blocked_tasks(self) -> list[DeletionTask]:
        return [task for task in self.tasks if task.outcome == TaskOutcome.SKIPPED_BLOCKED]

    def validate(self) -> bool:
        """Validate report invariants.

        Raises:
            ValueError: If task IDs repeat or a task is invalid
        """
        task_ids = [task.task_id for task in self.tasks]
        if len(task_ids) != len(set(task_ids)):
            raise ValueError("Duplicate task IDs in report")

        for task in self.tasks:
            task.validate()

        if self.completed_at and self.completed_at < self.started_at:
            raise ValueError("Completion time before start time")

        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "identity": self.identity,
            "regions": list(self.regions),
            "status": self.status.value,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "started_at": format_timestamp(self.started_at),
            "completed_at": format_timestamp(self.completed_at),
            "duration_seconds": self.duration_seconds,
            "counts": self.counts(),
            "discovery_errors": [error.to_dict() for error in self.discovery_errors],
            "tasks": [task.to_dict() for task in self.tasks],
        }
