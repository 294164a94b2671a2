"""Deletion task model.

One unit of work deleting a single discovered resource, with its outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils.timestamps import format_timestamp, utc_now
from .resource import ResourceInstance, ResourceKind


class TaskOutcome(Enum):
    """Deletion task state."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    SKIPPED_NOT_FOUND = "skipped-not-found"
    FAILED = "failed"
    SKIPPED_BLOCKED = "skipped-blocked"

    @property
    def is_terminal(self) -> bool:
        return self not in (TaskOutcome.PENDING, TaskOutcome.RUNNING)

    @property
    def is_clean(self) -> bool:
        """Terminal states that count as the resource being gone."""
        return self in (TaskOutcome.SUCCEEDED, TaskOutcome.SKIPPED_NOT_FOUND)


_TRANSITIONS = {
    TaskOutcome.PENDING: {TaskOutcome.RUNNING, TaskOutcome.SKIPPED_BLOCKED},
    TaskOutcome.RUNNING: {TaskOutcome.SUCCEEDED, TaskOutcome.SKIPPED_NOT_FOUND, TaskOutcome.FAILED},
}


@dataclass
class DeletionTask:
    """Deletion task entity.

    State transitions:
        pending → running → succeeded
        pending → running → skipped-not-found (already deleted)
        pending → running → failed
        pending → skipped-blocked (a predecessor failed, or the run was cancelled)

    Validation rules:
        - status=failed: requires error_message
        - status=skipped-blocked: requires error_message (the blocking reason)
        - status=succeeded: no error_code or error_message
        - finished_at must not be before started_at

    Attributes:
        task_id: Unique task identifier (kind:region:resource_id)
        resource: Resource this task deletes
        predecessors: Task IDs that must reach a clean terminal state first
        outcome: Current state
        error_code: Provider error code if failed (optional)
        error_message: Failure message or blocking reason (optional)
        started_at: When the delete call started (optional)
        finished_at: When the task reached a terminal state (optional)
    """

    task_id: str
    resource: ResourceInstance
    predecessors: set[str] = field(default_factory=set)
    outcome: TaskOutcome = TaskOutcome.PENDING
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def for_resource(cls, resource: ResourceInstance) -> "DeletionTask":
        return cls(task_id=resource.key, resource=resource)

    @property
    def kind(self) -> ResourceKind:
        return self.resource.kind

    @property
    def rank(self) -> int:
        return self.resource.kind.rank

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def transition(self, outcome: TaskOutcome) -> None:
        """Move the task to a new state, enforcing the state machine.

        Raises:
            ValueError: If the transition is not allowed
        """
        allowed = _TRANSITIONS.get(self.outcome, set())
        if outcome not in allowed:
            raise ValueError(f"Invalid transition for {self.task_id}: {self.outcome.value} -> {outcome.value}")
        self.outcome = outcome

    def mark_running(self) -> None:
        self.transition(TaskOutcome.RUNNING)
        self.started_at = utc_now()

    def mark_succeeded(self) -> None:
        self.transition(TaskOutcome.SUCCEEDED)
        self.finished_at = utc_now()

    def mark_not_found(self) -> None:
        self.transition(TaskOutcome.SKIPPED_NOT_FOUND)
        self.finished_at = utc_now()

    def mark_failed(self, error_code: str, error_message: str) -> None:
        self.transition(TaskOutcome.FAILED)
        self.error_code = error_code
        self.error_message = error_message
        self.finished_at = utc_now()

    def mark_blocked(self, reason: str) -> None:
        self.transition(TaskOutcome.SKIPPED_BLOCKED)
        self.error_code = "DependencyBlocked"
        self.error_message = reason
        self.finished_at = utc_now()

    def validate(self) -> bool:
        """Validate task invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.outcome == TaskOutcome.FAILED:
            if not self.error_message:
                raise ValueError("Failed status requires error_message")
        elif self.outcome == TaskOutcome.SKIPPED_BLOCKED:
            if not self.error_message:
                raise ValueError("Blocked status requires a blocking reason")
        elif self.outcome == TaskOutcome.SUCCEEDED:
            if self.error_code or self.error_message:
                raise ValueError("Succeeded status cannot have an error")

        if self.started_at and self.finished_at and self.finished_at < self.started_at:
            raise ValueError("Finish time before start time")

        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "kind": self.kind.label,
            "rank": self.rank,
            "resource_id": self.resource.resource_id,
            "name": self.resource.name,
            "region": self.resource.region,
            "arn": self.resource.arn,
            "predecessors": sorted(self.predecessors),
            "outcome": self.outcome.value,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "started_at": format_timestamp(self.started_at),
            "finished_at": format_timestamp(self.finished_at),
            "duration_seconds": self.duration_seconds,
        }
