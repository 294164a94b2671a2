"""Data models for teardown runs."""

from __future__ import annotations

from .deletion_task import DeletionTask, TaskOutcome
from .identity import DeploymentIdentity, InvalidIdentityError
from .resource import ResourceCategory, ResourceInstance, ResourceKind
from .teardown_report import ReportStatus, TeardownReport

__all__ = [
    "DeletionTask",
    "DeploymentIdentity",
    "InvalidIdentityError",
    "ReportStatus",
    "ResourceCategory",
    "ResourceInstance",
    "ResourceKind",
    "TaskOutcome",
    "TeardownReport",
]
