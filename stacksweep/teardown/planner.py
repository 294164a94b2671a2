"""Teardown planning: discovery and task graph construction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..adapters.errors import translate_exception
from ..adapters.registry import ResourceAdapterSet
from ..models.deletion_task import DeletionTask
from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance
from ..models.teardown_report import DiscoveryError
from .dependency import DependencyResolver

logger = logging.getLogger(__name__)


@dataclass
class TeardownPlan:
    """Discovered tasks with their dependency graph.

    Attributes:
        tasks: Deletion tasks in execution order (rank, then dependency order)
        resolver: Dependency graph over task IDs
        discovery_errors: List calls that failed
    """

    tasks: list[DeletionTask] = field(default_factory=list)
    resolver: DependencyResolver = field(default_factory=DependencyResolver)
    discovery_errors: list[DiscoveryError] = field(default_factory=list)

    def ranks(self) -> list[list[DeletionTask]]:
        """Tasks grouped by deletion rank, lowest rank first."""
        groups: dict[int, list[DeletionTask]] = {}
        for task in self.tasks:
            groups.setdefault(task.rank, []).append(task)
        return [groups[rank] for rank in sorted(groups)]


class TeardownPlanner:
    """Discovers a deployment's resources and links them into deletion tasks.

    Attributes:
        adapters: Resource adapters to list with
    """

    def __init__(self, adapters: ResourceAdapterSet) -> None:
        self.adapters = adapters

    def plan(self, identity: DeploymentIdentity, regions: list[str]) -> TeardownPlan:
        """Build the task set for a deployment.

        Global adapters are only listed in the first (home) region.

        Args:
            identity: Deployment identity
            regions: Regions to search, home region first

        Returns:
            TeardownPlan with tasks, predecessor links and discovery errors

        Raises:
            ValueError: If the discovered dependencies form a cycle
        """
        plan = TeardownPlan()
        instances = self._discover(identity, regions, plan)

        plan.resolver.build_graph_from_resources(instances)
        order = plan.resolver.compute_deletion_order([instance.key for instance in instances])
        position = {key: i for i, key in enumerate(order)}

        tasks = []
        for instance in instances:
            task = DeletionTask.for_resource(instance)
            task.predecessors = plan.resolver.predecessors(task.task_id)
            tasks.append(task)

        plan.tasks = sorted(tasks, key=lambda t: (t.rank, position[t.task_id]))

        logger.info(
            f"Planned {len(plan.tasks)} deletion tasks for '{identity}' across {len(regions)} region(s)"
        )
        return plan

    def _discover(
        self,
        identity: DeploymentIdentity,
        regions: list[str],
        plan: TeardownPlan,
    ) -> list[ResourceInstance]:
        home_region = regions[0]
        seen: dict[str, ResourceInstance] = {}

        for region in regions:
            for adapter in self.adapters:
                if adapter.is_global_service and region != home_region:
                    continue

                try:
                    listed = adapter.list(identity, region)
                except Exception as e:
                    error = translate_exception(e, f"list {adapter.kind.label} in {region}")
                    logger.warning(f"Could not list {adapter.kind.label} in {region}: {error}")
                    plan.discovery_errors.append(
                        DiscoveryError(
                            kind=adapter.kind.label,
                            region=region,
                            error_code=error.code,
                            error_message=error.message,
                        )
                    )
                    continue

                for instance in listed:
                    if not self._in_scope(identity, instance):
                        continue
                    if instance.key in seen:
                        continue
                    seen[instance.key] = instance

        return list(seen.values())

    def _in_scope(self, identity: DeploymentIdentity, instance: ResourceInstance) -> bool:
        if identity.matches_any(instance.labels()):
            return True
        logger.warning(
            f"Ignoring {instance.kind.label} {instance.resource_id}: name does not match '{identity}'"
        )
        return False

