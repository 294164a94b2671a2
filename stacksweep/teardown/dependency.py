"""Dependency graph construction and deletion ordering.

Builds the graph of which resources must be gone before others can be
deleted, using Kahn's algorithm for ordering and cycle detection.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Iterable

from ..models.resource import ResourceInstance, ResourceKind

logger = logging.getLogger(__name__)


# Attributes naming resources this resource still uses: it must be deleted
# BEFORE them (an instance before its subnet, a subnet before its VPC).
DEPENDENCY_FIELDS: dict[ResourceKind, list[str]] = {
    ResourceKind.DISTRIBUTION: ["web_acl_id", "cache_policy_ids", "origin_access_control_ids", "origin_buckets"],
    ResourceKind.WEB_ACL: [],
    ResourceKind.CACHE_POLICY: [],
    ResourceKind.ORIGIN_ACCESS_CONTROL: [],
    ResourceKind.LOAD_BALANCER: ["vpc_id", "security_group_ids", "subnet_ids"],
    ResourceKind.TARGET_GROUP: ["vpc_id"],
    ResourceKind.INSTANCE: ["vpc_id", "security_group_ids", "subnet_ids"],
    ResourceKind.CONTAINER_SERVICE: ["security_group_ids", "subnet_ids"],
    ResourceKind.SECURITY_GROUP: ["vpc_id"],
    ResourceKind.IAM_ROLE: [],
    ResourceKind.ROUTE_TABLE: ["vpc_id", "subnet_ids"],
    ResourceKind.SUBNET: ["vpc_id"],
    ResourceKind.INTERNET_GATEWAY: ["attached_vpc_ids"],
    ResourceKind.VPC: [],
    ResourceKind.BUCKET: [],
}

# Attributes naming resources that must be deleted BEFORE this one
# (a load balancer's listeners pin its target groups).
DELETED_AFTER_FIELDS: dict[ResourceKind, list[str]] = {
    ResourceKind.TARGET_GROUP: ["load_balancer_arns"],
}


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v]
    return [str(value)] if value else []


class DependencyResolver:
    """Dependency graph for deletion ordering.

    ``graph`` maps a resource to the set of resources that may only be
    deleted after it. ``add_dependency(parent="vpc-1", child="subnet-1")``
    records that the subnet depends on the VPC, so the subnet goes first.

    Attributes:
        graph: child -> parents that must be deleted after the child
    """

    def __init__(self) -> None:
        self.graph: dict[str, set[str]] = {}

    def add_dependency(self, parent: str, child: str) -> None:
        """Record that ``child`` must be deleted before ``parent``."""
        self.graph.setdefault(child, set()).add(parent)

    def predecessors(self, node: str) -> set[str]:
        """Resources that must be deleted before ``node``."""
        return {child for child, parents in self.graph.items() if node in parents}

    def dependents(self, node: str) -> set[str]:
        """All resources transitively waiting on ``node`` to be deleted."""
        seen: set[str] = set()
        queue = deque(self.graph.get(node, set()))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(self.graph.get(current, set()) - seen)
        return seen

    def build_graph_from_resources(self, resources: Iterable[ResourceInstance]) -> None:
        """Detect dependencies from resource attributes.

        References to resources outside ``resources`` are ignored: they
        belong to another deployment or are already gone.

        Args:
            resources: Discovered resource instances

        Raises:
            ValueError: If a dependency would point from a later rank to an earlier one
        """
        resources = list(resources)
        index: dict[str, ResourceInstance] = {}
        for resource in resources:
            for ref in (resource.resource_id, resource.arn, resource.name):
                if ref:
                    index.setdefault(ref, resource)

        for resource in resources:
            for field_name in DEPENDENCY_FIELDS.get(resource.kind, []):
                for ref in self._field_values(resource, field_name):
                    target = index.get(ref)
                    if target is None or target is resource:
                        continue
                    self._link(first=resource, then=target)

            for field_name in DELETED_AFTER_FIELDS.get(resource.kind, []):
                for ref in self._field_values(resource, field_name):
                    target = index.get(ref)
                    if target is None or target is resource:
                        continue
                    self._link(first=target, then=resource)

    def _field_values(self, resource: ResourceInstance, field_name: str) -> list[str]:
        if field_name == "vpc_id":
            return _as_list(resource.vpc_id)
        return _as_list(resource.attributes.get(field_name))

    def _link(self, first: ResourceInstance, then: ResourceInstance) -> None:
        if first.kind.rank >= then.kind.rank:
            raise ValueError(
                f"{first.key} (rank {first.kind.rank}) cannot precede {then.key} (rank {then.kind.rank})"
            )
        self.add_dependency(parent=then.key, child=first.key)

    def compute_deletion_order(self, resources: list[str]) -> list[str]:
        """Compute a safe deletion order using Kahn's algorithm.

        Args:
            resources: Resource keys to order

        Returns:
            Keys ordered so every resource precedes the ones depending on it

        Raises:
            ValueError: If the graph contains a circular dependency
        """
        nodes = list(dict.fromkeys(resources))
        node_set = set(nodes)

        # in_degree = number of resources that must be deleted before this one
        in_degree = {node: 0 for node in nodes}
        for child in nodes:
            for parent in self.graph.get(child, set()):
                if parent in node_set:
                    in_degree[parent] += 1

        queue = deque(node for node in nodes if in_degree[node] == 0)
        order: list[str] = []

        while queue:
            node = queue.popleft()
            order.append(node)
            for parent in sorted(self.graph.get(node, set())):
                if parent not in node_set:
                    continue
                in_degree[parent] -= 1
                if in_degree[parent] == 0:
                    queue.append(parent)

        if len(order) != len(nodes):
            remaining = sorted(node for node in nodes if node not in order)
            raise ValueError(f"Circular dependency detected among: {', '.join(remaining)}")

        return order

