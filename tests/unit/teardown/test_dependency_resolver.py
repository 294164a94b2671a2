"""Tests for DependencyResolver class.

Test coverage for dependency graph construction and deletion ordering using Kahn's algorithm.
"""

from __future__ import annotations

import pytest

from stacksweep.models.resource import ResourceInstance, ResourceKind
from stacksweep.teardown.dependency import DependencyResolver
from tests.fixtures.adapters import create_demo_deployment, create_load_balancer, create_subnet, create_vpc


class TestDependencyResolver:
    """Test suite for DependencyResolver class."""

    def test_init_creates_empty_graph(self) -> None:
        """Test initialization creates empty dependency graph."""
        resolver = DependencyResolver()
        assert resolver.graph == {}

    def test_add_dependency_creates_edge(self) -> None:
        """Test adding dependency creates edge in graph."""
        resolver = DependencyResolver()

        # subnet depends on vpc (vpc must be deleted AFTER subnet)
        resolver.add_dependency(parent="vpc-001", child="subnet-001")

        assert "vpc-001" in resolver.graph["subnet-001"]
        assert resolver.predecessors("vpc-001") == {"subnet-001"}

    def test_compute_deletion_order_simple_chain(self) -> None:
        """Test deletion order for simple dependency chain."""
        resolver = DependencyResolver()

        # Chain: vpc -> subnet -> instance; deletion order is instance, subnet, vpc
        resolver.add_dependency(parent="vpc-001", child="subnet-001")
        resolver.add_dependency(parent="subnet-001", child="instance-001")

        order = resolver.compute_deletion_order(["vpc-001", "subnet-001", "instance-001"])

        assert order == ["instance-001", "subnet-001", "vpc-001"]

    def test_compute_deletion_order_complex_graph(self) -> None:
        """Test deletion order when one resource depends on two others."""
        resolver = DependencyResolver()

        resolver.add_dependency(parent="vpc-001", child="subnet-001")
        resolver.add_dependency(parent="vpc-001", child="sg-001")
        resolver.add_dependency(parent="subnet-001", child="instance-001")
        resolver.add_dependency(parent="sg-001", child="instance-001")

        order = resolver.compute_deletion_order(["vpc-001", "subnet-001", "sg-001", "instance-001"])

        assert order[0] == "instance-001"
        assert order[-1] == "vpc-001"

    def test_compute_deletion_order_ignores_unknown_nodes(self) -> None:
        """Test edges to resources outside the requested set are ignored."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="vpc-elsewhere", child="subnet-001")

        assert resolver.compute_deletion_order(["subnet-001"]) == ["subnet-001"]

    def test_compute_deletion_order_raises_error_on_cycle(self) -> None:
        """Test deletion order computation raises error when cycle detected."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="resource-B", child="resource-A")
        resolver.add_dependency(parent="resource-A", child="resource-B")

        with pytest.raises(ValueError, match="Circular dependency"):
            resolver.compute_deletion_order(["resource-A", "resource-B"])

    def test_dependents_is_transitive(self) -> None:
        """Test dependents follows the chain up to the VPC."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="subnet-001", child="instance-001")
        resolver.add_dependency(parent="vpc-001", child="subnet-001")

        assert resolver.dependents("instance-001") == {"subnet-001", "vpc-001"}
        assert resolver.dependents("vpc-001") == set()


class TestBuildGraphFromResources:
    """Test suite for graph construction from discovered resources."""

    def test_demo_deployment_links(self) -> None:
        """Test load balancer, subnet and gateway all precede the VPC."""
        resources = create_demo_deployment()
        keys = {r.kind: r.key for r in resources}

        resolver = DependencyResolver()
        resolver.build_graph_from_resources(resources)

        vpc_key = keys[ResourceKind.VPC]
        assert resolver.predecessors(vpc_key) == {
            keys[ResourceKind.LOAD_BALANCER],
            keys[ResourceKind.SUBNET],
            keys[ResourceKind.INTERNET_GATEWAY],
        }
        assert keys[ResourceKind.LOAD_BALANCER] in resolver.predecessors(keys[ResourceKind.SUBNET])
        assert resolver.predecessors(keys[ResourceKind.BUCKET]) == set()

    def test_references_outside_deployment_are_ignored(self) -> None:
        """Test a subnet in a VPC that was not discovered has no predecessors or dependents."""
        subnet = create_subnet(vpc_id="vpc-foreign")

        resolver = DependencyResolver()
        resolver.build_graph_from_resources([subnet])

        assert resolver.graph == {}

    def test_target_group_follows_its_load_balancers(self) -> None:
        """Test a target group waits for the load balancers routing to it."""
        lb = create_load_balancer()
        target_group = ResourceInstance(
            kind=ResourceKind.TARGET_GROUP,
            resource_id="arn:aws:elasticloadbalancing:ap-northeast-1:123456789012:targetgroup/demo-01-tg/1",
            name="demo-01-tg",
            region="ap-northeast-1",
            attributes={"load_balancer_arns": [lb.arn]},
        )

        resolver = DependencyResolver()
        resolver.build_graph_from_resources([lb, target_group])

        assert resolver.predecessors(target_group.key) == {lb.key}

    def test_distribution_precedes_origin_bucket_and_web_acl(self) -> None:
        """Test CloudFront references are resolved by ID, ARN and bucket name."""
        web_acl = ResourceInstance(
            kind=ResourceKind.WEB_ACL,
            resource_id="acl-1",
            name="demo-01-waf",
            region="us-east-1",
            arn="arn:aws:wafv2:us-east-1:123456789012:global/webacl/demo-01-waf/acl-1",
        )
        bucket = ResourceInstance(
            kind=ResourceKind.BUCKET,
            resource_id="demo-01-assets",
            name="demo-01-assets",
            region="us-east-1",
        )
        distribution = ResourceInstance(
            kind=ResourceKind.DISTRIBUTION,
            resource_id="E123",
            name="demo-01-cdn",
            region="us-east-1",
            attributes={"web_acl_id": web_acl.arn, "origin_buckets": ["demo-01-assets"]},
        )

        resolver = DependencyResolver()
        resolver.build_graph_from_resources([web_acl, bucket, distribution])

        assert resolver.dependents(distribution.key) == {web_acl.key, bucket.key}

    def test_route_table_precedes_associated_subnet(self) -> None:
        """Test route tables are removed before the subnets they are associated with."""
        subnet = create_subnet()
        route_table = ResourceInstance(
            kind=ResourceKind.ROUTE_TABLE,
            resource_id="rtb-001",
            name="demo-01-public-rtb",
            region="ap-northeast-1",
            attributes={"subnet_ids": ["subnet-001"]},
        )

        resolver = DependencyResolver()
        resolver.build_graph_from_resources([route_table, subnet])

        assert resolver.predecessors(subnet.key) == {route_table.key}

    def test_reference_against_rank_order_is_rejected(self) -> None:
        """Test a reference that would delete a later-rank resource first raises ValueError."""
        instance = ResourceInstance(
            kind=ResourceKind.INSTANCE,
            resource_id="i-001",
            name="demo-01-app",
            region="ap-northeast-1",
        )
        # A subnet can never be something an instance waits for
        subnet = create_subnet(vpc_id="i-001")

        resolver = DependencyResolver()
        with pytest.raises(ValueError, match="cannot precede"):
            resolver.build_graph_from_resources([instance, subnet])
