"""Elastic Load Balancing v2 adapters."""

from __future__ import annotations

from typing import Iterator

from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance, ResourceKind
from .base import ResourceAdapter


class LoadBalancerAdapter(ResourceAdapter):
    """Application and network load balancers."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.LOAD_BALANCER

    @property
    def service_name(self) -> str:
        return "elbv2"

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("describe_load_balancers")

        for page in paginator.paginate():
            for lb in page.get("LoadBalancers", []):
                yield ResourceInstance(
                    kind=self.kind,
                    resource_id=lb["LoadBalancerArn"],
                    name=lb.get("LoadBalancerName", ""),
                    region=region,
                    arn=lb["LoadBalancerArn"],
                    vpc_id=lb.get("VpcId"),
                    attributes={
                        "security_group_ids": lb.get("SecurityGroups", []),
                        "subnet_ids": [
                            zone["SubnetId"] for zone in lb.get("AvailabilityZones", []) if zone.get("SubnetId")
                        ],
                    },
                )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        client.delete_load_balancer(LoadBalancerArn=instance.resource_id)


class TargetGroupAdapter(ResourceAdapter):
    """Target groups, deleted after the load balancers routing to them."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.TARGET_GROUP

    @property
    def service_name(self) -> str:
        return "elbv2"

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("describe_target_groups")

        for page in paginator.paginate():
            for group in page.get("TargetGroups", []):
                yield ResourceInstance(
                    kind=self.kind,
                    resource_id=group["TargetGroupArn"],
                    name=group.get("TargetGroupName", ""),
                    region=region,
                    arn=group["TargetGroupArn"],
                    vpc_id=group.get("VpcId"),
                    attributes={"load_balancer_arns": group.get("LoadBalancerArns", [])},
                )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        client.delete_target_group(TargetGroupArn=instance.resource_id)
