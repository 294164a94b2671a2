"""Compute adapters: EC2 instances and ECS services."""

from __future__ import annotations

import logging
from typing import Iterator

from botocore.exceptions import WaiterError

from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance, ResourceKind
from .base import ResourceAdapter, tags_to_dict
from .errors import TransientAdapterError

logger = logging.getLogger(__name__)

WAITER_DELAY = 5

_LIVE_INSTANCE_STATES = ["pending", "running", "stopping", "stopped"]


class InstanceAdapter(ResourceAdapter):
    """EC2 instances: terminated, then waited on until gone.

    The wait is bounded by the call timeout. An instance still shutting down
    when the budget runs out is reported as a transient failure; re-running
    the teardown picks it up again.
    """

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.INSTANCE

    @property
    def service_name(self) -> str:
        return "ec2"

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("describe_instances")

        for page in paginator.paginate(Filters=[{"Name": "instance-state-name", "Values": _LIVE_INSTANCE_STATES}]):
            for reservation in page.get("Reservations", []):
                for ec2_instance in reservation.get("Instances", []):
                    tags = tags_to_dict(ec2_instance.get("Tags"))
                    subnet_ids = [ec2_instance["SubnetId"]] if ec2_instance.get("SubnetId") else []
                    yield ResourceInstance(
                        kind=self.kind,
                        resource_id=ec2_instance["InstanceId"],
                        name=tags.get("Name", ""),
                        region=region,
                        vpc_id=ec2_instance.get("VpcId"),
                        tags=tags,
                        attributes={
                            "subnet_ids": subnet_ids,
                            "security_group_ids": [g["GroupId"] for g in ec2_instance.get("SecurityGroups", [])],
                        },
                    )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        client.terminate_instances(InstanceIds=[instance.resource_id])

        max_attempts = max(1, int(self.call_timeout // WAITER_DELAY))
        try:
            client.get_waiter("instance_terminated").wait(
                InstanceIds=[instance.resource_id],
                WaiterConfig={"Delay": WAITER_DELAY, "MaxAttempts": max_attempts},
            )
        except WaiterError as e:
            raise TransientAdapterError(
                "TerminationPending",
                f"Instance {instance.resource_id} is still shutting down; re-run the teardown: {e}",
            ) from e


class ContainerServiceAdapter(ResourceAdapter):
    """ECS services: scaled to zero and force-deleted."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.CONTAINER_SERVICE

    @property
    def service_name(self) -> str:
        return "ecs"

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        cluster_paginator = client.get_paginator("list_clusters")
        service_paginator = client.get_paginator("list_services")

        for cluster_page in cluster_paginator.paginate():
            for cluster_arn in cluster_page.get("clusterArns", []):
                for service_page in service_paginator.paginate(cluster=cluster_arn):
                    service_arns = service_page.get("serviceArns", [])
                    # describe_services accepts at most 10 services per call
                    for start in range(0, len(service_arns), 10):
                        response = client.describe_services(
                            cluster=cluster_arn,
                            services=service_arns[start:start + 10],
                        )
                        for service in response.get("services", []):
                            if service.get("status") == "INACTIVE":
                                continue
                            yield self._to_instance(service, cluster_arn, region)

    def _to_instance(self, service: dict, cluster_arn: str, region: str) -> ResourceInstance:
        network = service.get("networkConfiguration", {}).get("awsvpcConfiguration", {})
        return ResourceInstance(
            kind=self.kind,
            resource_id=service["serviceArn"],
            name=service.get("serviceName", ""),
            region=region,
            arn=service["serviceArn"],
            attributes={
                "cluster_arn": cluster_arn,
                "subnet_ids": network.get("subnets", []),
                "security_group_ids": network.get("securityGroups", []),
            },
        )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        cluster_arn = instance.attributes["cluster_arn"]

        client.update_service(cluster=cluster_arn, service=instance.resource_id, desiredCount=0)
        client.delete_service(cluster=cluster_arn, service=instance.resource_id, force=True)
