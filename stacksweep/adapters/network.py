"""VPC networking adapters: security groups, route tables, subnets, gateways, VPCs."""

from __future__ import annotations

import logging
from typing import Iterator

from botocore.exceptions import ClientError

from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance, ResourceKind
from .base import ResourceAdapter, tags_to_dict

logger = logging.getLogger(__name__)


class _Ec2Adapter(ResourceAdapter):
    @property
    def service_name(self) -> str:
        return "ec2"


class SecurityGroupAdapter(_Ec2Adapter):
    """Security groups. The VPC default group is left to the VPC deletion."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.SECURITY_GROUP

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("describe_security_groups")

        for page in paginator.paginate():
            for group in page.get("SecurityGroups", []):
                if group.get("GroupName") == "default":
                    continue
                yield ResourceInstance(
                    kind=self.kind,
                    resource_id=group["GroupId"],
                    name=group.get("GroupName", ""),
                    region=region,
                    vpc_id=group.get("VpcId"),
                    tags=tags_to_dict(group.get("Tags")),
                    attributes={"deployment_prefix": identity.prefix},
                )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        self._revoke_references(client, instance)
        client.delete_security_group(GroupId=instance.resource_id)

    def _revoke_references(self, client, instance: ResourceInstance) -> None:
        """Drop ingress rules of sibling deployment groups that point at this group.

        Two groups of the same deployment referencing each other would
        otherwise fail with DependencyViolation whichever goes first.
        """
        prefix = instance.attributes.get("deployment_prefix")
        if not prefix:
            return
        identity = DeploymentIdentity(prefix)

        response = client.describe_security_groups(
            Filters=[{"Name": "ip-permission.group-id", "Values": [instance.resource_id]}]
        )
        for group in response.get("SecurityGroups", []):
            if group["GroupId"] == instance.resource_id:
                continue
            labels = [group.get("GroupName"), tags_to_dict(group.get("Tags")).get("Name")]
            if not identity.matches_any(labels):
                continue

            permissions = [
                permission
                for permission in group.get("IpPermissions", [])
                if any(
                    pair.get("GroupId") == instance.resource_id
                    for pair in permission.get("UserIdGroupPairs", [])
                )
            ]
            if permissions:
                logger.debug(
                    f"Revoking {len(permissions)} rule(s) in {group['GroupId']} referencing {instance.resource_id}"
                )
                client.revoke_security_group_ingress(GroupId=group["GroupId"], IpPermissions=permissions)


class RouteTableAdapter(_Ec2Adapter):
    """Route tables: subnet associations are removed before deletion.

    The main route table of a VPC cannot be deleted on its own and is not listed.
    """

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.ROUTE_TABLE

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("describe_route_tables")

        for page in paginator.paginate():
            for table in page.get("RouteTables", []):
                associations = table.get("Associations", [])
                if any(association.get("Main") for association in associations):
                    continue

                tags = tags_to_dict(table.get("Tags"))
                yield ResourceInstance(
                    kind=self.kind,
                    resource_id=table["RouteTableId"],
                    name=tags.get("Name", ""),
                    region=region,
                    vpc_id=table.get("VpcId"),
                    tags=tags,
                    attributes={
                        "association_ids": [
                            a["RouteTableAssociationId"] for a in associations if "RouteTableAssociationId" in a
                        ],
                        "subnet_ids": [a["SubnetId"] for a in associations if a.get("SubnetId")],
                    },
                )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)

        for association_id in instance.attributes.get("association_ids", []):
            try:
                client.disassociate_route_table(AssociationId=association_id)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") != "InvalidAssociationID.NotFound":
                    raise

        client.delete_route_table(RouteTableId=instance.resource_id)


class SubnetAdapter(_Ec2Adapter):
    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.SUBNET

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("describe_subnets")

        for page in paginator.paginate():
            for subnet in page.get("Subnets", []):
                tags = tags_to_dict(subnet.get("Tags"))
                yield ResourceInstance(
                    kind=self.kind,
                    resource_id=subnet["SubnetId"],
                    name=tags.get("Name", ""),
                    region=region,
                    arn=subnet.get("SubnetArn"),
                    vpc_id=subnet.get("VpcId"),
                    tags=tags,
                )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        client.delete_subnet(SubnetId=instance.resource_id)


class InternetGatewayAdapter(_Ec2Adapter):
    """Internet gateways: detached from every VPC, then deleted."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.INTERNET_GATEWAY

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("describe_internet_gateways")

        for page in paginator.paginate():
            for gateway in page.get("InternetGateways", []):
                tags = tags_to_dict(gateway.get("Tags"))
                attached = [a["VpcId"] for a in gateway.get("Attachments", []) if a.get("VpcId")]
                yield ResourceInstance(
                    kind=self.kind,
                    resource_id=gateway["InternetGatewayId"],
                    name=tags.get("Name", ""),
                    region=region,
                    vpc_id=attached[0] if attached else None,
                    tags=tags,
                    attributes={"attached_vpc_ids": attached},
                )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)

        for vpc_id in instance.attributes.get("attached_vpc_ids", []):
            try:
                client.detach_internet_gateway(InternetGatewayId=instance.resource_id, VpcId=vpc_id)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") != "Gateway.NotAttached":
                    raise

        client.delete_internet_gateway(InternetGatewayId=instance.resource_id)


class VpcAdapter(_Ec2Adapter):
    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.VPC

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("describe_vpcs")

        for page in paginator.paginate():
            for vpc in page.get("Vpcs", []):
                if vpc.get("IsDefault"):
                    continue
                tags = tags_to_dict(vpc.get("Tags"))
                yield ResourceInstance(
                    kind=self.kind,
                    resource_id=vpc["VpcId"],
                    name=tags.get("Name", ""),
                    region=region,
                    vpc_id=vpc["VpcId"],
                    tags=tags,
                )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        client.delete_vpc(VpcId=instance.resource_id)
