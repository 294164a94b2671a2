"""IAM role adapter."""

from __future__ import annotations

import logging
from typing import Iterator

from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance, ResourceKind
from .base import ResourceAdapter

logger = logging.getLogger(__name__)

# Roles owned by AWS services; these cannot be deleted directly
SERVICE_ROLE_PATH = "/aws-service-role/"


class IamRoleAdapter(ResourceAdapter):
    """IAM roles.

    A role is stripped of its managed policies, inline policies and instance
    profile memberships before deletion, since IAM refuses to delete a role
    that still has any of them.
    """

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.IAM_ROLE

    @property
    def service_name(self) -> str:
        return "iam"

    @property
    def is_global_service(self) -> bool:
        return True

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("list_roles")

        for page in paginator.paginate():
            for role in page.get("Roles", []):
                if role.get("Path", "/").startswith(SERVICE_ROLE_PATH):
                    continue
                yield ResourceInstance(
                    kind=self.kind,
                    resource_id=role["RoleName"],
                    name=role["RoleName"],
                    region=region,
                    arn=role.get("Arn"),
                )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        role_name = instance.resource_id

        for page in client.get_paginator("list_attached_role_policies").paginate(RoleName=role_name):
            for policy in page.get("AttachedPolicies", []):
                logger.debug(f"Detaching {policy['PolicyArn']} from role {role_name}")
                client.detach_role_policy(RoleName=role_name, PolicyArn=policy["PolicyArn"])

        for page in client.get_paginator("list_role_policies").paginate(RoleName=role_name):
            for policy_name in page.get("PolicyNames", []):
                client.delete_role_policy(RoleName=role_name, PolicyName=policy_name)

        for page in client.get_paginator("list_instance_profiles_for_role").paginate(RoleName=role_name):
            for profile in page.get("InstanceProfiles", []):
                client.remove_role_from_instance_profile(
                    InstanceProfileName=profile["InstanceProfileName"],
                    RoleName=role_name,
                )

        client.delete_role(RoleName=role_name)
