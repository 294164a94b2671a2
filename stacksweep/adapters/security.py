"""WAFv2 web ACL adapter."""

from __future__ import annotations

import logging
from typing import Iterator

from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance, ResourceKind
from .base import ResourceAdapter

logger = logging.getLogger(__name__)

# CLOUDFRONT-scoped web ACLs only exist in us-east-1
CLOUDFRONT_SCOPE_REGION = "us-east-1"

_ASSOCIATED_RESOURCE_TYPES = ["APPLICATION_LOAD_BALANCER", "API_GATEWAY"]


class WebAclAdapter(ResourceAdapter):
    """WAFv2 web ACLs, regional and CloudFront-scoped.

    Listed in every region; the CloudFront scope is only queried in us-east-1.
    Regional ACLs are disassociated from their resources before deletion.
    """

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.WEB_ACL

    @property
    def service_name(self) -> str:
        return "wafv2"

    def scopes(self, region: str) -> list[str]:
        if region == CLOUDFRONT_SCOPE_REGION:
            return ["REGIONAL", "CLOUDFRONT"]
        return ["REGIONAL"]

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)

        for scope in self.scopes(region):
            marker = None
            while True:
                params = {"Scope": scope, "Limit": 100}
                if marker:
                    params["NextMarker"] = marker
                response = client.list_web_acls(**params)

                for acl in response.get("WebACLs", []):
                    yield ResourceInstance(
                        kind=self.kind,
                        resource_id=acl["Id"],
                        name=acl.get("Name", ""),
                        region=region,
                        arn=acl.get("ARN"),
                        attributes={"scope": scope},
                    )

                marker = response.get("NextMarker")
                if not marker or not response.get("WebACLs"):
                    break

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        scope = instance.attributes.get("scope", "REGIONAL")

        if scope == "REGIONAL" and instance.arn:
            for resource_type in _ASSOCIATED_RESOURCE_TYPES:
                response = client.list_resources_for_web_acl(WebACLArn=instance.arn, ResourceType=resource_type)
                for resource_arn in response.get("ResourceArns", []):
                    logger.info(f"Disassociating web ACL {instance.name} from {resource_arn}")
                    client.disassociate_web_acl(ResourceArn=resource_arn)

        # Lock tokens change on every update, fetch a fresh one
        lock_token = client.get_web_acl(Name=instance.name, Scope=scope, Id=instance.resource_id)["LockToken"]
        client.delete_web_acl(Name=instance.name, Scope=scope, Id=instance.resource_id, LockToken=lock_token)
