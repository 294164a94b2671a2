"""CloudFront adapters: distributions, cache policies, origin access controls.

CloudFront is a global service reached through us-east-1; its resources are
listed once, in the home region of the run.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Optional

from botocore.exceptions import WaiterError

from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance, ResourceKind
from .base import ResourceAdapter, tags_to_dict
from .errors import TransientAdapterError

logger = logging.getLogger(__name__)

CLOUDFRONT_REGION = "us-east-1"
WAITER_DELAY = 10


def _marker_pages(call: Callable[..., dict], list_key: str, **kwargs: Any) -> Iterator[dict]:
    """Iterate CloudFront list APIs that page with Marker/NextMarker."""
    marker: Optional[str] = None
    while True:
        params = dict(kwargs)
        if marker:
            params["Marker"] = marker
        response = call(**params).get(list_key, {})
        yield from response.get("Items", []) or []
        marker = response.get("NextMarker")
        if not marker:
            break


def bucket_from_origin(domain_name: str) -> Optional[str]:
    """Extract the bucket name from an S3 origin domain, if it is one."""
    if ".s3" not in domain_name:
        return None
    return domain_name.split(".s3", 1)[0] or None


class _CloudFrontAdapter(ResourceAdapter):
    @property
    def service_name(self) -> str:
        return "cloudfront"

    @property
    def is_global_service(self) -> bool:
        return True

    def client_region(self, region: str) -> str:
        return CLOUDFRONT_REGION


class DistributionAdapter(_CloudFrontAdapter):
    """CloudFront distributions.

    An enabled distribution is disabled first and must finish deploying
    before it can be deleted, which usually takes longer than one call
    timeout. In that case the task fails as transient and a later run
    completes the deletion.
    """

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.DISTRIBUTION

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)
        paginator = client.get_paginator("list_distributions")

        for page in paginator.paginate():
            for summary in page.get("DistributionList", {}).get("Items", []) or []:
                yield self._to_instance(client, summary, region)

    def _to_instance(self, client: Any, summary: dict, region: str) -> ResourceInstance:
        tag_items = client.list_tags_for_resource(Resource=summary["ARN"]).get("Tags", {}).get("Items", [])
        tags = tags_to_dict(tag_items)

        origins = summary.get("Origins", {}).get("Items", []) or []
        behaviors = [summary.get("DefaultCacheBehavior", {})]
        behaviors.extend(summary.get("CacheBehaviors", {}).get("Items", []) or [])

        buckets = [bucket_from_origin(origin.get("DomainName", "")) for origin in origins]

        return ResourceInstance(
            kind=self.kind,
            resource_id=summary["Id"],
            name=tags.get("Name") or summary.get("Comment") or "",
            region=region,
            arn=summary["ARN"],
            tags=tags,
            attributes={
                "web_acl_id": summary.get("WebACLId") or None,
                "cache_policy_ids": sorted({b["CachePolicyId"] for b in behaviors if b.get("CachePolicyId")}),
                "origin_access_control_ids": sorted(
                    {o["OriginAccessControlId"] for o in origins if o.get("OriginAccessControlId")}
                ),
                "origin_buckets": sorted({bucket for bucket in buckets if bucket}),
            },
        )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        distribution_id = instance.resource_id

        response = client.get_distribution_config(Id=distribution_id)
        config = response["DistributionConfig"]
        etag = response["ETag"]

        if config.get("Enabled"):
            logger.info(f"Disabling distribution {distribution_id}")
            config["Enabled"] = False
            etag = client.update_distribution(Id=distribution_id, DistributionConfig=config, IfMatch=etag)["ETag"]

        max_attempts = max(1, int(self.call_timeout // WAITER_DELAY))
        try:
            client.get_waiter("distribution_deployed").wait(
                Id=distribution_id,
                WaiterConfig={"Delay": WAITER_DELAY, "MaxAttempts": max_attempts},
            )
        except WaiterError as e:
            raise TransientAdapterError(
                "DistributionNotDisabled",
                f"Distribution {distribution_id} is still being disabled; re-run the teardown once it is deployed",
            ) from e

        client.delete_distribution(Id=distribution_id, IfMatch=etag)


class CachePolicyAdapter(_CloudFrontAdapter):
    """Custom cache policies (managed policies are never listed)."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.CACHE_POLICY

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)

        for item in _marker_pages(client.list_cache_policies, "CachePolicyList", Type="custom"):
            policy = item.get("CachePolicy", {})
            yield ResourceInstance(
                kind=self.kind,
                resource_id=policy["Id"],
                name=policy.get("CachePolicyConfig", {}).get("Name", ""),
                region=region,
            )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        etag = client.get_cache_policy(Id=instance.resource_id)["ETag"]
        client.delete_cache_policy(Id=instance.resource_id, IfMatch=etag)


class OriginAccessControlAdapter(_CloudFrontAdapter):
    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.ORIGIN_ACCESS_CONTROL

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)

        for item in _marker_pages(client.list_origin_access_controls, "OriginAccessControlList"):
            yield ResourceInstance(
                kind=self.kind,
                resource_id=item["Id"],
                name=item.get("Name", ""),
                region=region,
            )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._create_client(instance.region)
        etag = client.get_origin_access_control(Id=instance.resource_id)["ETag"]
        client.delete_origin_access_control(Id=instance.resource_id, IfMatch=etag)
