"""S3 bucket adapter."""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance, ResourceKind
from .base import ResourceAdapter

logger = logging.getLogger(__name__)

# delete_objects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000


def bucket_region(location_constraint: Optional[str]) -> str:
    """Translate a GetBucketLocation constraint into a region name."""
    if not location_constraint:
        return "us-east-1"
    if location_constraint == "EU":
        return "eu-west-1"
    return location_constraint


class BucketAdapter(ResourceAdapter):
    """S3 buckets, emptied of every object version before deletion.

    Buckets are listed once from the home region; deletion talks to the
    bucket's own region.
    """

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.BUCKET

    @property
    def service_name(self) -> str:
        return "s3"

    @property
    def is_global_service(self) -> bool:
        return True

    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        client = self._create_client(region)

        for bucket in client.list_buckets().get("Buckets", []):
            name = bucket["Name"]
            # Location lookups are one call per bucket, only pay for candidates
            if not identity.matches(name):
                continue
            location = client.get_bucket_location(Bucket=name).get("LocationConstraint")
            yield ResourceInstance(
                kind=self.kind,
                resource_id=name,
                name=name,
                region=region,
                arn=f"arn:aws:s3:::{name}",
                attributes={"bucket_region": bucket_region(location)},
            )

    def _delete(self, instance: ResourceInstance) -> None:
        client = self._client_factory(
            service_name=self.service_name,
            region_name=instance.attributes.get("bucket_region", instance.region),
            profile_name=self.profile_name,
            call_timeout=self.call_timeout,
        )

        deleted = self._empty(client, instance.resource_id)
        if deleted:
            logger.info(f"Deleted {deleted} object version(s) from bucket {instance.resource_id}")
        client.delete_bucket(Bucket=instance.resource_id)

    def _empty(self, client: Any, bucket_name: str) -> int:
        paginator = client.get_paginator("list_object_versions")
        batch: list[dict] = []
        total = 0

        for page in paginator.paginate(Bucket=bucket_name):
            for entry in page.get("Versions", []) + page.get("DeleteMarkers", []):
                batch.append({"Key": entry["Key"], "VersionId": entry["VersionId"]})
                if len(batch) == DELETE_BATCH_SIZE:
                    total += self._delete_batch(client, bucket_name, batch)
                    batch = []

        if batch:
            total += self._delete_batch(client, bucket_name, batch)
        return total

    def _delete_batch(self, client: Any, bucket_name: str, batch: list[dict]) -> int:
        response = client.delete_objects(Bucket=bucket_name, Delete={"Objects": batch, "Quiet": True})
        errors = response.get("Errors", [])
        if errors:
            first = errors[0]
            logger.warning(
                f"{len(errors)} object(s) in {bucket_name} could not be deleted: "
                f"{first.get('Key')}: {first.get('Code')}"
            )
        return len(batch) - len(errors)
