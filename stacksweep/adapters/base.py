"""Base class for resource adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, List, Optional

from ..aws.client import DEFAULT_CALL_TIMEOUT, create_boto_client
from ..models.identity import DeploymentIdentity
from ..models.resource import ResourceInstance, ResourceKind
from .errors import translate_exception

logger = logging.getLogger(__name__)


def tags_to_dict(tags: Optional[Iterable[dict]]) -> dict[str, str]:
    """Convert an AWS Key/Value tag list into a dict."""
    return {tag["Key"]: tag.get("Value", "") for tag in tags or [] if "Key" in tag}


class ResourceAdapter(ABC):
    """Abstract base class for all resource adapters.

    Each adapter should:
    1. Declare the ResourceKind it handles
    2. List the deployment's resources of that kind in a region
    3. Delete one listed resource, raising ResourceNotFoundError if it is gone

    Both operations raise AdapterError subclasses; raw botocore exceptions
    never escape an adapter.
    """

    def __init__(
        self,
        profile_name: Optional[str] = None,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        client_factory=create_boto_client,
    ) -> None:
        """Initialize the adapter.

        Args:
            profile_name: AWS profile name (optional)
            call_timeout: Per-call connect/read timeout in seconds
            client_factory: Callable creating boto3 clients (overridable for tests)
        """
        self.profile_name = profile_name
        self.call_timeout = call_timeout
        self._client_factory = client_factory

    @property
    @abstractmethod
    def kind(self) -> ResourceKind:
        """Resource kind handled by this adapter."""

    @property
    @abstractmethod
    def service_name(self) -> str:
        """boto3 service name (e.g., "ec2")."""

    @property
    def is_global_service(self) -> bool:
        """Global services are only listed in the home region."""
        return False

    def client_region(self, region: str) -> str:
        """Region the boto3 client must be created in."""
        return region

    def _create_client(self, region: str) -> Any:
        return self._client_factory(
            service_name=self.service_name,
            region_name=self.client_region(region),
            profile_name=self.profile_name,
            call_timeout=self.call_timeout,
        )

    def list(self, identity: DeploymentIdentity, region: str) -> List[ResourceInstance]:
        """List the deployment's resources of this kind in a region.

        Args:
            identity: Deployment identity to filter by
            region: Region to search

        Returns:
            Matching resource instances

        Raises:
            AdapterError: If the provider call fails
        """
        try:
            return [
                instance
                for instance in self._list(identity, region)
                if identity.matches_any(instance.labels())
            ]
        except Exception as e:
            raise translate_exception(e, f"list {self.kind.label} in {region}") from e

    def delete(self, instance: ResourceInstance) -> None:
        """Delete a listed resource.

        Raises:
            ResourceNotFoundError: If the resource is already gone
            AdapterError: If the provider call fails
        """
        try:
            self._delete(instance)
        except Exception as e:
            raise translate_exception(e, f"delete {self.kind.label} {instance.resource_id}") from e
        logger.debug(f"Deleted {self.kind.label} {instance.resource_id} in {instance.region}")

    @abstractmethod
    def _list(self, identity: DeploymentIdentity, region: str) -> Iterator[ResourceInstance]:
        """Yield candidate resources; name filtering is applied by list()."""

    @abstractmethod
    def _delete(self, instance: ResourceInstance) -> None:
        """Issue the provider delete call(s)."""
