"""Resource adapter set: one adapter per resource kind."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from ..aws.client import DEFAULT_CALL_TIMEOUT
from ..models.resource import ResourceKind
from .base import ResourceAdapter


class ResourceAdapterSet:
    """Adapters keyed by resource kind, iterated in deletion-rank order.

    Any object exposing ``kind``, ``is_global_service``, ``list(identity, region)``
    and ``delete(instance)`` can be registered, which keeps the coordinator
    independent of boto3.
    """

    def __init__(self, adapters: Iterable[ResourceAdapter] = ()) -> None:
        self._adapters: dict[ResourceKind, ResourceAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: ResourceAdapter) -> None:
        """Add an adapter, replacing any adapter for the same kind."""
        self._adapters[adapter.kind] = adapter

    def get(self, kind: ResourceKind) -> ResourceAdapter:
        """Return the adapter for a kind.

        Raises:
            KeyError: If no adapter is registered for the kind
        """
        try:
            return self._adapters[kind]
        except KeyError:
            raise KeyError(f"No adapter registered for {kind.label}")

    def kinds(self) -> list[ResourceKind]:
        return sorted(self._adapters, key=lambda k: k.rank)

    def __iter__(self) -> Iterator[ResourceAdapter]:
        return iter(self._adapters[kind] for kind in self.kinds())

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, kind: object) -> bool:
        return kind in self._adapters

    @classmethod
    def default(
        cls,
        profile_name: Optional[str] = None,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        kinds: Optional[Iterable[ResourceKind]] = None,
    ) -> "ResourceAdapterSet":
        """Build the boto3-backed adapter set.

        Args:
            profile_name: AWS profile name (optional)
            call_timeout: Per-call timeout in seconds
            kinds: Restrict to these kinds (optional)

        Returns:
            ResourceAdapterSet with one adapter per supported kind
        """
        from .cdn import CachePolicyAdapter, DistributionAdapter, OriginAccessControlAdapter
        from .compute import ContainerServiceAdapter, InstanceAdapter
        from .identity import IamRoleAdapter
        from .load_balancing import LoadBalancerAdapter, TargetGroupAdapter
        from .network import (
            InternetGatewayAdapter,
            RouteTableAdapter,
            SecurityGroupAdapter,
            SubnetAdapter,
            VpcAdapter,
        )
        from .security import WebAclAdapter
        from .storage import BucketAdapter

        adapter_classes = [
            DistributionAdapter,
            WebAclAdapter,
            CachePolicyAdapter,
            OriginAccessControlAdapter,
            LoadBalancerAdapter,
            TargetGroupAdapter,
            InstanceAdapter,
            ContainerServiceAdapter,
            SecurityGroupAdapter,
            IamRoleAdapter,
            RouteTableAdapter,
            SubnetAdapter,
            InternetGatewayAdapter,
            VpcAdapter,
            BucketAdapter,
        ]

        wanted = set(kinds) if kinds is not None else None
        adapters = []
        for adapter_class in adapter_classes:
            adapter = adapter_class(profile_name=profile_name, call_timeout=call_timeout)
            if wanted is None or adapter.kind in wanted:
                adapters.append(adapter)
        return cls(adapters)
