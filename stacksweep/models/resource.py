"""Resource kind and discovered resource models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ResourceCategory(Enum):
    """Broad category of cloud resource."""

    CDN = "cdn"
    SECURITY = "security"
    CACHE_POLICY = "cache-policy"
    LOAD_BALANCING = "load-balancing"
    COMPUTE = "compute"
    IDENTITY = "identity"
    NETWORK = "network"
    STORAGE = "storage"


class ResourceKind(Enum):
    """Deletable resource kind with its fixed deletion rank.

    Lower ranks are deleted first. Kinds sharing a rank have no ordering
    requirement between them.
    """

    DISTRIBUTION = ("distribution", ResourceCategory.CDN, 10)
    WEB_ACL = ("web-acl", ResourceCategory.SECURITY, 20)
    CACHE_POLICY = ("cache-policy", ResourceCategory.CACHE_POLICY, 30)
    ORIGIN_ACCESS_CONTROL = ("origin-access-control", ResourceCategory.CACHE_POLICY, 30)
    LOAD_BALANCER = ("load-balancer", ResourceCategory.LOAD_BALANCING, 40)
    TARGET_GROUP = ("target-group", ResourceCategory.LOAD_BALANCING, 50)
    INSTANCE = ("instance", ResourceCategory.COMPUTE, 60)
    CONTAINER_SERVICE = ("container-service", ResourceCategory.COMPUTE, 60)
    SECURITY_GROUP = ("security-group", ResourceCategory.SECURITY, 70)
    IAM_ROLE = ("iam-role", ResourceCategory.IDENTITY, 75)
    ROUTE_TABLE = ("route-table", ResourceCategory.NETWORK, 80)
    SUBNET = ("subnet", ResourceCategory.NETWORK, 90)
    INTERNET_GATEWAY = ("internet-gateway", ResourceCategory.NETWORK, 100)
    VPC = ("vpc", ResourceCategory.NETWORK, 110)
    BUCKET = ("bucket", ResourceCategory.STORAGE, 120)

    def __init__(self, label: str, category: ResourceCategory, rank: int) -> None:
        self.label = label
        self.category = category
        self.rank = rank

    @classmethod
    def from_label(cls, label: str) -> "ResourceKind":
        for kind in cls:
            if kind.label == label:
                return kind
        raise ValueError(f"Unknown resource kind: {label}")

    @classmethod
    def ranked(cls) -> list["ResourceKind"]:
        """All kinds in deletion order."""
        return sorted(cls, key=lambda k: k.rank)


@dataclass
class ResourceInstance:
    """A single cloud resource discovered for deletion.

    Attributes:
        kind: Resource kind
        resource_id: Provider identifier (ID, ARN or name used by the delete call)
        name: Human-readable name the deployment prefix was matched against
        region: Region the resource lives in (home region for global services)
        arn: Resource ARN where the provider exposes one (optional)
        vpc_id: Owning VPC for network-bound resources (optional)
        tags: Resource tags
        attributes: Adapter-specific details needed at delete time
    """

    kind: ResourceKind
    resource_id: str
    name: str
    region: str
    arn: Optional[str] = None
    vpc_id: Optional[str] = None
    tags: dict[str, str] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        """Stable identifier, unique within a run."""
        return f"{self.kind.label}:{self.region}:{self.resource_id}"

    def labels(self) -> list[str]:
        """Labels the deployment prefix is matched against: the name and the Name tag.

        Provider-generated IDs and ARNs are never labels.
        """
        labels = [self.name, self.tags.get("Name")]
        return list(dict.fromkeys(label for label in labels if label))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.label,
            "resource_id": self.resource_id,
            "name": self.name,
            "region": self.region,
            "arn": self.arn,
            "vpc_id": self.vpc_id,
            "tags": dict(self.tags),
        }
