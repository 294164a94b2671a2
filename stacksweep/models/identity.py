"""Deployment identity model.

The naming prefix that ties every resource of one deployment together.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

_IDENTITY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{1,62}$")

# Characters allowed between the prefix and the rest of a resource name
SEPARATORS = ("-", "_", ".", "/", ":")


class InvalidIdentityError(ValueError):
    """Raised when a deployment identity is empty or malformed."""


@dataclass(frozen=True)
class DeploymentIdentity:
    """Naming prefix identifying all resources of one deployment.

    Validation rules:
        - 2 to 63 characters after stripping whitespace
        - starts with a letter or digit
        - only letters, digits, '-', '_' and '.'

    Attributes:
        prefix: Prefix used when the resources were provisioned
    """

    prefix: str

    def __post_init__(self) -> None:
        if not isinstance(self.prefix, str):
            raise InvalidIdentityError("Deployment identity must be a string")

        stripped = self.prefix.strip()
        if not stripped:
            raise InvalidIdentityError("Deployment identity cannot be empty")
        if not _IDENTITY_PATTERN.match(stripped):
            raise InvalidIdentityError(
                f"Invalid deployment identity '{self.prefix}': use 2-63 letters, digits, '-', '_' or '.'"
            )

        object.__setattr__(self, "prefix", stripped)

    @classmethod
    def parse(cls, value: "str | DeploymentIdentity") -> "DeploymentIdentity":
        """Coerce a raw string into an identity."""
        if isinstance(value, DeploymentIdentity):
            return value
        return cls(value)

    def matches(self, label: Optional[str]) -> bool:
        """Check whether a resource name or tag value falls in this deployment's scope.

        A label matches when it equals the prefix or starts with the prefix
        followed by a separator. Comparison is case-insensitive.

        Args:
            label: Resource name, Name tag or other identifying label

        Returns:
            True if the label belongs to this deployment
        """
        if not label:
            return False

        candidate = label.lower()
        prefix = self.prefix.lower()

        if candidate == prefix:
            return True
        if not candidate.startswith(prefix):
            return False
        return candidate[len(prefix)] in SEPARATORS

    def matches_any(self, labels: Iterable[Optional[str]]) -> bool:
        return any(self.matches(label) for label in labels)

    def __str__(self) -> str:
        return self.prefix
