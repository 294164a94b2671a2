"""Resource adapters: per-kind list and delete against AWS."""

from .base import ResourceAdapter
from .errors import AdapterError, ResourceNotFoundError, TransientAdapterError
from .registry import ResourceAdapterSet

__all__ = [
    "AdapterError",
    "ResourceAdapter",
    "ResourceAdapterSet",
    "ResourceNotFoundError",
    "TransientAdapterError",
]
