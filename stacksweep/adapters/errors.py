"""Adapter error taxonomy and AWS error-code translation."""

from __future__ import annotations

from typing import Optional

from botocore.exceptions import ClientError, ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError

# Error codes meaning the resource is already gone
NOT_FOUND_CODES = {
    "NoSuchBucket",
    "NoSuchDistribution",
    "NoSuchCachePolicy",
    "NoSuchOriginAccessControl",
    "NoSuchEntity",
    "WAFNonexistentItemException",
    "LoadBalancerNotFound",
    "TargetGroupNotFound",
    "ServiceNotFoundException",
    "ClusterNotFoundException",
    "ResourceNotFoundException",
    "InvalidInstanceID.NotFound",
    "InvalidGroup.NotFound",
    "InvalidRouteTableID.NotFound",
    "InvalidAssociationID.NotFound",
    "InvalidSubnetID.NotFound",
    "InvalidInternetGatewayID.NotFound",
    "InvalidVpcID.NotFound",
}

# Error codes worth re-running the whole teardown for
TRANSIENT_CODES = {
    "Throttling",
    "ThrottlingException",
    "ThrottledException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RequestTimeout",
    "RequestTimeoutException",
    "ServiceUnavailable",
    "InternalError",
    "WAFUnavailableEntityException",
    "PreconditionFailed",
    "DistributionNotDisabled",
}


class AdapterError(Exception):
    """A list or delete call failed.

    Attributes:
        code: Provider error code (e.g., "DependencyViolation")
        message: Human-readable error message
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class ResourceNotFoundError(AdapterError):
    """The resource no longer exists."""

    def __init__(self, message: str, code: str = "NotFound") -> None:
        super().__init__(code, message)


class TransientAdapterError(AdapterError):
    """Throttling, timeout or service-side hiccup."""


def translate_client_error(error: ClientError, context: Optional[str] = None) -> AdapterError:
    """Map a botocore ClientError onto the adapter taxonomy.

    Args:
        error: Error raised by a boto3 call
        context: Resource description prepended to the message (optional)

    Returns:
        ResourceNotFoundError, TransientAdapterError or AdapterError
    """
    error_code = error.response.get("Error", {}).get("Code", "Unknown")
    error_message = error.response.get("Error", {}).get("Message", str(error))
    if context:
        error_message = f"{context}: {error_message}"

    if error_code in NOT_FOUND_CODES or error_code.endswith(".NotFound"):
        return ResourceNotFoundError(error_message, code=error_code)
    if error_code in TRANSIENT_CODES:
        return TransientAdapterError(error_code, error_message)
    return AdapterError(error_code, error_message)


def translate_exception(error: Exception, context: Optional[str] = None) -> AdapterError:
    """Map any exception raised by an SDK call onto the adapter taxonomy."""
    if isinstance(error, AdapterError):
        return error
    if isinstance(error, ClientError):
        return translate_client_error(error, context)

    prefix = f"{context}: " if context else ""
    if isinstance(error, (ConnectTimeoutError, ReadTimeoutError)):
        return TransientAdapterError("Timeout", f"{prefix}{error}")
    if isinstance(error, EndpointConnectionError):
        return TransientAdapterError("EndpointConnectionError", f"{prefix}{error}")
    return AdapterError(type(error).__name__, f"{prefix}{error}")
