"""boto3 client factory.

All adapters create their clients here so profile selection and call
timeouts are applied in one place.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)

DEFAULT_CALL_TIMEOUT = 30.0


def create_boto_session(profile_name: Optional[str] = None) -> boto3.Session:
    """Create a boto3 session for an optional named profile."""
    if profile_name:
        return boto3.Session(profile_name=profile_name)
    return boto3.Session()


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
    call_timeout: float = DEFAULT_CALL_TIMEOUT,
) -> Any:
    """Create a boto3 client with bounded connect/read timeouts.

    Args:
        service_name: AWS service name (e.g., "ec2", "elbv2")
        region_name: AWS region (optional for global services)
        profile_name: AWS profile name (optional)
        call_timeout: Connect and read timeout in seconds

    Returns:
        boto3 client for the service
    """
    session = create_boto_session(profile_name)
    config = BotoConfig(
        connect_timeout=call_timeout,
        read_timeout=call_timeout,
    )
    logger.debug(f"Creating {service_name} client in {region_name or 'default region'}")
    return session.client(service_name, region_name=region_name, config=config)
