"""Tests for adapter error translation."""

from __future__ import annotations

from botocore.exceptions import ConnectTimeoutError, EndpointConnectionError

from stacksweep.adapters.errors import (
    AdapterError,
    ResourceNotFoundError,
    TransientAdapterError,
    translate_client_error,
    translate_exception,
)
from tests.fixtures.adapters import client_error


class TestTranslateClientError:
    """Test suite for ClientError translation."""

    def test_not_found_codes(self) -> None:
        error = translate_client_error(client_error("NoSuchBucket", "bucket gone"), "delete bucket b")

        assert isinstance(error, ResourceNotFoundError)
        assert error.code == "NoSuchBucket"
        assert error.message == "delete bucket b: bucket gone"

    def test_ec2_not_found_suffix(self) -> None:
        """Test any EC2 '*.NotFound' code is treated as already gone."""
        error = translate_client_error(client_error("InvalidNetworkInterfaceID.NotFound"))
        assert isinstance(error, ResourceNotFoundError)

    def test_throttling_is_transient(self) -> None:
        error = translate_client_error(client_error("RequestLimitExceeded"))
        assert isinstance(error, TransientAdapterError)

    def test_other_codes_are_plain_failures(self) -> None:
        error = translate_client_error(client_error("DependencyViolation", "in use"))

        assert type(error) is AdapterError
        assert str(error) == "DependencyViolation: in use"


class TestTranslateException:
    """Test suite for generic exception translation."""

    def test_adapter_errors_pass_through(self) -> None:
        original = AdapterError("X", "y")
        assert translate_exception(original) is original

    def test_timeouts_are_transient(self) -> None:
        error = translate_exception(ConnectTimeoutError(endpoint_url="https://ec2.us-east-1.amazonaws.com"))

        assert isinstance(error, TransientAdapterError)
        assert error.code == "Timeout"

    def test_endpoint_errors_are_transient(self) -> None:
        error = translate_exception(EndpointConnectionError(endpoint_url="https://ec2.nowhere.amazonaws.com"))
        assert isinstance(error, TransientAdapterError)

    def test_unknown_exception_keeps_type_name(self) -> None:
        error = translate_exception(KeyError("LoadBalancerArn"), "list load-balancer in us-east-1")

        assert error.code == "KeyError"
        assert error.message.startswith("list load-balancer in us-east-1: ")
