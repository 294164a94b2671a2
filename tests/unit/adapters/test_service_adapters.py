"""Tests for load balancing, compute, WAF, IAM and S3 adapters."""

from __future__ import annotations

from unittest.mock import Mock, call

import pytest
from botocore.exceptions import WaiterError

from stacksweep.adapters.compute import ContainerServiceAdapter, InstanceAdapter
from stacksweep.adapters.errors import ResourceNotFoundError, TransientAdapterError
from stacksweep.adapters.identity import IamRoleAdapter
from stacksweep.adapters.load_balancing import LoadBalancerAdapter, TargetGroupAdapter
from stacksweep.adapters.security import WebAclAdapter
from stacksweep.adapters.storage import BucketAdapter, bucket_region
from stacksweep.models.identity import DeploymentIdentity
from stacksweep.models.resource import ResourceInstance, ResourceKind
from tests.fixtures.adapters import client_error, mock_client_factory

IDENTITY = DeploymentIdentity("CdkExpress02")
REGION = "ap-northeast-1"


class TestLoadBalancingAdapters:
    """Test suite for LoadBalancerAdapter and TargetGroupAdapter."""

    def test_load_balancer_list(self) -> None:
        client = Mock()
        arn = "arn:aws:elasticloadbalancing:ap-northeast-1:123456789012:loadbalancer/app/CdkExpress02-alb/1"
        factory = mock_client_factory(
            client,
            describe_load_balancers=[
                {
                    "LoadBalancers": [
                        {
                            "LoadBalancerArn": arn,
                            "LoadBalancerName": "CdkExpress02-alb",
                            "VpcId": "vpc-1",
                            "SecurityGroups": ["sg-1"],
                            "AvailabilityZones": [{"SubnetId": "subnet-1"}, {"SubnetId": "subnet-2"}],
                        }
                    ]
                }
            ],
        )

        listed = LoadBalancerAdapter(client_factory=factory).list(IDENTITY, REGION)

        assert listed[0].resource_id == arn
        assert listed[0].attributes == {"security_group_ids": ["sg-1"], "subnet_ids": ["subnet-1", "subnet-2"]}

    def test_target_group_records_load_balancers(self) -> None:
        client = Mock()
        factory = mock_client_factory(
            client,
            describe_target_groups=[
                {
                    "TargetGroups": [
                        {
                            "TargetGroupArn": "arn:tg/CdkExpress02-tg/1",
                            "TargetGroupName": "CdkExpress02-tg",
                            "VpcId": "vpc-1",
                            "LoadBalancerArns": ["arn:lb"],
                        }
                    ]
                }
            ],
        )
        adapter = TargetGroupAdapter(client_factory=factory)

        listed = adapter.list(IDENTITY, REGION)
        adapter.delete(listed[0])

        assert listed[0].attributes["load_balancer_arns"] == ["arn:lb"]
        client.delete_target_group.assert_called_once_with(TargetGroupArn="arn:tg/CdkExpress02-tg/1")

    def test_missing_load_balancer_is_not_found(self) -> None:
        client = Mock()
        client.delete_load_balancer.side_effect = client_error("LoadBalancerNotFound")
        adapter = LoadBalancerAdapter(client_factory=mock_client_factory(client))
        instance = ResourceInstance(kind=ResourceKind.LOAD_BALANCER, resource_id="arn:lb", name="CdkExpress02-alb",
                                    region=REGION)

        with pytest.raises(ResourceNotFoundError) as exc_info:
            adapter.delete(instance)

        assert exc_info.value.code == "LoadBalancerNotFound"


class TestComputeAdapters:
    """Test suite for InstanceAdapter and ContainerServiceAdapter."""

    def test_instance_list_uses_name_tag(self) -> None:
        client = Mock()
        factory = mock_client_factory(
            client,
            describe_instances=[
                {
                    "Reservations": [
                        {
                            "Instances": [
                                {
                                    "InstanceId": "i-1",
                                    "VpcId": "vpc-1",
                                    "SubnetId": "subnet-1",
                                    "SecurityGroups": [{"GroupId": "sg-app"}],
                                    "Tags": [{"Key": "Name", "Value": "CdkExpress02-app"}],
                                },
                                {"InstanceId": "i-2", "Tags": [{"Key": "Name", "Value": "someone-else"}]},
                            ]
                        }
                    ]
                }
            ],
        )

        listed = InstanceAdapter(client_factory=factory).list(IDENTITY, REGION)

        assert [i.resource_id for i in listed] == ["i-1"]
        assert listed[0].attributes == {"subnet_ids": ["subnet-1"], "security_group_ids": ["sg-app"]}

    def test_instance_delete_waits_for_termination(self) -> None:
        client = Mock()
        adapter = InstanceAdapter(client_factory=mock_client_factory(client), call_timeout=20)
        instance = ResourceInstance(kind=ResourceKind.INSTANCE, resource_id="i-1", name="CdkExpress02-app",
                                    region=REGION)

        adapter.delete(instance)

        client.terminate_instances.assert_called_once_with(InstanceIds=["i-1"])
        client.get_waiter.return_value.wait.assert_called_once_with(
            InstanceIds=["i-1"], WaiterConfig={"Delay": 5, "MaxAttempts": 4}
        )

    def test_instance_still_shutting_down_is_transient(self) -> None:
        client = Mock()
        client.get_waiter.return_value.wait.side_effect = WaiterError(
            name="InstanceTerminated", reason="Max attempts exceeded", last_response={}
        )
        adapter = InstanceAdapter(client_factory=mock_client_factory(client))
        instance = ResourceInstance(kind=ResourceKind.INSTANCE, resource_id="i-1", name="CdkExpress02-app",
                                    region=REGION)

        with pytest.raises(TransientAdapterError) as exc_info:
            adapter.delete(instance)

        assert exc_info.value.code == "TerminationPending"

    def test_container_service_list_and_delete(self) -> None:
        client = Mock()
        client.describe_services.return_value = {
            "services": [
                {
                    "serviceArn": "arn:ecs:service/CdkExpress02-web",
                    "serviceName": "CdkExpress02-web",
                    "status": "ACTIVE",
                    "networkConfiguration": {
                        "awsvpcConfiguration": {"subnets": ["subnet-1"], "securityGroups": ["sg-1"]}
                    },
                },
                {"serviceArn": "arn:ecs:service/CdkExpress02-old", "serviceName": "CdkExpress02-old",
                 "status": "INACTIVE"},
            ]
        }
        factory = mock_client_factory(
            client,
            list_clusters=[{"clusterArns": ["arn:ecs:cluster/main"]}],
            list_services=[{"serviceArns": ["arn:ecs:service/CdkExpress02-web", "arn:ecs:service/CdkExpress02-old"]}],
        )
        adapter = ContainerServiceAdapter(client_factory=factory)

        listed = adapter.list(IDENTITY, REGION)
        assert [s.name for s in listed] == ["CdkExpress02-web"]
        assert listed[0].attributes["cluster_arn"] == "arn:ecs:cluster/main"

        adapter.delete(listed[0])

        client.update_service.assert_called_once_with(
            cluster="arn:ecs:cluster/main", service="arn:ecs:service/CdkExpress02-web", desiredCount=0
        )
        client.delete_service.assert_called_once_with(
            cluster="arn:ecs:cluster/main", service="arn:ecs:service/CdkExpress02-web", force=True
        )


class TestWebAclAdapter:
    """Test suite for WebAclAdapter."""

    def test_cloudfront_scope_only_in_us_east_1(self) -> None:
        adapter = WebAclAdapter()

        assert adapter.scopes("us-east-1") == ["REGIONAL", "CLOUDFRONT"]
        assert adapter.scopes(REGION) == ["REGIONAL"]

    def test_list_records_scope(self) -> None:
        client = Mock()
        client.list_web_acls.side_effect = lambda **kwargs: {
            "WebACLs": [
                {
                    "Id": f"{kwargs['Scope'].lower()}-1",
                    "Name": f"CdkExpress02-{kwargs['Scope'].lower()}-waf",
                    "ARN": f"arn:waf/{kwargs['Scope']}",
                }
            ]
        }

        listed = WebAclAdapter(client_factory=mock_client_factory(client)).list(IDENTITY, "us-east-1")

        assert [(acl.resource_id, acl.attributes["scope"]) for acl in listed] == [
            ("regional-1", "REGIONAL"),
            ("cloudfront-1", "CLOUDFRONT"),
        ]

    def test_delete_regional_disassociates_first(self) -> None:
        client = Mock()
        client.list_resources_for_web_acl.side_effect = [{"ResourceArns": ["arn:lb"]}, {"ResourceArns": []}]
        client.get_web_acl.return_value = {"LockToken": "tok"}
        adapter = WebAclAdapter(client_factory=mock_client_factory(client))
        instance = ResourceInstance(
            kind=ResourceKind.WEB_ACL,
            resource_id="acl-1",
            name="CdkExpress02-waf",
            region=REGION,
            arn="arn:waf/acl-1",
            attributes={"scope": "REGIONAL"},
        )

        adapter.delete(instance)

        client.disassociate_web_acl.assert_called_once_with(ResourceArn="arn:lb")
        client.delete_web_acl.assert_called_once_with(
            Name="CdkExpress02-waf", Scope="REGIONAL", Id="acl-1", LockToken="tok"
        )


class TestIamRoleAdapter:
    """Test suite for IamRoleAdapter."""

    def test_list_skips_service_linked_roles(self) -> None:
        client = Mock()
        factory = mock_client_factory(
            client,
            list_roles=[
                {
                    "Roles": [
                        {
                            "RoleName": "CdkExpress02-ec2-role",
                            "Path": "/",
                            "Arn": "arn:iam::role/CdkExpress02-ec2-role",
                        },
                        {"RoleName": "CdkExpress02-svc", "Path": "/aws-service-role/elasticloadbalancing/"},
                    ]
                }
            ],
        )

        listed = IamRoleAdapter(client_factory=factory).list(IDENTITY, REGION)

        assert [r.resource_id for r in listed] == ["CdkExpress02-ec2-role"]

    def test_delete_strips_policies_and_profiles(self) -> None:
        client = Mock()
        factory = mock_client_factory(
            client,
            list_attached_role_policies=[{"AttachedPolicies": [{"PolicyArn": "arn:policy/ssm"}]}],
            list_role_policies=[{"PolicyNames": ["inline"]}],
            list_instance_profiles_for_role=[{"InstanceProfiles": [{"InstanceProfileName": "CdkExpress02-profile"}]}],
        )
        adapter = IamRoleAdapter(client_factory=factory)
        role = ResourceInstance(kind=ResourceKind.IAM_ROLE, resource_id="CdkExpress02-ec2-role",
                                name="CdkExpress02-ec2-role", region=REGION)

        adapter.delete(role)

        calls = [c for c in client.method_calls if c[0] != "get_paginator"]
        assert calls == [
            call.detach_role_policy(RoleName="CdkExpress02-ec2-role", PolicyArn="arn:policy/ssm"),
            call.delete_role_policy(RoleName="CdkExpress02-ec2-role", PolicyName="inline"),
            call.remove_role_from_instance_profile(
                InstanceProfileName="CdkExpress02-profile", RoleName="CdkExpress02-ec2-role"
            ),
            call.delete_role(RoleName="CdkExpress02-ec2-role"),
        ]


class TestBucketAdapter:
    """Test suite for BucketAdapter."""

    @pytest.mark.parametrize(
        "constraint, region",
        [(None, "us-east-1"), ("", "us-east-1"), ("EU", "eu-west-1"), ("ap-northeast-1", "ap-northeast-1")],
    )
    def test_bucket_region(self, constraint, region: str) -> None:
        assert bucket_region(constraint) == region

    def test_list_only_locates_candidates(self) -> None:
        client = Mock()
        client.list_buckets.return_value = {"Buckets": [{"Name": "cdkexpress02-assets"}, {"Name": "unrelated"}]}
        client.get_bucket_location.return_value = {"LocationConstraint": "ap-northeast-1"}

        listed = BucketAdapter(client_factory=mock_client_factory(client)).list(IDENTITY, "us-east-1")

        assert [b.resource_id for b in listed] == ["cdkexpress02-assets"]
        assert listed[0].attributes["bucket_region"] == "ap-northeast-1"
        client.get_bucket_location.assert_called_once_with(Bucket="cdkexpress02-assets")

    def test_delete_empties_versions_in_batches(self) -> None:
        """Test versions and delete markers are removed in batches of 1000 before the bucket."""
        client = Mock()
        versions = [{"Key": f"k{i}", "VersionId": f"v{i}"} for i in range(1200)]
        factory = mock_client_factory(
            client,
            list_object_versions=[
                {"Versions": versions[:1000]},
                {"Versions": versions[1000:], "DeleteMarkers": [{"Key": "gone", "VersionId": "dm1"}]},
            ],
        )
        client.delete_objects.return_value = {}
        adapter = BucketAdapter(client_factory=factory)
        bucket = ResourceInstance(
            kind=ResourceKind.BUCKET,
            resource_id="cdkexpress02-assets",
            name="cdkexpress02-assets",
            region="us-east-1",
            attributes={"bucket_region": "ap-northeast-1"},
        )

        adapter.delete(bucket)

        batches = [c.kwargs["Delete"]["Objects"] for c in client.delete_objects.call_args_list]
        assert [len(batch) for batch in batches] == [1000, 201]
        client.delete_bucket.assert_called_once_with(Bucket="cdkexpress02-assets")
        factory.assert_called_with(
            service_name="s3", region_name="ap-northeast-1", profile_name=None, call_timeout=30.0
        )

    def test_delete_missing_bucket(self) -> None:
        client = Mock()
        factory = mock_client_factory(client)
        client.delete_bucket.side_effect = client_error("NoSuchBucket")
        adapter = BucketAdapter(client_factory=factory)
        bucket = ResourceInstance(kind=ResourceKind.BUCKET, resource_id="cdkexpress02-assets",
                                  name="cdkexpress02-assets", region="us-east-1")

        with pytest.raises(ResourceNotFoundError) as exc_info:
            adapter.delete(bucket)

        assert exc_info.value.code == "NoSuchBucket"
