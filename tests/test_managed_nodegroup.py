import pulumi
import pytest

from conftest import NODE_ROLE_ARN, make_core
from nodegroups.components.managed_nodegroup import (
    ManagedNodeGroup,
    managed_scaling_config,
    managed_taints,
)
from nodegroups.errors import RoleNotAuthorizedError
from nodegroups.models import (
    CapacityType,
    ManagedNodeGroupOptions,
    ScalingConfig,
    Taint,
    TaintEffect,
)


def test_scaling_defaults():
    scaling = managed_scaling_config(None)

    assert (scaling.desired_size, scaling.min_size, scaling.max_size) == (2, 1, 2)


def test_scaling_partial_override():
    scaling = managed_scaling_config(ScalingConfig(max_size=10))

    assert (scaling.desired_size, scaling.min_size, scaling.max_size) == (2, 1, 10)


def test_taints_use_eks_effect_names():
    taints = managed_taints(
        {
            "dedicated": Taint(value="gpu", effect=TaintEffect.NO_SCHEDULE),
            "spot": Taint(value="true", effect=TaintEffect.PREFER_NO_SCHEDULE),
        }
    )

    assert [(t.key, t.value, t.effect) for t in taints] == [
        ("dedicated", "gpu", "NO_SCHEDULE"),
        ("spot", "true", "PREFER_NO_SCHEDULE"),
    ]


def test_no_taints():
    assert managed_taints(None) is None
    assert managed_taints({}) is None


@pulumi.runtime.test
def test_managed_node_group():
    group = ManagedNodeGroup(
        "managed-workers",
        make_core(subnet_ids=["subnet-a", "subnet-b"]),
        ManagedNodeGroupOptions(
            node_role_arn=NODE_ROLE_ARN,
            capacity_type=CapacityType.SPOT,
            instance_types=["t3.large"],
            labels={"role": "worker"},
        ),
    )
    node_group = group.node_group

    def check(args):
        cluster_name, role_arn, subnets, capacity_type, scaling = args
        assert cluster_name == "test-cluster"
        assert role_arn == NODE_ROLE_ARN
        assert subnets == ["subnet-a", "subnet-b"]
        assert capacity_type == "SPOT"
        assert (scaling["desired_size"], scaling["min_size"], scaling["max_size"]) == (2, 1, 2)

    return pulumi.Output.all(
        node_group.cluster_name,
        node_group.node_role_arn,
        node_group.subnet_ids,
        node_group.capacity_type,
        node_group.scaling_config,
    ).apply(check)


@pulumi.runtime.test
def test_explicit_cluster_name_wins():
    group = ManagedNodeGroup(
        "named-workers",
        make_core(),
        ManagedNodeGroupOptions(node_role_arn=NODE_ROLE_ARN, cluster_name="other-cluster"),
    )

    def check(cluster_name):
        assert cluster_name == "other-cluster"

    return group.node_group.cluster_name.apply(check)


def test_unregistered_role_fails_the_node_group():
    @pulumi.runtime.test
    def create():
        group = ManagedNodeGroup(
            "unregistered-workers",
            make_core(),
            ManagedNodeGroupOptions(node_role_arn="arn:aws:iam::123456789012:role/other"),
        )
        return group.node_group.node_role_arn

    with pytest.raises(RoleNotAuthorizedError) as exc_info:
        create()

    assert exc_info.value.role_arn == "arn:aws:iam::123456789012:role/other"
