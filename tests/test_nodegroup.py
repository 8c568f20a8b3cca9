import json

import pulumi
import pytest

from conftest import AMI_ID, make_core
from nodegroups.components.fleet import resolve_capacity
from nodegroups.components.nodegroup import (
    NodeGroup,
    cfn_stack_name,
    node_group_template,
    stack_output,
)
from nodegroups.errors import ConfigurationConflictError, MalformedStackOutputError
from nodegroups.models import NodeGroupOptions


def test_spot_capacity_defaults():
    capacity = resolve_capacity(NodeGroupOptions(spot_price="0.05"))

    assert capacity.desired_capacity == 2
    assert capacity.min_size == 1
    assert capacity.max_size == 2
    assert capacity.min_instances_in_service == 0


def test_on_demand_keeps_one_instance_in_service():
    capacity = resolve_capacity(NodeGroupOptions(desired_capacity=3, min_size=0, max_size=5))

    assert (capacity.desired_capacity, capacity.min_size, capacity.max_size) == (3, 0, 5)
    assert capacity.min_instances_in_service == 1


def test_spot_template():
    capacity = resolve_capacity(NodeGroupOptions(spot_price="0.05"))

    template = json.loads(
        node_group_template(
            "workers-lc",
            capacity,
            ["subnet-a", "subnet-b"],
            {"Name": "demo-worker", "kubernetes.io/cluster/demo": "owned"},
        )
    )

    group = template["Resources"]["NodeGroup"]
    assert group["Type"] == "AWS::AutoScaling::AutoScalingGroup"
    assert group["Properties"]["MinSize"] == 1
    assert group["Properties"]["MaxSize"] == 2
    assert group["Properties"]["DesiredCapacity"] == 2
    assert group["Properties"]["LaunchConfigurationName"] == "workers-lc"
    assert group["Properties"]["VPCZoneIdentifier"] == ["subnet-a", "subnet-b"]
    assert {"Key": "Name", "Value": "demo-worker", "PropagateAtLaunch": "true"} in group[
        "Properties"
    ]["Tags"]
    assert group["UpdatePolicy"]["AutoScalingRollingUpdate"] == {
        "MinInstancesInService": "0",
        "MaxBatchSize": "1",
    }
    assert template["Outputs"]["NodeGroup"] == {"Value": {"Ref": "NodeGroup"}}


def test_stack_output_present():
    assert stack_output("stack", {"NodeGroup": "asg-1"}, "NodeGroup") == "asg-1"


@pytest.mark.parametrize("outputs", [None, {}, {"Other": "x"}])
def test_stack_output_missing(outputs):
    with pytest.raises(MalformedStackOutputError) as exc_info:
        stack_output("workers-1234", outputs, "NodeGroup")

    assert "Stack output key 'NodeGroup' does not exist" in str(exc_info.value)


def test_cfn_stack_name_is_stable():
    assert cfn_stack_name("workers") == cfn_stack_name("workers")
    assert cfn_stack_name("workers") != cfn_stack_name("batch")
    assert cfn_stack_name("workers").startswith("workers-")


def test_override_with_labels_fails_before_any_resource():
    options = NodeGroupOptions(
        node_user_data_override="#!/bin/bash\n/etc/eks/bootstrap.sh demo\n",
        labels={"role": "worker"},
    )

    with pytest.raises(ConfigurationConflictError):
        NodeGroup("workers", make_core(), options)


@pulumi.runtime.test
def test_spot_node_group():
    group = NodeGroup(
        "spot-workers",
        make_core(),
        NodeGroupOptions(spot_price="0.05", ami_id=AMI_ID, auto_scaling_group_tags={"team": "a"}),
    )

    def check(args):
        template_body, asg_name, stack_name = args
        template = json.loads(template_body)
        props = template["Resources"]["NodeGroup"]["Properties"]
        assert props["VPCZoneIdentifier"] == ["subnet-private-a", "subnet-private-b"]
        assert props["LaunchConfigurationName"] == "spot-workers-nodeLaunchConfiguration"
        assert {"Key": "team", "Value": "a", "PropagateAtLaunch": "true"} in props["Tags"]
        assert (
            template["Resources"]["NodeGroup"]["UpdatePolicy"]["AutoScalingRollingUpdate"][
                "MinInstancesInService"
            ]
            == "0"
        )
        assert asg_name == "spot-workers-nodes-asg"
        assert stack_name == cfn_stack_name("spot-workers")

    return pulumi.Output.all(
        group.cfn_stack.template_body,
        group.auto_scaling_group_name,
        group.cfn_stack.name,
    ).apply(check)


@pulumi.runtime.test
def test_node_group_cfn_stack_tags():
    group = NodeGroup(
        "tagged-workers",
        make_core(tags={"owner": "platform"}),
        NodeGroupOptions(ami_id=AMI_ID, cloud_formation_tags={"owner": "me", "cost": "42"}),
    )

    def check(tags):
        assert tags == {"Name": "tagged-workers-nodes", "owner": "platform", "cost": "42"}

    return group.cfn_stack.tags.apply(check)
