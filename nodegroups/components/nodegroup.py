"""Self-managed node group backed by a launch configuration and a CloudFormation ASG.

See https://docs.aws.amazon.com/eks/latest/userguide/worker.html
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import pulumi
import pulumi_aws as aws

from nodegroups.components.fleet import (
    Capacity,
    integral,
    prepare_fleet,
    worker_asg_tags,
)
from nodegroups.components.userdata import build_user_data
from nodegroups.core import ClusterInput, cluster_attr, resolve_cluster_core
from nodegroups.errors import MalformedStackOutputError
from nodegroups.models import NodeGroupOptions
from nodegroups.validation import validate_node_group_options

STACK_OUTPUT_KEY = "NodeGroup"


@dataclass(frozen=True)
class NodeGroupData:
    """Resources created for a legacy node group."""

    node_security_group: aws.ec2.SecurityGroup
    cfn_stack: aws.cloudformation.Stack
    auto_scaling_group_name: pulumi.Output[str]
    extra_node_security_groups: list[aws.ec2.SecurityGroup] = field(default_factory=list)


def cfn_stack_name(name: str) -> str:
    """Stable, per-stack unique CloudFormation stack name for a node group."""
    digest = hashlib.sha1(
        f"{pulumi.get_project()}/{pulumi.get_stack()}/{name}".encode("utf-8")
    ).hexdigest()
    return f"{name}-{digest[:8]}"


def node_group_template(
    launch_configuration_name: str,
    capacity: Capacity,
    subnet_ids: Sequence[str],
    tags: Mapping[str, str],
) -> str:
    """CloudFormation template holding the worker autoscaling group."""
    template = {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Outputs": {
            STACK_OUTPUT_KEY: {"Value": {"Ref": "NodeGroup"}},
        },
        "Resources": {
            "NodeGroup": {
                "Type": "AWS::AutoScaling::AutoScalingGroup",
                "Properties": {
                    "DesiredCapacity": capacity.desired_capacity,
                    "LaunchConfigurationName": launch_configuration_name,
                    "MinSize": capacity.min_size,
                    "MaxSize": capacity.max_size,
                    "VPCZoneIdentifier": list(subnet_ids),
                    "Tags": [
                        {"Key": key, "Value": value, "PropagateAtLaunch": "true"}
                        for key, value in tags.items()
                    ],
                },
                "UpdatePolicy": {
                    "AutoScalingRollingUpdate": {
                        "MinInstancesInService": str(capacity.min_instances_in_service),
                        "MaxBatchSize": "1",
                    },
                },
            },
        },
    }
    return json.dumps(template, indent=2)


def stack_output(stack_name: str, outputs: Optional[Mapping[str, Any]], key: str) -> Any:
    if not outputs or key not in outputs:
        raise MalformedStackOutputError(stack_name, key)
    return outputs[key]


def create_node_group(
    name: str,
    cluster: ClusterInput,
    options: NodeGroupOptions,
    parent: pulumi.Resource,
    provider: Optional[aws.Provider] = None,
) -> NodeGroupData:
    """Create a self-managed node group using CloudFormation and an ASG."""
    validate_node_group_options(name, options)

    core = resolve_cluster_core(cluster)
    child_opts = pulumi.ResourceOptions(parent=parent, provider=provider)

    fleet = prepare_fleet(name, options, core, parent, provider)
    stack_name = cfn_stack_name(name)
    cluster_name = cluster_attr(core, "cluster_name")

    if options.node_user_data_override:
        user_data = options.node_user_data_override
    else:
        user_data = build_user_data(
            cluster_name=cluster_name,
            endpoint=cluster_attr(core, "endpoint"),
            certificate_authority_data=cluster_attr(core, "certificate_authority_data"),
            extra_args=fleet.bootstrap_args,
            custom_user_data=options.node_user_data,
            heredoc_marker=stack_name,
            signal_stack_name=stack_name,
            region=aws.get_region_output(opts=fleet.invoke_opts).name,
        )

    launch_configuration = aws.ec2.LaunchConfiguration(
        f"{name}-nodeLaunchConfiguration",
        associate_public_ip_address=options.node_associate_public_ip_address,
        image_id=fleet.ami_id,
        instance_type=options.instance_type,
        iam_instance_profile=fleet.instance_profile_arn,
        key_name=fleet.key_name,
        security_groups=fleet.security_group_ids,
        spot_price=options.spot_price,
        root_block_device=aws.ec2.LaunchConfigurationRootBlockDeviceArgs(
            encrypted=options.node_root_volume_encrypted,
            volume_size=options.node_root_volume_size,
            volume_type=options.node_root_volume_type.value,
            iops=integral(options.node_root_volume_iops),
            throughput=integral(options.node_root_volume_throughput),
            delete_on_termination=options.node_root_volume_delete_on_termination,
        ),
        user_data=user_data,
        opts=child_opts,
    )

    asg_tags = pulumi.Output.all(cluster_name, options.auto_scaling_group_tags).apply(
        lambda args: worker_asg_tags(args[0], args[1])
    )

    template_body = pulumi.Output.all(
        launch_configuration.name,
        fleet.subnet_ids,
        asg_tags,
    ).apply(lambda args: node_group_template(args[0], fleet.capacity, args[1], args[2]))

    cfn_stack = aws.cloudformation.Stack(
        f"{name}-nodes",
        name=stack_name,
        template_body=template_body,
        tags=pulumi.Output.all(cluster_attr(core, "tags"), options.cloud_formation_tags).apply(
            lambda args: {
                "Name": f"{name}-nodes",
                **(args[1] or {}),
                **(args[0] or {}),
            }
        ),
        opts=pulumi.ResourceOptions(
            parent=parent,
            provider=provider,
            depends_on=fleet.dependencies,
        ),
    )

    auto_scaling_group_name = cfn_stack.outputs.apply(
        lambda outputs: stack_output(stack_name, outputs, STACK_OUTPUT_KEY)
    )

    return NodeGroupData(
        node_security_group=fleet.security_group.security_group,
        cfn_stack=cfn_stack,
        auto_scaling_group_name=auto_scaling_group_name,
        extra_node_security_groups=list(options.extra_node_security_groups),
    )


class NodeGroup(pulumi.ComponentResource):
    """Worker nodes for an EKS cluster, launched from a launch configuration."""

    def __init__(
        self,
        name: str,
        cluster: ClusterInput,
        options: NodeGroupOptions | None = None,
        provider: aws.Provider | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        options = options or NodeGroupOptions()
        validate_node_group_options(name, options)

        super().__init__("eks:nodegroups:NodeGroup", name, None, opts)

        group = create_node_group(name, cluster, options, parent=self, provider=provider)

        self.node_security_group = group.node_security_group
        self.extra_node_security_groups = group.extra_node_security_groups
        self.cfn_stack = group.cfn_stack
        self.auto_scaling_group_name = group.auto_scaling_group_name

        self.register_outputs(
            {
                "node_security_group_id": self.node_security_group.id,
                "cfn_stack_name": self.cfn_stack.name,
                "auto_scaling_group_name": self.auto_scaling_group_name,
            }
        )
