"""Self-managed node group backed by a launch template and an ASG with instance refresh."""

from dataclasses import dataclass, field
from typing import Mapping, Optional

import pulumi
import pulumi_aws as aws

from nodegroups.components.ami import root_device_name
from nodegroups.components.fleet import integral, prepare_fleet, worker_asg_tags
from nodegroups.components.userdata import build_user_data, encode_user_data
from nodegroups.core import ClusterInput, cluster_attr, resolve_cluster_core
from nodegroups.models import NodeGroupV2Options
from nodegroups.validation import validate_node_group_options


@dataclass(frozen=True)
class NodeGroupV2Data:
    """Resources created for a launch template node group."""

    node_security_group: aws.ec2.SecurityGroup
    launch_template: aws.ec2.LaunchTemplate
    auto_scaling_group: aws.autoscaling.Group
    extra_node_security_groups: list[aws.ec2.SecurityGroup] = field(default_factory=list)


def asg_tag_list(
    cluster_name: str,
    tags: Optional[Mapping[str, str]] = None,
) -> list[aws.autoscaling.GroupTagArgs]:
    return [
        aws.autoscaling.GroupTagArgs(key=key, value=value, propagate_at_launch=True)
        for key, value in worker_asg_tags(cluster_name, tags).items()
    ]


def _flag(value: bool) -> str:
    return "true" if value else "false"


def create_node_group_v2(
    name: str,
    cluster: ClusterInput,
    options: NodeGroupV2Options,
    parent: pulumi.Resource,
    provider: Optional[aws.Provider] = None,
) -> NodeGroupV2Data:
    """Create a self-managed node group using a launch template and an ASG."""
    validate_node_group_options(name, options)

    core = resolve_cluster_core(cluster)
    fleet = prepare_fleet(name, options, core, parent, provider)
    cluster_name = cluster_attr(core, "cluster_name")

    if options.node_user_data_override:
        user_data = pulumi.Output.from_input(options.node_user_data_override)
    else:
        user_data = build_user_data(
            cluster_name=cluster_name,
            endpoint=cluster_attr(core, "endpoint"),
            certificate_authority_data=cluster_attr(core, "certificate_authority_data"),
            extra_args=fleet.bootstrap_args,
            custom_user_data=options.node_user_data,
            heredoc_marker=name,
        )

    instance_market_options = None
    if options.spot_price:
        instance_market_options = aws.ec2.LaunchTemplateInstanceMarketOptionsArgs(
            market_type="spot",
            spot_options=aws.ec2.LaunchTemplateInstanceMarketOptionsSpotOptionsArgs(
                max_price=options.spot_price,
            ),
        )

    launch_template = aws.ec2.LaunchTemplate(
        f"{name}-launchTemplate",
        image_id=fleet.ami_id,
        instance_type=options.instance_type,
        iam_instance_profile=aws.ec2.LaunchTemplateIamInstanceProfileArgs(
            arn=fleet.instance_profile_arn,
        ),
        key_name=fleet.key_name,
        instance_market_options=instance_market_options,
        block_device_mappings=[
            aws.ec2.LaunchTemplateBlockDeviceMappingArgs(
                device_name=root_device_name(fleet.ami_id, fleet.invoke_opts),
                ebs=aws.ec2.LaunchTemplateBlockDeviceMappingEbsArgs(
                    encrypted=_flag(options.node_root_volume_encrypted),
                    volume_size=options.node_root_volume_size,
                    volume_type=options.node_root_volume_type.value,
                    iops=integral(options.node_root_volume_iops),
                    throughput=integral(options.node_root_volume_throughput),
                    delete_on_termination=_flag(options.node_root_volume_delete_on_termination),
                ),
            ),
        ],
        network_interfaces=[
            aws.ec2.LaunchTemplateNetworkInterfaceArgs(
                associate_public_ip_address=_flag(options.node_associate_public_ip_address),
                security_groups=fleet.security_group_ids,
            ),
        ],
        user_data=user_data.apply(encode_user_data),
        tag_specifications=options.launch_template_tag_specifications,
        opts=pulumi.ResourceOptions(parent=parent, provider=provider),
    )

    auto_scaling_group = aws.autoscaling.Group(
        name,
        name=name,
        min_size=fleet.capacity.min_size,
        max_size=fleet.capacity.max_size,
        desired_capacity=fleet.capacity.desired_capacity,
        launch_template=aws.autoscaling.GroupLaunchTemplateArgs(
            name=launch_template.name,
            version=launch_template.latest_version.apply(str),
        ),
        vpc_zone_identifiers=fleet.subnet_ids,
        instance_refresh=aws.autoscaling.GroupInstanceRefreshArgs(
            strategy="Rolling",
            preferences=aws.autoscaling.GroupInstanceRefreshPreferencesArgs(
                min_healthy_percentage=options.min_refresh_percentage,
            ),
        ),
        tags=pulumi.Output.all(cluster_name, options.auto_scaling_group_tags).apply(
            lambda args: asg_tag_list(args[0], args[1])
        ),
        opts=pulumi.ResourceOptions(
            parent=parent,
            provider=provider,
            depends_on=fleet.dependencies,
        ),
    )

    return NodeGroupV2Data(
        node_security_group=fleet.security_group.security_group,
        launch_template=launch_template,
        auto_scaling_group=auto_scaling_group,
        extra_node_security_groups=list(options.extra_node_security_groups),
    )


class NodeGroupV2(pulumi.ComponentResource):
    """Worker nodes for an EKS cluster, rolled by instance refresh when the launch template changes."""

    def __init__(
        self,
        name: str,
        cluster: ClusterInput,
        options: NodeGroupV2Options | None = None,
        provider: aws.Provider | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        options = options or NodeGroupV2Options()
        validate_node_group_options(name, options)

        super().__init__("eks:nodegroups:NodeGroupV2", name, None, opts)

        group = create_node_group_v2(name, cluster, options, parent=self, provider=provider)

        self.node_security_group = group.node_security_group
        self.extra_node_security_groups = group.extra_node_security_groups
        self.launch_template = group.launch_template
        self.auto_scaling_group = group.auto_scaling_group

        self.register_outputs(
            {
                "node_security_group_id": self.node_security_group.id,
                "launch_template_id": self.launch_template.id,
                "auto_scaling_group_name": self.auto_scaling_group.name,
            }
        )
