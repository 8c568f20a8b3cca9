"""Checks applied to node group options before any resource is created."""

from typing import Mapping, Optional, Sequence, Union

import pulumi
import pulumi_aws as aws

from nodegroups.errors import (
    ConfigurationConflictError,
    MissingPrerequisiteError,
    RoleNotAuthorizedError,
)
from nodegroups.models import (
    ManagedNodeGroupOptions,
    NodeGroupOptions,
    VolumeType,
)


def _is_integral(value: Union[int, float]) -> bool:
    """Positive whole number; zero counts as not provided."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    return value > 0 and float(value).is_integer()


def validate_root_volume(options: NodeGroupOptions) -> None:
    """Provisioned IOPS pair with io1 and provisioned throughput with gp3, as integers."""
    volume_type = options.node_root_volume_type
    iops = options.node_root_volume_iops
    throughput = options.node_root_volume_throughput

    if iops is not None and volume_type != VolumeType.IO1:
        raise ConfigurationConflictError(
            ["node_root_volume_iops", "node_root_volume_type"],
            "Cannot create a cluster node root volume of non-io1 type with provisioned IOPS.",
        )
    if volume_type == VolumeType.IO1 and (iops is None or not _is_integral(iops)):
        raise ConfigurationConflictError(
            ["node_root_volume_iops", "node_root_volume_type"],
            "Cannot create a cluster node root volume of io1 type without provisioned IOPS as integer value.",
        )

    if throughput is not None and volume_type != VolumeType.GP3:
        raise ConfigurationConflictError(
            ["node_root_volume_throughput", "node_root_volume_type"],
            "Cannot create a cluster node root volume of non-gp3 type with provisioned throughput.",
        )
    if volume_type == VolumeType.GP3 and (throughput is None or not _is_integral(throughput)):
        raise ConfigurationConflictError(
            ["node_root_volume_throughput", "node_root_volume_type"],
            "Cannot create a cluster node root volume of gp3 type without provisioned throughput as integer value.",
        )


def validate_node_group_options(name: str, options: NodeGroupOptions) -> None:
    """Fail fast on option combinations that can never produce a working node group."""
    if options.node_public_key and options.key_name:
        raise ConfigurationConflictError(
            ["node_public_key", "key_name"],
            "mutually exclusive. Choose a single approach",
        )

    if options.ami_id and options.gpu:
        raise ConfigurationConflictError(["ami_id", "gpu"], "mutually exclusive")

    if options.node_user_data_override:
        given = [
            field
            for field in (
                "node_user_data",
                "labels",
                "taints",
                "kubelet_extra_args",
                "bootstrap_extra_args",
            )
            if getattr(options, field)
        ]
        if given:
            raise ConfigurationConflictError(
                ["node_user_data_override", *given],
                "a user data override must perform the whole bootstrap and cannot be combined "
                "with generated user data settings",
            )

    if options.node_security_group is not None and options.cluster_ingress_rule is None:
        raise MissingPrerequisiteError(
            ["cluster_ingress_rule"],
            f"invalid args for node group {name}, cluster_ingress_rule is required "
            "when node_security_group is manually specified",
        )

    validate_root_volume(options)


def instance_profile_arn(
    profile: Optional[Union[aws.iam.InstanceProfile, pulumi.Input[str]]],
) -> Optional[pulumi.Input[str]]:
    if isinstance(profile, aws.iam.InstanceProfile):
        return profile.arn
    return profile


def resolve_instance_profile_arn(
    options: NodeGroupOptions,
    default_arn: Optional[str],
) -> pulumi.Input[str]:
    """The node group's own instance profile wins over the cluster default."""
    arn = instance_profile_arn(options.instance_profile)
    if arn is not None:
        return arn
    if default_arn:
        return default_arn
    raise MissingPrerequisiteError(["instance_profile"], "an instance_profile is required")


def check_security_group_tags(
    node_security_group_id: Optional[str],
    cluster_node_security_group_id: Optional[str],
    node_security_group_tags: Optional[Mapping[str, str]],
) -> None:
    """A node group's own security group cannot be combined with cluster-level tagging of it."""
    if node_security_group_id is None or not node_security_group_tags:
        return
    if node_security_group_id != cluster_node_security_group_id:
        raise ConfigurationConflictError(
            ["node_security_group", "node_security_group_tags"],
            "The NodeGroup's node_security_group and the cluster option node_security_group_tags "
            "are mutually exclusive. Choose a single approach",
        )


def validate_managed_node_group_options(name: str, options: ManagedNodeGroupOptions) -> None:
    if options.node_role is None and not options.node_role_arn:
        raise MissingPrerequisiteError(
            ["node_role", "node_role_arn"],
            f"An IAM role, or role ARN must be provided to create managed node group {name}",
        )
    if options.node_role is not None and options.node_role_arn:
        raise ConfigurationConflictError(
            ["node_role", "node_role_arn"],
            "mutually exclusive to create a managed node group",
        )


def check_role_authorized(role_arn: str, instance_role_arns: Sequence[str]) -> str:
    """Return role_arn if the cluster's identity mapping already authorizes it."""
    if role_arn not in instance_role_arns:
        raise RoleNotAuthorizedError(role_arn)
    return role_arn
