"""Resolution steps shared by the self-managed node group variants."""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Union

import pulumi
import pulumi_aws as aws

from nodegroups.components.ami import resolve_ami_id
from nodegroups.components.security_group import (
    SecurityGroupPair,
    node_security_group_id,
    resolve_security_group,
)
from nodegroups.components.subnets import resolve_worker_subnet_ids
from nodegroups.components.userdata import bootstrap_extra_args, kubelet_extra_args
from nodegroups.core import ClusterCore, cluster_attr, fleet_dependencies
from nodegroups.models import NodeGroupOptions
from nodegroups.validation import resolve_instance_profile_arn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityDefaults:
    desired_capacity: int
    min_size: int
    max_size: int


# Independent of the managed node group defaults.
SELF_MANAGED_CAPACITY_DEFAULTS = CapacityDefaults(desired_capacity=2, min_size=1, max_size=2)


@dataclass(frozen=True)
class Capacity:
    desired_capacity: int
    min_size: int
    max_size: int
    min_instances_in_service: int


def resolve_capacity(
    options: NodeGroupOptions,
    defaults: CapacityDefaults = SELF_MANAGED_CAPACITY_DEFAULTS,
) -> Capacity:
    """Fill unset bounds; spot fleets may drop to zero instances during a rolling update."""
    return Capacity(
        desired_capacity=(
            options.desired_capacity
            if options.desired_capacity is not None
            else defaults.desired_capacity
        ),
        min_size=options.min_size if options.min_size is not None else defaults.min_size,
        max_size=options.max_size if options.max_size is not None else defaults.max_size,
        min_instances_in_service=0 if options.spot_price else 1,
    )


def worker_asg_tags(
    cluster_name: str,
    tags: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Tags every worker autoscaling group carries; user tags win."""
    return {
        "Name": f"{cluster_name}-worker",
        f"kubernetes.io/cluster/{cluster_name}": "owned",
        **(tags or {}),
    }


def integral(value: Optional[Union[int, float]]) -> Optional[int]:
    return int(value) if value is not None else None


@dataclass(frozen=True)
class SelfManagedFleet:
    """Everything a self-managed provisioner needs before it creates the fleet."""

    security_group: SecurityGroupPair
    security_group_ids: list[pulumi.Input[str]]
    instance_profile_arn: pulumi.Output[str]
    key_name: Optional[pulumi.Input[str]]
    ami_id: pulumi.Output[str]
    bootstrap_args: str
    subnet_ids: pulumi.Output[list[str]]
    capacity: Capacity
    dependencies: pulumi.Output[list[pulumi.Resource]]
    invoke_opts: pulumi.InvokeOptions


def prepare_fleet(
    name: str,
    options: NodeGroupOptions,
    core: pulumi.Output[ClusterCore],
    parent: pulumi.Resource,
    provider: Optional[aws.Provider] = None,
) -> SelfManagedFleet:
    invoke_opts = pulumi.InvokeOptions(parent=parent, provider=provider)

    instance_profile_arn = cluster_attr(core, "instance_profile_arn").apply(
        lambda default_arn: resolve_instance_profile_arn(options, default_arn)
    )

    security_group = resolve_security_group(name, options, core, parent, provider)
    security_group_ids: list[pulumi.Input[str]] = [
        node_security_group_id(security_group, options, core),
        *[sg.id for sg in options.extra_node_security_groups],
    ]

    key_name = options.key_name
    if options.node_public_key:
        logger.info("Creating key pair for node group %s", name)
        key = aws.ec2.KeyPair(
            f"{name}-keyPair",
            public_key=options.node_public_key,
            opts=pulumi.ResourceOptions(parent=parent, provider=provider),
        )
        key_name = key.key_name

    version = options.version or cluster_attr(core, "version")
    ami_id = resolve_ami_id(options, version, invoke_opts)

    bootstrap_args = bootstrap_extra_args(
        options.bootstrap_extra_args,
        kubelet_extra_args(options.kubelet_extra_args, options.labels, options.taints),
    )

    return SelfManagedFleet(
        security_group=security_group,
        security_group_ids=security_group_ids,
        instance_profile_arn=instance_profile_arn,
        key_name=key_name,
        ami_id=ami_id,
        bootstrap_args=bootstrap_args,
        subnet_ids=resolve_worker_subnet_ids(options.node_subnet_ids, core, invoke_opts),
        capacity=resolve_capacity(options),
        dependencies=fleet_dependencies(core),
        invoke_opts=invoke_opts,
    )
