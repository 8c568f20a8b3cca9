"""EKS managed node group.

See https://docs.aws.amazon.com/eks/latest/userguide/managed-node-groups.html
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import pulumi
import pulumi_aws as aws

from nodegroups.components.subnets import resolve_managed_subnet_ids
from nodegroups.core import (
    ClusterInput,
    cluster_attr,
    identity_mapping_dependencies,
    resolve_cluster_core,
)
from nodegroups.models import ManagedNodeGroupOptions, ScalingConfig, Taint, TaintEffect
from nodegroups.validation import check_role_authorized, validate_managed_node_group_options

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManagedScalingDefaults:
    desired_size: int
    min_size: int
    max_size: int


# Independent of the self-managed capacity defaults.
MANAGED_SCALING_DEFAULTS = ManagedScalingDefaults(desired_size=2, min_size=1, max_size=2)

EKS_TAINT_EFFECTS = {
    TaintEffect.NO_SCHEDULE: "NO_SCHEDULE",
    TaintEffect.NO_EXECUTE: "NO_EXECUTE",
    TaintEffect.PREFER_NO_SCHEDULE: "PREFER_NO_SCHEDULE",
}


def managed_scaling_config(
    scaling_config: Optional[ScalingConfig],
    defaults: ManagedScalingDefaults = MANAGED_SCALING_DEFAULTS,
) -> aws.eks.NodeGroupScalingConfigArgs:
    scaling = scaling_config or ScalingConfig()
    return aws.eks.NodeGroupScalingConfigArgs(
        desired_size=(
            scaling.desired_size if scaling.desired_size is not None else defaults.desired_size
        ),
        min_size=scaling.min_size if scaling.min_size is not None else defaults.min_size,
        max_size=scaling.max_size if scaling.max_size is not None else defaults.max_size,
    )


def managed_taints(
    taints: Optional[Mapping[str, Taint]],
) -> Optional[list[aws.eks.NodeGroupTaintArgs]]:
    """Kubernetes taints in the form the EKS API expects."""
    if not taints:
        return None
    return [
        aws.eks.NodeGroupTaintArgs(
            key=key,
            value=taint.value,
            effect=EKS_TAINT_EFFECTS[taint.effect],
        )
        for key, taint in taints.items()
    ]


def create_managed_node_group(
    name: str,
    cluster: ClusterInput,
    options: ManagedNodeGroupOptions,
    parent: Optional[pulumi.Resource] = None,
    provider: Optional[aws.Provider] = None,
) -> aws.eks.NodeGroup:
    """Create an EKS managed node group whose role the cluster already authorizes."""
    validate_managed_node_group_options(name, options)

    core = resolve_cluster_core(cluster)

    role_arn = options.node_role_arn if options.node_role_arn else options.node_role.arn
    node_role_arn = pulumi.Output.all(
        pulumi.Output.from_input(role_arn),
        cluster_attr(core, "instance_role_arns"),
    ).apply(lambda args: check_role_authorized(args[0], args[1] or []))

    logger.info("Creating managed node group %s", name)

    return aws.eks.NodeGroup(
        name,
        cluster_name=options.cluster_name or cluster_attr(core, "cluster_name"),
        node_group_name=options.node_group_name,
        node_role_arn=node_role_arn,
        subnet_ids=resolve_managed_subnet_ids(options.subnet_ids, core),
        scaling_config=managed_scaling_config(options.scaling_config),
        instance_types=options.instance_types,
        capacity_type=options.capacity_type.value if options.capacity_type else None,
        ami_type=options.ami_type.value if options.ami_type else None,
        disk_size=options.disk_size,
        release_version=options.release_version,
        version=options.version,
        force_update_version=options.force_update_version,
        labels=options.labels,
        taints=managed_taints(options.taints),
        launch_template=options.launch_template,
        remote_access=options.remote_access,
        update_config=options.update_config,
        tags=options.tags or None,
        opts=pulumi.ResourceOptions(
            parent=parent,
            provider=provider,
            depends_on=identity_mapping_dependencies(core),
        ),
    )


class ManagedNodeGroup(pulumi.ComponentResource):
    """An EKS managed node group attached to an existing cluster."""

    def __init__(
        self,
        name: str,
        cluster: ClusterInput,
        options: ManagedNodeGroupOptions,
        provider: aws.Provider | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ):
        validate_managed_node_group_options(name, options)

        super().__init__("eks:nodegroups:ManagedNodeGroup", name, None, opts)

        self.node_group = create_managed_node_group(
            name, cluster, options, parent=self, provider=provider
        )

        self.register_outputs(
            {
                "node_group_name": self.node_group.node_group_name,
                "node_group_arn": self.node_group.arn,
            }
        )
