"""Read-only descriptor of an existing EKS cluster, as consumed by node groups."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Mapping, Optional, Protocol, Sequence, Union

import pulumi


@dataclass(frozen=True)
class ClusterCore:
    """Cluster connection info, network ids and default worker bindings.

    Owned by the cluster stack. Node groups only read it; any field may be a
    plain value or a pulumi Output.
    """

    cluster_name: pulumi.Input[str]
    endpoint: pulumi.Input[str]
    certificate_authority_data: pulumi.Input[str]
    version: pulumi.Input[str]
    vpc_id: pulumi.Input[str]
    cluster_security_group_id: pulumi.Input[str]

    # None means "not set"; an empty list is a set value.
    subnet_ids: Optional[pulumi.Input[Sequence[pulumi.Input[str]]]] = None
    private_subnet_ids: Optional[pulumi.Input[Sequence[pulumi.Input[str]]]] = None
    public_subnet_ids: Optional[pulumi.Input[Sequence[pulumi.Input[str]]]] = None

    instance_profile_arn: Optional[pulumi.Input[str]] = None
    instance_role_arns: pulumi.Input[Sequence[pulumi.Input[str]]] = field(default_factory=list)

    node_security_group_id: Optional[pulumi.Input[str]] = None
    node_security_group_tags: Optional[pulumi.Input[Mapping[str, str]]] = None
    tags: Optional[pulumi.Input[Mapping[str, str]]] = None

    vpc_cni: Optional[pulumi.Resource] = None
    eks_node_access: Optional[pulumi.Resource] = None

    @classmethod
    def from_stack_reference(cls, ref: pulumi.StackReference) -> "ClusterCore":
        """Build a descriptor from the exports of a cluster stack."""
        return cls(
            cluster_name=ref.require_output("eks_cluster_name"),
            endpoint=ref.require_output("eks_cluster_endpoint"),
            certificate_authority_data=ref.require_output("eks_cluster_ca_data"),
            version=ref.require_output("eks_cluster_version"),
            vpc_id=ref.require_output("vpc_id"),
            cluster_security_group_id=ref.require_output("eks_cluster_security_group_id"),
            subnet_ids=ref.get_output("subnet_ids"),
            private_subnet_ids=ref.get_output("private_subnet_ids"),
            public_subnet_ids=ref.get_output("public_subnet_ids"),
            instance_profile_arn=ref.get_output("eks_node_instance_profile_arn"),
            instance_role_arns=pulumi.Output.all(
                ref.get_output("eks_instance_role_arns"),
                ref.get_output("eks_node_role_arn"),
            ).apply(lambda args: list(args[0] or ([args[1]] if args[1] else []))),
            node_security_group_id=ref.get_output("node_security_group_id"),
            node_security_group_tags=ref.get_output("node_security_group_tags"),
            tags=ref.get_output("tags"),
        )


class HasClusterCore(Protocol):
    """Anything exposing a cluster descriptor, such as a cluster component."""

    core: Union[ClusterCore, pulumi.Output]


ClusterInput = Union[ClusterCore, HasClusterCore, pulumi.Output, Awaitable[Any]]


def _unwrap_core(value: Any) -> Union[ClusterCore, pulumi.Output]:
    if isinstance(value, ClusterCore):
        return value
    core = getattr(value, "core", None)
    if isinstance(core, (ClusterCore, pulumi.Output)):
        return core
    raise TypeError(f"expected a ClusterCore or an object with a 'core' attribute, got {type(value).__name__}")


def resolve_cluster_core(cluster: ClusterInput) -> pulumi.Output[ClusterCore]:
    """Normalize every accepted cluster input to a single deferred descriptor."""
    return pulumi.Output.from_input(cluster).apply(_unwrap_core)


def cluster_attr(core: pulumi.Output[ClusterCore], attr: str) -> pulumi.Output[Any]:
    """Resolve one descriptor field, unwrapping nested Outputs."""

    def resolve(c: ClusterCore) -> pulumi.Output[Any]:
        value = getattr(c, attr)
        if isinstance(value, tuple):
            value = list(value)
        return pulumi.Output.from_input(value)

    return core.apply(resolve)


def fleet_dependencies(core: pulumi.Output[ClusterCore]) -> pulumi.Output[list[pulumi.Resource]]:
    """CNI and identity-mapping resources a self-managed fleet must wait on."""
    return core.apply(
        lambda c: [r for r in (c.vpc_cni, c.eks_node_access) if r is not None]
    )


def identity_mapping_dependencies(
    core: pulumi.Output[ClusterCore],
) -> pulumi.Output[list[pulumi.Resource]]:
    """Identity-mapping resource a managed node group must wait on."""
    return core.apply(lambda c: [c.eks_node_access] if c.eks_node_access is not None else [])
