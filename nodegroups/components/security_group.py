from dataclasses import dataclass
from typing import Mapping, Optional

import pulumi
import pulumi_aws as aws

from nodegroups.core import ClusterCore, cluster_attr
from nodegroups.models import NodeGroupOptions
from nodegroups.validation import check_security_group_tags


@dataclass(frozen=True)
class SecurityGroupPair:
    """Worker security group plus the rule letting workers reach the control plane."""

    security_group: aws.ec2.SecurityGroup
    ingress_rule: aws.ec2.SecurityGroupRule

    @property
    def security_group_id(self) -> pulumi.Output[str]:
        # Anything consuming this id also waits for the ingress rule; nodes
        # created before the rule exists fail to join the cluster.
        return pulumi.Output.all(self.security_group.id, self.ingress_rule.id).apply(
            lambda args: args[0]
        )


def create_node_group_security_group(
    name: str,
    vpc_id: pulumi.Input[str],
    cluster_security_group_id: pulumi.Input[str],
    cluster_name: pulumi.Input[str],
    tags: pulumi.Input[Mapping[str, str]],
    parent: pulumi.Resource,
    provider: Optional[aws.Provider] = None,
) -> SecurityGroupPair:
    """Create the worker security group and its rules.

    See https://docs.aws.amazon.com/eks/latest/userguide/sec-group-reqs.html
    """
    opts = pulumi.ResourceOptions(parent=parent, provider=provider)

    sg = aws.ec2.SecurityGroup(
        f"{name}-nodeSecurityGroup",
        vpc_id=vpc_id,
        revoke_rules_on_delete=True,
        description="Security group for EKS worker nodes",
        tags=pulumi.Output.all(cluster_name, tags).apply(
            lambda args: {
                "Name": f"{name}-nodeSecurityGroup",
                f"kubernetes.io/cluster/{args[0]}": "owned",
                **(args[1] or {}),
            }
        ),
        opts=opts,
    )

    aws.ec2.SecurityGroupRule(
        f"{name}-eksNodeIngressRule",
        type="ingress",
        security_group_id=sg.id,
        self=True,
        protocol="-1",
        from_port=0,
        to_port=0,
        description="Allow nodes to communicate with each other",
        opts=opts,
    )

    aws.ec2.SecurityGroupRule(
        f"{name}-eksNodeClusterIngressRule",
        type="ingress",
        security_group_id=sg.id,
        source_security_group_id=cluster_security_group_id,
        protocol="tcp",
        from_port=1025,
        to_port=65535,
        description="Allow worker Kubelets and pods to receive communication from the cluster control plane",
        opts=opts,
    )

    aws.ec2.SecurityGroupRule(
        f"{name}-eksExtApiServerClusterIngressRule",
        type="ingress",
        security_group_id=sg.id,
        source_security_group_id=cluster_security_group_id,
        protocol="tcp",
        from_port=443,
        to_port=443,
        description="Allow pods running extension API servers on port 443 to receive communication from cluster control plane",
        opts=opts,
    )

    aws.ec2.SecurityGroupRule(
        f"{name}-eksNodeInternetEgressRule",
        type="egress",
        security_group_id=sg.id,
        cidr_blocks=["0.0.0.0/0"],
        protocol="-1",
        from_port=0,
        to_port=0,
        description="Allow internet access",
        opts=opts,
    )

    cluster_ingress_rule = aws.ec2.SecurityGroupRule(
        f"{name}-eksClusterIngressRule",
        type="ingress",
        security_group_id=cluster_security_group_id,
        source_security_group_id=sg.id,
        protocol="tcp",
        from_port=443,
        to_port=443,
        description="Allow pods to communicate with the cluster API Server",
        opts=opts,
    )

    return SecurityGroupPair(security_group=sg, ingress_rule=cluster_ingress_rule)


def resolve_security_group(
    name: str,
    options: NodeGroupOptions,
    core: pulumi.Output[ClusterCore],
    parent: pulumi.Resource,
    provider: Optional[aws.Provider] = None,
) -> SecurityGroupPair:
    """Return the caller's security group pair, or create one scoped to the cluster VPC."""
    if options.node_security_group is not None:
        return SecurityGroupPair(
            security_group=options.node_security_group,
            ingress_rule=options.cluster_ingress_rule,
        )

    # General cluster tags win over the worker security group tags.
    tags = pulumi.Output.all(
        cluster_attr(core, "node_security_group_tags"),
        cluster_attr(core, "tags"),
    ).apply(lambda args: {**(args[0] or {}), **(args[1] or {})})

    return create_node_group_security_group(
        name,
        vpc_id=cluster_attr(core, "vpc_id"),
        cluster_security_group_id=cluster_attr(core, "cluster_security_group_id"),
        cluster_name=cluster_attr(core, "cluster_name"),
        tags=tags,
        parent=parent,
        provider=provider,
    )


def node_security_group_id(
    pair: SecurityGroupPair,
    options: NodeGroupOptions,
    core: pulumi.Output[ClusterCore],
) -> pulumi.Output[str]:
    """Security group id for the fleet, gated on the rule and on the tagging exclusivity check."""
    if options.node_security_group is None:
        return pair.security_group_id

    def check(args: list) -> str:
        sg_id, cluster_sg_id, sg_tags = args
        check_security_group_tags(sg_id, cluster_sg_id, sg_tags)
        return sg_id

    return pulumi.Output.all(
        pair.security_group_id,
        cluster_attr(core, "node_security_group_id"),
        cluster_attr(core, "node_security_group_tags"),
    ).apply(check)
