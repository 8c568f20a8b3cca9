from typing import Optional

import pulumi
import pulumi_aws as aws

from nodegroups.config import NodeGroupStackConfig


def provider_default_tags(config: NodeGroupStackConfig) -> dict[str, str]:
    """Tags stamped on every node group resource; configured tags win."""
    return {
        "ManagedBy": "Pulumi",
        "Stack": pulumi.get_stack(),
        "ClusterStack": config.cluster_stack,
        **config.tags,
    }


def assume_role_args(config: NodeGroupStackConfig) -> Optional[list[aws.ProviderAssumeRoleArgs]]:
    """Role to assume in the cluster's account, if the cluster lives elsewhere."""
    if not config.assume_role_arn:
        return None
    return [
        aws.ProviderAssumeRoleArgs(
            role_arn=config.assume_role_arn,
            external_id=config.external_id,
            session_name=f"nodegroups-{pulumi.get_stack()}",
            duration="1h",
        )
    ]


def create_aws_provider(config: NodeGroupStackConfig) -> aws.Provider:
    """AWS provider in the cluster's region, shared by every node group of the stack."""
    return aws.Provider(
        "nodegroups-aws",
        region=config.aws_region,
        assume_roles=assume_role_args(config),
        default_tags=aws.ProviderDefaultTagsArgs(tags=provider_default_tags(config)),
    )
