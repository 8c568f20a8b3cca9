import logging

import pulumi

from nodegroups.components import ManagedNodeGroup, NodeGroup, NodeGroupV2
from nodegroups.config import NodeGroupKind, load_stack_config
from nodegroups.core import ClusterCore
from nodegroups.providers import create_aws_provider

logging.basicConfig(level=logging.INFO)

config = load_stack_config()

aws_provider = create_aws_provider(config)

cluster_stack = pulumi.StackReference(config.cluster_stack)
cluster = ClusterCore.from_stack_reference(cluster_stack)


for spec in config.node_groups:
    if spec.kind == NodeGroupKind.MANAGED:
        managed = ManagedNodeGroup(spec.name, cluster, spec.options, provider=aws_provider)
        pulumi.export(f"{spec.name}_node_group_name", managed.node_group.node_group_name)
        continue

    if spec.kind == NodeGroupKind.SELF_MANAGED_V2:
        group_v2 = NodeGroupV2(spec.name, cluster, spec.options, provider=aws_provider)
        pulumi.export(f"{spec.name}_security_group_id", group_v2.node_security_group.id)
        pulumi.export(f"{spec.name}_auto_scaling_group_name", group_v2.auto_scaling_group.name)
        continue

    group = NodeGroup(spec.name, cluster, spec.options, provider=aws_provider)
    pulumi.export(f"{spec.name}_security_group_id", group.node_security_group.id)
    pulumi.export(f"{spec.name}_auto_scaling_group_name", group.auto_scaling_group_name)
