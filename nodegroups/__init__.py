from nodegroups.components import (
    ManagedNodeGroup,
    NodeGroup,
    NodeGroupV2,
    create_managed_node_group,
    create_node_group,
    create_node_group_v2,
)
from nodegroups.core import ClusterCore
from nodegroups.models import (
    ManagedNodeGroupOptions,
    NodeGroupOptions,
    NodeGroupV2Options,
    ScalingConfig,
    Taint,
)

__all__ = [
    "ClusterCore",
    "NodeGroup",
    "NodeGroupV2",
    "ManagedNodeGroup",
    "create_node_group",
    "create_node_group_v2",
    "create_managed_node_group",
    "NodeGroupOptions",
    "NodeGroupV2Options",
    "ManagedNodeGroupOptions",
    "ScalingConfig",
    "Taint",
]
