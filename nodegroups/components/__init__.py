from nodegroups.components.managed_nodegroup import ManagedNodeGroup, create_managed_node_group
from nodegroups.components.nodegroup import NodeGroup, NodeGroupData, create_node_group
from nodegroups.components.nodegroup_v2 import NodeGroupV2, NodeGroupV2Data, create_node_group_v2

__all__ = [
    "NodeGroup",
    "NodeGroupData",
    "create_node_group",
    "NodeGroupV2",
    "NodeGroupV2Data",
    "create_node_group_v2",
    "ManagedNodeGroup",
    "create_managed_node_group",
]
