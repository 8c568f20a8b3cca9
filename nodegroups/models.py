from enum import Enum
from typing import Optional, Union

import pulumi
import pulumi_aws as aws
from pydantic import BaseModel, ConfigDict, Field

StrInput = Union[str, pulumi.Output]
SubnetIdsInput = Union[list[StrInput], pulumi.Output]
TagsInput = Union[dict[str, StrInput], pulumi.Output]


class TaintEffect(str, Enum):
    """Kubernetes scheduling effect of a node taint."""

    NO_SCHEDULE = "NoSchedule"
    NO_EXECUTE = "NoExecute"
    PREFER_NO_SCHEDULE = "PreferNoSchedule"


class VolumeType(str, Enum):
    """EBS volume type for a node's root volume."""

    STANDARD = "standard"
    GP2 = "gp2"
    GP3 = "gp3"
    ST1 = "st1"
    SC1 = "sc1"
    IO1 = "io1"


class CapacityType(str, Enum):
    """EC2 capacity type for managed node groups."""

    ON_DEMAND = "ON_DEMAND"
    SPOT = "SPOT"


class AmiType(str, Enum):
    """AMI type for managed node groups."""

    AL2_X86_64 = "AL2_x86_64"
    AL2_X86_64_GPU = "AL2_x86_64_GPU"
    AL2_ARM_64 = "AL2_ARM_64"
    AL2023_X86_64_STANDARD = "AL2023_x86_64_STANDARD"
    AL2023_ARM_64_STANDARD = "AL2023_ARM_64_STANDARD"
    BOTTLEROCKET_X86_64 = "BOTTLEROCKET_x86_64"
    BOTTLEROCKET_ARM_64 = "BOTTLEROCKET_ARM_64"


class Taint(BaseModel):
    """A Kubernetes taint applied to every node in a node group."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: str
    effect: TaintEffect


class NodeGroupOptions(BaseModel):
    """Options shared by the self-managed node group provisioners.

    Defaults are applied when the node group is created; the model itself is
    never mutated.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, extra="forbid")

    # Placement
    node_subnet_ids: Optional[SubnetIdsInput] = Field(
        default=None,
        description="Subnets for the workers, overriding every cluster subnet setting",
    )
    node_associate_public_ip_address: bool = Field(default=True)

    # Instances
    instance_type: StrInput = Field(default="t2.medium")
    spot_price: Optional[StrInput] = Field(
        default=None,
        description="Bidding price for spot instances; only spot instances are launched when set",
    )
    ami_id: Optional[StrInput] = None
    ami_type: Optional[str] = Field(
        default=None,
        description="AMI family in the EKS optimized AMI parameter path, e.g. amazon-linux-2-arm64",
    )
    gpu: bool = Field(default=False, description="Use the GPU optimized AMI family")
    version: Optional[StrInput] = Field(
        default=None,
        description="Kubernetes version used for the AMI lookup (defaults to the control plane version)",
    )

    # Security groups
    node_security_group: Optional[aws.ec2.SecurityGroup] = None
    cluster_ingress_rule: Optional[aws.ec2.SecurityGroupRule] = None
    extra_node_security_groups: list[aws.ec2.SecurityGroup] = Field(default_factory=list)

    # SSH access
    node_public_key: Optional[StrInput] = None
    key_name: Optional[StrInput] = None

    # Root volume
    node_root_volume_size: int = Field(default=20, ge=1)
    node_root_volume_delete_on_termination: bool = Field(default=True)
    node_root_volume_encrypted: bool = Field(default=False)
    node_root_volume_iops: Optional[Union[int, float]] = None
    node_root_volume_throughput: Optional[Union[int, float]] = None
    node_root_volume_type: VolumeType = Field(default=VolumeType.GP2)

    # Bootstrap
    node_user_data: Optional[StrInput] = Field(
        default=None,
        description="Script run after the EKS bootstrap; must start with an interpreter directive",
    )
    node_user_data_override: Optional[StrInput] = Field(
        default=None,
        description="Complete user data script replacing the generated bootstrap",
    )
    labels: Optional[dict[str, str]] = None
    taints: Optional[dict[str, Taint]] = None
    kubelet_extra_args: Optional[str] = None
    bootstrap_extra_args: Optional[str] = None

    # Capacity
    desired_capacity: Optional[int] = Field(default=None, ge=0)
    min_size: Optional[int] = Field(default=None, ge=0)
    max_size: Optional[int] = Field(default=None, ge=0)

    # Identity
    instance_profile: Optional[Union[aws.iam.InstanceProfile, StrInput]] = Field(
        default=None,
        description="Instance profile (or its ARN); its role must be one of the cluster's instance roles",
    )

    # Tags
    auto_scaling_group_tags: Optional[TagsInput] = None
    cloud_formation_tags: Optional[TagsInput] = None


class NodeGroupV2Options(NodeGroupOptions):
    """Options for the launch template based node group."""

    min_refresh_percentage: Union[int, pulumi.Output] = Field(
        default=50,
        description="Minimum healthy percentage kept during an instance refresh",
    )
    launch_template_tag_specifications: Optional[
        list[aws.ec2.LaunchTemplateTagSpecificationArgs]
    ] = None


class ScalingConfig(BaseModel):
    """Managed node group scaling bounds; unset values use the managed defaults."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    desired_size: Optional[int] = Field(default=None, ge=0)
    min_size: Optional[int] = Field(default=None, ge=0)
    max_size: Optional[int] = Field(default=None, ge=1)


class ManagedNodeGroupOptions(BaseModel):
    """Options for an EKS managed node group."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, extra="forbid")

    node_group_name: Optional[StrInput] = None
    cluster_name: Optional[StrInput] = None

    node_role: Optional[aws.iam.Role] = Field(
        default=None,
        description="Node role; mutually exclusive with node_role_arn",
    )
    node_role_arn: Optional[StrInput] = Field(
        default=None,
        description="Node role ARN; mutually exclusive with node_role",
    )

    subnet_ids: Optional[SubnetIdsInput] = None
    scaling_config: Optional[ScalingConfig] = None

    instance_types: Optional[list[str]] = None
    capacity_type: Optional[CapacityType] = None
    ami_type: Optional[AmiType] = None
    disk_size: Optional[int] = Field(default=None, ge=1)
    release_version: Optional[StrInput] = None
    version: Optional[StrInput] = None
    force_update_version: Optional[bool] = None

    labels: Optional[dict[str, str]] = None
    taints: Optional[dict[str, Taint]] = None

    launch_template: Optional[aws.eks.NodeGroupLaunchTemplateArgs] = None
    remote_access: Optional[aws.eks.NodeGroupRemoteAccessArgs] = None
    update_config: Optional[aws.eks.NodeGroupUpdateConfigArgs] = None

    tags: dict[str, str] = Field(default_factory=dict)
