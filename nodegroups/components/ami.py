from typing import Optional

import pulumi
import pulumi_aws as aws

from nodegroups.models import NodeGroupOptions

DEFAULT_AMI_TYPE = "amazon-linux-2"
GPU_AMI_TYPE = "amazon-linux-2-gpu"


def ami_family(ami_type: Optional[str], gpu: bool) -> str:
    """An explicit AMI family wins; otherwise the GPU flag picks the GPU variant."""
    if ami_type:
        return ami_type
    return GPU_AMI_TYPE if gpu else DEFAULT_AMI_TYPE


def ami_parameter_name(version: str, ami_type: str) -> str:
    """SSM path of the recommended EKS optimized AMI.

    See https://docs.aws.amazon.com/eks/latest/userguide/retrieve-ami-id.html
    """
    return f"/aws/service/eks/optimized-ami/{version}/{ami_type}/recommended/image_id"


def resolve_ami_id(
    options: NodeGroupOptions,
    version: pulumi.Input[str],
    opts: Optional[pulumi.InvokeOptions] = None,
) -> pulumi.Output[str]:
    if options.ami_id:
        return pulumi.Output.from_input(options.ami_id)

    family = ami_family(options.ami_type, options.gpu)
    return pulumi.Output.from_input(version).apply(
        lambda v: aws.ssm.get_parameter_output(name=ami_parameter_name(v, family), opts=opts).value
    )


def root_device_name(
    ami_id: pulumi.Input[str],
    opts: Optional[pulumi.InvokeOptions] = None,
) -> pulumi.Output[str]:
    """Root block device name taken from the AMI's own block device mapping."""
    return pulumi.Output.from_input(ami_id).apply(
        lambda image_id: aws.ec2.get_ami_output(
            owners=["self", "amazon"],
            filters=[aws.ec2.GetAmiFilterArgs(name="image-id", values=[image_id])],
            opts=opts,
        ).block_device_mappings.apply(lambda mappings: mappings[0].device_name)
    )
