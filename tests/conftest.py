import os
import sys

import pulumi
import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from nodegroups.core import ClusterCore

AMI_ID = "ami-0123456789abcdef0"
REGION = "us-west-2"
NODE_ROLE_ARN = "arn:aws:iam::123456789012:role/eks-node-role"
INSTANCE_PROFILE_ARN = "arn:aws:iam::123456789012:instance-profile/eks-node-profile"


class NodeGroupMocks(pulumi.runtime.Mocks):
    """Echo resource inputs back as state and answer the invokes node groups make."""

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)

        if args.typ == "aws:cloudformation/stack:Stack":
            outputs["outputs"] = {"NodeGroup": f"{args.name}-asg"}
        elif args.typ == "aws:ec2/launchTemplate:LaunchTemplate":
            outputs.setdefault("name", args.name)
            outputs["latestVersion"] = 1
        elif args.typ == "aws:ec2/launchConfiguration:LaunchConfiguration":
            outputs.setdefault("name", args.name)
        elif args.typ == "aws:ec2/keyPair:KeyPair":
            outputs.setdefault("keyName", args.name)
        elif args.typ == "aws:eks/nodeGroup:NodeGroup":
            outputs.setdefault("nodeGroupName", args.name)
            outputs["arn"] = f"arn:aws:eks:{REGION}:123456789012:nodegroup/{args.name}"

        return f"{args.name}_id", outputs

    def call(self, args: pulumi.runtime.MockCallArgs):
        if args.token == "aws:index/getRegion:getRegion":
            return {"name": REGION, "id": REGION}
        if args.token == "aws:ssm/getParameter:getParameter":
            return {"name": args.args["name"], "value": AMI_ID, "type": "String"}
        if args.token == "aws:ec2/getAmi:getAmi":
            return {
                "id": AMI_ID,
                "blockDeviceMappings": [
                    {"deviceName": "/dev/xvda", "ebs": {}, "noDevice": "", "virtualName": ""},
                ],
            }
        return {}


pulumi.runtime.set_mocks(NodeGroupMocks(), preview=False)


def make_core(**overrides) -> ClusterCore:
    """A cluster descriptor with plain values and private subnets set."""
    values = dict(
        cluster_name="test-cluster",
        endpoint="https://ABCDEF.gr7.us-west-2.eks.amazonaws.com",
        certificate_authority_data="Y2VydGlmaWNhdGU=",
        version="1.29",
        vpc_id="vpc-123",
        cluster_security_group_id="sg-cluster",
        private_subnet_ids=["subnet-private-a", "subnet-private-b"],
        instance_profile_arn=INSTANCE_PROFILE_ARN,
        instance_role_arns=[NODE_ROLE_ARN],
    )
    values.update(overrides)
    return ClusterCore(**values)


@pytest.fixture
def core():
    return make_core()
