import pulumi

from nodegroups.config import NodeGroupStackConfig
from nodegroups.providers import assume_role_args, create_aws_provider, provider_default_tags


def make_config(**overrides) -> NodeGroupStackConfig:
    values = dict(cluster_stack="acme/eks-cluster/prod", aws_region="eu-west-1")
    values.update(overrides)
    return NodeGroupStackConfig(**values)


def test_default_tags_name_the_cluster_stack():
    tags = provider_default_tags(make_config())

    assert tags["ManagedBy"] == "Pulumi"
    assert tags["Stack"] == pulumi.get_stack()
    assert tags["ClusterStack"] == "acme/eks-cluster/prod"


def test_configured_tags_win():
    tags = provider_default_tags(make_config(tags={"ManagedBy": "platform-team", "cost": "42"}))

    assert tags["ManagedBy"] == "platform-team"
    assert tags["cost"] == "42"


def test_no_role_to_assume():
    assert assume_role_args(make_config()) is None


def test_assume_role():
    (role,) = assume_role_args(
        make_config(assume_role_arn="arn:aws:iam::123456789012:role/deployer", external_id="ext-1")
    )

    assert role.role_arn == "arn:aws:iam::123456789012:role/deployer"
    assert role.external_id == "ext-1"
    assert role.session_name == f"nodegroups-{pulumi.get_stack()}"


@pulumi.runtime.test
def test_provider_region():
    provider = create_aws_provider(make_config())

    def check(region):
        assert region == "eu-west-1"

    return provider.region.apply(check)
