"""Worker subnet selection.

An EKS cluster attached to both public and private subnets only exposes its
API server to workers on the private ones (see
https://docs.aws.amazon.com/eks/latest/userguide/network_reqs.html), so
workers are placed on private subnets whenever any are available.
"""

import ipaddress
import logging
from typing import Any, Callable, Iterable, Optional, Sequence

import pulumi
import pulumi_aws as aws

from nodegroups.core import ClusterCore, cluster_attr
from nodegroups.errors import UpstreamLookupError

logger = logging.getLogger(__name__)

PRIVATE_CIDR_BLOCKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)

INTERNET_GATEWAY_PREFIX = "igw-"

RouteTableLookup = Callable[[str, Optional[pulumi.InvokeOptions]], Any]


def is_private_cidr_block(cidr_block: Optional[str]) -> bool:
    """Check if a CIDR block falls entirely within an RFC 1918 range."""
    if not cidr_block:
        return False
    try:
        network = ipaddress.ip_network(cidr_block, strict=False)
    except ValueError:
        return False
    if network.version != 4:
        return False
    return any(network.subnet_of(private) for private in PRIVATE_CIDR_BLOCKS)


def has_internet_gateway_route(routes: Iterable[Any]) -> bool:
    """A route table is public iff it routes a non-private destination to an internet gateway."""
    return any(
        (route.gateway_id or "").startswith(INTERNET_GATEWAY_PREFIX)
        and not is_private_cidr_block(route.cidr_block)
        for route in routes
    )


def get_route_table(subnet_id: str, opts: Optional[pulumi.InvokeOptions] = None) -> Any:
    """Fetch the route table in effect for a subnet."""
    try:
        # Raises when the subnet has no explicitly associated route table.
        return aws.ec2.get_route_table(subnet_id=subnet_id, opts=opts)
    except Exception:
        logger.debug("No explicit route table for %s, using the VPC main route table", subnet_id)

    # Without an explicit association the subnet uses its VPC's main route table.
    # https://docs.aws.amazon.com/vpc/latest/userguide/VPC_Route_Tables.html#RouteTables
    try:
        subnet = aws.ec2.get_subnet(id=subnet_id, opts=opts)
        main_route_tables = aws.ec2.get_route_tables(
            vpc_id=subnet.vpc_id,
            filters=[
                aws.ec2.GetRouteTablesFilterArgs(name="association.main", values=["true"]),
            ],
            opts=opts,
        )
        if not main_route_tables.ids:
            raise UpstreamLookupError(subnet_id, f"VPC {subnet.vpc_id} has no main route table")
        return aws.ec2.get_route_table(route_table_id=main_route_tables.ids[0], opts=opts)
    except UpstreamLookupError:
        raise
    except Exception as e:
        raise UpstreamLookupError(f"route table of subnet {subnet_id}", str(e)) from e


def compute_worker_subnets(
    subnet_ids: Sequence[str],
    opts: Optional[pulumi.InvokeOptions] = None,
    lookup: RouteTableLookup = get_route_table,
) -> list[str]:
    """Return the private subset of subnet_ids, or all of them if none is private."""
    public_subnets: list[str] = []
    private_subnets: list[str] = []

    for subnet_id in subnet_ids:
        route_table = lookup(subnet_id, opts)
        if has_internet_gateway_route(route_table.routes):
            public_subnets.append(subnet_id)
        else:
            private_subnets.append(subnet_id)

    logger.info(
        "Classified worker subnets: %d private, %d public",
        len(private_subnets),
        len(public_subnets),
    )
    return private_subnets if private_subnets else public_subnets


def first_defined(*providers: Callable[[], Any]) -> Any:
    """Evaluate providers in order and return the first value that is not None."""
    for provider in providers:
        value = provider()
        if value is not None:
            return value
    return None


def resolve_worker_subnet_ids(
    node_subnet_ids: Optional[pulumi.Input[Sequence[pulumi.Input[str]]]],
    core: pulumi.Output[ClusterCore],
    opts: Optional[pulumi.InvokeOptions] = None,
) -> pulumi.Output[list[str]]:
    """Self-managed precedence: explicit, private, public, then computed from the cluster subnets."""
    if node_subnet_ids is not None:
        return pulumi.Output.from_input(node_subnet_ids)

    def resolve(args: list) -> list[str]:
        private_ids, public_ids, subnet_ids = args
        return first_defined(
            lambda: private_ids,
            lambda: public_ids,
            lambda: compute_worker_subnets(subnet_ids or [], opts),
        )

    return pulumi.Output.all(
        cluster_attr(core, "private_subnet_ids"),
        cluster_attr(core, "public_subnet_ids"),
        cluster_attr(core, "subnet_ids"),
    ).apply(resolve)


def resolve_managed_subnet_ids(
    subnet_ids: Optional[pulumi.Input[Sequence[pulumi.Input[str]]]],
    core: pulumi.Output[ClusterCore],
) -> pulumi.Output[list[str]]:
    """Managed precedence: explicit, cluster subnets, private, public, then none."""
    if subnet_ids is not None:
        return pulumi.Output.from_input(subnet_ids)

    def resolve(args: list) -> list[str]:
        cluster_ids, private_ids, public_ids = args
        return first_defined(
            lambda: cluster_ids,
            lambda: private_ids,
            lambda: public_ids,
            lambda: [],
        )

    return pulumi.Output.all(
        cluster_attr(core, "subnet_ids"),
        cluster_attr(core, "private_subnet_ids"),
        cluster_attr(core, "public_subnet_ids"),
    ).apply(resolve)
