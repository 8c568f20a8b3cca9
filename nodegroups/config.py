import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

import pulumi
from pydantic import ValidationError

from nodegroups.errors import ConfigLoadError
from nodegroups.models import ManagedNodeGroupOptions, NodeGroupOptions, NodeGroupV2Options

logger = logging.getLogger(__name__)


class NodeGroupKind(str, Enum):
    """Which provisioner builds a configured node group."""

    SELF_MANAGED = "self-managed"
    SELF_MANAGED_V2 = "self-managed-v2"
    MANAGED = "managed"


OPTIONS_BY_KIND: dict[NodeGroupKind, type] = {
    NodeGroupKind.SELF_MANAGED: NodeGroupOptions,
    NodeGroupKind.SELF_MANAGED_V2: NodeGroupV2Options,
    NodeGroupKind.MANAGED: ManagedNodeGroupOptions,
}


@dataclass(frozen=True)
class NodeGroupSpec:
    name: str
    kind: NodeGroupKind
    options: Union[NodeGroupOptions, NodeGroupV2Options, ManagedNodeGroupOptions]


@dataclass
class NodeGroupStackConfig:
    """Node group stack configuration loaded from Pulumi config."""

    # Fully qualified name of the stack that owns the cluster
    cluster_stack: str

    # AWS settings
    aws_region: str
    assume_role_arn: Optional[str] = None
    external_id: Optional[pulumi.Output[str]] = None

    node_groups: list[NodeGroupSpec] = field(default_factory=list)

    # Provider default tags
    tags: dict[str, str] = field(default_factory=dict)


def _parse_json(value: Optional[str], key: str, default: Any = None) -> Any:
    """Parse a JSON config value, failing loudly on malformed input."""
    if value is None:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"{key} is not valid JSON: {e}") from e


def parse_node_group(entry: Any, index: int) -> NodeGroupSpec:
    """Turn one nodeGroups entry into a named, typed options model."""
    if not isinstance(entry, dict):
        raise ConfigLoadError(f"nodeGroups[{index}] must be an object")

    fields = dict(entry)
    name = fields.pop("name", None)
    if not name:
        raise ConfigLoadError(f"nodeGroups[{index}] is missing a name")

    kind_value = fields.pop("kind", NodeGroupKind.SELF_MANAGED.value)
    try:
        kind = NodeGroupKind(kind_value)
    except ValueError as e:
        raise ConfigLoadError(
            f"nodeGroups[{index}] ({name}) has unknown kind '{kind_value}'"
        ) from e

    try:
        options = OPTIONS_BY_KIND[kind].model_validate(fields)
    except ValidationError as e:
        raise ConfigLoadError(f"nodeGroups[{index}] ({name}) has invalid options: {e}") from e

    return NodeGroupSpec(name=name, kind=kind, options=options)


def parse_node_groups(value: Optional[str]) -> list[NodeGroupSpec]:
    entries = _parse_json(value, "nodeGroups", [])
    if not isinstance(entries, list):
        raise ConfigLoadError("nodeGroups must be a JSON list")

    specs = [parse_node_group(entry, i) for i, entry in enumerate(entries)]

    names = [spec.name for spec in specs]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigLoadError(f"duplicate node group names: {', '.join(duplicates)}")
    return specs


def parse_tags(value: Optional[str]) -> dict[str, str]:
    tags = _parse_json(value, "tags", {})
    if not isinstance(tags, dict):
        raise ConfigLoadError("tags must be a JSON object")
    return {str(k): str(v) for k, v in tags.items()}


def load_stack_config() -> NodeGroupStackConfig:
    """Load node group stack configuration from Pulumi config."""
    config = pulumi.Config()

    cluster_stack = config.require("clusterStack")
    aws_region = config.get("awsRegion") or "us-east-1"
    assume_role_arn = config.get("assumeRoleArn")
    external_id = config.get_secret("externalId")

    node_groups = parse_node_groups(config.get("nodeGroups"))
    logger.info("Loaded %d node group(s) for cluster stack %s", len(node_groups), cluster_stack)

    return NodeGroupStackConfig(
        cluster_stack=cluster_stack,
        aws_region=aws_region,
        assume_role_arn=assume_role_arn,
        external_id=external_id,
        node_groups=node_groups,
        tags=parse_tags(config.get("tags")),
    )
