from typing import Sequence


class NodeGroupError(Exception):
    """Base class for node group provisioning failures."""


class ConfigurationConflictError(NodeGroupError):
    """Raised when mutually exclusive node group options are supplied together."""

    def __init__(self, fields: Sequence[str], message: str):
        self.fields = tuple(fields)
        super().__init__(f"{' / '.join(self.fields)}: {message}")


class MissingPrerequisiteError(NodeGroupError):
    """Raised when a binding the node group needs is not available from any source."""

    def __init__(self, fields: Sequence[str], message: str):
        self.fields = tuple(fields)
        super().__init__(f"{' / '.join(self.fields)}: {message}")


class RoleNotAuthorizedError(NodeGroupError):
    """Raised when a node role is not registered in the cluster's instance roles."""

    def __init__(self, role_arn: str):
        self.role_arn = role_arn
        super().__init__(
            f"A managed node group cannot be created without first setting its role "
            f"in the cluster's instance roles: {role_arn} is not registered"
        )


class MalformedStackOutputError(NodeGroupError):
    """Raised when a CloudFormation stack does not expose an expected output."""

    def __init__(self, stack_name: str, key: str):
        self.stack_name = stack_name
        self.key = key
        super().__init__(
            f"CloudFormation stack {stack_name} is not ready. Stack output key '{key}' does not exist."
        )


class UpstreamLookupError(NodeGroupError):
    """Raised when a provider lookup (route table, subnet) fails."""

    def __init__(self, resource: str, message: str):
        self.resource = resource
        super().__init__(f"Lookup of {resource} failed: {message}")


class ConfigLoadError(NodeGroupError):
    """Raised when the program configuration cannot be parsed."""
