"""
gwstack Exception Classes

Typed exception hierarchy raised while building a resource stack from a
Gateway, its routes and its LoadBalancerConfiguration.
"""

from __future__ import annotations


class StackBuildError(Exception):
    """Base exception for all stack build errors."""

    pass


class InvalidEnumError(StackBuildError):
    """Raised when an explicit value falls outside its recognised set."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"unknown {field}: {value}")


class DeletionProtectedError(StackBuildError):
    """Raised when a gateway is being deleted while deletion protection is on."""

    def __init__(self, gateway: str) -> None:
        self.gateway = gateway
        super().__init__(
            f"Unable to delete gateway {gateway} because deletion protection "
            "is enabled."
        )


class DuplicateResourceIDError(StackBuildError):
    """Raised when two builders allocate the same (kind, id) in one stack."""

    def __init__(self, kind: str, resource_id: str) -> None:
        self.kind = kind
        self.resource_id = resource_id
        super().__init__(f"duplicate resource id '{resource_id}' for kind {kind}")


class StackFrozenError(StackBuildError):
    """Raised when a resource is added to a stack that was already returned."""

    pass


class BuildCancelledError(StackBuildError):
    """Raised when the build context is cancelled before the build completes."""

    pass


class SubnetResolutionError(StackBuildError):
    """Raised when subnets cannot satisfy the load balancer constraints."""

    pass


class SecurityGroupResolutionError(StackBuildError):
    """Raised when security groups cannot be resolved or allocated."""

    pass


class TargetGroupBuildError(StackBuildError):
    """Raised when a backend cannot be turned into a target group."""

    pass


class ListenerConfigurationError(StackBuildError):
    """Raised when gateway listeners or their configuration are invalid."""

    pass


class TagConfigurationError(StackBuildError):
    """Raised when user tags collide with externally managed tag keys."""

    pass


class ConfigurationLoadError(StackBuildError):
    """Raised when a configuration or input document cannot be loaded."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")
