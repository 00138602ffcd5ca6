from .base import Attribute, GatewayAPIBase
from .gateway import (
    Gateway,
    GatewayInfrastructure,
    GatewayListener,
    ListenerTLSConfig,
    SecretReference,
)
from .loadbalancer_config import (
    DELETION_PROTECTION_ATTRIBUTE,
    ListenerConfiguration,
    LoadBalancerConfiguration,
    MinimumLoadBalancerCapacity,
    MutualAuthenticationConfiguration,
    MutualAuthenticationMode,
    ShieldConfiguration,
    SubnetConfiguration,
    WAFv2Configuration,
)
from .route import (
    Backend,
    GRPCMethodMatch,
    HeaderMatch,
    LiteralTargetGroupBackend,
    PathMatch,
    PathMatchType,
    QueryParamMatch,
    RedirectPath,
    RedirectPathType,
    RequestRedirect,
    RouteDescriptor,
    RouteFilter,
    RouteFilterType,
    RouteKind,
    RouteMatch,
    RouteRule,
    ServiceBackend,
    ServicePort,
)
from .target_group_config import (
    HealthCheckConfiguration,
    HealthCheckMatcherConfig,
    TargetGroupProps,
)

__all__ = [
    "GatewayAPIBase",
    "Attribute",
    "Gateway",
    "GatewayInfrastructure",
    "GatewayListener",
    "ListenerTLSConfig",
    "SecretReference",
    "DELETION_PROTECTION_ATTRIBUTE",
    "ListenerConfiguration",
    "LoadBalancerConfiguration",
    "MinimumLoadBalancerCapacity",
    "MutualAuthenticationConfiguration",
    "MutualAuthenticationMode",
    "ShieldConfiguration",
    "SubnetConfiguration",
    "WAFv2Configuration",
    "Backend",
    "GRPCMethodMatch",
    "HeaderMatch",
    "LiteralTargetGroupBackend",
    "PathMatch",
    "PathMatchType",
    "QueryParamMatch",
    "RedirectPath",
    "RedirectPathType",
    "RequestRedirect",
    "RouteDescriptor",
    "RouteFilter",
    "RouteFilterType",
    "RouteKind",
    "RouteMatch",
    "RouteRule",
    "ServiceBackend",
    "ServicePort",
    "HealthCheckConfiguration",
    "HealthCheckMatcherConfig",
    "TargetGroupProps",
]
