"""Builders that turn a Gateway and its routes into Stack resources."""

from .addon import DefaultAddonBuilder
from .listener import ListenerBuilder
from .load_balancer import LOAD_BALANCER_RESOURCE_ID, LoadBalancerSpecBuilder
from .precedence import sort_routes_by_precedence, sort_rules_by_precedence
from .scheme import resolve_ip_address_type, resolve_scheme
from .security_group import DefaultSecurityGroupResolver
from .stack_builder import BuildResult, Lifecycle, StackBuilder
from .subnet import DefaultSubnetResolver
from .tags import DefaultTagHelper
from .target_group import TargetGroupBuilder, TargetGroupOutput

__all__ = [
    "LOAD_BALANCER_RESOURCE_ID",
    "BuildResult",
    "DefaultAddonBuilder",
    "DefaultSecurityGroupResolver",
    "DefaultSubnetResolver",
    "DefaultTagHelper",
    "Lifecycle",
    "ListenerBuilder",
    "LoadBalancerSpecBuilder",
    "StackBuilder",
    "TargetGroupBuilder",
    "TargetGroupOutput",
    "resolve_ip_address_type",
    "resolve_scheme",
    "sort_routes_by_precedence",
    "sort_rules_by_precedence",
]
