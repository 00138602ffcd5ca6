"""
gwstack: build load balancer resource stacks from Gateway API objects.

A Gateway, its attached routes and its LoadBalancerConfiguration go in; a
Stack of cross-referenced load balancer, listener, target group and security
group specs comes out for a reconciler to apply.
"""

from .builders import BuildResult, StackBuilder
from .config import BuilderConfig, load_builder_config
from .core import BuildContext, Stack, StackID
from .exceptions import StackBuildError

__version__ = "0.1.0"

__all__ = [
    "BuildContext",
    "BuildResult",
    "BuilderConfig",
    "Stack",
    "StackBuildError",
    "StackBuilder",
    "StackID",
    "load_builder_config",
]
