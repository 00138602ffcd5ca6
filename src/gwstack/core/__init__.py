"""Stack container, build context and collaborator contracts."""

from .context import BuildContext
from .results import SecurityGroupResult, SubnetInfo, SubnetResolution
from .stack import Stack, StackID

__all__ = [
    "BuildContext",
    "SecurityGroupResult",
    "Stack",
    "StackID",
    "SubnetInfo",
    "SubnetResolution",
]
