"""Value objects exchanged between the stack builder and its collaborators."""

from dataclasses import dataclass, field

from gwstack.ir.models import SubnetMapping, Token


@dataclass(frozen=True)
class SubnetInfo:
    """A subnet as returned by a subnet lookup."""

    subnet_id: str
    availability_zone: str
    name: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    # Used by subnet discovery for internet-facing load balancers.
    public: bool = False


@dataclass(frozen=True)
class SubnetResolution:
    """Subnets chosen for the load balancer, one per availability zone."""

    mappings: tuple[SubnetMapping, ...]
    source_nat_enabled: bool = False


@dataclass(frozen=True)
class SecurityGroupResult:
    """
    Security groups for the load balancer and its backends.

    ``backend_security_group_allocated`` is True when the backend group was
    obtained from the backend security group provider during this build,
    so the caller can release it on cleanup.
    """

    security_group_tokens: tuple[Token, ...]
    backend_security_group_token: Token | None = None
    backend_security_group_allocated: bool = False
