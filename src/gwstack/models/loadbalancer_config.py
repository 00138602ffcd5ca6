from enum import Enum
from typing import Literal

from pydantic import Field, field_validator

from .base import Attribute, GatewayAPIBase

DELETION_PROTECTION_ATTRIBUTE = "deletion_protection.enabled"


class SubnetConfiguration(GatewayAPIBase):
    """An explicit subnet for the load balancer, with optional allocations."""

    identifier: str = Field(
        ..., description="Subnet ID (subnet-...) or subnet Name tag value."
    )
    eip_allocation: str | None = Field(
        default=None,
        description="Elastic IP allocation. Internet-facing network LBs only.",
    )
    private_ipv4_allocation: str | None = Field(
        default=None,
        alias="privateIPv4Allocation",
        description="Private IPv4 address. Internal network LBs only.",
    )
    ipv6_allocation: str | None = Field(
        default=None,
        alias="ipv6Allocation",
        description="IPv6 address. Dual-stack network LBs only.",
    )
    source_nat_ipv6_prefix: str | None = Field(
        default=None,
        alias="sourceNatIPv6Prefix",
        description="Source NAT IPv6 prefix, or 'auto_assigned'. Network LBs only.",
    )


class MutualAuthenticationMode(str, Enum):
    OFF = "off"
    PASSTHROUGH = "passthrough"
    VERIFY = "verify"


class MutualAuthenticationConfiguration(GatewayAPIBase):
    """Client certificate (mTLS) handling of a secure listener."""

    mode: MutualAuthenticationMode = Field(..., description="off, passthrough or verify.")
    trust_store: str | None = Field(
        default=None, description="Trust store name or ARN. Required for verify."
    )
    ignore_client_certificate_expiry: bool | None = Field(default=None)
    advertise_trust_store_ca_names: Literal["on", "off"] | None = Field(default=None)


class ListenerConfiguration(GatewayAPIBase):
    """Per-listener overrides keyed by ``PROTOCOL:port``."""

    protocol_port: str = Field(
        ..., description="Listener key in the form 'PROTOCOL:port', e.g. 'HTTPS:443'."
    )
    default_certificate: str | None = Field(default=None)
    certificates: list[str] = Field(default_factory=list)
    ssl_policy: str | None = Field(default=None)
    alpn_policy: str | None = Field(default=None)
    listener_attributes: list[Attribute] = Field(default_factory=list)
    mutual_authentication: MutualAuthenticationConfiguration | None = Field(default=None)

    @field_validator("protocol_port")
    @classmethod
    def _check_protocol_port(cls, v: str) -> str:
        protocol, sep, port = v.partition(":")
        if not sep or not protocol or not port.isdigit():
            raise ValueError(f"protocolPort must be 'PROTOCOL:port', got '{v}'")
        return f"{protocol.upper()}:{port}"

    @property
    def protocol(self) -> str:
        return self.protocol_port.partition(":")[0]

    @property
    def port(self) -> int:
        return int(self.protocol_port.partition(":")[2])


class WAFv2Configuration(GatewayAPIBase):
    acl: str = Field(default="", description="Web ACL ARN to associate.")


class ShieldConfiguration(GatewayAPIBase):
    enabled: bool = Field(default=False)


class MinimumLoadBalancerCapacity(GatewayAPIBase):
    capacity_units: int = Field(..., ge=0)


class LoadBalancerConfiguration(GatewayAPIBase):
    """
    Operator-facing overrides for the load balancer of one Gateway.

    ``scheme`` and ``ip_address_type`` are kept as plain strings: an
    unrecognised value is reported while building, not while parsing.
    """

    load_balancer_name: str | None = Field(default=None)
    scheme: str | None = Field(
        default=None, description="internet-facing or internal."
    )
    ip_address_type: str | None = Field(
        default=None,
        description="ipv4, dualstack or dualstack-without-public-ipv4.",
    )
    enforce_security_group_inbound_rules_on_private_link_traffic: str | None = Field(
        default=None
    )
    customer_owned_ipv4_pool: str | None = Field(default=None)
    ipv4_ipam_pool_id: str | None = Field(default=None, alias="ipv4IPAMPoolId")
    load_balancer_subnets: list[SubnetConfiguration] | None = Field(default=None)
    load_balancer_subnets_selector: dict[str, list[str]] | None = Field(default=None)
    listener_configurations: list[ListenerConfiguration] = Field(default_factory=list)
    security_groups: list[str] | None = Field(default=None)
    security_group_prefixes: list[str] = Field(default_factory=list)
    source_ranges: list[str] = Field(default_factory=list)
    load_balancer_attributes: list[Attribute] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)
    enable_icmp: bool = Field(default=False, alias="enableICMP")
    manage_backend_security_group_rules: bool = Field(default=False)
    minimum_load_balancer_capacity: MinimumLoadBalancerCapacity | None = Field(
        default=None
    )
    wafv2: WAFv2Configuration | None = Field(default=None, alias="wafV2")
    shield_advanced: ShieldConfiguration | None = Field(default=None)

    def listener_configuration(
        self, protocol: str, port: int
    ) -> ListenerConfiguration | None:
        key = f"{protocol.upper()}:{port}"
        for cfg in self.listener_configurations:
            if cfg.protocol_port == key:
                return cfg
        return None

    def attribute(self, key: str) -> str | None:
        for attr in self.load_balancer_attributes:
            if attr.key == key:
                return attr.value
        return None
