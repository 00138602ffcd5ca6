from __future__ import annotations

"""
models.py – Stack resource model
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Immutable resource specs placed into a Stack and handed to the reconciler.
Cross-references between resources are expressed as tokens: a ``ResourceRef``
names another resource of the same Stack by ``(kind, id, field)``, a
``LiteralToken`` carries a value that is already known.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Self, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializeAsAny,
    field_validator,
    model_validator,
)

SCHEMA_VERSION: str = "0.1.0"

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ResourceKind(str, Enum):
    """Kinds of resource a Stack can hold."""

    LOAD_BALANCER = "AWS::ElasticLoadBalancingV2::LoadBalancer"
    LISTENER = "AWS::ElasticLoadBalancingV2::Listener"
    LISTENER_RULE = "AWS::ElasticLoadBalancingV2::ListenerRule"
    TARGET_GROUP = "AWS::ElasticLoadBalancingV2::TargetGroup"
    TARGET_GROUP_BINDING = "K8S::ElasticLoadBalancingV2::TargetGroupBinding"
    SECURITY_GROUP = "AWS::EC2::SecurityGroup"
    WEB_ACL_ASSOCIATION = "AWS::WAFv2::WebACLAssociation"
    SHIELD_PROTECTION = "AWS::Shield::Protection"


class LoadBalancerType(str, Enum):
    APPLICATION = "application"
    NETWORK = "network"


class LoadBalancerScheme(str, Enum):
    INTERNET_FACING = "internet-facing"
    INTERNAL = "internal"


class IPAddressType(str, Enum):
    IPV4 = "ipv4"
    DUALSTACK = "dualstack"
    DUALSTACK_WITHOUT_PUBLIC_IPV4 = "dualstack-without-public-ipv4"

    @property
    def is_dualstack(self) -> bool:
        return self is not IPAddressType.IPV4


class TargetType(str, Enum):
    INSTANCE = "instance"
    IP = "ip"


class Protocol(str, Enum):
    HTTP = "HTTP"
    HTTPS = "HTTPS"
    TCP = "TCP"
    TLS = "TLS"
    UDP = "UDP"
    TCP_UDP = "TCP_UDP"

    @property
    def is_secure(self) -> bool:
        return self in (Protocol.HTTPS, Protocol.TLS)


L7_PROTOCOLS: frozenset[Protocol] = frozenset({Protocol.HTTP, Protocol.HTTPS})
L4_PROTOCOLS: frozenset[Protocol] = frozenset(
    {Protocol.TCP, Protocol.TLS, Protocol.UDP, Protocol.TCP_UDP}
)


class ProtocolVersion(str, Enum):
    HTTP1 = "HTTP1"
    HTTP2 = "HTTP2"
    GRPC = "GRPC"


class TargetGroupIPAddressType(str, Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"


class ActionType(str, Enum):
    FORWARD = "forward"
    FIXED_RESPONSE = "fixed-response"
    REDIRECT = "redirect"


class Addon(str, Enum):
    """Auxiliary features reconciled next to the load balancer."""

    WAFV2 = "WAFv2"
    SHIELD = "Shield"
    PROVISIONED_CAPACITY = "ProvisionedCapacity"


ALL_ADDONS: tuple[Addon, ...] = (
    Addon.WAFV2,
    Addon.SHIELD,
    Addon.PROVISIONED_CAPACITY,
)

# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class SpecModel(BaseModel):
    """Base for every immutable spec value."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class LiteralToken(SpecModel):
    """A value that is already known at build time (e.g. an existing ARN)."""

    token_type: Literal["literal"] = "literal"
    value: str = Field(..., description="The literal value.")


class ResourceRef(SpecModel):
    """
    Stack-local handle to a field of another resource.

    The reconciler substitutes the live value once the referenced resource
    exists.
    """

    token_type: Literal["ref"] = "ref"
    kind: ResourceKind = Field(..., description="Kind of the referenced resource.")
    id: str = Field(..., description="Resource id within the Stack.")
    field: str = Field(..., description="Output field, e.g. 'arn' or 'groupID'.")


Token = Annotated[Union[LiteralToken, ResourceRef], Field(discriminator="token_type")]

# ---------------------------------------------------------------------------
# Shared building blocks
# ---------------------------------------------------------------------------


class KeyValue(SpecModel):
    key: str
    value: str


class AddonMetadata(SpecModel):
    """Whether an add-on is enabled after this build."""

    name: Addon
    enabled: bool


# ---------------------------------------------------------------------------
# LoadBalancer
# ---------------------------------------------------------------------------


class SubnetMapping(SpecModel):
    """One subnet of the load balancer (one per availability zone)."""

    subnet_id: str = Field(..., description="Subnet ID.")
    allocation_id: str | None = Field(None, description="Elastic IP allocation.")
    private_ipv4_address: str | None = Field(None)
    ipv6_address: str | None = Field(None)
    source_nat_ipv6_prefix: str | None = Field(None)


class LoadBalancerSpec(SpecModel):
    name: str = Field(..., description="Load balancer name (<= 32 chars).")
    type: LoadBalancerType
    scheme: LoadBalancerScheme
    ip_address_type: IPAddressType
    subnet_mappings: list[SubnetMapping] = Field(default_factory=list)
    security_groups: list[Token] = Field(default_factory=list)
    attributes: list[KeyValue] = Field(
        default_factory=list, description="Sorted by key."
    )
    minimum_capacity_units: int | None = Field(None, ge=0)
    enable_prefix_for_ipv6_source_nat: Literal["on", "off"] | None = Field(None)
    customer_owned_ipv4_pool: str | None = Field(None)
    ipv4_ipam_pool_id: str | None = Field(None)
    enforce_security_group_inbound_rules_on_private_link_traffic: str | None = Field(
        None
    )
    tags: dict[str, str] = Field(default_factory=dict)

    # ----- validators --------------------------------------------------------
    @field_validator("name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        if not v or len(v) > 32:
            raise ValueError(f"load balancer name must be 1-32 characters: '{v}'")
        return v


# ---------------------------------------------------------------------------
# TargetGroup / TargetGroupBinding
# ---------------------------------------------------------------------------


class HealthCheckMatcher(SpecModel):
    http_code: str | None = Field(None)
    grpc_code: str | None = Field(None)

    @model_validator(mode="after")
    def _one_code(self) -> Self:
        if (self.http_code is None) == (self.grpc_code is None):
            raise ValueError("matcher requires exactly one of http_code/grpc_code")
        return self


class HealthCheckConfig(SpecModel):
    port: str = Field("traffic-port", description="Port or 'traffic-port'.")
    protocol: Protocol
    path: str | None = Field(None)
    matcher: HealthCheckMatcher | None = Field(None)
    interval_seconds: int = Field(..., ge=1)
    timeout_seconds: int = Field(..., ge=1)
    healthy_threshold_count: int = Field(..., ge=1)
    unhealthy_threshold_count: int = Field(..., ge=1)


class TargetGroupSpec(SpecModel):
    name: str = Field(..., description="Target group name (<= 32 chars).")
    target_type: TargetType
    port: int = Field(..., ge=1, le=65535)
    protocol: Protocol
    protocol_version: ProtocolVersion | None = Field(None)
    ip_address_type: TargetGroupIPAddressType = TargetGroupIPAddressType.IPV4
    health_check: HealthCheckConfig
    attributes: list[KeyValue] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)


class ServiceRef(SpecModel):
    name: str
    port: int | str


class NetworkingPort(SpecModel):
    protocol: Literal["TCP", "UDP"]
    # None means every port
    port: int | str | None = None


class NetworkingPeer(SpecModel):
    """Traffic source: a security group or a CIDR block."""

    security_group: Token | None = None
    ip_block: str | None = None


class NetworkingIngressRule(SpecModel):
    from_peers: list[NetworkingPeer]
    ports: list[NetworkingPort]


class TargetGroupBindingNetworking(SpecModel):
    ingress: list[NetworkingIngressRule] = Field(default_factory=list)


class TargetGroupBindingSpec(SpecModel):
    """
    Kubernetes-side binding of a target group to a Service.

    ``target_group_arn`` is None while the binding is being constructed and
    is set to the group's ``ResourceRef`` before registration.
    """

    namespace: str
    name: str
    target_group_arn: Token | None = Field(None)
    target_type: TargetType
    service_ref: ServiceRef
    ip_address_type: TargetGroupIPAddressType
    vpc_id: str
    protocol: Protocol
    node_selector: dict[str, str] | None = Field(None)
    networking: TargetGroupBindingNetworking | None = Field(
        None, description="Ingress rules managed on the backend security group."
    )
    multi_cluster_target_group: bool = False
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Listener / ListenerRule
# ---------------------------------------------------------------------------


class FixedResponseConfig(SpecModel):
    status_code: str
    content_type: str = "text/plain"
    message_body: str | None = None


class RedirectConfig(SpecModel):
    """Redirect target; unset parts keep the value of the original request."""

    status_code: str = Field(..., description="HTTP_301 or HTTP_302.")
    protocol: str | None = None
    host: str | None = None
    port: str | None = None
    path: str | None = None


class TargetGroupTuple(SpecModel):
    target_group_arn: Token
    weight: int | None = Field(None, ge=0)


class ForwardConfig(SpecModel):
    target_groups: list[TargetGroupTuple]


class Action(SpecModel):
    type: ActionType
    forward_config: ForwardConfig | None = None
    fixed_response_config: FixedResponseConfig | None = None
    redirect_config: RedirectConfig | None = None

    @model_validator(mode="after")
    def _config_matches_type(self) -> Self:
        if self.type is ActionType.FORWARD and self.forward_config is None:
            raise ValueError("forward action requires forward_config")
        if (
            self.type is ActionType.FIXED_RESPONSE
            and self.fixed_response_config is None
        ):
            raise ValueError("fixed-response action requires fixed_response_config")
        if self.type is ActionType.REDIRECT and self.redirect_config is None:
            raise ValueError("redirect action requires redirect_config")
        return self


class RuleCondition(SpecModel):
    """
    One listener rule condition.

    ``field`` is one of host-header, path-pattern, http-request-method,
    http-header or query-string.
    """

    field: str
    values: list[str] = Field(default_factory=list)
    http_header_name: str | None = None
    query_strings: list[KeyValue] = Field(default_factory=list)


class MutualAuthenticationAttributes(SpecModel):
    mode: str = Field(..., description="off, passthrough or verify.")
    trust_store_arn: str | None = None
    ignore_client_certificate_expiry: bool | None = None
    advertise_trust_store_ca_names: str | None = None


class ListenerSpec(SpecModel):
    load_balancer_arn: Token
    port: int = Field(..., ge=1, le=65535)
    protocol: Protocol
    default_actions: list[Action]
    certificates: list[str] = Field(default_factory=list)
    ssl_policy: str | None = None
    alpn_policy: list[str] = Field(default_factory=list)
    mutual_authentication: MutualAuthenticationAttributes | None = None
    attributes: list[KeyValue] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)


class ListenerRuleSpec(SpecModel):
    listener_arn: Token
    priority: int = Field(..., ge=1)
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[Action]
    tags: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# SecurityGroup
# ---------------------------------------------------------------------------


class IPPermission(SpecModel):
    ip_protocol: str = Field(..., description="tcp, udp, icmp or icmpv6.")
    from_port: int
    to_port: int
    cidr_ip: str | None = None
    cidr_ipv6: str | None = None
    prefix_list_id: str | None = None
    description: str | None = None


class SecurityGroupSpec(SpecModel):
    group_name: str
    description: str
    tags: dict[str, str] = Field(default_factory=dict)
    ingress: list[IPPermission] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Add-on resources
# ---------------------------------------------------------------------------


class WebACLAssociationSpec(SpecModel):
    """An empty ``web_acl_arn`` disassociates any current web ACL."""

    web_acl_arn: str
    resource_arn: Token


class ProtectionSpec(SpecModel):
    enabled: bool
    resource_arn: Token


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class Resource(BaseModel):
    """A spec registered in a Stack under ``(kind, id)``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: ResourceKind
    id: str = Field(..., min_length=1)
    spec: SerializeAsAny[SpecModel]

    @property
    def key(self) -> tuple[ResourceKind, str]:
        return (self.kind, self.id)

    def ref(self, field: str) -> ResourceRef:
        return ResourceRef(kind=self.kind, id=self.id, field=field)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class LoadBalancer(Resource):
    kind: ResourceKind = ResourceKind.LOAD_BALANCER
    spec: LoadBalancerSpec

    def arn_ref(self) -> ResourceRef:
        return self.ref("loadBalancerARN")

    def dns_name_ref(self) -> ResourceRef:
        return self.ref("dnsName")


class TargetGroup(Resource):
    kind: ResourceKind = ResourceKind.TARGET_GROUP
    spec: TargetGroupSpec

    def arn_ref(self) -> ResourceRef:
        return self.ref("targetGroupARN")


class TargetGroupBinding(Resource):
    kind: ResourceKind = ResourceKind.TARGET_GROUP_BINDING
    spec: TargetGroupBindingSpec


class Listener(Resource):
    kind: ResourceKind = ResourceKind.LISTENER
    spec: ListenerSpec

    def arn_ref(self) -> ResourceRef:
        return self.ref("listenerARN")


class ListenerRule(Resource):
    kind: ResourceKind = ResourceKind.LISTENER_RULE
    spec: ListenerRuleSpec


class SecurityGroup(Resource):
    kind: ResourceKind = ResourceKind.SECURITY_GROUP
    spec: SecurityGroupSpec

    def group_id_ref(self) -> ResourceRef:
        return self.ref("groupID")


class WebACLAssociation(Resource):
    kind: ResourceKind = ResourceKind.WEB_ACL_ASSOCIATION
    spec: WebACLAssociationSpec


class ShieldProtection(Resource):
    kind: ResourceKind = ResourceKind.SHIELD_PROTECTION
    spec: ProtectionSpec
