"""Resource specs and tokens placed into a Stack."""

from .models import (
    ALL_ADDONS,
    L4_PROTOCOLS,
    L7_PROTOCOLS,
    SCHEMA_VERSION,
    Action,
    ActionType,
    Addon,
    AddonMetadata,
    FixedResponseConfig,
    ForwardConfig,
    HealthCheckConfig,
    HealthCheckMatcher,
    IPAddressType,
    IPPermission,
    KeyValue,
    NetworkingIngressRule,
    NetworkingPeer,
    NetworkingPort,
    Listener,
    ListenerRule,
    ListenerRuleSpec,
    ListenerSpec,
    LiteralToken,
    LoadBalancer,
    LoadBalancerScheme,
    LoadBalancerSpec,
    LoadBalancerType,
    ProtectionSpec,
    Protocol,
    ProtocolVersion,
    Resource,
    ResourceKind,
    ResourceRef,
    RuleCondition,
    SecurityGroup,
    SecurityGroupSpec,
    ServiceRef,
    ShieldProtection,
    SpecModel,
    SubnetMapping,
    TargetGroup,
    TargetGroupBinding,
    TargetGroupBindingNetworking,
    TargetGroupBindingSpec,
    TargetGroupIPAddressType,
    TargetGroupSpec,
    TargetGroupTuple,
    TargetType,
    Token,
    WebACLAssociation,
    WebACLAssociationSpec,
)

__all__ = [
    "ALL_ADDONS",
    "L4_PROTOCOLS",
    "L7_PROTOCOLS",
    "SCHEMA_VERSION",
    "Action",
    "ActionType",
    "Addon",
    "AddonMetadata",
    "FixedResponseConfig",
    "ForwardConfig",
    "HealthCheckConfig",
    "HealthCheckMatcher",
    "IPAddressType",
    "IPPermission",
    "KeyValue",
    "NetworkingIngressRule",
    "NetworkingPeer",
    "NetworkingPort",
    "Listener",
    "ListenerRule",
    "ListenerRuleSpec",
    "ListenerSpec",
    "LiteralToken",
    "LoadBalancer",
    "LoadBalancerScheme",
    "LoadBalancerSpec",
    "LoadBalancerType",
    "ProtectionSpec",
    "Protocol",
    "ProtocolVersion",
    "Resource",
    "ResourceKind",
    "ResourceRef",
    "RuleCondition",
    "SecurityGroup",
    "SecurityGroupSpec",
    "ServiceRef",
    "ShieldProtection",
    "SpecModel",
    "SubnetMapping",
    "TargetGroup",
    "TargetGroupBinding",
    "TargetGroupBindingNetworking",
    "TargetGroupBindingSpec",
    "TargetGroupIPAddressType",
    "TargetGroupSpec",
    "TargetGroupTuple",
    "TargetType",
    "Token",
    "WebACLAssociation",
    "WebACLAssociationSpec",
]
