import hashlib
import logging
from collections.abc import Mapping, Sequence

from gwstack.builders.target_group import sanitize_name
from gwstack.config import BuilderConfig, FeatureGate
from gwstack.core.context import BuildContext
from gwstack.core.protocols import (
    BackendSecurityGroupProvider,
    SecurityGroupLookup,
    TagHelper,
)
from gwstack.core.results import SecurityGroupResult
from gwstack.core.stack import Stack
from gwstack.exceptions import SecurityGroupResolutionError
from gwstack.ir.models import (
    IPAddressType,
    IPPermission,
    LiteralToken,
    SecurityGroup,
    SecurityGroupSpec,
    Token,
)
from gwstack.models import Gateway, LoadBalancerConfiguration, RouteDescriptor, RouteKind

logger = logging.getLogger(__name__)

MANAGED_SECURITY_GROUP_ID = "ManagedLBSecurityGroup"
MANAGED_SECURITY_GROUP_DESCRIPTION = "[k8s] Managed SecurityGroup for LoadBalancer"

DEFAULT_IPV4_SOURCE_RANGE = "0.0.0.0/0"
DEFAULT_IPV6_SOURCE_RANGE = "::/0"

# Path MTU discovery: ICMP "fragmentation needed" / ICMPv6 "packet too big".
ICMPV4_PROTOCOL = "icmp"
ICMPV4_TYPE_PATH_MTU = 3
ICMPV4_CODE_PATH_MTU = 4
ICMPV6_PROTOCOL = "icmpv6"
ICMPV6_TYPE_PATH_MTU = 2
ICMPV6_CODE_PATH_MTU = 0

_UDP_ROUTE_KINDS = frozenset({RouteKind.UDP})


def is_ipv6_cidr(cidr: str) -> bool:
    return ":" in cidr


class DefaultSecurityGroupResolver:
    """
    Decide which security groups front the load balancer.

    Explicitly configured groups are resolved through a lookup and used as
    literal tokens. Otherwise a managed group is added to the Stack with one
    ingress permission per listener port, protocol and source.
    """

    def __init__(
        self,
        config: BuilderConfig,
        tag_helper: TagHelper,
        lookup: SecurityGroupLookup,
        backend_sg_provider: BackendSecurityGroupProvider,
    ):
        self._config = config
        self._tag_helper = tag_helper
        self._lookup = lookup
        self._backend_sg_provider = backend_sg_provider
        self._logger = logger.getChild(self.__class__.__name__)

    def resolve(
        self,
        context: BuildContext,
        stack: Stack,
        lb_config: LoadBalancerConfiguration,
        gateway: Gateway,
        routes_by_port: Mapping[int, Sequence[RouteDescriptor]],
        ip_address_type: IPAddressType,
    ) -> SecurityGroupResult:
        if lb_config.security_groups:
            return self._explicit(context, lb_config, gateway)

        if not self._config.is_application and not self._config.feature_enabled(
            FeatureGate.NLB_SECURITY_GROUP
        ):
            self._logger.debug(
                "Security groups disabled for network load balancer %s",
                gateway.namespaced_name,
            )
            return SecurityGroupResult(security_group_tokens=())

        return self._managed(
            context, stack, lb_config, gateway, routes_by_port, ip_address_type
        )

    # --- Explicit groups ---

    def _explicit(
        self,
        context: BuildContext,
        lb_config: LoadBalancerConfiguration,
        gateway: Gateway,
    ) -> SecurityGroupResult:
        context.check_cancelled()
        group_ids = self._lookup.resolve_ids(context, list(lb_config.security_groups))
        tokens: list[Token] = [LiteralToken(value=gid) for gid in group_ids]

        backend_token: Token | None = None
        allocated = False
        if lb_config.manage_backend_security_group_rules:
            if not self._config.enable_backend_sg:
                raise SecurityGroupResolutionError(
                    "backendSG feature is required to manage worker node SG rules "
                    "when frontendSG manually specified"
                )
            backend_token = self._backend_security_group(context, gateway)
            allocated = True
            tokens.append(backend_token)

        self._logger.info(
            "Using configured security groups for %s: %s (backend managed: %s)",
            gateway.namespaced_name,
            group_ids,
            allocated,
        )
        return SecurityGroupResult(
            security_group_tokens=tuple(tokens),
            backend_security_group_token=backend_token,
            backend_security_group_allocated=allocated,
        )

    # --- Managed group ---

    def _managed(
        self,
        context: BuildContext,
        stack: Stack,
        lb_config: LoadBalancerConfiguration,
        gateway: Gateway,
        routes_by_port: Mapping[int, Sequence[RouteDescriptor]],
        ip_address_type: IPAddressType,
    ) -> SecurityGroupResult:
        spec = SecurityGroupSpec(
            group_name=self.managed_group_name(gateway),
            description=MANAGED_SECURITY_GROUP_DESCRIPTION,
            tags=self._tag_helper.gateway_tags(lb_config),
            ingress=self.ingress_permissions(lb_config, routes_by_port, ip_address_type),
        )
        managed = stack.add_resource(SecurityGroup(id=MANAGED_SECURITY_GROUP_ID, spec=spec))
        tokens: list[Token] = [managed.group_id_ref()]

        if self._config.enable_backend_sg:
            backend_token = self._backend_security_group(context, gateway)
            allocated = True
            tokens.append(backend_token)
        else:
            backend_token = managed.group_id_ref()
            allocated = False

        self._logger.info(
            "Managed security group '%s' for %s with %d ingress permission(s)",
            spec.group_name,
            gateway.namespaced_name,
            len(spec.ingress),
        )
        return SecurityGroupResult(
            security_group_tokens=tuple(tokens),
            backend_security_group_token=backend_token,
            backend_security_group_allocated=allocated,
        )

    def managed_group_name(self, gateway: Gateway) -> str:
        digest = hashlib.sha256()
        for part in (self._config.cluster_name, gateway.name, gateway.namespace, gateway.uid):
            digest.update(part.encode())
        namespace = sanitize_name(gateway.namespace)[:8]
        name = sanitize_name(gateway.name)[:8]
        return f"k8s-{namespace}-{name}-{digest.hexdigest()[:10]}"

    def ingress_permissions(
        self,
        lb_config: LoadBalancerConfiguration,
        routes_by_port: Mapping[int, Sequence[RouteDescriptor]],
        ip_address_type: IPAddressType,
    ) -> list[IPPermission]:
        include_ipv6 = ip_address_type.is_dualstack
        prefixes = list(lb_config.security_group_prefixes)
        source_ranges = list(lb_config.source_ranges)
        if not source_ranges and not prefixes:
            source_ranges = [DEFAULT_IPV4_SOURCE_RANGE]
            if include_ipv6:
                source_ranges.append(DEFAULT_IPV6_SOURCE_RANGE)

        permissions: list[IPPermission] = []
        for port in sorted(routes_by_port):
            for protocol in self.protocols_for_routes(routes_by_port[port]):
                for cidr in source_ranges:
                    if not is_ipv6_cidr(cidr):
                        permissions.append(
                            IPPermission(
                                ip_protocol=protocol, from_port=port, to_port=port, cidr_ip=cidr
                            )
                        )
                        if lb_config.enable_icmp:
                            permissions.append(
                                IPPermission(
                                    ip_protocol=ICMPV4_PROTOCOL,
                                    from_port=ICMPV4_TYPE_PATH_MTU,
                                    to_port=ICMPV4_CODE_PATH_MTU,
                                    cidr_ip=cidr,
                                )
                            )
                    elif include_ipv6:
                        permissions.append(
                            IPPermission(
                                ip_protocol=protocol, from_port=port, to_port=port, cidr_ipv6=cidr
                            )
                        )
                        if lb_config.enable_icmp:
                            permissions.append(
                                IPPermission(
                                    ip_protocol=ICMPV6_PROTOCOL,
                                    from_port=ICMPV6_TYPE_PATH_MTU,
                                    to_port=ICMPV6_CODE_PATH_MTU,
                                    cidr_ipv6=cidr,
                                )
                            )
                for prefix_id in prefixes:
                    permissions.append(
                        IPPermission(
                            ip_protocol=protocol,
                            from_port=port,
                            to_port=port,
                            prefix_list_id=prefix_id,
                        )
                    )
        return permissions

    @staticmethod
    def protocols_for_routes(routes: Sequence[RouteDescriptor]) -> list[str]:
        protocols = {"udp" if r.kind in _UDP_ROUTE_KINDS else "tcp" for r in routes}
        return sorted(protocols)

    def _backend_security_group(self, context: BuildContext, gateway: Gateway) -> Token:
        context.check_cancelled()
        return LiteralToken(value=self._backend_sg_provider.get(context, gateway))
