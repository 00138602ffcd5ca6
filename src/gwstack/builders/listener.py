"""
Listener builder

Turns the Gateway listeners that have attached routes into Listener
resources. Application load balancers get one ListenerRule per route rule
match, in precedence order; network load balancers forward each listener to
the single backend of its single route.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from gwstack.builders.precedence import RulePrecedence, sort_rules_by_precedence
from gwstack.builders.target_group import TargetGroupBuilder, TargetGroupOutput
from gwstack.config import BuilderConfig, FeatureGate
from gwstack.core.context import BuildContext
from gwstack.core.protocols import (
    CertificateDiscovery,
    SecretResolver,
    TagHelper,
    TrustStoreResolver,
)
from gwstack.core.results import SecurityGroupResult
from gwstack.core.stack import Stack
from gwstack.exceptions import ListenerConfigurationError
from gwstack.ir.models import (
    L4_PROTOCOLS,
    L7_PROTOCOLS,
    Action,
    ActionType,
    FixedResponseConfig,
    ForwardConfig,
    KeyValue,
    Listener,
    ListenerRule,
    ListenerRuleSpec,
    ListenerSpec,
    LoadBalancer,
    MutualAuthenticationAttributes,
    Protocol,
    RedirectConfig,
    RuleCondition,
    TargetGroupTuple,
)
from gwstack.models import (
    Gateway,
    ListenerConfiguration,
    LoadBalancerConfiguration,
    MutualAuthenticationMode,
    PathMatch,
    PathMatchType,
    RedirectPathType,
    RequestRedirect,
    RouteDescriptor,
    RouteFilter,
    RouteFilterType,
    RouteKind,
    RouteMatch,
    SecretReference,
)

logger = logging.getLogger(__name__)

ALPN_POLICIES = (
    "None",
    "HTTP1Only",
    "HTTP2Only",
    "HTTP2Optional",
    "HTTP2Preferred",
)
DEFAULT_ALPN_POLICY = "None"


@dataclass
class GatewayListenerConfig:
    """Gateway listeners merged by port."""

    protocol: Protocol
    hostnames: list[str] = field(default_factory=list)
    certificate_refs: list[SecretReference] = field(default_factory=list)


def fixed_response(status_code: str) -> Action:
    return Action(
        type=ActionType.FIXED_RESPONSE,
        fixed_response_config=FixedResponseConfig(status_code=status_code),
    )


def map_gateway_listeners(
    gateway: Gateway, load_balancer_is_application: bool
) -> dict[int, GatewayListenerConfig]:
    """
    Group the Gateway listeners by port.

    Raises:
        ListenerConfigurationError: If listeners sharing a port disagree on
            the protocol, or a protocol is not served by the load balancer.
    """
    allowed = L7_PROTOCOLS if load_balancer_is_application else L4_PROTOCOLS
    by_port: dict[int, GatewayListenerConfig] = {}
    for listener in gateway.listeners:
        try:
            protocol = Protocol(listener.protocol)
        except ValueError:
            protocol = None
        if protocol not in allowed:
            raise ListenerConfigurationError(
                f"listener {listener.name} on gateway {gateway.namespaced_name} "
                f"uses unsupported protocol {listener.protocol}"
            )

        existing = by_port.get(listener.port)
        if existing is None:
            existing = by_port[listener.port] = GatewayListenerConfig(protocol=protocol)
        elif existing.protocol is not protocol:
            raise ListenerConfigurationError(
                "invalid listeners on gateway, listeners with same ports cannot "
                "have different protocols"
            )
        if listener.hostname:
            existing.hostnames.append(listener.hostname)
        if listener.tls is not None:
            existing.certificate_refs.extend(listener.tls.certificate_refs)
    return by_port


class ListenerBuilder:
    """
    Build listeners, listener rules and target groups for one Stack.

    A new instance is created for every build: it owns the target group
    registry and the set of secrets referenced by the build.
    """

    def __init__(
        self,
        config: BuilderConfig,
        target_group_builder: TargetGroupBuilder,
        tag_helper: TagHelper,
        certificate_discovery: CertificateDiscovery | None = None,
        secret_resolver: SecretResolver | None = None,
        trust_store_resolver: TrustStoreResolver | None = None,
    ):
        self._config = config
        self._tg_builder = target_group_builder
        self._tag_helper = tag_helper
        self._certificate_discovery = certificate_discovery
        self._secret_resolver = secret_resolver
        self._trust_store_resolver = trust_store_resolver
        self._registry: dict[str, TargetGroupOutput] = {}
        self.referenced_secrets: set[str] = set()
        self._logger = logger.getChild(self.__class__.__name__)

    def build_listeners(
        self,
        context: BuildContext,
        stack: Stack,
        load_balancer: LoadBalancer,
        security_groups: SecurityGroupResult,
        gateway: Gateway,
        routes_by_port: Mapping[int, Sequence[RouteDescriptor]],
        lb_config: LoadBalancerConfiguration,
    ) -> list[Listener]:
        gw_listeners = map_gateway_listeners(gateway, self._config.is_application)
        ports = sorted(set(gw_listeners) & {p for p, r in routes_by_port.items() if r})
        unattached = sorted(set(gw_listeners) - set(ports))
        if unattached:
            self._logger.debug("Ports without attached routes: %s", unattached)

        listeners: list[Listener] = []
        for port in ports:
            context.check_cancelled()
            gw_cfg = gw_listeners[port]
            lb_ls_cfg = lb_config.listener_configuration(gw_cfg.protocol.value, port)
            routes = list(routes_by_port[port])

            if self._config.is_application:
                default_actions = [fixed_response("404")]
            else:
                forward = self._l4_default_action(
                    stack, gateway, lb_config, load_balancer, security_groups, port, routes
                )
                if forward is None:
                    continue
                default_actions = [forward]

            spec = self._listener_spec(
                context, load_balancer, gateway, port, lb_config, gw_cfg, lb_ls_cfg, default_actions
            )
            listener = stack.add_resource(Listener(id=str(port), spec=spec))
            listeners.append(listener)
            self._logger.info(
                "Built listener %s:%d for gateway %s",
                spec.protocol.value,
                port,
                gateway.namespaced_name,
            )

            if self._config.is_application:
                self._build_rules(
                    stack, listener, load_balancer, security_groups, gateway, port, lb_config, routes
                )
        return listeners

    # --- Listener spec ---

    def _listener_spec(
        self,
        context: BuildContext,
        load_balancer: LoadBalancer,
        gateway: Gateway,
        port: int,
        lb_config: LoadBalancerConfiguration,
        gw_cfg: GatewayListenerConfig,
        lb_ls_cfg: ListenerConfiguration | None,
        default_actions: list[Action],
    ) -> ListenerSpec:
        protocol = gw_cfg.protocol
        attributes: list[KeyValue] = []
        if lb_ls_cfg is not None:
            attributes = [
                KeyValue(key=a.key, value=a.value) for a in lb_ls_cfg.listener_attributes
            ]

        ssl_policy = None
        if protocol.is_secure:
            ssl_policy = (lb_ls_cfg.ssl_policy if lb_ls_cfg else None) or self._config.default_ssl_policy

        return ListenerSpec(
            load_balancer_arn=load_balancer.arn_ref(),
            port=port,
            protocol=protocol,
            default_actions=default_actions,
            certificates=self._certificates(context, gateway, port, gw_cfg, lb_ls_cfg),
            ssl_policy=ssl_policy,
            alpn_policy=self._alpn_policy(protocol, lb_ls_cfg),
            mutual_authentication=self._mutual_authentication(context, protocol, lb_ls_cfg),
            attributes=attributes,
            tags=self._tag_helper.gateway_tags(lb_config),
        )

    @staticmethod
    def _alpn_policy(
        protocol: Protocol, lb_ls_cfg: ListenerConfiguration | None
    ) -> list[str]:
        if protocol is not Protocol.TLS:
            return []
        if lb_ls_cfg is None or lb_ls_cfg.alpn_policy is None:
            return [DEFAULT_ALPN_POLICY]
        if lb_ls_cfg.alpn_policy not in ALPN_POLICIES:
            raise ListenerConfigurationError(
                f"invalid ALPN policy {lb_ls_cfg.alpn_policy}, policy must be one of "
                f"[{', '.join(ALPN_POLICIES)}]"
            )
        return [lb_ls_cfg.alpn_policy]

    def _mutual_authentication(
        self,
        context: BuildContext,
        protocol: Protocol,
        lb_ls_cfg: ListenerConfiguration | None,
    ) -> MutualAuthenticationAttributes | None:
        """mTLS attributes of a secure listener; ``off`` unless configured."""
        if not protocol.is_secure:
            return None
        if lb_ls_cfg is None or lb_ls_cfg.mutual_authentication is None:
            return MutualAuthenticationAttributes(mode=MutualAuthenticationMode.OFF.value)

        mtls = lb_ls_cfg.mutual_authentication
        trust_store_arn = None
        ignore_expiry = mtls.ignore_client_certificate_expiry
        if mtls.mode is MutualAuthenticationMode.VERIFY:
            trust_store_arn = self._trust_store_arn(context, mtls.trust_store, lb_ls_cfg)
            if ignore_expiry is None:
                ignore_expiry = False
        return MutualAuthenticationAttributes(
            mode=mtls.mode.value,
            trust_store_arn=trust_store_arn,
            ignore_client_certificate_expiry=ignore_expiry,
            advertise_trust_store_ca_names=mtls.advertise_trust_store_ca_names,
        )

    def _trust_store_arn(
        self, context: BuildContext, trust_store: str | None, lb_ls_cfg: ListenerConfiguration
    ) -> str:
        if not trust_store:
            raise ListenerConfigurationError(
                f"listener {lb_ls_cfg.protocol_port} uses mutual authentication mode "
                "verify without a trustStore"
            )
        if trust_store.startswith("arn:"):
            return trust_store
        if self._trust_store_resolver is None:
            raise ListenerConfigurationError(
                f"failed to resolve trustStore ARN for name {trust_store}: "
                "no trust store resolver configured"
            )
        context.check_cancelled()
        return self._trust_store_resolver.resolve_trust_store_arn(context, trust_store)

    def _certificates(
        self,
        context: BuildContext,
        gateway: Gateway,
        port: int,
        gw_cfg: GatewayListenerConfig,
        lb_ls_cfg: ListenerConfiguration | None,
    ) -> list[str]:
        """
        Certificate ARNs for a secure listener, default certificate first.

        Explicit configuration wins over Gateway TLS secrets, which win over
        discovery by hostname.
        """
        if not gw_cfg.protocol.is_secure:
            return []

        certificates: list[str] = []
        if lb_ls_cfg is not None:
            if lb_ls_cfg.default_certificate:
                certificates.append(lb_ls_cfg.default_certificate)
            certificates.extend(lb_ls_cfg.certificates)
        if certificates:
            return certificates

        if gw_cfg.certificate_refs:
            return self._certificates_from_secrets(context, gateway, gw_cfg.certificate_refs)

        if not gw_cfg.hostnames:
            raise ListenerConfigurationError(
                f"No hostnames found for TLS cert discovery for listener on gateway "
                f"{gateway.namespaced_name} with protocol:port {gw_cfg.protocol.value}:{port}"
            )
        if self._certificate_discovery is None:
            raise ListenerConfigurationError(
                f"no certificate discovery configured for listener "
                f"{gw_cfg.protocol.value}:{port} on gateway {gateway.namespaced_name}"
            )
        context.check_cancelled()
        return self._certificate_discovery.discover(context, sorted(set(gw_cfg.hostnames)))

    def _certificates_from_secrets(
        self,
        context: BuildContext,
        gateway: Gateway,
        refs: Sequence[SecretReference],
    ) -> list[str]:
        if self._secret_resolver is None:
            raise ListenerConfigurationError(
                f"gateway {gateway.namespaced_name} references TLS secrets but no "
                "secret resolver is configured"
            )
        certificates: list[str] = []
        for ref in refs:
            namespace = ref.namespace or gateway.namespace
            resolved_ref = SecretReference(name=ref.name, namespace=namespace)
            context.check_cancelled()
            arn = self._secret_resolver.resolve_certificate(context, resolved_ref)
            self.referenced_secrets.add(f"{namespace}/{ref.name}")
            if arn not in certificates:
                certificates.append(arn)
        return certificates

    # --- Network load balancer ---

    def _l4_default_action(
        self,
        stack: Stack,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration,
        load_balancer: LoadBalancer,
        security_groups: SecurityGroupResult,
        port: int,
        routes: list[RouteDescriptor],
    ) -> Action | None:
        if len(routes) > 1:
            names = ", ".join(r.namespaced_name for r in routes)
            raise ListenerConfigurationError(
                f"multiple routes [{names}] are not supported for listener on port "
                f"{port} for gateway {gateway.namespaced_name}"
            )
        route = routes[0]
        if len(route.rules) > 1:
            raise ListenerConfigurationError(
                f"multiple rules found for route {route.namespaced_name} on port {port}, "
                "only one must be specified"
            )
        backends = route.rules[0].backends if route.rules else []
        if not backends:
            self._logger.info(
                "Skipping listener on port %d: route %s has no backend",
                port,
                route.namespaced_name,
            )
            return None
        if len(backends) > 1:
            raise ListenerConfigurationError(
                f"multiple backend refs found for route {route.namespaced_name} for "
                f"listener on port {port} for gateway {gateway.namespaced_name}, "
                "only one must be specified"
            )
        backend = backends[0]
        if backend.weight == 0:
            self._logger.info(
                "Ignoring backend with 0 weight for route %s", route.namespaced_name
            )
            return None

        output = self._tg_builder.build_target_group(
            self._registry,
            stack,
            gateway,
            lb_config,
            load_balancer.spec.ip_address_type,
            route,
            backend,
            security_groups.backend_security_group_token,
        )
        return Action(
            type=ActionType.FORWARD,
            forward_config=ForwardConfig(
                target_groups=[TargetGroupTuple(target_group_arn=output.target_group_arn)]
            ),
        )

    # --- Application load balancer rules ---

    def _build_rules(
        self,
        stack: Stack,
        listener: Listener,
        load_balancer: LoadBalancer,
        security_groups: SecurityGroupResult,
        gateway: Gateway,
        port: int,
        lb_config: LoadBalancerConfiguration,
        routes: list[RouteDescriptor],
    ) -> None:
        tag_rules = self._config.feature_enabled(FeatureGate.LISTENER_RULES_TAGGING)
        priority = 1
        for entry in sort_rules_by_precedence(routes, port):
            conditions = build_rule_conditions(entry, port)
            actions = self._rule_actions(
                stack, entry, load_balancer, security_groups, gateway, lb_config
            )
            stack.add_resource(
                ListenerRule(
                    id=f"{port}:{priority}",
                    spec=ListenerRuleSpec(
                        listener_arn=listener.arn_ref(),
                        priority=priority,
                        conditions=conditions,
                        actions=actions,
                        tags=self._tag_helper.gateway_tags(lb_config) if tag_rules else {},
                    ),
                )
            )
            priority += 1
        self._logger.debug("Built %d rule(s) for listener %d", priority - 1, port)

    def _rule_actions(
        self,
        stack: Stack,
        entry: RulePrecedence,
        load_balancer: LoadBalancer,
        security_groups: SecurityGroupResult,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration,
    ) -> list[Action]:
        tuples: list[TargetGroupTuple] = []
        for backend in entry.rule.backends:
            output = self._tg_builder.build_target_group(
                self._registry,
                stack,
                gateway,
                lb_config,
                load_balancer.spec.ip_address_type,
                entry.route,
                backend,
                security_groups.backend_security_group_token,
            )
            tuples.append(
                TargetGroupTuple(target_group_arn=output.target_group_arn, weight=backend.weight)
            )

        redirect = build_redirect_action(entry.route.kind, entry.rule.filters)
        if redirect is not None:
            return [redirect]

        if not any(t.weight != 0 for t in tuples):
            self._logger.info(
                "No routable backend for rule %d of route %s; responding 503",
                entry.rule_index,
                entry.route.namespaced_name,
            )
            return [fixed_response("503")]

        if len(tuples) > 1 and not self._config.feature_enabled(
            FeatureGate.WEIGHTED_TARGET_GROUPS
        ):
            raise ListenerConfigurationError(
                f"rule {entry.rule_index} of route {entry.route.namespaced_name} "
                "forwards to multiple target groups but weighted target groups "
                "are disabled"
            )
        return [Action(type=ActionType.FORWARD, forward_config=ForwardConfig(target_groups=tuples))]


# ----- Rule actions -----

_IGNORED_HTTP_FILTERS = (RouteFilterType.EXTENSION_REF, RouteFilterType.URL_REWRITE)


def build_redirect_action(route_kind: RouteKind, filters: Sequence[RouteFilter]) -> Action | None:
    """
    Redirect action of a rule's ``RequestRedirect`` filter, if it has one.

    HTTP rules may also carry ExtensionRef and URLRewrite filters, which do
    not produce an action; GRPC rules only ExtensionRef filters.

    Raises:
        ListenerConfigurationError: On an unsupported filter or redirect.
    """
    for route_filter in filters:
        if route_kind is RouteKind.GRPC:
            if route_filter.type is not RouteFilterType.EXTENSION_REF:
                raise ListenerConfigurationError(
                    f"Unsupported filter type: {route_filter.type.value}. To specify header "
                    "modification, please configure it through LoadBalancerConfiguration."
                )
            continue
        if route_filter.type is RouteFilterType.REQUEST_REDIRECT:
            return _redirect_action(route_filter.request_redirect)
        if route_filter.type not in _IGNORED_HTTP_FILTERS:
            raise ListenerConfigurationError(
                f"Unsupported filter type: {route_filter.type.value}. Only request redirect "
                "is supported. To specify header modification, please configure it "
                "through LoadBalancerConfiguration."
            )
    return None


def _redirect_action(redirect: RequestRedirect) -> Action:
    protocol = None
    if redirect.scheme is not None:
        protocol = redirect.scheme.upper()
        if protocol not in ("HTTP", "HTTPS"):
            raise ListenerConfigurationError(f"unsupported redirect scheme: {protocol}")

    path = None
    if redirect.path is not None:
        if redirect.path.type is RedirectPathType.REPLACE_FULL_PATH:
            path = redirect.path.replace_full_path
            label = "ReplaceFullPath"
        else:
            path = redirect.path.replace_prefix_match
            label = "ReplacePrefixMatch"
        if path is None:
            raise ListenerConfigurationError(f"redirect path of type {label} has no value")
        if "*" in path or "?" in path:
            raise ListenerConfigurationError(f"{label} shouldn't contain wildcards: {path}")
        if redirect.path.type is RedirectPathType.REPLACE_PREFIX_MATCH:
            path = f"{path}/*"

    port = str(redirect.port) if redirect.port is not None else None
    if protocol is None and port is None and path is None and redirect.hostname is None:
        raise ListenerConfigurationError(
            "To avoid a redirect loop, you must modify at least one of the following "
            "components: protocol, port, hostname or path."
        )
    return Action(
        type=ActionType.REDIRECT,
        redirect_config=RedirectConfig(
            status_code=f"HTTP_{redirect.status_code}",
            protocol=protocol,
            host=redirect.hostname,
            port=port,
            path=path,
        ),
    )


# ----- Rule conditions -----


def build_rule_conditions(entry: RulePrecedence, port: int | None = None) -> list[RuleCondition]:
    """Conditions of one listener rule; all of them must match."""
    conditions: list[RuleCondition] = []
    hostnames = entry.route.hostnames_for_port(port)
    if hostnames:
        conditions.append(RuleCondition(field="host-header", values=list(hostnames)))

    if entry.route.kind is RouteKind.GRPC:
        conditions.extend(_grpc_conditions(entry.match))
    else:
        conditions.extend(_http_conditions(entry.match))
    return conditions


def _http_conditions(match: RouteMatch | None) -> list[RuleCondition]:
    if match is None:
        return [_path_condition(PathMatch())]

    # An omitted path matches every path (PathPrefix "/").
    conditions = [_path_condition(match.path or PathMatch())]
    for header in match.headers:
        conditions.append(
            RuleCondition(field="http-header", http_header_name=header.name, values=[header.value])
        )
    for query in match.query_params:
        conditions.append(
            RuleCondition(
                field="query-string",
                query_strings=[KeyValue(key=query.name, value=query.value)],
            )
        )
    if match.method:
        conditions.append(RuleCondition(field="http-request-method", values=[match.method]))
    return conditions


def _path_condition(path: PathMatch) -> RuleCondition:
    value = path.value
    if path.type is PathMatchType.PREFIX:
        if "*" in value or "?" in value:
            raise ListenerConfigurationError(
                f"prefix path shouldn't contain wildcards: {value}"
            )
        if value == "/":
            values = ["/*"]
        else:
            trimmed = value.rstrip("/")
            values = [trimmed, f"{trimmed}/*"]
    elif path.type is PathMatchType.EXACT:
        if "*" in value or "?" in value:
            raise ListenerConfigurationError(
                f"exact path shouldn't contain wildcards: {value}"
            )
        values = [value]
    else:
        values = [value]
    return RuleCondition(field="path-pattern", values=values)


def _grpc_conditions(match: RouteMatch | None) -> list[RuleCondition]:
    if match is None or match.grpc_method is None:
        conditions = [RuleCondition(field="path-pattern", values=["/*"])]
    else:
        method = match.grpc_method
        if method.service and method.method:
            value = f"/{method.service}/{method.method}"
        elif method.service:
            value = f"/{method.service}/*"
        elif method.method:
            value = f"/*/{method.method}"
        else:
            raise ListenerConfigurationError(
                "grpc method match requires a service or a method"
            )
        conditions = [RuleCondition(field="path-pattern", values=[value])]

    if match is not None:
        for header in match.headers:
            conditions.append(
                RuleCondition(
                    field="http-header", http_header_name=header.name, values=[header.value]
                )
            )
    return conditions
