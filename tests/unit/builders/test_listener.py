"""Unit tests for listeners, listener rules and rule conditions."""

from __future__ import annotations

import pytest

from gwstack.builders.listener import (
    ListenerBuilder,
    build_redirect_action,
    build_rule_conditions,
    map_gateway_listeners,
)
from gwstack.builders.precedence import RulePrecedence
from gwstack.builders.tags import DefaultTagHelper
from gwstack.builders.target_group import TargetGroupBuilder
from gwstack.collaborators import (
    StaticCertificateDiscovery,
    StaticSecretResolver,
    StaticTrustStoreResolver,
)
from gwstack.config import BuilderConfig, FeatureGate
from gwstack.core.context import BuildContext
from gwstack.core.results import SecurityGroupResult
from gwstack.core.stack import Stack
from gwstack.exceptions import ListenerConfigurationError
from gwstack.ir.models import (
    ActionType,
    IPAddressType,
    LiteralToken,
    LoadBalancer,
    LoadBalancerScheme,
    LoadBalancerSpec,
    Protocol,
    ResourceKind,
)
from gwstack.models import (
    Backend,
    Gateway,
    GatewayListener,
    GRPCMethodMatch,
    HeaderMatch,
    ListenerConfiguration,
    ListenerTLSConfig,
    LoadBalancerConfiguration,
    MutualAuthenticationConfiguration,
    PathMatch,
    PathMatchType,
    QueryParamMatch,
    RedirectPath,
    RequestRedirect,
    RouteDescriptor,
    RouteFilter,
    RouteFilterType,
    RouteKind,
    RouteMatch,
    RouteRule,
    SecretReference,
    ServiceBackend,
    ServicePort,
)

# -------------------- Fakes / helpers --------------------

SG_RESULT = SecurityGroupResult(
    security_group_tokens=(LiteralToken(value="sg-backend"),),
    backend_security_group_token=LiteralToken(value="sg-backend"),
    backend_security_group_allocated=True,
)


def gateway(*listeners: GatewayListener) -> Gateway:
    return Gateway(namespace="ns", name="gw1", listeners=list(listeners))


def http_listener(port: int = 80, name: str = "http", **kwargs) -> GatewayListener:
    return GatewayListener(name=name, port=port, protocol=kwargs.pop("protocol", "HTTP"), **kwargs)


def svc(name: str = "svc", weight: int = 1) -> Backend:
    return Backend(
        weight=weight,
        service=ServiceBackend(
            service_name=name,
            service_namespace="ns",
            service_port=ServicePort(port=80, target_port=8080, node_port=30080),
        ),
    )


def load_balancer(config: BuilderConfig) -> LoadBalancer:
    return LoadBalancer(
        id="LoadBalancer",
        spec=LoadBalancerSpec(
            name="k8s-ns-gw1-0123456789",
            type=config.load_balancer_type,
            scheme=LoadBalancerScheme.INTERNAL,
            ip_address_type=IPAddressType.IPV4,
        ),
    )


def make_builder(config: BuilderConfig, **kwargs) -> ListenerBuilder:
    tags = DefaultTagHelper(default_tags={"env": "test"})
    return ListenerBuilder(config, TargetGroupBuilder(config, tags), tags, **kwargs)


def build(
    config: BuilderConfig,
    context: BuildContext,
    stack: Stack,
    gw: Gateway,
    routes_by_port,
    lb_config: LoadBalancerConfiguration | None = None,
    **kwargs,
):
    builder = make_builder(config, **kwargs)
    listeners = builder.build_listeners(
        context,
        stack,
        load_balancer(config),
        SG_RESULT,
        gw,
        routes_by_port,
        lb_config or LoadBalancerConfiguration(),
    )
    return builder, listeners


def entry(route: RouteDescriptor, match: RouteMatch | None) -> RulePrecedence:
    rule = route.rules[0] if route.rules else RouteRule()
    return RulePrecedence(route, rule, 0, match, 0)


# --------------------------- Tests ---------------------------


class TestMapGatewayListeners:
    def test_merges_same_port(self) -> None:
        gw = gateway(
            http_listener(443, "a", protocol="HTTPS", hostname="a.example.com"),
            http_listener(443, "b", protocol="https", hostname="b.example.com"),
        )
        mapped = map_gateway_listeners(gw, True)
        assert mapped[443].protocol is Protocol.HTTPS
        assert mapped[443].hostnames == ["a.example.com", "b.example.com"]

    def test_conflicting_protocols(self) -> None:
        gw = gateway(http_listener(80, "a"), http_listener(80, "b", protocol="HTTPS"))
        with pytest.raises(ListenerConfigurationError, match="same ports"):
            map_gateway_listeners(gw, True)

    def test_l4_protocol_on_application_lb(self) -> None:
        with pytest.raises(ListenerConfigurationError, match="unsupported protocol TCP"):
            map_gateway_listeners(gateway(http_listener(80, protocol="TCP")), True)

    def test_l7_protocol_on_network_lb(self) -> None:
        with pytest.raises(ListenerConfigurationError, match="unsupported protocol HTTP"):
            map_gateway_listeners(gateway(http_listener(80)), False)


class TestApplicationListeners:
    def test_listener_and_rule(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        route = RouteDescriptor(
            kind=RouteKind.HTTP, namespace="ns", name="r1", rules=[RouteRule(backends=[svc()])]
        )
        _, listeners = build(alb_config, context, stack, gateway(http_listener()), {80: [route]})

        assert [ls.id for ls in listeners] == ["80"]
        spec = listeners[0].spec
        assert spec.protocol is Protocol.HTTP
        assert spec.default_actions[0].type is ActionType.FIXED_RESPONSE
        assert spec.default_actions[0].fixed_response_config.status_code == "404"
        assert spec.certificates == []
        assert spec.ssl_policy is None

        rule = stack.get(ResourceKind.LISTENER_RULE, "80:1")
        assert rule.spec.priority == 1
        assert rule.spec.listener_arn == listeners[0].arn_ref()
        assert [(c.field, c.values) for c in rule.spec.conditions] == [("path-pattern", ["/*"])]
        assert rule.spec.actions[0].type is ActionType.FORWARD
        assert rule.spec.tags == {"env": "test"}

    def test_ports_without_routes_skipped(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(http_listener(80), http_listener(8080, "alt"))
        route = RouteDescriptor(kind=RouteKind.HTTP, namespace="ns", name="r1")
        _, listeners = build(alb_config, context, stack, gw, {80: [], 8080: [route], 9090: [route]})
        assert [ls.spec.port for ls in listeners] == [8080]

    def test_rule_priorities_follow_precedence(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        generic = RouteDescriptor(
            kind=RouteKind.HTTP,
            namespace="ns",
            name="generic",
            hostnames=["*.example.com"],
            rules=[RouteRule(backends=[svc("a")])],
        )
        specific = RouteDescriptor(
            kind=RouteKind.HTTP,
            namespace="ns",
            name="specific",
            hostnames=["api.example.com"],
            rules=[RouteRule(backends=[svc("b")])],
        )
        build(alb_config, context, stack, gateway(http_listener()), {80: [generic, specific]})
        first = stack.get(ResourceKind.LISTENER_RULE, "80:1")
        second = stack.get(ResourceKind.LISTENER_RULE, "80:2")
        assert first.spec.conditions[0].values == ["api.example.com"]
        assert second.spec.conditions[0].values == ["*.example.com"]

    def test_zero_weight_backends_respond_503(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        route = RouteDescriptor(
            kind=RouteKind.HTTP,
            namespace="ns",
            name="r1",
            rules=[RouteRule(backends=[svc(weight=0)]), RouteRule()],
        )
        build(alb_config, context, stack, gateway(http_listener()), {80: [route]})
        for rule_id in ("80:1", "80:2"):
            action = stack.get(ResourceKind.LISTENER_RULE, rule_id).spec.actions[0]
            assert action.fixed_response_config.status_code == "503"

    def test_weighted_forward(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        route = RouteDescriptor(
            kind=RouteKind.HTTP,
            namespace="ns",
            name="r1",
            rules=[RouteRule(backends=[svc("a", 80), svc("b", 20)])],
        )
        build(alb_config, context, stack, gateway(http_listener()), {80: [route]})
        forward = stack.get(ResourceKind.LISTENER_RULE, "80:1").spec.actions[0].forward_config
        assert [t.weight for t in forward.target_groups] == [80, 20]
        assert len(stack.resources(ResourceKind.TARGET_GROUP)) == 2

    def test_weighted_disabled(self, context: BuildContext, stack: Stack) -> None:
        config = BuilderConfig(
            cluster_name="cluster",
            vpc_id="vpc-123",
            feature_gates={FeatureGate.WEIGHTED_TARGET_GROUPS: False},
        )
        route = RouteDescriptor(
            kind=RouteKind.HTTP,
            namespace="ns",
            name="r1",
            rules=[RouteRule(backends=[svc("a"), svc("b")])],
        )
        with pytest.raises(ListenerConfigurationError, match="weighted target groups"):
            build(config, context, stack, gateway(http_listener()), {80: [route]})

    def test_rule_tagging_disabled(self, context: BuildContext, stack: Stack) -> None:
        config = BuilderConfig(
            cluster_name="cluster",
            vpc_id="vpc-123",
            feature_gates={FeatureGate.LISTENER_RULES_TAGGING: False},
        )
        route = RouteDescriptor(
            kind=RouteKind.HTTP, namespace="ns", name="r1", rules=[RouteRule(backends=[svc()])]
        )
        build(config, context, stack, gateway(http_listener()), {80: [route]})
        assert stack.get(ResourceKind.LISTENER_RULE, "80:1").spec.tags == {}


class TestCertificates:
    def route(self) -> RouteDescriptor:
        return RouteDescriptor(
            kind=RouteKind.HTTP, namespace="ns", name="r1", rules=[RouteRule(backends=[svc()])]
        )

    def test_explicit_configuration_wins(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        lb_config = LoadBalancerConfiguration(
            listener_configurations=[
                ListenerConfiguration(
                    protocol_port="HTTPS:443",
                    default_certificate="arn:default",
                    certificates=["arn:extra"],
                    ssl_policy="ELBSecurityPolicy-TLS13-1-2-2021-06",
                )
            ]
        )
        gw = gateway(http_listener(443, protocol="HTTPS", hostname="www.example.com"))
        _, listeners = build(alb_config, context, stack, gw, {443: [self.route()]}, lb_config)
        spec = listeners[0].spec
        assert spec.certificates == ["arn:default", "arn:extra"]
        assert spec.ssl_policy == "ELBSecurityPolicy-TLS13-1-2-2021-06"

    def test_secrets_are_resolved(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(
            http_listener(
                443,
                protocol="HTTPS",
                tls=ListenerTLSConfig(certificate_refs=[SecretReference(name="tls")]),
            )
        )
        builder, listeners = build(
            alb_config,
            context,
            stack,
            gw,
            {443: [self.route()]},
            secret_resolver=StaticSecretResolver({"ns/tls": "arn:secret"}),
        )
        assert listeners[0].spec.certificates == ["arn:secret"]
        assert listeners[0].spec.ssl_policy == alb_config.default_ssl_policy
        assert builder.referenced_secrets == {"ns/tls"}

    def test_discovery_by_hostname(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(http_listener(443, protocol="HTTPS", hostname="www.example.com"))
        _, listeners = build(
            alb_config,
            context,
            stack,
            gw,
            {443: [self.route()]},
            certificate_discovery=StaticCertificateDiscovery({"*.example.com": "arn:wild"}),
        )
        assert listeners[0].spec.certificates == ["arn:wild"]

    def test_no_hostnames_for_discovery(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(http_listener(443, protocol="HTTPS"))
        with pytest.raises(ListenerConfigurationError, match="No hostnames found"):
            build(alb_config, context, stack, gw, {443: [self.route()]})

    def test_secret_without_resolver(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(
            http_listener(
                443,
                protocol="HTTPS",
                tls=ListenerTLSConfig(certificate_refs=[SecretReference(name="tls")]),
            )
        )
        with pytest.raises(ListenerConfigurationError, match="no secret resolver"):
            build(alb_config, context, stack, gw, {443: [self.route()]})


class TestNetworkListeners:
    def tcp_route(self, *backends: Backend, rules: int = 1) -> RouteDescriptor:
        return RouteDescriptor(
            kind=RouteKind.TCP,
            namespace="ns",
            name="tcp",
            rules=[RouteRule(backends=list(backends)) for _ in range(rules)],
        )

    def test_forward_to_single_backend(
        self, nlb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(http_listener(5432, "db", protocol="TCP"))
        _, listeners = build(nlb_config, context, stack, gw, {5432: [self.tcp_route(svc())]})
        action = listeners[0].spec.default_actions[0]
        assert action.type is ActionType.FORWARD
        tg = stack.resources(ResourceKind.TARGET_GROUP)[0]
        assert action.forward_config.target_groups[0].target_group_arn == tg.arn_ref()
        assert stack.resources(ResourceKind.LISTENER_RULE) == []

    def test_multiple_routes_rejected(
        self, nlb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(http_listener(5432, "db", protocol="TCP"))
        routes = {5432: [self.tcp_route(svc()), self.tcp_route(svc())]}
        with pytest.raises(ListenerConfigurationError, match="multiple routes"):
            build(nlb_config, context, stack, gw, routes)

    def test_multiple_rules_rejected(
        self, nlb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(http_listener(5432, "db", protocol="TCP"))
        with pytest.raises(ListenerConfigurationError, match="multiple rules"):
            build(nlb_config, context, stack, gw, {5432: [self.tcp_route(svc(), rules=2)]})

    def test_multiple_backends_rejected(
        self, nlb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        gw = gateway(http_listener(5432, "db", protocol="TCP"))
        with pytest.raises(ListenerConfigurationError, match="multiple backend refs"):
            build(nlb_config, context, stack, gw, {5432: [self.tcp_route(svc("a"), svc("b"))]})

    @pytest.mark.parametrize("backends", [[], [0]])
    def test_listener_skipped_without_routable_backend(
        self,
        nlb_config: BuilderConfig,
        context: BuildContext,
        stack: Stack,
        backends: list[int],
    ) -> None:
        gw = gateway(http_listener(5432, "db", protocol="TCP"))
        route = self.tcp_route(*[svc(weight=w) for w in backends])
        _, listeners = build(nlb_config, context, stack, gw, {5432: [route]})
        assert listeners == []
        assert len(stack) == 0

    def test_tls_listener_alpn(self, nlb_config: BuilderConfig, context: BuildContext, stack: Stack) -> None:
        lb_config = LoadBalancerConfiguration(
            listener_configurations=[
                ListenerConfiguration(
                    protocol_port="TLS:443",
                    default_certificate="arn:cert",
                    alpn_policy="HTTP2Preferred",
                )
            ]
        )
        gw = gateway(http_listener(443, "tls", protocol="TLS"))
        _, listeners = build(
            nlb_config, context, stack, gw, {443: [self.tcp_route(svc())]}, lb_config
        )
        assert listeners[0].spec.alpn_policy == ["HTTP2Preferred"]

    def test_invalid_alpn(self, nlb_config: BuilderConfig, context: BuildContext, stack: Stack) -> None:
        lb_config = LoadBalancerConfiguration(
            listener_configurations=[
                ListenerConfiguration(
                    protocol_port="TLS:443", default_certificate="arn:cert", alpn_policy="h3"
                )
            ]
        )
        gw = gateway(http_listener(443, "tls", protocol="TLS"))
        with pytest.raises(ListenerConfigurationError, match="invalid ALPN policy h3"):
            build(nlb_config, context, stack, gw, {443: [self.tcp_route(svc())]}, lb_config)


class TestRuleConditions:
    http_route = RouteDescriptor(
        kind=RouteKind.HTTP, namespace="ns", name="r", hostnames=["www.example.com"]
    )

    def test_full_http_match(self) -> None:
        match = RouteMatch(
            path=PathMatch(type=PathMatchType.PREFIX, value="/api/"),
            method="GET",
            headers=[HeaderMatch(name="x-env", value="canary")],
            query_params=[QueryParamMatch(name="v", value="2")],
        )
        conditions = build_rule_conditions(entry(self.http_route, match))
        assert [c.field for c in conditions] == [
            "host-header",
            "path-pattern",
            "http-header",
            "query-string",
            "http-request-method",
        ]
        assert conditions[1].values == ["/api", "/api/*"]
        assert conditions[2].http_header_name == "x-env"
        assert conditions[3].query_strings[0].key == "v"
        assert conditions[4].values == ["GET"]

    def test_match_without_path(self) -> None:
        conditions = build_rule_conditions(entry(self.http_route, RouteMatch(method="POST")))
        assert conditions[1].values == ["/*"]

    def test_exact_path(self) -> None:
        match = RouteMatch(path=PathMatch(type=PathMatchType.EXACT, value="/login"))
        assert build_rule_conditions(entry(self.http_route, match))[1].values == ["/login"]

    @pytest.mark.parametrize("path_type", [PathMatchType.PREFIX, PathMatchType.EXACT])
    def test_wildcards_rejected(self, path_type: PathMatchType) -> None:
        match = RouteMatch(path=PathMatch(type=path_type, value="/a*"))
        with pytest.raises(ListenerConfigurationError, match="shouldn't contain wildcards"):
            build_rule_conditions(entry(self.http_route, match))

    def test_port_hostnames(self) -> None:
        route = RouteDescriptor(
            kind=RouteKind.HTTP,
            namespace="ns",
            name="r",
            hostnames=["*.example.com"],
            compatible_hostnames_by_port={443: ["secure.example.com"]},
        )
        conditions = build_rule_conditions(entry(route, None), 443)
        assert conditions[0].values == ["secure.example.com"]

    @pytest.mark.parametrize(
        "method, expected",
        [
            (GRPCMethodMatch(service="pkg.Svc", method="Get"), "/pkg.Svc/Get"),
            (GRPCMethodMatch(service="pkg.Svc"), "/pkg.Svc/*"),
            (GRPCMethodMatch(method="Get"), "/*/Get"),
        ],
    )
    def test_grpc_method(self, method: GRPCMethodMatch, expected: str) -> None:
        route = RouteDescriptor(kind=RouteKind.GRPC, namespace="ns", name="g")
        conditions = build_rule_conditions(entry(route, RouteMatch(grpc_method=method)))
        assert len(conditions) == 1
        assert conditions[0].values == [expected]

    def test_grpc_without_method(self) -> None:
        route = RouteDescriptor(kind=RouteKind.GRPC, namespace="ns", name="g")
        assert build_rule_conditions(entry(route, None))[0].values == ["/*"]

    def test_grpc_empty_method_rejected(self) -> None:
        route = RouteDescriptor(kind=RouteKind.GRPC, namespace="ns", name="g")
        with pytest.raises(ListenerConfigurationError, match="service or a method"):
            build_rule_conditions(entry(route, RouteMatch(grpc_method=GRPCMethodMatch())))


class TestRedirects:
    def route(self, *filters: RouteFilter, backends: list[Backend] | None = None, **kwargs) -> RouteDescriptor:
        return RouteDescriptor(
            kind=kwargs.pop("kind", RouteKind.HTTP),
            namespace="ns",
            name="r1",
            rules=[RouteRule(filters=list(filters), backends=backends or [])],
        )

    def redirect(self, **kwargs) -> RouteFilter:
        return RouteFilter(
            type=RouteFilterType.REQUEST_REDIRECT, request_redirect=RequestRedirect(**kwargs)
        )

    def test_https_redirect_rule(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        route = self.route(self.redirect(scheme="https", port=443, status_code=301))
        build(alb_config, context, stack, gateway(http_listener()), {80: [route]})
        action = stack.get(ResourceKind.LISTENER_RULE, "80:1").spec.actions[0]
        assert action.type is ActionType.REDIRECT
        config = action.redirect_config
        assert (config.protocol, config.port, config.status_code) == ("HTTPS", "443", "HTTP_301")
        assert config.host is None and config.path is None

    def test_redirect_wins_over_backends(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        route = self.route(self.redirect(hostname="new.example.com"), backends=[svc()])
        build(alb_config, context, stack, gateway(http_listener()), {80: [route]})
        actions = stack.get(ResourceKind.LISTENER_RULE, "80:1").spec.actions
        assert [a.type for a in actions] == [ActionType.REDIRECT]
        assert actions[0].redirect_config.status_code == "HTTP_302"

    def test_path_rewrites(self) -> None:
        full = build_redirect_action(
            RouteKind.HTTP,
            [self.redirect(path=RedirectPath(type="ReplaceFullPath", replace_full_path="/new"))],
        )
        prefix = build_redirect_action(
            RouteKind.HTTP,
            [self.redirect(path=RedirectPath(type="ReplacePrefixMatch", replace_prefix_match="/v2"))],
        )
        assert full.redirect_config.path == "/new"
        assert prefix.redirect_config.path == "/v2/*"

    def test_ignored_filters(self) -> None:
        filters = [
            RouteFilter(type=RouteFilterType.URL_REWRITE),
            RouteFilter(type=RouteFilterType.EXTENSION_REF),
        ]
        assert build_redirect_action(RouteKind.HTTP, filters) is None

    def test_redirect_loop_rejected(self) -> None:
        with pytest.raises(ListenerConfigurationError, match="redirect loop"):
            build_redirect_action(RouteKind.HTTP, [self.redirect(status_code=301)])

    def test_invalid_scheme(self) -> None:
        with pytest.raises(ListenerConfigurationError, match="unsupported redirect scheme: FTP"):
            build_redirect_action(RouteKind.HTTP, [self.redirect(scheme="ftp")])

    def test_wildcard_path_rejected(self) -> None:
        redirect = self.redirect(
            path=RedirectPath(type="ReplaceFullPath", replace_full_path="/a*")
        )
        with pytest.raises(ListenerConfigurationError, match="shouldn't contain wildcards"):
            build_redirect_action(RouteKind.HTTP, [redirect])

    def test_header_modifier_rejected(self) -> None:
        with pytest.raises(ListenerConfigurationError, match="Only request redirect"):
            build_redirect_action(
                RouteKind.HTTP, [RouteFilter(type=RouteFilterType.REQUEST_HEADER_MODIFIER)]
            )

    def test_grpc_accepts_extension_ref_only(self) -> None:
        assert (
            build_redirect_action(
                RouteKind.GRPC, [RouteFilter(type=RouteFilterType.EXTENSION_REF)]
            )
            is None
        )
        with pytest.raises(ListenerConfigurationError, match="Unsupported filter type"):
            build_redirect_action(RouteKind.GRPC, [self.redirect(scheme="https")])


class TestMutualAuthentication:
    def route(self) -> RouteDescriptor:
        return RouteDescriptor(
            kind=RouteKind.HTTP, namespace="ns", name="r1", rules=[RouteRule(backends=[svc()])]
        )

    def lb_config(self, mtls: MutualAuthenticationConfiguration | None) -> LoadBalancerConfiguration:
        return LoadBalancerConfiguration(
            listener_configurations=[
                ListenerConfiguration(
                    protocol_port="HTTPS:443",
                    default_certificate="arn:cert",
                    mutual_authentication=mtls,
                )
            ]
        )

    def listener_spec(
        self,
        config: BuilderConfig,
        context: BuildContext,
        stack: Stack,
        mtls: MutualAuthenticationConfiguration | None,
        **kwargs,
    ):
        gw = gateway(http_listener(443, "https", protocol="HTTPS"))
        _, listeners = build(
            config, context, stack, gw, {443: [self.route()]}, self.lb_config(mtls), **kwargs
        )
        return listeners[0].spec

    def test_plain_listener_has_none(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        route = self.route()
        _, listeners = build(alb_config, context, stack, gateway(http_listener()), {80: [route]})
        assert listeners[0].spec.mutual_authentication is None

    def test_defaults_to_off(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        spec = self.listener_spec(alb_config, context, stack, None)
        assert spec.mutual_authentication.mode == "off"
        assert spec.mutual_authentication.trust_store_arn is None

    def test_passthrough(self, alb_config: BuilderConfig, context: BuildContext, stack: Stack) -> None:
        mtls = MutualAuthenticationConfiguration(mode="passthrough")
        attrs = self.listener_spec(alb_config, context, stack, mtls).mutual_authentication
        assert attrs.mode == "passthrough"
        assert attrs.ignore_client_certificate_expiry is None

    def test_verify_with_arn(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        mtls = MutualAuthenticationConfiguration(
            mode="verify", trust_store="arn:aws:elasticloadbalancing:ts", advertise_trust_store_ca_names="on"
        )
        attrs = self.listener_spec(alb_config, context, stack, mtls).mutual_authentication
        assert attrs.mode == "verify"
        assert attrs.trust_store_arn == "arn:aws:elasticloadbalancing:ts"
        assert attrs.ignore_client_certificate_expiry is False
        assert attrs.advertise_trust_store_ca_names == "on"

    def test_verify_resolves_trust_store_name(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        mtls = MutualAuthenticationConfiguration(
            mode="verify", trust_store="clients", ignore_client_certificate_expiry=True
        )
        attrs = self.listener_spec(
            alb_config,
            context,
            stack,
            mtls,
            trust_store_resolver=StaticTrustStoreResolver({"clients": "arn:ts/clients"}),
        ).mutual_authentication
        assert attrs.trust_store_arn == "arn:ts/clients"
        assert attrs.ignore_client_certificate_expiry is True

    def test_verify_without_trust_store(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        mtls = MutualAuthenticationConfiguration(mode="verify")
        with pytest.raises(ListenerConfigurationError, match="without a trustStore"):
            self.listener_spec(alb_config, context, stack, mtls)

    def test_trust_store_name_without_resolver(
        self, alb_config: BuilderConfig, context: BuildContext, stack: Stack
    ) -> None:
        mtls = MutualAuthenticationConfiguration(mode="verify", trust_store="clients")
        with pytest.raises(ListenerConfigurationError, match="no trust store resolver"):
            self.listener_spec(alb_config, context, stack, mtls)
