import hashlib
import logging
import re
from collections.abc import MutableMapping
from dataclasses import dataclass

from gwstack.config import BuilderConfig, FeatureGate
from gwstack.core.protocols import TagHelper
from gwstack.core.stack import Stack
from gwstack.exceptions import TargetGroupBuildError
from gwstack.ir.models import (
    L4_PROTOCOLS,
    L7_PROTOCOLS,
    HealthCheckConfig,
    HealthCheckMatcher,
    IPAddressType,
    KeyValue,
    LiteralToken,
    NetworkingIngressRule,
    NetworkingPeer,
    NetworkingPort,
    Protocol,
    ProtocolVersion,
    ServiceRef,
    TargetGroup,
    TargetGroupBinding,
    TargetGroupBindingNetworking,
    TargetGroupBindingSpec,
    TargetGroupIPAddressType,
    TargetGroupSpec,
    TargetType,
    Token,
)
from gwstack.models import (
    Backend,
    Gateway,
    LoadBalancerConfiguration,
    RouteDescriptor,
    RouteKind,
    ServiceBackend,
    TargetGroupProps,
)

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9]")

HEALTH_CHECK_PORT_TRAFFIC_PORT = "traffic-port"


class Defaults:
    """Target group health check defaults."""

    MATCHER_HTTP_CODE = "200-399"
    MATCHER_GRPC_CODE = "12"
    PATH_HTTP = "/"
    PATH_GRPC = "/AWS.ALB/healthcheck"
    UNHEALTHY_THRESHOLD = 3
    HEALTHY_THRESHOLD = 3
    TIMEOUT_SECONDS = 5
    INTERVAL_SECONDS = 15


@dataclass(frozen=True)
class TargetGroupOutput:
    """
    Result of building one backend.

    ``target_group_arn`` is what listener actions reference: a ResourceRef
    for groups built into the Stack, a LiteralToken for literal backends.
    """

    target_group_arn: Token
    target_group: TargetGroup | None = None
    binding: TargetGroupBinding | None = None


def sanitize_name(value: str) -> str:
    return _INVALID_NAME_CHARS.sub("", value)


class TargetGroupBuilder:
    """
    Build target groups and their bindings for route backends.

    The builder holds only configuration; de-duplication state lives in the
    ``registry`` mapping passed to every call, owned by one build.
    """

    def __init__(self, config: BuilderConfig, tag_helper: TagHelper):
        self._config = config
        self._tag_helper = tag_helper
        self._logger = logger.getChild(self.__class__.__name__)

    # --- Public API ---

    def build_target_group(
        self,
        registry: MutableMapping[str, TargetGroupOutput],
        stack: Stack,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration,
        ip_address_type: IPAddressType,
        route: RouteDescriptor,
        backend: Backend,
        backend_sg_token: Token | None,
    ) -> TargetGroupOutput:
        """
        Return the target group for a backend, creating it on first use.

        For service backends the group and its binding are registered in
        ``stack``; the binding's ``target_group_arn`` is patched with the
        group's ResourceRef before the binding is registered.

        Raises:
            TargetGroupBuildError: If the backend cannot be turned into a
                target group.
        """
        if backend.literal_target_group is not None:
            return TargetGroupOutput(
                target_group_arn=LiteralToken(value=backend.literal_target_group.arn)
            )

        service = backend.service
        if service is None:
            raise TargetGroupBuildError("unknown backend type")

        resource_id = self.build_resource_id(gateway, route, service)
        existing = registry.get(resource_id)
        if existing is not None:
            self._logger.debug("Reusing target group '%s'", resource_id)
            return existing

        spec = self._build_target_group_spec(gateway, route, ip_address_type, service)
        binding_spec = self._build_binding_spec(
            gateway, lb_config, spec, service, backend_sg_token
        )

        target_group = stack.add_resource(TargetGroup(id=resource_id, spec=spec))
        binding_spec = binding_spec.model_copy(
            update={"target_group_arn": target_group.arn_ref()}
        )
        binding = stack.add_resource(
            TargetGroupBinding(id=target_group.id, spec=binding_spec)
        )

        output = TargetGroupOutput(
            target_group_arn=target_group.arn_ref(),
            target_group=target_group,
            binding=binding,
        )
        registry[resource_id] = output
        self._logger.info(
            "Built target group '%s' (%s) for route %s",
            spec.name,
            resource_id,
            route.namespaced_name,
        )
        return output

    @staticmethod
    def build_resource_id(
        gateway: Gateway, route: RouteDescriptor, service: ServiceBackend
    ) -> str:
        return (
            f"{gateway.namespace}/{gateway.name}:"
            f"{route.namespace}-{route.name}:"
            f"{route.kind.value}-{service.service_namespace}-{service.service_name}:"
            f"{service.service_port.port}"
        )

    # --- TargetGroup spec ---

    def _build_target_group_spec(
        self,
        gateway: Gateway,
        route: RouteDescriptor,
        ip_address_type: IPAddressType,
        service: ServiceBackend,
    ) -> TargetGroupSpec:
        props = service.target_group_props
        target_type = self._target_type(props)
        protocol = self._protocol(props, route)
        protocol_version = self._protocol_version(props, route)
        health_check = self._health_check(
            props, protocol, protocol_version, target_type, service
        )
        tg_ip_address_type = self._ip_address_type(service, ip_address_type)
        tags = self._tag_helper.target_group_tags(props)
        port = self._port(target_type, service)

        if port == 0:
            if target_type is TargetType.IP:
                raise TargetGroupBuildError(
                    "TargetGroup port is empty. Are you using the correct service type?"
                )
            raise TargetGroupBuildError(
                "TargetGroup port is empty. When using Instance targets, your "
                "service must be of type 'NodePort' or 'LoadBalancer'"
            )

        name = self._name(
            props, gateway, route, service, port, target_type, protocol, protocol_version
        )
        return TargetGroupSpec(
            name=name,
            target_type=target_type,
            port=port,
            protocol=protocol,
            protocol_version=protocol_version,
            ip_address_type=tg_ip_address_type,
            health_check=health_check,
            attributes=self._attributes(props),
            tags=tags,
        )

    def _name(
        self,
        props: TargetGroupProps | None,
        gateway: Gateway,
        route: RouteDescriptor,
        service: ServiceBackend,
        port: int,
        target_type: TargetType,
        protocol: Protocol,
        protocol_version: ProtocolVersion | None,
    ) -> str:
        if props is not None and props.target_group_name:
            return props.target_group_name

        digest = hashlib.sha256()
        for part in (
            self._config.cluster_name,
            gateway.namespace,
            gateway.name,
            route.namespace,
            route.name,
            route.kind.value,
            service.service_namespace,
            service.service_name,
            str(port),
            target_type.value,
            protocol.value,
        ):
            digest.update(part.encode())
        if protocol_version is not None:
            digest.update(protocol_version.value.encode())

        namespace = sanitize_name(route.namespace)[:8]
        name = sanitize_name(route.name)[:8]
        return f"k8s-{namespace}-{name}-{digest.hexdigest()[:10]}"

    def _target_type(self, props: TargetGroupProps | None) -> TargetType:
        if props is None or props.target_type is None:
            return self._config.default_target_type
        try:
            return TargetType(props.target_type)
        except ValueError:
            raise TargetGroupBuildError(
                f"unknown target type: {props.target_type}"
            ) from None

    def _protocol(self, props: TargetGroupProps | None, route: RouteDescriptor) -> Protocol:
        if props is None or props.protocol is None:
            return self._infer_protocol(route)

        allowed = L7_PROTOCOLS if self._config.is_application else L4_PROTOCOLS
        try:
            protocol = Protocol(props.protocol.upper())
        except ValueError:
            protocol = None
        if protocol not in allowed:
            names = ", ".join(sorted(p.value for p in allowed))
            raise TargetGroupBuildError(
                f"backend protocol must be within [{names}]: {props.protocol}"
            )
        return protocol

    def _infer_protocol(self, route: RouteDescriptor) -> Protocol:
        match route.kind:
            case RouteKind.TCP:
                return Protocol.TCP
            case RouteKind.UDP:
                return Protocol.UDP
            case RouteKind.HTTP | RouteKind.GRPC:
                return Protocol.HTTP
            case RouteKind.TLS:
                return Protocol.HTTPS if self._config.is_application else Protocol.TLS
        return Protocol.TCP

    def _protocol_version(
        self, props: TargetGroupProps | None, route: RouteDescriptor
    ) -> ProtocolVersion | None:
        if not self._config.is_application:
            return None
        if props is not None and props.protocol_version is not None:
            try:
                return ProtocolVersion(props.protocol_version.upper())
            except ValueError:
                raise TargetGroupBuildError(
                    f"unknown protocol version: {props.protocol_version}"
                ) from None
        if route.kind is RouteKind.GRPC:
            return ProtocolVersion.GRPC
        return ProtocolVersion.HTTP1

    def _ip_address_type(
        self, service: ServiceBackend, lb_ip_address_type: IPAddressType
    ) -> TargetGroupIPAddressType:
        if service.is_ipv6:
            if not lb_ip_address_type.is_dualstack:
                raise TargetGroupBuildError(
                    "unsupported IPv6 configuration, lb not dual-stack"
                )
            return TargetGroupIPAddressType.IPV6
        return TargetGroupIPAddressType.IPV4

    @staticmethod
    def _port(target_type: TargetType, service: ServiceBackend) -> int:
        svc_port = service.service_port
        if target_type is TargetType.INSTANCE:
            return svc_port.node_port
        if svc_port.target_port is None:
            return svc_port.port
        if isinstance(svc_port.target_port, int):
            return svc_port.target_port
        # Named port: targets are registered with explicit ports.
        return 1

    @staticmethod
    def _attributes(props: TargetGroupProps | None) -> list[KeyValue]:
        if props is None:
            return []
        merged = {attr.key: attr.value for attr in props.target_group_attributes}
        return [KeyValue(key=k, value=v) for k, v in sorted(merged.items())]

    # --- Health check ---

    def _health_check(
        self,
        props: TargetGroupProps | None,
        protocol: Protocol,
        protocol_version: ProtocolVersion | None,
        target_type: TargetType,
        service: ServiceBackend,
    ) -> HealthCheckConfig:
        hc = props.health_check_config if props is not None else None

        hc_protocol = self._health_check_protocol(hc.health_check_protocol if hc else None, protocol)
        path: str | None = None
        matcher: HealthCheckMatcher | None = None
        use_grpc = protocol_version is ProtocolVersion.GRPC

        if hc_protocol is not Protocol.TCP:
            if hc is not None and hc.health_check_path is not None:
                path = hc.health_check_path
            elif use_grpc:
                path = Defaults.PATH_GRPC
            else:
                path = Defaults.PATH_HTTP

            configured = hc.matcher if hc is not None else None
            if use_grpc:
                code = (configured.grpc_code if configured else None) or Defaults.MATCHER_GRPC_CODE
                matcher = HealthCheckMatcher(grpc_code=code)
            else:
                code = (configured.http_code if configured else None) or Defaults.MATCHER_HTTP_CODE
                matcher = HealthCheckMatcher(http_code=code)

        def pick(value: int | None, default: int) -> int:
            return default if value is None else value

        return HealthCheckConfig(
            port=self._health_check_port(hc.health_check_port if hc else None, target_type, service),
            protocol=hc_protocol,
            path=path,
            matcher=matcher,
            interval_seconds=pick(hc.health_check_interval if hc else None, Defaults.INTERVAL_SECONDS),
            timeout_seconds=pick(hc.health_check_timeout if hc else None, Defaults.TIMEOUT_SECONDS),
            healthy_threshold_count=pick(hc.healthy_threshold_count if hc else None, Defaults.HEALTHY_THRESHOLD),
            unhealthy_threshold_count=pick(
                hc.unhealthy_threshold_count if hc else None, Defaults.UNHEALTHY_THRESHOLD
            ),
        )

    def _health_check_protocol(self, configured: str | None, protocol: Protocol) -> Protocol:
        if configured is None:
            return protocol if self._config.is_application else Protocol.TCP
        try:
            hc_protocol = Protocol(configured.upper())
        except ValueError:
            hc_protocol = None
        if hc_protocol not in (Protocol.TCP, Protocol.HTTP, Protocol.HTTPS):
            raise TargetGroupBuildError(
                f"health check protocol must be within [HTTP, HTTPS, TCP]: {configured}"
            )
        return hc_protocol

    @staticmethod
    def _health_check_port(
        configured: str | None, target_type: TargetType, service: ServiceBackend
    ) -> str:
        if configured is None or configured == HEALTH_CHECK_PORT_TRAFFIC_PORT:
            return HEALTH_CHECK_PORT_TRAFFIC_PORT
        if configured.isdigit():
            return configured

        svc_port = service.service_port
        if svc_port.name != configured:
            raise TargetGroupBuildError(
                f"unable to find port {configured} on service "
                f"{service.service_namespace}/{service.service_name}"
            )
        if target_type is TargetType.INSTANCE:
            return str(svc_port.node_port)
        if svc_port.target_port is None:
            return str(svc_port.port)
        if isinstance(svc_port.target_port, int):
            return str(svc_port.target_port)
        raise TargetGroupBuildError(
            "cannot use named healthCheckPort for IP TargetType when service's "
            "targetPort is a named port"
        )

    # --- TargetGroupBinding spec ---

    def _build_binding_spec(
        self,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration,
        tg_spec: TargetGroupSpec,
        service: ServiceBackend,
        backend_sg_token: Token | None,
    ) -> TargetGroupBindingSpec:
        props = service.target_group_props
        target_port: int | str | None = service.service_port.target_port
        if tg_spec.target_type is TargetType.INSTANCE:
            target_port = service.service_port.node_port
        if target_port is None:
            target_port = service.service_port.port

        node_selector = None
        if tg_spec.target_type is TargetType.INSTANCE and props is not None:
            node_selector = props.node_selector

        labels: dict[str, str] = {}
        annotations: dict[str, str] = {}
        if gateway.infrastructure is not None:
            labels = dict(gateway.infrastructure.labels)
            annotations = dict(gateway.infrastructure.annotations)

        return TargetGroupBindingSpec(
            namespace=service.service_namespace,
            name=tg_spec.name,
            target_group_arn=None,
            target_type=tg_spec.target_type,
            service_ref=ServiceRef(
                name=service.service_name, port=service.service_port.port
            ),
            ip_address_type=tg_spec.ip_address_type,
            vpc_id=self._config.vpc_id,
            protocol=tg_spec.protocol,
            node_selector=node_selector,
            networking=self._build_networking(
                lb_config, tg_spec, target_port, backend_sg_token
            ),
            multi_cluster_target_group=bool(props and props.enable_multi_cluster),
            labels=labels,
            annotations=annotations,
        )

    def _build_networking(
        self,
        lb_config: LoadBalancerConfiguration,
        tg_spec: TargetGroupSpec,
        target_port: int | str,
        backend_sg_token: Token | None,
    ) -> TargetGroupBindingNetworking | None:
        if backend_sg_token is not None:
            return self._security_group_networking(tg_spec, target_port, backend_sg_token)
        if (
            not self._config.is_application
            and lb_config.security_groups is None
            and not self._config.feature_enabled(FeatureGate.NLB_SECURITY_GROUP)
        ):
            return self._source_range_networking(lb_config, tg_spec, target_port)
        return None

    def _security_group_networking(
        self, tg_spec: TargetGroupSpec, target_port: int | str, backend_sg_token: Token
    ) -> TargetGroupBindingNetworking:
        peer = NetworkingPeer(security_group=backend_sg_token)
        udp = tg_spec.protocol in (Protocol.UDP, Protocol.TCP_UDP)

        if self._config.disable_restricted_sg_rules:
            ports = [NetworkingPort(protocol="TCP")]
            if udp:
                ports.append(NetworkingPort(protocol="UDP"))
            return TargetGroupBindingNetworking(
                ingress=[NetworkingIngressRule(from_peers=[peer], ports=ports)]
            )

        ports = [NetworkingPort(protocol="UDP" if udp else "TCP", port=target_port)]
        hc_port = tg_spec.health_check.port
        hc_is_int = hc_port.isdigit()
        if udp or (hc_is_int and str(target_port) != hc_port):
            ports.append(
                NetworkingPort(
                    protocol="TCP", port=int(hc_port) if hc_is_int else target_port
                )
            )
        return TargetGroupBindingNetworking(
            ingress=[NetworkingIngressRule(from_peers=[peer], ports=[p]) for p in ports]
        )

    @staticmethod
    def _source_range_networking(
        lb_config: LoadBalancerConfiguration,
        tg_spec: TargetGroupSpec,
        target_port: int | str,
    ) -> TargetGroupBindingNetworking:
        sources = list(lb_config.source_ranges)
        if not sources:
            sources = (
                ["::/0"]
                if tg_spec.ip_address_type is TargetGroupIPAddressType.IPV6
                else ["0.0.0.0/0"]
            )
        peers = [NetworkingPeer(ip_block=cidr) for cidr in sources]

        if tg_spec.protocol is Protocol.TCP_UDP:
            ports = [
                NetworkingPort(protocol="TCP", port=target_port),
                NetworkingPort(protocol="UDP", port=target_port),
            ]
        else:
            protocol = "UDP" if tg_spec.protocol is Protocol.UDP else "TCP"
            ports = [NetworkingPort(protocol=protocol, port=target_port)]

        rules = [NetworkingIngressRule(from_peers=peers, ports=ports)]
        hc_port = tg_spec.health_check.port
        if hc_port.isdigit() and hc_port != str(target_port):
            rules.append(
                NetworkingIngressRule(
                    from_peers=peers,
                    ports=[NetworkingPort(protocol="TCP", port=int(hc_port))],
                )
            )
        return TargetGroupBindingNetworking(ingress=rules)
