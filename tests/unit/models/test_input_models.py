from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from gwstack.models import (
    Attribute,
    Backend,
    Gateway,
    GatewayListener,
    LiteralTargetGroupBackend,
    ListenerConfiguration,
    LoadBalancerConfiguration,
    RouteDescriptor,
    RouteFilter,
    RouteFilterType,
    RouteKind,
    ServiceBackend,
    ServicePort,
    SubnetConfiguration,
)


class TestGateway:
    def test_protocol_is_upper_cased(self) -> None:
        listener = GatewayListener(name="web", port=80, protocol="http")
        assert listener.protocol == "HTTP"

    def test_being_deleted(self) -> None:
        gw = Gateway(namespace="ns", name="gw1")
        assert not gw.being_deleted
        deleted = gw.model_copy(update={"deletion_timestamp": datetime.now(timezone.utc)})
        assert deleted.being_deleted
        assert deleted.namespaced_name == "ns/gw1"

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Gateway.model_validate({"namespace": "ns", "name": "gw1", "class": "alb"})

    def test_port_range(self) -> None:
        with pytest.raises(ValidationError):
            GatewayListener(name="web", port=0, protocol="HTTP")


class TestLoadBalancerConfiguration:
    def test_camel_case_aliases(self) -> None:
        cfg = LoadBalancerConfiguration.model_validate(
            {
                "ipAddressType": "dualstack",
                "enableICMP": True,
                "wafV2": {"acl": "arn:acl"},
                "loadBalancerSubnets": [
                    {"identifier": "subnet-a", "privateIPv4Allocation": "10.0.0.4"}
                ],
            }
        )
        assert cfg.ip_address_type == "dualstack"
        assert cfg.enable_icmp is True
        assert cfg.wafv2.acl == "arn:acl"
        assert cfg.load_balancer_subnets == [
            SubnetConfiguration(identifier="subnet-a", private_ipv4_allocation="10.0.0.4")
        ]

    def test_listener_configuration_lookup(self) -> None:
        cfg = LoadBalancerConfiguration(
            listener_configurations=[ListenerConfiguration(protocol_port="https:443")]
        )
        found = cfg.listener_configuration("HTTPS", 443)
        assert found is not None
        assert found.protocol == "HTTPS"
        assert found.port == 443
        assert cfg.listener_configuration("HTTP", 443) is None

    def test_invalid_protocol_port(self) -> None:
        with pytest.raises(ValidationError, match="PROTOCOL:port"):
            ListenerConfiguration(protocol_port="443")

    def test_attribute_lookup(self) -> None:
        cfg = LoadBalancerConfiguration(
            load_balancer_attributes=[Attribute(key="idle_timeout.timeout_seconds", value="60")]
        )
        assert cfg.attribute("idle_timeout.timeout_seconds") == "60"
        assert cfg.attribute("deletion_protection.enabled") is None


class TestRoutes:
    def test_backend_needs_exactly_one_target(self) -> None:
        service = ServiceBackend(
            service_name="svc", service_namespace="ns", service_port=ServicePort(port=80)
        )
        with pytest.raises(ValidationError, match="exactly one"):
            Backend()
        with pytest.raises(ValidationError, match="exactly one"):
            Backend(service=service, literal_target_group=LiteralTargetGroupBackend(arn="arn"))

    def test_hostnames_for_port(self) -> None:
        route = RouteDescriptor(
            kind=RouteKind.HTTP,
            namespace="ns",
            name="r1",
            hostnames=["*.example.com"],
            compatible_hostnames_by_port={443: ["a.example.com"]},
        )
        assert route.hostnames_for_port(443) == ["a.example.com"]
        assert route.hostnames_for_port(80) == ["*.example.com"]
        assert route.hostnames_for_port() == ["*.example.com"]
        assert RouteKind.GRPC.is_l7 and not RouteKind.UDP.is_l7

    def test_ipv6_service(self) -> None:
        service = ServiceBackend(
            service_name="svc",
            service_namespace="ns",
            service_port=ServicePort(port=80),
            ip_families=["IPv6"],
        )
        assert service.is_ipv6

    def test_redirect_filter_needs_target(self) -> None:
        with pytest.raises(ValidationError, match="requires 'requestRedirect'"):
            RouteFilter(type="RequestRedirect")
        route_filter = RouteFilter.model_validate(
            {"type": "RequestRedirect", "requestRedirect": {"scheme": "https", "statusCode": 301}}
        )
        assert route_filter.type is RouteFilterType.REQUEST_REDIRECT
        assert route_filter.request_redirect.status_code == 301
        with pytest.raises(ValidationError):
            RouteFilter.model_validate(
                {"type": "RequestRedirect", "requestRedirect": {"statusCode": 307}}
            )

    def test_route_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            RouteDescriptor.model_validate(
                {
                    "kind": "HTTPRoute",
                    "namespace": "ns",
                    "name": "r1",
                    "creationTimestamp": "2024-01-01T00:00:00Z",
                }
            )
