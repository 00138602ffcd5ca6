from enum import Enum
from typing import Literal, Self

from pydantic import Field, model_validator

from .base import GatewayAPIBase
from .target_group_config import TargetGroupProps


class RouteKind(str, Enum):
    """Route kinds that can attach to a Gateway."""

    HTTP = "HTTPRoute"
    GRPC = "GRPCRoute"
    TCP = "TCPRoute"
    UDP = "UDPRoute"
    TLS = "TLSRoute"

    @property
    def is_l7(self) -> bool:
        return self in (RouteKind.HTTP, RouteKind.GRPC)


class PathMatchType(str, Enum):
    EXACT = "Exact"
    PREFIX = "PathPrefix"
    REGEX = "RegularExpression"


class ServicePort(GatewayAPIBase):
    """The resolved port of a backend Service."""

    name: str | None = Field(default=None)
    port: int = Field(..., ge=1, le=65535, description="Service port.")
    target_port: int | str | None = Field(
        default=None,
        description="Pod port, numeric or named. Used for 'ip' targets.",
    )
    node_port: int = Field(
        default=0, ge=0, description="NodePort. Used for 'instance' targets."
    )


class ServiceBackend(GatewayAPIBase):
    """A backend Service already resolved by the route loader."""

    service_name: str = Field(..., description="Name of the Service.")
    service_namespace: str = Field(..., description="Namespace of the Service.")
    service_port: ServicePort = Field(..., description="The referenced port.")
    ip_families: list[str] = Field(
        default_factory=lambda: ["IPv4"],
        description="Service IP families, e.g. ['IPv4'] or ['IPv6'].",
    )
    target_group_props: TargetGroupProps | None = Field(
        default=None, description="Per-backend target group overrides."
    )

    @property
    def is_ipv6(self) -> bool:
        return "IPv6" in self.ip_families


class LiteralTargetGroupBackend(GatewayAPIBase):
    """A backend that points at an existing target group by ARN."""

    arn: str = Field(..., description="ARN of the pre-existing target group.")


class Backend(GatewayAPIBase):
    """
    A weighted backend reference of a route rule.

    Exactly one of ``service`` or ``literal_target_group`` is set.
    """

    weight: int = Field(default=1, ge=0)
    service: ServiceBackend | None = Field(default=None)
    literal_target_group: LiteralTargetGroupBackend | None = Field(default=None)

    @model_validator(mode="after")
    def _exactly_one_target(self) -> Self:
        if (self.service is None) == (self.literal_target_group is None):
            raise ValueError(
                "backend requires exactly one of 'service' or 'literalTargetGroup'"
            )
        return self


class PathMatch(GatewayAPIBase):
    type: PathMatchType = Field(default=PathMatchType.PREFIX)
    value: str = Field(default="/")


class HeaderMatch(GatewayAPIBase):
    name: str
    value: str
    type: str = Field(default="Exact", description="Exact or RegularExpression.")


class QueryParamMatch(GatewayAPIBase):
    name: str
    value: str
    type: str = Field(default="Exact", description="Exact or RegularExpression.")


class GRPCMethodMatch(GatewayAPIBase):
    type: str = Field(default="Exact", description="Exact or RegularExpression.")
    service: str | None = Field(default=None)
    method: str | None = Field(default=None)


class RouteMatch(GatewayAPIBase):
    """
    One match clause of a route rule.

    HTTP routes use ``path``, ``method``, ``headers`` and ``query_params``;
    GRPC routes use ``grpc_method`` and ``headers``. L4 routes carry none.
    """

    path: PathMatch | None = Field(default=None)
    method: str | None = Field(default=None)
    grpc_method: GRPCMethodMatch | None = Field(default=None)
    headers: list[HeaderMatch] = Field(default_factory=list)
    query_params: list[QueryParamMatch] = Field(default_factory=list)


class RouteFilterType(str, Enum):
    REQUEST_REDIRECT = "RequestRedirect"
    URL_REWRITE = "URLRewrite"
    EXTENSION_REF = "ExtensionRef"
    REQUEST_HEADER_MODIFIER = "RequestHeaderModifier"
    RESPONSE_HEADER_MODIFIER = "ResponseHeaderModifier"
    REQUEST_MIRROR = "RequestMirror"


class RedirectPathType(str, Enum):
    REPLACE_FULL_PATH = "ReplaceFullPath"
    REPLACE_PREFIX_MATCH = "ReplacePrefixMatch"


class RedirectPath(GatewayAPIBase):
    type: RedirectPathType
    replace_full_path: str | None = Field(default=None)
    replace_prefix_match: str | None = Field(default=None)


class RequestRedirect(GatewayAPIBase):
    """Redirect target of a ``RequestRedirect`` filter; unset parts are kept."""

    scheme: str | None = Field(default=None)
    hostname: str | None = Field(default=None)
    path: RedirectPath | None = Field(default=None)
    port: int | None = Field(default=None, ge=1, le=65535)
    status_code: Literal[301, 302] = Field(default=302)


class RouteFilter(GatewayAPIBase):
    type: RouteFilterType
    request_redirect: RequestRedirect | None = Field(default=None)

    @model_validator(mode="after")
    def _redirect_has_config(self) -> Self:
        if self.type is RouteFilterType.REQUEST_REDIRECT and self.request_redirect is None:
            raise ValueError("RequestRedirect filter requires 'requestRedirect'")
        return self


class RouteRule(GatewayAPIBase):
    matches: list[RouteMatch] = Field(default_factory=list)
    filters: list[RouteFilter] = Field(default_factory=list)
    backends: list[Backend] = Field(default_factory=list)


class RouteDescriptor(GatewayAPIBase):
    """
    A route attached to a Gateway, with its backends already resolved.

    ``compatible_hostnames_by_port`` carries the hostnames after intersection
    with the Gateway listener on each port; when a port has no entry the
    route's own ``hostnames`` are used.
    """

    kind: RouteKind = Field(..., description="Route kind.")
    namespace: str = Field(..., description="Route namespace.")
    name: str = Field(..., description="Route name.")
    hostnames: list[str] = Field(default_factory=list)
    rules: list[RouteRule] = Field(default_factory=list)
    compatible_hostnames_by_port: dict[int, list[str]] = Field(default_factory=dict)

    @property
    def namespaced_name(self) -> str:
        return f"{self.namespace}/{self.name}"

    def hostnames_for_port(self, port: int | None = None) -> list[str]:
        if port is not None and port in self.compatible_hostnames_by_port:
            return self.compatible_hostnames_by_port[port]
        return self.hostnames
