from pydantic import Field

from .base import Attribute, GatewayAPIBase


class HealthCheckMatcherConfig(GatewayAPIBase):
    """Success codes for HTTP or gRPC health checks."""

    http_code: str | None = Field(default=None, description="e.g. '200-399'.")
    grpc_code: str | None = Field(default=None, description="e.g. '0-99'.")


class HealthCheckConfiguration(GatewayAPIBase):
    """User overrides for target group health checks."""

    health_check_port: str | None = Field(
        default=None,
        description="Port number, named service port, or 'traffic-port'.",
    )
    health_check_protocol: str | None = Field(
        default=None, description="TCP, HTTP or HTTPS."
    )
    health_check_path: str | None = Field(default=None)
    health_check_interval: int | None = Field(default=None, ge=5, le=300)
    health_check_timeout: int | None = Field(default=None, ge=2, le=120)
    healthy_threshold_count: int | None = Field(default=None, ge=2, le=10)
    unhealthy_threshold_count: int | None = Field(default=None, ge=2, le=10)
    matcher: HealthCheckMatcherConfig | None = Field(default=None)


class TargetGroupProps(GatewayAPIBase):
    """Per-backend target group overrides."""

    target_group_name: str | None = Field(
        default=None, description="Explicit target group name."
    )
    target_type: str | None = Field(default=None, description="instance or ip.")
    protocol: str | None = Field(default=None, description="Backend protocol.")
    protocol_version: str | None = Field(
        default=None, description="HTTP1, HTTP2 or GRPC (application LB only)."
    )
    health_check_config: HealthCheckConfiguration | None = Field(default=None)
    target_group_attributes: list[Attribute] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)
    node_selector: dict[str, str] | None = Field(
        default=None, description="Node label selector for instance targets."
    )
    enable_multi_cluster: bool | None = Field(default=None)
