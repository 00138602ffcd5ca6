from datetime import datetime

from pydantic import Field, field_validator

from .base import GatewayAPIBase


class SecretReference(GatewayAPIBase):
    """Reference to a TLS secret holding a certificate and key."""

    name: str = Field(..., description="Name of the referenced secret.")
    namespace: str | None = Field(
        default=None,
        description="Namespace of the secret. Defaults to the Gateway namespace.",
    )


class ListenerTLSConfig(GatewayAPIBase):
    """TLS settings of a Gateway listener."""

    certificate_refs: list[SecretReference] = Field(
        default_factory=list,
        description="Secrets providing the certificates served by the listener.",
    )


class GatewayListener(GatewayAPIBase):
    """One listener (port, protocol, optional hostname) declared on a Gateway."""

    name: str = Field(..., description="Listener name, unique within the Gateway.")
    port: int = Field(..., ge=1, le=65535, description="Port the listener binds to.")
    protocol: str = Field(
        ..., description="Listener protocol: HTTP, HTTPS, TLS, TCP or UDP."
    )
    hostname: str | None = Field(
        default=None, description="Optional hostname the listener is scoped to."
    )
    tls: ListenerTLSConfig | None = Field(
        default=None, description="TLS configuration for HTTPS/TLS listeners."
    )

    @field_validator("protocol")
    @classmethod
    def _upper_protocol(cls, v: str) -> str:
        return v.upper()


class GatewayInfrastructure(GatewayAPIBase):
    """Labels and annotations propagated to generated Kubernetes objects."""

    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class Gateway(GatewayAPIBase):
    """
    The user-facing declaration of a logical load balancer.

    Only the fields the model builder reads are carried: identity, deletion
    state, listeners and infrastructure metadata.
    """

    namespace: str = Field(..., description="Gateway namespace.")
    name: str = Field(..., description="Gateway name.")
    uid: str = Field(default="", description="Kubernetes object UID.")
    deletion_timestamp: datetime | None = Field(
        default=None,
        description="Set once deletion of the Gateway has been requested.",
    )
    listeners: list[GatewayListener] = Field(
        default_factory=list, description="Listeners declared on the Gateway."
    )
    infrastructure: GatewayInfrastructure | None = Field(
        default=None,
        description="Optional labels/annotations for generated objects.",
    )

    @property
    def namespaced_name(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def being_deleted(self) -> bool:
        return self.deletion_timestamp is not None
