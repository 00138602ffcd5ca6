from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GatewayAPIBase(BaseModel):
    """
    Base class for the declarative input objects (Gateway, routes and
    LoadBalancerConfiguration).

    Field names are snake_case in Python and camelCase in YAML/JSON documents,
    matching the Kubernetes spelling of the same fields.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class Attribute(GatewayAPIBase):
    """A single key/value attribute (load balancer, listener or target group)."""

    key: str = Field(..., description="Attribute key, e.g. 'idle_timeout.timeout_seconds'.")
    value: str = Field(..., description="Attribute value, always carried as a string.")
