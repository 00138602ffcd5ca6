"""Input document consumed by the command line interface."""

import logging
from pathlib import Path

from pydantic import Field

from ..core.results import SubnetInfo
from ..ir.models import Addon
from ..models import Gateway, LoadBalancerConfiguration, RouteDescriptor
from ..models.base import GatewayAPIBase
from .documents import load_document

logger = logging.getLogger(__name__)


class SubnetEntry(GatewayAPIBase):
    """One subnet of the static subnet inventory."""

    subnet_id: str
    availability_zone: str
    name: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)
    public: bool = False

    def to_subnet_info(self) -> SubnetInfo:
        return SubnetInfo(
            subnet_id=self.subnet_id,
            availability_zone=self.availability_zone,
            name=self.name,
            tags=dict(self.tags),
            public=self.public,
        )


class BuildInput(GatewayAPIBase):
    """
    A Gateway with everything needed to build its Stack offline.

    Besides the Gateway, its LoadBalancerConfiguration and the attached
    routes, the document carries the inventories that back the static
    lookups (subnets, security groups, TLS secrets, certificates and
    trust stores).
    """

    gateway: Gateway
    load_balancer_configuration: LoadBalancerConfiguration = Field(
        default_factory=LoadBalancerConfiguration
    )
    routes_by_port: dict[int, list[RouteDescriptor]] = Field(default_factory=dict)
    previous_addons: list[Addon] = Field(default_factory=list)
    subnets: list[SubnetEntry] = Field(default_factory=list)
    security_groups: dict[str, str] = Field(
        default_factory=dict, description="Security group name -> ID."
    )
    backend_security_group: str = Field(default="sg-backend")
    secrets: dict[str, str] = Field(
        default_factory=dict, description="'namespace/name' -> certificate ARN."
    )
    certificates: dict[str, str] = Field(
        default_factory=dict, description="Domain (or '*.domain') -> certificate ARN."
    )
    certificate_issuers: dict[str, str] = Field(
        default_factory=dict, description="Certificate ARN -> issuing CA ARN."
    )
    trust_stores: dict[str, str] = Field(
        default_factory=dict, description="mTLS trust store name -> ARN."
    )


def load_build_input(path: str | Path) -> BuildInput:
    build_input = load_document(path, BuildInput)
    logger.debug(
        "Input for gateway %s: %d port(s) with routes",
        build_input.gateway.namespaced_name,
        len(build_input.routes_by_port),
    )
    return build_input
