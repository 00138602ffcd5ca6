"""
Builder configuration

Read-only settings the stack builder is constructed with. They are fixed for
the lifetime of a builder instance and shared by every build it performs.
"""

import logging
from pathlib import Path
from typing import Self

from pydantic import ConfigDict, Field, model_validator

from gwstack.io.documents import load_document
from gwstack.ir.models import (
    ALL_ADDONS,
    Addon,
    IPAddressType,
    LoadBalancerScheme,
    LoadBalancerType,
    TargetType,
)
from gwstack.models.base import GatewayAPIBase

logger = logging.getLogger(__name__)

DEFAULT_SSL_POLICY = "ELBSecurityPolicy-2016-08"


class FeatureGate:
    """Names of the feature gates the builders consult."""

    LISTENER_RULES_TAGGING = "ListenerRulesTagging"
    WEIGHTED_TARGET_GROUPS = "WeightedTargetGroups"
    NLB_SECURITY_GROUP = "NLBSecurityGroup"


_FEATURE_DEFAULTS: dict[str, bool] = {
    FeatureGate.LISTENER_RULES_TAGGING: True,
    FeatureGate.WEIGHTED_TARGET_GROUPS: True,
    FeatureGate.NLB_SECURITY_GROUP: True,
}


class BuilderConfig(GatewayAPIBase):
    """Settings shared by every build of one StackBuilder."""

    model_config = ConfigDict(frozen=True)

    cluster_name: str = Field(..., min_length=1, description="Kubernetes cluster name.")
    vpc_id: str = Field(..., min_length=1, description="VPC the cluster runs in.")
    load_balancer_type: LoadBalancerType = Field(
        default=LoadBalancerType.APPLICATION,
        description="Application (L7) or network (L4) load balancers.",
    )
    default_scheme: LoadBalancerScheme = Field(default=LoadBalancerScheme.INTERNAL)
    default_ip_address_type: IPAddressType = Field(default=IPAddressType.IPV4)
    default_target_type: TargetType = Field(default=TargetType.INSTANCE)
    default_ssl_policy: str = Field(default=DEFAULT_SSL_POLICY)
    external_managed_tags: frozenset[str] = Field(
        default_factory=frozenset,
        description="Tag keys owned by external tooling; users may not set them.",
    )
    default_tags: dict[str, str] = Field(
        default_factory=dict, description="Tags applied to every resource."
    )
    enable_backend_sg: bool = Field(
        default=True, alias="enableBackendSG", description="Use a shared backend SG."
    )
    disable_restricted_sg_rules: bool = Field(
        default=False, alias="disableRestrictedSGRules"
    )
    allowed_ca_arns: tuple[str, ...] = Field(default=(), alias="allowedCAARNs")
    feature_gates: dict[str, bool] = Field(default_factory=dict)
    supported_addons: tuple[Addon, ...] = Field(default=ALL_ADDONS)

    # ----- validators --------------------------------------------------------
    @model_validator(mode="after")
    def _default_tags_not_external(self) -> Self:
        clash = sorted(set(self.default_tags) & self.external_managed_tags)
        if clash:
            raise ValueError(
                f"default tags overlap external managed tags: {', '.join(clash)}"
            )
        return self

    def feature_enabled(self, gate: str) -> bool:
        return self.feature_gates.get(gate, _FEATURE_DEFAULTS.get(gate, False))

    @property
    def is_application(self) -> bool:
        return self.load_balancer_type is LoadBalancerType.APPLICATION


def load_builder_config(path: str | Path) -> BuilderConfig:
    """Load a BuilderConfig from a YAML or JSON file."""
    config = load_document(path, BuilderConfig)
    logger.debug(
        "Builder config loaded: cluster=%s type=%s",
        config.cluster_name,
        config.load_balancer_type.value,
    )
    return config
