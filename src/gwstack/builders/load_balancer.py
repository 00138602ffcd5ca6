import hashlib
import logging
from collections.abc import Sequence

from gwstack.builders.target_group import sanitize_name
from gwstack.config import BuilderConfig
from gwstack.core.protocols import TagHelper
from gwstack.core.results import SubnetResolution
from gwstack.ir.models import (
    Addon,
    IPAddressType,
    KeyValue,
    LoadBalancerScheme,
    LoadBalancerSpec,
    Token,
)
from gwstack.models import Gateway, LoadBalancerConfiguration

logger = logging.getLogger(__name__)

LOAD_BALANCER_RESOURCE_ID = "LoadBalancer"


class LoadBalancerSpecBuilder:
    """Combine resolved subnets and security groups into a LoadBalancerSpec."""

    def __init__(self, config: BuilderConfig, tag_helper: TagHelper):
        self._config = config
        self._tag_helper = tag_helper
        self._logger = logger.getChild(self.__class__.__name__)

    def build(
        self,
        scheme: LoadBalancerScheme,
        ip_address_type: IPAddressType,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration,
        subnets: SubnetResolution,
        security_group_tokens: Sequence[Token],
        previous_addons: Sequence[Addon] = (),
    ) -> LoadBalancerSpec:
        name = self.build_name(scheme, gateway, lb_config)
        spec = LoadBalancerSpec(
            name=name,
            type=self._config.load_balancer_type,
            scheme=scheme,
            ip_address_type=ip_address_type,
            subnet_mappings=list(subnets.mappings),
            security_groups=list(security_group_tokens),
            attributes=self.build_attributes(lb_config),
            minimum_capacity_units=self.build_minimum_capacity(lb_config, previous_addons),
            enable_prefix_for_ipv6_source_nat="on" if subnets.source_nat_enabled else None,
            customer_owned_ipv4_pool=lb_config.customer_owned_ipv4_pool,
            ipv4_ipam_pool_id=lb_config.ipv4_ipam_pool_id,
            enforce_security_group_inbound_rules_on_private_link_traffic=(
                lb_config.enforce_security_group_inbound_rules_on_private_link_traffic
            ),
            tags=self._tag_helper.gateway_tags(lb_config),
        )
        self._logger.debug(
            "Load balancer spec '%s' (%s, %s, %s) for %s",
            spec.name,
            spec.type.value,
            spec.scheme.value,
            spec.ip_address_type.value,
            gateway.namespaced_name,
        )
        return spec

    def build_name(
        self,
        scheme: LoadBalancerScheme,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration,
    ) -> str:
        if lb_config.load_balancer_name:
            return lb_config.load_balancer_name

        digest = hashlib.sha256()
        for part in (self._config.cluster_name, gateway.namespace, gateway.name, scheme.value):
            digest.update(part.encode())
        namespace = sanitize_name(gateway.namespace)[:8]
        name = sanitize_name(gateway.name)[:8]
        return f"k8s-{namespace}-{name}-{digest.hexdigest()[:10]}"

    @staticmethod
    def build_attributes(lb_config: LoadBalancerConfiguration) -> list[KeyValue]:
        # Later entries override earlier ones with the same key.
        merged = {attr.key: attr.value for attr in lb_config.load_balancer_attributes}
        return [KeyValue(key=k, value=v) for k, v in sorted(merged.items())]

    def build_minimum_capacity(
        self,
        lb_config: LoadBalancerConfiguration,
        previous_addons: Sequence[Addon],
    ) -> int | None:
        """
        Capacity units to reserve, or None to leave capacity untouched.

        When provisioned capacity was enabled by an earlier build and is no
        longer configured, 0 is returned so the reservation is released.
        """
        if Addon.PROVISIONED_CAPACITY not in self._config.supported_addons:
            return None
        if lb_config.minimum_load_balancer_capacity is not None:
            return lb_config.minimum_load_balancer_capacity.capacity_units
        if Addon.PROVISIONED_CAPACITY in previous_addons:
            return 0
        return None
