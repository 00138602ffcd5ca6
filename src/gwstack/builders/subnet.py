import logging
from collections.abc import Mapping, Sequence

from gwstack.core.context import BuildContext
from gwstack.core.protocols import SubnetLookup
from gwstack.core.results import SubnetInfo, SubnetResolution
from gwstack.core.stack import Stack
from gwstack.exceptions import SubnetResolutionError
from gwstack.ir.models import (
    IPAddressType,
    LoadBalancerScheme,
    LoadBalancerType,
    SubnetMapping,
)
from gwstack.models import SubnetConfiguration

logger = logging.getLogger(__name__)


class DefaultSubnetResolver:
    """
    Choose the load balancer subnets from explicit configuration, a tag
    selector, or discovery, in that order of preference.

    Per-subnet allocations (EIP, private IPv4, IPv6, source NAT prefix) are
    only honoured for network load balancers and are applied positionally:
    the n-th configured subnet gives its allocations to the n-th mapping.
    """

    def __init__(self, load_balancer_type: LoadBalancerType, lookup: SubnetLookup):
        self._load_balancer_type = load_balancer_type
        self._lookup = lookup
        self._logger = logger.getChild(self.__class__.__name__)

    def resolve(
        self,
        context: BuildContext,
        stack: Stack,
        subnet_configs: Sequence[SubnetConfiguration] | None,
        subnet_selector: Mapping[str, Sequence[str]] | None,
        scheme: LoadBalancerScheme,
        ip_address_type: IPAddressType,
    ) -> SubnetResolution:
        configs = list(subnet_configs or [])
        source_nat_enabled = self.validate_subnets_input(
            configs, scheme, ip_address_type
        )

        context.check_cancelled()
        subnets = self._resolve_subnets(context, configs, subnet_selector, scheme)
        if not subnets:
            raise SubnetResolutionError(
                f"unable to resolve at least one subnet for {stack.stack_id}"
            )
        self._check_one_per_zone(subnets)

        mappings = [SubnetMapping(subnet_id=s.subnet_id) for s in subnets]
        if self._load_balancer_type is LoadBalancerType.NETWORK and configs:
            mappings = self._apply_allocations(mappings, configs)

        self._logger.debug(
            "Resolved %d subnet(s) for %s: %s",
            len(mappings),
            stack.stack_id,
            [m.subnet_id for m in mappings],
        )
        return SubnetResolution(
            mappings=tuple(mappings), source_nat_enabled=source_nat_enabled
        )

    def validate_subnets_input(
        self,
        configs: Sequence[SubnetConfiguration],
        scheme: LoadBalancerScheme,
        ip_address_type: IPAddressType,
    ) -> bool:
        """
        Check the explicit subnet configuration against the load balancer.

        Returns:
            Whether source NAT IPv6 prefixes are configured.
        """
        if not configs:
            return False

        first = configs[0]
        identifier_set = first.identifier != ""
        eip_set = first.eip_allocation is not None
        ipv6_set = first.ipv6_allocation is not None
        private_ipv4_set = first.private_ipv4_allocation is not None
        source_nat_set = first.source_nat_ipv6_prefix is not None
        is_network = self._load_balancer_type is LoadBalancerType.NETWORK

        if eip_set:
            if not is_network:
                raise SubnetResolutionError(
                    "EIP Allocation is only allowed for Network LoadBalancers"
                )
            if scheme is not LoadBalancerScheme.INTERNET_FACING:
                raise SubnetResolutionError(
                    "EIPAllocation can only be set for internet facing load balancers"
                )

        if ipv6_set:
            if not is_network:
                raise SubnetResolutionError(
                    "IPv6Allocation is only supported for Network LoadBalancers"
                )
            if ip_address_type is not IPAddressType.DUALSTACK:
                raise SubnetResolutionError(
                    "IPv6Allocation can only be set for dualstack load balancers"
                )

        if private_ipv4_set:
            if not is_network:
                raise SubnetResolutionError(
                    "PrivateIPv4Allocation is only supported for Network LoadBalancers"
                )
            if scheme is not LoadBalancerScheme.INTERNAL:
                raise SubnetResolutionError(
                    "PrivateIPv4Allocation can only be set for internal load balancers"
                )

        if source_nat_set and not is_network:
            raise SubnetResolutionError(
                "SourceNatIPv6Prefix is only supported for Network LoadBalancers"
            )

        for cfg in configs:
            if (cfg.identifier != "") != identifier_set:
                raise SubnetResolutionError(
                    "Either specify all subnet identifiers or none."
                )
            if (cfg.eip_allocation is not None) != eip_set:
                raise SubnetResolutionError("Either specify all eip allocations or none.")
            if (cfg.ipv6_allocation is not None) != ipv6_set:
                raise SubnetResolutionError(
                    "Either specify all ipv6 allocations or none."
                )
            if (cfg.private_ipv4_allocation is not None) != private_ipv4_set:
                raise SubnetResolutionError(
                    "Either specify all private ipv4 allocations or none."
                )
            if (cfg.source_nat_ipv6_prefix is not None) != source_nat_set:
                raise SubnetResolutionError(
                    "Either specify all source nat prefixes or none."
                )

        return source_nat_set

    def _resolve_subnets(
        self,
        context: BuildContext,
        configs: Sequence[SubnetConfiguration],
        selector: Mapping[str, Sequence[str]] | None,
        scheme: LoadBalancerScheme,
    ) -> list[SubnetInfo]:
        if configs and configs[0].identifier != "":
            identifiers = [cfg.identifier for cfg in configs]
            self._logger.debug("Resolving subnets by identifier: %s", identifiers)
            return self._lookup.by_identifiers(context, identifiers)

        if selector:
            self._logger.debug("Resolving subnets by selector: %s", dict(selector))
            return self._lookup.by_selector(context, selector)

        self._logger.debug("Discovering subnets for scheme %s", scheme.value)
        return self._lookup.discover(context, scheme)

    @staticmethod
    def _check_one_per_zone(subnets: Sequence[SubnetInfo]) -> None:
        seen: dict[str, str] = {}
        for subnet in subnets:
            other = seen.get(subnet.availability_zone)
            if other is not None:
                raise SubnetResolutionError(
                    f"multiple subnets in same Availability Zone "
                    f"{subnet.availability_zone}: {other}, {subnet.subnet_id}"
                )
            seen[subnet.availability_zone] = subnet.subnet_id

    @staticmethod
    def _apply_allocations(
        mappings: list[SubnetMapping], configs: Sequence[SubnetConfiguration]
    ) -> list[SubnetMapping]:
        if len(mappings) != len(configs):
            raise SubnetResolutionError(
                f"resolved {len(mappings)} subnets but {len(configs)} subnet "
                "configurations were given"
            )
        result: list[SubnetMapping] = []
        for mapping, cfg in zip(mappings, configs):
            result.append(
                mapping.model_copy(
                    update={
                        "allocation_id": cfg.eip_allocation,
                        "private_ipv4_address": cfg.private_ipv4_allocation,
                        "ipv6_address": cfg.ipv6_allocation,
                        "source_nat_ipv6_prefix": cfg.source_nat_ipv6_prefix,
                    }
                )
            )
        return result
