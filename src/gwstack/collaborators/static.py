"""
Static collaborators

In-memory implementations of the lookup contracts, backed by inventories
given up front. The CLI builds them from the input document; tests use them
in place of cloud clients.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence

from gwstack.core.context import BuildContext
from gwstack.core.results import SubnetInfo
from gwstack.exceptions import (
    ListenerConfigurationError,
    SecurityGroupResolutionError,
    SubnetResolutionError,
)
from gwstack.ir.models import LoadBalancerScheme
from gwstack.models import Gateway, SecretReference

logger = logging.getLogger(__name__)


class StaticSubnetLookup:
    """Subnet lookup over a fixed list of subnets."""

    def __init__(self, subnets: Iterable[SubnetInfo]):
        self._subnets = list(subnets)

    def by_identifiers(
        self, context: BuildContext, identifiers: Sequence[str]
    ) -> list[SubnetInfo]:
        found: list[SubnetInfo] = []
        for identifier in identifiers:
            match = next(
                (s for s in self._subnets if identifier in (s.subnet_id, s.name)), None
            )
            if match is None:
                raise SubnetResolutionError(f"couldn't find subnet {identifier}")
            found.append(match)
        return found

    def by_selector(
        self, context: BuildContext, selector: Mapping[str, Sequence[str]]
    ) -> list[SubnetInfo]:
        return [
            s
            for s in self._subnets
            if all(s.tags.get(key) in values for key, values in selector.items())
        ]

    def discover(self, context: BuildContext, scheme: LoadBalancerScheme) -> list[SubnetInfo]:
        """Pick one subnet per zone: public ones for internet-facing load balancers."""
        want_public = scheme is LoadBalancerScheme.INTERNET_FACING
        chosen: dict[str, SubnetInfo] = {}
        for subnet in sorted(self._subnets, key=lambda s: s.subnet_id):
            if subnet.public != want_public:
                continue
            chosen.setdefault(subnet.availability_zone, subnet)
        return [chosen[zone] for zone in sorted(chosen)]


class StaticSecurityGroupLookup:
    """Resolve security group names through a name -> ID table."""

    def __init__(self, groups_by_name: Mapping[str, str] | None = None):
        self._groups_by_name = dict(groups_by_name or {})

    def resolve_ids(self, context: BuildContext, names_or_ids: Sequence[str]) -> list[str]:
        ids: list[str] = []
        missing: list[str] = []
        for value in names_or_ids:
            if value.startswith("sg-"):
                ids.append(value)
            elif value in self._groups_by_name:
                ids.append(self._groups_by_name[value])
            else:
                missing.append(value)
        if missing:
            raise SecurityGroupResolutionError(
                f"couldn't find all security groups: {', '.join(missing)}"
            )
        return ids


class StaticBackendSecurityGroupProvider:
    """Always hand out the same backend security group."""

    def __init__(self, group_id: str):
        self._group_id = group_id

    def get(self, context: BuildContext, gateway: Gateway) -> str:
        logger.debug("Backend security group %s for %s", self._group_id, gateway.namespaced_name)
        return self._group_id


class StaticSecretResolver:
    """Map ``namespace/name`` of TLS secrets to certificate ARNs."""

    def __init__(self, certificates: Mapping[str, str] | None = None):
        self._certificates = dict(certificates or {})

    def resolve_certificate(self, context: BuildContext, secret_ref: SecretReference) -> str:
        key = f"{secret_ref.namespace}/{secret_ref.name}"
        try:
            return self._certificates[key]
        except KeyError:
            raise ListenerConfigurationError(f"no certificate for secret {key}") from None


class StaticCertificateDiscovery:
    """
    Find certificates by domain; ``*.example.com`` covers one label.

    With ``allowed_ca_arns`` set, only certificates whose issuing CA (from
    ``issuers``, certificate ARN -> CA ARN) is in that list are considered.
    """

    def __init__(
        self,
        certificates: Mapping[str, str] | None = None,
        issuers: Mapping[str, str] | None = None,
        allowed_ca_arns: Sequence[str] = (),
    ):
        self._certificates = dict(certificates or {})
        self._issuers = dict(issuers or {})
        self._allowed_ca_arns = frozenset(allowed_ca_arns)

    def discover(self, context: BuildContext, hostnames: Sequence[str]) -> list[str]:
        arns: list[str] = []
        for host in hostnames:
            arn = self._find(host)
            if arn is None:
                raise ListenerConfigurationError(f"none certificate found for host: {host}")
            if arn not in arns:
                arns.append(arn)
        return arns

    def _allowed(self, arn: str | None) -> bool:
        if arn is None:
            return False
        return not self._allowed_ca_arns or self._issuers.get(arn) in self._allowed_ca_arns

    def _find(self, host: str) -> str | None:
        exact = self._certificates.get(host)
        if self._allowed(exact):
            return exact
        _, _, parent = host.partition(".")
        if parent:
            wildcard = self._certificates.get(f"*.{parent}")
            if self._allowed(wildcard):
                return wildcard
        return None


class StaticTrustStoreResolver:
    """Map mTLS trust store names to ARNs."""

    def __init__(self, trust_stores: Mapping[str, str] | None = None):
        self._trust_stores = dict(trust_stores or {})

    def resolve_trust_store_arn(self, context: BuildContext, name: str) -> str:
        try:
            return self._trust_stores[name]
        except KeyError:
            raise ListenerConfigurationError(
                f"failed to resolve trustStore ARN for name {name}"
            ) from None
