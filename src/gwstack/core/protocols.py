from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Protocol

from gwstack.ir.models import (
    Addon,
    AddonMetadata,
    IPAddressType,
    LoadBalancerScheme,
    ResourceRef,
)

if TYPE_CHECKING:
    from gwstack.core.context import BuildContext
    from gwstack.core.results import (
        SecurityGroupResult,
        SubnetInfo,
        SubnetResolution,
    )
    from gwstack.core.stack import Stack
    from gwstack.models import (
        Gateway,
        LoadBalancerConfiguration,
        RouteDescriptor,
        SecretReference,
        SubnetConfiguration,
        TargetGroupProps,
    )


class SubnetResolver(Protocol):
    """Defines the contract for choosing the load balancer subnets."""

    def resolve(
        self,
        context: "BuildContext",
        stack: "Stack",
        subnet_configs: "Sequence[SubnetConfiguration] | None",
        subnet_selector: Mapping[str, Sequence[str]] | None,
        scheme: LoadBalancerScheme,
        ip_address_type: IPAddressType,
    ) -> "SubnetResolution":
        """
        Resolve one subnet per availability zone.

        Args:
            context: Build context (cancellation).
            stack: The Stack being built.
            subnet_configs: Explicit subnets, if configured.
            subnet_selector: Tag selector, used when no explicit subnets exist.
            scheme: Resolved load balancer scheme.
            ip_address_type: Resolved load balancer IP address type.

        Returns:
            The subnet mappings and whether source NAT prefixes are in use.
        """
        ...


class SubnetLookup(Protocol):
    """Defines the contract for querying subnets from the cloud provider."""

    def by_identifiers(
        self, context: "BuildContext", identifiers: Sequence[str]
    ) -> "list[SubnetInfo]":
        """Look subnets up by ID or by Name tag, preserving input order."""
        ...

    def by_selector(
        self, context: "BuildContext", selector: Mapping[str, Sequence[str]]
    ) -> "list[SubnetInfo]":
        """Look subnets up by tag selector (key -> accepted values)."""
        ...

    def discover(
        self, context: "BuildContext", scheme: LoadBalancerScheme
    ) -> "list[SubnetInfo]":
        """Discover subnets suitable for the scheme (role tags, public/private)."""
        ...


class SecurityGroupResolver(Protocol):
    """Defines the contract for resolving or allocating security groups."""

    def resolve(
        self,
        context: "BuildContext",
        stack: "Stack",
        lb_config: "LoadBalancerConfiguration",
        gateway: "Gateway",
        routes_by_port: "Mapping[int, Sequence[RouteDescriptor]]",
        ip_address_type: IPAddressType,
    ) -> "SecurityGroupResult":
        """Return the security group tokens for the load balancer and backends."""
        ...


class SecurityGroupLookup(Protocol):
    """Defines the contract for resolving security group names or IDs."""

    def resolve_ids(
        self, context: "BuildContext", names_or_ids: Sequence[str]
    ) -> list[str]:
        """Resolve names or IDs into security group IDs, preserving order."""
        ...


class BackendSecurityGroupProvider(Protocol):
    """Defines the contract for obtaining the shared backend security group."""

    def get(self, context: "BuildContext", gateway: "Gateway") -> str:
        """Return the backend security group ID, creating it if needed."""
        ...


class AddonBuilder(Protocol):
    """Defines the contract for reconciling auxiliary load balancer features."""

    def build_addons(
        self,
        context: "BuildContext",
        stack: "Stack",
        load_balancer_ref: ResourceRef,
        lb_config: "LoadBalancerConfiguration",
        previous_addons: Sequence[Addon],
    ) -> list[AddonMetadata]:
        """
        Register add-on resources and report the resulting add-on state.

        Args:
            context: Build context (cancellation).
            stack: The Stack being built.
            load_balancer_ref: Stack-local handle of the load balancer.
            lb_config: Desired configuration; empty when tearing down.
            previous_addons: Add-ons that were enabled by the previous build.

        Returns:
            One metadata entry per supported add-on.
        """
        ...


class SecretResolver(Protocol):
    """Defines the contract for turning a TLS secret into a certificate ARN."""

    def resolve_certificate(
        self, context: "BuildContext", secret_ref: "SecretReference"
    ) -> str:
        """Return the certificate ARN backing the referenced secret."""
        ...


class CertificateDiscovery(Protocol):
    """Defines the contract for discovering certificates by hostname."""

    def discover(self, context: "BuildContext", hostnames: Sequence[str]) -> list[str]:
        """Return certificate ARNs covering the hostnames."""
        ...


class TrustStoreResolver(Protocol):
    """Defines the contract for turning a trust store name into its ARN."""

    def resolve_trust_store_arn(self, context: "BuildContext", name: str) -> str:
        """Return the ARN of the named trust store."""
        ...


class TagHelper(Protocol):
    """Defines the contract for computing resource tags."""

    def gateway_tags(self, lb_config: "LoadBalancerConfiguration") -> dict[str, str]:
        """Tags for load balancer, listener and security group resources."""
        ...

    def target_group_tags(
        self, props: "TargetGroupProps | None"
    ) -> dict[str, str]:
        """Tags for target group resources."""
        ...
