"""
Stack builder

Entry point of the package: builds the Stack for one Gateway from its
LoadBalancerConfiguration and attached routes.

Lifecycle handling:
    NORMAL            no deletion timestamp; full build
    DELETION_BLOCKED  being deleted with deletion protection on; error
    PRE_DELETE        being deleted with add-ons left; add-ons torn down
    TORN_DOWN         being deleted, nothing left; empty Stack
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from gwstack.builders.listener import ListenerBuilder
from gwstack.builders.load_balancer import LOAD_BALANCER_RESOURCE_ID, LoadBalancerSpecBuilder
from gwstack.builders.scheme import resolve_ip_address_type, resolve_scheme
from gwstack.builders.tags import DefaultTagHelper
from gwstack.builders.target_group import TargetGroupBuilder
from gwstack.config import BuilderConfig
from gwstack.core.context import BuildContext
from gwstack.core.protocols import (
    AddonBuilder,
    CertificateDiscovery,
    SecretResolver,
    SecurityGroupResolver,
    SubnetResolver,
    TagHelper,
    TrustStoreResolver,
)
from gwstack.core.stack import Stack, StackID
from gwstack.exceptions import DeletionProtectedError
from gwstack.ir.models import (
    Addon,
    AddonMetadata,
    LoadBalancer,
    ResourceKind,
    ResourceRef,
)
from gwstack.models import (
    DELETION_PROTECTION_ATTRIBUTE,
    Gateway,
    LoadBalancerConfiguration,
    RouteDescriptor,
)

logger = logging.getLogger(__name__)

_TRUE_LITERALS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_LITERALS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class Lifecycle(str, Enum):
    NORMAL = "Normal"
    DELETION_BLOCKED = "DeletionBlocked"
    PRE_DELETE = "PreDelete"
    TORN_DOWN = "TornDown"


@dataclass(frozen=True)
class BuildResult:
    """Everything one build hands back to the caller."""

    stack: Stack
    load_balancer: LoadBalancer | None = None
    addon_metadata: list[AddonMetadata] = field(default_factory=list)
    backend_security_group_allocated: bool = False
    referenced_secrets: frozenset[str] = frozenset()
    lifecycle: Lifecycle = Lifecycle.NORMAL


def parse_bool(value: str) -> bool:
    """Parse a boolean attribute value; raises ValueError when unrecognised."""
    if value in _TRUE_LITERALS:
        return True
    if value in _FALSE_LITERALS:
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


class StackBuilder:
    """
    Build the resource Stack of a Gateway.

    The builder keeps only read-only configuration and the collaborators
    given at construction, so one instance can serve concurrent builds.
    Every per-build object is created inside :meth:`build`.
    """

    def __init__(
        self,
        config: BuilderConfig,
        subnet_resolver: SubnetResolver,
        security_group_resolver: SecurityGroupResolver,
        addon_builder: AddonBuilder,
        certificate_discovery: CertificateDiscovery | None = None,
        tag_helper: TagHelper | None = None,
        trust_store_resolver: TrustStoreResolver | None = None,
    ):
        self._config = config
        self._subnet_resolver = subnet_resolver
        self._security_group_resolver = security_group_resolver
        self._addon_builder = addon_builder
        self._certificate_discovery = certificate_discovery
        self._trust_store_resolver = trust_store_resolver
        self._tag_helper = tag_helper or DefaultTagHelper(
            config.external_managed_tags, config.default_tags
        )
        self._lb_builder = LoadBalancerSpecBuilder(config, self._tag_helper)
        self._logger = logger.getChild(self.__class__.__name__)

    @property
    def config(self) -> BuilderConfig:
        return self._config

    def build(
        self,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration | None,
        routes_by_port: Mapping[int, Sequence[RouteDescriptor]],
        current_addon_state: Sequence[Addon] = (),
        secret_resolver: SecretResolver | None = None,
        context: BuildContext | None = None,
    ) -> BuildResult:
        """
        Build the Stack for ``gateway``.

        Args:
            gateway: The Gateway being reconciled.
            lb_config: Its LoadBalancerConfiguration; None means defaults.
            routes_by_port: Attached routes grouped by listener port.
            current_addon_state: Add-ons enabled by the previous build.
            secret_resolver: Resolves Gateway TLS secrets to certificates.
            context: Cancellation context; a fresh one when omitted.

        Returns:
            The frozen Stack with its top-level metadata.

        Raises:
            DeletionProtectedError: If the Gateway is being deleted while
                deletion protection is enabled.
            BuildCancelledError: If ``context`` is cancelled.
            StackBuildError: For any other invalid input; collaborator
                errors are propagated unchanged.
        """
        context = context or BuildContext(label=gateway.namespaced_name)
        lb_config = lb_config or LoadBalancerConfiguration()
        stack = Stack(StackID(gateway.namespace, gateway.name))

        lifecycle = self.lifecycle(gateway, lb_config, current_addon_state)
        self._logger.debug("Gateway %s lifecycle: %s", gateway.namespaced_name, lifecycle.value)

        match lifecycle:
            case Lifecycle.DELETION_BLOCKED:
                raise DeletionProtectedError(gateway.namespaced_name)
            case Lifecycle.TORN_DOWN:
                stack.freeze()
                return BuildResult(stack=stack, lifecycle=lifecycle)
            case Lifecycle.PRE_DELETE:
                return self._build_pre_delete(context, stack, current_addon_state)
            case _:
                return self._build_normal(
                    context,
                    stack,
                    gateway,
                    lb_config,
                    routes_by_port,
                    current_addon_state,
                    secret_resolver,
                )

    def lifecycle(
        self,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration,
        current_addon_state: Sequence[Addon],
    ) -> Lifecycle:
        if not gateway.being_deleted:
            return Lifecycle.NORMAL
        if self.is_deletion_protected(lb_config):
            return Lifecycle.DELETION_BLOCKED
        if current_addon_state:
            return Lifecycle.PRE_DELETE
        return Lifecycle.TORN_DOWN

    def is_deletion_protected(self, lb_config: LoadBalancerConfiguration) -> bool:
        value = lb_config.attribute(DELETION_PROTECTION_ATTRIBUTE)
        if value is None:
            return False
        try:
            return parse_bool(value)
        except ValueError:
            self._logger.warning(
                "Unable to parse deletion protection value %r, assuming false.", value
            )
            return False

    # --- Lifecycle branches ---

    def _build_pre_delete(
        self,
        context: BuildContext,
        stack: Stack,
        current_addon_state: Sequence[Addon],
    ) -> BuildResult:
        # The load balancer still exists outside the Stack under its stable id.
        lb_ref = ResourceRef(
            kind=ResourceKind.LOAD_BALANCER,
            id=LOAD_BALANCER_RESOURCE_ID,
            field="loadBalancerARN",
        )
        context.check_cancelled()
        metadata = self._addon_builder.build_addons(
            context, stack, lb_ref, LoadBalancerConfiguration(), list(current_addon_state)
        )
        stack.freeze()
        self._logger.info(
            "Tearing down add-ons %s for %s",
            [a.value for a in current_addon_state],
            stack.stack_id,
        )
        return BuildResult(stack=stack, addon_metadata=metadata, lifecycle=Lifecycle.PRE_DELETE)

    def _build_normal(
        self,
        context: BuildContext,
        stack: Stack,
        gateway: Gateway,
        lb_config: LoadBalancerConfiguration,
        routes_by_port: Mapping[int, Sequence[RouteDescriptor]],
        current_addon_state: Sequence[Addon],
        secret_resolver: SecretResolver | None,
    ) -> BuildResult:
        scheme = resolve_scheme(lb_config.scheme, self._config.default_scheme)
        ip_address_type = resolve_ip_address_type(
            lb_config.ip_address_type, self._config.default_ip_address_type
        )

        context.check_cancelled()
        subnets = self._subnet_resolver.resolve(
            context,
            stack,
            lb_config.load_balancer_subnets,
            lb_config.load_balancer_subnets_selector,
            scheme,
            ip_address_type,
        )

        context.check_cancelled()
        security_groups = self._security_group_resolver.resolve(
            context, stack, lb_config, gateway, routes_by_port, ip_address_type
        )

        spec = self._lb_builder.build(
            scheme,
            ip_address_type,
            gateway,
            lb_config,
            subnets,
            security_groups.security_group_tokens,
            current_addon_state,
        )
        load_balancer = stack.add_resource(LoadBalancer(id=LOAD_BALANCER_RESOURCE_ID, spec=spec))

        listener_builder = ListenerBuilder(
            self._config,
            TargetGroupBuilder(self._config, self._tag_helper),
            self._tag_helper,
            certificate_discovery=self._certificate_discovery,
            secret_resolver=secret_resolver,
            trust_store_resolver=self._trust_store_resolver,
        )
        listener_builder.build_listeners(
            context, stack, load_balancer, security_groups, gateway, routes_by_port, lb_config
        )

        context.check_cancelled()
        metadata = self._addon_builder.build_addons(
            context, stack, load_balancer.arn_ref(), lb_config, list(current_addon_state)
        )

        stack.freeze()
        self._logger.info(
            "Built stack %s with %d resource(s)", stack.stack_id, len(stack)
        )
        return BuildResult(
            stack=stack,
            load_balancer=load_balancer,
            addon_metadata=metadata,
            backend_security_group_allocated=security_groups.backend_security_group_allocated,
            referenced_secrets=frozenset(listener_builder.referenced_secrets),
        )
