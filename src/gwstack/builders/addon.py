import logging
from collections.abc import Iterable, Sequence

from gwstack.core.context import BuildContext
from gwstack.core.stack import Stack
from gwstack.ir.models import (
    ALL_ADDONS,
    Addon,
    AddonMetadata,
    ProtectionSpec,
    ResourceRef,
    ShieldProtection,
    WebACLAssociation,
    WebACLAssociationSpec,
)
from gwstack.models import LoadBalancerConfiguration

logger = logging.getLogger(__name__)

WEB_ACL_ASSOCIATION_ID = "WebACLAssociation"
SHIELD_PROTECTION_ID = "ShieldProtection"


def addon_enabled(addon: Addon, lb_config: LoadBalancerConfiguration) -> bool:
    """Whether the configuration asks for the add-on."""
    match addon:
        case Addon.WAFV2:
            return lb_config.wafv2 is not None and lb_config.wafv2.acl != ""
        case Addon.SHIELD:
            return lb_config.shield_advanced is not None and lb_config.shield_advanced.enabled
        case Addon.PROVISIONED_CAPACITY:
            return lb_config.minimum_load_balancer_capacity is not None
    return False


class DefaultAddonBuilder:
    """
    Register WAFv2 and Shield resources against the load balancer.

    An add-on that was enabled by the previous build but is no longer
    configured still gets a resource, in its disabled form, so the
    reconciler removes it. Provisioned capacity has no resource of its own:
    it is a field of the load balancer spec.
    """

    def __init__(self, supported_addons: Iterable[Addon] = ALL_ADDONS):
        supported = set(supported_addons)
        self._supported = [a for a in ALL_ADDONS if a in supported]
        self._logger = logger.getChild(self.__class__.__name__)

    def build_addons(
        self,
        context: BuildContext,
        stack: Stack,
        load_balancer_ref: ResourceRef,
        lb_config: LoadBalancerConfiguration,
        previous_addons: Sequence[Addon],
    ) -> list[AddonMetadata]:
        metadata: list[AddonMetadata] = []
        for addon in self._supported:
            context.check_cancelled()
            enabled = addon_enabled(addon, lb_config)
            was_enabled = addon in previous_addons
            if enabled or was_enabled:
                self._register(stack, addon, load_balancer_ref, lb_config, enabled)
            metadata.append(AddonMetadata(name=addon, enabled=enabled))

        self._logger.debug(
            "Add-ons for %s: %s",
            stack.stack_id,
            {m.name.value: m.enabled for m in metadata},
        )
        return metadata

    def _register(
        self,
        stack: Stack,
        addon: Addon,
        load_balancer_ref: ResourceRef,
        lb_config: LoadBalancerConfiguration,
        enabled: bool,
    ) -> None:
        if addon is Addon.WAFV2:
            acl = lb_config.wafv2.acl if enabled else ""
            stack.add_resource(
                WebACLAssociation(
                    id=WEB_ACL_ASSOCIATION_ID,
                    spec=WebACLAssociationSpec(web_acl_arn=acl, resource_arn=load_balancer_ref),
                )
            )
        elif addon is Addon.SHIELD:
            stack.add_resource(
                ShieldProtection(
                    id=SHIELD_PROTECTION_ID,
                    spec=ProtectionSpec(enabled=enabled, resource_arn=load_balancer_ref),
                )
            )
        if not enabled:
            self._logger.info("Disabling add-on %s for %s", addon.value, stack.stack_id)
