import logging
from collections.abc import Iterable, Mapping

from gwstack.exceptions import TagConfigurationError
from gwstack.models import LoadBalancerConfiguration, TargetGroupProps

logger = logging.getLogger(__name__)


class DefaultTagHelper:
    """
    Merge user tags with the configured default tags.

    Default tags win over user tags with the same key. User tags may not use
    keys that are managed by external tooling.
    """

    def __init__(
        self,
        external_managed_tags: Iterable[str] = (),
        default_tags: Mapping[str, str] | None = None,
    ) -> None:
        self._external_managed_tags = frozenset(external_managed_tags)
        self._default_tags = dict(default_tags or {})
        self._logger = logger.getChild(self.__class__.__name__)

    def gateway_tags(self, lb_config: LoadBalancerConfiguration) -> dict[str, str]:
        return self._merge(lb_config.tags, "LoadBalancerConfiguration")

    def target_group_tags(self, props: TargetGroupProps | None) -> dict[str, str]:
        return self._merge(props.tags if props else {}, "TargetGroupProps")

    def _merge(self, user_tags: Mapping[str, str], source: str) -> dict[str, str]:
        clash = sorted(k for k in user_tags if k in self._external_managed_tags)
        if clash:
            raise TagConfigurationError(
                f"external managed tag key {', '.join(clash)} cannot be "
                f"specified in {source}"
            )
        merged = dict(user_tags)
        overridden = [k for k in self._default_tags if k in merged]
        if overridden:
            self._logger.debug("Default tags override user tags: %s", overridden)
        merged.update(self._default_tags)
        return dict(sorted(merged.items()))
