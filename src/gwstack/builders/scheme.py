"""Defaulting of load balancer scheme and IP address type."""

from gwstack.exceptions import InvalidEnumError
from gwstack.ir.models import IPAddressType, LoadBalancerScheme


def resolve_scheme(
    override: str | None, default: LoadBalancerScheme
) -> LoadBalancerScheme:
    """
    Return the effective load balancer scheme.

    Raises:
        InvalidEnumError: If ``override`` is set but not a known scheme.
    """
    if override is None:
        return default
    try:
        return LoadBalancerScheme(override)
    except ValueError:
        raise InvalidEnumError("scheme", override) from None


def resolve_ip_address_type(
    override: str | None, default: IPAddressType
) -> IPAddressType:
    """
    Return the effective load balancer IP address type.

    Raises:
        InvalidEnumError: If ``override`` is set but not a known IP address type.
    """
    if override is None:
        return default
    try:
        return IPAddressType(override)
    except ValueError:
        raise InvalidEnumError("ipAddressType", override) from None
