"""
Route precedence

Deterministic ordering of routes and route rules by routing specificity.
The resulting order becomes the listener rule priority order, so first-match
routing depends on it.

Hostname precedence:
    1. exact hostnames before wildcard (``*.``) hostnames
    2. more labels (dots) first
    3. longer hostnames first
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from gwstack.models import (
    PathMatch,
    PathMatchType,
    RouteDescriptor,
    RouteKind,
    RouteMatch,
    RouteRule,
)

logger = logging.getLogger(__name__)

_HTTP_PATH_TYPE_RANK = {
    PathMatchType.EXACT: 3,
    PathMatchType.PREFIX: 2,
    PathMatchType.REGEX: 1,
}
_GRPC_METHOD_TYPE_RANK = {"Exact": 3, "RegularExpression": 1}


def hostname_key(hostname: str) -> tuple[int, int, int]:
    """Sort key of a single hostname; smaller sorts first."""
    is_wildcard = 1 if hostname.startswith("*.") else 0
    return (is_wildcard, -hostname.count("."), -len(hostname))


def compare_hostnames(first: str, second: str) -> int:
    """
    Compare two hostnames by precedence.

    Returns:
        -1 if ``first`` has higher precedence, 1 if ``second`` has, else 0.
    """
    a, b = hostname_key(first), hostname_key(second)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def representative_hostname(hostnames: Iterable[str]) -> str | None:
    """The highest-precedence hostname, or None when there is none."""
    best: str | None = None
    for hostname in hostnames:
        if best is None or compare_hostnames(hostname, best) < 0:
            best = hostname
    return best


def _route_hostname_key(route: RouteDescriptor, port: int | None) -> tuple:
    best = representative_hostname(route.hostnames_for_port(port))
    if best is None:
        return (1,)
    return (0, hostname_key(best))


def sort_routes_by_precedence(
    routes: Sequence[RouteDescriptor], port: int | None = None
) -> list[RouteDescriptor]:
    """
    Order routes so that higher routing precedence comes first.

    The sort is stable: routes whose representative hostnames compare equal,
    and routes without hostnames, keep their input order. Routes without
    hostnames come after every route that has one. Sorting an already sorted
    sequence returns it unchanged.
    """
    return sorted(routes, key=lambda route: _route_hostname_key(route, port))


@dataclass(frozen=True)
class RulePrecedence:
    """One (route, rule, match) triple in listener rule order."""

    route: RouteDescriptor
    rule: RouteRule
    rule_index: int
    match: RouteMatch | None
    match_index: int


def http_match_key(match: RouteMatch | None) -> tuple[int, int, int, int, int]:
    """
    Specificity key of an HTTP match; smaller sorts first.

    A rule without matches ranks like an empty match, and a match without a
    path ranks like ``PathPrefix /``, which is how listener rules render both.
    """
    if match is None:
        match = RouteMatch()
    path = match.path if match.path is not None else PathMatch()
    return (
        -_HTTP_PATH_TYPE_RANK.get(path.type, 0),
        -len(path.value),
        0 if match.method else 1,
        -len(match.headers),
        -len(match.query_params),
    )


def grpc_match_key(match: RouteMatch | None) -> tuple[int, int, int, int]:
    """Specificity key of a GRPC match; smaller sorts first."""
    if match is None:
        return (0, 0, 0, 0)
    method = match.grpc_method
    rank = service_length = method_length = 0
    if method is not None:
        rank = _GRPC_METHOD_TYPE_RANK.get(method.type, 0)
        service_length = len(method.service or "")
        method_length = len(method.method or "")
    return (-rank, -service_length, -method_length, -len(match.headers))


def _expand(route: RouteDescriptor) -> list[RulePrecedence]:
    expanded: list[RulePrecedence] = []
    for rule_index, rule in enumerate(route.rules):
        if not rule.matches:
            expanded.append(RulePrecedence(route, rule, rule_index, None, 0))
            continue
        for match_index, match in enumerate(rule.matches):
            expanded.append(RulePrecedence(route, rule, rule_index, match, match_index))
    return expanded


def sort_rules_by_precedence(
    routes: Sequence[RouteDescriptor], port: int | None = None
) -> list[RulePrecedence]:
    """
    Flatten L7 routes into (rule, match) entries in listener rule order.

    Routes are first ordered with ``sort_routes_by_precedence``. Entries are
    then ordered by route hostname precedence and match specificity; ties
    keep route order, then rule and match declaration order. HTTP entries
    come before GRPC entries.
    """
    ordered_routes = sort_routes_by_precedence(routes, port)
    http_rules: list[RulePrecedence] = []
    grpc_rules: list[RulePrecedence] = []
    for route in ordered_routes:
        if route.kind is RouteKind.HTTP:
            http_rules.extend(_expand(route))
        elif route.kind is RouteKind.GRPC:
            grpc_rules.extend(_expand(route))
        else:
            logger.debug(
                "Route %s (%s) has no L7 rules; skipped",
                route.namespaced_name,
                route.kind.value,
            )

    http_rules.sort(
        key=lambda rp: (_route_hostname_key(rp.route, port), http_match_key(rp.match))
    )
    grpc_rules.sort(
        key=lambda rp: (_route_hostname_key(rp.route, port), grpc_match_key(rp.match))
    )
    return http_rules + grpc_rules
