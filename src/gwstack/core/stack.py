"""
Stack

Ordered container of the resources produced by one build, keyed by kind and
resource ID. A Stack is frozen once the build completes and serializes to the
document written by the CLI.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

from gwstack.exceptions import DuplicateResourceIDError, StackFrozenError
from gwstack.ir.models import SCHEMA_VERSION, Resource, ResourceKind

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class StackID:
    """Identity of a Stack: the namespaced name of the owning Gateway."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class Stack:
    """
    Resource graph produced by one build.

    Resources are keyed by ``(kind, id)`` and kept in insertion order so the
    reconciler can diff deterministically. The Stack does not check
    references between resources; builders only reference ids they have
    already allocated.
    """

    def __init__(self, stack_id: StackID) -> None:
        self._stack_id = stack_id
        self._resources: dict[tuple[ResourceKind, str], Resource] = {}
        self._frozen = False
        self._logger = logger.getChild(self.__class__.__name__)

    @property
    def stack_id(self) -> StackID:
        return self._stack_id

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add_resource(self, resource: R) -> R:
        """
        Register a resource.

        Raises:
            StackFrozenError: If the stack was already frozen.
            DuplicateResourceIDError: If ``(kind, id)`` is already present.
        """
        if self._frozen:
            raise StackFrozenError(
                f"stack {self._stack_id} is frozen; cannot add "
                f"{resource.kind.value} '{resource.id}'"
            )
        key = resource.key
        if key in self._resources:
            raise DuplicateResourceIDError(resource.kind.value, resource.id)
        self._resources[key] = resource
        self._logger.debug("Added %s '%s'", resource.kind.value, resource.id)
        return resource

    def get(self, kind: ResourceKind, resource_id: str) -> Resource | None:
        return self._resources.get((kind, resource_id))

    def resources(self, kind: ResourceKind) -> list[Resource]:
        """Resources of one kind, in insertion order."""
        return [r for (k, _), r in self._resources.items() if k is kind]

    def list_resources(self) -> list[Resource]:
        return list(self._resources.values())

    def resource_keys(self) -> list[tuple[ResourceKind, str]]:
        return list(self._resources.keys())

    def freeze(self) -> None:
        self._frozen = True

    def to_dict(self) -> dict[str, Any]:
        """Plain representation grouped by resource kind."""
        grouped: dict[str, dict[str, Any]] = {}
        for resource in self._resources.values():
            grouped.setdefault(resource.kind.value, {})[resource.id] = (
                resource.to_dict()["spec"]
            )
        return {
            "schemaVersion": SCHEMA_VERSION,
            "id": str(self._stack_id),
            "resources": grouped,
        }

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._resources

    def __repr__(self) -> str:
        return f"Stack(id={self._stack_id}, resources={len(self._resources)})"
