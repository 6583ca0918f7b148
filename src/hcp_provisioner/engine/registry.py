"""Resource type registry: maps ``hcp_*`` resource types to model and handler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from hcp_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from hcp_provisioner.engine.handlers import ResourceHandler
    from hcp_provisioner.resources.base import Resource


@dataclass(frozen=True)
class ResourceTypeRegistration:
    model: type[Resource]
    handler: ResourceHandler[Any]

    @property
    def resource_type(self) -> str:
        return self.model.resource_type

    @property
    def link_type(self) -> str:
        return self.model.link_type

    @property
    def priority(self) -> int:
        return self.model.plan_priority


class ResourceTypeRegistry:
    """Dispatch table from resource type to registration.

    Link types must be unique as well, so a self link identifies exactly one
    resource type.
    """

    def __init__(self) -> None:
        self._by_type: dict[str, ResourceTypeRegistration] = {}
        self._link_types: set[str] = set()

    def register(self, model: type[Resource], handler: ResourceHandler[Any]) -> None:
        for attr in ("resource_type", "link_type"):
            value = getattr(model, attr, None)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{model.__name__} must define a non-empty classvar `{attr}`")

        reg = ResourceTypeRegistration(model=model, handler=handler)
        if reg.resource_type in self._by_type:
            raise ValueError(f"Resource type already registered: {reg.resource_type}")
        if reg.link_type in self._link_types:
            raise ValueError(f"Link type already registered: {reg.link_type}")

        self._by_type[reg.resource_type] = reg
        self._link_types.add(reg.link_type)

    def get(self, resource_type: str) -> ResourceTypeRegistration:
        try:
            return self._by_type[resource_type]
        except KeyError as e:
            raise UnknownResourceTypeError(resource_type) from e

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._by_type

    def __iter__(self) -> Iterator[ResourceTypeRegistration]:
        return iter(sorted(self._by_type.values(), key=lambda r: (r.priority, r.resource_type)))

    def resource_types(self) -> list[str]:
        return [r.resource_type for r in self]
