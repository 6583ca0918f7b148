"""Base resource class for HCP resources."""

from typing import ClassVar, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ResourceRef(NamedTuple):
    """A reference to another resource by one of its attribute values.

    ``project_id`` pins the referenced resource to a project; ``None`` means the
    referencing resource's own project.
    """

    resource_type: str
    attribute: str
    value: str
    project_id: str | None = None


class Resource(BaseModel):
    """Base class for all HCP resources.

    Resources are pure data - they define the desired state.
    Handlers know how to CRUD resources.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]
    link_type: ClassVar[str]
    plan_priority: ClassVar[int] = 100

    name: str = Field(pattern=r"^[a-zA-Z0-9_]+$")

    # Overrides the provider's default project for this resource only.
    project_id: str | None = None

    # Lifecycle
    depends_on: list[str] = []

    def references(self) -> list[ResourceRef]:
        """Other resources this one implicitly depends on."""
        return []

    @computed_field
    @property
    def address(self) -> str:
        """Unique address for this resource (e.g., 'hcp_hvn.main')."""
        return f"{self.resource_type}.{self.name}"
