"""Registry of model classes reachable through the API."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from warp_server.domain.errors import ModelNotFound
from warp_server.domain.models import (
    RESERVED_CLASSES,
    USER_CLASS,
    ModelRecord,
    Pointer,
    UserRecord,
)
from warp_server.domain.queries import QueryDescriptor
from warp_server.services.users import check_public_query


class ModelAccessor(Protocol):
    """Storage capability for a single generic class."""

    class_name: str

    async def find(self, query: QueryDescriptor) -> list[ModelRecord]:
        """Return records matching a query."""

    async def first(
        self,
        object_id: int,
        select: tuple[str, ...] = (),
        include: tuple[str, ...] = (),
    ) -> ModelRecord | None:
        """Return a record by id, if present."""

    async def save(
        self, keys: Mapping[str, object], object_id: int | None = None
    ) -> ModelRecord | None:
        """Create a record, or update one when ``object_id`` is given."""

    async def destroy(self, object_id: int) -> ModelRecord | None:
        """Delete a record and return it, if it existed."""

    def to_pointer(self, object_id: int) -> Pointer:
        """Return a pointer to a record of this class."""


class UserFinder(Protocol):
    """Query capability of the user store."""

    async def find(self, query: QueryDescriptor) -> list[UserRecord]:
        """Return users matching a query."""


@dataclass
class ModelRegistry:
    """Maps class names to their accessors, resolved once at startup."""

    users: UserFinder
    models: dict[str, ModelAccessor] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in self.models:
            _check_name(name)

    def register(self, accessor: ModelAccessor) -> None:
        """Add an accessor under its class name."""
        _check_name(accessor.class_name)
        self.models[accessor.class_name] = accessor

    def get(self, class_name: str) -> ModelAccessor:
        """Return the accessor for a generic class."""
        accessor = self.models.get(class_name)
        if accessor is None:
            raise ModelNotFound(f"Model `{class_name}` does not exist")
        return accessor

    def class_names(self) -> list[str]:
        return sorted(self.models)

    async def resolve_subquery(
        self, class_name: str, key: str, query: QueryDescriptor
    ) -> list[object]:
        """Run a subquery and return the values of ``key`` in its results."""
        records: list[ModelRecord] | list[UserRecord]
        if class_name == USER_CLASS:
            check_public_query(query)
            records = await self.users.find(query)
        else:
            records = await self.get(class_name).find(query)
        return [record.value(key) for record in records]


def _check_name(class_name: str) -> None:
    if class_name in RESERVED_CLASSES:
        raise ValueError(f"Class name `{class_name}` is reserved")
