"""Class controller for generic, schema-defined models."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from warp_server.domain.errors import ObjectNotFound
from warp_server.domain.models import ModelRecord, RequestMetadata, UserRecord
from warp_server.services.authorization import AuthorizationGuard, Operation
from warp_server.services.queries import QueryAssembler
from warp_server.services.registry import ModelRegistry

_logger = logging.getLogger(__name__)


@dataclass
class ClassService:
    """Orchestrates reads and writes against registered classes."""

    registry: ModelRegistry
    guard: AuthorizationGuard
    assembler: QueryAssembler

    async def find(self, class_name: str, **params: object) -> list[ModelRecord]:
        """Return records matching raw select/include/where/sort/skip/limit."""
        accessor = self.registry.get(class_name)
        query = await self.assembler.assemble(
            class_name, self.registry.resolve_subquery, **params
        )
        return await accessor.find(query)

    async def first(
        self,
        class_name: str,
        object_id: int,
        select: object = None,
        include: object = None,
    ) -> ModelRecord | None:
        """Return a single record, or None if it does not exist."""
        accessor = self.registry.get(class_name)
        lookup = self.assembler.lookup(select=select, include=include)
        return await accessor.first(object_id, lookup.select, lookup.include)

    async def create(
        self,
        metadata: RequestMetadata,
        current_user: UserRecord | None,
        class_name: str,
        keys: Mapping[str, object],
    ) -> ModelRecord:
        accessor = self.registry.get(class_name)
        self.guard.authorize(
            Operation.CREATE,
            metadata=metadata,
            actor=current_user,
            class_name=class_name,
        ).raise_for_denial()
        record = await accessor.save(keys)
        if record is None:
            raise ObjectNotFound(f"Object of `{class_name}` could not be created")
        _logger.info("Object created: class=%s id=%s", class_name, record.id)
        return record

    async def update(  # noqa: PLR0913
        self,
        metadata: RequestMetadata,
        current_user: UserRecord | None,
        class_name: str,
        object_id: int,
        keys: Mapping[str, object],
    ) -> ModelRecord:
        accessor = self.registry.get(class_name)
        self.guard.authorize(
            Operation.UPDATE,
            metadata=metadata,
            actor=current_user,
            class_name=class_name,
            target_id=object_id,
        ).raise_for_denial()
        record = await accessor.save(keys, object_id=object_id)
        if record is None:
            raise ObjectNotFound(f"Object `{object_id}` of `{class_name}` not found")
        return record

    async def destroy(
        self,
        metadata: RequestMetadata,
        current_user: UserRecord | None,
        class_name: str,
        object_id: int,
    ) -> ModelRecord:
        accessor = self.registry.get(class_name)
        self.guard.authorize(
            Operation.DESTROY,
            metadata=metadata,
            actor=current_user,
            class_name=class_name,
            target_id=object_id,
        ).raise_for_denial()
        record = await accessor.destroy(object_id)
        if record is None:
            raise ObjectNotFound(f"Object `{object_id}` of `{class_name}` not found")
        _logger.info("Object destroyed: class=%s id=%s", class_name, object_id)
        return record
