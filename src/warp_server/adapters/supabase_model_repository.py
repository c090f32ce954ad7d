"""Supabase-backed repository for generic classes."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import AsyncClient

from warp_server.adapters.supabase_queries import (
    USER_PUBLIC_COLUMNS,
    apply_query,
    execute,
    parse_timestamp,
    table_name,
)
from warp_server.domain.errors import ValidationError
from warp_server.domain.models import USER_CLASS, ModelRecord, Pointer
from warp_server.domain.queries import QueryDescriptor
from warp_server.domain.schemas import ModelSchema
from warp_server.services.registry import ModelAccessor

_INCLUDE_SUFFIX = "__included"
_SYSTEM_COLUMNS = ("id", "created_at", "updated_at")


@dataclass
class SupabaseModelRepository(ModelAccessor):
    """Supabase implementation of a schema-defined class."""

    client: AsyncClient
    schema: ModelSchema

    @property
    def class_name(self) -> str:  # type: ignore[override]
        return self.schema.class_name

    async def find(self, query: QueryDescriptor) -> list[ModelRecord]:
        """Return records matching a query."""
        self._check_columns(
            (
                *query.where.fields(),
                *(sort_field.field for sort_field in query.sort),
            )
        )
        builder = self.client.table(table_name(self.class_name)).select(
            self._columns(query.select, query.include)
        )
        response = await execute(apply_query(builder, query))
        return [self._to_record(row) for row in response.data or []]

    async def first(
        self,
        object_id: int,
        select: tuple[str, ...] = (),
        include: tuple[str, ...] = (),
    ) -> ModelRecord | None:
        """Return a record by id, if present."""
        response = await execute(
            self.client.table(table_name(self.class_name))
            .select(self._columns(select, include))
            .eq("id", object_id)
            .limit(1)
        )
        if not response.data:
            return None
        return self._to_record(response.data[0])

    async def save(
        self, keys: Mapping[str, object], object_id: int | None = None
    ) -> ModelRecord | None:
        """Insert a record, or update an existing one when an id is given."""
        built = self.schema.build_keys(keys, partial=object_id is not None)
        payload = {
            name: value.id if isinstance(value, Pointer) else value
            for name, value in built.items()
        }
        table = self.client.table(table_name(self.class_name))
        if object_id is None:
            response = await execute(table.insert(payload))
        else:
            payload["updated_at"] = datetime.now(tz=UTC).isoformat()
            response = await execute(table.update(payload).eq("id", object_id))
        if not response.data:
            return None
        return self._to_record(response.data[0])

    async def destroy(self, object_id: int) -> ModelRecord | None:
        """Delete a record and return it, if it existed."""
        response = await execute(
            self.client.table(table_name(self.class_name))
            .delete()
            .eq("id", object_id)
        )
        if not response.data:
            return None
        return self._to_record(response.data[0])

    def to_pointer(self, object_id: int) -> Pointer:
        return Pointer(class_name=self.class_name, id=object_id)

    def _check_columns(self, names: Iterable[str]) -> None:
        for name in names:
            if name not in _SYSTEM_COLUMNS and name not in self.schema.fields:
                raise ValidationError(
                    f"Key `{name}` is not defined for `{self.class_name}`"
                )

    def _columns(self, select: tuple[str, ...], include: tuple[str, ...]) -> str:
        self._check_columns(select)
        columns = [*_SYSTEM_COLUMNS, *select] if select else ["*"]
        for relation in include:
            spec = self.schema.fields.get(relation)
            if spec is None or spec.target_class is None:
                raise ValidationError(
                    f"`{relation}` is not a pointer of `{self.class_name}`"
                )
            embedded = USER_PUBLIC_COLUMNS if spec.target_class == USER_CLASS else "*"
            columns.append(
                f"{relation}{_INCLUDE_SUFFIX}:"
                f"{table_name(spec.target_class)}!{relation}({embedded})"
            )
        return ", ".join(dict.fromkeys(columns))

    def _to_record(self, row: dict[str, object]) -> ModelRecord:
        keys = self.schema.read_keys(row)
        for name in self.schema.fields:
            included = row.get(f"{name}{_INCLUDE_SUFFIX}")
            if isinstance(included, dict):
                keys[name] = included
        return ModelRecord(
            class_name=self.class_name,
            id=int(row["id"]),  # type: ignore[call-overload]
            keys=keys,
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )
