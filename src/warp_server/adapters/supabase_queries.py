"""Translation of query descriptors into Supabase (PostgREST) requests."""

import logging
from datetime import datetime
from typing import Any

from supabase import PostgrestAPIError

from warp_server.domain.errors import DatabaseError
from warp_server.domain.models import (
    SESSION_CLASS,
    SESSION_TABLE,
    USER_CLASS,
    USER_TABLE,
)
from warp_server.domain.queries import Constraint, QueryDescriptor

_logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
USER_PUBLIC_COLUMNS = "id, username, email, created_at, updated_at"
_TABLES = {USER_CLASS: USER_TABLE, SESSION_CLASS: SESSION_TABLE}
_RANGE_FILTERS = {"gt": "gt", "gte": "gte", "lt": "lt", "lte": "lte"}


def table_name(class_name: str) -> str:
    """Return the table backing a class."""
    return _TABLES.get(class_name, class_name)


def apply_query(builder: Any, query: QueryDescriptor) -> Any:  # noqa: ANN401
    """Apply constraints, sort order and pagination to a select builder."""
    for field_name, constraint in query.where:
        builder = apply_constraint(builder, field_name, constraint)
    for sort_field in query.sort:
        builder = builder.order(sort_field.field, desc=sort_field.descending)
    return builder.range(query.skip, query.skip + query.limit - 1)


def apply_constraint(  # noqa: PLR0911
    builder: Any,  # noqa: ANN401
    field_name: str,
    constraint: Constraint,
) -> Any:  # noqa: ANN401
    """Apply a single storage-ready constraint to a filter builder."""
    operator, operand = constraint.operator, constraint.operand
    if operator == "eq":
        if operand is None:
            return builder.is_(field_name, "null")
        return builder.eq(field_name, operand)
    if operator == "neq":
        if operand is None:
            return builder.not_.is_(field_name, "null")
        return builder.neq(field_name, operand)
    if operator in _RANGE_FILTERS:
        return getattr(builder, _RANGE_FILTERS[operator])(field_name, operand)
    if operator == "exists":
        if operand:
            return builder.not_.is_(field_name, "null")
        return builder.is_(field_name, "null")
    if operator == "in":
        return builder.in_(field_name, list(operand))
    if operator == "nin":
        return builder.not_.in_(field_name, list(operand))
    if operator == "startsWith":
        return builder.like(field_name, f"{_escape_like(str(operand))}%")
    if operator == "endsWith":
        return builder.like(field_name, f"%{_escape_like(str(operand))}")
    if operator == "contains":
        return builder.like(field_name, f"%{_escape_like(str(operand))}%")
    raise ValueError(f"Operator `{operator}` must be resolved before querying")


async def execute(builder: Any) -> Any:  # noqa: ANN401
    """Execute a request, normalizing storage failures to DatabaseError."""
    try:
        return await builder.execute()
    except PostgrestAPIError as err:
        _logger.warning("Supabase request failed: code=%s", err.code)
        raise DatabaseError(err.message or "Database request failed") from err


def parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
