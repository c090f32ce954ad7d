"""Parsing and validation of query constraints."""

import re
from collections.abc import Mapping

from warp_server.domain.errors import ValidationError
from warp_server.domain.queries import (
    DEFAULT_SUBQUERY_DEPTH,
    LIST_OPERATORS,
    OPERATORS,
    RANGE_OPERATORS,
    SCALAR_OPERATORS,
    SUBQUERY_OPERATORS,
    TEXT_OPERATORS,
    Constraint,
    ConstraintMap,
    SortField,
    Subquery,
)

_SUBQUERY_KEYS = frozenset(
    {"className", "key", "select", "include", "where", "sort", "skip", "limit"}
)
_ASCENDING = {1, "asc", "ascending"}
_DESCENDING = {-1, "desc", "descending"}
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def parse_constraints(
    raw: object, max_depth: int = DEFAULT_SUBQUERY_DEPTH, depth: int = 0
) -> ConstraintMap:
    """Validate a raw ``where`` mapping and return a ConstraintMap.

    A literal value is shorthand for ``{"eq": value}``. Operand mappings for
    subquery operators are parsed recursively; nesting deeper than
    ``max_depth`` is rejected.
    """
    if raw is None:
        return ConstraintMap()
    if not isinstance(raw, Mapping):
        raise ValidationError("`where` must be an object")

    constraints: dict[str, tuple[Constraint, ...]] = {}
    for field_name, value in raw.items():
        if not _is_identifier(field_name):
            raise ValidationError(f"Invalid constraint field name `{field_name}`")
        if not isinstance(value, Mapping):
            constraints[field_name] = (
                Constraint("eq", _scalar(field_name, "eq", value)),
            )
            continue
        if not value:
            raise ValidationError(f"Constraint for `{field_name}` is empty")
        constraints[field_name] = tuple(
            Constraint(
                operator,
                _operand(field_name, operator, operand, max_depth, depth),
            )
            for operator, operand in value.items()
        )
    return ConstraintMap(constraints)


def parse_subquery(
    raw: object, max_depth: int = DEFAULT_SUBQUERY_DEPTH, depth: int = 1
) -> Subquery:
    """Validate a nested query object used by a subquery operator."""
    if depth > max_depth:
        raise ValidationError(f"Subqueries cannot be nested deeper than {max_depth}")
    if not isinstance(raw, Mapping):
        raise ValidationError("Subquery must be an object")
    unknown = set(raw) - _SUBQUERY_KEYS
    if unknown:
        raise ValidationError(f"Unknown subquery key `{sorted(unknown)[0]}`")

    class_name = raw.get("className")
    if class_name is not None and (not isinstance(class_name, str) or not class_name):
        raise ValidationError("Subquery `className` must be a non-empty string")
    key = raw.get("key", "id")
    if not _is_identifier(key):
        raise ValidationError("Subquery `key` must be a field name")

    sort = raw.get("sort")
    return Subquery(
        class_name=class_name,
        key=key,
        select=parse_fields("select", raw.get("select")),
        include=parse_fields("include", raw.get("include")),
        where=parse_constraints(raw.get("where"), max_depth, depth),
        sort=parse_sort(sort) if sort is not None else None,
        skip=parse_skip(raw.get("skip")),
        limit=parse_limit(raw.get("limit")),
    )


def parse_fields(name: str, raw: object) -> tuple[str, ...]:
    """Validate a list of field or relation names."""
    if raw is None:
        return ()
    if not isinstance(raw, list | tuple):
        raise ValidationError(f"`{name}` must be a list of field names")
    for item in raw:
        if not _is_identifier(item):
            raise ValidationError(f"Invalid field name `{item}` in `{name}`")
    return tuple(raw)


def parse_sort(raw: object) -> tuple[SortField, ...]:
    """Validate sort items such as ``"name"``, ``"-name"`` or ``{"name": -1}``."""
    if not isinstance(raw, list | tuple):
        raise ValidationError("`sort` must be a list")
    fields: list[SortField] = []
    for item in raw:
        if isinstance(item, str):
            descending = item.startswith("-")
            field_name = item[1:] if descending else item
            if not _is_identifier(field_name):
                raise ValidationError(f"Invalid sort field `{field_name}`")
            fields.append(SortField(field_name, descending=descending))
            continue
        if isinstance(item, Mapping) and item:
            for field_name, direction in item.items():
                if not _is_identifier(field_name):
                    raise ValidationError(f"Invalid sort field `{field_name}`")
                fields.append(SortField(field_name, _descending(field_name, direction)))
            continue
        raise ValidationError(f"Invalid sort item `{item}`")
    return tuple(fields)


def parse_skip(raw: object) -> int | None:
    if raw is None:
        return None
    if not _is_int(raw) or raw < 0:
        raise ValidationError("`skip` must be a non-negative integer")
    return raw


def parse_limit(raw: object) -> int | None:
    if raw is None:
        return None
    if not _is_int(raw) or raw < 1:
        raise ValidationError("`limit` must be a positive integer")
    return raw


def _operand(  # noqa: PLR0911
    field_name: str, operator: object, operand: object, max_depth: int, depth: int
) -> object:
    if operator not in OPERATORS:
        raise ValidationError(f"Unknown operator `{operator}` for `{field_name}`")
    if operator in SCALAR_OPERATORS:
        return _scalar(field_name, operator, operand)
    if operator in RANGE_OPERATORS:
        if isinstance(operand, str) or (
            isinstance(operand, int | float) and not isinstance(operand, bool)
        ):
            return operand
        raise ValidationError(
            f"Operator `{operator}` for `{field_name}` needs a number or string"
        )
    if operator == "exists":
        if isinstance(operand, bool):
            return operand
        raise ValidationError(f"Operator `exists` for `{field_name}` needs a boolean")
    if operator in LIST_OPERATORS:
        if not isinstance(operand, list | tuple):
            raise ValidationError(
                f"Operator `{operator}` for `{field_name}` needs a list"
            )
        return tuple(_scalar(field_name, operator, item) for item in operand)
    if operator in TEXT_OPERATORS:
        if isinstance(operand, str):
            return operand
        raise ValidationError(
            f"Operator `{operator}` for `{field_name}` needs a string"
        )
    if operator in SUBQUERY_OPERATORS:
        return parse_subquery(operand, max_depth, depth + 1)
    raise ValidationError(f"Unknown operator `{operator}` for `{field_name}`")


def _scalar(field_name: str, operator: str, value: object) -> object:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    raise ValidationError(f"Operator `{operator}` for `{field_name}` needs a scalar")


def _descending(field_name: str, direction: object) -> bool:
    if isinstance(direction, str):
        direction = direction.lower()
    elif not _is_int(direction):
        raise ValidationError(f"Invalid sort direction for `{field_name}`")
    if direction in _DESCENDING:
        return True
    if direction in _ASCENDING:
        return False
    raise ValidationError(f"Invalid sort direction for `{field_name}`")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_identifier(value: object) -> bool:
    return isinstance(value, str) and _IDENTIFIER.fullmatch(value) is not None
