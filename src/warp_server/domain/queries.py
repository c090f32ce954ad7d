"""Domain models for read queries."""

from collections.abc import Iterator
from dataclasses import dataclass, field

DEFAULT_SKIP = 0
DEFAULT_LIMIT = 100
MAX_LIMIT = 1000
DEFAULT_SUBQUERY_DEPTH = 5
CREATION_ORDER_FIELD = "created_at"

SCALAR_OPERATORS = frozenset({"eq", "neq"})
RANGE_OPERATORS = frozenset({"gt", "gte", "lt", "lte"})
LIST_OPERATORS = frozenset({"in", "nin"})
TEXT_OPERATORS = frozenset({"startsWith", "endsWith", "contains"})
SUBQUERY_OPERATORS = frozenset({"matchesQuery", "doesNotMatchQuery"})
OPERATORS = (
    SCALAR_OPERATORS
    | RANGE_OPERATORS
    | LIST_OPERATORS
    | TEXT_OPERATORS
    | SUBQUERY_OPERATORS
    | {"exists"}
)


@dataclass(frozen=True)
class SortField:
    """Single sort key."""

    field: str
    descending: bool = False

    def to_raw(self) -> dict[str, int]:
        return {self.field: -1 if self.descending else 1}


DEFAULT_SORT = (SortField(CREATION_ORDER_FIELD),)


@dataclass(frozen=True)
class Constraint:
    """Single operator/operand pair applied to a field."""

    operator: str
    operand: object


@dataclass(frozen=True)
class ConstraintMap:
    """Validated mapping from field name to ordered constraints."""

    constraints: dict[str, tuple[Constraint, ...]] = field(default_factory=dict)

    def __iter__(self) -> Iterator[tuple[str, Constraint]]:
        for field_name, constraints in self.constraints.items():
            for constraint in constraints:
                yield field_name, constraint

    def __bool__(self) -> bool:
        return bool(self.constraints)

    def fields(self) -> list[str]:
        return list(self.constraints)

    def get(self, field_name: str) -> tuple[Constraint, ...]:
        return self.constraints.get(field_name, ())

    def triples(self) -> set[tuple[str, str, object]]:
        """Return hashable (field, operator, operand) triples."""
        return {
            (field_name, constraint.operator, _freeze(constraint.operand))
            for field_name, constraint in self
        }

    def to_dict(self) -> dict[str, dict[str, object]]:
        """Return the raw ``where`` representation of the map."""
        raw: dict[str, dict[str, object]] = {}
        for field_name, constraint in self:
            operand = constraint.operand
            if isinstance(operand, Subquery):
                operand = operand.to_dict()
            elif isinstance(operand, tuple):
                operand = list(operand)
            raw.setdefault(field_name, {})[constraint.operator] = operand
        return raw


@dataclass(frozen=True)
class Subquery:
    """Nested query whose results feed a ``matchesQuery`` constraint."""

    class_name: str | None
    key: str = "id"
    select: tuple[str, ...] = ()
    include: tuple[str, ...] = ()
    where: ConstraintMap = field(default_factory=ConstraintMap)
    sort: tuple[SortField, ...] | None = None
    skip: int | None = None
    limit: int | None = None

    def to_dict(self) -> dict[str, object]:
        raw: dict[str, object] = {"key": self.key}
        if self.class_name is not None:
            raw["className"] = self.class_name
        if self.select:
            raw["select"] = list(self.select)
        if self.include:
            raw["include"] = list(self.include)
        if self.where:
            raw["where"] = self.where.to_dict()
        if self.sort is not None:
            raw["sort"] = [sort_field.to_raw() for sort_field in self.sort]
        if self.skip is not None:
            raw["skip"] = self.skip
        if self.limit is not None:
            raw["limit"] = self.limit
        return raw


@dataclass(frozen=True)
class QueryDescriptor:
    """Complete, normalized read query handed to a model accessor."""

    select: tuple[str, ...] = ()
    include: tuple[str, ...] = ()
    where: ConstraintMap = field(default_factory=ConstraintMap)
    sort: tuple[SortField, ...] = DEFAULT_SORT
    skip: int = DEFAULT_SKIP
    limit: int = DEFAULT_LIMIT


def _freeze(value: object) -> object:
    if isinstance(value, list | tuple):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, Subquery):
        return repr(value)
    return value
