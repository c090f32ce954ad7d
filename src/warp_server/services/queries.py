"""Assembly of read queries from request parameters."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from warp_server.domain.errors import ValidationError
from warp_server.domain.queries import (
    DEFAULT_LIMIT,
    DEFAULT_SKIP,
    DEFAULT_SORT,
    DEFAULT_SUBQUERY_DEPTH,
    MAX_LIMIT,
    Constraint,
    ConstraintMap,
    QueryDescriptor,
    SortField,
    Subquery,
)
from warp_server.services.constraints import (
    parse_constraints,
    parse_fields,
    parse_limit,
    parse_skip,
    parse_sort,
)

SubqueryResolver = Callable[[str, str, QueryDescriptor], Awaitable[list[object]]]
"""Runs ``query`` against a class and returns the values of ``key``."""

_RESOLVED_OPERATORS = {"matchesQuery": "in", "doesNotMatchQuery": "nin"}


@dataclass
class QueryAssembler:
    """Builds complete query descriptors from untrusted parameters."""

    default_limit: int = DEFAULT_LIMIT
    max_limit: int = MAX_LIMIT
    max_depth: int = DEFAULT_SUBQUERY_DEPTH

    async def assemble(  # noqa: PLR0913
        self,
        class_name: str,
        resolve_subquery: SubqueryResolver,
        *,
        select: object = None,
        include: object = None,
        where: object = None,
        sort: object = None,
        skip: object = None,
        limit: object = None,
    ) -> QueryDescriptor:
        """Validate parameters, resolve subqueries and apply defaults."""
        constraints = parse_constraints(where, max_depth=self.max_depth)
        return await self._finalize(
            class_name,
            resolve_subquery,
            select=parse_fields("select", select),
            include=parse_fields("include", include),
            where=constraints,
            sort=parse_sort(sort) if sort is not None else None,
            skip=parse_skip(skip),
            limit=parse_limit(limit),
            fallback_limit=self.default_limit,
        )

    def lookup(self, select: object = None, include: object = None) -> QueryDescriptor:
        """Validate the field selection of a single-record lookup."""
        return QueryDescriptor(
            select=parse_fields("select", select),
            include=parse_fields("include", include),
            limit=1,
        )

    async def _finalize(  # noqa: PLR0913
        self,
        class_name: str,
        resolve_subquery: SubqueryResolver,
        *,
        select: tuple[str, ...],
        include: tuple[str, ...],
        where: ConstraintMap,
        sort: tuple[SortField, ...] | None,
        skip: int | None,
        limit: int | None,
        fallback_limit: int,
    ) -> QueryDescriptor:
        if limit is not None and limit > self.max_limit:
            raise ValidationError(f"`limit` cannot exceed {self.max_limit}")
        resolved = await self._resolve(class_name, where, resolve_subquery)
        return QueryDescriptor(
            select=select,
            include=include,
            where=resolved,
            sort=sort if sort is not None else DEFAULT_SORT,
            skip=skip if skip is not None else DEFAULT_SKIP,
            limit=limit if limit is not None else fallback_limit,
        )

    async def _resolve(
        self,
        class_name: str,
        where: ConstraintMap,
        resolve_subquery: SubqueryResolver,
    ) -> ConstraintMap:
        constraints: dict[str, tuple[Constraint, ...]] = {}
        for field_name, field_constraints in where.constraints.items():
            resolved: list[Constraint] = []
            for constraint in field_constraints:
                if isinstance(constraint.operand, Subquery):
                    values = await self._run_subquery(
                        class_name, constraint.operand, resolve_subquery
                    )
                    constraint = Constraint(  # noqa: PLW2901
                        _RESOLVED_OPERATORS[constraint.operator], tuple(values)
                    )
                resolved.append(constraint)
            constraints[field_name] = tuple(resolved)
        return ConstraintMap(constraints)

    async def _run_subquery(
        self,
        class_name: str,
        subquery: Subquery,
        resolve_subquery: SubqueryResolver,
    ) -> list[object]:
        target_class = subquery.class_name or class_name
        # Inner subqueries are resolved before the outer query runs.
        query = await self._finalize(
            target_class,
            resolve_subquery,
            select=subquery.select,
            include=subquery.include,
            where=subquery.where,
            sort=subquery.sort,
            skip=subquery.skip,
            limit=subquery.limit,
            fallback_limit=self.max_limit,
        )
        return await resolve_subquery(target_class, subquery.key, query)
