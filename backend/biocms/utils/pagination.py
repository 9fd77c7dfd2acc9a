"""
Pagination Utility Module

Executes query descriptors against SQLAlchemy models. The same list of SQL
conditions feeds both the count statement and the page statement, so the
reported total always matches the filtered result set.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import String, and_, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from biocms.core.config import settings
from biocms.core.database import json_serializer
from biocms.core.exceptions import QueryTimeoutError
from biocms.core.logging_config import logger
from biocms.query.descriptor import (
    CountDescriptor,
    FilterClause,
    FilterOperator,
    Projection,
    QueryDescriptor,
    SearchClause,
    SortKey,
)
from biocms.query.schema import FieldKind, ResourceSchema


@dataclass
class PageResult:
    """One page of records plus the unpaginated total"""
    items: List[Any]
    total: int
    page: int
    limit: int
    projection: Projection

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    def serialize(self, schema: ResourceSchema) -> List[Dict[str, Any]]:
        return [schema.serialize(item, self.projection) for item in self.items]


def _column(model, schema: ResourceSchema, name: str):
    return getattr(model, schema.get(name).attribute)


def filter_condition(model, schema: ResourceSchema, clause: FilterClause) -> ColumnElement:
    spec = schema.get(clause.field)
    column = getattr(model, spec.attribute)

    if spec.kind == FieldKind.LIST:
        # JSON arrays are matched on their serialized form
        needle = json_serializer(str(clause.value))
        return cast(column, String).contains(needle, autoescape=True)

    if clause.operator == FilterOperator.EQ:
        return column == clause.value
    if clause.operator == FilterOperator.GT:
        return column > clause.value
    if clause.operator == FilterOperator.GTE:
        return column >= clause.value
    if clause.operator == FilterOperator.LT:
        return column < clause.value
    if clause.operator == FilterOperator.LTE:
        return column <= clause.value
    if clause.operator == FilterOperator.CONTAINS:
        return column.icontains(clause.value, autoescape=True)
    raise ValueError(f"Unsupported operator {clause.operator}")


def search_condition(model, schema: ResourceSchema, clause: SearchClause) -> ColumnElement:
    matches = []
    for name in clause.fields:
        column = _column(model, schema, name)
        if schema.get(name).kind == FieldKind.LIST:
            column = cast(column, String)
        matches.append(column.icontains(clause.term, autoescape=True))
    return or_(*matches)


def build_conditions(
    model,
    schema: ResourceSchema,
    count: CountDescriptor,
    base_conditions: Optional[Sequence[ColumnElement]] = None
) -> List[ColumnElement]:
    """SQL conditions for a count descriptor plus any caller-imposed scope"""
    conditions: List[ColumnElement] = list(base_conditions or [])
    for clause in count.filters:
        conditions.append(filter_condition(model, schema, clause))
    if count.search is not None:
        conditions.append(search_condition(model, schema, count.search))
    return conditions


def build_order_by(model, schema: ResourceSchema, sort: Sequence[SortKey]) -> List[ColumnElement]:
    """Sort keys plus an id tiebreaker that follows the last key's direction"""
    order_by = []
    for key in sort:
        column = _column(model, schema, key.field)
        order_by.append(column.desc() if key.descending else column.asc())

    id_column = _column(model, schema, schema.id_field)
    if not any(key.field == schema.id_field for key in sort):
        last_descending = sort[-1].descending if sort else False
        order_by.append(id_column.desc() if last_descending else id_column.asc())
    return order_by


async def paginate(
    db: AsyncSession,
    model,
    schema: ResourceSchema,
    query: QueryDescriptor,
    count: Optional[CountDescriptor] = None,
    base_conditions: Optional[Sequence[ColumnElement]] = None,
    timeout: Optional[float] = None
) -> PageResult:
    """
    Run the count and page statements for a query descriptor.

    Args:
        db: Database session
        model: SQLAlchemy model class
        schema: Resource schema the descriptor was built against
        query: Page query (sort, projection, pagination)
        count: Count descriptor; derived from ``query`` when omitted
        base_conditions: Extra scope applied to both statements
        timeout: Deadline in seconds (QUERY_TIMEOUT_SECONDS by default)

    Returns:
        PageResult with items, total, page and limit
    """
    count = count or query.count_descriptor()
    conditions = build_conditions(model, schema, count, base_conditions)
    where = and_(*conditions) if conditions else None

    count_stmt = select(func.count()).select_from(model)
    page_stmt = select(model)
    if where is not None:
        count_stmt = count_stmt.where(where)
        page_stmt = page_stmt.where(where)

    page_stmt = (
        page_stmt
        .order_by(*build_order_by(model, schema, query.sort))
        .offset(query.pagination.offset)
        .limit(query.pagination.limit)
    )

    async def run():
        total = await db.scalar(count_stmt) or 0
        result = await db.execute(page_stmt)
        return total, list(result.scalars().all())

    deadline = timeout if timeout is not None else settings.QUERY_TIMEOUT_SECONDS
    start_time = time.perf_counter()
    try:
        total, items = await asyncio.wait_for(run(), timeout=deadline)
    except asyncio.TimeoutError:
        logger.error(f"[Query] {schema.resource} query timed out after {deadline}s")
        raise QueryTimeoutError(schema.resource, deadline)

    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.log_db_query("select", schema.resource, duration_ms, rows_affected=len(items), total=total)
    logger.log_performance(f"list {schema.resource}", duration_ms)

    return PageResult(
        items=items,
        total=total,
        page=query.pagination.page,
        limit=query.pagination.limit,
        projection=query.projection,
    )
