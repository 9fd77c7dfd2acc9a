"""
Query parameter parser.

Turns the raw query string of a list request into a validated
``QueryDescriptor`` plus the matching ``CountDescriptor``:

    GET /biographies?search=curie&featured=true&views[gte]=100&sort=-views,name&fields=name,slug&page=2&limit=20

Reserved keys are ``page``, ``limit``, ``sort``, ``fields`` and ``search``.
Every other key must name a filterable field of the schema, optionally with
one of the range operators ``gt``, ``gte``, ``lt``, ``lte``.
"""
import math
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from biocms.core.exceptions import InvalidQueryError
from biocms.query.descriptor import (
    CountDescriptor,
    FilterClause,
    FilterOperator,
    Pagination,
    Projection,
    QueryDescriptor,
    RANGE_OPERATORS,
    SearchClause,
    SortKey,
)
from biocms.query.schema import FieldKind, FieldSpec, ResourceSchema

RESERVED_PARAMS = frozenset({"page", "limit", "sort", "fields", "search"})

FILTER_KEY_PATTERN = re.compile(r"^(\w+)(?:\[(\w+)\])?$")

# Bounds of a signed 64-bit SQL integer
SQL_INT_MIN = -(2 ** 63)
SQL_INT_MAX = 2 ** 63 - 1

TRUE_VALUES = frozenset({"true", "1", "yes"})
FALSE_VALUES = frozenset({"false", "0", "no"})

ParamValue = Union[str, Sequence[str]]


def normalize_params(params: Union[Mapping[str, ParamValue], Any]) -> Dict[str, str]:
    """
    Flatten request params to one string per key.

    Accepts a plain mapping or a Starlette ``QueryParams``. When a key is
    repeated the last value wins.
    """
    if hasattr(params, "multi_items"):
        flat: Dict[str, str] = {}
        for key, value in params.multi_items():
            flat[key] = value
        return flat

    flat = {}
    for key, value in params.items():
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            value = value[-1]
        flat[key] = "" if value is None else str(value)
    return flat


def coerce_value(spec: FieldSpec, raw: str) -> Any:
    """Convert a raw string to the Python value for ``spec``"""
    value = raw.strip()
    try:
        if spec.kind in (FieldKind.STRING, FieldKind.ID, FieldKind.LIST):
            return value
        if spec.kind == FieldKind.INTEGER:
            number = int(value)
            if not SQL_INT_MIN <= number <= SQL_INT_MAX:
                raise ValueError(value)
            return number
        if spec.kind == FieldKind.FLOAT:
            number = float(value)
            if not math.isfinite(number):
                raise ValueError(value)
            return number
        if spec.kind == FieldKind.BOOLEAN:
            lowered = value.lower()
            if lowered in TRUE_VALUES:
                return True
            if lowered in FALSE_VALUES:
                return False
            raise ValueError(value)
        if spec.kind == FieldKind.DATETIME:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if parsed.tzinfo is not None:
                parsed = parsed.replace(tzinfo=None) - parsed.utcoffset()
            return parsed
        if spec.kind == FieldKind.ENUM:
            if value not in spec.choices:
                raise ValueError(value)
            return value
    except ValueError:
        raise InvalidQueryError(f"Invalid value '{raw}' for field '{spec.name}'", spec.name)
    raise InvalidQueryError(f"Field '{spec.name}' cannot be filtered", spec.name)


def parse_filters(params: Mapping[str, str], schema: ResourceSchema) -> Tuple[FilterClause, ...]:
    clauses: List[FilterClause] = []
    for key, raw in params.items():
        if key in RESERVED_PARAMS:
            continue

        match = FILTER_KEY_PATTERN.match(key)
        if not match:
            raise InvalidQueryError(f"Malformed filter parameter '{key}'", key)
        name, op_name = match.group(1), match.group(2)

        spec = schema.get(name)
        if spec is None or spec.internal or not spec.filterable:
            raise InvalidQueryError(f"Unknown or non-filterable field '{name}'", key)

        if op_name is None:
            operator = FilterOperator.EQ
        else:
            try:
                operator = FilterOperator(op_name)
            except ValueError:
                raise InvalidQueryError(f"Unknown filter operator '{op_name}'", key)
            if operator not in RANGE_OPERATORS:
                raise InvalidQueryError(f"Unknown filter operator '{op_name}'", key)
            if not spec.orderable:
                raise InvalidQueryError(f"Operator '{op_name}' is not supported on field '{name}'", key)

        clauses.append(FilterClause(field=name, operator=operator, value=coerce_value(spec, raw)))
    return tuple(clauses)


def parse_search(raw: Optional[str], schema: ResourceSchema) -> Optional[SearchClause]:
    if raw is None or not raw.strip():
        return None
    fields = tuple(spec.name for spec in schema.searchable_fields)
    if not fields:
        raise InvalidQueryError(f"Search is not supported on {schema.resource}", "search")
    return SearchClause(fields=fields, term=raw.strip())


def _split(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def parse_sort(raw: Optional[str], schema: ResourceSchema) -> Tuple[SortKey, ...]:
    parts = _split(raw) if raw else []
    if not parts:
        parts = list(schema.default_sort)

    keys: List[SortKey] = []
    for part in parts:
        descending = part.startswith("-")
        name = part[1:] if descending else part
        spec = schema.get(name)
        if spec is None or spec.internal or not spec.sortable:
            raise InvalidQueryError(f"Unknown or non-sortable field '{name}'", "sort")
        keys.append(SortKey(field=name, descending=descending))
    return tuple(keys)


def parse_projection(raw: Optional[str], schema: ResourceSchema) -> Projection:
    parts = _split(raw) if raw else []
    if not parts:
        return Projection()

    include: List[str] = []
    exclude: List[str] = []
    for part in parts:
        excluded = part.startswith("-")
        name = part[1:] if excluded else part
        spec = schema.get(name)
        if spec is None or spec.internal or not spec.projectable:
            raise InvalidQueryError(f"Unknown or non-projectable field '{name}'", "fields")
        if excluded:
            if name == schema.id_field:
                raise InvalidQueryError("The id field is always returned", "fields")
            exclude.append(name)
        else:
            include.append(name)

    return Projection(include=tuple(include), exclude=tuple(exclude))


def _positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def parse_pagination(page: Optional[str], limit: Optional[str], schema: ResourceSchema) -> Pagination:
    """
    Page and limit with defaults for missing or non-positive values.

    The page is capped so the row offset fits a 64-bit integer; a page past
    the last record simply comes back empty.
    """
    size = min(_positive_int(limit, schema.default_limit), schema.max_limit)
    last_addressable_page = SQL_INT_MAX // size + 1
    return Pagination(
        page=min(_positive_int(page, 1), last_addressable_page),
        limit=size,
    )


def build_query(
    params: Union[Mapping[str, ParamValue], Any],
    schema: ResourceSchema
) -> Tuple[QueryDescriptor, CountDescriptor]:
    """
    Build the page query and the count query for a list request.

    Raises InvalidQueryError before anything touches the database.
    """
    flat = normalize_params(params)

    query = QueryDescriptor(
        filters=parse_filters(flat, schema),
        search=parse_search(flat.get("search"), schema),
        sort=parse_sort(flat.get("sort"), schema),
        projection=parse_projection(flat.get("fields"), schema),
        pagination=parse_pagination(flat.get("page"), flat.get("limit"), schema),
    )
    return query, query.count_descriptor()
