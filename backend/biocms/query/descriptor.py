"""Immutable values produced by the query parser."""
import enum
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from biocms.core.exceptions import InvalidQueryError


class FilterOperator(str, enum.Enum):
    EQ = "eq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"


RANGE_OPERATORS = frozenset({FilterOperator.GT, FilterOperator.GTE, FilterOperator.LT, FilterOperator.LTE})


@dataclass(frozen=True)
class FilterClause:
    field: str
    operator: FilterOperator
    value: Any


@dataclass(frozen=True)
class SearchClause:
    """Case-insensitive substring match of ``term`` against any of ``fields``"""
    fields: Tuple[str, ...]
    term: str


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False

    def __str__(self) -> str:
        return f"-{self.field}" if self.descending else self.field


@dataclass(frozen=True)
class Projection:
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.include and self.exclude:
            raise InvalidQueryError("Field projection cannot both include and exclude fields", "fields")

    def allows(self, name: str) -> bool:
        if self.include:
            return name in self.include
        return name not in self.exclude


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 10

    def __post_init__(self):
        if self.page < 1 or self.limit < 1:
            raise ValueError("page and limit must be positive")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class CountDescriptor:
    """Filters only; what ``total`` is counted from"""
    filters: Tuple[FilterClause, ...] = ()
    search: Optional[SearchClause] = None


@dataclass(frozen=True)
class QueryDescriptor:
    filters: Tuple[FilterClause, ...] = ()
    search: Optional[SearchClause] = None
    sort: Tuple[SortKey, ...] = ()
    projection: Projection = Projection()
    pagination: Pagination = Pagination()

    def count_descriptor(self) -> CountDescriptor:
        return CountDescriptor(filters=self.filters, search=self.search)
