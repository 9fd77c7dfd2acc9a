# Query filter engine

from biocms.query.descriptor import (
    CountDescriptor,
    FilterClause,
    FilterOperator,
    Pagination,
    Projection,
    QueryDescriptor,
    SearchClause,
    SortKey,
)
from biocms.query.parser import build_query, normalize_params, RESERVED_PARAMS
from biocms.query.schema import FieldKind, FieldSpec, ResourceSchema, PublicField, InternalField

__all__ = [
    "CountDescriptor",
    "FilterClause",
    "FilterOperator",
    "Pagination",
    "Projection",
    "QueryDescriptor",
    "SearchClause",
    "SortKey",
    "build_query",
    "normalize_params",
    "RESERVED_PARAMS",
    "FieldKind",
    "FieldSpec",
    "ResourceSchema",
    "PublicField",
    "InternalField",
]
