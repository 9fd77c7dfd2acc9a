"""
Unit Tests for the Query Parser
Tests for: filters, range operators, search, sort, projection, pagination
"""
from datetime import datetime

import pytest

from biocms.core.exceptions import InvalidQueryError
from biocms.query import FilterOperator, Projection, build_query
from biocms.query.resources import BIOGRAPHY_SCHEMA, CATEGORY_SCHEMA, PRICING_SCHEMA, USER_SCHEMA


class TestFilters:
    """Filter parameters"""

    def test_equality_filter_is_coerced(self):
        query, _ = build_query({"featured": "true", "views": "10"}, BIOGRAPHY_SCHEMA)

        by_field = {clause.field: clause for clause in query.filters}
        assert by_field["featured"].value is True
        assert by_field["views"].value == 10
        assert by_field["views"].operator == FilterOperator.EQ

    def test_range_operators(self):
        query, _ = build_query({"views[gte]": "100", "views[lt]": "500"}, BIOGRAPHY_SCHEMA)

        operators = sorted(clause.operator.value for clause in query.filters)
        assert operators == ["gte", "lt"]

    def test_datetime_filter_with_timezone_is_normalized_to_utc(self):
        query, _ = build_query({"createdAt[gte]": "2024-01-01T02:00:00+02:00"}, BIOGRAPHY_SCHEMA)

        assert query.filters[0].value == datetime(2024, 1, 1, 0, 0, 0)

    def test_unknown_field_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"nickname": "x"}, BIOGRAPHY_SCHEMA)

    def test_internal_field_rejected(self):
        """Password hashes can never be filtered on"""
        with pytest.raises(InvalidQueryError):
            build_query({"hashedPassword": "x"}, USER_SCHEMA)

    def test_unknown_operator_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"views[ne]": "1"}, BIOGRAPHY_SCHEMA)

    def test_range_operator_on_boolean_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"featured[gt]": "true"}, BIOGRAPHY_SCHEMA)

    def test_bad_boolean_value_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"featured": "maybe"}, BIOGRAPHY_SCHEMA)

    @pytest.mark.parametrize("raw", ["99999999999999999999", "-99999999999999999999"])
    def test_integer_outside_64_bits_rejected(self, raw):
        with pytest.raises(InvalidQueryError):
            build_query({"views[gte]": raw}, BIOGRAPHY_SCHEMA)

    @pytest.mark.parametrize("raw", ["inf", "nan"])
    def test_non_finite_float_rejected(self, raw):
        with pytest.raises(InvalidQueryError):
            build_query({"price[lt]": raw}, PRICING_SCHEMA)

    def test_structured_fields_cannot_be_filtered(self):
        with pytest.raises(InvalidQueryError):
            build_query({"timeline": "x"}, BIOGRAPHY_SCHEMA)

    def test_bad_enum_value_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"role": "superuser"}, USER_SCHEMA)

    def test_repeated_key_last_value_wins(self):
        query, _ = build_query({"views": ["1", "2"]}, BIOGRAPHY_SCHEMA)

        assert query.filters[0].value == 2


class TestSearch:
    """Free-text search"""

    def test_search_uses_searchable_fields(self):
        query, _ = build_query({"search": " curie "}, BIOGRAPHY_SCHEMA)

        assert query.search.term == "curie"
        assert "name" in query.search.fields
        assert "slug" not in query.search.fields

    def test_blank_search_ignored(self):
        query, _ = build_query({"search": "   "}, BIOGRAPHY_SCHEMA)

        assert query.search is None


class TestSort:
    """Sort parameter"""

    def test_multiple_keys_and_direction(self):
        query, _ = build_query({"sort": "-views,name"}, BIOGRAPHY_SCHEMA)

        assert [str(key) for key in query.sort] == ["-views", "name"]

    def test_default_sort(self):
        query, _ = build_query({}, BIOGRAPHY_SCHEMA)
        assert [str(key) for key in query.sort] == ["-createdAt"]

        query, _ = build_query({}, CATEGORY_SCHEMA)
        assert [str(key) for key in query.sort] == ["order", "name"]

    def test_unknown_sort_field_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"sort": "-popularity"}, BIOGRAPHY_SCHEMA)

    def test_non_sortable_field_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"sort": "tags"}, BIOGRAPHY_SCHEMA)


class TestProjection:
    """Fields parameter"""

    def test_include(self):
        query, _ = build_query({"fields": "name,slug"}, BIOGRAPHY_SCHEMA)

        assert query.projection.include == ("name", "slug")
        assert query.projection.allows("name")
        assert not query.projection.allows("views")

    def test_exclude(self):
        query, _ = build_query({"fields": "-description"}, BIOGRAPHY_SCHEMA)

        assert not query.projection.allows("description")
        assert query.projection.allows("name")

    def test_mixed_include_and_exclude_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"fields": "name,-views"}, BIOGRAPHY_SCHEMA)

    def test_unknown_projection_field_rejected(self):
        with pytest.raises(InvalidQueryError):
            build_query({"fields": "secret"}, BIOGRAPHY_SCHEMA)

    def test_id_cannot_be_excluded(self):
        with pytest.raises(InvalidQueryError):
            build_query({"fields": "-id"}, BIOGRAPHY_SCHEMA)

    def test_serialize_always_keeps_id(self):
        class Record:
            id = "abc"
            name = "Ada"

        data = BIOGRAPHY_SCHEMA.serialize(Record(), Projection(include=("name",)))

        assert data == {"id": "abc", "name": "Ada"}


class TestPagination:
    """Page and limit parameters"""

    def test_offset(self):
        query, _ = build_query({"page": "3", "limit": "20"}, BIOGRAPHY_SCHEMA)

        assert query.pagination.offset == 40
        assert query.pagination.limit == 20

    def test_defaults_for_invalid_values(self):
        query, _ = build_query({"page": "-2", "limit": "abc"}, BIOGRAPHY_SCHEMA)

        assert query.pagination.page == 1
        assert query.pagination.limit == BIOGRAPHY_SCHEMA.default_limit

    def test_limit_capped(self):
        query, _ = build_query({"limit": "100000"}, BIOGRAPHY_SCHEMA)

        assert query.pagination.limit == BIOGRAPHY_SCHEMA.max_limit

    def test_huge_page_keeps_offset_within_64_bits(self):
        query, _ = build_query({"page": "99999999999999999999", "limit": "10"}, BIOGRAPHY_SCHEMA)

        assert query.pagination.offset <= 2 ** 63 - 1
        assert query.pagination.page > 1

    def test_count_descriptor_carries_only_filters(self):
        query, count = build_query(
            {"featured": "true", "search": "x", "sort": "name", "page": "2"}, BIOGRAPHY_SCHEMA
        )

        assert count.filters == query.filters
        assert count.search == query.search
        assert not hasattr(count, "sort")
