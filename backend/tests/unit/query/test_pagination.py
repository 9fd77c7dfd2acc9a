"""
Unit Tests for the query executor
Runs descriptors against the SQLite test database.
"""
import asyncio

import pytest

from biocms.core.exceptions import QueryTimeoutError
from biocms.models import Biography
from biocms.query import build_query
from biocms.query.resources import BIOGRAPHY_SCHEMA
from biocms.utils.pagination import paginate


async def run(db_session, params, **kwargs):
    query, count = build_query(params, BIOGRAPHY_SCHEMA)
    return await paginate(db_session, Biography, BIOGRAPHY_SCHEMA, query, count, **kwargs)


class TestPaginate:
    """paginate()"""

    async def test_page_never_exceeds_limit(self, db_session, biographies):
        page = await run(db_session, {"limit": "2"})

        assert len(page.items) == 2
        assert page.total == 4
        assert page.pages == 2

    async def test_total_ignores_paging(self, db_session, biographies):
        page = await run(db_session, {"page": "2", "limit": "3"})

        assert page.total == 4
        assert len(page.items) == 1

    async def test_total_matches_filters(self, db_session, biographies):
        page = await run(db_session, {"views[gte]": "100", "limit": "1"})

        assert page.total == 2
        assert len(page.items) == 1

    async def test_base_conditions_apply_to_count(self, db_session, biographies):
        page = await run(db_session, {}, base_conditions=[Biography.published.is_(True)])

        assert page.total == 3
        assert all(b.published for b in page.items)

    async def test_descending_sort_is_reverse_of_ascending(self, db_session, biographies):
        ascending = await run(db_session, {"sort": "views"})
        descending = await run(db_session, {"sort": "-views"})

        assert [b.id for b in ascending.items] == [b.id for b in reversed(descending.items)]
        assert [b.views for b in ascending.items] == [5, 80, 120, 200]

    async def test_search_is_case_insensitive(self, db_session, biographies):
        page = await run(db_session, {"search": "CURIE"})

        assert [b.slug for b in page.items] == ["marie-curie"]

    async def test_list_field_filter(self, db_session, biographies):
        page = await run(db_session, {"nationality": "French"})

        assert [b.slug for b in page.items] == ["marie-curie"]

    async def test_search_with_like_wildcards_is_literal(self, db_session, biographies):
        page = await run(db_session, {"search": "%"})

        assert page.total == 0

    async def test_list_filter_matches_non_ascii_values(self, db_session):
        db_session.add(Biography(
            name="Victor Hugo", slug="victor-hugo", nationality=["Français"], occupation=["Écrivain"],
        ))
        await db_session.commit()

        by_filter = await run(db_session, {"nationality": "Français"})
        by_search = await run(db_session, {"search": "Écrivain"})

        assert [b.slug for b in by_filter.items] == ["victor-hugo"]
        assert by_search.total == 1

    async def test_list_filter_with_like_wildcards_is_literal(self, db_session, biographies):
        page = await run(db_session, {"occupation": "%"})

        assert page.total == 0

    async def test_projection_applied_on_serialize(self, db_session, biographies):
        query, count = build_query({"fields": "name", "sort": "name"}, BIOGRAPHY_SCHEMA)
        page = await paginate(db_session, Biography, BIOGRAPHY_SCHEMA, query, count)

        rows = page.serialize(BIOGRAPHY_SCHEMA)
        assert set(rows[0]) == {"id", "name"}
        assert rows[0]["name"] == "Ada Lovelace"

    async def test_timeout_raises_fault(self):
        """A query slower than its deadline surfaces as QueryTimeoutError"""
        class SlowSession:
            async def scalar(self, stmt):
                await asyncio.sleep(1)

            async def execute(self, stmt):
                await asyncio.sleep(1)

        with pytest.raises(QueryTimeoutError):
            await run(SlowSession(), {}, timeout=0.01)
