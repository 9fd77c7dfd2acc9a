"""
Integration Tests for categories, pricing plans, FAQs, site settings and the home bundle
"""
from datetime import datetime

from httpx import AsyncClient

from biocms.models import Biography, Category, FAQ, PricingPlan
from biocms.models.pricing import PlanStatus

CATEGORIES = "/api/v1/categories"


class TestCategories:

    async def test_create_category(self, client: AsyncClient, admin_headers):
        response = await client.post(CATEGORIES, headers=admin_headers, json={
            "name": "Fine Arts", "color": "#aa3366", "order": 3,
        })

        assert response.status_code == 201
        category = response.json()["data"]["category"]
        assert category["slug"] == "fine-arts"
        assert category["order"] == 3

    async def test_name_is_unique_ignoring_case(self, client: AsyncClient, admin_headers, category):
        response = await client.post(CATEGORIES, headers=admin_headers, json={"name": "SCIENCE"})

        assert response.status_code == 400
        assert response.json()["code"] == "DUPLICATE_VALUE"
        assert response.json()["errors"][0]["field"] == "name"

    async def test_unknown_parent(self, client: AsyncClient, admin_headers):
        response = await client.post(CATEGORIES, headers=admin_headers, json={"name": "Orphan", "parentId": "missing"})

        assert response.status_code == 404

    async def test_tree_nests_children(self, client: AsyncClient, admin_headers, category):
        await client.post(CATEGORIES, headers=admin_headers, json={"name": "Physics", "parentId": category.id})
        await client.post(CATEGORIES, headers=admin_headers, json={"name": "Arts"})

        roots = (await client.get(f"{CATEGORIES}/tree")).json()["data"]["categories"]

        by_slug = {node["slug"]: node for node in roots}
        assert set(by_slug) == {"science", "arts"}
        assert [child["slug"] for child in by_slug["science"]["children"]] == ["physics"]

    async def test_detail_by_slug_counts_published_biographies(self, client: AsyncClient, biographies):
        body = (await client.get(f"{CATEGORIES}/science")).json()

        assert body["data"]["category"]["biographyCount"] == 2

    async def test_inactive_hidden_from_public(self, client: AsyncClient, db_session, admin_headers):
        db_session.add(Category(name="Hidden", slug="hidden", is_active=False))
        await db_session.commit()

        public = (await client.get(CATEGORIES)).json()
        assert public["total"] == 0
        assert (await client.get(f"{CATEGORIES}/hidden")).status_code == 404

        admin = (await client.get(CATEGORIES, headers=admin_headers)).json()
        assert admin["total"] == 1

    async def test_reorder(self, client: AsyncClient, db_session, admin_headers, category):
        other = Category(name="Arts", slug="arts", display_order=0)
        db_session.add(other)
        await db_session.commit()

        response = await client.patch(f"{CATEGORIES}/reorder", headers=admin_headers, json={
            "orders": [{"id": category.id, "order": 0}, {"id": other.id, "order": 5}],
        })

        assert response.status_code == 200
        assert [c["slug"] for c in response.json()["data"]["categories"]] == ["science", "arts"]

    async def test_delete_blocked_while_biographies_exist(self, client: AsyncClient, admin_headers, biographies):
        response = await client.delete(f"{CATEGORIES}/science", headers=admin_headers)

        assert response.status_code == 400

    async def test_delete_empty_category(self, client: AsyncClient, admin_headers, category):
        response = await client.delete(f"{CATEGORIES}/{category.id}", headers=admin_headers)

        assert response.status_code == 204
        assert (await client.get(f"{CATEGORIES}/science")).status_code == 404

    async def test_stats(self, client: AsyncClient, biographies):
        stats = (await client.get(f"{CATEGORIES}/stats")).json()["data"]["stats"]

        assert stats == [{
            "id": biographies[0].category_id,
            "name": "Science",
            "slug": "science",
            "biographyCount": 2,
            "totalViews": 200,
        }]


class TestPricing:

    async def test_public_sees_active_plans_only(self, client: AsyncClient, db_session, admin_headers):
        db_session.add_all([
            PricingPlan(name="Basic", price=0, features=["Read"]),
            PricingPlan(name="Legacy", price=5, status=PlanStatus.ARCHIVED),
        ])
        await db_session.commit()

        public = (await client.get("/api/v1/pricing")).json()
        assert [p["name"] for p in public["data"]["plans"]] == ["Basic"]

        admin = (await client.get("/api/v1/pricing", headers=admin_headers)).json()
        assert admin["total"] == 2

    async def test_create_plan(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/pricing", headers=admin_headers, json={
            "name": "Pro", "price": 9.99, "billingCycle": "yearly", "features": "Unlimited reading",
        })

        assert response.status_code == 201
        plan = response.json()["data"]["plan"]
        assert plan["features"] == ["Unlimited reading"]
        assert plan["currency"] == "USD"

    async def test_negative_price_rejected(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/pricing", headers=admin_headers, json={"name": "Odd", "price": -1})

        assert response.status_code == 400


class TestFaqs:

    async def test_crud(self, client: AsyncClient, admin_headers):
        created = await client.post("/api/v1/faqs", headers=admin_headers, json={
            "question": "How do I cancel?", "answer": "From your account page.", "category": "billing",
        })
        faq_id = created.json()["data"]["faq"]["id"]

        updated = await client.patch(f"/api/v1/faqs/{faq_id}", headers=admin_headers, json={"active": False})
        assert updated.json()["data"]["faq"]["active"] is False
        assert (await client.get(f"/api/v1/faqs/{faq_id}")).status_code == 404

        deleted = await client.delete(f"/api/v1/faqs/{faq_id}", headers=admin_headers)
        assert deleted.status_code == 204

    async def test_filter_by_category(self, client: AsyncClient, db_session):
        db_session.add_all([
            FAQ(question="Billing?", answer="Yes"),
            FAQ(question="Account?", answer="Yes"),
        ])
        await db_session.commit()

        body = (await client.get("/api/v1/faqs", params={"category": "general"})).json()

        assert body["total"] == 2


class TestSiteSettings:

    async def test_public_subset(self, client: AsyncClient):
        settings_map = (await client.get("/api/v1/settings")).json()["data"]["settings"]

        assert set(settings_map) == {"general", "site"}
        assert settings_map["site"]["site_name"] == "Biography Website"

    async def test_admin_update(self, client: AsyncClient, admin_headers):
        response = await client.patch("/api/v1/settings", headers=admin_headers, json={
            "settings": {"site.site_name": "Lives Remembered", "email.from_name": "Editors"},
        })

        assert response.status_code == 200
        settings_map = response.json()["data"]["settings"]
        assert settings_map["site"]["site_name"] == "Lives Remembered"
        assert settings_map["email"]["from_name"] == "Editors"

        public = (await client.get("/api/v1/settings")).json()["data"]["settings"]
        assert "email" not in public

    async def test_unknown_key_rejected(self, client: AsyncClient, admin_headers):
        response = await client.patch("/api/v1/settings", headers=admin_headers, json={"settings": {"site.colour": 1}})

        assert response.status_code == 400

    async def test_user_cannot_update(self, client: AsyncClient, auth_headers):
        response = await client.patch("/api/v1/settings", headers=auth_headers, json={
            "settings": {"site.site_name": "Mine"},
        })

        assert response.status_code == 403


class TestHome:

    async def test_home_bundle(self, client: AsyncClient, biographies):
        data = (await client.get("/api/v1/home")).json()["data"]

        assert [b["slug"] for b in data["featuredBiographies"]] == ["marie-curie"]
        assert data["biographyOfTheDay"]["slug"] == "marie-curie"
        assert data["stats"]["biographiesCount"] == 3
        assert data["stats"]["totalViews"] == 400
        assert data["stats"]["categoriesCount"] == 1

    async def test_home_with_no_content(self, client: AsyncClient):
        data = (await client.get("/api/v1/home")).json()["data"]

        assert data["featuredBiographies"] == []
        assert data["biographyOfTheDay"] is None


class TestHistoricalTimeline:

    @staticmethod
    def event(date, title):
        return {"date": date, "title": title, "importance": "medium"}

    async def test_only_dated_events_of_published_biographies(self, client: AsyncClient, db_session):
        db_session.add_all([
            Biography(name="Marie Curie", slug="marie-curie", birth_date=datetime(1867, 11, 7), timeline=[
                self.event("1911-12-10", "Second Nobel Prize"),
                self.event(None, "Undated note"),
                self.event("1903-12-10", "First Nobel Prize"),
            ]),
            Biography(name="Ada Lovelace", slug="ada-lovelace", birth_date=datetime(1815, 12, 10), timeline=[
                self.event("1843-09-01", "Publishes the Notes"),
            ]),
            Biography(name="No Dates", slug="no-dates", timeline=[self.event(None, "Sometime")]),
            Biography(name="Empty", slug="empty"),
            Biography(name="Draft", slug="draft", published=False, timeline=[self.event("1900-01-01", "Hidden")]),
        ])
        await db_session.commit()

        body = (await client.get("/api/v1/home/timeline")).json()

        assert body["total"] == 2
        entries = body["data"]["timeline"]
        assert [entry["slug"] for entry in entries] == ["ada-lovelace", "marie-curie"]
        assert [event["title"] for event in entries[1]["timeline"]] == ["First Nobel Prize", "Second Nobel Prize"]

    async def test_paginated(self, client: AsyncClient, db_session):
        db_session.add_all([
            Biography(name=f"Person {i}", slug=f"person-{i}", timeline=[self.event(f"19{i}0-01-01", "Born")])
            for i in range(3)
        ])
        await db_session.commit()

        body = (await client.get("/api/v1/home/timeline", params={"limit": 2, "page": 2})).json()

        assert body["results"] == 1
        assert body["pagination"] == {"total": 3, "page": 2, "pages": 2, "limit": 2}

    async def test_filters_are_ignored(self, client: AsyncClient):
        response = await client.get("/api/v1/home/timeline", params={"secret": "x"})

        assert response.status_code == 200
        assert response.json()["data"]["timeline"] == []
