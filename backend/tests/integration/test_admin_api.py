"""
Integration Tests for admin user management, activities and the dashboard
"""
from httpx import AsyncClient
from sqlalchemy import select

from biocms.models import Activity
from biocms.models.user import User
from tests.conftest import TEST_PASSWORD, fake, make_user

USERS = "/api/v1/admin/users"


class TestUserManagement:

    async def test_create_and_fetch_user(self, client: AsyncClient, admin_headers):
        email = fake.unique.email()
        created = await client.post(USERS, headers=admin_headers, json={
            "firstName": "Grace",
            "lastName": "Hopper",
            "email": email,
            "password": "compiler-1952",
            "role": "admin",
        })

        assert created.status_code == 201
        user = created.json()["data"]["user"]
        assert user["email"] == email.lower()
        assert user["role"] == "admin"
        assert "hashedPassword" not in user

        fetched = await client.get(f"{USERS}/{user['id']}", headers=admin_headers)
        assert fetched.json()["data"]["user"]["firstName"] == "Grace"

        client.cookies.clear()
        login = await client.post("/api/v1/auth/login", json={"email": email, "password": "compiler-1952"})
        assert login.status_code == 200

    async def test_create_duplicate_email(self, client: AsyncClient, admin_headers, test_user):
        response = await client.post(USERS, headers=admin_headers, json={
            "firstName": "Copy", "lastName": "Cat", "email": test_user.email, "password": TEST_PASSWORD,
        })

        assert response.status_code == 400
        assert response.json()["code"] == "DUPLICATE_VALUE"

    async def test_list_filters_by_role(self, client: AsyncClient, db_session, admin_headers, test_user):
        await make_user(db_session)

        body = (await client.get(USERS, headers=admin_headers, params={"role": "user"})).json()

        assert body["total"] == 2
        assert {u["role"] for u in body["data"]["users"]} == {"user"}

    async def test_unknown_user_is_404(self, client: AsyncClient, admin_headers):
        response = await client.get(f"{USERS}/missing", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    async def test_update_user(self, client: AsyncClient, admin_headers, test_user):
        response = await client.patch(f"{USERS}/{test_user.id}", headers=admin_headers, json={"lastName": "Renamed"})

        assert response.status_code == 200
        assert response.json()["data"]["user"]["lastName"] == "Renamed"

    async def test_update_email_conflict(self, client: AsyncClient, db_session, admin_headers, test_user):
        other = await make_user(db_session)

        response = await client.patch(f"{USERS}/{test_user.id}", headers=admin_headers, json={"email": other.email})

        assert response.status_code == 400

    async def test_toggle_status(self, client: AsyncClient, admin_headers, test_user):
        first = await client.patch(f"{USERS}/{test_user.id}/toggle-status", headers=admin_headers)
        second = await client.patch(f"{USERS}/{test_user.id}/toggle-status", headers=admin_headers)

        assert first.json()["data"]["user"]["isActive"] is False
        assert second.json()["data"]["user"]["isActive"] is True

    async def test_role_change_is_recorded(self, client: AsyncClient, db_session, admin_user, admin_headers, test_user):
        response = await client.patch(f"{USERS}/{test_user.id}/role", headers=admin_headers, json={"role": "admin"})
        assert response.json()["data"]["user"]["role"] == "admin"

        activity = await db_session.scalar(select(Activity).where(Activity.action == "user_role_changed"))
        assert activity.user_id == admin_user.id
        assert activity.target_id == test_user.id
        assert activity.details == {"from": "user", "to": "admin"}

    async def test_delete_user(self, client: AsyncClient, db_session, admin_headers, test_user):
        user_id = test_user.id

        response = await client.delete(f"{USERS}/{user_id}", headers=admin_headers)

        assert response.status_code == 204
        db_session.expunge_all()
        assert await db_session.get(User, user_id) is None

    async def test_stats(self, client: AsyncClient, db_session, admin_headers, test_user):
        await make_user(db_session, is_active=False)

        stats = (await client.get(f"{USERS}/stats", headers=admin_headers)).json()["data"]["stats"]

        assert stats["totalUsers"] == 3
        assert stats["newUsers"] == 3
        assert stats["disabledUsers"] == 1
        assert stats["usersByRole"] == {"user": 2, "admin": 1}


class TestSelfActions:

    async def test_cannot_delete_self(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.delete(f"{USERS}/{admin_user.id}", headers=admin_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "SELF_ACTION_FORBIDDEN"

    async def test_cannot_deactivate_self(self, client: AsyncClient, admin_user, admin_headers):
        toggled = await client.patch(f"{USERS}/{admin_user.id}/toggle-status", headers=admin_headers)
        patched = await client.patch(f"{USERS}/{admin_user.id}", headers=admin_headers, json={"isActive": False})

        assert toggled.status_code == 403
        assert patched.status_code == 403

    async def test_cannot_change_own_role(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.patch(f"{USERS}/{admin_user.id}/role", headers=admin_headers, json={"role": "user"})

        assert response.status_code == 403
        assert response.json()["code"] == "SELF_ACTION_FORBIDDEN"

    async def test_can_edit_own_name(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.patch(f"{USERS}/{admin_user.id}", headers=admin_headers, json={"firstName": "Root"})

        assert response.status_code == 200


class TestActivities:

    async def test_activity_feed(self, client: AsyncClient, admin_headers, test_user):
        await client.patch(f"{USERS}/{test_user.id}/toggle-status", headers=admin_headers)

        body = (await client.get("/api/v1/admin/activities", headers=admin_headers)).json()

        assert body["total"] == 1
        assert body["data"]["activities"][0]["action"] == "user_status_toggled"

    async def test_activity_feed_filters_by_action(self, client: AsyncClient, admin_headers, test_user):
        await client.patch(f"{USERS}/{test_user.id}", headers=admin_headers, json={"firstName": "Ann"})
        await client.patch(f"{USERS}/{test_user.id}/toggle-status", headers=admin_headers)

        body = (await client.get(
            "/api/v1/admin/activities", headers=admin_headers, params={"action": "user_updated"}
        )).json()

        assert [a["action"] for a in body["data"]["activities"]] == ["user_updated"]


class TestDashboard:

    async def test_overview(self, client: AsyncClient, admin_headers, test_user, biographies):
        await client.patch(f"{USERS}/{test_user.id}/toggle-status", headers=admin_headers)

        body = (await client.get("/api/v1/admin/dashboard/overview", headers=admin_headers)).json()

        stats = body["data"]["stats"]
        assert stats["totalBiographies"] == 4
        assert stats["totalUsers"] == 2
        assert stats["totalViews"] == 405
        assert stats["activeCategories"] == 1
        assert stats["pendingContacts"] == 0
        assert stats["growth"] == {"users": None, "biographies": None}
        assert stats["recent"] == {"users": 2, "biographies": 4}
        assert len(body["data"]["recentActivities"]) == 1

    async def test_popular_biographies(self, client: AsyncClient, admin_headers, biographies):
        body = (await client.get(
            "/api/v1/admin/dashboard/popular-biographies", headers=admin_headers, params={"limit": 2}
        )).json()

        rows = body["data"]["biographies"]
        assert [r["slug"] for r in rows] == ["nikola-tesla", "marie-curie"]
        assert rows[0]["category"] is None
        assert rows[1]["category"] == "Science"
