"""
Integration Tests for the contact form and newsletter subscriptions
"""
import asyncio

import pytest
from httpx import AsyncClient

from biocms.services.email_service import email_service

CONTACTS = "/api/v1/contacts"
NEWSLETTER = "/api/v1/newsletter"


def contact_payload(subject="Hello there"):
    return {
        "name": "Visitor",
        "email": "Visitor@Example.com",
        "subject": subject,
        "message": "I enjoyed the article on Marie Curie.",
    }


class TestContacts:

    @pytest.mark.parametrize("subject, priority", [
        ("URGENT: broken link", "high"),
        ("Quick question", "low"),
        ("Hello there", "medium"),
    ])
    async def test_submit_sets_priority(self, client: AsyncClient, subject, priority):
        response = await client.post(CONTACTS, json=contact_payload(subject))

        assert response.status_code == 201
        contact = response.json()["data"]["contact"]
        assert contact["priority"] == priority
        assert contact["status"] == "pending"
        assert contact["email"] == "visitor@example.com"

    async def test_invalid_email_rejected(self, client: AsyncClient):
        payload = contact_payload()
        payload["email"] = "not-an-email"

        response = await client.post(CONTACTS, json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_listing_requires_admin(self, client: AsyncClient, auth_headers):
        assert (await client.get(CONTACTS)).status_code == 401
        assert (await client.get(CONTACTS, headers=auth_headers)).status_code == 403

    async def test_admin_lists_and_replies(self, client: AsyncClient, admin_user, admin_headers):
        await client.post(CONTACTS, json=contact_payload("Urgent request"))
        await client.post(CONTACTS, json=contact_payload("Suggestion"))

        listed = (await client.get(CONTACTS, headers=admin_headers, params={"priority": "high"})).json()
        assert listed["total"] == 1
        contact_id = listed["data"]["contacts"][0]["id"]

        replied = await client.patch(
            f"{CONTACTS}/{contact_id}/status", headers=admin_headers, json={"status": "replied"}
        )
        body = replied.json()["data"]["contact"]
        assert body["status"] == "replied"
        assert body["repliedAt"] is not None
        assert body["repliedBy"] == admin_user.id

    async def test_unknown_status_rejected(self, client: AsyncClient, admin_headers):
        created = await client.post(CONTACTS, json=contact_payload())
        contact_id = created.json()["data"]["contact"]["id"]

        response = await client.patch(
            f"{CONTACTS}/{contact_id}/status", headers=admin_headers, json={"status": "lost"}
        )

        assert response.status_code == 400

    async def test_unknown_contact_is_404(self, client: AsyncClient, admin_headers):
        response = await client.get(f"{CONTACTS}/missing", headers=admin_headers)

        assert response.json()["code"] == "CONTACT_NOT_FOUND"


class TestNewsletter:

    @pytest.fixture
    def sent_tokens(self, monkeypatch):
        tokens = []

        def capture(to_email, name, token):
            tokens.append(token)
            return asyncio.sleep(0)

        monkeypatch.setattr(email_service, "send_newsletter_verification_email", capture)
        return tokens

    async def test_double_opt_in(self, client: AsyncClient, sent_tokens):
        response = await client.post(f"{NEWSLETTER}/subscribe", json={"email": "Reader@Example.com", "name": "Reader"})
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "reader@example.com"
        assert len(sent_tokens) == 1

        verified = await client.get(f"{NEWSLETTER}/verify/{sent_tokens[0]}")
        assert verified.status_code == 200

        again = await client.post(f"{NEWSLETTER}/subscribe", json={"email": "reader@example.com"})
        assert again.status_code == 400

        reused = await client.get(f"{NEWSLETTER}/verify/{sent_tokens[0]}")
        assert reused.status_code == 400

    async def test_bad_verification_token(self, client: AsyncClient):
        response = await client.get(f"{NEWSLETTER}/verify/not-a-token")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_unsubscribe_and_resubscribe(self, client: AsyncClient, admin_headers, sent_tokens):
        await client.post(f"{NEWSLETTER}/subscribe", json={"email": "reader@example.com"})
        await client.get(f"{NEWSLETTER}/verify/{sent_tokens[0]}")

        left = await client.post(f"{NEWSLETTER}/unsubscribe", json={"email": "reader@example.com"})
        assert left.status_code == 200

        subscribers = (await client.get(f"{NEWSLETTER}/subscribers", headers=admin_headers)).json()
        assert subscribers["data"]["subscribers"][0]["status"] == "unsubscribed"

        back = await client.post(f"{NEWSLETTER}/subscribe", json={"email": "reader@example.com"})
        assert back.status_code == 200
        assert len(sent_tokens) == 2

    async def test_unsubscribe_unknown_address(self, client: AsyncClient):
        response = await client.post(f"{NEWSLETTER}/unsubscribe", json={"email": "nobody@example.com"})

        assert response.status_code == 404

    async def test_admin_deletes_subscriber(self, client: AsyncClient, admin_headers, sent_tokens):
        await client.post(f"{NEWSLETTER}/subscribe", json={"email": "reader@example.com"})
        listed = (await client.get(f"{NEWSLETTER}/subscribers", headers=admin_headers)).json()
        subscriber = listed["data"]["subscribers"][0]
        assert "verificationTokenHash" not in subscriber

        response = await client.delete(f"{NEWSLETTER}/subscribers/{subscriber['id']}", headers=admin_headers)
        assert response.status_code == 204

        listed = (await client.get(f"{NEWSLETTER}/subscribers", headers=admin_headers)).json()
        assert listed["total"] == 0
