"""
Unit Tests for the moving-window rate limiter
"""
import asyncio

import pytest

from biocms.core.rate_limiter import RateLimitPolicy, RateLimiter, async_storage_uri, default_policies


@pytest.fixture
def limiter():
    policies = default_policies()
    policies["burst"] = RateLimitPolicy(
        name="burst",
        max_requests=5,
        window_seconds=1,
        message="Slow down",
    )
    return RateLimiter(storage_uri="async+memory://", policies=policies)


class TestRateLimiter:
    """RateLimiter.allow / check"""

    async def test_sixth_request_rejected_then_recovers(self, limiter):
        results = [await limiter.allow("burst", "ip:1.2.3.4") for _ in range(6)]

        assert results == [True, True, True, True, True, False]

        await asyncio.sleep(1.1)
        assert await limiter.allow("burst", "ip:1.2.3.4") is True

    async def test_keys_are_independent(self, limiter):
        for _ in range(5):
            await limiter.allow("burst", "ip:1.1.1.1")

        assert await limiter.allow("burst", "ip:1.1.1.1") is False
        assert await limiter.allow("burst", "ip:2.2.2.2") is True

    async def test_policies_are_independent(self, limiter):
        for _ in range(5):
            await limiter.allow("burst", "ip:1.1.1.1")

        assert await limiter.allow("contact", "ip:1.1.1.1") is True

    async def test_decision_reports_remaining_and_retry_after(self, limiter):
        policy = limiter.get_policy("burst")
        first = await limiter.check(policy, "ip:9.9.9.9")

        assert first.allowed
        assert first.remaining == 4
        assert first.retry_after >= 1

    async def test_reset_clears_counters(self, limiter):
        for _ in range(6):
            await limiter.allow("burst", "ip:1.1.1.1")
        await limiter.reset()

        assert await limiter.allow("burst", "ip:1.1.1.1") is True


class TestPolicyRouting:
    """Which policies apply to a request"""

    def test_every_api_request_gets_api_policy(self, limiter):
        names = [p.name for p in limiter.policies_for("GET", "/api/v1/biographies")]

        assert names == ["api"]

    def test_login_gets_auth_policy(self, limiter):
        names = [p.name for p in limiter.policies_for("POST", "/api/v1/auth/login")]

        assert names == ["api", "auth"]

    def test_contact_policy_only_for_post(self, limiter):
        assert "contact" in [p.name for p in limiter.policies_for("POST", "/api/v1/contacts")]
        assert "contact" not in [p.name for p in limiter.policies_for("GET", "/api/v1/contacts")]

    def test_interaction_policy_matches_suffixes(self, limiter):
        like = [p.name for p in limiter.policies_for("PATCH", "/api/v1/biographies/marie-curie/like")]
        edit = [p.name for p in limiter.policies_for("PATCH", "/api/v1/biographies/marie-curie")]

        assert "interaction" in like
        assert "interaction" not in edit

    def test_interaction_policy_is_keyed_by_principal(self, limiter):
        assert limiter.get_policy("interaction").key == "principal"


class TestStorageUri:

    @pytest.mark.parametrize("uri, expected", [
        ("memory://", "async+memory://"),
        ("redis://localhost:6379/1", "async+redis://localhost:6379/1"),
        ("async+memory://", "async+memory://"),
    ])
    def test_async_storage_uri(self, uri, expected):
        assert async_storage_uri(uri) == expected

    def test_plain_memory_uri_gets_async_storage(self):
        from limits.aio.storage import MemoryStorage

        limiter = RateLimiter(storage_uri="memory://")

        assert isinstance(limiter.storage, MemoryStorage)
