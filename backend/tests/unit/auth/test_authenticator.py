"""
Unit Tests for the token authenticator
The principal loader is an in-memory dict; no database involved.
"""
from datetime import datetime, timedelta, timezone

import pytest

from biocms.core.exceptions import (
    AccountDisabledError,
    InvalidTokenError,
    PrincipalGoneError,
    StaleCredentialsError,
    UnauthenticatedError,
)
from biocms.core.security import create_access_token
from biocms.modules.auth.authenticator import Principal, TokenAuthenticator


def authenticator_for(*principals):
    store = {p.id: p for p in principals}

    async def load(user_id):
        return store.get(user_id)

    return TokenAuthenticator(load)


def naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


class TestAuthenticate:

    async def test_valid_token(self):
        principal = Principal(id="u1", role="user")
        token = create_access_token("u1", role="user")

        result = await authenticator_for(principal).authenticate(token)

        assert result == principal

    async def test_missing_token(self):
        with pytest.raises(UnauthenticatedError):
            await authenticator_for().authenticate(None)

    async def test_malformed_token(self):
        with pytest.raises(InvalidTokenError):
            await authenticator_for().authenticate("abc.def.ghi")

    async def test_unknown_principal(self):
        token = create_access_token("ghost")

        with pytest.raises(PrincipalGoneError):
            await authenticator_for().authenticate(token)

    async def test_inactive_principal(self):
        principal = Principal(id="u1", role="user", is_active=False)

        with pytest.raises(AccountDisabledError):
            await authenticator_for(principal).authenticate(create_access_token("u1"))

    async def test_token_issued_before_credential_change_is_stale(self):
        t1 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        t2 = t1 + timedelta(seconds=1)
        principal = Principal(id="u1", role="user", credentials_changed_at=naive(t2))
        token = create_access_token("u1", issued_at=t1, expires_delta=timedelta(days=36500))

        with pytest.raises(StaleCredentialsError):
            await authenticator_for(principal).authenticate(token)

    async def test_token_issued_after_credential_change_is_accepted(self):
        t1 = datetime.now(timezone.utc) - timedelta(minutes=5)
        principal = Principal(id="u1", role="user", credentials_changed_at=naive(t1))
        token = create_access_token("u1")

        assert (await authenticator_for(principal).authenticate(token)).id == "u1"


class TestExtractToken:

    class FakeRequest:
        def __init__(self, headers=None, cookies=None):
            self.headers = headers or {}
            self.cookies = cookies or {}

    def test_bearer_header_wins_over_cookie(self):
        request = self.FakeRequest({"Authorization": "Bearer header-token"}, {"jwt": "cookie-token"})

        assert TokenAuthenticator.extract_token(request) == "header-token"

    def test_cookie_fallback(self):
        request = self.FakeRequest(cookies={"jwt": "cookie-token"})

        assert TokenAuthenticator.extract_token(request) == "cookie-token"

    def test_nothing_presented(self):
        assert TokenAuthenticator.extract_token(self.FakeRequest()) is None
