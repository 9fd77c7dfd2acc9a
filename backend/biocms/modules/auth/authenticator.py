"""
Token authenticator.

Resolves a raw bearer token into a ``Principal``. The authenticator does not
touch the database itself; the caller injects an async loader that maps a
subject id to a Principal (or None when the subject no longer exists).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from starlette.requests import Request

from biocms.core.config import settings
from biocms.core.exceptions import (
    AccountDisabledError,
    InvalidTokenError,
    PrincipalGoneError,
    StaleCredentialsError,
    UnauthenticatedError,
)
from biocms.core.security import decode_token
from biocms.core.types import to_timestamp


@dataclass(frozen=True)
class Principal:
    """Authenticated caller"""
    id: str
    role: str
    is_active: bool = True
    credentials_changed_at: Optional[datetime] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user) -> "Principal":
        role = user.role.value if hasattr(user.role, "value") else user.role
        return cls(
            id=str(user.id),
            role=role,
            is_active=bool(user.is_active),
            credentials_changed_at=user.credentials_changed_at,
            email=user.email,
        )


PrincipalLoader = Callable[[str], Awaitable[Optional[Principal]]]


class TokenAuthenticator:
    """Validates access tokens against the current state of their principal"""

    def __init__(self, load_principal: PrincipalLoader):
        self.load_principal = load_principal

    @staticmethod
    def extract_token(request: Request) -> Optional[str]:
        """Bearer header first, then the session cookie"""
        authorization = request.headers.get("Authorization", "")
        if authorization.lower().startswith("bearer "):
            token = authorization[7:].strip()
            if token:
                return token
        return request.cookies.get(settings.JWT_COOKIE_NAME) or None

    async def authenticate(self, raw_token: Optional[str]) -> Principal:
        if not raw_token:
            raise UnauthenticatedError()

        payload = decode_token(raw_token)

        if payload.get("type") != "access":
            raise InvalidTokenError("Invalid token type. Please log in again.")

        subject = payload.get("sub")
        issued_at = payload.get("iat")
        if not subject or issued_at is None:
            raise InvalidTokenError("Invalid token payload. Please log in again.")

        principal = await self.load_principal(str(subject))
        if principal is None:
            raise PrincipalGoneError()

        if not principal.is_active:
            raise AccountDisabledError()

        if principal.credentials_changed_at is not None:
            if to_timestamp(principal.credentials_changed_at) > float(issued_at):
                raise StaleCredentialsError()

        return principal
