from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from biocms.core.database import get_db
from biocms.core.exceptions import AuthError, BioCMSError
from biocms.core.logging_config import logger, set_user_id
from biocms.models.user import User
from biocms.modules.auth.authenticator import Principal, TokenAuthenticator
from biocms.modules.auth.policies import access_gate


def _user_loader(db: AsyncSession, request: Request):
    """Principal loader that also keeps the loaded User on request.state"""

    async def load(user_id: str) -> Optional[Principal]:
        user = await db.get(User, user_id)
        if user is None:
            return None
        request.state.user = user
        return Principal.from_user(user)

    return load


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """Authenticate the request and attach the principal to request.state"""
    authenticator = TokenAuthenticator(_user_loader(db, request))
    token = authenticator.extract_token(request)

    try:
        principal = await authenticator.authenticate(token)
    except AuthError as e:
        if token:
            logger.log_auth_event("token", success=False, reason=e.code, http_path=request.url.path)
        raise

    request.state.principal = principal
    set_user_id(principal.id)
    return principal


def require_role(*roles):
    """
    Dependency factory restricting a route to the given roles.

    Usage:
        @router.delete("/{slug}", dependencies=[Depends(require_role(UserRole.ADMIN))])
    """

    async def dependency(principal: Principal = Depends(require_auth)) -> Principal:
        access_gate.check_roles(principal, roles)
        return principal

    return dependency


def require_policy(name: str):
    """Dependency factory enforcing a named entry of ROUTE_POLICIES"""
    if name not in access_gate.policies:
        raise KeyError(f"Unknown access policy '{name}'")

    async def dependency(principal: Principal = Depends(require_auth)) -> Principal:
        access_gate.check(principal, name)
        return principal

    return dependency


async def get_optional_principal(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Optional[Principal]:
    """
    Principal for public routes that show more to admins.

    A missing or unusable token means an anonymous caller.
    """
    authenticator = TokenAuthenticator(_user_loader(db, request))
    token = authenticator.extract_token(request)
    if not token:
        return None
    try:
        principal = await authenticator.authenticate(token)
    except BioCMSError as e:
        logger.debug(f"Ignoring unusable token on public route: {e.code}")
        return None
    request.state.principal = principal
    set_user_id(principal.id)
    return principal


async def get_current_user(
    request: Request,
    principal: Principal = Depends(require_auth)
) -> User:
    """Get current authenticated user"""
    return request.state.user
