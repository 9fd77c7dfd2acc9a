from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import timedelta

from biocms.core.database import get_db
from biocms.core.config import settings
from biocms.core.exceptions import (
    AccountDisabledError,
    AuthError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    ValidationError,
)
from biocms.core.security import (
    create_access_token,
    generate_one_time_token,
    get_password_hash,
    hash_token,
    verify_password,
)
from biocms.core.logging_config import logger, set_user_id
from biocms.core.responses import success_envelope
from biocms.core.types import utcnow
from biocms.models.user import User, UserRole
from biocms.modules.auth.dependencies import get_current_user
from biocms.query.resources import USER_SCHEMA
from biocms.schemas.auth import (
    ForgotPassword,
    PasswordUpdate,
    ProfileUpdate,
    ResetPassword,
    UserLogin,
    UserRegister,
)
from biocms.services.email_service import email_service
from biocms.services.settings_service import get_setting

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def token_response(user: User, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Envelope with a fresh access token, also set as an HTTP-only cookie"""
    role = user.role.value if hasattr(user.role, "value") else user.role
    token = create_access_token(user.id, role=role)
    response = JSONResponse(
        status_code=status_code,
        content=success_envelope({"user": USER_SCHEMA.serialize(user)}, token=token),
    )
    response.set_cookie(
        key=settings.JWT_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.JWT_COOKIE_SECURE,
        samesite="lax",
    )
    return response


async def _ensure_email_free(db: AsyncSession, email: str, exclude_id: str = None) -> None:
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if await db.scalar(stmt) is not None:
        raise ConflictError("Email already registered", field="email")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user account"""
    client_ip = _client_ip(request)
    email = user_data.email.lower()

    if not await get_setting(db, "general.registration_enabled", True):
        logger.log_auth_event("register", success=False, user_email=email, reason="Registration disabled", client_ip=client_ip)
        raise ForbiddenError("Registration is currently disabled", code="REGISTRATION_DISABLED")

    existing = await db.scalar(select(User.id).where(User.email == email))
    if existing is not None:
        logger.log_auth_event("register", success=False, user_email=email, reason="Email already registered", client_ip=client_ip)
        raise ConflictError("Email already registered", field="email")

    user = User(
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        email=email,
        hashed_password=get_password_hash(user_data.password),
        role=UserRole.USER,
        last_login=utcnow(),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.log_auth_event("register", success=True, user_email=email, client_ip=client_ip)
    return token_response(user, status.HTTP_201_CREATED)


@router.post("/login")
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password"""
    client_ip = _client_ip(request)
    email = credentials.email.lower()

    user = await db.scalar(select(User).where(User.email == email))
    if user is None or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event("login", success=False, user_email=email, reason="Invalid credentials", client_ip=client_ip)
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.log_auth_event("login", success=False, user_email=email, reason="Account disabled", client_ip=client_ip)
        raise AccountDisabledError()

    user.last_login = utcnow()
    await db.commit()

    set_user_id(str(user.id))
    logger.log_auth_event("login", success=True, user_email=email, client_ip=client_ip)
    return token_response(user)


@router.post("/logout")
async def logout():
    """Clear the session cookie"""
    response = JSONResponse(content=success_envelope({}, message="Logged out"))
    response.delete_cookie(settings.JWT_COOKIE_NAME)
    return response


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return success_envelope({"user": USER_SCHEMA.serialize(current_user)})


@router.patch("/me")
async def update_me(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update own name or email. Password and role changes have their own routes."""
    changes = {key: value for key, value in payload.changes().items() if value is not None}
    if "email" in changes:
        changes["email"] = changes["email"].lower()
        await _ensure_email_free(db, changes["email"], exclude_id=current_user.id)

    for field, value in changes.items():
        setattr(current_user, field, value)
    await db.commit()
    await db.refresh(current_user)
    return success_envelope({"user": USER_SCHEMA.serialize(current_user)})


@router.patch("/update-password")
async def update_password(
    request: Request,
    payload: PasswordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Change own password.

    Stamps credentials_changed_at so every previously issued token stops
    working, then returns a fresh token.
    """
    if not verify_password(payload.current_password, current_user.hashed_password):
        logger.log_auth_event("update_password", success=False, user_email=current_user.email, reason="Wrong current password")
        raise AuthError("Your current password is wrong.", code="WRONG_PASSWORD")

    current_user.hashed_password = get_password_hash(payload.new_password)
    current_user.credentials_changed_at = utcnow()
    await db.commit()
    await db.refresh(current_user)

    logger.log_auth_event("update_password", success=True, user_email=current_user.email, client_ip=_client_ip(request))
    return token_response(current_user)


@router.post("/forgot-password")
async def forgot_password(
    request: Request,
    payload: ForgotPassword,
    db: AsyncSession = Depends(get_db)
):
    """
    Email a one-time reset link.

    The response is the same whether or not the address is registered.
    """
    email = payload.email.lower()
    user = await db.scalar(select(User).where(User.email == email))

    if user is not None and user.is_active:
        raw_token, token_hash = generate_one_time_token()
        user.reset_token_hash = token_hash
        user.reset_token_expires = utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        await db.commit()

        email_service.dispatch(email_service.send_password_reset_email(user.email, user.full_name, raw_token))
        logger.log_auth_event("forgot_password", success=True, user_email=email, client_ip=_client_ip(request))
    else:
        logger.log_auth_event("forgot_password", success=False, user_email=email, reason="Unknown or inactive account")

    return success_envelope({}, message="If that email is registered, a reset link has been sent.")


@router.patch("/reset-password/{token}")
async def reset_password(
    token: str,
    request: Request,
    payload: ResetPassword,
    db: AsyncSession = Depends(get_db)
):
    user = await db.scalar(
        select(User).where(
            User.reset_token_hash == hash_token(token),
            User.reset_token_expires > utcnow(),
        )
    )
    if user is None:
        logger.log_auth_event("reset_password", success=False, reason="Invalid or expired token", client_ip=_client_ip(request))
        raise ValidationError("Token is invalid or has expired", field="token")

    user.hashed_password = get_password_hash(payload.password)
    user.reset_token_hash = None
    user.reset_token_expires = None
    user.credentials_changed_at = utcnow()
    await db.commit()
    await db.refresh(user)

    logger.log_auth_event("reset_password", success=True, user_email=user.email, client_ip=_client_ip(request))
    return token_response(user)
