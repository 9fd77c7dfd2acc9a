"""
Admin User Management
Create, edit, deactivate and delete accounts. Admins cannot demote,
deactivate or delete themselves through these routes.
"""
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.database import get_db
from biocms.core.exceptions import ConflictError, NotFoundError
from biocms.core.responses import list_envelope, no_content, success_envelope, success_response
from biocms.core.security import get_password_hash
from biocms.core.types import utcnow
from biocms.models.user import User, UserRole
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import require_policy
from biocms.modules.auth.policies import access_gate
from biocms.query import build_query
from biocms.query.resources import USER_SCHEMA
from biocms.schemas.user import AdminUserCreate, AdminUserUpdate, RoleUpdate
from biocms.services.activity_service import record_activity
from biocms.utils.pagination import paginate

router = APIRouter()


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


@router.get("")
async def list_users(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("users.manage"))
):
    """
    List users with filtering, search and pagination.

    Example: /admin/users?role=admin&search=smith&sort=-createdAt
    """
    query, count = build_query(request.query_params, USER_SCHEMA)
    page = await paginate(db, User, USER_SCHEMA, query, count)
    return list_envelope("users", page.serialize(USER_SCHEMA), page)


@router.get("/stats")
async def user_stats(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("users.manage"))
):
    """Totals, recently active users, new users this week and role breakdown"""
    now = utcnow()
    month_ago = now - timedelta(days=30)
    week_ago = now - timedelta(days=7)

    total_users = await db.scalar(select(func.count(User.id)))
    active_users = await db.scalar(select(func.count(User.id)).where(User.last_login >= month_ago))
    new_users = await db.scalar(select(func.count(User.id)).where(User.created_at >= week_ago))
    disabled_users = await db.scalar(select(func.count(User.id)).where(User.is_active.is_(False)))

    rows = (await db.execute(select(User.role, func.count(User.id)).group_by(User.role))).all()
    by_role = {role.value: 0 for role in UserRole}
    for role, total in rows:
        by_role[role.value if hasattr(role, "value") else role] = total

    return success_envelope({
        "stats": {
            "totalUsers": total_users or 0,
            "activeUsers": active_users or 0,
            "newUsers": new_users or 0,
            "disabledUsers": disabled_users or 0,
            "usersByRole": by_role,
        }
    })


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("users.manage"))
):
    user = await get_user_or_404(db, user_id)
    return success_envelope({"user": USER_SCHEMA.serialize(user)})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AdminUserCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("users.manage"))
):
    email = payload.email.lower()
    if await db.scalar(select(User.id).where(User.email == email)) is not None:
        raise ConflictError("Email already registered", field="email")

    user = User(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=email,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
        is_active=payload.is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    await record_activity(
        db, principal.id, "user_created", "user", user.id,
        {"email": user.email, "role": user.role.value}, request,
    )
    return success_response({"user": USER_SCHEMA.serialize(user)}, status_code=status.HTTP_201_CREATED)


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    payload: AdminUserUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("users.manage"))
):
    """Edit profile fields, role or status. Passwords are changed by their owner only."""
    user = await get_user_or_404(db, user_id)
    changes = {key: value for key, value in payload.changes().items() if value is not None}

    if "role" in changes and changes["role"] != user.role:
        access_gate.ensure_not_self(principal, user.id, "change the role of")
    if changes.get("is_active") is False:
        access_gate.ensure_not_self(principal, user.id, "deactivate")

    if "email" in changes:
        changes["email"] = changes["email"].lower()
        taken = await db.scalar(
            select(User.id).where(User.email == changes["email"], User.id != user.id)
        )
        if taken is not None:
            raise ConflictError("Email already registered", field="email")

    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)

    await record_activity(
        db, principal.id, "user_updated", "user", user.id,
        {"fields": sorted(changes)}, request,
    )
    return success_envelope({"user": USER_SCHEMA.serialize(user)})


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("users.manage"))
):
    user = await get_user_or_404(db, user_id)
    access_gate.ensure_not_self(principal, user.id, "delete")

    target_id, email = user.id, user.email
    await db.delete(user)
    await db.commit()

    await record_activity(db, principal.id, "user_deleted", "user", target_id, {"email": email}, request)
    return no_content()


@router.patch("/{user_id}/toggle-status")
async def toggle_user_status(
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("users.manage"))
):
    user = await get_user_or_404(db, user_id)
    access_gate.ensure_not_self(principal, user.id, "deactivate")

    user.is_active = not user.is_active
    await db.commit()
    await db.refresh(user)

    await record_activity(
        db, principal.id, "user_status_toggled", "user", user.id,
        {"isActive": user.is_active}, request,
    )
    return success_envelope({"user": USER_SCHEMA.serialize(user)})


@router.patch("/{user_id}/role")
async def update_user_role(
    user_id: str,
    payload: RoleUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("users.manage"))
):
    user = await get_user_or_404(db, user_id)
    access_gate.ensure_not_self(principal, user.id, "change the role of")

    previous = user.role.value
    user.role = payload.role
    await db.commit()
    await db.refresh(user)

    await record_activity(
        db, principal.id, "user_role_changed", "user", user.id,
        {"from": previous, "to": user.role.value}, request,
    )
    return success_envelope({"user": USER_SCHEMA.serialize(user)})
