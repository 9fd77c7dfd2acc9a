"""
Admin Dashboard endpoints - KPIs and popular content.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import timedelta
from typing import Optional

from biocms.core.database import get_db
from biocms.core.responses import success_envelope
from biocms.core.types import utcnow
from biocms.models import (
    Activity,
    Biography,
    Category,
    Contact,
    ContactStatus,
    Subscriber,
    SubscriberStatus,
    User,
)
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import require_policy
from biocms.query.resources import ACTIVITY_SCHEMA

router = APIRouter()

RECENT_ACTIVITY_LIMIT = 10


def growth_rate(current: int, previous: int) -> Optional[float]:
    """Percent change between two periods, None when there is no baseline"""
    if not previous:
        return None
    return round((current - previous) / previous * 100, 1)


async def _count(db: AsyncSession, column, *conditions) -> int:
    return await db.scalar(select(func.count(column)).where(*conditions)) or 0


@router.get("/overview")
async def overview(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("dashboard.read"))
):
    """Totals with 30-day growth against the preceding 30 days"""
    now = utcnow()
    month_ago = now - timedelta(days=30)
    two_months_ago = now - timedelta(days=60)
    recent = lambda column: (column >= month_ago,)
    previous = lambda column: (column >= two_months_ago, column < month_ago)

    total_biographies = await _count(db, Biography.id)
    total_users = await _count(db, User.id)
    total_views = await db.scalar(select(func.coalesce(func.sum(Biography.views), 0))) or 0
    active_categories = await _count(db, Category.id, Category.is_active.is_(True))

    recent_users = await _count(db, User.id, *recent(User.created_at))
    previous_users = await _count(db, User.id, *previous(User.created_at))
    recent_biographies = await _count(db, Biography.id, *recent(Biography.created_at))
    previous_biographies = await _count(db, Biography.id, *previous(Biography.created_at))

    pending_contacts = await _count(db, Contact.id, Contact.status == ContactStatus.PENDING)
    subscribers = await _count(db, Subscriber.id, Subscriber.status == SubscriberStatus.SUBSCRIBED)

    activities = (await db.execute(
        select(Activity).order_by(Activity.created_at.desc()).limit(RECENT_ACTIVITY_LIMIT)
    )).scalars().all()

    return success_envelope({
        "stats": {
            "totalBiographies": total_biographies,
            "totalUsers": total_users,
            "totalViews": total_views,
            "activeCategories": active_categories,
            "pendingContacts": pending_contacts,
            "newsletterSubscribers": subscribers,
            "growth": {
                "users": growth_rate(recent_users, previous_users),
                "biographies": growth_rate(recent_biographies, previous_biographies),
            },
            "recent": {
                "users": recent_users,
                "biographies": recent_biographies,
            },
        },
        "recentActivities": [ACTIVITY_SCHEMA.serialize(a) for a in activities],
    })


@router.get("/popular-biographies")
async def popular_biographies(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("dashboard.read"))
):
    """Most viewed biographies with their category name"""
    rows = (await db.execute(
        select(Biography, Category.name)
        .outerjoin(Category, Biography.category_id == Category.id)
        .order_by(Biography.views.desc(), Biography.created_at.desc())
        .limit(limit)
    )).all()

    biographies = [
        {
            "id": biography.id,
            "name": biography.name,
            "slug": biography.slug,
            "views": biography.views,
            "likes": biography.likes,
            "published": biography.published,
            "category": category_name,
            "createdAt": biography.created_at,
        }
        for biography, category_name in rows
    ]
    return success_envelope({"biographies": biographies}, results=len(biographies))
