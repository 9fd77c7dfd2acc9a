from fastapi import APIRouter, Depends, Request
from sqlalchemy import String, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.database import get_db
from biocms.core.responses import list_envelope, success_envelope
from biocms.models import Biography, BiographyComment, Category
from biocms.query import build_query, normalize_params
from biocms.query.resources import BIOGRAPHY_SCHEMA, CATEGORY_SCHEMA
from biocms.services.biography_service import pick_biography_of_the_day
from biocms.utils.pagination import paginate

router = APIRouter()

HOME_FEATURED_BIOGRAPHIES = 6
HOME_FEATURED_CATEGORIES = 8
TIMELINE_SORT = "birthDate,name"
# Serialized form of a timeline event whose date is set
DATED_EVENT_MARKER = '"date": "'


async def _site_stats(db: AsyncSession) -> dict:
    published = Biography.published.is_(True)
    totals = (await db.execute(
        select(
            func.count(Biography.id),
            func.coalesce(func.sum(Biography.views), 0),
            func.coalesce(func.sum(Biography.likes), 0),
        ).where(published)
    )).one()
    categories = await db.scalar(select(func.count(Category.id)).where(Category.is_active.is_(True)))
    comments = await db.scalar(select(func.count(BiographyComment.id)))
    return {
        "biographiesCount": totals[0],
        "categoriesCount": categories or 0,
        "totalViews": totals[1],
        "totalLikes": totals[2],
        "totalComments": comments or 0,
    }


@router.get("")
async def home(db: AsyncSession = Depends(get_db)):
    """Landing page bundle: featured content, biography of the day and site stats"""
    featured_biographies = (await db.execute(
        select(Biography)
        .where(Biography.featured.is_(True), Biography.published.is_(True))
        .order_by(Biography.created_at.desc(), Biography.id.desc())
        .limit(HOME_FEATURED_BIOGRAPHIES)
    )).scalars().all()

    featured_categories = (await db.execute(
        select(Category)
        .where(Category.featured.is_(True), Category.is_active.is_(True))
        .order_by(Category.display_order, Category.name)
        .limit(HOME_FEATURED_CATEGORIES)
    )).scalars().all()

    biography_of_the_day = await pick_biography_of_the_day(db)

    return success_envelope({
        "featuredBiographies": [BIOGRAPHY_SCHEMA.serialize(b) for b in featured_biographies],
        "featuredCategories": [CATEGORY_SCHEMA.serialize(c) for c in featured_categories],
        "biographyOfTheDay": BIOGRAPHY_SCHEMA.serialize(biography_of_the_day) if biography_of_the_day else None,
        "stats": await _site_stats(db),
    })


@router.get("/stats")
async def home_stats(db: AsyncSession = Depends(get_db)):
    return success_envelope({"stats": await _site_stats(db)})


def _timeline_entry(biography: Biography) -> dict:
    events = sorted(
        (event for event in biography.timeline if event.get("date")),
        key=lambda event: event["date"],
    )
    return {
        "id": biography.id,
        "name": biography.name,
        "slug": biography.slug,
        "title": biography.title,
        "image": biography.image,
        "timeline": events,
    }


@router.get("/timeline")
async def historical_timeline(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Historical timeline across published biographies.

    Only biographies with at least one dated event are listed, ordered by
    birth date; each carries its dated events in chronological order.
    Accepts ``page`` and ``limit``.
    """
    params = normalize_params(request.query_params)
    scoped = {key: params[key] for key in ("page", "limit") if key in params}
    scoped["sort"] = TIMELINE_SORT
    query, count = build_query(scoped, BIOGRAPHY_SCHEMA)

    page = await paginate(
        db, Biography, BIOGRAPHY_SCHEMA, query, count,
        base_conditions=[
            Biography.published.is_(True),
            cast(Biography.timeline, String).contains(DATED_EVENT_MARKER),
        ],
    )
    return list_envelope("timeline", [_timeline_entry(b) for b in page.items], page)
