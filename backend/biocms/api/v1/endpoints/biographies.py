"""
Biography endpoints.

Public reads hide unpublished biographies from everyone but admins. Writes
are admin-only; likes, bookmarks and comments need any logged-in user.
"""
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.database import get_db
from biocms.core.exceptions import NotFoundError
from biocms.core.logging_config import logger
from biocms.core.responses import list_envelope, no_content, pagination_meta, success_envelope, success_response
from biocms.core.types import utcnow
from biocms.models import Biography, BiographyComment, BiographyReaction, Category, ReactionKind
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import get_optional_principal, require_policy
from biocms.query import build_query, normalize_params
from biocms.query.resources import BIOGRAPHY_SCHEMA, CATEGORY_SCHEMA, COMMENT_SCHEMA
from biocms.schemas.biography import (
    BiographyCreate,
    BiographyOfTheDayUpdate,
    BiographyUpdate,
    CommentCreate,
    DOCUMENT_FIELDS,
    dump_documents,
)
from biocms.services.activity_service import record_activity
from biocms.services.biography_service import pick_biography_of_the_day
from biocms.services.slug_service import unique_slug
from biocms.utils.pagination import paginate

router = APIRouter()


def _visibility(principal: Optional[Principal]):
    """Non-admins only ever see published biographies"""
    if principal is not None and principal.is_admin:
        return []
    return [Biography.published.is_(True)]


async def get_biography_or_404(
    db: AsyncSession,
    slug: str,
    principal: Optional[Principal] = None,
    include_unpublished: bool = False
) -> Biography:
    stmt = select(Biography).where(Biography.slug == slug)
    if not include_unpublished:
        stmt = stmt.where(*_visibility(principal))
    biography = await db.scalar(stmt)
    if biography is None:
        raise NotFoundError("Biography", slug)
    return biography


async def _ensure_category(db: AsyncSession, category_id: Optional[str]) -> None:
    if category_id and await db.get(Category, category_id) is None:
        raise NotFoundError("Category", category_id)


def _biography_body(biography: Biography) -> dict:
    return {"biography": BIOGRAPHY_SCHEMA.serialize(biography)}


# ==================== Public reads ====================

@router.get("")
async def list_biographies(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """
    List biographies with filtering, search, sorting, projection and paging.

    ``category=<slug>`` is accepted as a shortcut for ``categoryId``.
    """
    params = normalize_params(request.query_params)
    category_slug = params.pop("category", None)
    query, count = build_query(params, BIOGRAPHY_SCHEMA)

    conditions = _visibility(principal)
    if category_slug:
        category = await db.scalar(select(Category).where(Category.slug == category_slug))
        if category is None:
            pagination = query.pagination
            return success_envelope(
                {"biographies": []},
                results=0,
                total=0,
                pagination=pagination_meta(0, pagination.page, pagination.limit),
            )
        conditions.append(Biography.category_id == category.id)

    page = await paginate(db, Biography, BIOGRAPHY_SCHEMA, query, count, base_conditions=conditions)
    return list_envelope("biographies", page.serialize(BIOGRAPHY_SCHEMA), page)


@router.get("/stats")
async def biography_stats(db: AsyncSession = Depends(get_db)):
    """Totals across all biographies plus per-category counts"""
    totals = (await db.execute(
        select(
            func.count(Biography.id),
            func.count(Biography.id).filter(Biography.published.is_(True)),
            func.count(Biography.id).filter(Biography.featured.is_(True)),
            func.coalesce(func.sum(Biography.views), 0),
            func.coalesce(func.sum(Biography.likes), 0),
            func.coalesce(func.sum(Biography.bookmarks), 0),
        )
    )).one()

    by_category = (await db.execute(
        select(Category.id, Category.name, Category.slug, func.count(Biography.id))
        .join(Biography, Biography.category_id == Category.id)
        .group_by(Category.id, Category.name, Category.slug)
        .order_by(func.count(Biography.id).desc())
    )).all()

    return success_envelope({
        "stats": {
            "totalBiographies": totals[0],
            "publishedBiographies": totals[1],
            "featuredBiographies": totals[2],
            "totalViews": totals[3],
            "totalLikes": totals[4],
            "totalBookmarks": totals[5],
            "byCategory": [
                {"id": row[0], "name": row[1], "slug": row[2], "count": row[3]}
                for row in by_category
            ],
        }
    })


@router.get("/featured")
async def featured_biographies(
    limit: int = Query(6, ge=1, le=50),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Biography)
        .where(Biography.featured.is_(True), Biography.published.is_(True))
        .order_by(Biography.created_at.desc(), Biography.id.desc())
        .limit(limit)
    )
    items = [BIOGRAPHY_SCHEMA.serialize(b) for b in result.scalars().all()]
    return success_envelope({"biographies": items}, results=len(items))


@router.get("/biography-of-the-day")
async def biography_of_the_day(db: AsyncSession = Depends(get_db)):
    biography = await pick_biography_of_the_day(db)
    if biography is None:
        raise NotFoundError("Biography of the day")
    return success_envelope(_biography_body(biography))


@router.get("/{slug}")
async def get_biography(
    slug: str,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """Get a biography by slug and count the view"""
    biography = await get_biography_or_404(db, slug, principal)
    biography.views = (biography.views or 0) + 1
    await db.commit()

    body = _biography_body(biography)
    if biography.category_id:
        category = await db.get(Category, biography.category_id)
        if category is not None:
            body["category"] = CATEGORY_SCHEMA.serialize(category)
    return success_envelope(body)


@router.get("/{slug}/related")
async def related_biographies(
    slug: str,
    limit: int = Query(3, ge=1, le=20),
    db: AsyncSession = Depends(get_db)
):
    """Other published biographies from the same category"""
    biography = await get_biography_or_404(db, slug)
    items = []
    if biography.category_id:
        result = await db.execute(
            select(Biography)
            .where(
                Biography.category_id == biography.category_id,
                Biography.id != biography.id,
                Biography.published.is_(True),
            )
            .order_by(Biography.views.desc(), Biography.id)
            .limit(limit)
        )
        items = [BIOGRAPHY_SCHEMA.serialize(b) for b in result.scalars().all()]
    return success_envelope({"biographies": items}, results=len(items))


@router.get("/{slug}/comments")
async def list_comments(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    query, count = build_query(request.query_params, COMMENT_SCHEMA)
    biography = await get_biography_or_404(db, slug, principal)
    page = await paginate(
        db, BiographyComment, COMMENT_SCHEMA, query, count,
        base_conditions=[BiographyComment.biography_id == biography.id],
    )
    return list_envelope("comments", page.serialize(COMMENT_SCHEMA), page)


# ==================== Admin writes ====================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_biography(
    payload: BiographyCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    data = payload.changes()
    await _ensure_category(db, data.get("category_id"))

    for list_field in ("nationality", "occupation", "known_for", "tags"):
        if data.get(list_field) is None:
            data[list_field] = []
    for document_field in DOCUMENT_FIELDS:
        data[document_field] = dump_documents(getattr(payload, document_field))
    if data.get("published") is None:
        data["published"] = True
    if data.get("featured") is None:
        data["featured"] = False

    biography = Biography(
        **data,
        slug=await unique_slug(db, Biography, payload.name),
        published_at=utcnow() if data["published"] else None,
        created_by=principal.id,
    )
    db.add(biography)
    await db.commit()
    await db.refresh(biography)

    logger.info(f"[Biography] Created '{biography.slug}' by {principal.id}")
    await record_activity(
        db, principal.id, "biography_created", "biography", biography.id,
        {"name": biography.name, "slug": biography.slug}, request,
    )
    return success_response(_biography_body(biography), status_code=status.HTTP_201_CREATED)


@router.patch("/{slug}")
async def update_biography(
    slug: str,
    payload: BiographyUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    biography = await get_biography_or_404(db, slug, principal, include_unpublished=True)
    changes = payload.changes()
    if "category_id" in changes:
        await _ensure_category(db, changes["category_id"])

    for list_field in ("nationality", "occupation", "known_for", "tags"):
        if list_field in changes and changes[list_field] is None:
            changes[list_field] = []
    for document_field in DOCUMENT_FIELDS:
        if document_field in changes:
            changes[document_field] = dump_documents(getattr(payload, document_field))
    for flag in ("featured", "published"):
        if flag in changes and changes[flag] is None:
            del changes[flag]

    if changes.get("name") and changes["name"] != biography.name:
        biography.slug = await unique_slug(db, Biography, changes["name"], exclude_id=biography.id)
    if changes.get("published") and not biography.published:
        biography.published_at = utcnow()

    for field, value in changes.items():
        setattr(biography, field, value)

    await db.commit()
    await db.refresh(biography)

    await record_activity(
        db, principal.id, "biography_updated", "biography", biography.id,
        {"slug": biography.slug, "fields": sorted(changes)}, request,
    )
    return success_envelope(_biography_body(biography))


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_biography(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    biography = await get_biography_or_404(db, slug, principal, include_unpublished=True)
    biography_id, name = biography.id, biography.name
    await db.delete(biography)
    await db.commit()

    logger.info(f"[Biography] Deleted '{slug}' by {principal.id}")
    await record_activity(
        db, principal.id, "biography_deleted", "biography", biography_id,
        {"name": name, "slug": slug}, request,
    )
    return no_content()


@router.patch("/{slug}/toggle-featured")
async def toggle_featured(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    biography = await get_biography_or_404(db, slug, principal, include_unpublished=True)
    biography.featured = not biography.featured
    await db.commit()
    await db.refresh(biography)

    await record_activity(
        db, principal.id, "biography_featured_toggled", "biography", biography.id,
        {"featured": biography.featured}, request,
    )
    return success_envelope(_biography_body(biography))


@router.patch("/{slug}/biography-of-the-day")
async def set_biography_of_the_day(
    slug: str,
    request: Request,
    payload: Optional[BiographyOfTheDayUpdate] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    """Make this the pick for a day (today by default), replacing that day's pick"""
    biography = await get_biography_or_404(db, slug, principal, include_unpublished=True)
    target = (payload.date if payload and payload.date else utcnow())
    day_start = target.replace(hour=0, minute=0, second=0, microsecond=0)

    await db.execute(
        update(Biography)
        .where(
            Biography.biography_of_the_day_date >= day_start,
            Biography.biography_of_the_day_date < day_start + timedelta(days=1),
        )
        .values(biography_of_the_day=False, biography_of_the_day_date=None)
    )
    biography.biography_of_the_day = True
    biography.biography_of_the_day_date = day_start
    await db.commit()
    await db.refresh(biography)

    await record_activity(
        db, principal.id, "biography_of_the_day_set", "biography", biography.id,
        {"date": day_start.date().isoformat()}, request,
    )
    return success_envelope(_biography_body(biography))


# ==================== Interactions ====================

async def _react(db: AsyncSession, biography: Biography, principal: Principal, kind: ReactionKind) -> bool:
    """Record a like/bookmark once per user; returns True when newly added"""
    existing = await db.scalar(
        select(BiographyReaction).where(
            BiographyReaction.biography_id == biography.id,
            BiographyReaction.user_id == principal.id,
            BiographyReaction.kind == kind,
        )
    )
    if existing is not None:
        return False

    db.add(BiographyReaction(biography_id=biography.id, user_id=principal.id, kind=kind))
    counter = Biography.likes if kind == ReactionKind.LIKE else Biography.bookmarks
    await db.execute(
        update(Biography)
        .where(Biography.id == biography.id)
        .values({counter: counter + 1})
    )
    try:
        await db.commit()
    except IntegrityError:
        # concurrent duplicate hit the unique constraint
        await db.rollback()
        return False
    return True


@router.patch("/{slug}/like")
async def like_biography(
    slug: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("biographies.interact"))
):
    biography = await get_biography_or_404(db, slug, principal)
    added = await _react(db, biography, principal, ReactionKind.LIKE)
    await db.refresh(biography)
    return success_envelope(_biography_body(biography), liked=True, changed=added)


@router.patch("/{slug}/bookmark")
async def bookmark_biography(
    slug: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("biographies.interact"))
):
    biography = await get_biography_or_404(db, slug, principal)
    added = await _react(db, biography, principal, ReactionKind.BOOKMARK)
    await db.refresh(biography)
    return success_envelope(_biography_body(biography), bookmarked=True, changed=added)


@router.post("/{slug}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    slug: str,
    payload: CommentCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("biographies.interact"))
):
    biography = await get_biography_or_404(db, slug, principal)
    comment = BiographyComment(biography_id=biography.id, user_id=principal.id, content=payload.content)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return success_response(
        {"comment": COMMENT_SCHEMA.serialize(comment)},
        status_code=status.HTTP_201_CREATED,
    )
