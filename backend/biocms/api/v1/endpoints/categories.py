from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional

from biocms.core.database import get_db
from biocms.core.exceptions import ConflictError, NotFoundError, ValidationError
from biocms.core.responses import list_envelope, no_content, success_envelope, success_response
from biocms.models import Biography, Category
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import get_optional_principal, require_policy
from biocms.query import build_query
from biocms.query.resources import CATEGORY_SCHEMA
from biocms.schemas.category import CategoryCreate, CategoryReorder, CategoryUpdate
from biocms.services.activity_service import record_activity
from biocms.services.slug_service import unique_slug
from biocms.utils.pagination import paginate

router = APIRouter()


def _visibility(principal: Optional[Principal]):
    if principal is not None and principal.is_admin:
        return []
    return [Category.is_active.is_(True)]


async def get_category_or_404(db: AsyncSession, id_or_slug: str) -> Category:
    """Categories are addressable by id or by slug"""
    category = await db.scalar(
        select(Category).where(or_(Category.id == id_or_slug, Category.slug == id_or_slug))
    )
    if category is None:
        raise NotFoundError("Category", id_or_slug)
    return category


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: Optional[str] = None) -> None:
    stmt = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    if await db.scalar(stmt) is not None:
        raise ConflictError(f"A category named '{name}' already exists", field="name")


async def _ensure_parent(db: AsyncSession, parent_id: Optional[str], category_id: Optional[str] = None) -> None:
    if not parent_id:
        return
    if parent_id == category_id:
        raise ValidationError("A category cannot be its own parent", field="parentId")
    if await db.get(Category, parent_id) is None:
        raise NotFoundError("Category", parent_id)


@router.get("")
async def list_categories(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    query, count = build_query(request.query_params, CATEGORY_SCHEMA)
    page = await paginate(db, Category, CATEGORY_SCHEMA, query, count, base_conditions=_visibility(principal))
    return list_envelope("categories", page.serialize(CATEGORY_SCHEMA), page)


@router.get("/tree")
async def category_tree(db: AsyncSession = Depends(get_db)):
    """Active categories nested under their parents"""
    result = await db.execute(
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.display_order, Category.name)
    )
    categories = result.scalars().all()

    nodes: Dict[str, dict] = {}
    for category in categories:
        node = CATEGORY_SCHEMA.serialize(category)
        node["children"] = []
        nodes[category.id] = node

    roots: List[dict] = []
    for category in categories:
        node = nodes[category.id]
        parent = nodes.get(category.parent_id) if category.parent_id else None
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)

    return success_envelope({"categories": roots}, results=len(roots))


@router.get("/featured")
async def featured_categories(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Category)
        .where(Category.featured.is_(True), Category.is_active.is_(True))
        .order_by(Category.display_order, Category.name)
        .limit(limit)
    )
    items = [CATEGORY_SCHEMA.serialize(c) for c in result.scalars().all()]
    return success_envelope({"categories": items}, results=len(items))


@router.get("/stats")
async def category_stats(db: AsyncSession = Depends(get_db)):
    """Biography counts and views per category"""
    rows = (await db.execute(
        select(
            Category.id,
            Category.name,
            Category.slug,
            func.count(Biography.id),
            func.coalesce(func.sum(Biography.views), 0),
        )
        .outerjoin(Biography, Biography.category_id == Category.id)
        .group_by(Category.id, Category.name, Category.slug)
        .order_by(Category.name)
    )).all()

    stats = [
        {"id": row[0], "name": row[1], "slug": row[2], "biographyCount": row[3], "totalViews": row[4]}
        for row in rows
    ]
    return success_envelope({"stats": stats}, results=len(stats))


@router.patch("/reorder")
async def reorder_categories(
    payload: CategoryReorder,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    ids = [item.id for item in payload.orders]
    result = await db.execute(select(Category).where(Category.id.in_(ids)))
    categories = {category.id: category for category in result.scalars().all()}

    missing = [category_id for category_id in ids if category_id not in categories]
    if missing:
        raise NotFoundError("Category", missing[0])

    for item in payload.orders:
        categories[item.id].display_order = item.display_order
    await db.commit()

    await record_activity(db, principal.id, "categories_reordered", "category", None, {"ids": ids}, request)
    items = sorted(categories.values(), key=lambda c: (c.display_order, c.name))
    return success_envelope({"categories": [CATEGORY_SCHEMA.serialize(c) for c in items]})


@router.get("/{id_or_slug}")
async def get_category(
    id_or_slug: str,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    category = await get_category_or_404(db, id_or_slug)
    if not category.is_active and not (principal and principal.is_admin):
        raise NotFoundError("Category", id_or_slug)

    children = (await db.execute(
        select(Category)
        .where(Category.parent_id == category.id, Category.is_active.is_(True))
        .order_by(Category.display_order, Category.name)
    )).scalars().all()
    biography_count = await db.scalar(
        select(func.count(Biography.id)).where(
            Biography.category_id == category.id,
            Biography.published.is_(True),
        )
    )

    body = CATEGORY_SCHEMA.serialize(category)
    body["children"] = [CATEGORY_SCHEMA.serialize(c) for c in children]
    body["biographyCount"] = biography_count or 0
    return success_envelope({"category": body})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    await _ensure_unique_name(db, payload.name)
    await _ensure_parent(db, payload.parent_id)

    category = Category(
        **payload.model_dump(),
        slug=await unique_slug(db, Category, payload.name),
        created_by=principal.id,
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)

    await record_activity(
        db, principal.id, "category_created", "category", category.id,
        {"name": category.name}, request,
    )
    return success_response({"category": CATEGORY_SCHEMA.serialize(category)}, status_code=status.HTTP_201_CREATED)


@router.patch("/{id_or_slug}")
async def update_category(
    id_or_slug: str,
    payload: CategoryUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    category = await get_category_or_404(db, id_or_slug)
    changes = {key: value for key, value in payload.changes().items()
               if value is not None or key in ("description", "icon", "color", "parent_id")}

    if changes.get("name") and changes["name"] != category.name:
        await _ensure_unique_name(db, changes["name"], exclude_id=category.id)
        category.slug = await unique_slug(db, Category, changes["name"], exclude_id=category.id)
    if "parent_id" in changes:
        await _ensure_parent(db, changes["parent_id"], category.id)

    for field, value in changes.items():
        setattr(category, field, value)
    await db.commit()
    await db.refresh(category)

    await record_activity(
        db, principal.id, "category_updated", "category", category.id,
        {"fields": sorted(changes)}, request,
    )
    return success_envelope({"category": CATEGORY_SCHEMA.serialize(category)})


@router.delete("/{id_or_slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    id_or_slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    category = await get_category_or_404(db, id_or_slug)

    if await db.scalar(select(Category.id).where(Category.parent_id == category.id).limit(1)):
        raise ValidationError(
            "Cannot delete category with subcategories. Please delete or move subcategories first."
        )
    if await db.scalar(select(Biography.id).where(Biography.category_id == category.id).limit(1)):
        raise ValidationError(
            "Cannot delete category with biographies. Please move or delete biographies first."
        )

    category_id, name = category.id, category.name
    await db.delete(category)
    await db.commit()

    await record_activity(db, principal.id, "category_deleted", "category", category_id, {"name": name}, request)
    return no_content()


@router.patch("/{id_or_slug}/toggle-featured")
async def toggle_featured(
    id_or_slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    category = await get_category_or_404(db, id_or_slug)
    category.featured = not category.featured
    await db.commit()
    await db.refresh(category)

    await record_activity(
        db, principal.id, "category_featured_toggled", "category", category.id,
        {"featured": category.featured}, request,
    )
    return success_envelope({"category": CATEGORY_SCHEMA.serialize(category)})
