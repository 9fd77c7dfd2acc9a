"""Slug generation for biographies and categories"""
import re
import unicodedata
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


def slugify(value: str) -> str:
    """'Marie Curie' -> 'marie-curie'"""
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "item"


async def unique_slug(
    db: AsyncSession,
    model,
    value: str,
    exclude_id: Optional[str] = None
) -> str:
    """
    Slug for ``value`` that no other row of ``model`` uses.

    Taken slugs get a numeric suffix: marie-curie, marie-curie-1, marie-curie-2.
    """
    base = slugify(value)
    stmt = select(model.slug).where(model.slug.like(f"{base}%"))
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    taken = set((await db.execute(stmt)).scalars().all())

    if base not in taken:
        return base
    suffix = 1
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"
