"""Biography queries shared by the biography and home endpoints"""
import random
from datetime import timedelta
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.types import utcnow
from biocms.models import Biography


async def pick_biography_of_the_day(db: AsyncSession) -> Optional[Biography]:
    """
    Today's pick, else the most recent pick, else a random featured
    biography, else any random biography.
    """
    published = Biography.published.is_(True)
    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

    biography = await db.scalar(
        select(Biography).where(
            published,
            Biography.biography_of_the_day.is_(True),
            Biography.biography_of_the_day_date >= today,
            Biography.biography_of_the_day_date < today + timedelta(days=1),
        ).limit(1)
    )
    if biography is not None:
        return biography

    biography = await db.scalar(
        select(Biography)
        .where(published, Biography.biography_of_the_day.is_(True))
        .order_by(Biography.biography_of_the_day_date.desc())
        .limit(1)
    )
    if biography is not None:
        return biography

    for condition in (and_(published, Biography.featured.is_(True)), published):
        total = await db.scalar(select(func.count(Biography.id)).where(condition)) or 0
        if total:
            return await db.scalar(
                select(Biography).where(condition)
                .order_by(Biography.id)
                .offset(random.randrange(total))
                .limit(1)
            )
    return None
