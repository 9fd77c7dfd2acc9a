from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.database import get_db
from biocms.core.responses import list_envelope
from biocms.models import Activity
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import require_policy
from biocms.query import build_query
from biocms.query.resources import ACTIVITY_SCHEMA
from biocms.utils.pagination import paginate

router = APIRouter()


@router.get("")
async def list_activities(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("activity.read"))
):
    """
    Audit trail, newest first unless another sort is given.

    Example: /admin/activities?targetType=biography&userId=<id>&sort=-createdAt
    """
    query, count = build_query(request.query_params, ACTIVITY_SCHEMA)
    page = await paginate(db, Activity, ACTIVITY_SCHEMA, query, count)
    return list_envelope("activities", page.serialize(ACTIVITY_SCHEMA), page)
