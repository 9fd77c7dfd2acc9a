from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from biocms.core.database import get_db
from biocms.core.exceptions import NotFoundError
from biocms.core.responses import list_envelope, no_content, success_envelope, success_response
from biocms.models import FAQ
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import get_optional_principal, require_policy
from biocms.query import build_query
from biocms.query.resources import FAQ_SCHEMA
from biocms.schemas.faq import FAQCreate, FAQUpdate
from biocms.services.activity_service import record_activity
from biocms.utils.pagination import paginate

router = APIRouter()


def _visibility(principal: Optional[Principal]):
    if principal is not None and principal.is_admin:
        return []
    return [FAQ.active.is_(True)]


async def get_faq_or_404(db: AsyncSession, faq_id: str, principal: Optional[Principal] = None) -> FAQ:
    faq = await db.scalar(select(FAQ).where(FAQ.id == faq_id, *_visibility(principal)))
    if faq is None:
        raise NotFoundError("FAQ", faq_id)
    return faq


@router.get("")
async def list_faqs(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    query, count = build_query(request.query_params, FAQ_SCHEMA)
    page = await paginate(db, FAQ, FAQ_SCHEMA, query, count, base_conditions=_visibility(principal))
    return list_envelope("faqs", page.serialize(FAQ_SCHEMA), page)


@router.get("/{faq_id}")
async def get_faq(
    faq_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    faq = await get_faq_or_404(db, faq_id, principal)
    return success_envelope({"faq": FAQ_SCHEMA.serialize(faq)})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_faq(
    payload: FAQCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    faq = FAQ(**payload.model_dump())
    db.add(faq)
    await db.commit()
    await db.refresh(faq)

    await record_activity(db, principal.id, "faq_created", "faq", faq.id, None, request)
    return success_response({"faq": FAQ_SCHEMA.serialize(faq)}, status_code=status.HTTP_201_CREATED)


@router.patch("/{faq_id}")
async def update_faq(
    faq_id: str,
    payload: FAQUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    faq = await get_faq_or_404(db, faq_id, principal)
    changes = {key: value for key, value in payload.changes().items() if value is not None}
    for field, value in changes.items():
        setattr(faq, field, value)
    await db.commit()
    await db.refresh(faq)

    await record_activity(db, principal.id, "faq_updated", "faq", faq.id, {"fields": sorted(changes)}, request)
    return success_envelope({"faq": FAQ_SCHEMA.serialize(faq)})


@router.delete("/{faq_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_faq(
    faq_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    faq = await get_faq_or_404(db, faq_id, principal)
    await db.delete(faq)
    await db.commit()

    await record_activity(db, principal.id, "faq_deleted", "faq", faq_id, None, request)
    return no_content()
