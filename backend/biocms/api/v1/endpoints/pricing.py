from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from biocms.core.database import get_db
from biocms.core.exceptions import ConflictError, NotFoundError
from biocms.core.responses import list_envelope, no_content, success_envelope, success_response
from biocms.models import PlanStatus, PricingPlan
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import get_optional_principal, require_policy
from biocms.query import build_query
from biocms.query.resources import PRICING_SCHEMA
from biocms.schemas.pricing import PricingPlanCreate, PricingPlanUpdate
from biocms.services.activity_service import record_activity
from biocms.utils.pagination import paginate

router = APIRouter()


def _visibility(principal: Optional[Principal]):
    if principal is not None and principal.is_admin:
        return []
    return [PricingPlan.status == PlanStatus.ACTIVE]


async def get_plan_or_404(db: AsyncSession, plan_id: str, principal: Optional[Principal] = None) -> PricingPlan:
    plan = await db.scalar(select(PricingPlan).where(PricingPlan.id == plan_id, *_visibility(principal)))
    if plan is None:
        raise NotFoundError("Pricing plan", plan_id)
    return plan


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: Optional[str] = None) -> None:
    stmt = select(PricingPlan.id).where(func.lower(PricingPlan.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(PricingPlan.id != exclude_id)
    if await db.scalar(stmt) is not None:
        raise ConflictError(f"A pricing plan named '{name}' already exists", field="name")


@router.get("")
async def list_plans(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """Active plans for the public, every plan for admins"""
    query, count = build_query(request.query_params, PRICING_SCHEMA)
    page = await paginate(db, PricingPlan, PRICING_SCHEMA, query, count, base_conditions=_visibility(principal))
    return list_envelope("plans", page.serialize(PRICING_SCHEMA), page)


@router.get("/{plan_id}")
async def get_plan(
    plan_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    plan = await get_plan_or_404(db, plan_id, principal)
    return success_envelope({"plan": PRICING_SCHEMA.serialize(plan)})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_plan(
    payload: PricingPlanCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    await _ensure_unique_name(db, payload.name)
    plan = PricingPlan(**payload.model_dump())
    db.add(plan)
    await db.commit()
    await db.refresh(plan)

    await record_activity(db, principal.id, "pricing_plan_created", "pricing_plan", plan.id, {"name": plan.name}, request)
    return success_response({"plan": PRICING_SCHEMA.serialize(plan)}, status_code=status.HTTP_201_CREATED)


@router.patch("/{plan_id}")
async def update_plan(
    plan_id: str,
    payload: PricingPlanUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    plan = await get_plan_or_404(db, plan_id, principal)
    changes = {key: value for key, value in payload.changes().items()
               if value is not None or key == "description"}

    if changes.get("name") and changes["name"] != plan.name:
        await _ensure_unique_name(db, changes["name"], exclude_id=plan.id)

    for field, value in changes.items():
        setattr(plan, field, value)
    await db.commit()
    await db.refresh(plan)

    await record_activity(
        db, principal.id, "pricing_plan_updated", "pricing_plan", plan.id,
        {"fields": sorted(changes)}, request,
    )
    return success_envelope({"plan": PRICING_SCHEMA.serialize(plan)})


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("content.manage"))
):
    plan = await get_plan_or_404(db, plan_id, principal)
    name = plan.name
    await db.delete(plan)
    await db.commit()

    await record_activity(db, principal.id, "pricing_plan_deleted", "pricing_plan", plan_id, {"name": name}, request)
    return no_content()
