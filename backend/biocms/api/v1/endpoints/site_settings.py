from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.database import get_db
from biocms.core.responses import success_envelope
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import require_policy
from biocms.schemas.settings import SettingsUpdate
from biocms.services.activity_service import record_activity
from biocms.services.settings_service import get_settings_map, update_settings

router = APIRouter()


@router.get("")
async def get_public_settings(db: AsyncSession = Depends(get_db)):
    """Public subset (general and site categories)"""
    return success_envelope({"settings": await get_settings_map(db, public_only=True)})


@router.get("/all")
async def get_all_settings(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("settings.manage"))
):
    return success_envelope({"settings": await get_settings_map(db)})


@router.patch("")
async def patch_settings(
    payload: SettingsUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("settings.manage"))
):
    changed = await update_settings(db, payload.settings, updated_by=principal.id)
    await record_activity(
        db, principal.id, "settings_updated", "setting", None,
        {"keys": sorted(changed)}, request,
    )
    return success_envelope({"settings": await get_settings_map(db)})
