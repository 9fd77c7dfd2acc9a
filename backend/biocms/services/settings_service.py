"""
Site settings stored as dotted key/value rows.

Keys that have never been written fall back to ``DEFAULT_SETTINGS``. Only the
``general`` and ``site`` categories are exposed to anonymous callers.
"""
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.exceptions import ValidationError
from biocms.models.site_setting import SiteSetting

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "general.maintenance": {"value": False, "description": "Show the maintenance page"},
    "general.maintenance_message": {"value": "", "description": "Message shown during maintenance"},
    "general.registration_enabled": {"value": True, "description": "Allow new accounts to register"},
    "site.site_name": {"value": "Biography Website", "description": "Site title"},
    "site.site_description": {"value": "", "description": "Meta description"},
    "site.logo": {"value": "", "description": "Logo URL"},
    "site.favicon": {"value": "", "description": "Favicon URL"},
    "site.theme": {"value": "light", "description": "'light' or 'dark'"},
    "site.language": {"value": "en", "description": "Default language"},
    "site.timezone": {"value": "UTC", "description": "Display timezone"},
    "email.from_name": {"value": "", "description": "Sender name for outgoing email"},
    "email.from_email": {"value": "", "description": "Sender address for outgoing email"},
}

PUBLIC_CATEGORIES = frozenset({"general", "site"})


def _category(key: str) -> str:
    return key.split(".", 1)[0]


def _nest(flat: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    nested: Dict[str, Dict[str, Any]] = {}
    for key, value in sorted(flat.items()):
        category, name = key.split(".", 1)
        nested.setdefault(category, {})[name] = value
    return nested


async def get_settings_map(db: AsyncSession, public_only: bool = False) -> Dict[str, Dict[str, Any]]:
    """All settings grouped by category, stored values over defaults"""
    flat = {key: meta["value"] for key, meta in DEFAULT_SETTINGS.items()}
    result = await db.execute(select(SiteSetting))
    for row in result.scalars().all():
        flat[row.key] = row.value

    if public_only:
        flat = {key: value for key, value in flat.items() if _category(key) in PUBLIC_CATEGORIES}
    return _nest(flat)


async def get_setting(db: AsyncSession, key: str, default: Any = None) -> Any:
    row = await db.scalar(select(SiteSetting).where(SiteSetting.key == key))
    if row is not None:
        return row.value
    if key in DEFAULT_SETTINGS:
        return DEFAULT_SETTINGS[key]["value"]
    return default


async def update_settings(
    db: AsyncSession,
    values: Dict[str, Any],
    updated_by: Optional[str] = None
) -> Dict[str, Any]:
    """Upsert known keys; unknown keys are rejected before anything is written"""
    unknown = sorted(key for key in values if key not in DEFAULT_SETTINGS)
    if unknown:
        raise ValidationError(f"Unknown setting(s): {', '.join(unknown)}", field="settings")

    existing = {
        row.key: row
        for row in (await db.execute(
            select(SiteSetting).where(SiteSetting.key.in_(list(values)))
        )).scalars().all()
    }

    for key, value in values.items():
        row = existing.get(key)
        if row is None:
            row = SiteSetting(
                key=key,
                category=_category(key),
                description=DEFAULT_SETTINGS[key]["description"],
            )
            db.add(row)
        row.value = value
        row.updated_by = updated_by

    await db.commit()
    return values
