"""Audit trail writer for admin and account actions"""
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.logging_config import logger
from biocms.models.activity import Activity


async def record_activity(
    db: AsyncSession,
    user_id: Optional[str],
    action: str,
    target_type: str,
    target_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None
) -> Optional[Activity]:
    """
    Log an action to the activity trail.

    Call after the primary change is committed. A failure here is logged
    and returns None; it never fails the request that triggered it.
    """
    activity = Activity(
        user_id=str(user_id) if user_id else None,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id else None,
        details=details,
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None,
    )
    try:
        db.add(activity)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.log_error_with_context(e, context=f"record_activity:{action}")
        return None
    return activity
