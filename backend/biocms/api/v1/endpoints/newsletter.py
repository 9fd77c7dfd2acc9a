"""
Newsletter subscription endpoints (double opt-in).

Subscribing stores only the SHA-256 hash of the verification token; the raw
token travels in the verification email link.
"""
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.database import get_db
from biocms.core.exceptions import NotFoundError, ValidationError
from biocms.core.logging_config import logger
from biocms.core.responses import list_envelope, no_content, success_envelope
from biocms.core.security import generate_one_time_token, hash_token
from biocms.core.types import utcnow
from biocms.models import Subscriber, SubscriberStatus
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import require_policy
from biocms.query import build_query
from biocms.query.resources import SUBSCRIBER_SCHEMA
from biocms.schemas.newsletter import SubscribeRequest, UnsubscribeRequest
from biocms.services.activity_service import record_activity
from biocms.services.email_service import email_service
from biocms.utils.pagination import paginate

router = APIRouter()

VERIFICATION_TTL = timedelta(hours=24)


@router.post("/subscribe")
async def subscribe(
    payload: SubscribeRequest,
    db: AsyncSession = Depends(get_db)
):
    email = payload.email.lower()
    subscriber = await db.scalar(select(Subscriber).where(Subscriber.email == email))

    if subscriber is not None and subscriber.status == SubscriberStatus.SUBSCRIBED:
        raise ValidationError("Email already subscribed", field="email")

    if subscriber is None:
        subscriber = Subscriber(email=email)
        db.add(subscriber)

    raw_token, token_hash = generate_one_time_token()
    subscriber.name = payload.name or subscriber.name
    subscriber.frequency = payload.frequency
    subscriber.status = SubscriberStatus.PENDING
    subscriber.verification_token_hash = token_hash
    subscriber.verification_expires = utcnow() + VERIFICATION_TTL
    subscriber.unsubscribed_at = None
    await db.commit()

    logger.info(f"[Newsletter] Verification requested for {email}")
    email_service.dispatch(email_service.send_newsletter_verification_email(email, subscriber.name, raw_token))
    return success_envelope({"email": email}, message="Verification email sent")


@router.get("/verify/{token}")
async def verify_subscription(token: str, db: AsyncSession = Depends(get_db)):
    subscriber = await db.scalar(
        select(Subscriber).where(
            Subscriber.verification_token_hash == hash_token(token),
            Subscriber.verification_expires > utcnow(),
        )
    )
    if subscriber is None:
        raise ValidationError("Invalid or expired verification token", field="token")

    subscriber.status = SubscriberStatus.SUBSCRIBED
    subscriber.subscribed_at = utcnow()
    subscriber.verification_token_hash = None
    subscriber.verification_expires = None
    await db.commit()

    logger.info(f"[Newsletter] Subscription confirmed for {subscriber.email}")
    return success_envelope({"email": subscriber.email}, message="Email verified successfully")


@router.post("/unsubscribe")
async def unsubscribe(payload: UnsubscribeRequest, db: AsyncSession = Depends(get_db)):
    email = payload.email.lower()
    subscriber = await db.scalar(select(Subscriber).where(Subscriber.email == email))
    if subscriber is None:
        raise NotFoundError("Subscriber", email)

    if subscriber.status != SubscriberStatus.UNSUBSCRIBED:
        subscriber.status = SubscriberStatus.UNSUBSCRIBED
        subscriber.unsubscribed_at = utcnow()
        subscriber.verification_token_hash = None
        subscriber.verification_expires = None
        await db.commit()
        logger.info(f"[Newsletter] {email} unsubscribed")

    return success_envelope({"email": email}, message="Successfully unsubscribed")


@router.get("/subscribers")
async def list_subscribers(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("newsletter.manage"))
):
    query, count = build_query(request.query_params, SUBSCRIBER_SCHEMA)
    page = await paginate(db, Subscriber, SUBSCRIBER_SCHEMA, query, count)
    return list_envelope("subscribers", page.serialize(SUBSCRIBER_SCHEMA), page)


@router.delete("/subscribers/{subscriber_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscriber(
    subscriber_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("newsletter.manage"))
):
    subscriber = await db.get(Subscriber, subscriber_id)
    if subscriber is None:
        raise NotFoundError("Subscriber", subscriber_id)
    email = subscriber.email
    await db.delete(subscriber)
    await db.commit()

    await record_activity(db, principal.id, "subscriber_deleted", "subscriber", subscriber_id, {"email": email}, request)
    return no_content()
