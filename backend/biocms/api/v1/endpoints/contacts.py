from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from biocms.core.database import get_db
from biocms.core.exceptions import NotFoundError
from biocms.core.logging_config import logger
from biocms.core.responses import list_envelope, success_envelope, success_response
from biocms.core.types import utcnow
from biocms.models import Contact, ContactStatus
from biocms.modules.auth.authenticator import Principal
from biocms.modules.auth.dependencies import require_policy
from biocms.query import build_query
from biocms.query.resources import CONTACT_SCHEMA
from biocms.schemas.contact import ContactCreate, ContactStatusUpdate
from biocms.services.activity_service import record_activity
from biocms.services.contact_service import classify_priority
from biocms.services.email_service import email_service
from biocms.utils.pagination import paginate

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_contact(
    payload: ContactCreate,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Public contact form. Confirmation and admin emails are sent in the background."""
    contact = Contact(
        name=payload.name,
        email=payload.email.lower(),
        subject=payload.subject,
        message=payload.message,
        priority=classify_priority(payload.subject),
        ip_address=request.client.host if request.client else None,
    )
    db.add(contact)
    await db.commit()
    await db.refresh(contact)

    logger.info(f"[Contact] New {contact.priority.value} priority message from {contact.email}")
    email_service.dispatch(email_service.send_contact_confirmation(contact.email, contact.name, contact.subject))
    email_service.dispatch(email_service.send_contact_admin_notification(
        contact.name, contact.email, contact.subject, contact.message, contact.priority.value
    ))

    return success_response(
        {"contact": CONTACT_SCHEMA.serialize(contact)},
        status_code=status.HTTP_201_CREATED,
        message="Thank you for your message. We will get back to you soon.",
    )


@router.get("")
async def list_contacts(
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("contacts.manage"))
):
    query, count = build_query(request.query_params, CONTACT_SCHEMA)
    page = await paginate(db, Contact, CONTACT_SCHEMA, query, count)
    return list_envelope("contacts", page.serialize(CONTACT_SCHEMA), page)


@router.get("/{contact_id}")
async def get_contact(
    contact_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("contacts.manage"))
):
    contact = await db.get(Contact, contact_id)
    if contact is None:
        raise NotFoundError("Contact", contact_id)
    return success_envelope({"contact": CONTACT_SCHEMA.serialize(contact)})


@router.patch("/{contact_id}/status")
async def update_contact_status(
    contact_id: str,
    payload: ContactStatusUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_policy("contacts.manage"))
):
    contact = await db.get(Contact, contact_id)
    if contact is None:
        raise NotFoundError("Contact", contact_id)

    previous = contact.status
    contact.status = payload.status
    if payload.status == ContactStatus.REPLIED and contact.replied_at is None:
        contact.replied_at = utcnow()
        contact.replied_by = principal.id
    await db.commit()
    await db.refresh(contact)

    await record_activity(
        db, principal.id, "contact_status_changed", "contact", contact.id,
        {"from": previous.value, "to": contact.status.value}, request,
    )
    return success_envelope({"contact": CONTACT_SCHEMA.serialize(contact)})
