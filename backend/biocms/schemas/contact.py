from pydantic import EmailStr, Field

from biocms.models.contact import ContactStatus
from biocms.schemas.common import CamelModel


class ContactCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)


class ContactStatusUpdate(CamelModel):
    status: ContactStatus
