from pydantic import EmailStr, Field
from typing import Optional

from biocms.models.newsletter import DigestFrequency
from biocms.schemas.common import CamelModel


class SubscribeRequest(CamelModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=100)
    frequency: DigestFrequency = DigestFrequency.WEEKLY


class UnsubscribeRequest(CamelModel):
    email: EmailStr
