from pydantic import Field
from typing import Optional

from biocms.models.faq import FAQCategory
from biocms.schemas.common import CamelModel


class FAQCreate(CamelModel):
    question: str = Field(..., min_length=1, max_length=500)
    answer: str = Field(..., min_length=1)
    category: FAQCategory = FAQCategory.GENERAL
    active: bool = True
    display_order: int = Field(0, alias="order")


class FAQUpdate(CamelModel):
    question: Optional[str] = Field(None, min_length=1, max_length=500)
    answer: Optional[str] = Field(None, min_length=1)
    category: Optional[FAQCategory] = None
    active: Optional[bool] = None
    display_order: Optional[int] = Field(None, alias="order")
