from pydantic import Field
from typing import List, Optional

from biocms.schemas.common import CamelModel


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=20)
    parent_id: Optional[str] = None
    featured: bool = False
    display_order: int = Field(0, alias="order")
    is_active: bool = True


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=20)
    parent_id: Optional[str] = None
    featured: Optional[bool] = None
    display_order: Optional[int] = Field(None, alias="order")
    is_active: Optional[bool] = None


class CategoryOrder(CamelModel):
    id: str
    display_order: int = Field(..., alias="order")


class CategoryReorder(CamelModel):
    orders: List[CategoryOrder] = Field(..., min_length=1)
