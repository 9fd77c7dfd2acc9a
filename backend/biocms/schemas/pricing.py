from pydantic import Field, field_validator
from typing import List, Optional

from biocms.models.pricing import BillingCycle, Currency, PlanStatus
from biocms.schemas.common import CamelModel, as_string_list


class PricingPlanCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    currency: Currency = Currency.USD
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    features: List[str] = []
    is_popular: bool = False
    status: PlanStatus = PlanStatus.ACTIVE
    display_order: int = Field(0, alias="order")

    @field_validator("features", mode="before")
    @classmethod
    def coerce_features(cls, value):
        return as_string_list(value)


class PricingPlanUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    billing_cycle: Optional[BillingCycle] = None
    features: Optional[List[str]] = None
    is_popular: Optional[bool] = None
    status: Optional[PlanStatus] = None
    display_order: Optional[int] = Field(None, alias="order")

    @field_validator("features", mode="before")
    @classmethod
    def coerce_features(cls, value):
        return None if value is None else as_string_list(value)
