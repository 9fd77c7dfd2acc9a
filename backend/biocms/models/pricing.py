from sqlalchemy import Column, String, Boolean, DateTime, Integer, Float, Text, Enum as SQLEnum
import enum

from biocms.core.database import Base
from biocms.core.types import GUID, StringList, generate_uuid, utcnow, enum_values


class Currency(str, enum.Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"


class BillingCycle(str, enum.Enum):
    ONCE = "once"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PlanStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class PricingPlan(Base):
    """Subscription plan shown on the pricing page"""
    __tablename__ = "pricing_plans"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    currency = Column(SQLEnum(Currency, values_callable=enum_values), default=Currency.USD, nullable=False)
    billing_cycle = Column(SQLEnum(BillingCycle, values_callable=enum_values), default=BillingCycle.MONTHLY, nullable=False)
    features = Column(StringList, default=list, nullable=False)
    is_popular = Column(Boolean, default=False, nullable=False)
    status = Column(SQLEnum(PlanStatus, values_callable=enum_values), default=PlanStatus.ACTIVE, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<PricingPlan {self.name}>"
