from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, Enum as SQLEnum
import enum

from biocms.core.database import Base
from biocms.core.types import GUID, generate_uuid, utcnow, enum_values


class FAQCategory(str, enum.Enum):
    GENERAL = "general"
    ACCOUNT = "account"
    BILLING = "billing"
    TECHNICAL = "technical"
    CONTENT = "content"
    OTHER = "other"


class FAQ(Base):
    """Frequently asked question"""
    __tablename__ = "faqs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    question = Column(String(500), nullable=False)
    answer = Column(Text, nullable=False)
    category = Column(SQLEnum(FAQCategory, values_callable=enum_values), default=FAQCategory.GENERAL, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<FAQ {self.question[:30]}>"
