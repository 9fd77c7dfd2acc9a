from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey

from biocms.core.database import Base
from biocms.core.types import GUID, generate_uuid, utcnow


class Category(Base):
    """Biography category, optionally nested under a parent"""
    __tablename__ = "categories"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(120), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(100), nullable=True)
    color = Column(String(20), nullable=True)

    parent_id = Column(GUID, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    featured = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Category {self.slug}>"
