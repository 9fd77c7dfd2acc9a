from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON

from biocms.core.database import Base
from biocms.core.types import GUID, generate_uuid, utcnow


class SiteSetting(Base):
    """Site settings for admin configuration"""
    __tablename__ = "site_settings"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # Dotted key, e.g. 'general.maintenance_mode'
    key = Column(String(100), unique=True, nullable=False, index=True)

    # Setting value (stored as JSON for flexibility)
    value = Column(JSON, nullable=True)

    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)  # 'general', 'site', 'email'

    updated_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<SiteSetting {self.key}>"
