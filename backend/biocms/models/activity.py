from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON

from biocms.core.database import Base
from biocms.core.types import GUID, generate_uuid, utcnow


class Activity(Base):
    """Audit trail of content and account changes"""
    __tablename__ = "activities"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Action details
    action = Column(String(100), nullable=False)  # e.g., 'biography_created', 'user_role_changed'
    target_type = Column(String(50), nullable=False)  # e.g., 'biography', 'user', 'setting'
    target_id = Column(String(64), nullable=True)

    # Change details
    details = Column(JSON, nullable=True)

    # Request metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Activity {self.action} by {self.user_id}>"
