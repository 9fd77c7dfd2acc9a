from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum as SQLEnum
import enum

from biocms.core.database import Base
from biocms.core.types import GUID, generate_uuid, utcnow, enum_values


class ContactStatus(str, enum.Enum):
    PENDING = "pending"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"
    SPAM = "spam"


class ContactPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Contact(Base):
    """Message submitted through the public contact form"""
    __tablename__ = "contacts"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    subject = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    status = Column(SQLEnum(ContactStatus, values_callable=enum_values), default=ContactStatus.PENDING, nullable=False)
    priority = Column(SQLEnum(ContactPriority, values_callable=enum_values), default=ContactPriority.MEDIUM, nullable=False)

    replied_at = Column(DateTime, nullable=True)
    replied_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Request metadata
    ip_address = Column(String(45), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Contact {self.email}: {self.subject}>"
