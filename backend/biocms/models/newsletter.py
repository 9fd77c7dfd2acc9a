from sqlalchemy import Column, String, DateTime, Enum as SQLEnum
import enum

from biocms.core.database import Base
from biocms.core.types import GUID, generate_uuid, utcnow, enum_values


class SubscriberStatus(str, enum.Enum):
    PENDING = "pending"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    BOUNCED = "bounced"


class DigestFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Subscriber(Base):
    """Newsletter subscriber with double opt-in"""
    __tablename__ = "newsletter_subscribers"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=True)
    status = Column(SQLEnum(SubscriberStatus, values_callable=enum_values), default=SubscriberStatus.PENDING, nullable=False)
    frequency = Column(SQLEnum(DigestFrequency, values_callable=enum_values), default=DigestFrequency.WEEKLY, nullable=False)

    # sha256 of the emailed verification token
    verification_token_hash = Column(String(64), nullable=True, index=True)
    verification_expires = Column(DateTime, nullable=True)

    subscribed_at = Column(DateTime, nullable=True)
    unsubscribed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Subscriber {self.email} ({self.status})>"
