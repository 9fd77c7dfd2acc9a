from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Text, ForeignKey, UniqueConstraint, Enum as SQLEnum
)
import enum

from biocms.core.database import Base
from biocms.core.types import DocumentList, GUID, StringList, generate_uuid, utcnow, enum_values


class ReactionKind(str, enum.Enum):
    LIKE = "like"
    BOOKMARK = "bookmark"


class Biography(Base):
    """Biographical profile"""
    __tablename__ = "biographies"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(220), unique=True, index=True, nullable=False)
    title = Column(String(255), nullable=True)
    short_description = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)

    # Life details
    birth_date = Column(DateTime, nullable=True)
    death_date = Column(DateTime, nullable=True)
    birth_place = Column(String(200), nullable=True)
    nationality = Column(StringList, default=list, nullable=False)
    occupation = Column(StringList, default=list, nullable=False)
    known_for = Column(StringList, default=list, nullable=False)
    tags = Column(StringList, default=list, nullable=False)

    # Structured life story, each a list of JSON objects
    timeline = Column(DocumentList, default=list, nullable=False)
    quotes = Column(DocumentList, default=list, nullable=False)
    education = Column(DocumentList, default=list, nullable=False)
    awards = Column(DocumentList, default=list, nullable=False)
    sources = Column(DocumentList, default=list, nullable=False)

    # Media
    image = Column(String(500), nullable=True)
    profile_image = Column(String(500), nullable=True)

    category_id = Column(GUID, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    # Publishing
    featured = Column(Boolean, default=False, nullable=False)
    published = Column(Boolean, default=True, nullable=False)
    published_at = Column(DateTime, nullable=True)
    biography_of_the_day = Column(Boolean, default=False, nullable=False)
    biography_of_the_day_date = Column(DateTime, nullable=True)

    # Engagement counters
    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    bookmarks = Column(Integer, default=0, nullable=False)

    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Biography {self.slug}>"


class BiographyReaction(Base):
    """A user's like or bookmark; at most one of each kind per biography"""
    __tablename__ = "biography_reactions"
    __table_args__ = (
        UniqueConstraint("biography_id", "user_id", "kind", name="uq_biography_reaction"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    biography_id = Column(GUID, ForeignKey("biographies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(SQLEnum(ReactionKind, values_callable=enum_values), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class BiographyComment(Base):
    """Reader comment on a biography"""
    __tablename__ = "biography_comments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    biography_id = Column(GUID, ForeignKey("biographies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<BiographyComment {self.id} on {self.biography_id}>"
