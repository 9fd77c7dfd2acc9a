import enum
from datetime import date as date_type, datetime
from pydantic import Field, field_validator, model_validator
from typing import List, Optional

from biocms.schemas.common import CamelModel, as_string_list, naive_utc


class Importance(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SourceType(str, enum.Enum):
    BOOK = "book"
    ARTICLE = "article"
    WEBSITE = "website"
    DOCUMENT = "document"
    OTHER = "other"


class TimelineEvent(CamelModel):
    date: Optional[date_type] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    location: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    importance: Importance = Importance.MEDIUM


class Quote(CamelModel):
    text: str = Field(..., min_length=1, max_length=2000)
    context: Optional[str] = None
    year: Optional[str] = Field(None, max_length=20)
    source: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)


class Education(CamelModel):
    institution: str = Field(..., min_length=1, max_length=255)
    degree: Optional[str] = Field(None, max_length=255)
    year: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    start_date: Optional[date_type] = None
    end_date: Optional[date_type] = None
    honors: List[str] = []

    @field_validator("honors", mode="before")
    @classmethod
    def coerce_honors(cls, value):
        return as_string_list(value)


class Award(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    year: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    institution: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    significance: Optional[str] = None


class Source(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    url: Optional[str] = Field(None, max_length=500)
    author: Optional[str] = Field(None, max_length=200)
    published_date: Optional[date_type] = None
    publisher: Optional[str] = Field(None, max_length=200)
    type: Optional[SourceType] = None


DOCUMENT_FIELDS = ("timeline", "quotes", "education", "awards", "sources")


def dump_documents(items: Optional[List[CamelModel]]) -> List[dict]:
    """JSON-ready camelCase dicts for a DocumentList column"""
    return [item.model_dump(mode="json", by_alias=True) for item in items or []]


class BiographyBase(CamelModel):
    title: Optional[str] = Field(None, max_length=255)
    short_description: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    birth_date: Optional[datetime] = None
    death_date: Optional[datetime] = None
    birth_place: Optional[str] = Field(None, max_length=200)
    nationality: Optional[List[str]] = None
    occupation: Optional[List[str]] = None
    known_for: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    timeline: Optional[List[TimelineEvent]] = None
    quotes: Optional[List[Quote]] = None
    education: Optional[List[Education]] = None
    awards: Optional[List[Award]] = None
    sources: Optional[List[Source]] = None
    image: Optional[str] = Field(None, max_length=500)
    profile_image: Optional[str] = Field(None, max_length=500)
    category_id: Optional[str] = None
    featured: Optional[bool] = None
    published: Optional[bool] = None

    @field_validator("nationality", "occupation", "known_for", "tags", mode="before")
    @classmethod
    def coerce_list(cls, value):
        return None if value is None else as_string_list(value)

    @field_validator("birth_date", "death_date")
    @classmethod
    def to_naive_utc(cls, value):
        return naive_utc(value)

    @model_validator(mode='after')
    def death_after_birth(self):
        if self.birth_date and self.death_date and self.death_date < self.birth_date:
            raise ValueError("Death date cannot be before birth date")
        return self


class BiographyCreate(BiographyBase):
    name: str = Field(..., min_length=1, max_length=200)


class BiographyUpdate(BiographyBase):
    name: Optional[str] = Field(None, min_length=1, max_length=200)


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=1, max_length=2000)


class BiographyOfTheDayUpdate(CamelModel):
    date: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def to_naive_utc(cls, value):
        return naive_utc(value)
