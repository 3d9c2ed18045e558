"""Data models for posts and referral records."""
from datetime import date, datetime, time, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Union[date, datetime]) -> datetime:
    """Convert a date or datetime to an aware UTC datetime (dates become midnight)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def clean_text(value: Any) -> Optional[str]:
    """Trim a scalar into a string, mapping empty values to None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def normalize_tags(value: Any) -> list[str]:
    """Return trimmed, non-empty tags in first-seen order without duplicates."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    tags: list[str] = []
    for item in value:
        tag = clean_text(item)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class RawPost(BaseModel):
    """A single listing item as returned by the feed."""

    id: str
    title: str = ""
    selftext: str = ""
    url: str = ""
    created_utc: float
    permalink: str = ""

    @field_validator("title", "selftext", "url", "permalink", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def post_date(self) -> datetime:
        return datetime.fromtimestamp(self.created_utc, tz=timezone.utc)


class ListingPage(BaseModel):
    """One page of the feed plus its continuation token."""

    posts: list[RawPost] = Field(default_factory=list)
    next_token: Optional[str] = None


class ExtractedRecord(BaseModel):
    """Structured record extracted from one post by the language model."""

    brand: str = ""
    code: Optional[str] = None
    link: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    expiration_date: Optional[date] = None
    post_date: datetime
    source_id: str
    source_permalink: Optional[str] = None

    @field_validator("brand", mode="before")
    @classmethod
    def _brand(cls, v: Any) -> str:
        return clean_text(v) or ""

    @field_validator("code", "link", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        return clean_text(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> list[str]:
        return normalize_tags(v)

    @property
    def is_eligible(self) -> bool:
        return bool(self.brand) and bool(self.code or self.link)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReferralRecord(_CamelModel):
    """Persisted referral record."""

    id: int
    brand: str
    code: Optional[str] = None
    link: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    post_date: datetime
    expiration_date: datetime
    is_valid: bool = True
    last_validated: datetime


class ReferralCreate(_CamelModel):
    """Request body for creating a referral through the API."""

    brand: str
    code: Optional[str] = None
    link: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    post_date: Optional[datetime] = None
    expiration_date: Union[datetime, date]

    @field_validator("brand", mode="before")
    @classmethod
    def _brand(cls, v: Any) -> str:
        brand = clean_text(v)
        if not brand:
            raise ValueError("Brand name is required")
        return brand

    @field_validator("code", "link", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        return clean_text(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> list[str]:
        return normalize_tags(v)

    @field_validator("expiration_date", mode="after")
    @classmethod
    def _expiration(cls, v: Union[datetime, date]) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def _code_or_link(self) -> "ReferralCreate":
        if not self.code and not self.link:
            raise ValueError("Either code or link must be provided")
        return self


class ReferralUpdate(_CamelModel):
    """Partial update body; omitted fields are left unchanged."""

    brand: Optional[str] = None
    code: Optional[str] = None
    link: Optional[str] = None
    tags: Optional[list[str]] = None
    post_date: Optional[datetime] = None
    expiration_date: Optional[Union[datetime, date]] = None
    is_valid: Optional[bool] = None

    @field_validator("brand", mode="before")
    @classmethod
    def _brand(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        brand = clean_text(v)
        if not brand:
            raise ValueError("Brand name cannot be empty")
        return brand

    @field_validator("code", "link", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        return clean_text(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> Optional[list[str]]:
        return None if v is None else normalize_tags(v)

    @field_validator("expiration_date", mode="after")
    @classmethod
    def _expiration(cls, v: Optional[Union[datetime, date]]) -> Optional[datetime]:
        return None if v is None else as_utc(v)
