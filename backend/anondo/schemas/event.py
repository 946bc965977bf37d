"""Pydantic schemas for Events, participants and taxonomy."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from anondo.models.event import EventStatus
from anondo.schemas.user import UserSummary


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store every timestamp as UTC; naive input is taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _EventFields(BaseModel):
    description: Optional[str] = None
    location: Optional[str] = None
    location_name: Optional[str] = None
    location_address: Optional[str] = None
    location_lat: Optional[float] = Field(None, ge=-90, le=90)
    location_lng: Optional[float] = Field(None, ge=-180, le=180)
    location_place_id: Optional[str] = None
    end_date: Optional[datetime] = None
    max_capacity: Optional[int] = Field(None, ge=1)

    @field_validator("start_date", "end_date", mode="after", check_fields=False)
    @classmethod
    def _normalize_dates(cls, value):
        return to_utc(value)

    @model_validator(mode="after")
    def _check_date_order(self):
        start = getattr(self, "start_date", None)
        if start is not None and self.end_date is not None and self.end_date < start:
            raise ValueError("end_date must not be before start_date")
        return self


class EventCreate(_EventFields):
    title: str = Field(..., min_length=1, max_length=255)
    start_date: datetime
    is_public: bool = True
    status: EventStatus = EventStatus.ACTIVE
    category_ids: list[str] = []
    tag_names: list[str] = []

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("tag_names")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for name in (v.strip() for v in value):
            if name and name not in seen:
                seen.append(name)
        return seen


class EventUpdate(_EventFields):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    start_date: Optional[datetime] = None
    is_public: Optional[bool] = None
    status: Optional[EventStatus] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class CategoryOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None

    model_config = {"from_attributes": True}


class TagOut(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class ParticipantOut(BaseModel):
    user_id: str
    status: str
    joined_at: datetime
    user: UserSummary

    model_config = {"from_attributes": True}


class EventOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    location_name: Optional[str] = None
    location_address: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_place_id: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    max_capacity: Optional[int] = None
    is_public: bool
    status: str
    creator_id: str
    created_at: datetime
    updated_at: datetime
    creator: UserSummary
    participants: list[ParticipantOut] = Field(default=[], validation_alias="joined_participants")
    categories: list[CategoryOut] = []
    tags: list[TagOut] = []
    participant_count: int

    model_config = {"from_attributes": True}


class EventEnvelope(BaseModel):
    event: EventOut


class EventListResponse(BaseModel):
    events: list[EventOut]
    total: int
    page: int
    limit: int
    feed: str


class UserEventsResponse(BaseModel):
    events: Optional[list[EventOut]] = None
    created: Optional[list[EventOut]] = None
    joined: Optional[list[EventOut]] = None


class MessageResponse(BaseModel):
    message: str
