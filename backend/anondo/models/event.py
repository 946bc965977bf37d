"""Event ORM model."""
import enum

from sqlalchemy import (
    Column, String, Text, DateTime, Integer, Float, Boolean, ForeignKey, Enum as SAEnum, and_,
)
from sqlalchemy.orm import relationship

from anondo.database import Base, new_id, utcnow
from anondo.models.participant import EventParticipant, ParticipantStatus
from anondo.models.taxonomy import event_categories, event_tags


class EventStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    location_name = Column(String(255), nullable=True)
    location_address = Column(String(500), nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    location_place_id = Column(String(255), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    max_capacity = Column(Integer, nullable=True)
    is_public = Column(Boolean, nullable=False, default=True)
    status = Column(SAEnum(EventStatus), nullable=False, default=EventStatus.ACTIVE)
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Count of JOINED participants; admission increments it with a guarded UPDATE.
    joined_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    creator = relationship("User")
    participants = relationship(
        "EventParticipant", back_populates="event", cascade="all, delete-orphan", passive_deletes=True,
    )
    joined_participants = relationship(
        EventParticipant,
        primaryjoin=lambda: and_(
            Event.id == EventParticipant.event_id,
            EventParticipant.status == ParticipantStatus.JOINED,
        ),
        order_by=EventParticipant.joined_at,
        viewonly=True,
    )
    categories = relationship("Category", secondary=event_categories, order_by="Category.name")
    tags = relationship("Tag", secondary=event_tags, order_by="Tag.name")
    images = relationship(
        "EventImage", back_populates="event", cascade="all, delete-orphan",
        passive_deletes=True, order_by="EventImage.order",
    )
    comments = relationship(
        "Comment", back_populates="event", cascade="all, delete-orphan", passive_deletes=True,
    )

    @property
    def participant_count(self) -> int:
        return len(self.joined_participants)
