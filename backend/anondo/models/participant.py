"""EventParticipant ORM model — one join/leave history row per (event, user)."""
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship

from anondo.database import Base, utcnow


class ParticipantStatus(str, enum.Enum):
    JOINED = "JOINED"
    LEFT = "LEFT"


class EventParticipant(Base):
    __tablename__ = "event_participants"

    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    status = Column(SAEnum(ParticipantStatus), nullable=False, default=ParticipantStatus.JOINED)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    left_at = Column(DateTime(timezone=True), nullable=True)

    event = relationship("Event", back_populates="participants")
    user = relationship("User")
