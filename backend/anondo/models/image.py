"""EventImage ORM model.

``order`` is a dense 0..N-1 sequence per event. The schema does not enforce it;
image_service keeps it dense on every add, delete and move.
"""
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import relationship

from anondo.database import Base, new_id, utcnow


class EventImage(Base):
    __tablename__ = "event_images"

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(2048), nullable=False)
    alt_text = Column(String(500), nullable=True)
    caption = Column(String(1000), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    event = relationship("Event", back_populates="images")
