"""Access-control predicate for private events.

A private event's content (detail, comments, images, likes) is visible only to
its creator and to users holding a JOINED participation. Public events are
visible to everyone, including anonymous callers.
"""
from typing import Optional

from sqlalchemy.orm import Session

from anondo.errors import forbidden, not_found, unauthorized
from anondo.models.event import Event
from anondo.models.participant import EventParticipant, ParticipantStatus


def is_joined(db: Session, event_id: str, user_id: str) -> bool:
    return db.query(
        db.query(EventParticipant)
        .filter(
            EventParticipant.event_id == event_id,
            EventParticipant.user_id == user_id,
            EventParticipant.status == ParticipantStatus.JOINED,
        )
        .exists()
    ).scalar()


def can_access(db: Session, event: Event, user_id: Optional[str]) -> bool:
    """public OR creator OR JOINED participant."""
    if event.is_public:
        return True
    if user_id is None:
        return False
    return event.creator_id == user_id or is_joined(db, event.id, user_id)


def ensure_event_access(db: Session, event: Event, user_id: Optional[str]) -> None:
    """Raise 401 for anonymous callers and 403 for callers failing can_access."""
    if event.is_public:
        return
    if user_id is None:
        raise unauthorized()
    if not can_access(db, event, user_id):
        raise forbidden("Access denied", reason="event_access_denied")


def get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise not_found("Event not found", reason="event_not_found")
    return event


def get_accessible_event(db: Session, event_id: str, user_id: Optional[str]) -> Event:
    """Fetch an event and apply the access guard in one step."""
    event = get_event_or_404(db, event_id)
    ensure_event_access(db, event, user_id)
    return event


def ensure_creator(event: Event, user_id: str, action: str) -> None:
    if event.creator_id != user_id:
        raise forbidden(f"Only event creators can {action}", reason="not_event_creator")
