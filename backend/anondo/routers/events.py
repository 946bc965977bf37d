"""Event API routes — delegates to event_service for rule enforcement."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from anondo.config import settings
from anondo.database import get_db
from anondo.errors import not_found
from anondo.models.user import User
from anondo.schemas.event import (
    EventCreate, EventUpdate, EventEnvelope, EventListResponse, MessageResponse, to_utc,
)
from anondo.security import get_current_user, get_optional_user
from anondo.services import event_service, social_service
from anondo.services.access import ensure_event_access

logger = logging.getLogger(__name__)
router = APIRouter()

FOLLOWING_FEED = "following"


@router.get("/", response_model=EventListResponse)
def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    category_id: Optional[str] = Query(None),
    tag_name: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    start_date_from: Optional[datetime] = Query(None),
    start_date_to: Optional[datetime] = Query(None),
    feed: Optional[str] = Query(None, description='"following" limits to followed creators and yourself'),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """List public ACTIVE events, optionally as the caller's following feed."""
    creator_ids = None
    if feed == FOLLOWING_FEED and user is not None:
        creator_ids = social_service.following_creator_ids(db, user.id)

    events, total = event_service.get_public_events(
        db,
        page=page,
        limit=limit,
        category_id=category_id or None,
        tag_name=tag_name or None,
        search=search or None,
        start_date_from=to_utc(start_date_from),
        start_date_to=to_utc(start_date_to),
        creator_ids=creator_ids,
    )
    return {"events": events, "total": total, "page": page, "limit": limit, "feed": feed or "all"}


@router.post("/", response_model=EventEnvelope, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new event owned by the caller."""
    return {"event": event_service.create_event(db, user.id, payload)}


@router.get("/{event_id}", response_model=EventEnvelope)
def get_event(
    event_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Fetch a single event; private events only for their creator and participants."""
    event = event_service.get_event_by_id(db, event_id)
    if not event:
        raise not_found("Event not found", reason="event_not_found")
    ensure_event_access(db, event, user.id if user else None)
    return {"event": event}


@router.put("/{event_id}", response_model=EventEnvelope)
def update_event(
    event_id: str,
    payload: EventUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update an event (creator only; others see 404)."""
    event = event_service.update_event(db, event_id, user.id, payload)
    if not event:
        raise not_found("Event not found or unauthorized", reason="event_not_found")
    return {"event": event}


@router.delete("/{event_id}", response_model=MessageResponse)
def delete_event(
    event_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete an event and everything attached to it (creator only)."""
    if not event_service.delete_event(db, event_id, user.id):
        raise not_found("Event not found or unauthorized", reason="event_not_found")
    return {"message": "Event deleted successfully"}


@router.post("/{event_id}/join", response_model=MessageResponse)
def join_event(
    event_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event_service.join_event(db, event_id, user.id)
    return {"message": "Successfully joined event"}


@router.post("/{event_id}/leave", response_model=MessageResponse)
def leave_event(
    event_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event_service.leave_event(db, event_id, user.id)
    return {"message": "Successfully left event"}
