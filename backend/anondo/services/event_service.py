"""Core event service — single authority for event lifecycle and membership.

Responsibilities:
- Create events with category links and upserted tags
- Read events with creator, JOINED participants, categories and tags
- Filtered, paginated public listing (also serves the following feed)
- Owner-scoped update/delete guarded by a compound (id, creator) WHERE clause
- Join/leave with ordered business rules; capacity admission is a single
  conditional UPDATE on ``events.joined_count`` so concurrent joins cannot
  overfill an event
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from anondo.database import utcnow
from anondo.errors import bad_request, not_found
from anondo.models.event import Event, EventStatus
from anondo.models.participant import EventParticipant, ParticipantStatus
from anondo.models.taxonomy import Category, Tag
from anondo.schemas.event import CategoryCreate, EventCreate, EventUpdate

logger = logging.getLogger(__name__)

# Columns that may be omitted from an update but never set to NULL.
_REQUIRED_FIELDS = {"title", "start_date", "is_public", "status"}


def _detail_options():
    """Loader options shared by every query returning the full event shape."""
    return (
        selectinload(Event.creator),
        selectinload(Event.joined_participants).selectinload(EventParticipant.user),
        selectinload(Event.categories),
        selectinload(Event.tags),
    )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _get_or_create_tags(db: Session, names: list[str]) -> list[Tag]:
    """Upsert tags by exact (case-sensitive) name."""
    if not names:
        return []
    existing = {t.name: t for t in db.query(Tag).filter(Tag.name.in_(names)).all()}
    tags = []
    for name in names:
        tag = existing.get(name)
        if tag is None:
            tag = Tag(name=name)
            db.add(tag)
            existing[name] = tag
        tags.append(tag)
    return tags


def _load_categories(db: Session, category_ids: list[str]) -> list[Category]:
    wanted = list(dict.fromkeys(category_ids))
    if not wanted:
        return []
    categories = db.query(Category).filter(Category.id.in_(wanted)).all()
    if len(categories) != len(wanted):
        found = {c.id for c in categories}
        missing = [cid for cid in wanted if cid not in found]
        raise bad_request("unknown_category", f"Unknown category id(s): {', '.join(missing)}")
    return categories


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------
def create_event(db: Session, creator_id: str, data: EventCreate) -> Event:
    """Insert an event owned by ``creator_id`` with its taxonomy links."""
    fields = data.model_dump(exclude={"category_ids", "tag_names"})

    # A concurrent request may create one of our new tags first; retry once.
    for attempt in range(2):
        event = Event(**fields, creator_id=creator_id, joined_count=0)
        event.categories = _load_categories(db, data.category_ids)
        event.tags = _get_or_create_tags(db, data.tag_names)
        db.add(event)
        try:
            db.commit()
            break
        except IntegrityError:
            db.rollback()
            if attempt:
                raise
            logger.info("Tag upsert collided while creating event '%s'; retrying", data.title)

    logger.info("Created event '%s' (%s) by user %s", data.title, event.id, creator_id)
    return get_event_by_id(db, event.id)


def get_event_by_id(db: Session, event_id: str) -> Optional[Event]:
    """Full event shape, or None when the event does not exist."""
    return db.query(Event).options(*_detail_options()).filter(Event.id == event_id).first()


def get_public_events(
    db: Session,
    page: int = 1,
    limit: int = 10,
    category_id: Optional[str] = None,
    tag_name: Optional[str] = None,
    search: Optional[str] = None,
    start_date_from: Optional[datetime] = None,
    start_date_to: Optional[datetime] = None,
    creator_ids: Optional[list[str]] = None,
) -> tuple[list[Event], int]:
    """Public ACTIVE events by start date, plus the total match count."""
    query = db.query(Event).filter(Event.is_public.is_(True), Event.status == EventStatus.ACTIVE)

    if category_id:
        query = query.filter(Event.categories.any(Category.id == category_id))
    if tag_name:
        query = query.filter(Event.tags.any(Tag.name == tag_name))
    if search:
        pattern = _like_pattern(search)
        query = query.filter(or_(
            Event.title.ilike(pattern, escape="\\"),
            Event.description.ilike(pattern, escape="\\"),
            Event.location.ilike(pattern, escape="\\"),
        ))
    if start_date_from:
        query = query.filter(Event.start_date >= start_date_from)
    if start_date_to:
        query = query.filter(Event.start_date <= start_date_to)
    if creator_ids:
        query = query.filter(Event.creator_id.in_(creator_ids))

    total = query.count()
    events = (
        query.options(*_detail_options())
        .order_by(Event.start_date.asc(), Event.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return events, total


def get_user_created_events(db: Session, user_id: str) -> list[Event]:
    """All events a user created, newest first."""
    return (
        db.query(Event)
        .options(*_detail_options())
        .filter(Event.creator_id == user_id)
        .order_by(Event.created_at.desc())
        .all()
    )


def get_user_joined_events(db: Session, user_id: str) -> list[Event]:
    """Events the user currently holds a JOINED participation in, most recent first."""
    return (
        db.query(Event)
        .join(EventParticipant, and_(
            EventParticipant.event_id == Event.id,
            EventParticipant.user_id == user_id,
            EventParticipant.status == ParticipantStatus.JOINED,
        ))
        .options(*_detail_options())
        .order_by(EventParticipant.joined_at.desc())
        .all()
    )


# ---------------------------------------------------------------------------
# Owner-scoped mutations
# ---------------------------------------------------------------------------
def update_event(db: Session, event_id: str, creator_id: str, data: EventUpdate) -> Optional[Event]:
    """Apply a partial update; None when the event is absent or not owned by creator_id."""
    values = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field not in _REQUIRED_FIELDS
    }
    owned = db.query(Event).filter(Event.id == event_id, Event.creator_id == creator_id)

    if "start_date" in values or "end_date" in values:
        current = owned.first()
        if current is None:
            return None
        start = _as_utc(values.get("start_date", current.start_date))
        end = _as_utc(values.get("end_date", current.end_date))
        if end is not None and end < start:
            raise bad_request("invalid_date_range", "end_date must not be before start_date")

    if not values:
        return get_event_by_id(db, event_id) if owned.count() else None

    values["updated_at"] = utcnow()
    matched = owned.update(values, synchronize_session=False)
    if not matched:
        db.rollback()
        return None
    db.commit()
    logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(values)))
    return get_event_by_id(db, event_id)


def delete_event(db: Session, event_id: str, creator_id: str) -> bool:
    """Delete the event (cascading to its children) only if creator_id owns it."""
    event = db.query(Event).filter(Event.id == event_id, Event.creator_id == creator_id).first()
    if not event:
        return False
    db.delete(event)
    db.commit()
    logger.info("Deleted event %s by creator %s", event_id, creator_id)
    return True


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------
def join_event(db: Session, event_id: str, user_id: str) -> EventParticipant:
    """Join (or rejoin) an event.

    Rules, in order: event exists; event is ACTIVE; caller is not the
    creator; a seat is free; caller is not already JOINED. The seat is taken
    by a guarded increment of ``joined_count`` in the same transaction as the
    participation upsert, so a failed write releases it again.
    """
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise not_found("Event not found", reason="event_not_found")
    if event.status != EventStatus.ACTIVE:
        raise bad_request("event_not_active", "Event is not active")
    if event.creator_id == user_id:
        raise bad_request("own_event", "Cannot join your own event")
    if event.max_capacity is not None and event.joined_count >= event.max_capacity:
        raise bad_request("event_full", "Event is at full capacity")

    participation = (
        db.query(EventParticipant)
        .filter(EventParticipant.event_id == event_id, EventParticipant.user_id == user_id)
        .first()
    )
    if participation is not None and participation.status == ParticipantStatus.JOINED:
        raise bad_request("already_joined", "Already joined this event")

    admitted = (
        db.query(Event)
        .filter(
            Event.id == event_id,
            Event.status == EventStatus.ACTIVE,
            or_(Event.max_capacity.is_(None), Event.joined_count < Event.max_capacity),
        )
        .update({Event.joined_count: Event.joined_count + 1}, synchronize_session=False)
    )
    if not admitted:
        db.rollback()
        logger.info("Join of user %s to event %s lost the race for the last seat", user_id, event_id)
        raise bad_request("event_full", "Event is at full capacity")

    now = utcnow()
    if participation is None:
        db.add(EventParticipant(
            event_id=event_id, user_id=user_id, status=ParticipantStatus.JOINED, joined_at=now,
        ))
        rejoined = 1
    else:
        # Only a LEFT row may flip back; a concurrent rejoin leaves 0 rows here.
        rejoined = (
            db.query(EventParticipant)
            .filter(
                EventParticipant.event_id == event_id,
                EventParticipant.user_id == user_id,
                EventParticipant.status == ParticipantStatus.LEFT,
            )
            .update(
                {"status": ParticipantStatus.JOINED, "joined_at": now, "left_at": None},
                synchronize_session=False,
            )
        )

    if not rejoined:
        db.rollback()
        raise bad_request("already_joined", "Already joined this event")
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise bad_request("already_joined", "Already joined this event")

    logger.info("User %s joined event %s", user_id, event_id)
    return _get_participation(db, event_id, user_id)


def leave_event(db: Session, event_id: str, user_id: str) -> EventParticipant:
    """Flip a JOINED participation to LEFT and release its seat."""
    if not db.query(Event.id).filter(Event.id == event_id).first():
        raise not_found("Event not found", reason="event_not_found")

    left = (
        db.query(EventParticipant)
        .filter(
            EventParticipant.event_id == event_id,
            EventParticipant.user_id == user_id,
            EventParticipant.status == ParticipantStatus.JOINED,
        )
        .update({"status": ParticipantStatus.LEFT, "left_at": utcnow()}, synchronize_session=False)
    )
    if not left:
        db.rollback()
        raise bad_request("not_joined", "Not currently joined to this event")

    db.query(Event).filter(Event.id == event_id, Event.joined_count > 0).update(
        {Event.joined_count: Event.joined_count - 1}, synchronize_session=False,
    )
    db.commit()
    logger.info("User %s left event %s", user_id, event_id)
    return _get_participation(db, event_id, user_id)


def _get_participation(db: Session, event_id: str, user_id: str) -> EventParticipant:
    return (
        db.query(EventParticipant)
        .filter(EventParticipant.event_id == event_id, EventParticipant.user_id == user_id)
        .one()
    )


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
def get_all_categories(db: Session) -> list[Category]:
    return db.query(Category).order_by(Category.name).all()


def create_category(db: Session, data: CategoryCreate) -> Category:
    if db.query(Category.id).filter(Category.name == data.name).first():
        raise bad_request("category_exists", f"Category '{data.name}' already exists")
    category = Category(**data.model_dump())
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise bad_request("category_exists", f"Category '{data.name}' already exists")
    db.refresh(category)
    logger.info("Created category '%s' (%s)", category.name, category.id)
    return category
