"""Image ordering service.

Images of one event carry a dense ``order`` sequence 0..N-1. Every mutation
first locks the owning event row (``SELECT ... FOR UPDATE``) so concurrent
add/delete/move requests for the same event apply one after another.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from anondo.errors import not_found
from anondo.models.event import Event
from anondo.models.image import EventImage
from anondo.schemas.image import ImageCreate, ImageUpdate
from anondo.services.access import ensure_creator

logger = logging.getLogger(__name__)


def _lock_event(db: Session, event: Event) -> None:
    db.query(Event.id).filter(Event.id == event.id).with_for_update().first()


def _get_image_or_404(db: Session, event: Event, image_id: str) -> EventImage:
    image = db.query(EventImage).filter(EventImage.id == image_id, EventImage.event_id == event.id).first()
    if not image:
        raise not_found("Image not found", reason="image_not_found")
    return image


def list_images(db: Session, event: Event) -> list[EventImage]:
    return db.query(EventImage).filter(EventImage.event_id == event.id).order_by(EventImage.order).all()


def add_image(db: Session, event: Event, user_id: str, data: ImageCreate) -> EventImage:
    """Append an image at the end of the event's sequence (creator only)."""
    ensure_creator(event, user_id, "add images")
    _lock_event(db, event)

    last_order: Optional[int] = (
        db.query(func.max(EventImage.order)).filter(EventImage.event_id == event.id).scalar()
    )
    image = EventImage(event_id=event.id, order=0 if last_order is None else last_order + 1, **data.model_dump())
    db.add(image)
    db.commit()
    db.refresh(image)
    logger.info("Added image %s to event %s at position %d", image.id, event.id, image.order)
    return image


def delete_image(db: Session, event: Event, image_id: str, user_id: str) -> None:
    """Remove an image and close the gap it leaves (creator only)."""
    ensure_creator(event, user_id, "delete images")
    _lock_event(db, event)
    image = _get_image_or_404(db, event, image_id)
    removed_order = image.order

    db.delete(image)
    db.flush()
    db.query(EventImage).filter(
        EventImage.event_id == event.id, EventImage.order > removed_order,
    ).update({EventImage.order: EventImage.order - 1}, synchronize_session=False)
    db.commit()
    logger.info("Deleted image %s from event %s (position %d)", image_id, event.id, removed_order)


def update_image(db: Session, event: Event, image_id: str, user_id: str, data: ImageUpdate) -> EventImage:
    """Edit alt text/caption and optionally move the image to a new position.

    The target position is clamped to [0, count-1]. Images between the old and
    new positions shift by one toward the vacated slot.
    """
    ensure_creator(event, user_id, "update images")
    _lock_event(db, event)
    image = _get_image_or_404(db, event, image_id)
    changes = data.model_dump(exclude_unset=True)

    if "alt_text" in changes:
        image.alt_text = changes["alt_text"]
    if "caption" in changes:
        image.caption = changes["caption"]

    target = changes.get("order")
    if target is not None and target != image.order:
        count = db.query(func.count(EventImage.id)).filter(EventImage.event_id == event.id).scalar()
        old_order = image.order
        new_order = max(0, min(target, count - 1))
        siblings = db.query(EventImage).filter(EventImage.event_id == event.id, EventImage.id != image.id)
        if old_order < new_order:
            siblings.filter(EventImage.order > old_order, EventImage.order <= new_order).update(
                {EventImage.order: EventImage.order - 1}, synchronize_session=False,
            )
        elif new_order < old_order:
            siblings.filter(EventImage.order >= new_order, EventImage.order < old_order).update(
                {EventImage.order: EventImage.order + 1}, synchronize_session=False,
            )
        image.order = new_order
        logger.info("Moved image %s of event %s from %d to %d", image.id, event.id, old_order, new_order)

    db.commit()
    db.refresh(image)
    return image
