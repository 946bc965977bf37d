"""Event image API routes, nested under /events/{event_id}."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from anondo.database import get_db
from anondo.models.user import User
from anondo.schemas.event import MessageResponse
from anondo.schemas.image import ImageCreate, ImageEnvelope, ImageListResponse, ImageUpdate
from anondo.security import get_current_user, get_optional_user
from anondo.services import image_service
from anondo.services.access import get_accessible_event, get_event_or_404

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{event_id}/images", response_model=ImageListResponse)
def list_images(
    event_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Images in display order."""
    event = get_accessible_event(db, event_id, user.id if user else None)
    return {"images": image_service.list_images(db, event)}


@router.post("/{event_id}/images", response_model=ImageEnvelope, status_code=status.HTTP_201_CREATED)
def add_image(
    event_id: str,
    payload: ImageCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    return {"image": image_service.add_image(db, event, user.id, payload)}


@router.patch("/{event_id}/images/{image_id}", response_model=ImageEnvelope)
def update_image(
    event_id: str,
    image_id: str,
    payload: ImageUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit alt text/caption or move the image to another position."""
    event = get_event_or_404(db, event_id)
    return {"image": image_service.update_image(db, event, image_id, user.id, payload)}


@router.delete("/{event_id}/images/{image_id}", response_model=MessageResponse)
def delete_image(
    event_id: str,
    image_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    image_service.delete_image(db, event, image_id, user.id)
    return {"message": "Image deleted successfully"}
