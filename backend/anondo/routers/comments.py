"""Comment and like API routes, nested under /events/{event_id}."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from anondo.database import get_db
from anondo.models.user import User
from anondo.schemas.comment import CommentCreate, CommentEnvelope, CommentListResponse, LikeToggleResponse
from anondo.schemas.event import MessageResponse
from anondo.security import get_current_user, get_optional_user
from anondo.services import comment_service
from anondo.services.access import get_accessible_event

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{event_id}/comments", response_model=CommentListResponse)
def list_comments(
    event_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Comments newest first, with like counts and the caller's like flag."""
    user_id = user.id if user else None
    event = get_accessible_event(db, event_id, user_id)
    return {"comments": comment_service.list_comments(db, event, user_id)}


@router.post("/{event_id}/comments", response_model=CommentEnvelope, status_code=status.HTTP_201_CREATED)
def create_comment(
    event_id: str,
    payload: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = get_accessible_event(db, event_id, user.id)
    return {"comment": comment_service.create_comment(db, event, user.id, payload.content)}


@router.delete("/{event_id}/comments/{comment_id}", response_model=MessageResponse)
def delete_comment(
    event_id: str,
    comment_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = get_accessible_event(db, event_id, user.id)
    comment_service.delete_comment(db, event, comment_id, user.id)
    return {"message": "Comment deleted successfully"}


@router.post("/{event_id}/comments/{comment_id}/like", response_model=LikeToggleResponse)
def toggle_like(
    event_id: str,
    comment_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Like the comment, or remove the caller's like if there is one."""
    event = get_accessible_event(db, event_id, user.id)
    is_liked, likes_count = comment_service.toggle_like(db, event, comment_id, user.id)
    return {"is_liked": is_liked, "likes_count": likes_count}
