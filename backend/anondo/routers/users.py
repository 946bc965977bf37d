"""User API routes — profiles, search, follows and a user's events."""
import logging
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from anondo.database import get_db
from anondo.errors import forbidden
from anondo.models.user import User
from anondo.schemas.event import MessageResponse, UserEventsResponse
from anondo.schemas.user import (
    FollowResponse, FollowStatus, UserListResponse, UserOut, UserSearchResponse, UserUpdate,
)
from anondo.security import get_current_user
from anondo.services import event_service, social_service, user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=UserListResponse)
def list_users(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """List all users."""
    return {"users": user_service.list_users(db)}


@router.get("/search", response_model=UserSearchResponse)
def search_users(
    q: str = Query(""),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Find users by name or email (at least 2 characters)."""
    return social_service.search_users(db, user.id, q, limit=limit, offset=offset)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return user_service.get_user_or_404(db, user_id)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: UserUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit your own profile (name, avatar)."""
    if user.id != user_id:
        raise forbidden("You can only edit your own profile", reason="not_own_profile")
    return user_service.update_profile(db, user, payload)


@router.get("/{user_id}/follow", response_model=FollowStatus)
def get_follow_status(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return social_service.get_follow_status(db, user.id, user_id)


@router.post("/{user_id}/follow", response_model=FollowResponse)
def follow_user(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    edge = social_service.follow(db, user.id, user_id)
    target = user_service.get_user_or_404(db, user_id)
    return {
        "message": "Successfully followed user",
        "follow": {"id": edge.id, "following": target, "created_at": edge.created_at},
    }


@router.delete("/{user_id}/follow", response_model=MessageResponse)
def unfollow_user(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    social_service.unfollow(db, user.id, user_id)
    return {"message": "Successfully unfollowed user"}


@router.get("/{user_id}/events", response_model=UserEventsResponse, response_model_exclude_unset=True)
def get_user_events(
    user_id: str,
    type: Optional[Literal["created", "joined"]] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Your own created and/or joined events."""
    if user.id != user_id:
        raise forbidden("You can only view your own events", reason="not_own_events")
    if type == "created":
        return {"events": event_service.get_user_created_events(db, user_id)}
    if type == "joined":
        return {"events": event_service.get_user_joined_events(db, user_id)}
    return {
        "created": event_service.get_user_created_events(db, user_id),
        "joined": event_service.get_user_joined_events(db, user_id),
    }
