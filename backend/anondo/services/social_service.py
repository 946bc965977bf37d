"""Social graph service — follow edges, following feed and user search."""
import logging
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from anondo.errors import bad_request, not_found
from anondo.models.event import Event
from anondo.models.follow import Follow
from anondo.models.user import User

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


def _get_follow(db: Session, follower_id: str, following_id: str):
    return (
        db.query(Follow)
        .filter(Follow.follower_id == follower_id, Follow.following_id == following_id)
        .first()
    )


def follow(db: Session, follower_id: str, following_id: str) -> Follow:
    """Create the follower -> following edge; self, unknown and duplicate edges are rejected."""
    if follower_id == following_id:
        raise bad_request("self_follow", "Cannot follow yourself")
    if not db.query(User.id).filter(User.id == following_id).first():
        raise not_found("User not found", reason="user_not_found")
    if _get_follow(db, follower_id, following_id):
        raise bad_request("already_following", "Already following this user")

    edge = Follow(follower_id=follower_id, following_id=following_id)
    db.add(edge)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise bad_request("already_following", "Already following this user")
    db.refresh(edge)
    logger.info("User %s now follows %s", follower_id, following_id)
    return edge


def unfollow(db: Session, follower_id: str, following_id: str) -> None:
    deleted = (
        db.query(Follow)
        .filter(Follow.follower_id == follower_id, Follow.following_id == following_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        db.rollback()
        raise bad_request("not_following", "Not following this user")
    db.commit()
    logger.info("User %s unfollowed %s", follower_id, following_id)


def get_follow_status(db: Session, follower_id: str, following_id: str) -> dict[str, Any]:
    edge = _get_follow(db, follower_id, following_id)
    return {
        "is_following": edge is not None,
        "followed_at": edge.created_at if edge else None,
    }


def following_creator_ids(db: Session, user_id: str) -> list[str]:
    """Ids the user follows plus the user's own id — the following-feed creator set."""
    ids = [row.following_id for row in db.query(Follow.following_id).filter(Follow.follower_id == user_id)]
    ids.append(user_id)
    return ids


def search_users(
    db: Session,
    requester_id: str,
    query: str,
    limit: int = 20,
    offset: int = 0,
) -> dict[str, Any]:
    """Case-insensitive substring search on name or email, excluding the requester.

    Each result carries follower/following/created-event counts and whether the
    requester already follows that user.
    """
    term = (query or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        raise bad_request("query_too_short", f"Search query must be at least {MIN_SEARCH_LENGTH} characters")

    pattern = "%" + term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
    users = (
        db.query(User)
        .filter(
            User.id != requester_id,
            or_(User.name.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\")),
        )
        .order_by(User.name.asc(), User.email.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    user_ids = [u.id for u in users]

    followers = _count_by(db, Follow.following_id, user_ids)
    following = _count_by(db, Follow.follower_id, user_ids)
    created = _count_by(db, Event.creator_id, user_ids)
    followed_ids = {
        row.following_id
        for row in db.query(Follow.following_id).filter(
            Follow.follower_id == requester_id, Follow.following_id.in_(user_ids),
        )
    } if user_ids else set()

    results = [
        {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "image": u.image,
            "created_at": u.created_at,
            "counts": {
                "followers": followers.get(u.id, 0),
                "following": following.get(u.id, 0),
                "created_events": created.get(u.id, 0),
            },
            "is_following": u.id in followed_ids,
        }
        for u in users
    ]
    return {"users": results, "has_more": len(users) == limit}


def _count_by(db: Session, column, ids: list[str]) -> dict[str, int]:
    if not ids:
        return {}
    rows = db.query(column, func.count()).filter(column.in_(ids)).group_by(column).all()
    return {key: count for key, count in rows}
