"""Comment and like service.

Callers pass an event that already passed the access guard
(``access.get_accessible_event``); every function here re-uses that event.
"""
import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from anondo.errors import bad_request, forbidden, not_found
from anondo.models.comment import Comment, CommentLike
from anondo.models.event import Event

logger = logging.getLogger(__name__)


def _serialize(comment: Comment, likes_count: int, is_liked: bool) -> dict[str, Any]:
    return {
        "id": comment.id,
        "content": comment.content,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
        "author": comment.author,
        "likes_count": likes_count,
        "is_liked": is_liked,
    }


def _likes_count(db: Session, comment_id: str) -> int:
    return db.query(func.count(CommentLike.id)).filter(CommentLike.comment_id == comment_id).scalar()


def list_comments(db: Session, event: Event, requester_id: Optional[str]) -> list[dict[str, Any]]:
    """Newest first, with author, like count and the requester's like flag."""
    comments = (
        db.query(Comment)
        .options(selectinload(Comment.author))
        .filter(Comment.event_id == event.id)
        .order_by(Comment.created_at.desc(), Comment.id)
        .all()
    )
    comment_ids = [c.id for c in comments]
    counts: dict[str, int] = {}
    liked: set[str] = set()
    if comment_ids:
        counts = dict(
            db.query(CommentLike.comment_id, func.count(CommentLike.id))
            .filter(CommentLike.comment_id.in_(comment_ids))
            .group_by(CommentLike.comment_id)
            .all()
        )
        if requester_id:
            liked = {
                row.comment_id
                for row in db.query(CommentLike.comment_id).filter(
                    CommentLike.user_id == requester_id, CommentLike.comment_id.in_(comment_ids),
                )
            }
    return [_serialize(c, counts.get(c.id, 0), c.id in liked) for c in comments]


def create_comment(db: Session, event: Event, author_id: str, content: str) -> dict[str, Any]:
    text = (content or "").strip()
    if not text:
        raise bad_request("empty_comment", "Comment content is required")

    comment = Comment(event_id=event.id, author_id=author_id, content=text)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info("User %s commented on event %s (%s)", author_id, event.id, comment.id)
    return _serialize(comment, 0, False)


def get_comment_or_404(db: Session, event: Event, comment_id: str) -> Comment:
    comment = db.query(Comment).filter(Comment.id == comment_id, Comment.event_id == event.id).first()
    if not comment:
        raise not_found("Comment not found", reason="comment_not_found")
    return comment


def delete_comment(db: Session, event: Event, comment_id: str, user_id: str) -> None:
    """Authors may delete their comments; event creators may delete any comment on their event."""
    comment = get_comment_or_404(db, event, comment_id)
    if user_id not in (comment.author_id, event.creator_id):
        raise forbidden("Only the author or the event creator can delete this comment", reason="not_comment_author")
    db.delete(comment)
    db.commit()
    logger.info("User %s deleted comment %s on event %s", user_id, comment_id, event.id)


def toggle_like(db: Session, event: Event, comment_id: str, user_id: str) -> tuple[bool, int]:
    """Unlike if a like exists, else like. Returns (is_liked, likes_count)."""
    comment = get_comment_or_404(db, event, comment_id)

    removed = (
        db.query(CommentLike)
        .filter(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if removed:
        is_liked = False
    else:
        if comment.author_id == user_id:
            db.rollback()
            raise bad_request("own_comment", "Cannot like your own comment")
        db.add(CommentLike(comment_id=comment_id, user_id=user_id))
        is_liked = True

    try:
        db.commit()
    except IntegrityError:
        # A concurrent toggle inserted the same like first.
        db.rollback()
        is_liked = True

    likes_count = _likes_count(db, comment_id)
    logger.info("User %s %s comment %s", user_id, "liked" if is_liked else "unliked", comment_id)
    return is_liked, likes_count
