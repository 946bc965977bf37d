"""Pydantic schemas for Comments and likes."""
from datetime import datetime
from pydantic import BaseModel, Field

from anondo.schemas.user import UserSummary


class CommentCreate(BaseModel):
    content: str = Field(..., max_length=5000)


class CommentOut(BaseModel):
    id: str
    content: str
    created_at: datetime
    updated_at: datetime
    author: UserSummary
    likes_count: int
    is_liked: bool


class CommentEnvelope(BaseModel):
    comment: CommentOut


class CommentListResponse(BaseModel):
    comments: list[CommentOut]


class LikeToggleResponse(BaseModel):
    is_liked: bool
    likes_count: int
