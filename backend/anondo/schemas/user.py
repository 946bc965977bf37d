"""Pydantic schemas for Users, sign-in and follows."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    name: Optional[str] = None
    image: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("Invalid email format")
        return value


class UserUpdate(BaseModel):
    name: Optional[str] = None
    image: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: str
    image: Optional[str] = None

    model_config = {"from_attributes": True}


class UserOut(UserSummary):
    created_at: datetime


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class UserCounts(BaseModel):
    followers: int
    following: int
    created_events: int


class UserSearchResult(UserOut):
    counts: UserCounts
    is_following: bool


class UserSearchResponse(BaseModel):
    users: list[UserSearchResult]
    has_more: bool


class UserListResponse(BaseModel):
    users: list[UserOut]


class FollowStatus(BaseModel):
    is_following: bool
    followed_at: Optional[datetime] = None


class FollowOut(BaseModel):
    id: str
    following: UserSummary
    created_at: datetime


class FollowResponse(BaseModel):
    message: str
    follow: FollowOut
