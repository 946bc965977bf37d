"""Pydantic schemas for event images."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ImageCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    alt_text: Optional[str] = None
    caption: Optional[str] = None
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)


class ImageUpdate(BaseModel):
    alt_text: Optional[str] = None
    caption: Optional[str] = None
    order: Optional[int] = None


class ImageOut(BaseModel):
    id: str
    url: str
    alt_text: Optional[str] = None
    caption: Optional[str] = None
    order: int
    width: Optional[int] = None
    height: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ImageEnvelope(BaseModel):
    image: ImageOut


class ImageListResponse(BaseModel):
    images: list[ImageOut]
