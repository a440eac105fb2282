"""Schemas for the media library and placement endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MediaItem(BaseModel):
    id: str
    type: str
    url: str
    thumbnail_url: Optional[str]
    title: Optional[str]
    description: Optional[str]
    storage_provider: str
    created_at: datetime


class MediaListResponse(BaseModel):
    items: list[MediaItem]


class MediaUploadResponse(BaseModel):
    media: MediaItem
    content_count: int


class PlacedMediaItem(BaseModel):
    reference_id: str
    order: int
    media: MediaItem


class MediaLinkRequest(BaseModel):
    media_ids: list[str] = Field(min_length=1, max_length=200)
    story_id: str = Field(min_length=1, max_length=36)
    chapter_id: Optional[str] = Field(default=None, max_length=36)
    order: int = Field(default=0, ge=0)


class MediaReferenceItem(BaseModel):
    id: str
    media_id: str
    story_id: Optional[str]
    chapter_id: Optional[str]
    order: int
    created_at: datetime


class MediaLinkResponse(BaseModel):
    linked: int
    references: list[MediaReferenceItem]


class MediaDeleteResponse(BaseModel):
    success: bool = True
    media_id: str
    references_removed: int
    remote_delete: str
    content_count: int
