"""Schemas for story and chapter management endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from storysite.schemas.media import PlacedMediaItem


class StoryCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    subtitle: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    template: str = Field(default="timeline", max_length=32)


class StorySettingsPayload(BaseModel):
    primary_color: Optional[str] = Field(default=None, max_length=16)
    font_family: Optional[str] = Field(default=None, max_length=64)
    cover_image: Optional[str] = Field(default=None, max_length=500)
    logo_image: Optional[str] = Field(default=None, max_length=500)
    enable_comments: Optional[bool] = None
    enable_download: Optional[bool] = None


class StoryUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    subtitle: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    template: Optional[str] = Field(default=None, max_length=32)
    is_public: Optional[bool] = None
    cover_photo: Optional[str] = Field(default=None, max_length=500)
    settings: Optional[StorySettingsPayload] = None


class ChapterCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: Optional[str] = None
    date: Optional[datetime] = None
    order: int = Field(default=0, ge=0)


class ChapterUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = None
    date: Optional[datetime] = None
    order: Optional[int] = Field(default=None, ge=0)


class StorySettingsItem(BaseModel):
    primary_color: str
    font_family: str
    cover_image: Optional[str]
    logo_image: Optional[str]
    enable_comments: bool
    enable_download: bool


class StoryItem(BaseModel):
    id: str
    title: str
    subtitle: Optional[str]
    description: Optional[str]
    slug: str
    domain: str
    template: str
    is_public: bool
    cover_photo: Optional[str]
    created_at: datetime
    updated_at: datetime


class StorySummaryItem(StoryItem):
    chapter_count: int
    media_count: int


class StoryListResponse(BaseModel):
    items: list[StorySummaryItem]


class ChapterItem(BaseModel):
    id: str
    story_id: str
    title: str
    content: Optional[str]
    date: Optional[datetime]
    order: int
    created_at: datetime
    media: list[PlacedMediaItem] = Field(default_factory=list)


class StoryDetailResponse(StoryItem):
    chapters: list[ChapterItem]
    media: list[PlacedMediaItem]
    settings: Optional[StorySettingsItem] = None
