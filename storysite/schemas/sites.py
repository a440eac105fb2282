"""Public site views served by the tenant resolver."""

from __future__ import annotations

from pydantic import BaseModel

from storysite.schemas.stories import StoryDetailResponse, StorySummaryItem


class PublicStoryResponse(BaseModel):
    author_name: str
    url: str
    display_url: str
    story: StoryDetailResponse


class PublicAccountSiteResponse(BaseModel):
    name: str
    domain: str
    url: str
    display_url: str
    stories: list[StorySummaryItem]
