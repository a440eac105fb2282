"""ORM -> response schema conversion for stories and chapters."""

from __future__ import annotations

from typing import List, Optional

from storysite.media.views import placed_media_item
from storysite.schemas.stories import (
    ChapterItem,
    StoryDetailResponse,
    StoryItem,
    StorySettingsItem,
    StorySummaryItem,
)
from storysite.storage.models import Chapter, Story, StorySettings
from storysite.stories.service import PlacedMedia, StoryContent, StorySummary


def _story_fields(story: Story) -> dict:
    return dict(
        id=story.id,
        title=story.title,
        subtitle=story.subtitle,
        description=story.description,
        slug=story.slug,
        domain=story.domain,
        template=story.template,
        is_public=story.is_public,
        cover_photo=story.cover_photo,
        created_at=story.created_at,
        updated_at=story.updated_at,
    )


def story_item(story: Story) -> StoryItem:
    return StoryItem(**_story_fields(story))


def story_summary_item(summary: StorySummary) -> StorySummaryItem:
    return StorySummaryItem(
        **_story_fields(summary.story),
        chapter_count=summary.counts.chapters,
        media_count=summary.counts.media,
    )


def chapter_item(chapter: Chapter, media: Optional[List[PlacedMedia]] = None) -> ChapterItem:
    return ChapterItem(
        id=chapter.id,
        story_id=chapter.story_id,
        title=chapter.title,
        content=chapter.content,
        date=chapter.date,
        order=chapter.order,
        created_at=chapter.created_at,
        media=[placed_media_item(placed) for placed in media or []],
    )


def _settings_item(settings: Optional[StorySettings]) -> Optional[StorySettingsItem]:
    if settings is None:
        return None
    return StorySettingsItem(
        primary_color=settings.primary_color,
        font_family=settings.font_family,
        cover_image=settings.cover_image,
        logo_image=settings.logo_image,
        enable_comments=settings.enable_comments,
        enable_download=settings.enable_download,
    )


def story_detail(content: StoryContent) -> StoryDetailResponse:
    return StoryDetailResponse(
        **_story_fields(content.story),
        chapters=[chapter_item(entry.chapter, entry.media) for entry in content.chapters],
        media=[placed_media_item(placed) for placed in content.media],
        settings=_settings_item(content.settings),
    )
