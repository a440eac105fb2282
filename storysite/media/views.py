"""ORM -> response schema conversion for media rows and placements."""

from __future__ import annotations

from storysite.schemas.media import MediaItem, MediaReferenceItem, PlacedMediaItem
from storysite.storage.models import Media, MediaReference
from storysite.stories.service import PlacedMedia


def media_item(media: Media) -> MediaItem:
    return MediaItem(
        id=media.id,
        type=media.type,
        url=media.url,
        thumbnail_url=media.thumbnail_url,
        title=media.title,
        description=media.description,
        storage_provider=media.storage_provider,
        created_at=media.created_at,
    )


def placed_media_item(placed: PlacedMedia) -> PlacedMediaItem:
    return PlacedMediaItem(reference_id=placed.reference_id, order=placed.order, media=media_item(placed.media))


def reference_item(reference: MediaReference) -> MediaReferenceItem:
    return MediaReferenceItem(
        id=reference.id,
        media_id=reference.media_id,
        story_id=reference.story_id,
        chapter_id=reference.chapter_id,
        order=reference.order,
        created_at=reference.created_at,
    )
