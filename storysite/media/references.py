"""Placement lifecycle for shared media: link, unlink, and gallery deletion.

A Media row is an uploaded asset owned by an account. A MediaReference places
it inside a story or chapter. Unlinking removes only the placement; deleting
the Media removes every placement first, then the row, then (best effort) the
remote asset when no sibling row still points at the same URL.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional
import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storysite.app.quota_service import recompute_content_count
from storysite.core.errors import ForbiddenError, NotFoundError, ValidationError
from storysite.core.logger import get_logger
from storysite.core.metrics import record_media_linked, record_remote_delete
from storysite.core.observability import capture_exception
from storysite.media.placement import placement_columns, placement_for
from storysite.media.providers.base import StorageProvider
from storysite.storage.models import Chapter, Media, MediaReference, Story
from storysite.stories.service import get_owned_story


logger = get_logger("storysite.media.references")

REMOTE_DELETED = "deleted"
REMOTE_SKIPPED_SHARED = "skipped_shared"
REMOTE_SKIPPED_UNMANAGED = "skipped_unmanaged"
REMOTE_FAILED = "failed"


@dataclass(frozen=True)
class MediaDeletionResult:
    media_id: str
    references_removed: int
    remote_delete: str
    content_count: int


def _unique_ids(media_ids: Iterable[str]) -> List[str]:
    seen: dict[str, None] = {}
    for media_id in media_ids:
        cleaned = (media_id or "").strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def link_media(
    session: Session,
    *,
    account_id: str,
    media_ids: Iterable[str],
    story_id: str,
    chapter_id: Optional[str] = None,
    order: int = 0,
) -> List[MediaReference]:
    """Place each media item in the story (or chapter); return only new references.

    Every id must belong to the caller or nothing is linked. Pairs that are
    already placed in the same container are skipped.
    """

    requested = _unique_ids(media_ids)
    if not requested:
        raise ValidationError("Media IDs are required")
    if not story_id:
        raise ValidationError("Story ID is required")

    story = get_owned_story(session, account_id=account_id, story_id=story_id)
    if chapter_id:
        chapter = session.scalar(select(Chapter).where(Chapter.id == chapter_id, Chapter.story_id == story.id))
        if chapter is None:
            raise NotFoundError("Chapter not found")

    owned = list(
        session.scalars(select(Media).where(Media.id.in_(requested), Media.account_id == account_id)).all()
    )
    if len(owned) != len(requested):
        raise NotFoundError("Some media items not found")

    placement = placement_for(story.id, chapter_id)
    columns = placement_columns(placement)
    story_key = story.id

    created: List[MediaReference] = []
    for attempt in (1, 2):
        created = _add_missing_references(session, requested, placement.key, columns, order)
        try:
            session.commit()
            break
        except IntegrityError:
            session.rollback()
            if attempt == 2:
                raise
            # A concurrent link placed some of the same media first.
            logger.warning("media_link_conflict", account_id=account_id, story_id=story_key, chapter_id=chapter_id)
        except Exception:
            session.rollback()
            raise

    record_media_linked(count=len(created))
    logger.info(
        "media_linked",
        account_id=account_id,
        story_id=story_key,
        chapter_id=chapter_id,
        requested=len(requested),
        created=len(created),
    )
    return created


def _add_missing_references(
    session: Session,
    requested: List[str],
    placement_key: str,
    columns: dict,
    order: int,
) -> List[MediaReference]:
    already_placed = set(
        session.scalars(
            select(MediaReference.media_id).where(
                MediaReference.placement_key == placement_key,
                MediaReference.media_id.in_(requested),
            )
        ).all()
    )
    created: List[MediaReference] = []
    for media_id in requested:
        if media_id in already_placed:
            continue
        reference = MediaReference(id=str(uuid.uuid4()), media_id=media_id, order=order, **columns)
        session.add(reference)
        created.append(reference)
    return created


def _reference_story(session: Session, reference: MediaReference) -> Optional[Story]:
    if reference.story_id is not None:
        return session.scalar(select(Story).where(Story.id == reference.story_id))
    if reference.chapter_id is not None:
        return session.scalar(
            select(Story).join(Chapter, Chapter.story_id == Story.id).where(Chapter.id == reference.chapter_id)
        )
    return None


def unlink_reference(session: Session, *, account_id: str, reference_id: str) -> None:
    """Remove one placement. The Media row and its other placements are untouched."""

    reference = session.scalar(select(MediaReference).where(MediaReference.id == reference_id))
    if reference is None:
        raise NotFoundError("Media reference not found")

    story = _reference_story(session, reference)
    if story is None or story.account_id != account_id:
        raise ForbiddenError("Not allowed to modify this story")

    try:
        session.delete(reference)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("media_unlinked", account_id=account_id, reference_id=reference_id, media_id=reference.media_id)


def _remote_delete(
    provider: StorageProvider,
    *,
    media_id: str,
    account_id: str,
    asset_id: str,
    resource_type: str,
) -> str:
    try:
        provider.delete(asset_id, resource_type=resource_type)
    except Exception as exc:
        # Local rows are already gone; the stray remote asset is left for cleanup.
        record_remote_delete(outcome=REMOTE_FAILED)
        capture_exception(exc)
        logger.warning(
            "media_remote_delete_failed",
            media_id=media_id,
            account_id=account_id,
            asset_id=asset_id,
            provider=provider.provider_name,
            error=str(exc),
        )
        return REMOTE_FAILED
    record_remote_delete(outcome=REMOTE_DELETED)
    return REMOTE_DELETED


def delete_media(
    session: Session,
    *,
    account_id: str,
    media_id: str,
    provider: StorageProvider,
) -> MediaDeletionResult:
    media = session.scalar(select(Media).where(Media.id == media_id, Media.account_id == account_id))
    if media is None:
        raise NotFoundError("Media not found")

    shares_url = (
        session.scalar(
            select(Media.id)
            .where(Media.account_id == account_id, Media.url == media.url, Media.id != media.id)
            .limit(1)
        )
        is not None
    )
    managed = provider.is_managed_url(media.url)
    asset_id = media.remote_asset_id or provider.asset_id_from_url(media.url)
    resource_type = media.type

    try:
        removed = session.execute(delete(MediaReference).where(MediaReference.media_id == media.id)).rowcount
        session.delete(media)
        content_count = recompute_content_count(session, account_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    if not managed or not asset_id:
        remote_outcome = REMOTE_SKIPPED_UNMANAGED
        record_remote_delete(outcome=remote_outcome)
    elif shares_url:
        remote_outcome = REMOTE_SKIPPED_SHARED
        record_remote_delete(outcome=remote_outcome)
        logger.info("media_remote_delete_skipped_shared_url", media_id=media_id, account_id=account_id)
    else:
        remote_outcome = _remote_delete(
            provider, media_id=media_id, account_id=account_id, asset_id=asset_id, resource_type=resource_type
        )

    logger.info(
        "media_deleted",
        account_id=account_id,
        media_id=media_id,
        references_removed=int(removed or 0),
        remote_delete=remote_outcome,
        content_count=content_count,
    )
    return MediaDeletionResult(
        media_id=media_id,
        references_removed=int(removed or 0),
        remote_delete=remote_outcome,
        content_count=content_count,
    )
