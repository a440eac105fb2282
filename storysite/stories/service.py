"""Story and chapter management for the owning account."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from storysite.accounts.service import ensure_account_domain, get_account
from storysite.billing.tiers import KNOWN_TEMPLATES, can_use_cover_photo, can_use_template
from storysite.core.errors import ForbiddenError, NotFoundError, ValidationError
from storysite.core.logger import get_logger
from storysite.identifiers.allocator import IdentifierScope, allocate_slug, persist_with_identifier
from storysite.storage.models import Chapter, Media, MediaReference, Story, StorySettings


logger = get_logger("storysite.stories")

STORY_MUTABLE_FIELDS = frozenset({"title", "subtitle", "description", "template", "is_public", "cover_photo"})
SETTINGS_MUTABLE_FIELDS = frozenset(
    {"primary_color", "font_family", "cover_image", "logo_image", "enable_comments", "enable_download"}
)
CHAPTER_MUTABLE_FIELDS = frozenset({"title", "content", "date", "order"})


@dataclass(frozen=True)
class PlacedMedia:
    reference_id: str
    order: int
    media: Media


@dataclass(frozen=True)
class ChapterContent:
    chapter: Chapter
    media: List[PlacedMedia]


@dataclass(frozen=True)
class StoryContent:
    story: Story
    chapters: List[ChapterContent]
    media: List[PlacedMedia]
    settings: Optional[StorySettings]


@dataclass(frozen=True)
class StoryCounts:
    chapters: int
    media: int


@dataclass(frozen=True)
class StorySummary:
    story: Story
    counts: StoryCounts


def _check_template(tier: str, template: str) -> None:
    if template not in KNOWN_TEMPLATES:
        raise ValidationError(f"Unknown template: {template}", code="unknown_template")
    if not can_use_template(tier, template):
        raise ForbiddenError(
            f"The {template} template is not available on the {tier} tier",
            code="template_not_available",
        )


def get_owned_story(session: Session, *, account_id: str, story_id: str) -> Story:
    story = session.scalar(select(Story).where(Story.id == story_id, Story.account_id == account_id))
    if story is None:
        raise NotFoundError("Story not found")
    return story


def get_owned_chapter(session: Session, *, account_id: str, story_id: str, chapter_id: str) -> Chapter:
    story = get_owned_story(session, account_id=account_id, story_id=story_id)
    chapter = session.scalar(select(Chapter).where(Chapter.id == chapter_id, Chapter.story_id == story.id))
    if chapter is None:
        raise NotFoundError("Chapter not found")
    return chapter


def create_story(
    session: Session,
    *,
    account_id: str,
    title: str,
    template: str = "timeline",
    subtitle: Optional[str] = None,
    description: Optional[str] = None,
) -> Story:
    if not title or not title.strip():
        raise ValidationError("Title is required")

    account = get_account(session, account_id)
    _check_template(account.tier, template)
    domain = ensure_account_domain(session, account.id)

    def build(slug: str) -> Story:
        story = Story(
            id=str(uuid.uuid4()),
            account_id=account.id,
            title=title.strip(),
            subtitle=subtitle,
            description=description,
            slug=slug,
            domain=domain,
            template=template,
            is_public=False,
        )
        session.add(story)
        session.add(StorySettings(id=str(uuid.uuid4()), story_id=story.id))
        return story

    story = persist_with_identifier(
        session,
        scope=IdentifierScope.SLUG,
        allocate=lambda: allocate_slug(session, title),
        build=build,
    )
    logger.info("story_created", account_id=account.id, story_id=story.id, slug=story.slug)
    return story


def count_story_content(session: Session, story_ids: List[str]) -> Dict[str, StoryCounts]:
    """Chapter and media-placement counts per story (chapter placements included)."""

    if not story_ids:
        return {}

    chapter_rows = session.execute(
        select(Chapter.story_id, func.count(Chapter.id))
        .where(Chapter.story_id.in_(story_ids))
        .group_by(Chapter.story_id)
    ).all()
    chapter_counts = {story_id: int(count) for story_id, count in chapter_rows}

    direct_rows = session.execute(
        select(MediaReference.story_id, func.count(MediaReference.id))
        .where(MediaReference.story_id.in_(story_ids))
        .group_by(MediaReference.story_id)
    ).all()
    nested_rows = session.execute(
        select(Chapter.story_id, func.count(MediaReference.id))
        .join(MediaReference, MediaReference.chapter_id == Chapter.id)
        .where(Chapter.story_id.in_(story_ids))
        .group_by(Chapter.story_id)
    ).all()
    media_counts: Dict[str, int] = defaultdict(int)
    for story_id, count in list(direct_rows) + list(nested_rows):
        media_counts[story_id] += int(count)

    return {
        story_id: StoryCounts(chapters=chapter_counts.get(story_id, 0), media=media_counts.get(story_id, 0))
        for story_id in story_ids
    }


def list_stories(session: Session, *, account_id: str) -> List[StorySummary]:
    stories = list(
        session.scalars(
            select(Story).where(Story.account_id == account_id).order_by(Story.updated_at.desc())
        ).all()
    )
    counts = count_story_content(session, [story.id for story in stories])
    return [StorySummary(story=story, counts=counts[story.id]) for story in stories]


def load_story_content(session: Session, story: Story) -> StoryContent:
    """Story with ordered chapters and ordered placements, media resolved.

    Sorting is by `order` then creation time; gaps and duplicate order values
    are tolerated.
    """

    chapters = list(
        session.scalars(
            select(Chapter)
            .where(Chapter.story_id == story.id)
            .order_by(Chapter.order.asc(), Chapter.created_at.asc())
        ).all()
    )
    chapter_ids = [chapter.id for chapter in chapters]

    placement_filter = MediaReference.story_id == story.id
    if chapter_ids:
        placement_filter = or_(placement_filter, MediaReference.chapter_id.in_(chapter_ids))
    rows = session.execute(
        select(MediaReference, Media)
        .join(Media, Media.id == MediaReference.media_id)
        .where(placement_filter)
        .order_by(MediaReference.order.asc(), MediaReference.created_at.asc())
    ).all()

    story_media: List[PlacedMedia] = []
    chapter_media: Dict[str, List[PlacedMedia]] = defaultdict(list)
    for reference, media in rows:
        placed = PlacedMedia(reference_id=reference.id, order=reference.order, media=media)
        if reference.chapter_id is not None:
            chapter_media[reference.chapter_id].append(placed)
        else:
            story_media.append(placed)

    settings = session.scalar(select(StorySettings).where(StorySettings.story_id == story.id))
    return StoryContent(
        story=story,
        chapters=[ChapterContent(chapter=chapter, media=chapter_media.get(chapter.id, [])) for chapter in chapters],
        media=story_media,
        settings=settings,
    )


def get_story_content(session: Session, *, account_id: str, story_id: str) -> StoryContent:
    return load_story_content(session, get_owned_story(session, account_id=account_id, story_id=story_id))


def _reject_unknown_fields(changes: Mapping[str, Any], allowed: frozenset) -> None:
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(unknown)}")


def update_story(
    session: Session,
    *,
    account_id: str,
    story_id: str,
    changes: Mapping[str, Any],
    settings_changes: Optional[Mapping[str, Any]] = None,
) -> Story:
    _reject_unknown_fields(changes, STORY_MUTABLE_FIELDS)
    _reject_unknown_fields(settings_changes or {}, SETTINGS_MUTABLE_FIELDS)

    story = get_owned_story(session, account_id=account_id, story_id=story_id)
    account = get_account(session, account_id)

    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("Title is required")
    if "template" in changes and changes["template"] != story.template:
        _check_template(account.tier, changes["template"])
    if changes.get("cover_photo") and not can_use_cover_photo(account.tier):
        raise ForbiddenError(
            f"Cover photos are not available on the {account.tier} tier",
            code="cover_photo_not_available",
        )

    for field_name, value in changes.items():
        if field_name == "title":
            value = value.strip()
        setattr(story, field_name, value)

    if settings_changes:
        settings = session.scalar(select(StorySettings).where(StorySettings.story_id == story.id))
        if settings is None:
            settings = StorySettings(id=str(uuid.uuid4()), story_id=story.id)
            session.add(settings)
        for field_name, value in settings_changes.items():
            setattr(settings, field_name, value)

    session.commit()
    logger.info("story_updated", account_id=account_id, story_id=story.id, fields=sorted(changes))
    return story


def create_chapter(
    session: Session,
    *,
    account_id: str,
    story_id: str,
    title: str,
    content: Optional[str] = None,
    date: Optional[datetime] = None,
    order: int = 0,
) -> Chapter:
    if not title or not title.strip():
        raise ValidationError("Chapter title is required")

    story = get_owned_story(session, account_id=account_id, story_id=story_id)
    chapter = Chapter(
        id=str(uuid.uuid4()),
        story_id=story.id,
        title=title.strip(),
        content=content,
        date=date,
        order=order,
    )
    session.add(chapter)
    session.commit()
    return chapter


def update_chapter(
    session: Session,
    *,
    account_id: str,
    story_id: str,
    chapter_id: str,
    changes: Mapping[str, Any],
) -> Chapter:
    _reject_unknown_fields(changes, CHAPTER_MUTABLE_FIELDS)
    chapter = get_owned_chapter(session, account_id=account_id, story_id=story_id, chapter_id=chapter_id)
    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("Chapter title is required")

    for field_name, value in changes.items():
        setattr(chapter, field_name, value)
    session.commit()
    return chapter


def list_chapter_media(session: Session, chapter: Chapter) -> List[PlacedMedia]:
    rows = session.execute(
        select(MediaReference, Media)
        .join(Media, Media.id == MediaReference.media_id)
        .where(MediaReference.chapter_id == chapter.id)
        .order_by(MediaReference.order.asc(), MediaReference.created_at.asc())
    ).all()
    return [PlacedMedia(reference_id=reference.id, order=reference.order, media=media) for reference, media in rows]
