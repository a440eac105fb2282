"""Story and chapter management routes for the authenticated account."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storysite.auth.dependencies import require_auth_context
from storysite.auth.jwt import AuthContext
from storysite.schemas.stories import (
    ChapterCreateRequest,
    ChapterItem,
    ChapterUpdateRequest,
    StoryCreateRequest,
    StoryDetailResponse,
    StoryItem,
    StoryListResponse,
    StoryUpdateRequest,
)
from storysite.storage.db import get_session
from storysite.stories.service import (
    create_chapter,
    create_story,
    get_owned_chapter,
    get_story_content,
    list_chapter_media,
    list_stories,
    update_chapter,
    update_story,
)
from storysite.stories.views import chapter_item, story_detail, story_item, story_summary_item


router = APIRouter(prefix="/stories", tags=["stories"])


def _drop_nulls(changes: dict, required: set[str]) -> dict:
    return {key: value for key, value in changes.items() if value is not None or key not in required}


@router.get("", response_model=StoryListResponse)
def list_my_stories(
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> StoryListResponse:
    summaries = list_stories(session, account_id=auth.account_id)
    return StoryListResponse(items=[story_summary_item(summary) for summary in summaries])


@router.post("", response_model=StoryItem, status_code=201)
def create_my_story(
    payload: StoryCreateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> StoryItem:
    story = create_story(
        session,
        account_id=auth.account_id,
        title=payload.title,
        template=payload.template,
        subtitle=payload.subtitle,
        description=payload.description,
    )
    return story_item(story)


@router.get("/{story_id}", response_model=StoryDetailResponse)
def get_my_story(
    story_id: str,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> StoryDetailResponse:
    return story_detail(get_story_content(session, account_id=auth.account_id, story_id=story_id))


@router.patch("/{story_id}", response_model=StoryDetailResponse)
def update_my_story(
    story_id: str,
    payload: StoryUpdateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> StoryDetailResponse:
    changes = _drop_nulls(payload.model_dump(exclude_unset=True, exclude={"settings"}), {"template", "is_public"})
    settings_changes = None
    if payload.settings is not None:
        settings_changes = _drop_nulls(
            payload.settings.model_dump(exclude_unset=True),
            {"primary_color", "font_family", "enable_comments", "enable_download"},
        )
    update_story(
        session,
        account_id=auth.account_id,
        story_id=story_id,
        changes=changes,
        settings_changes=settings_changes,
    )
    return story_detail(get_story_content(session, account_id=auth.account_id, story_id=story_id))


@router.post("/{story_id}/chapters", response_model=ChapterItem, status_code=201)
def create_my_chapter(
    story_id: str,
    payload: ChapterCreateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> ChapterItem:
    chapter = create_chapter(
        session,
        account_id=auth.account_id,
        story_id=story_id,
        title=payload.title,
        content=payload.content,
        date=payload.date,
        order=payload.order,
    )
    return chapter_item(chapter)


@router.get("/{story_id}/chapters/{chapter_id}", response_model=ChapterItem)
def get_my_chapter(
    story_id: str,
    chapter_id: str,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> ChapterItem:
    chapter = get_owned_chapter(session, account_id=auth.account_id, story_id=story_id, chapter_id=chapter_id)
    return chapter_item(chapter, list_chapter_media(session, chapter))


@router.patch("/{story_id}/chapters/{chapter_id}", response_model=ChapterItem)
def update_my_chapter(
    story_id: str,
    chapter_id: str,
    payload: ChapterUpdateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> ChapterItem:
    chapter = update_chapter(
        session,
        account_id=auth.account_id,
        story_id=story_id,
        chapter_id=chapter_id,
        changes=_drop_nulls(payload.model_dump(exclude_unset=True), {"order"}),
    )
    return chapter_item(chapter, list_chapter_media(session, chapter))
