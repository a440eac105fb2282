"""Public, unauthenticated site resolution routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storysite.core.config import get_settings
from storysite.schemas.sites import PublicAccountSiteResponse, PublicStoryResponse
from storysite.sites.resolver import resolve_account_site, resolve_story_site
from storysite.sites.urls import display_url, public_site_url
from storysite.storage.db import get_session
from storysite.stories.views import story_detail, story_summary_item


router = APIRouter(prefix="/sites", tags=["sites"])


def _is_development() -> bool:
    return get_settings().env.lower() not in {"prod", "production"}


def _url(domain: str, slug: Optional[str] = None) -> str:
    return public_site_url(domain, slug, development=_is_development(), port=get_settings().port)


def _display_url(domain: str, slug: Optional[str] = None) -> str:
    return display_url(domain, slug, development=_is_development(), port=get_settings().port)


@router.get("/{domain}", response_model=PublicAccountSiteResponse)
def account_site(domain: str, session: Session = Depends(get_session)) -> PublicAccountSiteResponse:
    view = resolve_account_site(session, domain)
    return PublicAccountSiteResponse(
        name=view.name,
        domain=view.domain,
        url=_url(view.domain),
        display_url=_display_url(view.domain),
        stories=[story_summary_item(summary) for summary in view.stories],
    )


@router.get("/{domain}/{slug}", response_model=PublicStoryResponse)
def story_site(domain: str, slug: str, session: Session = Depends(get_session)) -> PublicStoryResponse:
    view = resolve_story_site(session, domain, slug)
    story = view.content.story
    return PublicStoryResponse(
        author_name=view.author_name,
        url=_url(story.domain, story.slug),
        display_url=_display_url(story.domain, story.slug),
        story=story_detail(view.content),
    )
