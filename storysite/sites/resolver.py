"""Read-only resolution of public addresses to an account site or a story."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from storysite.core.config import get_settings
from storysite.core.errors import NotFoundError
from storysite.storage.models import Account, Story
from storysite.stories.service import StoryContent, StorySummary, count_story_content, load_story_content


class SiteNotFoundError(NotFoundError):
    """Single outcome for every miss: unknown domain, unknown slug, private story."""

    code = "site_not_found"

    def __init__(self) -> None:
        super().__init__("Site not found")


@dataclass(frozen=True)
class StorySiteView:
    content: StoryContent
    author_name: str


@dataclass(frozen=True)
class AccountSiteView:
    name: str
    domain: str
    stories: List[StorySummary]


SiteView = Union[StorySiteView, AccountSiteView]


def normalize_site_domain(address: str) -> str:
    """`foo` and `foo.<suffix>` resolve to the same domain."""

    domain = (address or "").strip().strip("/").lower()
    if domain and "." not in domain:
        domain = f"{domain}.{get_settings().platform_domain_suffix.strip().strip('.')}"
    return domain


def split_address(address: str) -> Tuple[str, Optional[str]]:
    """`acme.example.com/summer-trip` -> (`acme.example.com`, `summer-trip`)."""

    cleaned = (address or "").strip()
    for scheme in ("https://", "http://"):
        if cleaned.lower().startswith(scheme):
            cleaned = cleaned[len(scheme) :]
    domain, _, rest = cleaned.partition("/")
    slug = rest.strip("/").split("/", 1)[0] if rest.strip("/") else None
    return domain, slug


def resolve_story_site(session: Session, domain: str, slug: str) -> StorySiteView:
    domain = normalize_site_domain(domain)
    slug = (slug or "").strip().lower()
    if not domain or not slug:
        raise SiteNotFoundError()
    row = session.execute(
        select(Story, Account.name)
        .join(Account, Account.id == Story.account_id)
        .where(
            Story.slug == slug,
            Story.is_public.is_(True),
            Account.domain == domain,
            Account.is_active.is_(True),
        )
    ).first()
    if row is None:
        raise SiteNotFoundError()
    story, author_name = row
    return StorySiteView(content=load_story_content(session, story), author_name=author_name)


def resolve_account_site(session: Session, domain: str) -> AccountSiteView:
    domain = normalize_site_domain(domain)
    if not domain:
        raise SiteNotFoundError()
    account = session.scalar(select(Account).where(Account.domain == domain, Account.is_active.is_(True)))
    if account is None:
        raise SiteNotFoundError()

    stories = list(
        session.scalars(
            select(Story)
            .where(Story.account_id == account.id, Story.is_public.is_(True))
            .order_by(Story.updated_at.desc())
        ).all()
    )
    if not stories:
        raise SiteNotFoundError()

    counts = count_story_content(session, [story.id for story in stories])
    return AccountSiteView(
        name=account.name,
        domain=account.domain or domain,
        stories=[StorySummary(story=story, counts=counts[story.id]) for story in stories],
    )


def resolve_site(session: Session, domain: str, slug: Optional[str] = None) -> SiteView:
    if slug and slug.strip():
        return resolve_story_site(session, domain, slug)
    return resolve_account_site(session, domain)


def resolve_address(session: Session, address: str) -> SiteView:
    domain, slug = split_address(address)
    return resolve_site(session, domain, slug)
