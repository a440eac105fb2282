"""Collision-free public identifiers (account domains, story slugs) from free text.

Allocation probes the store and returns the first free candidate. The probe
is not atomic with the caller's insert, so the unique constraints on
accounts.domain and stories.slug remain the authority:
`persist_with_identifier` re-allocates when the commit hits one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re
from typing import Callable, Optional, TypeVar
import unicodedata

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storysite.core.config import get_settings
from storysite.core.errors import ConflictError
from storysite.core.logger import get_logger
from storysite.core.metrics import record_identifier_conflict
from storysite.storage.models import Account, Story


logger = get_logger("storysite.identifiers")

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_TRAILING_HYPHENS_RE = re.compile(r"-+$")

T = TypeVar("T")


class IdentifierScope(str, Enum):
    DOMAIN = "domain"
    SLUG = "slug"


@dataclass(frozen=True)
class DomainAvailability:
    available: bool
    domain: str


def normalize_identifier(
    text: Optional[str],
    *,
    max_length: Optional[int] = None,
    fallback: Optional[str] = None,
) -> str:
    """Lowercase, ASCII-only, hyphen-separated form of `text`.

    >>> normalize_identifier("My Family!!")
    'my-family'
    """

    settings = get_settings()
    limit = max_length if max_length is not None else settings.identifier_max_length
    default = fallback if fallback is not None else settings.identifier_fallback

    ascii_text = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    base = _NON_ALNUM_RE.sub("-", ascii_text.lower()).strip("-")
    base = _TRAILING_HYPHENS_RE.sub("", base[:limit])
    return base or default


def domain_for(base: str, suffix: Optional[str] = None) -> str:
    platform_suffix = (suffix or get_settings().platform_domain_suffix).strip().strip(".")
    return f"{base}.{platform_suffix}"


def _candidate(base: str, attempt: int, scope: IdentifierScope, suffix: Optional[str]) -> str:
    stem = base if attempt == 0 else f"{base}-{attempt}"
    if scope is IdentifierScope.DOMAIN:
        return domain_for(stem, suffix)
    return stem


def _is_taken(session: Session, scope: IdentifierScope, candidate: str) -> bool:
    if scope is IdentifierScope.DOMAIN:
        statement = select(Account.id).where(Account.domain == candidate)
    else:
        statement = select(Story.id).where(Story.slug == candidate)
    return session.scalar(statement.limit(1)) is not None


def allocate_identifier(
    session: Session,
    text: Optional[str],
    *,
    scope: IdentifierScope,
    suffix: Optional[str] = None,
) -> str:
    """Return the first of `base`, `base-1`, `base-2`, ... not present in `scope`."""

    base = normalize_identifier(text)
    attempt = 0
    while True:
        candidate = _candidate(base, attempt, scope, suffix)
        if not _is_taken(session, scope, candidate):
            return candidate
        attempt += 1


def allocate_domain(session: Session, text: Optional[str]) -> str:
    return allocate_identifier(session, text, scope=IdentifierScope.DOMAIN)


def allocate_slug(session: Session, text: Optional[str]) -> str:
    return allocate_identifier(session, text, scope=IdentifierScope.SLUG)


def check_domain_availability(session: Session, text: Optional[str]) -> DomainAvailability:
    domain = domain_for(normalize_identifier(text))
    return DomainAvailability(available=not _is_taken(session, IdentifierScope.DOMAIN, domain), domain=domain)


def persist_with_identifier(
    session: Session,
    *,
    scope: IdentifierScope,
    allocate: Callable[[], str],
    build: Callable[[str], T],
) -> T:
    """Allocate, build and commit; re-allocate when the commit loses a race.

    `build` receives the allocated identifier and must add its rows to the
    session without committing.
    """

    attempts = get_settings().identifier_allocation_retries
    for attempt in range(1, attempts + 1):
        identifier = allocate()
        result = build(identifier)
        try:
            session.commit()
            return result
        except IntegrityError:
            session.rollback()
            if not _is_taken(session, scope, identifier):
                # The violation is on some other unique column.
                raise
            record_identifier_conflict(scope=scope.value)
            logger.warning(
                "identifier_allocation_conflict",
                scope=scope.value,
                identifier=identifier,
                attempt=attempt,
            )
    raise ConflictError(f"Could not allocate a unique {scope.value}, please retry", code=f"{scope.value}_conflict")
