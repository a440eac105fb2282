"""Upload quota enforcement against the account's tier content limit.

`Account.content_count` is a cache of `count(media where account_id = ...)`.
It is only ever overwritten by `recompute_content_count`, never incremented,
so a partially failed upload or deletion cannot make it drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storysite.billing.tiers import (
    can_upload,
    get_tier_policy,
    next_tier,
    remaining_content,
    should_show_upgrade_prompt,
    usage_percentage,
)
from storysite.core.errors import NotFoundError, QuotaExceededError
from storysite.core.logger import get_logger
from storysite.core.metrics import record_quota_blocked
from storysite.storage.models import Account, Media


logger = get_logger("storysite.quota")


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    account_id: str
    tier: str
    content_count: int
    content_limit: int
    remaining: int


@dataclass(frozen=True)
class QuotaStatus:
    account_id: str
    tier: str
    tier_name: str
    content_count: int
    content_limit: int
    remaining: int
    usage_percentage: float
    show_upgrade_prompt: bool
    next_tier: Optional[str]


@dataclass(frozen=True)
class ReconcileResult:
    account_id: str
    email: str
    before: int
    after: int


def _get_account(session: Session, account_id: str) -> Account:
    account = session.scalar(select(Account).where(Account.id == account_id))
    if account is None:
        raise NotFoundError("Account not found")
    return account


def evaluate_upload_quota(account: Account) -> QuotaDecision:
    """Advisory check on the cached count; concurrent uploads may overshoot by a few."""

    policy = get_tier_policy(account.tier)
    return QuotaDecision(
        allowed=can_upload(account.tier, account.content_count),
        account_id=account.id,
        tier=policy.key,
        content_count=account.content_count,
        content_limit=policy.content_limit,
        remaining=remaining_content(account.tier, account.content_count),
    )


def ensure_upload_allowed(account: Account) -> QuotaDecision:
    decision = evaluate_upload_quota(account)
    if not decision.allowed:
        record_quota_blocked(tier=decision.tier)
        logger.info(
            "upload_quota_exceeded",
            account_id=account.id,
            tier=decision.tier,
            content_count=decision.content_count,
            content_limit=decision.content_limit,
        )
        raise QuotaExceededError(
            tier=decision.tier,
            content_count=decision.content_count,
            content_limit=decision.content_limit,
        )
    return decision


def count_account_media(session: Session, account_id: str) -> int:
    return int(session.scalar(select(func.count(Media.id)).where(Media.account_id == account_id)) or 0)


def recompute_content_count(session: Session, account_id: str) -> int:
    """Overwrite the cached count with the true Media count; the caller commits."""

    account = _get_account(session, account_id)
    session.flush()
    account.content_count = count_account_media(session, account_id)
    session.flush()
    return account.content_count


def get_quota_status(session: Session, *, account_id: str) -> QuotaStatus:
    account = _get_account(session, account_id)
    policy = get_tier_policy(account.tier)
    upgrade = next_tier(policy.key)
    return QuotaStatus(
        account_id=account.id,
        tier=policy.key,
        tier_name=policy.name,
        content_count=account.content_count,
        content_limit=policy.content_limit,
        remaining=remaining_content(policy.key, account.content_count),
        usage_percentage=usage_percentage(policy.key, account.content_count),
        show_upgrade_prompt=should_show_upgrade_prompt(policy.key, account.content_count),
        next_tier=upgrade.key if upgrade is not None else None,
    )


def reconcile_content_counts(session: Session, *, account_ids: Optional[List[str]] = None) -> List[ReconcileResult]:
    """Recompute the cached count for the given accounts (all when omitted) and commit."""

    statement = select(Account).order_by(Account.created_at.asc())
    if account_ids:
        statement = statement.where(Account.id.in_(account_ids))
    accounts = list(session.scalars(statement).all())

    results: List[ReconcileResult] = []
    try:
        for account in accounts:
            before = account.content_count
            after = recompute_content_count(session, account.id)
            results.append(ReconcileResult(account_id=account.id, email=account.email, before=before, after=after))
            if before != after:
                logger.info("content_count_reconciled", account_id=account.id, before=before, after=after)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return results
