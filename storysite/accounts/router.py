"""Account registration, domain availability and quota routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storysite.accounts.service import register_account
from storysite.app.quota_service import get_quota_status, reconcile_content_counts
from storysite.auth.dependencies import require_auth_context
from storysite.auth.jwt import AuthContext
from storysite.core.errors import NotFoundError
from storysite.identifiers.allocator import check_domain_availability
from storysite.schemas.accounts import (
    AccountRegisterRequest,
    AccountResponse,
    DomainCheckRequest,
    DomainCheckResponse,
    QuotaStatusResponse,
    ReconcileResponse,
)
from storysite.storage.db import get_session


router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post("/register", response_model=AccountResponse, status_code=201)
def register(payload: AccountRegisterRequest, session: Session = Depends(get_session)) -> AccountResponse:
    account = register_account(
        session,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        preferred_domain=payload.domain,
    )
    return AccountResponse(
        id=account.id,
        name=account.name,
        email=account.email,
        domain=account.domain,
        tier=account.tier,
        content_count=account.content_count,
        created_at=account.created_at,
    )


@router.post("/check-domain", response_model=DomainCheckResponse)
def check_domain(payload: DomainCheckRequest, session: Session = Depends(get_session)) -> DomainCheckResponse:
    result = check_domain_availability(session, payload.domain)
    return DomainCheckResponse(available=result.available, domain=result.domain)


@router.get("/me/quota", response_model=QuotaStatusResponse)
def my_quota(
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> QuotaStatusResponse:
    status = get_quota_status(session, account_id=auth.account_id)
    return QuotaStatusResponse(
        tier=status.tier,
        tier_name=status.tier_name,
        content_count=status.content_count,
        content_limit=status.content_limit,
        remaining=status.remaining,
        usage_percentage=status.usage_percentage,
        show_upgrade_prompt=status.show_upgrade_prompt,
        next_tier=status.next_tier,
    )


@router.post("/me/reconcile", response_model=ReconcileResponse)
def reconcile_mine(
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> ReconcileResponse:
    results = reconcile_content_counts(session, account_ids=[auth.account_id])
    if not results:
        raise NotFoundError("Account not found")
    result = results[0]
    return ReconcileResponse(account_id=result.account_id, before=result.before, after=result.after)
