"""Authentication API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storysite.accounts.service import authenticate_account
from storysite.auth.jwt import AuthContext, create_access_token
from storysite.schemas.auth import LoginRequest, TokenResponse
from storysite.storage.db import get_session


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, session: Session = Depends(get_session)) -> TokenResponse:
    account = authenticate_account(session, email=payload.email, password=payload.password)
    token, expires_in = create_access_token(AuthContext(account_id=account.id, email=account.email))
    return TokenResponse(
        access_token=token,
        expires_in=expires_in,
        account_id=account.id,
        domain=account.domain,
    )
