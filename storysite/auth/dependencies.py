"""FastAPI dependencies for account authentication."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from storysite.auth.jwt import AuthContext
from storysite.auth.middleware import AUTH_CONTEXT_KEY


def get_optional_auth_context(request: Request) -> Optional[AuthContext]:
    return getattr(request.state, AUTH_CONTEXT_KEY, None)


def require_auth_context(auth: Optional[AuthContext] = Depends(get_optional_auth_context)) -> AuthContext:
    if auth is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return auth
