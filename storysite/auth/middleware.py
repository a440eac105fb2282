"""Bearer token extraction for the request middleware."""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from storysite.auth.jwt import AuthContext, decode_access_token


AUTH_CONTEXT_KEY = "auth_context"


def _extract_bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if not authorization:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def resolve_request_auth_context(request: Request) -> Optional[AuthContext]:
    token = _extract_bearer_token(request)
    if not token:
        return None

    try:
        return decode_access_token(token)
    except HTTPException:
        return None
