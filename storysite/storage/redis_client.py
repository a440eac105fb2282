"""Redis client factory and health checks."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional, Tuple

from redis import Redis

from storysite.core.config import get_settings


@lru_cache(maxsize=1)
def get_client() -> Redis:
    return Redis.from_url(get_settings().redis_url, decode_responses=True)


def test_connection() -> Tuple[bool, Optional[str]]:
    try:
        get_client().ping()
        return True, None
    except Exception as exc:  # pragma: no cover
        return False, str(exc)
