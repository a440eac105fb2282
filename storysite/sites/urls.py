"""Public URL builders for account sites and stories."""

from __future__ import annotations

from typing import Optional

from storysite.core.config import get_settings


def _domain_name(domain: str) -> str:
    suffix = "." + get_settings().platform_domain_suffix.strip().strip(".")
    return domain[: -len(suffix)] if domain.endswith(suffix) else domain


def public_site_url(domain: str, slug: Optional[str] = None, *, development: bool = False, port: int = 3000) -> str:
    if development:
        base = f"http://localhost:{port}/site/{_domain_name(domain)}"
    else:
        base = f"https://{domain}"
    return f"{base}/{slug}" if slug else base


def display_url(domain: str, slug: Optional[str] = None, *, development: bool = False, port: int = 3000) -> str:
    base = f"localhost:{port}/site/{_domain_name(domain)}" if development else domain
    return f"{base}/{slug}" if slug else base
