"""Tier policy loading and stateless capability checks."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, Optional

import yaml

from storysite.core.config import get_settings


TIER_ORDER = ("free", "basic", "pro", "premium")
DEFAULT_TIER = "free"
KNOWN_TEMPLATES = frozenset({"timeline", "blog", "gallery"})
UPGRADE_PROMPT_THRESHOLD = 80.0


@dataclass(frozen=True)
class TierPolicy:
    key: str
    name: str
    price: int
    content_limit: int
    templates: FrozenSet[str]
    features: FrozenSet[str]


def _resolve_tiers_path() -> Path:
    configured = Path(get_settings().tiers_file_path)
    if configured.is_absolute():
        return configured
    return Path.cwd() / configured


def _parse_policy(key: str, raw: Dict[str, object]) -> TierPolicy:
    content_limit = raw.get("content_limit")
    if not isinstance(content_limit, int) or content_limit < 0:
        raise ValueError(f"Tier '{key}' must declare a non-negative integer content_limit")
    templates = raw.get("templates") or []
    features = raw.get("features") or []
    if not isinstance(templates, list) or not isinstance(features, list):
        raise ValueError(f"Tier '{key}' templates/features must be lists")
    price = raw.get("price", 0)
    return TierPolicy(
        key=key,
        name=str(raw.get("name") or key.title()),
        price=price if isinstance(price, int) else 0,
        content_limit=content_limit,
        templates=frozenset(str(item) for item in templates),
        features=frozenset(str(item) for item in features),
    )


@lru_cache(maxsize=1)
def load_tiers() -> Dict[str, TierPolicy]:
    tiers_path = _resolve_tiers_path()
    with tiers_path.open("r", encoding="utf-8") as file:
        content = yaml.safe_load(file) or {}
    if not isinstance(content, dict):
        raise ValueError("Invalid tiers file format")

    tiers: Dict[str, TierPolicy] = {}
    for tier_key, raw in content.items():
        if not isinstance(tier_key, str) or not isinstance(raw, dict):
            continue
        tiers[tier_key] = _parse_policy(tier_key, raw)
    if DEFAULT_TIER not in tiers:
        raise ValueError(f"Tiers file must define the '{DEFAULT_TIER}' tier")
    return tiers


def get_tier_policy(tier: Optional[str]) -> TierPolicy:
    """Return the policy for `tier`, falling back to the free tier."""

    tiers = load_tiers()
    return tiers.get(tier or DEFAULT_TIER) or tiers[DEFAULT_TIER]


def can_upload(tier: Optional[str], content_count: int) -> bool:
    return content_count < get_tier_policy(tier).content_limit


def remaining_content(tier: Optional[str], content_count: int) -> int:
    return max(0, get_tier_policy(tier).content_limit - content_count)


def usage_percentage(tier: Optional[str], content_count: int) -> float:
    limit = get_tier_policy(tier).content_limit
    if limit <= 0:
        return 100.0
    return min(100.0, content_count / limit * 100.0)


def should_show_upgrade_prompt(tier: Optional[str], content_count: int) -> bool:
    return usage_percentage(tier, content_count) >= UPGRADE_PROMPT_THRESHOLD


def next_tier(tier: Optional[str]) -> Optional[TierPolicy]:
    if tier not in TIER_ORDER:
        return None
    index = TIER_ORDER.index(tier)
    if index == len(TIER_ORDER) - 1:
        return None
    return get_tier_policy(TIER_ORDER[index + 1])


def can_use_template(tier: Optional[str], template: str) -> bool:
    return template in KNOWN_TEMPLATES and template in get_tier_policy(tier).templates


def can_use_feature(tier: Optional[str], feature: str) -> bool:
    return feature in get_tier_policy(tier).features


def can_use_cover_photo(tier: Optional[str]) -> bool:
    return can_use_feature(tier, "cover_photo")
