from __future__ import annotations

from storysite.billing.tiers import (
    can_upload,
    can_use_cover_photo,
    can_use_template,
    get_tier_policy,
    load_tiers,
    next_tier,
    remaining_content,
    should_show_upgrade_prompt,
    usage_percentage,
)


def test_load_tiers_reads_yaml_policies() -> None:
    tiers = load_tiers()
    assert set(tiers) == {"free", "basic", "pro", "premium"}
    assert tiers["free"].content_limit == 20
    assert tiers["premium"].content_limit == 5000


def test_unknown_tier_falls_back_to_free() -> None:
    assert get_tier_policy("platinum").key == "free"
    assert get_tier_policy(None).key == "free"


def test_can_upload_is_strictly_below_limit() -> None:
    assert can_upload("free", 19) is True
    assert can_upload("free", 20) is False
    assert can_upload("free", 25) is False
    assert can_upload("basic", 20) is True


def test_remaining_and_usage_are_clamped() -> None:
    assert remaining_content("free", 5) == 15
    assert remaining_content("free", 30) == 0
    assert usage_percentage("free", 10) == 50.0
    assert usage_percentage("free", 40) == 100.0


def test_upgrade_prompt_threshold() -> None:
    assert should_show_upgrade_prompt("free", 15) is False
    assert should_show_upgrade_prompt("free", 16) is True
    assert should_show_upgrade_prompt("premium", 100) is False


def test_next_tier_walks_tier_order() -> None:
    assert next_tier("free").key == "basic"
    assert next_tier("pro").key == "premium"
    assert next_tier("premium") is None


def test_template_and_feature_gating() -> None:
    assert can_use_template("free", "timeline") is True
    assert can_use_template("free", "gallery") is False
    assert can_use_template("basic", "gallery") is True
    assert can_use_cover_photo("free") is False
    assert can_use_cover_photo("pro") is True
