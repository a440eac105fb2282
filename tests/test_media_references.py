from __future__ import annotations

import pytest
from sqlalchemy import select

from storysite.core.errors import ForbiddenError, NotFoundError, ValidationError
from storysite.media.placement import ChapterPlacement, StoryPlacement, placement_columns, placement_for
from storysite.media.providers.mock_provider import MockStorageProvider
from storysite.media.references import (
    REMOTE_DELETED,
    REMOTE_FAILED,
    REMOTE_SKIPPED_SHARED,
    REMOTE_SKIPPED_UNMANAGED,
    delete_media,
    link_media,
    unlink_reference,
)
from storysite.storage.models import Account, Media, MediaReference
from storysite.stories.service import create_chapter, create_story, get_story_content


@pytest.fixture
def owner(make_account) -> Account:
    return make_account(name="Owner", domain="owner.evertory.com")


@pytest.fixture
def story(session, owner):
    return create_story(session, account_id=owner.id, title="Road Trip")


def _references(session, media_id: str) -> list[MediaReference]:
    return list(session.scalars(select(MediaReference).where(MediaReference.media_id == media_id)).all())


def test_placement_keys_distinguish_containers() -> None:
    assert placement_for("s1") == StoryPlacement(story_id="s1")
    assert placement_for("s1", "c1") == ChapterPlacement(chapter_id="c1")
    assert placement_columns(placement_for("s1")) == {"story_id": "s1", "chapter_id": None, "placement_key": "story:s1"}
    assert placement_columns(placement_for("s1", "c1"))["placement_key"] == "chapter:c1"


def test_link_media_is_idempotent(session, owner, story, make_media) -> None:
    first = make_media(owner)
    second = make_media(owner)

    created = link_media(session, account_id=owner.id, media_ids=[first.id, second.id, first.id], story_id=story.id)
    assert sorted(reference.media_id for reference in created) == sorted([first.id, second.id])

    again = link_media(session, account_id=owner.id, media_ids=[first.id, second.id], story_id=story.id)
    assert again == []
    assert len(_references(session, first.id)) == 1


def test_same_media_in_story_and_chapter(session, owner, story, make_media) -> None:
    media = make_media(owner)
    chapter = create_chapter(session, account_id=owner.id, story_id=story.id, title="Day One")

    link_media(session, account_id=owner.id, media_ids=[media.id], story_id=story.id)
    link_media(session, account_id=owner.id, media_ids=[media.id], story_id=story.id, chapter_id=chapter.id, order=2)

    references = _references(session, media.id)
    assert len(references) == 2
    content = get_story_content(session, account_id=owner.id, story_id=story.id)
    assert [placed.media.id for placed in content.media] == [media.id]
    assert [placed.media.id for placed in content.chapters[0].media] == [media.id]
    assert content.chapters[0].media[0].order == 2


def test_link_rejects_whole_batch_when_any_media_is_foreign(session, owner, story, make_account, make_media) -> None:
    mine = make_media(owner)
    theirs = make_media(make_account(name="Stranger"))

    with pytest.raises(NotFoundError):
        link_media(session, account_id=owner.id, media_ids=[mine.id, theirs.id], story_id=story.id)
    assert _references(session, mine.id) == []


def test_link_requires_owned_story_and_input(session, owner, story, make_account, make_media) -> None:
    media = make_media(owner)
    stranger = make_account(name="Stranger")

    with pytest.raises(ValidationError):
        link_media(session, account_id=owner.id, media_ids=[], story_id=story.id)
    with pytest.raises(NotFoundError):
        link_media(session, account_id=stranger.id, media_ids=[media.id], story_id=story.id)
    with pytest.raises(NotFoundError):
        link_media(session, account_id=owner.id, media_ids=[media.id], story_id=story.id, chapter_id="nope")


def test_unlink_keeps_media_and_other_placements(session, owner, story, make_media) -> None:
    media = make_media(owner)
    chapter = create_chapter(session, account_id=owner.id, story_id=story.id, title="Day One")
    story_ref = link_media(session, account_id=owner.id, media_ids=[media.id], story_id=story.id)[0]
    link_media(session, account_id=owner.id, media_ids=[media.id], story_id=story.id, chapter_id=chapter.id)

    unlink_reference(session, account_id=owner.id, reference_id=story_ref.id)

    assert session.get(Media, media.id) is not None
    remaining = _references(session, media.id)
    assert [reference.chapter_id for reference in remaining] == [chapter.id]


def test_unlink_missing_or_foreign_reference(session, owner, story, make_account, make_media) -> None:
    media = make_media(owner)
    chapter = create_chapter(session, account_id=owner.id, story_id=story.id, title="Day One")
    reference = link_media(
        session, account_id=owner.id, media_ids=[media.id], story_id=story.id, chapter_id=chapter.id
    )[0]
    stranger = make_account(name="Stranger")

    with pytest.raises(NotFoundError):
        unlink_reference(session, account_id=owner.id, reference_id="missing")
    with pytest.raises(ForbiddenError):
        unlink_reference(session, account_id=stranger.id, reference_id=reference.id)
    assert len(_references(session, media.id)) == 1


def test_delete_media_removes_placements_and_remote_asset(session, owner, story, make_media) -> None:
    media = make_media(owner)
    link_media(session, account_id=owner.id, media_ids=[media.id], story_id=story.id)
    provider = MockStorageProvider()

    result = delete_media(session, account_id=owner.id, media_id=media.id, provider=provider)

    assert result.references_removed == 1
    assert result.remote_delete == REMOTE_DELETED
    assert result.content_count == 0
    assert provider.deleted == [media.remote_asset_id]
    assert session.get(Media, media.id) is None
    assert _references(session, media.id) == []


def test_delete_media_skips_remote_when_url_is_shared(session, owner, make_media) -> None:
    media = make_media(owner)
    twin = make_media(owner, url=media.url, remote_asset_id=media.remote_asset_id)
    provider = MockStorageProvider()

    result = delete_media(session, account_id=owner.id, media_id=media.id, provider=provider)

    assert result.remote_delete == REMOTE_SKIPPED_SHARED
    assert provider.deleted == []
    assert session.get(Media, twin.id) is not None
    assert result.content_count == 1


def test_delete_media_skips_unmanaged_urls(session, owner, make_media) -> None:
    media = make_media(owner, url="https://example.org/pic.jpg", remote_asset_id="")
    provider = MockStorageProvider()

    result = delete_media(session, account_id=owner.id, media_id=media.id, provider=provider)

    assert result.remote_delete == REMOTE_SKIPPED_UNMANAGED
    assert provider.deleted == []


def test_delete_media_succeeds_when_remote_delete_fails(session, owner, make_media) -> None:
    media = make_media(owner)
    provider = MockStorageProvider(fail_deletes=True)

    result = delete_media(session, account_id=owner.id, media_id=media.id, provider=provider)

    assert result.remote_delete == REMOTE_FAILED
    assert provider.deleted == [media.remote_asset_id]
    assert session.get(Media, media.id) is None


def test_delete_media_of_another_account_is_not_found(session, owner, make_account, make_media) -> None:
    media = make_media(owner)
    stranger = make_account(name="Stranger")

    with pytest.raises(NotFoundError):
        delete_media(session, account_id=stranger.id, media_id=media.id, provider=MockStorageProvider())
    assert session.get(Media, media.id) is not None


def test_overlapping_link_of_same_media_is_a_no_op(session, owner, story, make_media, commit_before_flush) -> None:
    raced = make_media(owner)
    fresh = make_media(owner)
    commit_before_flush(
        lambda: [MediaReference(media_id=raced.id, **placement_columns(placement_for(story.id)))]
    )

    created = link_media(session, account_id=owner.id, media_ids=[raced.id, fresh.id], story_id=story.id)

    assert [reference.media_id for reference in created] == [fresh.id]
    assert len(_references(session, raced.id)) == 1
    assert len(_references(session, fresh.id)) == 1


def test_unlink_in_one_story_keeps_media_in_another(session, owner, story, make_media) -> None:
    other_story = create_story(session, account_id=owner.id, title="Second Trip")
    media = make_media(owner)
    link_media(session, account_id=owner.id, media_ids=[media.id], story_id=story.id)
    link_media(session, account_id=owner.id, media_ids=[media.id], story_id=other_story.id)
    in_first = next(reference for reference in _references(session, media.id) if reference.story_id == story.id)

    unlink_reference(session, account_id=owner.id, reference_id=in_first.id)

    assert session.get(Media, media.id) is not None
    first = get_story_content(session, account_id=owner.id, story_id=story.id)
    second = get_story_content(session, account_id=owner.id, story_id=other_story.id)
    assert first.media == []
    assert [placed.media.id for placed in second.media] == [media.id]
