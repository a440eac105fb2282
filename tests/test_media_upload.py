from __future__ import annotations

import pytest
from sqlalchemy import func, select

from storysite.app.quota_service import recompute_content_count
from storysite.core.errors import QuotaExceededError, StorageProviderError, ValidationError
from storysite.media.providers.mock_provider import MockStorageProvider
from storysite.media.service import gallery_folder, list_media, upload_media
from storysite.storage.models import Account, Media


class FailingUploadProvider(MockStorageProvider):
    def upload(self, content: bytes, *, folder: str, name: str, mime_type: str):
        raise StorageProviderError("upload_failed")


def _fill_library(session, make_media, account: Account, count: int) -> None:
    for _ in range(count):
        make_media(account)
    recompute_content_count(session, account.id)
    session.commit()


def test_upload_creates_unplaced_media_and_recounts(session, make_account) -> None:
    account = make_account()
    provider = MockStorageProvider()

    media = upload_media(
        session,
        account_id=account.id,
        content=b"\x89PNG fake",
        filename="beach day.png",
        mime_type="image/png",
        provider=provider,
    )

    assert media.type == "image"
    assert media.url.startswith("https://mock-storage.invalid/image/upload/")
    assert media.remote_asset_id.startswith(gallery_folder(account.id) + "/")
    assert media.remote_asset_id.endswith("-beach-day")
    assert session.get(Account, account.id).content_count == 1
    assert len(provider.assets) == 1


def test_upload_up_to_limit_then_rejects(session, make_account, make_media) -> None:
    account = make_account(tier="free")
    _fill_library(session, make_media, account, 19)
    provider = MockStorageProvider()

    upload_media(
        session,
        account_id=account.id,
        content=b"twentieth",
        filename="twentieth.jpg",
        mime_type="image/jpeg",
        provider=provider,
    )
    assert session.get(Account, account.id).content_count == 20

    with pytest.raises(QuotaExceededError) as exc_info:
        upload_media(
            session,
            account_id=account.id,
            content=b"one too many",
            filename="extra.jpg",
            mime_type="image/jpeg",
            provider=provider,
        )

    payload = exc_info.value.to_payload()
    assert payload["tier"] == "free"
    assert payload["content_count"] == 20
    assert payload["content_limit"] == 20
    assert session.get(Account, account.id).content_count == 20
    assert session.scalar(select(func.count(Media.id)).where(Media.account_id == account.id)) == 20
    assert len(provider.assets) == 1


def test_upload_rejects_unsupported_and_empty_files(session, make_account) -> None:
    account = make_account()
    provider = MockStorageProvider()

    with pytest.raises(ValidationError):
        upload_media(
            session,
            account_id=account.id,
            content=b"",
            filename="empty.png",
            mime_type="image/png",
            provider=provider,
        )
    with pytest.raises(ValidationError) as exc_info:
        upload_media(
            session,
            account_id=account.id,
            content=b"%PDF",
            filename="doc.pdf",
            mime_type="application/pdf",
            provider=provider,
        )
    assert exc_info.value.code == "unsupported_media_type"
    assert provider.assets == {}


def test_provider_failure_leaves_no_media_row(session, make_account) -> None:
    account = make_account()

    with pytest.raises(StorageProviderError):
        upload_media(
            session,
            account_id=account.id,
            content=b"bytes",
            filename="pic.png",
            mime_type="image/png",
            provider=FailingUploadProvider(),
        )

    assert list_media(session, account_id=account.id) == []
    assert session.get(Account, account.id).content_count == 0


def test_list_media_is_scoped_to_owner(session, make_account, make_media) -> None:
    owner = make_account()
    other = make_account()
    mine = make_media(owner)
    make_media(other)

    assert [media.id for media in list_media(session, account_id=owner.id)] == [mine.id]


def test_failed_media_write_deletes_the_uploaded_asset(session, make_account, monkeypatch) -> None:
    account = make_account()
    provider = MockStorageProvider()

    def broken_recount(session, account_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("storysite.media.service.recompute_content_count", broken_recount)

    with pytest.raises(RuntimeError):
        upload_media(
            session,
            account_id=account.id,
            content=b"bytes",
            filename="pic.png",
            mime_type="image/png",
            provider=provider,
        )

    assert len(provider.deleted) == 1
    assert provider.deleted[0].startswith(gallery_folder(account.id))
    assert provider.assets == {}
    assert list_media(session, account_id=account.id) == []
