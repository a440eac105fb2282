from __future__ import annotations

import uuid

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storysite.api.main as api_main
from storysite.app.quota_service import recompute_content_count
from storysite.core.config import get_settings
from storysite.media.providers.factory import get_storage_provider
from storysite.media.providers.mock_provider import MockStorageProvider
from storysite.storage.db import Base, _enable_sqlite_foreign_keys, get_session, load_models
from storysite.storage.models import Account, Media


@pytest.fixture
def api():
    load_models()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    provider = MockStorageProvider()

    def override_session():
        session = factory()
        try:
            yield session
        finally:
            session.close()

    api_main.app.dependency_overrides[get_session] = override_session
    api_main.app.dependency_overrides[get_storage_provider] = lambda: provider
    try:
        yield TestClient(api_main.app), factory, provider
    finally:
        api_main.app.dependency_overrides.clear()


def _register_and_login(client: TestClient, *, name: str, email: str, domain: str | None = None) -> dict:
    payload = {"name": name, "email": email, "password": "password-123"}
    if domain is not None:
        payload["domain"] = domain
    registered = client.post("/accounts/register", json=payload)
    assert registered.status_code == 201, registered.text

    login = client.post("/auth/login", json={"email": email, "password": "password-123"})
    assert login.status_code == 200, login.text
    return {"Authorization": f"Bearer {login.json()['access_token']}"}


def test_publish_story_and_resolve_public_site(api) -> None:
    client, _factory, provider = api

    check = client.post("/accounts/check-domain", json={"domain": "My Family!!"})
    assert check.json() == {"available": True, "domain": "my-family.evertory.com"}

    headers = _register_and_login(client, name="The Family", email="family@example.com", domain="My Family!!")
    taken = client.post("/accounts/check-domain", json={"domain": "my family"})
    assert taken.json()["available"] is False

    story = client.post("/stories", json={"title": "Summer Trip"}, headers=headers)
    assert story.status_code == 201
    story_id = story.json()["id"]
    assert story.json()["slug"] == "summer-trip"
    assert story.json()["domain"] == "my-family.evertory.com"

    chapter = client.post(f"/stories/{story_id}/chapters", json={"title": "Arrival"}, headers=headers)
    assert chapter.status_code == 201
    chapter_id = chapter.json()["id"]

    upload = client.post(
        "/media/upload",
        files={"file": ("beach.png", b"\x89PNG bytes", "image/png")},
        headers=headers,
    )
    assert upload.status_code == 201, upload.text
    media_id = upload.json()["media"]["id"]
    assert upload.json()["content_count"] == 1

    link_body = {"media_ids": [media_id], "story_id": story_id, "chapter_id": chapter_id}
    linked = client.post("/media/link", json=link_body, headers=headers)
    assert linked.json()["linked"] == 1
    assert client.post("/media/link", json=link_body, headers=headers).json()["linked"] == 0

    assert client.get("/sites/my-family/summer-trip").status_code == 404

    published = client.patch(f"/stories/{story_id}", json={"is_public": True}, headers=headers)
    assert published.status_code == 200
    assert published.json()["is_public"] is True

    site = client.get("/sites/my-family/summer-trip")
    assert site.status_code == 200
    body = site.json()
    assert body["author_name"] == "The Family"
    assert body["url"].endswith("/site/my-family/summer-trip")
    assert body["display_url"].startswith("localhost:")
    assert body["display_url"].endswith("/site/my-family/summer-trip")
    assert body["story"]["chapters"][0]["media"][0]["media"]["id"] == media_id

    account_site = client.get("/sites/my-family.evertory.com")
    assert account_site.status_code == 200
    assert account_site.json()["stories"][0]["media_count"] == 1
    assert account_site.json()["display_url"].endswith("/site/my-family")

    reference_id = linked.json()["references"][0]["id"]
    assert client.delete(f"/media-references/{reference_id}", headers=headers).status_code == 204
    assert client.get(f"/media/{media_id}", headers=headers).status_code == 200

    deleted = client.delete(f"/media/{media_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["remote_delete"] == "deleted"
    assert deleted.json()["content_count"] == 0
    assert len(provider.deleted) == 1

    quota = client.get("/accounts/me/quota", headers=headers)
    assert quota.json()["content_count"] == 0
    assert quota.json()["content_limit"] == 20


def test_errors_map_to_status_codes(api) -> None:
    client, factory, _provider = api
    headers = _register_and_login(client, name="Quota Tester", email="quota@example.com")
    other_headers = _register_and_login(client, name="Someone Else", email="else@example.com")

    assert client.get("/stories").status_code == 401
    assert client.get("/sites/nobody").json()["code"] == "site_not_found"

    duplicate = client.post(
        "/accounts/register",
        json={"name": "Dup", "email": "quota@example.com", "password": "password-123"},
    )
    assert duplicate.status_code == 409

    gallery = client.post("/stories", json={"title": "Album", "template": "gallery"}, headers=headers)
    assert gallery.status_code == 403
    assert gallery.json()["code"] == "template_not_available"

    story_id = client.post("/stories", json={"title": "Album"}, headers=headers).json()["id"]
    assert client.get(f"/stories/{story_id}", headers=other_headers).status_code == 404

    session = factory()
    try:
        account = session.scalar(select(Account).where(Account.email == "quota@example.com"))
        for index in range(20):
            session.add(
                Media(
                    id=str(uuid.uuid4()),
                    account_id=account.id,
                    url=f"https://mock-storage.invalid/image/upload/seed/{index}",
                )
            )
        recompute_content_count(session, account.id)
        session.commit()
    finally:
        session.close()

    blocked = client.post(
        "/media/upload",
        files={"file": ("extra.png", b"bytes", "image/png")},
        headers=headers,
    )
    assert blocked.status_code == 403
    assert blocked.json() == {
        "detail": blocked.json()["detail"],
        "code": "quota_exceeded",
        "tier": "free",
        "content_count": 20,
        "content_limit": 20,
    }

    empty_link = client.post("/media/link", json={"media_ids": [], "story_id": story_id}, headers=headers)
    assert empty_link.status_code == 422


def test_upload_larger_than_limit_is_rejected_before_storage(api, monkeypatch) -> None:
    client, _factory, provider = api
    headers = _register_and_login(client, name="Big Files", email="big@example.com")
    monkeypatch.setenv("UPLOAD_MAX_BYTES", "8")
    get_settings.cache_clear()

    too_large = client.post(
        "/media/upload",
        files={"file": ("huge.png", b"123456789", "image/png")},
        headers=headers,
    )
    assert too_large.status_code == 400
    assert too_large.json()["code"] == "file_too_large"
    assert provider.assets == {}

    fits = client.post(
        "/media/upload",
        files={"file": ("small.png", b"12345678", "image/png")},
        headers=headers,
    )
    assert fits.status_code == 201, fits.text
