from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional
import uuid

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storysite.billing.tiers import load_tiers
from storysite.core.config import get_settings
from storysite.media.providers.factory import reset_storage_provider_cache
from storysite.storage.db import Base, _enable_sqlite_foreign_keys, load_models
from storysite.storage.models import Account, Media
from storysite.storage.security import hash_password


TIERS_FILE = Path(__file__).resolve().parents[1] / "config" / "tiers.yaml"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
    monkeypatch.setenv("TIERS_FILE_PATH", str(TIERS_FILE))
    monkeypatch.setenv("STORAGE_PROVIDER", "mock")
    monkeypatch.setenv("PLATFORM_DOMAIN_SUFFIX", "evertory.com")
    get_settings.cache_clear()
    load_tiers.cache_clear()
    reset_storage_provider_cache()
    yield
    get_settings.cache_clear()
    load_tiers.cache_clear()
    reset_storage_provider_cache()


def _build_session() -> Session:
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
    return factory()


@pytest.fixture
def session():
    db = _build_session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_account(session) -> Callable[..., Account]:
    def factory(
        *,
        name: str = "Family Archive",
        email: Optional[str] = None,
        domain: Optional[str] = None,
        tier: str = "free",
        content_count: int = 0,
    ) -> Account:
        account = Account(
            id=str(uuid.uuid4()),
            name=name,
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            password_hash=hash_password("correct-horse-battery", rounds=1000),
            domain=domain,
            tier=tier,
            content_count=content_count,
        )
        session.add(account)
        session.commit()
        return account

    return factory


@pytest.fixture
def make_media(session) -> Callable[..., Media]:
    def factory(account: Account, *, url: Optional[str] = None, remote_asset_id: Optional[str] = None) -> Media:
        media_id = str(uuid.uuid4())
        asset_id = remote_asset_id or f"storysite/{account.id}/gallery/{media_id}"
        media = Media(
            id=media_id,
            account_id=account.id,
            type="image",
            url=url or f"https://mock-storage.invalid/image/upload/{asset_id}",
            storage_provider="mock",
            remote_asset_id=asset_id,
        )
        session.add(media)
        session.commit()
        return media

    return factory


@pytest.fixture
def commit_before_flush(session) -> Callable[[Callable[[], list]], None]:
    """Commit rows from a second session right before `session` next flushes."""

    listeners = []

    def install(build_rows: Callable[[], list]) -> None:
        fired = []

        def insert_once(flushing, flush_context, instances) -> None:
            # Removing a listener while SQLAlchemy iterates its listener deque
            # raises; fire once via a flag and let teardown unregister it.
            if fired:
                return
            fired.append(True)
            other = Session(bind=session.get_bind())
            try:
                other.add_all(build_rows())
                other.commit()
            finally:
                other.close()

        event.listen(session, "before_flush", insert_once)
        listeners.append(insert_once)

    yield install
    for listener in listeners:
        event.remove(session, "before_flush", listener)
