"""Factory to resolve the active storage provider."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from storysite.core.config import get_settings
from storysite.media.providers.base import StorageProvider
from storysite.media.providers.cloudinary_provider import CloudinaryStorageProvider
from storysite.media.providers.local_provider import LocalStorageProvider
from storysite.media.providers.mock_provider import MockStorageProvider


def _media_storage_root() -> Path:
    configured = Path(get_settings().media_storage_path)
    if configured.is_absolute():
        return configured
    return Path.cwd() / configured


@lru_cache(maxsize=1)
def get_storage_provider() -> StorageProvider:
    settings = get_settings()
    provider = settings.storage_provider.strip().lower()
    if provider == "cloudinary":
        return CloudinaryStorageProvider(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            base_url=settings.cloudinary_api_base_url,
            timeout_seconds=settings.cloudinary_timeout_seconds,
        )
    if provider == "local":
        return LocalStorageProvider(root=_media_storage_root(), public_base_url=settings.app_public_base_url)
    return MockStorageProvider()


def reset_storage_provider_cache() -> None:
    get_storage_provider.cache_clear()
