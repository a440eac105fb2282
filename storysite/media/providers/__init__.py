"""Blob storage provider integrations."""

from storysite.media.providers.base import StorageProvider, StorageProviderError, UploadedAsset
from storysite.media.providers.cloudinary_provider import (
    CloudinaryStorageProvider,
    extract_cloudinary_public_id,
    is_cloudinary_url,
)
from storysite.media.providers.factory import get_storage_provider, reset_storage_provider_cache
from storysite.media.providers.local_provider import LocalStorageProvider
from storysite.media.providers.mock_provider import MockStorageProvider

__all__ = [
    "CloudinaryStorageProvider",
    "LocalStorageProvider",
    "MockStorageProvider",
    "StorageProvider",
    "StorageProviderError",
    "UploadedAsset",
    "extract_cloudinary_public_id",
    "get_storage_provider",
    "is_cloudinary_url",
    "reset_storage_provider_cache",
]
