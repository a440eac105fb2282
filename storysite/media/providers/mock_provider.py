"""In-memory storage provider for local/dev usage."""

from __future__ import annotations

from typing import Dict, List, Optional

from storysite.media.providers.base import StorageProvider, StorageProviderError, UploadedAsset


MOCK_BASE_URL = "https://mock-storage.invalid"


class MockStorageProvider(StorageProvider):
    provider_name = "mock"

    def __init__(self, *, fail_deletes: bool = False) -> None:
        self._fail_deletes = fail_deletes
        self.assets: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    def upload(self, content: bytes, *, folder: str, name: str, mime_type: str) -> UploadedAsset:
        asset_id = f"{folder.strip('/')}/{name}"
        self.assets[asset_id] = content
        resource_type = "video" if mime_type.startswith("video/") else "image"
        return UploadedAsset(
            provider=self.provider_name,
            url=f"{MOCK_BASE_URL}/{resource_type}/upload/{asset_id}",
            resource_type=resource_type,
            asset_id=asset_id,
            payload={"bytes": len(content)},
        )

    def delete(self, asset_id: str, *, resource_type: str = "image") -> None:
        del resource_type
        self.deleted.append(asset_id)
        if self._fail_deletes:
            raise StorageProviderError("mock_storage_delete_failed")
        self.assets.pop(asset_id, None)

    def is_managed_url(self, url: str) -> bool:
        return url.startswith(f"{MOCK_BASE_URL}/")

    def asset_id_from_url(self, url: str) -> Optional[str]:
        if not self.is_managed_url(url):
            return None
        parts = url[len(MOCK_BASE_URL) + 1 :].split("/", 2)
        if len(parts) != 3 or parts[1] != "upload" or not parts[2]:
            return None
        return parts[2]
