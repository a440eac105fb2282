"""Provider contract for the remote blob storage backing the media library."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from storysite.core.errors import StorageProviderError


__all__ = ["StorageProvider", "StorageProviderError", "UploadedAsset"]


@dataclass(frozen=True)
class UploadedAsset:
    provider: str
    url: str
    resource_type: str
    asset_id: str
    thumbnail_url: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class StorageProvider(Protocol):
    provider_name: str

    def upload(self, content: bytes, *, folder: str, name: str, mime_type: str) -> UploadedAsset:
        raise NotImplementedError

    def delete(self, asset_id: str, *, resource_type: str = "image") -> None:
        """Remove a stored asset; raise StorageProviderError on failure."""
        raise NotImplementedError

    def is_managed_url(self, url: str) -> bool:
        raise NotImplementedError

    def asset_id_from_url(self, url: str) -> Optional[str]:
        raise NotImplementedError
