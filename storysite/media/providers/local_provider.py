"""Filesystem-backed storage provider served by the app itself."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from storysite.media.providers.base import StorageProvider, StorageProviderError, UploadedAsset


PUBLIC_FILES_PREFIX = "/media/files/"


def _mime_extension(mime_type: str) -> str:
    normalized = mime_type.strip().lower()
    mapping = {
        "image/png": ".png",
        "image/jpeg": ".jpg",
        "image/jpg": ".jpg",
        "image/webp": ".webp",
        "image/gif": ".gif",
        "video/mp4": ".mp4",
        "video/webm": ".webm",
        "video/quicktime": ".mov",
    }
    return mapping.get(normalized, ".bin")


class LocalStorageProvider(StorageProvider):
    provider_name = "local"

    def __init__(self, *, root: Path, public_base_url: str) -> None:
        self._root = root
        self._public_base_url = public_base_url.strip().rstrip("/")

    def _url_prefix(self) -> str:
        return f"{self._public_base_url}{PUBLIC_FILES_PREFIX}"

    def resolve_path(self, asset_id: str) -> Optional[Path]:
        candidate = (self._root / asset_id).resolve()
        root = self._root.resolve()
        if root not in candidate.parents:
            return None
        return candidate

    def upload(self, content: bytes, *, folder: str, name: str, mime_type: str) -> UploadedAsset:
        if not self._public_base_url:
            raise StorageProviderError("app_public_base_url_missing_for_local_storage")

        target_dir = self._root / folder.strip("/")
        target_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{name}{_mime_extension(mime_type)}"
        (target_dir / filename).write_bytes(content)

        asset_id = (Path(folder.strip("/")) / filename).as_posix()
        return UploadedAsset(
            provider=self.provider_name,
            url=f"{self._url_prefix()}{asset_id}",
            resource_type="video" if mime_type.startswith("video/") else "image",
            asset_id=asset_id,
            payload={"bytes": len(content)},
        )

    def delete(self, asset_id: str, *, resource_type: str = "image") -> None:
        del resource_type
        path = self.resolve_path(asset_id)
        if path is None:
            raise StorageProviderError(f"local_storage_invalid_asset_id asset_id={asset_id}")
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageProviderError(f"local_storage_delete_failed asset_id={asset_id}") from exc

    def is_managed_url(self, url: str) -> bool:
        return bool(self._public_base_url) and url.startswith(self._url_prefix())

    def asset_id_from_url(self, url: str) -> Optional[str]:
        if not self.is_managed_url(url):
            return None
        return url[len(self._url_prefix()) :] or None
