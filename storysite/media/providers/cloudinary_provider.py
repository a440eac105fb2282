"""Cloudinary upload/destroy over the signed REST API."""

from __future__ import annotations

import hashlib
import re
import time
from typing import Any, Dict, Optional

import httpx

from storysite.media.providers.base import StorageProvider, StorageProviderError, UploadedAsset


CLOUDINARY_DELIVERY_HOST = "res.cloudinary.com"
_VERSION_SEGMENT_RE = re.compile(r"^v\d+$")
_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def is_cloudinary_url(url: str) -> bool:
    return CLOUDINARY_DELIVERY_HOST in url


def extract_cloudinary_public_id(url: str) -> Optional[str]:
    """Public id from a delivery URL.

    `https://res.cloudinary.com/<cloud>/image/upload/v123/folder/pic.jpg`
    yields `folder/pic`; the version segment is optional.
    """

    parts = url.split("/")
    if "upload" not in parts:
        return None
    after_upload = parts[parts.index("upload") + 1 :]
    if after_upload and _VERSION_SEGMENT_RE.match(after_upload[0]):
        after_upload = after_upload[1:]
    if not after_upload:
        return None
    public_id = _EXTENSION_RE.sub("", "/".join(after_upload))
    return public_id or None


class CloudinaryStorageProvider(StorageProvider):
    provider_name = "cloudinary"

    def __init__(
        self,
        *,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.cloudinary.com/v1_1",
        timeout_seconds: int = 30,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._cloud_name = cloud_name.strip()
        self._api_key = api_key.strip()
        self._api_secret = api_secret.strip()
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(1, timeout_seconds)
        self._client = client

    def _endpoint(self, resource_type: str, action: str) -> str:
        if not self._cloud_name:
            raise StorageProviderError("cloudinary_cloud_name_missing")
        if not self._api_key or not self._api_secret:
            raise StorageProviderError("cloudinary_credentials_missing")
        return f"{self._base_url}/{self._cloud_name}/{resource_type}/{action}"

    def _signed(self, params: Dict[str, str]) -> Dict[str, str]:
        signed = dict(params)
        signed["timestamp"] = str(int(time.time()))
        to_sign = "&".join(f"{key}={signed[key]}" for key in sorted(signed))
        signed["signature"] = hashlib.sha1(f"{to_sign}{self._api_secret}".encode("utf-8")).hexdigest()
        signed["api_key"] = self._api_key
        return signed

    def _post(self, url: str, *, data: Dict[str, str], files: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self._client is not None:
            response = self._client.post(url, data=data, files=files)
        else:
            with httpx.Client(timeout=self._timeout_seconds) as client:
                response = client.post(url, data=data, files=files)

        if response.status_code < 200 or response.status_code >= 300:
            detail = response.text.strip()
            if len(detail) > 240:
                detail = detail[:240] + "..."
            raise StorageProviderError(f"cloudinary_request_failed status={response.status_code} detail={detail}")

        try:
            body = response.json()
        except ValueError as exc:
            raise StorageProviderError("cloudinary_invalid_json_response") from exc
        if not isinstance(body, dict):
            raise StorageProviderError("cloudinary_invalid_json_response")
        return body

    def upload(self, content: bytes, *, folder: str, name: str, mime_type: str) -> UploadedAsset:
        endpoint = self._endpoint("auto", "upload")
        data = self._signed({"folder": folder, "public_id": name})
        body = self._post(endpoint, data=data, files={"file": (name, content, mime_type)})

        url = str(body.get("secure_url") or body.get("url") or "").strip()
        public_id = str(body.get("public_id") or "").strip()
        if not url or not public_id:
            raise StorageProviderError("cloudinary_upload_missing_url")
        return UploadedAsset(
            provider=self.provider_name,
            url=url,
            resource_type="video" if body.get("resource_type") == "video" else "image",
            asset_id=public_id,
            payload=body,
        )

    def delete(self, asset_id: str, *, resource_type: str = "image") -> None:
        endpoint = self._endpoint(resource_type, "destroy")
        body = self._post(endpoint, data=self._signed({"public_id": asset_id}))
        result = str(body.get("result") or "")
        if result not in {"ok", "not found"}:
            raise StorageProviderError(f"cloudinary_destroy_failed result={result or 'empty'}")

    def is_managed_url(self, url: str) -> bool:
        return is_cloudinary_url(url)

    def asset_id_from_url(self, url: str) -> Optional[str]:
        if not self.is_managed_url(url):
            return None
        return extract_cloudinary_public_id(url)
