"""Media library and placement routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from storysite.accounts.service import get_account
from storysite.auth.dependencies import require_auth_context
from storysite.auth.jwt import AuthContext
from storysite.core.config import get_settings
from storysite.core.errors import ValidationError
from storysite.media.providers.base import StorageProvider
from storysite.media.providers.factory import get_storage_provider
from storysite.media.providers.local_provider import LocalStorageProvider
from storysite.media.references import delete_media, link_media, unlink_reference
from storysite.media.service import get_owned_media, list_media, upload_media
from storysite.media.views import media_item, reference_item
from storysite.schemas.media import (
    MediaDeleteResponse,
    MediaItem,
    MediaLinkRequest,
    MediaLinkResponse,
    MediaListResponse,
    MediaUploadResponse,
)
from storysite.storage.db import get_session


router = APIRouter(prefix="/media", tags=["media"])
references_router = APIRouter(prefix="/media-references", tags=["media"])


@router.get("", response_model=MediaListResponse)
def list_gallery(
    limit: Optional[int] = None,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> MediaListResponse:
    items = list_media(session, account_id=auth.account_id, limit=limit)
    return MediaListResponse(items=[media_item(item) for item in items])


@router.post("/upload", response_model=MediaUploadResponse, status_code=201)
async def upload(
    file: UploadFile = File(...),
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
    provider: StorageProvider = Depends(get_storage_provider),
) -> MediaUploadResponse:
    max_bytes = get_settings().upload_max_bytes
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise ValidationError("File is too large", code="file_too_large")
    media = upload_media(
        session,
        account_id=auth.account_id,
        content=content,
        filename=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        provider=provider,
    )
    account = get_account(session, auth.account_id)
    return MediaUploadResponse(media=media_item(media), content_count=account.content_count)


@router.post("/link", response_model=MediaLinkResponse)
def link(
    payload: MediaLinkRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> MediaLinkResponse:
    created = link_media(
        session,
        account_id=auth.account_id,
        media_ids=payload.media_ids,
        story_id=payload.story_id,
        chapter_id=payload.chapter_id,
        order=payload.order,
    )
    return MediaLinkResponse(linked=len(created), references=[reference_item(reference) for reference in created])


@router.get("/files/{asset_id:path}")
def local_file(asset_id: str, provider: StorageProvider = Depends(get_storage_provider)) -> FileResponse:
    if not isinstance(provider, LocalStorageProvider):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="media_file_unavailable")
    file_path = provider.resolve_path(asset_id)
    if file_path is None or not file_path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="media_file_not_found")
    return FileResponse(file_path, filename=file_path.name)


@router.get("/{media_id}", response_model=MediaItem)
def get_media(
    media_id: str,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> MediaItem:
    return media_item(get_owned_media(session, account_id=auth.account_id, media_id=media_id))


@router.delete("/{media_id}", response_model=MediaDeleteResponse)
def delete(
    media_id: str,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
    provider: StorageProvider = Depends(get_storage_provider),
) -> MediaDeleteResponse:
    result = delete_media(session, account_id=auth.account_id, media_id=media_id, provider=provider)
    return MediaDeleteResponse(
        media_id=result.media_id,
        references_removed=result.references_removed,
        remote_delete=result.remote_delete,
        content_count=result.content_count,
    )


@references_router.delete("/{reference_id}", status_code=204)
def unlink(
    reference_id: str,
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> None:
    unlink_reference(session, account_id=auth.account_id, reference_id=reference_id)
