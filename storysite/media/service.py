"""Gallery uploads and listing for an account's shared media library."""

from __future__ import annotations

from pathlib import PurePath
import re
import time
from typing import List, Optional
import uuid

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from storysite.accounts.service import get_account
from storysite.app.quota_service import ensure_upload_allowed, recompute_content_count
from storysite.core.config import get_settings
from storysite.core.errors import NotFoundError, ValidationError
from storysite.core.logger import get_logger
from storysite.core.metrics import record_media_uploaded
from storysite.media.providers.base import StorageProvider
from storysite.storage.models import Media


logger = get_logger("storysite.media")

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_-]+")


def _media_type(mime_type: str) -> str:
    normalized = (mime_type or "").strip().lower()
    if normalized.startswith("image/"):
        return "image"
    if normalized.startswith("video/"):
        return "video"
    raise ValidationError(f"Unsupported media type: {mime_type or 'unknown'}", code="unsupported_media_type")


def _asset_name(filename: str) -> str:
    stem = _UNSAFE_NAME_RE.sub("-", PurePath(filename or "upload").stem).strip("-") or "upload"
    return f"{int(time.time() * 1000)}-{stem[:60]}"


def gallery_folder(account_id: str) -> str:
    return f"{get_settings().storage_root_folder.strip('/')}/{account_id}/gallery"


def upload_media(
    session: Session,
    *,
    account_id: str,
    content: bytes,
    filename: str,
    mime_type: str,
    provider: StorageProvider,
) -> Media:
    """Store the asset remotely and record it as unplaced Media.

    Gated by the tier quota; the cached content count is recomputed after the
    row is written.
    """

    if not content:
        raise ValidationError("No file provided")
    if len(content) > get_settings().upload_max_bytes:
        raise ValidationError("File is too large", code="file_too_large")
    media_type = _media_type(mime_type)

    account = get_account(session, account_id)
    ensure_upload_allowed(account)

    uploaded = provider.upload(
        content,
        folder=gallery_folder(account.id),
        name=_asset_name(filename),
        mime_type=mime_type,
    )

    media = Media(
        id=str(uuid.uuid4()),
        account_id=account.id,
        type="video" if uploaded.resource_type == "video" else media_type,
        url=uploaded.url,
        thumbnail_url=uploaded.thumbnail_url,
        title=filename or None,
        storage_provider=uploaded.provider,
        remote_asset_id=uploaded.asset_id,
    )
    try:
        session.add(media)
        recompute_content_count(session, account.id)
        session.commit()
    except Exception:
        session.rollback()
        try:
            provider.delete(uploaded.asset_id, resource_type=uploaded.resource_type)
        except Exception as cleanup_exc:
            logger.warning("media_upload_cleanup_failed", asset_id=uploaded.asset_id, error=str(cleanup_exc))
        raise

    record_media_uploaded(media_type=media.type)
    logger.info(
        "media_uploaded",
        account_id=account.id,
        media_id=media.id,
        media_type=media.type,
        content_count=account.content_count,
    )
    return media


def list_media(session: Session, *, account_id: str, limit: Optional[int] = None) -> List[Media]:
    statement = select(Media).where(Media.account_id == account_id).order_by(desc(Media.created_at))
    if limit is not None:
        statement = statement.limit(max(1, min(limit, 500)))
    return list(session.scalars(statement).all())


def get_owned_media(session: Session, *, account_id: str, media_id: str) -> Media:
    media = session.scalar(select(Media).where(Media.id == media_id, Media.account_id == account_id))
    if media is None:
        raise NotFoundError("Media not found")
    return media
