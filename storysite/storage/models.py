"""SQLAlchemy ORM models for accounts, stories and the shared media library."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storysite.storage.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[Optional[str]] = mapped_column(String(120), unique=True, nullable=True)
    tier: Mapped[str] = mapped_column(String(32), nullable=False, default="free")
    # Denormalized; only storysite.app.quota_service.recompute_content_count writes it.
    content_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    stories: Mapped[list[Story]] = relationship("Story", back_populates="account")


class Story(Base):
    __tablename__ = "stories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    slug: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    domain: Mapped[str] = mapped_column(String(120), nullable=False)
    template: Mapped[str] = mapped_column(String(32), nullable=False, default="timeline")
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # A URL, not a foreign key to media.
    cover_photo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    account: Mapped[Account] = relationship("Account", back_populates="stories")
    chapters: Mapped[list[Chapter]] = relationship("Chapter", back_populates="story")
    settings: Mapped[Optional[StorySettings]] = relationship("StorySettings", back_populates="story", uselist=False)

    __table_args__ = (Index("ix_stories_account_updated_at", "account_id", "updated_at"),)


class Chapter(Base):
    __tablename__ = "chapters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    story_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("stories.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    story: Mapped[Story] = relationship("Story", back_populates="chapters")

    __table_args__ = (Index("ix_chapters_story_order", "story_id", "order"),)


class Media(Base):
    __tablename__ = "media"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="image")
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    storage_provider: Mapped[str] = mapped_column(String(24), nullable=False, default="mock")
    remote_asset_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_media_account_created_at", "account_id", "created_at"),
        Index("ix_media_account_url", "account_id", "url"),
    )


class MediaReference(Base):
    """Placement of a Media row inside a story or one of its chapters.

    Exactly one of story_id / chapter_id is set. placement_key encodes the
    container as "story:<id>" or "chapter:<id>" so the (media, container)
    pair can carry a real unique constraint despite the nullable columns.
    """

    __tablename__ = "media_references"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    media_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("media.id", ondelete="CASCADE"),
        nullable=False,
    )
    story_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("stories.id", ondelete="CASCADE"),
        nullable=True,
    )
    chapter_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("chapters.id", ondelete="CASCADE"),
        nullable=True,
    )
    placement_key: Mapped[str] = mapped_column(String(48), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    media: Mapped[Media] = relationship("Media")

    __table_args__ = (
        UniqueConstraint("media_id", "placement_key", name="uq_media_references_media_placement"),
        CheckConstraint("(story_id IS NULL) <> (chapter_id IS NULL)", name="ck_media_references_single_container"),
        Index("ix_media_references_story_order", "story_id", "order"),
        Index("ix_media_references_chapter_order", "chapter_id", "order"),
    )


class StorySettings(Base):
    __tablename__ = "story_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    story_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("stories.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    primary_color: Mapped[str] = mapped_column(String(16), nullable=False, default="#3b82f6")
    font_family: Mapped[str] = mapped_column(String(64), nullable=False, default="Inter")
    cover_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    logo_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    enable_comments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enable_download: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    story: Mapped[Story] = relationship("Story", back_populates="settings")
