"""story core: accounts, stories, chapters, media library and placements

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("domain", sa.String(length=120), nullable=True),
        sa.Column("tier", sa.String(length=32), nullable=False, server_default="free"),
        sa.Column("content_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("domain", name="uq_accounts_domain"),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)

    op.create_table(
        "stories",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("account_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("subtitle", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("slug", sa.String(length=80), nullable=False),
        sa.Column("domain", sa.String(length=120), nullable=False),
        sa.Column("template", sa.String(length=32), nullable=False, server_default="timeline"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("cover_photo", sa.String(length=500), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_stories_slug"),
    )
    op.create_index("ix_stories_account_updated_at", "stories", ["account_id", "updated_at"], unique=False)

    op.create_table(
        "chapters",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("story_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["story_id"], ["stories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chapters_story_order", "chapters", ["story_id", "order"], unique=False)

    op.create_table(
        "media",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("account_id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="image"),
        sa.Column("url", sa.String(length=500), nullable=False),
        sa.Column("thumbnail_url", sa.String(length=500), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("storage_provider", sa.String(length=24), nullable=False, server_default="mock"),
        sa.Column("remote_asset_id", sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_media_account_created_at", "media", ["account_id", "created_at"], unique=False)
    op.create_index("ix_media_account_url", "media", ["account_id", "url"], unique=False)

    op.create_table(
        "media_references",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("media_id", sa.String(length=36), nullable=False),
        sa.Column("story_id", sa.String(length=36), nullable=True),
        sa.Column("chapter_id", sa.String(length=36), nullable=True),
        sa.Column("placement_key", sa.String(length=48), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.ForeignKeyConstraint(["media_id"], ["media.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["story_id"], ["stories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["chapter_id"], ["chapters.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("media_id", "placement_key", name="uq_media_references_media_placement"),
        sa.CheckConstraint(
            "(story_id IS NULL) <> (chapter_id IS NULL)",
            name="ck_media_references_single_container",
        ),
    )
    op.create_index("ix_media_references_story_order", "media_references", ["story_id", "order"], unique=False)
    op.create_index("ix_media_references_chapter_order", "media_references", ["chapter_id", "order"], unique=False)

    op.create_table(
        "story_settings",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("story_id", sa.String(length=36), nullable=False),
        sa.Column("primary_color", sa.String(length=16), nullable=False, server_default="#3b82f6"),
        sa.Column("font_family", sa.String(length=64), nullable=False, server_default="Inter"),
        sa.Column("cover_image", sa.String(length=500), nullable=True),
        sa.Column("logo_image", sa.String(length=500), nullable=True),
        sa.Column("enable_comments", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("enable_download", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.ForeignKeyConstraint(["story_id"], ["stories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("story_id", name="uq_story_settings_story_id"),
    )


def downgrade() -> None:
    op.drop_table("story_settings")
    op.drop_index("ix_media_references_chapter_order", table_name="media_references")
    op.drop_index("ix_media_references_story_order", table_name="media_references")
    op.drop_table("media_references")
    op.drop_index("ix_media_account_url", table_name="media")
    op.drop_index("ix_media_account_created_at", table_name="media")
    op.drop_table("media")
    op.drop_index("ix_chapters_story_order", table_name="chapters")
    op.drop_table("chapters")
    op.drop_index("ix_stories_account_updated_at", table_name="stories")
    op.drop_table("stories")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_table("accounts")
