"""
SQLAlchemy ORM models for the provider catalog tables.

This module provides SQLAlchemy 2.0 typed declarative models that mirror the
`CatalogRecord` Pydantic model in `models.py`.

Storage notes:
- One table per provider; every table shares the same columns.
- `genres` and `countries` are stored as JSON arrays of strings.
- The upsert key `(provider, external_id)` is the composite primary key.
- `synced_at` is stamped by the store on every write.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from catalog_sync.persistence.models import CatalogKind


class Base(DeclarativeBase):
    """
    Declarative base class for all ORM models in this module.

    Subclassing `DeclarativeBase` enables SQLAlchemy 2.0 typed mappings via
    `Mapped[...]` and `mapped_column(...)`.
    """


class CatalogVideoColumns:
    """
    Columns shared by every provider table.

    Primary key:
    - (`provider`, `external_id`)
    """

    provider: Mapped[str] = mapped_column(String, primary_key=True)
    external_id: Mapped[str] = mapped_column(String, primary_key=True)

    # VARCHAR, not a PostgreSQL ENUM type: no shared type to create.
    kind: Mapped[CatalogKind] = mapped_column(
        SAEnum(
            CatalogKind,
            name="catalog_kind",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String, nullable=False, default="")
    title_localized: Mapped[str | None] = mapped_column(String, nullable=True)
    title_original: Mapped[str | None] = mapped_column(String, nullable=True)

    year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    kp_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    imdb_id: Mapped[str | None] = mapped_column(String, nullable=True)
    tmdb_id: Mapped[str | None] = mapped_column(String, nullable=True)

    poster_url: Mapped[str | None] = mapped_column(String, nullable=True)
    embed_url: Mapped[str | None] = mapped_column(String, nullable=True)
    quality_label: Mapped[str | None] = mapped_column(String, nullable=True)

    genres: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    countries: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    episode_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    provider_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    synced_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class FlixcdnVideo(CatalogVideoColumns, Base):
    """
    FlixCDN catalog records (external_id is the FlixCDN numeric id).
    """

    __tablename__ = "flixcdn_videos"

    __table_args__ = (
        Index("ix_flixcdn_videos_kp_id", "kp_id"),
        Index("ix_flixcdn_videos_imdb_id", "imdb_id"),
        Index("ix_flixcdn_videos_provider_updated_at", "provider_updated_at"),
    )


class VideoseedVideo(CatalogVideoColumns, Base):
    """
    Videoseed catalog records (external_id is the Videoseed numeric id).
    """

    __tablename__ = "videoseed_videos"

    __table_args__ = (
        Index("ix_videoseed_videos_kp_id", "kp_id"),
        Index("ix_videoseed_videos_imdb_id", "imdb_id"),
        Index("ix_videoseed_videos_provider_updated_at", "provider_updated_at"),
    )


PROVIDER_TABLES: dict[str, type[CatalogVideoColumns]] = {
    "flixcdn": FlixcdnVideo,
    "videoseed": VideoseedVideo,
}


class CatalogSyncState(Base):
    """
    Resumable checkpoint for full crawls.

    Primary key:
    - (`provider`, `scope`) where scope is "full" or a per-kind key
      ("movie", "serial").

    `cursor` is NULL when the next full crawl should start from the beginning.
    """

    __tablename__ = "catalog_sync_state"

    provider: Mapped[str] = mapped_column(String, primary_key=True)
    scope: Mapped[str] = mapped_column(String, primary_key=True)

    cursor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
