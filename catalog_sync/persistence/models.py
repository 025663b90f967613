"""
Provider-agnostic catalog schemas.

These models represent the normalized records derived from provider pages and
the values passed between the pipeline stages.

Design notes:
- `(provider, external_id)` is the upsert key; re-syncing overwrites every field.
- `title` is the resolved display title (localized, then original, then "").
- Cross-provider ids (kp/imdb/tmdb) are carried for downstream matching only.
- `synced_at` is not part of the record; the store stamps it at write time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


ProviderName = Literal["flixcdn", "videoseed"]
SyncMode = Literal["recent", "full"]
Cursor = int


class CatalogKind(str, Enum):
    MOVIE = "movie"
    SERIES = "series"


class CatalogRecord(BaseModel):
    """
    Upsert key: (provider, external_id)
    """

    model_config = ConfigDict(extra="forbid")

    provider: ProviderName
    external_id: str
    kind: CatalogKind

    title: str = ""
    title_localized: str | None = None
    title_original: str | None = None

    year: int | None = None

    # Cross-source anchors (optional, not guaranteed to exist)
    kp_id: int | None = None
    imdb_id: str | None = None
    tmdb_id: str | None = None

    poster_url: str | None = None
    embed_url: str | None = None
    quality_label: str | None = None

    genres: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)

    episode_count: int | None = None

    provider_updated_at: datetime | None = None


class Rejected(BaseModel):
    """
    A raw item the normalizer refused, with the reason.
    """

    model_config = ConfigDict(extra="forbid")

    provider: ProviderName
    reason: str
    raw_id: Any = None


DecodeOutcome = Union[CatalogRecord, Rejected]


@dataclass(frozen=True)
class UpstreamPage:
    """
    One decoded provider page.

    items:
        Raw item objects, still in the provider's shape.
    next_cursor:
        Position reported by the provider for the following page, if any.
    total:
        Provider-reported total item count, if any.
    """

    items: list[dict[str, Any]] = field(default_factory=list)
    next_cursor: Cursor | None = None
    total: int | None = None


@dataclass(frozen=True)
class SyncResult:
    """
    Outcome of one batch, or the accumulation of several.
    """

    scanned: int = 0
    upserted: int = 0
    next_cursor: Cursor | None = None
    done: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "scanned": self.scanned,
            "upserted": self.upserted,
            "nextCursor": self.next_cursor,
            "done": self.done,
        }
