"""
Provider adapters for the sync driver.

A source knows how one provider enumerates its catalog: where a crawl starts,
how large a page may be, how to fetch a page for a mode, how to decode an item
and how to compute the following cursor. The driver stays provider-agnostic.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from catalog_sync.client import flixcdn, videoseed
from catalog_sync.client.extract import decode_flixcdn_item, decode_videoseed_item
from catalog_sync.client.flixcdn import FlixcdnClient
from catalog_sync.client.videoseed import VideoseedClient
from catalog_sync.config.provider_settings import FlixcdnSettings, VideoseedSettings
from catalog_sync.persistence.models import (
    CatalogKind,
    Cursor,
    DecodeOutcome,
    SyncMode,
    UpstreamPage,
)

logger = logging.getLogger(__name__)

PROVIDERS = ("flixcdn", "videoseed")
VIDEOSEED_KINDS = ("movie", "serial")


def clamp(value: int, low: int, high: int) -> int:
    return min(high, max(low, int(value)))


class CatalogSource(ABC):
    """
    Base adapter. Subclasses fill in the provider specifics.

    Attributes:
        provider: Provider key, also the store/table selector.
        scope: Checkpoint scope within the provider.
        start_cursor: Cursor of the first page.
        max_page_size: Largest page the provider accepts.
        max_pages: Largest `pages` value accepted for one bounded sync.
        iteration_ceiling: Batch ceiling for until-done runs.
        clear_kind: Kind whose records a reset clears (None = whole provider).
    """

    provider: str = ""
    scope: str = "full"
    start_cursor: Cursor = 0
    max_page_size: int = 50
    max_pages: int = 60
    iteration_ceiling: int = 200
    clear_kind: CatalogKind | None = None

    def __init__(self, client: Any) -> None:
        self._client = client

    @property
    def label(self) -> str:
        return self.provider if self.scope == "full" else f"{self.provider}:{self.scope}"

    def clamp_page_size(self, page_size: int) -> int:
        return clamp(page_size, 1, self.max_page_size)

    def clamp_pages(self, pages: int) -> int:
        return clamp(pages, 1, self.max_pages)

    @abstractmethod
    def fetch(self, cursor: Cursor, page_size: int, mode: SyncMode) -> UpstreamPage:
        """Fetch one page at `cursor` for the given mode."""

    @abstractmethod
    def decode(self, raw: Any) -> DecodeOutcome:
        """Decode one raw item into a record or a rejection."""

    @abstractmethod
    def next_cursor(self, page: UpstreamPage, cursor: Cursor, page_size: int) -> Cursor | None:
        """Cursor of the following page, or None when the enumeration is over."""

    def probe(self) -> list[dict[str, Any]]:
        """Connectivity and shape check against the provider. Writes nothing."""
        return self._client.probe()


class FlixcdnSource(CatalogSource):
    """
    FlixCDN: offset cursor, 50 items max. Full mode walks /api/search,
    recent mode walks /api/updates.
    """

    provider = "flixcdn"
    scope = "full"
    start_cursor = 0
    max_page_size = flixcdn.MAX_PAGE_SIZE
    max_pages = 60
    iteration_ceiling = 200

    def __init__(self, client: FlixcdnClient) -> None:
        super().__init__(client)

    def fetch(self, cursor: Cursor, page_size: int, mode: SyncMode) -> UpstreamPage:
        if mode == "full":
            return self._client.search(offset=cursor, limit=page_size)
        return self._client.updates(offset=cursor, limit=page_size)

    def decode(self, raw: Any) -> DecodeOutcome:
        return decode_flixcdn_item(raw)

    def next_cursor(self, page: UpstreamPage, cursor: Cursor, page_size: int) -> Cursor | None:
        # Absence of `next` is the end of the enumeration.
        return page.next_cursor


class VideoseedSource(CatalogSource):
    """
    Videoseed: page-number cursor starting at 1, 999 items max, one list per
    kind ("movie" / "serial"). Full mode walks oldest first so new items land
    at the end; recent mode walks newest first.
    """

    provider = "videoseed"
    start_cursor = 1
    max_page_size = videoseed.MAX_PAGE_SIZE
    max_pages = 200
    iteration_ceiling = 500

    def __init__(self, client: VideoseedClient, kind: str) -> None:
        if kind not in VIDEOSEED_KINDS:
            raise ValueError(f"unknown Videoseed kind: {kind}")
        super().__init__(client)
        self.scope = kind
        self.kind = CatalogKind.MOVIE if kind == "movie" else CatalogKind.SERIES
        self.clear_kind = self.kind

    def fetch(self, cursor: Cursor, page_size: int, mode: SyncMode) -> UpstreamPage:
        if mode == "full":
            return self._client.list(
                kind=self.scope,
                page=cursor,
                items=page_size,
                sort_by=videoseed.SORT_FULL,
                timeout=15.0,
            )
        return self._client.list(
            kind=self.scope,
            page=cursor,
            items=page_size,
            sort_by=videoseed.SORT_RECENT,
            timeout=10.0,
        )

    def decode(self, raw: Any) -> DecodeOutcome:
        return decode_videoseed_item(raw, self.kind)

    def next_cursor(self, page: UpstreamPage, cursor: Cursor, page_size: int) -> Cursor | None:
        if page.total is not None and cursor * page_size >= page.total:
            return None
        if page.next_cursor is not None:
            return page.next_cursor
        return cursor + 1 if len(page.items) >= page_size else None


def build_sources(
    provider: str,
    *,
    kind: str = "all",
    flixcdn_settings: FlixcdnSettings | None = None,
    videoseed_settings: VideoseedSettings | None = None,
    session=None,
) -> list[CatalogSource]:
    """
    Build the sources a run should drain, in order.

    Videoseed with kind "all" yields the movie list, then the serial list.
    Missing provider credentials raise ConfigurationError before any request.
    """
    if provider == "flixcdn":
        client = FlixcdnClient(flixcdn_settings or FlixcdnSettings(), session=session)
        return [FlixcdnSource(client)]

    if provider == "videoseed":
        client = VideoseedClient(videoseed_settings or VideoseedSettings(), session=session)
        kinds = VIDEOSEED_KINDS if kind == "all" else (kind,)
        return [VideoseedSource(client, k) for k in kinds]

    raise ValueError(f"unknown provider: {provider}")
