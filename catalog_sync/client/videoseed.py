"""Videoseed catalog API adapter.

A single endpoint (apiv2.php) answers list queries:
`?token=..&list=movie|serial&from=<page>&items=<n>&sort_by=post_date asc`
with `{"status": "success", "data": [...], "total", "prev_page", "next_page"}`.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from catalog_sync.client.client import UpstreamClient
from catalog_sync.client.extract import parse_int
from catalog_sync.config.provider_settings import VideoseedSettings
from catalog_sync.errors import UpstreamError, UpstreamPayloadError
from catalog_sync.persistence.models import UpstreamPage

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 999

SORT_RECENT = "post_date desc"
SORT_FULL = "post_date asc"


def decode_page(payload: Any) -> UpstreamPage:
    """
    Decode a list payload.

    A `status` other than "success" is an error page, not an empty page.
    """
    if not isinstance(payload, dict):
        raise UpstreamPayloadError(
            f"Videoseed page is not an object: {type(payload).__name__}"
        )

    status = payload.get("status")
    if isinstance(status, str) and status.lower() != "success":
        raise UpstreamPayloadError(f"Videoseed API status {status!r}")

    data = payload.get("data")
    if data is None:
        data = []
    if not isinstance(data, list):
        raise UpstreamPayloadError("Videoseed page has a non-list 'data'")

    return UpstreamPage(
        items=list(data),
        next_cursor=parse_int(payload.get("next_page")),
        total=parse_int(payload.get("total")),
    )


class VideoseedClient:
    """Client for the Videoseed list endpoint.

    Attributes:
        http (UpstreamClient): Shared transport with retry.
    """

    def __init__(self, settings: VideoseedSettings, *, session: requests.Session | None = None, sleep=None):
        self._token = settings.token
        self.http = UpstreamClient("Videoseed", [settings.api_base], session=session, sleep=sleep)

    def list(
        self,
        *,
        kind: str,
        page: int,
        items: int,
        sort_by: str = SORT_FULL,
        timeout: float = 15.0,
    ) -> UpstreamPage:
        """One page of the `kind` list ("movie" or "serial")."""
        payload = self.http.fetch_json(
            "",
            {
                "token": self._token,
                "list": kind,
                "from": page,
                "items": items,
                "sort_by": sort_by,
            },
            timeout=timeout,
            attempts=3,
        )
        return decode_page(payload)

    def probe(self) -> list[dict[str, Any]]:
        """
        Fetch one movie item and report what came back. Never raises for
        upstream problems.
        """
        try:
            page = self.list(kind="movie", page=1, items=1, sort_by=SORT_RECENT, timeout=10.0)
        except (requests.exceptions.RequestException, UpstreamError) as e:
            logger.warning("VIDEOSEED_PROBE_FAILED error=%s", e)
            return [{"base": self.http.base_urls[0], "ok": False, "error": str(e)}]

        first = page.items[0] if page.items else None
        return [
            {
                "base": self.http.base_urls[0],
                "ok": True,
                "items": len(page.items),
                "total": page.total,
                "nextPage": page.next_cursor,
                "itemKeys": list(first.keys())[:30] if isinstance(first, dict) else None,
            }
        ]
