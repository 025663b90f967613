"""FlixCDN catalog API adapter.

Endpoints used:
- /api/search   full catalog enumeration by offset (full mode)
- /api/updates  most recently added items by offset (recent mode)

Both answer `{"prev": {...}|null, "result": [...], "next": {"offset", "limit"}|null}`.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from catalog_sync.client.client import UpstreamClient
from catalog_sync.client.extract import parse_int
from catalog_sync.config.provider_settings import FlixcdnSettings
from catalog_sync.errors import UpstreamPayloadError, summarize_body
from catalog_sync.persistence.models import UpstreamPage

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50

_LIST_KEYS = ("result", "results", "data", "items", "list", "films", "movies")


def decode_page(payload: Any) -> UpstreamPage:
    """
    Decode a search/updates payload.

    `next_cursor` is the offset from the `next` object; a missing or
    malformed `next` means the provider has nothing further.
    """
    if not isinstance(payload, dict):
        raise UpstreamPayloadError(
            f"FlixCDN page is not an object: {type(payload).__name__}"
        )

    result = payload.get("result")
    if result is None:
        result = []
    if not isinstance(result, list):
        raise UpstreamPayloadError("FlixCDN page has a non-list 'result'")

    nxt = payload.get("next")
    next_cursor = None
    if isinstance(nxt, dict):
        offset = parse_int(nxt.get("offset"))
        limit = parse_int(nxt.get("limit"))
        if offset is not None and limit is not None:
            next_cursor = offset

    return UpstreamPage(items=list(result), next_cursor=next_cursor)


class FlixcdnClient:
    """Client for FlixCDN search/updates endpoints.

    Attributes:
        http (UpstreamClient): Shared transport with base fallback and retry.
    """

    def __init__(self, settings: FlixcdnSettings, *, session: requests.Session | None = None, sleep=None):
        self._token = settings.token
        self.http = UpstreamClient("FlixCDN", settings.api_bases, session=session, sleep=sleep)

    def search(self, *, offset: int, limit: int) -> UpstreamPage:
        """Full-catalog page at `offset`."""
        payload = self.http.fetch_json(
            "/api/search",
            {"token": self._token, "offset": offset, "limit": limit},
            timeout=8.0,
            attempts=4,
        )
        return decode_page(payload)

    def updates(self, *, offset: int, limit: int) -> UpstreamPage:
        """Recently added items page at `offset`."""
        payload = self.http.fetch_json(
            "/api/updates",
            {"token": self._token, "offset": offset, "limit": limit},
            timeout=4.0,
            attempts=2,
        )
        return decode_page(payload)

    def probe(self) -> list[dict[str, Any]]:
        """
        Check every API base with a one-item /api/updates request.

        Never raises for upstream problems; each base gets a report entry with
        status, content type, a body summary and the shape of the JSON.
        """
        out: list[dict[str, Any]] = []

        for base in self.http.base_urls:
            url = f"{base}/api/updates"
            try:
                res = self.http.session.get(
                    url,
                    params={"token": self._token, "limit": 1, "offset": 0},
                    timeout=8.0,
                )
            except requests.exceptions.RequestException as e:
                logger.warning("FLIXCDN_PROBE_FAILED base=%s error=%s", base, e)
                out.append({"base": base, "ok": False, "error": str(e)})
                continue

            text = res.text or ""
            try:
                data = json.loads(text) if text.strip() else None
            except ValueError:
                data = None

            obj = data if isinstance(data, dict) else None
            lengths = {}
            if obj is not None:
                lengths = {k: len(obj[k]) for k in _LIST_KEYS if isinstance(obj.get(k), list)}

            out.append(
                {
                    "base": base,
                    "ok": res.ok,
                    "status": res.status_code,
                    "contentType": res.headers.get("content-type", ""),
                    "bodySummary": summarize_body(text, 500),
                    "jsonType": "array" if isinstance(data, list) else ("object" if obj is not None else type(data).__name__),
                    "jsonKeys": list(obj.keys())[:30] if obj is not None else None,
                    "listLengths": lengths or None,
                }
            )
            logger.info("FLIXCDN_PROBE base=%s status=%s", base, res.status_code)

        return out
