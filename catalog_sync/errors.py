"""Exception types raised by the catalog sync pipeline.

Network failures are left as `requests` exceptions and storage failures as
SQLAlchemy exceptions; only conditions the pipeline itself detects get a
dedicated type here.
"""

from __future__ import annotations

import re


class CatalogSyncError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(CatalogSyncError):
    """A required credential or connection string is missing."""


class UpstreamError(CatalogSyncError):
    """Base class for failures reported by an upstream catalog API."""


def summarize_body(body: str | None, max_len: int = 220) -> str:
    """
    Collapse an upstream response body into a short single-line summary.

    HTML tags are stripped so gateway error pages stay readable in logs.
    """
    trimmed = str(body or "").strip()
    if not trimmed:
        return ""
    no_tags = re.sub(r"\s+", " ", re.sub(r"<[^>]+>", " ", trimmed)).strip()
    return f"{no_tags[:max_len]}…" if len(no_tags) > max_len else no_tags


class UpstreamHTTPError(UpstreamError):
    """Non-2xx response from a provider API."""

    def __init__(self, provider: str, status: int, body: str | None = None) -> None:
        self.provider = provider
        self.status = status
        self.body = summarize_body(body)
        super().__init__(f"{provider} API error {status}: {self.body}")


class UpstreamPayloadError(UpstreamError):
    """The provider answered 2xx but the page could not be decoded."""


class SyncAnomalyError(CatalogSyncError):
    """The run controller detected a condition that would loop forever."""


class IterationCeilingError(SyncAnomalyError):
    """The run hit its batch ceiling before the provider reported done."""
