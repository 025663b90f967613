"""Thin HTTP client shared by the provider adapters.

This module implements the adapter pattern's common half: session setup,
multi-base fallback, per-request retry and telemetry. Provider modules only
build query parameters and decode the JSON they get back.
"""

import json
import logging
import time

import requests

from catalog_sync.errors import UpstreamHTTPError, UpstreamPayloadError, summarize_body
from catalog_sync.retry import request_retrying

logger = logging.getLogger(__name__)


class UpstreamClient:
    """Client for one provider API, possibly served from several base URLs.

    Attributes:
        provider (str): Display name used in logs and error messages.
        session (requests.Session): Persistent session for HTTP requests.
        base_urls (list[str]): Root URLs tried in order until one answers.
    """

    def __init__(
        self,
        provider: str,
        base_urls: list[str],
        *,
        session: requests.Session | None = None,
        sleep=None,
    ):
        """Initializes the client.

        Args:
            provider: Provider display name (e.g. 'FlixCDN').
            base_urls: One or more API roots.
            session: Optional pre-built session (tests inject their own).
            sleep: Optional sleep function for the retry policy.
        """

        self.provider = provider
        self.base_urls = [b.rstrip("/") for b in base_urls if b]
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._sleep = sleep

        logger.info(
            "UPSTREAM_CLIENT_INIT provider=%s bases=%s", provider, self.base_urls
        )

    def fetch_json(
        self,
        path: str,
        query_params: dict,
        *,
        timeout: float = 5.0,
        attempts: int = 2,
    ):
        """Fetches and parses JSON from `path` on the first base that answers.

        Each base gets its own retry budget; the last failure is re-raised once
        every base has been tried.

        Raises:
            UpstreamHTTPError: Non-2xx answer on every base.
            UpstreamPayloadError: 2xx answer whose body is not JSON.
            requests.exceptions.RequestException: Network failure on every base.
        """

        last_exc: Exception | None = None

        for base in self.base_urls:
            url = f"{base}/{path.lstrip('/')}" if path else base
            retrying = request_retrying(attempts, sleep=self._sleep)
            try:
                return retrying(self._get_json, url, query_params, timeout)
            except (requests.exceptions.RequestException, UpstreamHTTPError) as e:
                last_exc = e

        if last_exc is None:
            raise UpstreamPayloadError(f"{self.provider}: no API base configured")
        raise last_exc

    def _get_json(self, url: str, query_params: dict, timeout: float):
        start_ts = time.perf_counter()

        try:
            logger.debug(
                "UPSTREAM_REQUEST_START provider=%s url=%s params=%s",
                self.provider,
                url,
                _redact(query_params),
            )
            response = self.session.get(url, params=query_params, timeout=timeout)
            duration = (time.perf_counter() - start_ts) * 1000

            if not response.ok:
                raise UpstreamHTTPError(self.provider, response.status_code, response.text)

            logger.info(
                "UPSTREAM_REQUEST_SUCCESS provider=%s status=%s latency_ms=%.2f",
                self.provider,
                response.status_code,
                duration,
            )

        except (requests.exceptions.RequestException, UpstreamHTTPError) as e:
            duration = (time.perf_counter() - start_ts) * 1000
            logger.error(
                "UPSTREAM_REQUEST_FAILED provider=%s url=%s latency_ms=%.2f error=%s",
                self.provider,
                url,
                duration,
                str(e),
            )

            raise

        text = response.text or ""
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError:
            raise UpstreamPayloadError(
                f"{self.provider} API invalid JSON: {summarize_body(text)}"
            ) from None


def _redact(params: dict) -> dict:
    return {k: ("***" if k == "token" else v) for k, v in (params or {}).items()}
