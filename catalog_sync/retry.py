"""Retry policies for upstream communication.

Two layers are defined here:

- a short request-level policy used by the HTTP clients (a few quick attempts
  per API base), and
- the run-level backoff used by the run controller, which only retries
  failures classified as transient by their message.
"""

import logging
import re

import requests
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
    wait_random,
)

from catalog_sync.errors import UpstreamHTTPError

logger = logging.getLogger(__name__)

BACKOFF_BASE_SECONDS = 5
BACKOFF_CAP_SECONDS = 10 * 60
BACKOFF_JITTER_SECONDS = 1.5

TRANSIENT_PATTERNS = (
    re.compile(r"api error 5\d\d"),
    re.compile(r"error code 5\d\d"),
    re.compile(r"\b5\d\d\b"),
    re.compile(r"bad gateway"),
    re.compile(r"gateway"),
    re.compile(r"cloudflare"),
    re.compile(r"internal server"),
    re.compile(r"service unavailable"),
    re.compile(r"aborted"),
    re.compile(r"timeout"),
    re.compile(r"timed out"),
    re.compile(r"etimedout"),
    re.compile(r"econnreset"),
    re.compile(r"connection reset"),
)


def log_retry(retry_state):
    """Logs details of a failed request before attempting a retry.

    Args:
        retry_state: The current state of the tenacity retry call.
    """

    logger.warning(
        "UPSTREAM_RETRY_DELAY | Attempt: %s | Reason: %s | Waiting: %ss",
        retry_state.attempt_number,
        retry_state.outcome.exception(),
        retry_state.next_action.sleep,
    )


def is_transient_message(message: str) -> bool:
    """Returns True when an error message matches a known transient pattern."""

    m = (message or "").lower()
    return any(p.search(m) for p in TRANSIENT_PATTERNS)


def is_transient_error(exception) -> bool:
    """Determines if a failed batch should be retried by the run controller.

    Upstream HTTP errors are classified by status. Anything else is classified
    by message so that errors re-raised through several layers (client,
    driver, facade) keep their meaning.

    Args:
        exception: The exception raised by the batch.

    Returns:
        bool: True if the error is transient and should be retried, False otherwise.
    """

    # Connection drops and read timeouts are transient whatever their text.
    if isinstance(
        exception,
        (requests.exceptions.ConnectionError, requests.exceptions.Timeout),
    ):
        return True

    if isinstance(exception, UpstreamHTTPError):
        return exception.status >= 500

    return is_transient_message(str(exception))


def is_retriable_request_error(exception) -> bool:
    """Determines if a single HTTP request should be attempted again.

    Retries on connection issues, timeouts and 429/5xx answers.
    """

    if isinstance(
        exception,
        (requests.exceptions.ConnectionError, requests.exceptions.Timeout),
    ):
        return True

    if isinstance(exception, UpstreamHTTPError):
        return exception.status == 429 or exception.status >= 500

    return False


def request_retrying(attempts: int, *, sleep=None) -> Retrying:
    """Builds the per-request policy: `attempts` tries, 150ms increments."""

    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    return Retrying(
        retry=retry_if_exception(is_retriable_request_error),
        wait=wait_incrementing(start=0.15, increment=0.15),
        stop=stop_after_attempt(max(1, attempts)),
        reraise=True,
        before_sleep=log_retry,
        **kwargs,
    )


# min(cap, base * 2^(n-1)) + jitter in [0, 1.5]
BACKOFF_WAIT = wait_exponential(
    multiplier=BACKOFF_BASE_SECONDS, max=BACKOFF_CAP_SECONDS
) + wait_random(0, BACKOFF_JITTER_SECONDS)


def backoff_retrying(*, sleep=None, before_sleep=None) -> Retrying:
    """Builds the run-level policy for one batch: retry transient errors forever."""

    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    return Retrying(
        retry=retry_if_exception(is_transient_error),
        wait=BACKOFF_WAIT,
        reraise=True,
        before_sleep=before_sleep or log_retry,
        **kwargs,
    )
