"""
Bounded sync: one invocation, up to `pages` batches, no retry loop.

Used by the admin endpoint and by the CLI without --until-done.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from catalog_sync.persistence.engine import DatabaseManager
from catalog_sync.persistence.models import SyncMode, SyncResult
from catalog_sync.pipeline.driver import SyncDriver
from catalog_sync.pipeline.sources import CatalogSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncOptions:
    """
    mode:
        "recent" starts at the newest page; "full" resumes from the checkpoint.
    pages:
        Max batches for this invocation (clamped per provider).
    limit:
        Items per batch (clamped to the provider's max page size).
    reset:
        Full mode only. Clear the provider's records before the first upsert.
    """

    mode: SyncMode = "recent"
    pages: int = 10
    limit: int = 50
    reset: bool = False


def sync(db_manager: DatabaseManager, source: CatalogSource, options: SyncOptions) -> SyncResult:
    """
    Run up to `options.pages` batches for one source.

    Returns:
        Aggregated SyncResult; `next_cursor` is where the following
        invocation would continue, None once `done`.
    """
    driver = SyncDriver(db_manager=db_manager, source=source, mode=options.mode)

    pages = source.clamp_pages(options.pages)
    limit = source.clamp_page_size(options.limit)
    reset = options.reset and options.mode == "full"

    cursor = driver.resume_cursor(reset=reset)
    scanned = 0
    upserted = 0
    done = False

    for i in range(pages):
        r = driver.run_batch(cursor, limit, reset=reset and i == 0)
        scanned += r.scanned
        upserted += r.upserted
        if r.done:
            done = True
            break
        cursor = r.next_cursor

    logger.info(
        "SYNC_DONE source=%s mode=%s pages=%d limit=%d scanned=%d upserted=%d done=%s",
        source.label,
        options.mode,
        pages,
        limit,
        scanned,
        upserted,
        done,
    )

    return SyncResult(
        scanned=scanned,
        upserted=upserted,
        next_cursor=None if done else cursor,
        done=done,
    )
