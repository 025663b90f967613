"""
Catalog sync driver.

Purpose
- Run exactly one batch for one source: fetch a page, normalize it, persist it.
- Persist, atomically per page:
  1) optional reset (clear this source's records, rewind its checkpoint)
  2) catalog upserts
  3) full-mode checkpoint (next cursor, or rewind when done)

Hard invariants
- Never keep a DB transaction open during HTTP.
- Advance the checkpoint only after the page's upserts succeeded
  (same DB transaction as those writes).
- Never loop: one call, one page fetch.

Non-responsibilities
- No retries (the run controller owns them).
- No deletes beyond the explicit reset.
"""

from __future__ import annotations

import logging
import time

from catalog_sync.persistence.engine import DatabaseManager
from catalog_sync.persistence.models import CatalogRecord, Cursor, Rejected, SyncMode, SyncResult
from catalog_sync.persistence.stores.catalog import CatalogStore
from catalog_sync.persistence.stores.state import SyncStateStore
from catalog_sync.pipeline.sources import CatalogSource

logger = logging.getLogger(__name__)


class SyncDriver:
    """
    One-page-per-call driver for a single source and mode.

    The driver is intentionally simple. It is not a scheduler and holds no
    state between calls; the cursor travels in and out of `run_batch`.
    """

    def __init__(
        self,
        *,
        db_manager: DatabaseManager,
        source: CatalogSource,
        mode: SyncMode = "recent",
        chunk_size: int = 500,
    ) -> None:
        """
        Args:
            db_manager: Provides SQLAlchemy Session context manager.
            source: Provider adapter (fetch, decode, cursor rules).
            mode: "recent" (newest first, no checkpoint) or "full".
            chunk_size: Passed to CatalogStore for batched upserts.
        """
        if mode not in ("recent", "full"):
            raise ValueError(f"unknown mode: {mode}")

        self._db = db_manager
        self._source = source
        self._mode = mode
        self._chunk_size = chunk_size

    @property
    def source(self) -> CatalogSource:
        return self._source

    @property
    def mode(self) -> SyncMode:
        return self._mode

    def ensure_schema(self) -> None:
        with self._db.get_session() as session:
            CatalogStore(session, self._source.provider).ensure_schema()

    def resume_cursor(self, *, reset: bool = False) -> Cursor:
        """
        Cursor the next run should start from.

        Recent runs and resets always start at the beginning; full runs
        continue from the stored checkpoint when there is one.
        """
        if self._mode == "recent" or reset:
            return self._source.start_cursor

        with self._db.get_session() as session:
            stored = SyncStateStore(
                session, self._source.provider, self._source.scope
            ).get_cursor()

        return self._source.start_cursor if stored is None else stored

    def run_batch(self, cursor: Cursor, page_size: int, *, reset: bool = False) -> SyncResult:
        """
        Fetch, normalize and persist one page.

        Args:
            cursor: Provider cursor of the page to fetch.
            page_size: Requested page size, clamped to the provider maximum.
            reset: Clear this source's records and checkpoint before the upsert.

        Returns:
            SyncResult for this page. `next_cursor` is None when `done`.
        """
        src = self._source
        page_size = src.clamp_page_size(page_size)

        try:
            fetch_t0 = time.perf_counter()
            page = src.fetch(cursor, page_size, self._mode)
            fetch_ms = (time.perf_counter() - fetch_t0) * 1000.0

            records: list[CatalogRecord] = []
            rejected = 0
            for raw in page.items:
                outcome = src.decode(raw)
                if isinstance(outcome, Rejected):
                    rejected += 1
                    logger.debug(
                        "SYNC_RECORD_REJECTED source=%s reason=%s raw_id=%r",
                        src.label,
                        outcome.reason,
                        outcome.raw_id,
                    )
                    continue
                records.append(outcome)

            scanned = len(page.items)
            next_cursor = src.next_cursor(page, cursor, page_size)
            done = scanned == 0 or next_cursor is None or scanned < page_size
            if done:
                next_cursor = None

            persist_t0 = time.perf_counter()

            with self._db.get_session() as session:
                with session.begin():
                    store = CatalogStore(session, src.provider, chunk_size=self._chunk_size)
                    state = SyncStateStore(session, src.provider, src.scope)

                    if reset:
                        store.clear_provider(src.clear_kind)
                        state.rewind()

                    upserted = store.upsert(records) if records else 0

                    if self._mode == "full":
                        if done:
                            state.rewind()
                        else:
                            state.set_cursor(next_cursor)

            persist_ms = (time.perf_counter() - persist_t0) * 1000.0

        except Exception:
            logger.exception(
                "SYNC_BATCH_FAILED source=%s mode=%s cursor=%s page_size=%d",
                src.label,
                self._mode,
                cursor,
                page_size,
            )
            raise

        logger.info(
            "SYNC_BATCH_OK source=%s mode=%s cursor=%s scanned=%d upserted=%d rejected=%d done=%s fetch_ms=%.2f persist_ms=%.2f next_cursor=%s",
            src.label,
            self._mode,
            cursor,
            scanned,
            upserted,
            rejected,
            done,
            fetch_ms,
            persist_ms,
            next_cursor if next_cursor is not None else "NONE",
        )

        return SyncResult(
            scanned=scanned,
            upserted=upserted,
            next_cursor=next_cursor,
            done=done,
        )
