"""
Full-crawl checkpoint persistence.

One row per (provider, scope) in `catalog_sync_state` holds the cursor the
next full crawl should start from. It is intentionally small and boring.

What it does:
- Read the stored cursor (None means "start from the beginning").
- Advance it after a page was durably upserted.
- Rewind it when a crawl finishes or a reset is requested.

Important invariant:
- Advance the cursor only after the page's upserts succeeded, in the same DB
  transaction (driver responsibility).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from catalog_sync.persistence.tables import CatalogSyncState

logger = logging.getLogger(__name__)


def _utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SyncStateStore:
    """
    Repository for crawl checkpoints.

    Intended use (inside a batch transaction):
        state = SyncStateStore(session, "videoseed", "movie")
        state.set_cursor(next_page)
    """

    def __init__(self, session: Session, provider: str, scope: str) -> None:
        """
        Args:
            session: SQLAlchemy Session bound to the catalog database.
            provider: Provider key.
            scope: "full" for single-list providers, or the list kind.
        """
        self._session = session
        self._provider = provider
        self._scope = scope

    def get_cursor(self) -> int | None:
        """
        Return the checkpointed cursor, or None to start from the beginning.
        """
        row = self._session.get(CatalogSyncState, (self._provider, self._scope))
        if row is None:
            return None
        return row.cursor

    def set_cursor(self, cursor: int | None) -> None:
        """
        Store `cursor` (None rewinds). Creates the row on first use.
        """
        row = self._session.get(CatalogSyncState, (self._provider, self._scope))
        now = _utcnow_naive()
        if row is None:
            row = CatalogSyncState(
                provider=self._provider,
                scope=self._scope,
                cursor=cursor,
                updated_at=now,
            )
            self._session.add(row)
        else:
            row.cursor = cursor
            row.updated_at = now
        self._session.flush()

        logger.info(
            "sync_state_checkpoint provider=%s scope=%s cursor=%s",
            self._provider,
            self._scope,
            cursor,
        )

    def rewind(self) -> None:
        """
        Forget the checkpoint so the next full crawl starts from the beginning.
        """
        self.set_cursor(None)
