"""
Provider catalog store (persistence only).

This module persists already-normalized `CatalogRecord` values into the
provider's table:
- flixcdn_videos:   one row per (provider, external_id)
- videoseed_videos: one row per (provider, external_id)

Design constraints:
- Upsert by the stable idempotency key; every column is overwritten
  (last write wins, no merge across syncs).
- Never delete rows that are merely absent from later pages.
- `clear_provider()` is the only destructive operation; callers gate it to the
  first batch of a reset run.

Non-responsibilities:
- No HTTP calls.
- No raw JSON decoding. That lives in client/extract.py.
- No cursor logic. That belongs in stores/state.py.

Monitoring:
- Emits structured logs for DB writes:
  - CATALOG_DB_UPSERT_OK
  - CATALOG_DB_UPSERT_FAILED
  - CATALOG_DB_CLEARED
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog_sync.persistence.models import CatalogKind, CatalogRecord
from catalog_sync.persistence.tables import (
    Base,
    CatalogSyncState,
    PROVIDER_TABLES,
)

logger = logging.getLogger(__name__)


def _utcnow_naive() -> datetime:
    """
    Return a naive UTC timestamp.

    The tables use `DateTime` without timezone info.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _union(a: list[str], b: list[str]) -> list[str]:
    out: list[str] = []
    for x in (*a, *b):
        if x not in out:
            out.append(x)
    return out


def merge_duplicates(records: Iterable[CatalogRecord]) -> list[CatalogRecord]:
    """
    Collapse records sharing an external_id within one page.

    A single INSERT .. ON CONFLICT statement may not touch the same key twice,
    so duplicates are folded first: the first non-null value of each field
    wins and genre/country lists are unioned in order.
    """
    merged: dict[str, CatalogRecord] = {}

    for r in records:
        cur = merged.get(r.external_id)
        if cur is None:
            merged[r.external_id] = r
            continue

        update: dict[str, Any] = {}
        for name in CatalogRecord.model_fields:
            if name in ("provider", "external_id", "kind"):
                continue
            if name in ("genres", "countries"):
                update[name] = _union(getattr(cur, name), getattr(r, name))
            elif name == "title":
                update[name] = cur.title or r.title
            elif getattr(cur, name) is None:
                update[name] = getattr(r, name)
        merged[r.external_id] = cur.model_copy(update=update)

    return list(merged.values())


class CatalogStore:
    """
    Repository for one provider's catalog table.

    Intended use:
        with db.get_session() as session:
            with session.begin():
                store = CatalogStore(session, "flixcdn")
                n = store.upsert(records)
    """

    def __init__(self, session: Session, provider: str, *, chunk_size: int = 500) -> None:
        """
        Args:
            session: SQLAlchemy Session bound to the catalog database.
            provider: Provider key ("flixcdn" or "videoseed").
            chunk_size: Max rows per upsert statement to avoid parameter limits.
        """
        if provider not in PROVIDER_TABLES:
            raise ValueError(f"unknown provider: {provider}")

        self._session = session
        self._provider = provider
        self._model = PROVIDER_TABLES[provider]
        self._chunk_size = chunk_size

    @property
    def provider(self) -> str:
        return self._provider

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def ensure_schema(self) -> None:
        """
        Create this provider's table, its indexes and the checkpoint table.

        Idempotent and non-destructive (CREATE only, checked first). If a
        concurrent caller wins the race, the second pass finds the tables.
        """
        bind = self._session.get_bind()
        tables = [self._model.__table__, CatalogSyncState.__table__]

        try:
            Base.metadata.create_all(bind, tables=tables, checkfirst=True)
        except SQLAlchemyError:
            logger.warning(
                "CATALOG_DB_SCHEMA_RACE provider=%s; re-checking", self._provider
            )
            Base.metadata.create_all(bind, tables=tables, checkfirst=True)

        logger.debug("CATALOG_DB_SCHEMA_READY provider=%s", self._provider)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def upsert(self, records: Sequence[CatalogRecord]) -> int:
        """
        Upsert catalog records by (provider, external_id).

        Returns:
            Rows affected, counted after in-page duplicates were merged.
        """
        for r in records:
            if r.provider != self._provider:
                raise ValueError(
                    f"record for {r.provider} passed to {self._provider} store"
                )

        synced_at = _utcnow_naive()
        rows = [self._row(r, synced_at) for r in merge_duplicates(records)]
        return self._bulk_upsert(rows, conflict_cols=("provider", "external_id"))

    def clear_provider(self, kind: CatalogKind | None = None) -> int:
        """
        Delete stored records of this provider, optionally only one kind.
        Irreversible.
        """
        table = self._model.__table__
        stmt = delete(table).where(table.c.provider == self._provider)
        if kind is not None:
            stmt = stmt.where(table.c.kind == kind)
        result = self._session.execute(stmt)
        removed = int(getattr(result, "rowcount", 0) or 0)
        logger.warning(
            "CATALOG_DB_CLEARED table=%s provider=%s kind=%s rows=%d",
            table.name,
            self._provider,
            kind.value if kind else "all",
            removed,
        )
        return removed

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def count(self) -> int:
        table = self._model.__table__
        stmt = select(func.count()).select_from(table).where(table.c.provider == self._provider)
        return int(self._session.execute(stmt).scalar_one())

    def get(self, external_id: str):
        return self._session.get(self._model, (self._provider, str(external_id)))

    def find_by_kp_id(self, kp_id: int) -> list:
        stmt = select(self._model).where(self._model.kp_id == kp_id)
        return list(self._session.execute(stmt).scalars())

    # -------------------------------------------------------------------------
    # Normalization: Pydantic record -> insert/update row
    # -------------------------------------------------------------------------

    @staticmethod
    def _row(r: CatalogRecord, synced_at: datetime) -> dict[str, Any]:
        """
        Convert a catalog record into a DB row dict.

        Uses model_dump() to keep native Python objects (datetime, enum).
        """
        d = r.model_dump()
        d["synced_at"] = synced_at
        return d

    # -------------------------------------------------------------------------
    # Dialect upsert
    # -------------------------------------------------------------------------

    def _upsert_statement(self, chunk: list[dict[str, Any]], conflict_cols: tuple[str, ...]):
        """Build INSERT ... ON CONFLICT (keys) DO UPDATE for PostgreSQL or SQLite."""
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        else:
            raise NotImplementedError(f"no upsert support for dialect {dialect}")

        table = self._model.__table__
        stmt = dialect_insert(table).values(chunk)
        # Last write wins on every column outside the key.
        updates = {c.name: stmt.excluded[c.name] for c in table.c if c.name not in conflict_cols}
        return stmt.on_conflict_do_update(
            index_elements=[table.c[c] for c in conflict_cols],
            set_=updates,
        )

    def _bulk_upsert(
        self,
        rows: list[dict[str, Any]],
        *,
        conflict_cols: tuple[str, ...],
    ) -> int:
        """
        Upsert rows chunk by chunk and return the number of rows affected.

        Drivers that cannot report a row count (rowcount -1) are credited with
        the chunk length.
        """
        if not rows:
            return 0

        table_name = self._model.__table__.name
        start = time.perf_counter()
        affected = 0
        chunk_no = 0
        try:
            for chunk_no, chunk in enumerate(_chunks(rows, self._chunk_size), start=1):
                result = self._session.execute(self._upsert_statement(chunk, conflict_cols))
                rowcount = getattr(result, "rowcount", -1)
                affected += rowcount if rowcount is not None and rowcount >= 0 else len(chunk)
        except Exception:
            logger.exception(
                "CATALOG_DB_UPSERT_FAILED table=%s rows=%d chunk=%d latency_ms=%.2f",
                table_name,
                len(rows),
                chunk_no,
                (time.perf_counter() - start) * 1000.0,
            )
            raise

        logger.info(
            "CATALOG_DB_UPSERT_OK table=%s rows=%d affected=%d chunks=%d latency_ms=%.2f",
            table_name,
            len(rows),
            affected,
            chunk_no,
            (time.perf_counter() - start) * 1000.0,
        )
        return affected


def _chunks(items: list[dict[str, Any]], size: int) -> Iterable[list[dict[str, Any]]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]
