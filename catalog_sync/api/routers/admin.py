"""Admin sync endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from catalog_sync.api.dependencies import get_app_state, require_admin, require_database
from catalog_sync.api.state import AppState
from catalog_sync.client.extract import parse_int
from catalog_sync.pipeline.driver import SyncDriver
from catalog_sync.pipeline.sources import PROVIDERS, VIDEOSEED_KINDS
from catalog_sync.pipeline.sync import SyncOptions, sync

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin), Depends(require_database)],
)

DEFAULT_PAGES = 10


@router.get("/sync")
def admin_sync(
    provider: str = Query(default="flixcdn"),
    kind: str = Query(default="all"),
    mode: str = Query(default="recent"),
    pages: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    items: str | None = Query(default=None),
    reset: str | None = Query(default=None),
    app_state: AppState = Depends(get_app_state),
) -> JSONResponse:
    """
    Run one bounded sync for a provider.

    Unparseable numbers fall back to the defaults; out-of-range values are
    clamped to the provider limits. `items` is accepted as an alias of
    `limit`. `reset=1` only applies to full mode.
    """
    provider = provider.strip().lower()
    if provider not in PROVIDERS:
        return JSONResponse(
            {"success": False, "message": f"Unknown provider: {provider}"},
            status_code=400,
        )

    mode = "full" if mode.strip() == "full" else "recent"
    kind = kind.strip() if kind.strip() in VIDEOSEED_KINDS else "all"
    reset_flag = reset == "1"

    sources = app_state.source_factory(provider, kind)
    first = sources[0]

    pages_raw = parse_int(pages)
    pages_n = first.clamp_pages(DEFAULT_PAGES if pages_raw is None else pages_raw)
    limit_raw = parse_int(limit if limit is not None else items)
    limit_n = first.clamp_page_size(first.max_page_size if limit_raw is None else limit_raw)

    db = app_state.db()

    try:
        for source in sources:
            SyncDriver(db_manager=db, source=source).ensure_schema()
    except Exception as e:
        logger.exception("ADMIN_SYNC_SCHEMA_FAILED provider=%s", provider)
        return JSONResponse(
            {"success": False, "message": f"DB error: {e}"},
            status_code=502,
        )

    options = SyncOptions(mode=mode, pages=pages_n, limit=limit_n, reset=reset_flag)
    results = []

    try:
        for source in sources:
            r = sync(db, source, options)
            entry = r.as_dict()
            if source.scope != "full":
                entry = {"kind": source.scope, **entry}
            results.append(entry)
    except Exception as e:
        logger.exception("ADMIN_SYNC_FAILED provider=%s mode=%s", provider, mode)
        return JSONResponse(
            {"success": False, "message": f"Sync error: {e}"},
            status_code=502,
        )

    pending = [r for r in results if not r["done"]]
    payload = {
        "success": True,
        "provider": provider,
        "mode": mode,
        "pages": pages_n,
        "limit": limit_n,
        "reset": reset_flag,
        "scanned": sum(r["scanned"] for r in results),
        "upserted": sum(r["upserted"] for r in results),
        "nextCursor": pending[0]["nextCursor"] if pending else None,
        "done": not pending,
        "results": results,
    }

    logger.info(
        "ADMIN_SYNC_OK provider=%s mode=%s scanned=%d upserted=%d done=%s",
        provider,
        mode,
        payload["scanned"],
        payload["upserted"],
        payload["done"],
    )
    return JSONResponse(payload)
