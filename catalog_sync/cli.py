"""
sync-tool: run a catalog sync from the command line.

Examples:
  sync-tool --provider flixcdn --mode recent --pages 5 --limit 50
  sync-tool --provider flixcdn --mode full --pages 60 --limit 50 --reset
  sync-tool --provider videoseed --kind all --mode full --limit 999 --reset --until-done
  sync-tool --provider videoseed --probe
  sync-tool mode=full reset=1

Prints a JSON summary on stdout and exits 0; on any error prints
{"success": false, "message": ...} on stderr and exits 1.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

from catalog_sync.config.database_settings import DatabaseSettings
from catalog_sync.errors import CatalogSyncError
from catalog_sync.persistence.engine import DatabaseManager
from catalog_sync.pipeline.controller import run_until_done
from catalog_sync.pipeline.driver import SyncDriver
from catalog_sync.pipeline.sources import PROVIDERS, build_sources
from catalog_sync.pipeline.sync import SyncOptions, sync

logger = logging.getLogger(__name__)

DEFAULT_PAGES = 10

# key=value tokens accepted next to the flags.
_KEY_FLAGS = {
    "provider": "--provider",
    "kind": "--kind",
    "mode": "--mode",
    "pages": "--pages",
    "limit": "--limit",
    "items": "--limit",
}
_TRUE = ("1", "true", "yes")


class UsageError(CatalogSyncError):
    """Invalid command line."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


def _expand_key_values(argv: Sequence[str]) -> list[str]:
    out: list[str] = []
    for token in argv:
        if token.startswith("-") or "=" not in token:
            out.append(token)
            continue

        key, value = (p.strip() for p in token.split("=", 1))
        key = key.lower()
        if key == "reset":
            if value.lower() in _TRUE:
                out.append("--reset")
        elif key in ("until-done", "until_done"):
            if value.lower() in _TRUE:
                out.append("--until-done")
        elif key in _KEY_FLAGS:
            out.extend([_KEY_FLAGS[key], value])
        else:
            raise UsageError(f"unknown option: {token}")
    return out


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = _Parser(prog="sync-tool", description="Sync provider catalogs into the database.")
    parser.add_argument("--provider", choices=PROVIDERS, default="flixcdn", help="Upstream provider.")
    parser.add_argument(
        "--kind",
        choices=("movie", "serial", "all"),
        default="all",
        help="Videoseed list to sync (ignored for FlixCDN).",
    )
    parser.add_argument("--mode", choices=("recent", "full"), default="recent", help="Sync mode.")
    parser.add_argument("--pages", type=int, default=DEFAULT_PAGES, help="Max batches per source.")
    parser.add_argument(
        "--limit",
        "--items",
        dest="limit",
        type=int,
        default=None,
        help="Items per batch (default: provider maximum).",
    )
    parser.add_argument("--reset", action="store_true", help="Full mode: clear stored records first.")
    parser.add_argument("--probe", action="store_true", help="Check upstream connectivity; write nothing.")
    parser.add_argument(
        "--until-done",
        action="store_true",
        help="Full mode: keep going until the provider reports done.",
    )
    parser.add_argument("--verbose", action="store_true", help="Verbose logging.")
    return parser.parse_args(_expand_key_values(argv))


def _emit(payload: dict[str, Any], stream=None) -> None:
    print(json.dumps(payload, ensure_ascii=False, default=str), file=stream or sys.stdout, flush=True)


def _run(args: argparse.Namespace) -> dict[str, Any]:
    if args.until_done and args.mode != "full":
        raise UsageError("--until-done is supported only with --mode full")

    sources = build_sources(args.provider, kind=args.kind)

    if args.probe:
        return {
            "success": True,
            "provider": args.provider,
            "probe": "updates" if args.provider == "flixcdn" else "list",
            "attempts": sources[0].probe(),
        }

    db = DatabaseManager(DatabaseSettings())
    try:
        for source in sources:
            SyncDriver(db_manager=db, source=source).ensure_schema()

        first = sources[0]
        pages = first.clamp_pages(args.pages)
        limit = first.clamp_page_size(args.limit if args.limit is not None else first.max_page_size)
        summary = {
            "success": True,
            "provider": args.provider,
            "kind": args.kind,
            "mode": args.mode,
            "pages": pages,
            "limit": limit,
            "reset": args.reset,
        }

        if args.until_done:
            states = run_until_done(
                [SyncDriver(db_manager=db, source=s, mode="full") for s in sources],
                page_size=limit,
                reset=args.reset,
                on_progress=_emit,
            )
            summary["untilDone"] = True
            summary["results"] = [
                {
                    "source": s.label,
                    "batches": st.batches,
                    "totalScanned": st.total_scanned,
                    "totalUpserted": st.total_upserted,
                    "done": st.done,
                }
                for s, st in zip(sources, states)
            ]
            return summary

        options = SyncOptions(mode=args.mode, pages=pages, limit=limit, reset=args.reset)
        results = []
        for source in sources:
            r = sync(db, source, options)
            results.append({"source": source.label, **r.as_dict()})

        summary.update(
            scanned=sum(r["scanned"] for r in results),
            upserted=sum(r["upserted"] for r in results),
            results=results,
        )
        return summary
    finally:
        db.dispose()


def main(argv: Sequence[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        args = parse_args(argv)
        logging.basicConfig(
            stream=sys.stderr,
            level=logging.DEBUG if args.verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        _emit(_run(args))
        return 0
    except Exception as e:
        logger.debug("SYNC_TOOL_FAILED", exc_info=True)
        _emit({"success": False, "message": str(e)}, stream=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
