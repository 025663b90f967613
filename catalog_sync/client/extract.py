# Deterministic decoding of raw provider items into CatalogRecord values:
# FlixCDN search/updates items
# Videoseed list items
# No persistence. No HTTP. Pure mapping; never raises on bad field values.

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

from catalog_sync.persistence.models import (
    CatalogKind,
    CatalogRecord,
    DecodeOutcome,
    Rejected,
)

_YEAR_RE = re.compile(r"\d{4}")
_INT_RE = re.compile(r"-?\d+")


def parse_int(raw: Any) -> int | None:
    """
    Accept ints, integral floats and strings starting with an integer.

    Anything else (None, bools, non-numeric text) yields None.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    if isinstance(raw, str):
        m = _INT_RE.match(raw.strip())
        return int(m.group(0)) if m else None
    return None


def parse_year(raw: Any) -> int | None:
    """
    Ints pass through; strings yield their first 4-digit run.

    "2021 release" -> 2021, "TBA" -> None.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return parse_int(raw)
    if isinstance(raw, str):
        m = _YEAR_RE.search(raw)
        return int(m.group(0)) if m else None
    return None


def parse_timestamp(raw: Any) -> datetime | None:
    """
    Parse an ISO-ish provider timestamp into naive UTC, or None.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def split_comma_list(raw: Any) -> list[str]:
    """
    Videoseed sends genres/countries as "Drama, Comedy".
    """
    if isinstance(raw, list):
        return _clean_list(raw)
    if not isinstance(raw, str):
        return []
    return [x.strip() for x in raw.split(",") if x.strip()]


def normalize_player_link(raw: Any) -> str | None:
    """
    Protocol-relative and plain-http player links are upgraded to https.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    s = raw.strip()
    if s.startswith("//"):
        return f"https:{s}"
    return re.sub(r"^http://", "https://", s, flags=re.IGNORECASE)


def _str_or_none(raw: Any) -> str | None:
    if isinstance(raw, str):
        s = raw.strip()
        return s or None
    return None


def _id_str_or_none(raw: Any) -> str | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, str)):
        s = str(raw).strip()
        return s or None
    return None


def _clean_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    out: list[str] = []
    for x in raw:
        if isinstance(x, str) and x.strip():
            out.append(x.strip())
    return out


def resolve_title(localized: str | None, original: str | None) -> str:
    """
    Localized title, then original title, then "".
    """
    return localized or original or ""


def decode_flixcdn_item(raw: Any) -> DecodeOutcome:
    """
    Decode one FlixCDN search/updates item.

    FlixCDN marks series as type "serial"; anything else is a movie. The
    episode counter is only meaningful for series.
    """
    if not isinstance(raw, dict):
        return Rejected(provider="flixcdn", reason="item is not an object")

    flixcdn_id = parse_int(raw.get("id"))
    if flixcdn_id is None:
        return Rejected(provider="flixcdn", reason="missing id", raw_id=raw.get("id"))

    kind = CatalogKind.SERIES if raw.get("type") == "serial" else CatalogKind.MOVIE
    title_localized = _str_or_none(raw.get("title_rus"))
    title_original = _str_or_none(raw.get("title_orig"))

    return CatalogRecord(
        provider="flixcdn",
        external_id=str(flixcdn_id),
        kind=kind,
        title=resolve_title(title_localized, title_original),
        title_localized=title_localized,
        title_original=title_original,
        year=parse_year(raw.get("year")),
        kp_id=parse_int(raw.get("kinopoisk_id")),
        imdb_id=_str_or_none(raw.get("imdb_id")),
        poster_url=_str_or_none(raw.get("poster")),
        embed_url=normalize_player_link(raw.get("iframe_url")),
        quality_label=_str_or_none(raw.get("quality")),
        genres=_clean_list(raw.get("genres")),
        countries=_clean_list(raw.get("countries")),
        episode_count=parse_int(raw.get("episode")) if kind is CatalogKind.SERIES else None,
        provider_updated_at=parse_timestamp(raw.get("created_at")),
    )


def decode_videoseed_item(raw: Any, kind: CatalogKind) -> DecodeOutcome:
    """
    Decode one Videoseed list item.

    Videoseed lists are per kind, so the kind comes from the request rather
    than the item. The update timestamp prefers `last_content_date` (new
    episodes) over the item's `date`.
    """
    if not isinstance(raw, dict):
        return Rejected(provider="videoseed", reason="item is not an object")

    videoseed_id = parse_int(raw.get("id"))
    if videoseed_id is None:
        return Rejected(provider="videoseed", reason="missing id", raw_id=raw.get("id"))

    title_localized = _str_or_none(raw.get("name"))
    title_original = _str_or_none(raw.get("original_name"))

    episode_count = None
    if kind is CatalogKind.SERIES:
        episode_count = parse_int(raw.get("episodes_count"))

    return CatalogRecord(
        provider="videoseed",
        external_id=str(videoseed_id),
        kind=kind,
        title=resolve_title(title_localized, title_original),
        title_localized=title_localized,
        title_original=title_original,
        year=parse_year(raw.get("year")),
        kp_id=parse_int(raw.get("id_kp")),
        imdb_id=_str_or_none(raw.get("id_imdb")),
        tmdb_id=_id_str_or_none(raw.get("id_tmdb")),
        poster_url=_str_or_none(raw.get("poster")),
        embed_url=normalize_player_link(raw.get("iframe")),
        quality_label=_str_or_none(raw.get("quality")),
        genres=split_comma_list(raw.get("genre")),
        countries=split_comma_list(raw.get("country")),
        episode_count=episode_count,
        provider_updated_at=parse_timestamp(raw.get("last_content_date"))
        or parse_timestamp(raw.get("date")),
    )
