import pytest

from catalog_sync.client.extract import (
    decode_flixcdn_item,
    decode_videoseed_item,
    normalize_player_link,
    parse_int,
    parse_timestamp,
    parse_year,
    split_comma_list,
)
from catalog_sync.persistence.models import CatalogKind, CatalogRecord, Rejected

from conftest import flixcdn_item


# --- 1. POSITIVE TESTING (The Contract) ---
def test_decode_flixcdn_item_maps_fields():
    rec = decode_flixcdn_item(flixcdn_item(42))

    assert isinstance(rec, CatalogRecord)
    assert rec.provider == "flixcdn"
    assert rec.external_id == "42"
    assert rec.kind is CatalogKind.MOVIE
    assert rec.title == "Фильм 42"
    assert rec.title_original == "Movie 42"
    assert rec.year == 2020
    assert rec.kp_id == 1042
    assert rec.embed_url == "https://player.flixcdn.test/embed/42"
    assert rec.episode_count is None
    assert rec.provider_updated_at.isoformat() == "2024-01-02T03:04:05"


def test_decode_flixcdn_serial_keeps_episode_count():
    rec = decode_flixcdn_item(flixcdn_item(7, type="serial", episode="12"))

    assert rec.kind is CatalogKind.SERIES
    assert rec.episode_count == 12


def test_decode_videoseed_item_splits_lists_and_prefers_last_content_date():
    raw = {
        "id": "555",
        "name": "Сериал",
        "original_name": "Show",
        "year": "2019-05-01",
        "id_kp": "321",
        "id_imdb": "tt0000321",
        "id_tmdb": 99,
        "iframe": "http://videoseed.test/iframe/555",
        "genre": "Драма, Комедия",
        "country": "Россия",
        "episodes_count": 8,
        "date": "2020-01-01 00:00:00",
        "last_content_date": "2024-03-01 10:00:00",
    }

    rec = decode_videoseed_item(raw, CatalogKind.SERIES)

    assert rec.external_id == "555"
    assert rec.kind is CatalogKind.SERIES
    assert rec.year == 2019
    assert rec.kp_id == 321
    assert rec.tmdb_id == "99"
    assert rec.embed_url == "https://videoseed.test/iframe/555"
    assert rec.genres == ["Драма", "Комедия"]
    assert rec.countries == ["Россия"]
    assert rec.episode_count == 8
    assert rec.provider_updated_at.year == 2024


# --- 2. NEGATIVE TESTING (The Fragility) ---
def test_missing_titles_yield_empty_title():
    rec = decode_flixcdn_item({"id": 1})

    assert isinstance(rec, CatalogRecord)
    assert rec.title == ""


def test_missing_id_is_rejected_not_raised():
    out = decode_flixcdn_item({"id": "abc", "title_rus": "x"})

    assert isinstance(out, Rejected)
    assert out.raw_id == "abc"


def test_non_object_item_is_rejected():
    assert isinstance(decode_videoseed_item(["not", "a", "dict"], CatalogKind.MOVIE), Rejected)


# --- 3. CONSTRAINTS (The Limits) ---
@pytest.mark.parametrize(
    "raw, expected",
    [(2021, 2021), ("2021 release", 2021), ("TBA", None), ("", None), (None, None), (True, None)],
)
def test_parse_year(raw, expected):
    assert parse_year(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [(5, 5), ("12", 12), (" 7 ", 7), ("12abc", 12), (3.0, 3), ("x", None), (None, None), (False, None)],
)
def test_parse_int(raw, expected):
    assert parse_int(raw) == expected


def test_parse_timestamp_rejects_garbage():
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_split_comma_list_ignores_blanks():
    assert split_comma_list("a, ,b,") == ["a", "b"]
    assert split_comma_list(None) == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("//cdn.test/e/1", "https://cdn.test/e/1"),
        ("http://cdn.test/e/1", "https://cdn.test/e/1"),
        ("https://cdn.test/e/1", "https://cdn.test/e/1"),
        ("   ", None),
    ],
)
def test_normalize_player_link(raw, expected):
    assert normalize_player_link(raw) == expected
