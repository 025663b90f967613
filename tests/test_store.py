import pytest

from catalog_sync.persistence.models import CatalogKind, CatalogRecord
from catalog_sync.persistence.stores.catalog import CatalogStore, merge_duplicates
from catalog_sync.persistence.stores.state import SyncStateStore


def record(external_id="42", provider="flixcdn", **fields):
    fields.setdefault("kind", CatalogKind.MOVIE)
    return CatalogRecord(provider=provider, external_id=external_id, **fields)


def upsert(db, provider, records):
    with db.get_session() as session:
        with session.begin():
            return CatalogStore(session, provider).upsert(records)


# --- 1. POSITIVE TESTING (The Contract) ---
def test_upsert_same_key_twice_is_last_write_wins(db):
    assert upsert(db, "flixcdn", [record(year=2019, title="Old")]) == 1
    assert upsert(db, "flixcdn", [record(year=2020, title="New"), record("43")]) == 2

    with db.get_session() as session:
        store = CatalogStore(session, "flixcdn")
        row = store.get("42")
        assert store.count() == 2
        assert row.year == 2020
        assert row.title == "New"


def test_upsert_roundtrips_lists_and_kind(db):
    upsert(db, "videoseed", [record("7", "videoseed", kind=CatalogKind.SERIES, genres=["Drama"], kp_id=5)])

    with db.get_session() as session:
        rows = CatalogStore(session, "videoseed").find_by_kp_id(5)

    assert len(rows) == 1
    assert rows[0].kind is CatalogKind.SERIES
    assert rows[0].genres == ["Drama"]
    assert rows[0].synced_at is not None


def test_ensure_schema_is_idempotent(db):
    with db.get_session() as session:
        store = CatalogStore(session, "flixcdn")
        store.ensure_schema()
        store.ensure_schema()
        assert store.count() == 0


def test_clear_provider_can_be_scoped_to_one_kind(db):
    upsert(
        db,
        "videoseed",
        [
            record("1", "videoseed", kind=CatalogKind.MOVIE),
            record("2", "videoseed", kind=CatalogKind.SERIES),
        ],
    )

    with db.get_session() as session:
        with session.begin():
            removed = CatalogStore(session, "videoseed").clear_provider(CatalogKind.SERIES)

    with db.get_session() as session:
        store = CatalogStore(session, "videoseed")
        assert removed == 1
        assert store.get("1") is not None
        assert store.get("2") is None


def test_checkpoint_set_and_rewind(db):
    with db.get_session() as session:
        with session.begin():
            state = SyncStateStore(session, "videoseed", "movie")
            assert state.get_cursor() is None
            state.set_cursor(4)

    with db.get_session() as session:
        with session.begin():
            state = SyncStateStore(session, "videoseed", "movie")
            assert state.get_cursor() == 4
            assert SyncStateStore(session, "videoseed", "serial").get_cursor() is None
            state.rewind()

    with db.get_session() as session:
        assert SyncStateStore(session, "videoseed", "movie").get_cursor() is None


# --- 2. NEGATIVE TESTING (The Fragility) ---
def test_upsert_rejects_foreign_provider_records(db):
    with pytest.raises(ValueError):
        upsert(db, "flixcdn", [record(provider="videoseed")])


# --- 3. CONSTRAINTS (The Limits) ---
def test_in_page_duplicates_are_merged_before_upsert(db):
    written = upsert(
        db,
        "flixcdn",
        [
            record(title="", year=None, genres=["Drama"]),
            record(title="Title", year=2001, genres=["Drama", "Crime"]),
        ],
    )

    with db.get_session() as session:
        row = CatalogStore(session, "flixcdn").get("42")

    assert written == 1
    assert row.title == "Title"
    assert row.year == 2001
    assert row.genres == ["Drama", "Crime"]


def test_merge_duplicates_first_non_null_wins():
    merged = merge_duplicates([record(year=1999), record(year=2005, kp_id=9)])

    assert len(merged) == 1
    assert merged[0].year == 1999
    assert merged[0].kp_id == 9


def test_upsert_chunks_large_batches(db):
    records = [record(str(i)) for i in range(1, 1203)]

    with db.get_session() as session:
        with session.begin():
            written = CatalogStore(session, "flixcdn", chunk_size=500).upsert(records)

    with db.get_session() as session:
        assert CatalogStore(session, "flixcdn").count() == 1202
    assert written == 1202
