import pytest

from catalog_sync.errors import UpstreamPayloadError
from catalog_sync.persistence.models import CatalogKind, UpstreamPage
from catalog_sync.persistence.stores.catalog import CatalogStore
from catalog_sync.persistence.stores.state import SyncStateStore
from catalog_sync.pipeline.driver import SyncDriver
from catalog_sync.pipeline.sources import CatalogSource, VideoseedSource
from catalog_sync.pipeline.sync import SyncOptions, sync

from conftest import ScriptedFlixcdnSource, flixcdn_item, full_page


def stored_count(db, provider="flixcdn"):
    with db.get_session() as session:
        return CatalogStore(session, provider).count()


def checkpoint(db, provider="flixcdn", scope="full"):
    with db.get_session() as session:
        return SyncStateStore(session, provider, scope).get_cursor()


# --- 1. POSITIVE TESTING (The Contract) ---
def test_run_batch_fetches_one_page_and_upserts(db):
    source = ScriptedFlixcdnSource([full_page(1, 50)])
    driver = SyncDriver(db_manager=db, source=source, mode="recent")

    r = driver.run_batch(0, 50)

    assert (r.scanned, r.upserted, r.next_cursor, r.done) == (50, 50, 50, False)
    assert source.calls == [(0, 50, "recent")]
    assert stored_count(db) == 50


def test_rejected_items_count_as_scanned_not_upserted(db):
    page = UpstreamPage(items=[flixcdn_item(1), {"id": None}, "junk"], next_cursor=None)
    driver = SyncDriver(db_manager=db, source=ScriptedFlixcdnSource([page]))

    r = driver.run_batch(0, 50)

    assert r.scanned == 3
    assert r.upserted == 1


def test_missing_next_means_done(db):
    driver = SyncDriver(db_manager=db, source=ScriptedFlixcdnSource([full_page(1, 50, has_next=False)]))

    r = driver.run_batch(0, 50)

    assert r.done is True
    assert r.next_cursor is None


def test_short_or_empty_page_means_done(db):
    source = ScriptedFlixcdnSource([full_page(1, 10), UpstreamPage(items=[], next_cursor=5)])
    driver = SyncDriver(db_manager=db, source=source)

    assert driver.run_batch(0, 50).done is True
    assert driver.run_batch(0, 50).done is True


def test_full_mode_checkpoints_and_rewinds_when_done(db):
    source = ScriptedFlixcdnSource([full_page(1, 50), full_page(51, 20, has_next=False)])
    driver = SyncDriver(db_manager=db, source=source, mode="full")

    driver.run_batch(0, 50)
    assert checkpoint(db) == 50
    assert driver.resume_cursor() == 50

    driver.run_batch(50, 50)
    assert checkpoint(db) is None
    assert driver.resume_cursor() == 0


def test_reset_clears_provider_records_before_upsert(db):
    SyncDriver(db_manager=db, source=ScriptedFlixcdnSource([full_page(100, 5, has_next=False)])).run_batch(0, 50)
    assert stored_count(db) == 5

    driver = SyncDriver(db_manager=db, source=ScriptedFlixcdnSource([full_page(1, 50)]), mode="full")
    r = driver.run_batch(0, 50, reset=True)

    assert r.upserted == 50
    assert stored_count(db) == 50


def test_page_size_is_clamped_to_provider_maximum(db):
    source = ScriptedFlixcdnSource([full_page(1, 50)])

    SyncDriver(db_manager=db, source=source).run_batch(0, 500)

    assert source.calls[0][1] == 50


# --- 2. NEGATIVE TESTING (The Fragility) ---
def test_unparseable_page_propagates_and_keeps_checkpoint(db):
    source = ScriptedFlixcdnSource([full_page(1, 50), UpstreamPayloadError("FlixCDN page is not an object")])
    driver = SyncDriver(db_manager=db, source=source, mode="full")

    driver.run_batch(0, 50)
    with pytest.raises(UpstreamPayloadError):
        driver.run_batch(50, 50)

    assert checkpoint(db) == 50
    assert stored_count(db) == 50


# --- 3. CONSTRAINTS (The Limits) ---
def test_videoseed_next_cursor_rules():
    source = VideoseedSource.__new__(VideoseedSource)
    full = UpstreamPage(items=[{}] * 10)

    assert source.next_cursor(full, 1, 10) == 2
    assert source.next_cursor(UpstreamPage(items=[{}] * 10, total=20), 2, 10) is None
    assert source.next_cursor(UpstreamPage(items=[{}] * 10, next_cursor=7), 1, 10) == 7
    assert source.next_cursor(UpstreamPage(items=[{}] * 3), 1, 10) is None


def test_videoseed_source_scopes_reset_to_its_kind():
    source = VideoseedSource(client=None, kind="serial")

    assert source.clear_kind is CatalogKind.SERIES
    assert source.label == "videoseed:serial"
    assert source.start_cursor == 1


def test_source_missing_a_hook_fails_at_construction():
    class NoCursorSource(CatalogSource):
        provider = "flixcdn"

        def fetch(self, cursor, page_size, mode):
            return UpstreamPage(items=[])

        def decode(self, raw):
            return raw

    with pytest.raises(TypeError):
        NoCursorSource(client=None)


# --- 4. THE BRANCHES (The Bounded Loop) ---
def test_sync_stops_after_pages_and_reports_next_cursor(db):
    source = ScriptedFlixcdnSource([full_page(1, 50), full_page(51, 50), full_page(101, 50)])

    r = sync(db, source, SyncOptions(mode="recent", pages=2, limit=50))

    assert (r.scanned, r.upserted, r.next_cursor, r.done) == (100, 100, 100, False)
    assert [c[0] for c in source.calls] == [0, 50]


def test_sync_full_resumes_from_checkpoint_and_resets_only_first_batch(db):
    first = ScriptedFlixcdnSource([full_page(1, 50)])
    sync(db, first, SyncOptions(mode="full", pages=1, limit=50))

    resumed = ScriptedFlixcdnSource([full_page(51, 50), full_page(101, 10, has_next=False)])
    r = sync(db, resumed, SyncOptions(mode="full", pages=5, limit=50))

    assert [c[0] for c in resumed.calls] == [50, 100]
    assert r.done is True
    assert r.next_cursor is None
    assert stored_count(db) == 110

    fresh = ScriptedFlixcdnSource([full_page(1, 50), full_page(51, 50)])
    r = sync(db, fresh, SyncOptions(mode="full", pages=2, limit=50, reset=True))

    assert [c[0] for c in fresh.calls] == [0, 50]
    # Only the first batch cleared; the second batch's rows were kept.
    assert stored_count(db) == 100


def test_sync_ignores_reset_in_recent_mode(db):
    SyncDriver(db_manager=db, source=ScriptedFlixcdnSource([full_page(500, 5, has_next=False)])).run_batch(0, 50)

    sync(db, ScriptedFlixcdnSource([full_page(1, 50)]), SyncOptions(mode="recent", pages=1, reset=True))

    assert stored_count(db) == 55
