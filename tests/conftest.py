import pytest

from catalog_sync.config.database_settings import DatabaseSettings
from catalog_sync.persistence.engine import DatabaseManager
from catalog_sync.persistence.models import UpstreamPage
from catalog_sync.persistence.stores.catalog import CatalogStore
from catalog_sync.pipeline.sources import FlixcdnSource


# --- FIXTURES ---
# Logic: Every storage test gets its own SQLite file, schema already created.
@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(
        DatabaseSettings(database_url=f"sqlite:///{tmp_path / 'catalog.db'}")
    )
    for provider in ("flixcdn", "videoseed"):
        with manager.get_session() as session:
            CatalogStore(session, provider).ensure_schema()
    yield manager
    manager.dispose()


@pytest.fixture
def no_sleep():
    # Logic: Record requested delays instead of sleeping.
    delays = []
    return delays.append, delays


def flixcdn_item(item_id, **overrides):
    item = {
        "id": item_id,
        "type": "movie",
        "title_rus": f"Фильм {item_id}",
        "title_orig": f"Movie {item_id}",
        "year": 2020,
        "kinopoisk_id": 1000 + int(item_id),
        "imdb_id": f"tt{item_id:07d}",
        "iframe_url": f"//player.flixcdn.test/embed/{item_id}",
        "quality": "1080p",
        "genres": ["Drama"],
        "countries": ["USA"],
        "created_at": "2024-01-02T03:04:05Z",
    }
    item.update(overrides)
    return item


class ScriptedFlixcdnSource(FlixcdnSource):
    """
    FlixCDN source whose pages come from a script instead of HTTP.

    Each script entry is an UpstreamPage or an exception to raise; the
    cursors asked for are recorded in `calls`.
    """

    def __init__(self, script):
        self._script = list(script)
        self.calls = []

    def fetch(self, cursor, page_size, mode):
        self.calls.append((cursor, page_size, mode))
        step = self._script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


def full_page(start, size, *, has_next=True):
    items = [flixcdn_item(i) for i in range(start, start + size)]
    return UpstreamPage(items=items, next_cursor=start - 1 + size if has_next else None)
