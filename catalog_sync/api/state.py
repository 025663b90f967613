"""Shared state container for the admin API."""

from __future__ import annotations

from typing import Callable

from catalog_sync.cache import TTLCache
from catalog_sync.config.database_settings import DatabaseSettings
from catalog_sync.config.provider_settings import AdminSettings
from catalog_sync.embeds import EmbedResolver
from catalog_sync.persistence.engine import DatabaseManager
from catalog_sync.pipeline.sources import CatalogSource

SourceFactory = Callable[[str, str], list[CatalogSource]]


class AppState:
    """
    Settings, the process-wide database manager, the source factory and the
    embed cache.

    The database manager is created on first use so a missing DATABASE_URL
    surfaces as a request error, not an import-time crash.
    """

    def __init__(
        self,
        *,
        database: DatabaseSettings,
        admin: AdminSettings,
        source_factory: SourceFactory,
        embed_cache: TTLCache,
    ) -> None:
        self.database = database
        self.admin = admin
        self.source_factory = source_factory
        self.embed_cache = embed_cache
        self._db: DatabaseManager | None = None

    def db(self) -> DatabaseManager:
        if self._db is None:
            self._db = DatabaseManager(self.database)
        return self._db

    def embed_resolver(self) -> EmbedResolver:
        return EmbedResolver(self.db(), self.embed_cache)

    def close(self) -> None:
        if self._db is not None:
            self._db.dispose()
            self._db = None
