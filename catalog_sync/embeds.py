"""
Embed resolution: best stored player link for a Kinopoisk id.

Candidates come from every provider table, are ranked by `quality_score`
(best first, provider order on ties) and the answer is cached in an
injected TTLCache.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from catalog_sync.cache import TTLCache, cache_key
from catalog_sync.persistence.engine import DatabaseManager
from catalog_sync.persistence.stores.catalog import CatalogStore
from catalog_sync.persistence.tables import PROVIDER_TABLES
from catalog_sync.quality import quality_score, sort_by_quality

logger = logging.getLogger(__name__)


class EmbedCandidate(BaseModel):
    provider: str
    external_id: str
    kind: str
    title: str
    embed_url: str
    quality_label: str | None = None
    quality_score: int = 0


class EmbedResolution(BaseModel):
    kp_id: int
    best: EmbedCandidate
    candidates: list[EmbedCandidate]


class EmbedResolver:
    def __init__(self, db_manager: DatabaseManager, cache: TTLCache) -> None:
        self._db = db_manager
        self._cache = cache

    def resolve(self, kp_id: int) -> EmbedResolution | None:
        """
        Return the ranked candidates for `kp_id`, or None when nothing is stored.

        Misses are not cached so a sync landing in between is picked up.
        """
        key = cache_key(kind="embed", kp_id=kp_id)
        hit = self._cache.get(key)
        if hit is not None:
            logger.debug("EMBED_CACHE_HIT kp_id=%s", kp_id)
            return hit

        candidates: list[EmbedCandidate] = []
        with self._db.get_session() as session:
            for provider in PROVIDER_TABLES:
                for row in CatalogStore(session, provider).find_by_kp_id(kp_id):
                    if not row.embed_url:
                        continue
                    candidates.append(
                        EmbedCandidate(
                            provider=row.provider,
                            external_id=row.external_id,
                            kind=row.kind.value,
                            title=row.title,
                            embed_url=row.embed_url,
                            quality_label=row.quality_label,
                            quality_score=quality_score(row.quality_label),
                        )
                    )

        if not candidates:
            logger.info("EMBED_NOT_FOUND kp_id=%s", kp_id)
            return None

        ranked = sort_by_quality(candidates, key=lambda c: c.quality_label)
        resolution = EmbedResolution(kp_id=kp_id, best=ranked[0], candidates=ranked)
        self._cache.set(key, resolution)

        logger.info(
            "EMBED_RESOLVED kp_id=%s candidates=%d best_provider=%s best_quality=%s",
            kp_id,
            len(ranked),
            resolution.best.provider,
            resolution.best.quality_label,
        )
        return resolution
