"""Application factory for the catalog sync admin API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from catalog_sync.api.dependencies import Unauthorized
from catalog_sync.api.routers import admin, embeds
from catalog_sync.api.state import AppState, SourceFactory
from catalog_sync.cache import TTLCache
from catalog_sync.config.database_settings import DatabaseSettings
from catalog_sync.config.provider_settings import AdminSettings
from catalog_sync.errors import ConfigurationError
from catalog_sync.pipeline.sources import build_sources

logger = logging.getLogger(__name__)

EMBED_CACHE_TTL_SECONDS = 10 * 60


def _default_source_factory(provider: str, kind: str):
    return build_sources(provider, kind=kind)


def create_app(
    *,
    database_settings: DatabaseSettings | None = None,
    admin_settings: AdminSettings | None = None,
    source_factory: SourceFactory | None = None,
    embed_cache: TTLCache | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application."""

    app_state = AppState(
        database=database_settings or DatabaseSettings(),
        admin=admin_settings or AdminSettings(),
        source_factory=source_factory or _default_source_factory,
        embed_cache=embed_cache if embed_cache is not None else TTLCache(EMBED_CACHE_TTL_SECONDS),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app_state.close()

    app = FastAPI(title="Catalog Sync Admin API", version="0.1.0", lifespan=lifespan)
    app.state.app_state = app_state

    @app.exception_handler(ConfigurationError)
    def configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("API_CONFIGURATION_ERROR path=%s message=%s", request.url.path, exc)
        return JSONResponse({"success": False, "message": str(exc)}, status_code=500)

    @app.exception_handler(Unauthorized)
    def unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
        logger.warning("API_UNAUTHORIZED path=%s", request.url.path)
        return JSONResponse({"success": False, "message": "Unauthorized"}, status_code=401)

    for router in (admin.router, embeds.router):
        app.include_router(router)

    return app
