from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from catalog_sync.errors import ConfigurationError

DEFAULT_FLIXCDN_API_BASE = "https://api0.flixcdn.biz"
DEFAULT_VIDEOSEED_API_BASE = "https://api.videoseed.tv/apiv2.php"


def _require(value: str | None, env_name: str) -> str:
    v = (value or "").strip()
    if not v:
        raise ConfigurationError(f"Missing env: {env_name}")
    return v


class FlixcdnSettings(BaseSettings):
    """
    Loads FlixCDN credentials and API bases from .env / .env.local.
    """

    flixcdn_token: str | None = Field(default=None, alias="FLIXCDN_TOKEN")
    flixcdn_api_base: str = Field(default=DEFAULT_FLIXCDN_API_BASE, alias="FLIXCDN_API_BASE")
    flixcdn_api_bases: str | None = Field(default=None, alias="FLIXCDN_API_BASES")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def token(self) -> str:
        return _require(self.flixcdn_token, "FLIXCDN_TOKEN")

    @property
    def api_bases(self) -> list[str]:
        """Bases tried in order; FLIXCDN_API_BASES wins over the single base."""
        raw = (self.flixcdn_api_bases or "").strip()
        if raw:
            bases = [b.strip().rstrip("/") for b in raw.split(",") if b.strip()]
            if bases:
                return bases
        base = (self.flixcdn_api_base or "").strip() or DEFAULT_FLIXCDN_API_BASE
        return [base.rstrip("/")]


class VideoseedSettings(BaseSettings):
    """
    Loads Videoseed credentials from .env / .env.local.
    """

    videoseed_token: str | None = Field(default=None, alias="VIDEOSEED_TOKEN")
    videoseed_api_base: str = Field(default=DEFAULT_VIDEOSEED_API_BASE, alias="VIDEOSEED_API_BASE")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def token(self) -> str:
        return _require(self.videoseed_token, "VIDEOSEED_TOKEN")

    @property
    def api_base(self) -> str:
        raw = (self.videoseed_api_base or "").strip()
        if raw.lower().startswith(("http://", "https://")) and len(raw.split("://", 1)[1]) > 0:
            return raw
        return DEFAULT_VIDEOSEED_API_BASE


class AdminSettings(BaseSettings):
    """
    Shared secret guarding the admin sync endpoint.
    """

    admin_sync_token: str | None = Field(default=None, alias="ADMIN_SYNC_TOKEN")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def token(self) -> str:
        return _require(self.admin_sync_token, "ADMIN_SYNC_TOKEN")
