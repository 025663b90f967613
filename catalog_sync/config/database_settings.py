from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from catalog_sync.errors import ConfigurationError


class DatabaseSettings(BaseSettings):

    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    # Shared by the admin API and the CLI; keep it small.
    pool_size: int = Field(default=3, alias="DB_POOL_SIZE")
    pool_timeout: float = Field(default=5.0, alias="DB_POOL_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        extra="ignore",
        populate_by_name=True,  # Allows us to still use database_url=xxx in Python code
    )

    @property
    def configured(self) -> bool:
        return bool((self.database_url or "").strip())

    @property
    def url(self) -> str:

        if not self.configured:
            raise ConfigurationError("Missing env: DATABASE_URL")

        url = self.database_url.strip()
        # Hosted Postgres providers hand out postgres:// URLs.
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]

        return url
