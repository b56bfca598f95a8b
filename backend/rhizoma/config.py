"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - Credentials come from environment variables or .env (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - db_read / db_write accept one endpoint or a list of endpoints

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Endpoint lists parsed from JSON env values (pydantic-settings complex types)
    - Defaults for all non-secret settings: works out-of-the-box with a local PostgreSQL
"""

from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Endpoint(BaseModel):
    """One database server for a split read or write role."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Tables
    db_prefix: str = "rhizoma_"

    # General (read-write) endpoint
    db_driver: str = "postgresql+asyncpg"
    db_host: str | None = "localhost"
    db_port: int | None = None
    db_user: str | None = None
    db_pass: str | None = None
    db_name: str | None = None

    # Split read/write endpoints
    db_split: bool = False
    db_read: Endpoint | list[Endpoint] | None = None
    db_write: Endpoint | list[Endpoint] | None = None

    # Query cache
    db_disable_query_cache: bool = False

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def query_cache_enabled(self) -> bool:
        return not self.db_disable_query_cache


@lru_cache
def get_settings() -> Settings:
    return Settings()
