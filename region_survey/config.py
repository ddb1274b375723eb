from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str
    admin_api_token: str | None = None
    app_env: str = "dev"
    cors_allow_origins: str = "http://127.0.0.1:3000,http://localhost:3000"
    auto_apply_schema_on_startup: bool | None = None
    popular_regions_limit: int = 10
    db_connect_timeout_seconds: int = 10
    db_statement_timeout_ms: int = 15000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
