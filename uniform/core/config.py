"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "uniform_user"
    postgres_password: str = "password"
    postgres_db: str = "uniform_db"

    # Full SQLAlchemy URL, overrides the postgres_* parts (e.g. sqlite for tests)
    database_url: Optional[str] = None

    # Every statement is bounded so a stuck query fails the request instead of hanging
    db_statement_timeout_ms: int = 10000
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # JWT Auth - tokens are long lived (365 days) and not rotated
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 365 * 24 * 60

    # Bootstrap system admin (scripts/init_db.py)
    system_admin_email: Optional[str] = None
    system_admin_password: Optional[str] = None

    # App
    debug: bool = False
    log_level: str = "INFO"

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or self.postgres_url

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
