"""
Configuration

Settings are read from environment variables. When DATABASE_URL is not set
but POSTGRES_HOST is, a PostgreSQL URL is assembled from the POSTGRES_*
variables; otherwise a local SQLite file is used.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Mapping, Optional
from urllib.parse import quote

from .persistence.database import DEFAULT_DATABASE_URL


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


def build_database_url(env: Mapping[str, str]) -> str:
    """Resolve the database URL from an environment mapping."""
    if env.get("DATABASE_URL"):
        return env["DATABASE_URL"]

    host = env.get("POSTGRES_HOST")
    if not host:
        return DEFAULT_DATABASE_URL

    user = quote(env.get("POSTGRES_USER", "postgres"), safe="")
    password = env.get("POSTGRES_PASSWORD", "")
    credentials = f"{user}:{quote(password, safe='')}" if password else user
    port = env.get("POSTGRES_PORT", "5432")
    dbname = env.get("POSTGRES_DB", "subscriptions")
    sslmode = env.get("POSTGRES_SSLMODE", "disable")
    return f"postgresql://{credentials}@{host}:{port}/{dbname}?sslmode={sslmode}"


@dataclass
class Settings:
    """Application settings loaded from environment variables."""
    env: str = "local"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_json: bool = False
    database_url: str = DEFAULT_DATABASE_URL
    cors_origins: str = "*"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            env=env.get("APP_ENV", "local"),
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "8000")),
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_json=_env_bool(env.get("LOG_JSON")),
            database_url=build_database_url(env),
            cors_origins=env.get("CORS_ORIGINS", "*"),
        )

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings for the running process."""
    return Settings.from_env()
