import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///./tournament.db"
DEFAULT_STANDINGS_CACHE_TTL_SECONDS = 300  # 5 minutes


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    database_url: str
    sql_echo: bool
    standings_cache_ttl_seconds: int
    log_level: str

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Read settings from the environment (and .env, if present)"""
    return Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        sql_echo=_env_flag("SQL_ECHO"),
        standings_cache_ttl_seconds=int(
            os.getenv("STANDINGS_CACHE_TTL_SECONDS", str(DEFAULT_STANDINGS_CACHE_TTL_SECONDS))
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
