import logging

from functools import lru_cache
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class StoreBackend(str, Enum):
    MEMORY = "memory"
    SQL = "sql"


class Settings(BaseSettings):
    store_backend: StoreBackend = StoreBackend.MEMORY
    db_url: str | None = None
    store_timeout: float = Field(gt=0, default=5.0, description="Deadline per store round trip, seconds")
    snapshot_isolation: str | None = Field(default=None, description="Isolation level for SQL snapshots")

    # Userset rewrite rules
    usersets_path: Path | None = None
    usersets_delimiter: str = Field(default="|", min_length=1)

    # Tuples imported at startup
    seed_path: Path | None = None

    # Check engine
    max_concurrency: int = Field(gt=0, default=16, description="Concurrent edge fetches per check")
    max_depth: int | None = Field(default=None, description="Optional cap on path length")

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix='rebac_')


@lru_cache()
def get_settings():
    return Settings()
