"""Database configuration and backend factory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from listforge.persistence.adapter import StorageBackend

MEMORY_URL = "memory://"


@dataclass
class DatabaseConfig:
    """Storage configuration.

    Supports memory://, sqlite:/// and postgresql:// URL schemes.
    """

    url: str = MEMORY_URL
    table_prefix: str = ""

    @classmethod
    def from_env(cls) -> DatabaseConfig:
        """Create config from environment variables.

        Resolution order:
        1. LISTFORGE_DATABASE_URL env var
        2. DATABASE_URL env var (standard)
        3. LISTFORGE_DB_PATH env var (converted to sqlite:/// URL)
        4. Default: memory://
        """
        prefix = os.environ.get("LISTFORGE_TABLE_PREFIX", "")

        url = os.environ.get("LISTFORGE_DATABASE_URL") or os.environ.get("DATABASE_URL")
        if url:
            return cls(url=url, table_prefix=prefix)

        db_path = os.environ.get("LISTFORGE_DB_PATH")
        if db_path:
            return cls(url=f"sqlite:///{db_path}", table_prefix=prefix)

        return cls(url=MEMORY_URL, table_prefix=prefix)

    @property
    def is_memory(self) -> bool:
        return self.url.startswith("memory:")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_postgresql(self) -> bool:
        return self.url.startswith("postgresql")

    @property
    def sqlalchemy_url(self) -> str:
        """URL suitable for SQLAlchemy engine creation.

        Ensures postgresql:// URLs use the psycopg (v3) driver since
        the postgres extra installs psycopg[binary], not psycopg2.
        """
        if self.url.startswith("postgresql://"):
            return self.url.replace("postgresql://", "postgresql+psycopg://", 1)
        return self.url


def create_backend(config: DatabaseConfig) -> StorageBackend:
    """Create a storage backend based on the database URL scheme.

    Raises:
        ValueError: For unsupported URL schemes.
    """
    if config.is_memory:
        from listforge.persistence.memory import MemoryBackend

        return MemoryBackend()

    if config.is_sqlite or config.is_postgresql:
        from listforge.persistence.sql import SQLBackend

        return SQLBackend(config.sqlalchemy_url, table_prefix=config.table_prefix)

    raise ValueError(f"Unsupported database URL scheme: {config.url}")
