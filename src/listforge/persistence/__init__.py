"""Persistence layer - storage backends and predicate evaluation."""

from listforge.persistence.adapter import Model, StorageBackend
from listforge.persistence.config import DatabaseConfig, create_backend
from listforge.persistence.memory import MemoryBackend

__all__ = ["Model", "StorageBackend", "DatabaseConfig", "create_backend", "MemoryBackend"]
