"""In-memory storage backend.

Documents live in per-list dicts keyed by id. Useful for tests and for
applications that do not need durable storage.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import re
import uuid
from typing import Any

from listforge.errors import BackendError
from listforge.persistence.matcher import matches, resolve, sort_key
from listforge.schema import CompiledSchema

logger = logging.getLogger(__name__)


def project(doc: dict[str, Any], projection: list[str] | None) -> dict[str, Any]:
    """Keep ``id`` and the top-level keys named by ``projection``."""
    if projection is None:
        return copy.deepcopy(doc)
    keep = {"id"} | {p.split(".")[0] for p in projection}
    return {k: copy.deepcopy(v) for k, v in doc.items() if k in keep}


def sort_documents(docs: list[dict[str, Any]], sort: list[tuple[str, int]] | None) -> list[dict[str, Any]]:
    # Stable sorts applied last key first give a multi-key ordering
    for path, direction in reversed(sort or []):
        docs.sort(key=lambda d: sort_key(resolve(d, path)), reverse=direction < 0)
    return docs


class MemoryModel:
    """Model over an in-process dict of documents."""

    def __init__(self, schema: CompiledSchema, store: dict[str, dict[str, Any]]):
        self.schema = schema
        self._store = store

    def _select(self, predicate: dict[str, Any] | None) -> list[dict[str, Any]]:
        try:
            return [doc for doc in self._store.values() if matches(doc, predicate)]
        except (ValueError, re.error) as e:
            raise BackendError(f"Invalid query for '{self.schema.list_key}': {e}", cause=e) from e

    async def find(
        self,
        predicate: dict[str, Any] | None = None,
        projection: list[str] | None = None,
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        docs = sort_documents(self._select(predicate), sort)
        end = None if limit is None else skip + limit
        return [project(doc, projection) for doc in docs[skip:end]]

    async def count(self, predicate: dict[str, Any] | None = None) -> int:
        await asyncio.sleep(0)
        return len(self._select(predicate))

    async def save(self, document: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(0)
        stored = copy.deepcopy(document)
        if not stored.get("id"):
            stored["id"] = uuid.uuid4().hex
        self._store[stored["id"]] = stored
        logger.debug("Saved %s/%s", self.schema.list_key, stored["id"])
        return copy.deepcopy(stored)


class MemoryBackend:
    """Backend holding one ``MemoryModel`` collection per list."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def compile_schema(self, schema: CompiledSchema) -> MemoryModel:
        store = self._collections.setdefault(schema.collection or schema.list_key, {})
        return MemoryModel(schema, store)

    def close(self) -> None:
        self._collections.clear()
