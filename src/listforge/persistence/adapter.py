"""Storage backend Protocols: the only persistence surface lists depend on."""

from typing import Any, Protocol, runtime_checkable

from listforge.schema import CompiledSchema


@runtime_checkable
class Model(Protocol):
    """Compiled model for one list.

    Predicates use the Mongo-shaped grammar described in
    ``listforge.filters``. ``sort`` is a list of ``(path, direction)``
    tuples with direction 1 or -1. ``projection`` limits returned paths
    (``id`` is always included).
    """

    schema: CompiledSchema

    async def find(
        self,
        predicate: dict[str, Any] | None = None,
        projection: list[str] | None = None,
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    async def count(self, predicate: dict[str, Any] | None = None) -> int: ...

    async def save(self, document: dict[str, Any]) -> dict[str, Any]:
        """Insert or update by ``id``; assigns an id to new documents."""
        ...


@runtime_checkable
class StorageBackend(Protocol):
    """Compiles list schemas into models."""

    def compile_schema(self, schema: CompiledSchema) -> Model: ...

    def close(self) -> None: ...
