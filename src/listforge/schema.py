"""Aggregate schema assembled from per-field contributions.

Each field returns ``SchemaFragment`` objects for the paths it stores and
``Contribution`` objects for the derived virtual paths it exposes. The list
collects both into a ``CompiledSchema`` at ``register()`` time, and that
object is what the storage backend compiles into a model.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from listforge.errors import FieldDefinitionError

if TYPE_CHECKING:
    from listforge.document import Document

# Storage types understood by the backends
STORAGE_TYPES = ("TEXT", "REAL", "INTEGER", "DATE", "DATETIME", "JSON")


@dataclass
class SchemaFragment:
    """One stored path.

    Attributes:
        path: Document path (may contain dots for derived sub-paths)
        type_id: Field type that owns the path
        storage_type: One of ``STORAGE_TYPES``
        index: Request an index on the path
        unique: Request uniqueness (enforced by the list on save)
        default: Value for new documents
        metadata: Field options the engine does not interpret, forwarded
            verbatim for downstream consumers
    """

    path: str
    type_id: str
    storage_type: str = "TEXT"
    index: bool = False
    unique: bool = False
    default: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.storage_type not in STORAGE_TYPES:
            raise FieldDefinitionError(
                f"Unknown storage type '{self.storage_type}' for path '{self.path}'",
                path=self.path,
            )


@dataclass
class Contribution:
    """A derived virtual path computed from a document.

    Attributes:
        path: The virtual path, e.g. ``statusLabel``
        field: Path of the field that contributes it
        getter: Reads the virtual value from a document
        setter: Optional writer for settable virtuals
    """

    path: str
    field: str
    getter: Callable[["Document"], Any]
    setter: Callable[["Document", Any], None] | None = None


@dataclass
class CompiledSchema:
    """The finished schema for one list.

    ``options`` is the list's ``schema`` option, passed to the backend as
    given. Backends read ``collection`` from it to override the storage name.
    """

    list_key: str
    options: dict[str, Any] = field(default_factory=dict)
    fragments: dict[str, SchemaFragment] = field(default_factory=dict)
    virtuals: dict[str, Contribution] = field(default_factory=dict)
    underscore: dict[str, dict[str, Callable[..., Any]]] = field(default_factory=dict)

    def add_fragment(self, fragment: SchemaFragment) -> None:
        if fragment.path in self.fragments or fragment.path in self.virtuals:
            raise FieldDefinitionError(
                f"Path '{fragment.path}' is defined twice on list '{self.list_key}'",
                list_key=self.list_key,
                path=fragment.path,
            )
        self.fragments[fragment.path] = fragment

    def add_contribution(self, contribution: Contribution) -> None:
        if contribution.path in self.fragments or contribution.path in self.virtuals:
            raise FieldDefinitionError(
                f"Virtual '{contribution.path}' clashes with an existing path "
                f"on list '{self.list_key}'",
                list_key=self.list_key,
                path=contribution.path,
            )
        self.virtuals[contribution.path] = contribution

    def add_underscore_methods(self, path: str, methods: dict[str, Callable[..., Any]]) -> None:
        self.underscore.setdefault(path, {}).update(methods)

    @property
    def collection(self) -> str | None:
        return self.options.get("collection")

    @property
    def paths(self) -> list[str]:
        return list(self.fragments)

    def defaults(self) -> dict[str, Any]:
        """Default values for a new document, keyed by stored path."""
        return {
            path: frag.default
            for path, frag in self.fragments.items()
            if frag.default is not None
        }
