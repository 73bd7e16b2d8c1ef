"""Field base class.

A ``Field`` is one typed path on a ``List``. Subclasses implement the value
codec (``validate_input``, ``update_item``, ``format``) and, when the type
is filterable, ``add_filter_to_query``. Types that cannot be filtered simply
do not define that method.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from listforge.codecs import is_empty, key_to_label
from listforge.document import get_path
from listforge.errors import FieldDefinitionError
from listforge.schema import Contribution, SchemaFragment
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document
    from listforge.lists.list import List

_VALID_PATH = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Options read by the engine itself. Everything else is forwarded to the
# schema fragment's metadata.
INTERPRETED_OPTIONS = frozenset(
    {
        "type",
        "label",
        "required",
        "unique",
        "index",
        "default",
        "initial",
        "noedit",
        "hidden",
        "depends_on",
        "size",
        "watch",
        "value",
        "virtual",
        "schema",
        "note",
        "nocol",
        "nosort",
        "collapse",
        "indent",
    }
)


class Field:
    """Base class for every field type."""

    type_id = "Field"
    storage_type = "TEXT"
    default_options: dict[str, Any] = {}
    # Type-specific option keys consumed by the subclass
    type_options: tuple[str, ...] = ()
    underscore_methods: tuple[str, ...] = ("format",)
    # Whether List.get_data exposes the stored value
    include_in_data = True

    def __init__(self, list: "List", path: str, options: dict[str, Any]):
        if not isinstance(path, str) or not _VALID_PATH.match(path):
            raise FieldDefinitionError(
                f"Invalid field path '{path}' on list '{list.key}'",
                list_key=list.key,
                path=path if isinstance(path, str) else None,
            )
        self.list = list
        self.path = path
        self.options: dict[str, Any] = {**self.default_options, **options}
        self.options["type"] = self.type_id

        opts = self.options
        self.label: str = opts.get("label") or key_to_label(path)
        self.required: bool | Callable[["Document"], bool] = opts.get("required", False)
        self.unique = bool(opts.get("unique", False))
        self.index = bool(opts.get("index", False)) or self.unique
        self.initial = bool(opts.get("initial", False))
        self.noedit = bool(opts.get("noedit", False))
        self.hidden = bool(opts.get("hidden", False))
        self.note = opts.get("note")
        self.depends_on = opts.get("depends_on")
        self.size = opts.get("size", "full")
        self.virtual = bool(opts.get("virtual", False))
        self.watch = opts.get("watch")
        self.value_fn = opts.get("value")

        if self.watch and not callable(self.value_fn):
            raise FieldDefinitionError(
                f"Field '{path}' on list '{list.key}' watches other paths "
                "but has no callable 'value' option",
                list_key=list.key,
                path=path,
            )
        if self.virtual and not callable(self.value_fn):
            raise FieldDefinitionError(
                f"Virtual field '{path}' on list '{list.key}' needs a callable 'value' option",
                list_key=list.key,
                path=path,
            )
        self.configure()

    def configure(self) -> None:
        """Hook for subclasses to read type-specific options."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.list.key}.{self.path}>"

    @property
    def type(self) -> str:
        return self.type_id

    @property
    def is_filterable(self) -> bool:
        return callable(getattr(self, "add_filter_to_query", None))

    @property
    def paths(self) -> list[str]:
        """Stored paths owned by this field."""
        return [frag.path for frag in self.schema_fragments()]

    # =========================================================================
    # Data access
    # =========================================================================

    def data_key(self, suffix: str = "") -> str:
        return f"{self.path}{suffix}"

    def has_data_value(self, data: dict[str, Any], suffix: str = "") -> bool:
        key = self.data_key(suffix)
        return key in data or get_path(data, key, _absent) is not _absent

    def get_value_from_data(self, data: dict[str, Any], suffix: str = "") -> Any:
        key = self.data_key(suffix)
        if key in data:
            return data[key]
        return get_path(data, key)

    def get_data(self, item: "Document") -> Any:
        return item.get(self.path)

    def get_default_value(self) -> Any:
        default = self.options.get("default")
        return default() if callable(default) else default

    def is_required(self, item: "Document") -> bool:
        if callable(self.required):
            return bool(self.required(item))
        return bool(self.required)

    # =========================================================================
    # Value codec
    # =========================================================================

    def format(self, item: "Document", *args: Any) -> str:
        value = item.get(self.path)
        return "" if value is None else str(value)

    def validate_input(self, data: dict[str, Any]) -> FieldValidation:
        """Check offered input. Absent or empty input is always valid."""
        if not self.has_data_value(data):
            return FieldValidation.ok()
        value = self.get_value_from_data(data)
        if is_empty(value):
            return FieldValidation.ok()
        return self.validate_value(value)

    def validate_value(self, value: Any) -> FieldValidation:
        return FieldValidation.ok()

    def validate_required_input(self, item: "Document", data: dict[str, Any]) -> FieldValidation:
        """Presence check against ``data``, falling back to ``item``."""
        if self.virtual:
            return FieldValidation.ok()
        if self.has_data_value(data):
            present = not is_empty(self.get_value_from_data(data))
        else:
            present = not is_empty(item.get(self.path))
        if present:
            return FieldValidation.ok()
        return FieldValidation.fail(f"{self.label} is required")

    def update_item(self, item: "Document", data: dict[str, Any]) -> None:
        if self.virtual or not self.has_data_value(data):
            return
        item.set(self.path, self.coerce(self.get_value_from_data(data)))

    def coerce(self, value: Any) -> Any:
        """Convert validated input into the stored representation."""
        return None if is_empty(value) else value

    # =========================================================================
    # Watched values
    # =========================================================================

    def should_recompute(self, item: "Document") -> bool:
        """Whether the ``value`` option must run before this save."""
        watch = self.watch
        if not watch:
            return False
        if watch is True:
            return True
        if callable(watch):
            return bool(watch(item))
        if isinstance(watch, dict):
            return any(
                item.is_modified(path) and item.get(path) == expected
                for path, expected in watch.items()
            )
        if isinstance(watch, str):
            watch = [p for p in re.split(r"[\s,]+", watch) if p]
        return item.is_new or any(item.is_modified(path) for path in watch)

    async def compute_value(self, item: "Document") -> Any:
        result = self.value_fn(item)
        if inspect.isawaitable(result):
            result = await result
        return result

    # =========================================================================
    # Schema contribution
    # =========================================================================

    def schema_metadata(self) -> dict[str, Any]:
        """Options the engine does not interpret, forwarded verbatim."""
        metadata = {
            key: value
            for key, value in self.options.items()
            if key not in INTERPRETED_OPTIONS and key not in self.type_options
        }
        extra = self.options.get("schema")
        if isinstance(extra, dict):
            metadata.update(extra)
        return metadata

    def schema_fragments(self) -> list[SchemaFragment]:
        if self.virtual:
            return []
        default = self.options.get("default")
        return [
            SchemaFragment(
                path=self.path,
                type_id=self.type_id,
                storage_type=self.storage_type,
                index=self.index,
                unique=self.unique,
                # Callable defaults are evaluated per document in List.new_item
                default=None if callable(default) else default,
                metadata=self.schema_metadata(),
            )
        ]

    def contributions(self) -> list[Contribution]:
        if self.virtual:
            return [Contribution(self.path, self.path, self.value_fn)]
        return []

    def underscore(self) -> dict[str, Callable[..., Any]]:
        return {name: getattr(self, name) for name in self.underscore_methods}

    # =========================================================================
    # UI metadata
    # =========================================================================

    def get_options(self) -> dict[str, Any]:
        """Field description for an admin UI."""
        options = {
            "path": self.path,
            "paths": self.paths,
            "type": self.type_id,
            "label": self.label,
            "size": self.size,
            "required": bool(self.required),
            "initial": self.initial,
            "noedit": self.noedit,
            "hidden": self.hidden,
            "note": self.note,
            "depends_on": self.depends_on,
            "nocol": bool(self.options.get("nocol", False)),
            "nosort": bool(self.options.get("nosort", False)),
            "collapse": bool(self.options.get("collapse", False)),
            "filterable": self.is_filterable,
            "default_value": self.get_default_value(),
        }
        options.update(self.extra_options())
        return options

    def extra_options(self) -> dict[str, Any]:
        return {}


_absent = object()
