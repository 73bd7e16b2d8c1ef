"""In-memory documents (list items).

A ``Document`` wraps a plain dict of stored values, resolves the virtual
paths contributed by the list's fields, and tracks which paths changed
since it was loaded or last saved.
"""

from __future__ import annotations

import copy
import functools
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from listforge.lists.list import List

_MISSING = object()


def get_path(data: dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted path from nested dicts."""
    if path in data:
        return data[path]
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def set_path(data: dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate dicts."""
    parts = path.split(".")
    current = data
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


def has_path(data: dict[str, Any], path: str) -> bool:
    return get_path(data, path, _MISSING) is not _MISSING


class _PathMethods:
    """Underscore methods bound to one document and one path."""

    def __init__(self, doc: "Document", path: str, methods: dict[str, Any]):
        self._doc = doc
        self._path = path
        self._methods = methods

    def __getattr__(self, name: str) -> Any:
        try:
            fn = self._methods[name]
        except KeyError:
            raise AttributeError(
                f"Path '{self._path}' has no underscore method '{name}'"
            ) from None
        return functools.partial(fn, self._doc)

    def __dir__(self) -> list[str]:
        return sorted(self._methods)


class UnderscoreAccessor:
    """``doc._.<path>.<method>(...)`` entry point."""

    def __init__(self, doc: "Document"):
        self._doc = doc

    def __getattr__(self, path: str) -> _PathMethods:
        schema = self._doc.list.schema
        table = schema.underscore if schema is not None else {}
        if path not in table:
            raise AttributeError(f"No underscore methods for path '{path}'")
        return _PathMethods(self._doc, path, table[path])

    def __getitem__(self, path: str) -> _PathMethods:
        return self.__getattr__(path)


class Document:
    """A single item belonging to a ``List``."""

    def __init__(self, list: "List", data: dict[str, Any] | None = None, is_new: bool = True):
        self.list = list
        self._data: dict[str, Any] = dict(data or {})
        self._original: dict[str, Any] = {} if is_new else copy.deepcopy(self._data)
        self.is_new = is_new
        self._ = UnderscoreAccessor(self)

    def __repr__(self) -> str:
        return f"<Document {self.list.key} id={self.id!r}>"

    @property
    def id(self) -> Any:
        return self._data.get("id")

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    def get(self, path: str, default: Any = None) -> Any:
        """Read a stored or virtual path."""
        schema = self.list.schema
        if schema is not None and path in schema.virtuals:
            return schema.virtuals[path].getter(self)
        return get_path(self._data, path, default)

    def set(self, path: str, value: Any) -> None:
        """Write a stored path, or a virtual path that has a setter."""
        schema = self.list.schema
        if schema is not None and path in schema.virtuals:
            contribution = schema.virtuals[path]
            if contribution.setter is None:
                raise AttributeError(f"Virtual path '{path}' is read-only")
            contribution.setter(self, value)
            return
        set_path(self._data, path, value)

    def has(self, path: str) -> bool:
        return has_path(self._data, path)

    def __getitem__(self, path: str) -> Any:
        return self.get(path)

    def __setitem__(self, path: str, value: Any) -> None:
        self.set(path, value)

    # -- change tracking ------------------------------------------------------

    def is_modified(self, path: str | None = None) -> bool:
        if path is None:
            return bool(self.modified_paths())
        return get_path(self._data, path, _MISSING) != get_path(self._original, path, _MISSING)

    def modified_paths(self) -> list[str]:
        keys = list(self._data) + [k for k in self._original if k not in self._data]
        return [k for k in keys if self._data.get(k, _MISSING) != self._original.get(k, _MISSING)]

    @property
    def original(self) -> dict[str, Any]:
        return copy.deepcopy(self._original)

    # -- lifecycle ------------------------------------------------------------

    def copy(self) -> "Document":
        """Deep copy that keeps the change-tracking baseline."""
        clone = Document(self.list, copy.deepcopy(self._data), is_new=self.is_new)
        clone._original = copy.deepcopy(self._original)
        return clone

    def mark_saved(self, data: dict[str, Any]) -> None:
        """Adopt the persisted state returned by the backend."""
        self._data = dict(data)
        self._original = copy.deepcopy(self._data)
        self.is_new = False

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)
