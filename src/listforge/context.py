"""The ListForge context.

A context owns a field type registry, a hook registry, its lists and the
storage backend they compile into. Several contexts can coexist in one
process; nothing is shared between them.
"""

from __future__ import annotations

import logging
from typing import Any

from listforge.core.types import FieldTypeDescriptor, FieldTypeRegistry
from listforge.errors import DuplicateListKey, ListNotFound
from listforge.fields import register_builtin_field_types
from listforge.hooks import HookFn, HookRegistry, HookService
from listforge.lists.list import List
from listforge.persistence import DatabaseConfig, StorageBackend, create_backend

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_OPTIONS: dict[str, Any] = {
    "user_model": None,
    "model_prefix": None,
}


class ListForge:
    """Entry point for defining and using lists.

    Example:
        forge = ListForge()
        posts = forge.create_list("Post", track=True)
        posts.add({"title": {"type": "Text", "required": True}})
        posts.register()
    """

    def __init__(self, backend: StorageBackend | None = None, **options: Any):
        self._options: dict[str, Any] = {**DEFAULT_CONTEXT_OPTIONS, **options}
        if backend is None:
            config = DatabaseConfig.from_env()
            if self._options.get("model_prefix"):
                config.table_prefix = self._options["model_prefix"]
            backend = create_backend(config)
        self.backend = backend
        self.field_types = FieldTypeRegistry()
        register_builtin_field_types(self.field_types)
        self.hooks = HookRegistry()
        self.hook_service = HookService(self.hooks)
        self._lists: dict[str, List] = {}

    # =========================================================================
    # Options
    # =========================================================================

    def set(self, key: str, value: Any) -> "ListForge":
        self._options[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._options.get(key, default)

    # =========================================================================
    # Lists
    # =========================================================================

    def create_list(self, key: str, **options: Any) -> List:
        """Create an unregistered list.

        Raises:
            DuplicateListKey: If a list with this key already exists
        """
        if key in self._lists:
            raise DuplicateListKey(key)
        lst = List(self, key, **options)
        self._lists[key] = lst
        logger.debug("Created list '%s'", key)
        return lst

    def list(self, key: str) -> List:
        """Get a list by key.

        Raises:
            ListNotFound: If no such list was created
        """
        if key not in self._lists:
            raise ListNotFound(key)
        return self._lists[key]

    def has_list(self, key: str) -> bool:
        return key in self._lists

    @property
    def lists(self) -> dict[str, List]:
        return dict(self._lists)

    # =========================================================================
    # Extension points
    # =========================================================================

    def register_field_type(self, type_id: str | FieldTypeDescriptor, factory: Any = None, **kwargs: Any) -> None:
        """Register a custom field type.

        Accepts a descriptor, or a type id plus a ``Field`` subclass (or any
        factory taking ``(list, path, options)``).
        """
        if isinstance(type_id, FieldTypeDescriptor):
            self.field_types.register(type_id)
            return
        if factory is None:
            raise TypeError("register_field_type() needs a factory for a type id")
        kwargs.setdefault("storage_type", getattr(factory, "storage_type", "TEXT"))
        self.field_types.register(FieldTypeDescriptor(type_id=type_id, factory=factory, **kwargs))

    def hook(self, name: str):
        """Decorator registering a named save hook on this context."""
        return self.hooks.hook(name)

    def register_hook(self, name: str, hook_fn: HookFn) -> None:
        self.hooks.register(name, hook_fn)

    def close(self) -> None:
        self.backend.close()
