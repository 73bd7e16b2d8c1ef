"""Field type registry.

Maps a type id (``"Text"``, ``"Select"``, ...) to a ``FieldTypeDescriptor``
holding the factory that builds a ``Field`` for a list path. Built-in types
are enumerated by ``Types``; applications add their own by registering
descriptors on a context's registry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from listforge.errors import UnknownFieldType

if TYPE_CHECKING:
    from listforge.fields.base import Field
    from listforge.lists.list import List

logger = logging.getLogger(__name__)

FieldFactory = Callable[["List", str, dict[str, Any]], "Field"]


class Types(str, Enum):
    """Built-in field types."""

    TEXT = "Text"
    TEXTAREA = "Textarea"
    HTML = "Html"
    EMAIL = "Email"
    URL = "Url"
    KEY = "Key"
    NUMBER = "Number"
    MONEY = "Money"
    BOOLEAN = "Boolean"
    SELECT = "Select"
    DATE = "Date"
    DATETIME = "Datetime"
    TEXT_ARRAY = "TextArray"
    NUMBER_ARRAY = "NumberArray"
    DATE_ARRAY = "DateArray"
    PASSWORD = "Password"
    RELATIONSHIP = "Relationship"
    GEO_POINT = "GeoPoint"


# Native Python types accepted as a field ``type``. bool is checked before
# int because bool subclasses int.
NATIVE_TYPES: list[tuple[type, Types]] = [
    (str, Types.TEXT),
    (bool, Types.BOOLEAN),
    (int, Types.NUMBER),
    (float, Types.NUMBER),
    (datetime, Types.DATE),
    (date, Types.DATE),
]


@dataclass(frozen=True)
class FieldTypeDescriptor:
    """Registered factory and canonical name for one field type.

    Attributes:
        type_id: Canonical type name, unique within a registry
        factory: ``factory(list, path, options) -> Field``
        storage_type: Storage type of the primary path
        description: Human-readable description
    """

    type_id: str
    factory: FieldFactory
    storage_type: str = "TEXT"
    description: str = ""

    def create(self, list: "List", path: str, options: dict[str, Any]) -> "Field":
        return self.factory(list, path, options)


class FieldTypeRegistry:
    """Per-context registry of field types.

    Example:
        registry = FieldTypeRegistry()
        registry.register(FieldTypeDescriptor("Slug", SlugField))
        descriptor = registry.resolve("Slug")
    """

    def __init__(self) -> None:
        self._types: dict[str, FieldTypeDescriptor] = {}

    def register(
        self,
        type_id: str | FieldTypeDescriptor,
        descriptor: FieldTypeDescriptor | None = None,
    ) -> None:
        """Register a descriptor. The last registration for a type id wins.

        Args:
            type_id: Type id, or the descriptor itself
            descriptor: Descriptor when ``type_id`` is a string
        """
        if isinstance(type_id, FieldTypeDescriptor):
            descriptor = type_id
            type_id = descriptor.type_id
        if descriptor is None:
            raise TypeError("register() needs a FieldTypeDescriptor")
        if isinstance(type_id, Types):
            type_id = type_id.value
        if type_id in self._types:
            logger.debug("Field type '%s' re-registered", type_id)
        self._types[type_id] = descriptor

    def get(self, type_id: str) -> FieldTypeDescriptor:
        """Get a descriptor by type id.

        Raises:
            UnknownFieldType: If the id is not registered
        """
        if type_id not in self._types:
            raise UnknownFieldType(None, None, type_id)
        return self._types[type_id]

    def is_registered(self, type_id: str) -> bool:
        return type_id in self._types

    def list_registered(self) -> list[str]:
        return sorted(self._types.keys())

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._types.clear()

    def resolve(
        self,
        type_ref: Any,
        list_key: str | None = None,
        path: str | None = None,
    ) -> FieldTypeDescriptor:
        """Resolve a ``type`` option to a descriptor.

        Accepts a descriptor, a ``Types`` member, a type id string, a
        ``Field`` subclass, or a native Python type.

        Raises:
            UnknownFieldType: Naming the list key and path
        """
        from listforge.fields.base import Field

        if isinstance(type_ref, FieldTypeDescriptor):
            return type_ref
        if isinstance(type_ref, Types):
            type_ref = type_ref.value
        if isinstance(type_ref, str):
            if type_ref in self._types:
                return self._types[type_ref]
            raise UnknownFieldType(list_key, path, type_ref)
        if isinstance(type_ref, type):
            if issubclass(type_ref, Field):
                registered = self._types.get(type_ref.type_id)
                if registered is not None and registered.factory is type_ref:
                    return registered
                return FieldTypeDescriptor(
                    type_id=type_ref.type_id,
                    factory=type_ref,
                    storage_type=type_ref.storage_type,
                )
            for native, builtin in NATIVE_TYPES:
                if type_ref is native:
                    return self.resolve(builtin, list_key, path)
        raise UnknownFieldType(list_key, path, type_ref)
