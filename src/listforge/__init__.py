"""ListForge: typed lists of fields over pluggable storage."""

from listforge.context import ListForge
from listforge.core.types import FieldTypeDescriptor, FieldTypeRegistry, Types
from listforge.document import Document
from listforge.errors import (
    BackendError,
    Cancelled,
    ConfigurationError,
    DuplicateListKey,
    FieldDefinitionError,
    ListAlreadyRegistered,
    ListForgeError,
    ListNotFound,
    ListNotRegistered,
    UniqueValueExhausted,
    UnknownFieldType,
    UnknownFilterPath,
    UnresolvedReference,
)
from listforge.fields.base import Field
from listforge.filters import Filter
from listforge.lists import List, Page
from listforge.validation import FailureKind, FieldValidation, UpdateResult, ValidationFailed

__version__ = "0.1.0"

__all__ = [
    "BackendError",
    "Cancelled",
    "ConfigurationError",
    "Document",
    "DuplicateListKey",
    "FailureKind",
    "Field",
    "FieldDefinitionError",
    "FieldTypeDescriptor",
    "FieldTypeRegistry",
    "FieldValidation",
    "Filter",
    "List",
    "ListAlreadyRegistered",
    "ListForge",
    "ListForgeError",
    "ListNotFound",
    "ListNotRegistered",
    "Page",
    "Types",
    "UniqueValueExhausted",
    "UnknownFieldType",
    "UnknownFilterPath",
    "UnresolvedReference",
    "UpdateResult",
    "ValidationFailed",
]
