"""Per-document validation results.

Field validation never raises: each check returns a ``FieldValidation`` and
``List.update_item`` aggregates failures into an ``UpdateResult`` so callers
can report every problem in a form submission at once.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FailureKind(Enum):
    """Why a field rejected its input."""

    REQUIRED = "required"
    INVALID = "invalid"
    UNIQUE = "unique"


@dataclass(frozen=True)
class FieldValidation:
    """Outcome of a single field check.

    Attributes:
        valid: Whether the input passed
        message: Human-readable reason when ``valid`` is False
    """

    valid: bool
    message: str | None = None

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def ok(cls) -> "FieldValidation":
        return cls(True)

    @classmethod
    def fail(cls, message: str) -> "FieldValidation":
        return cls(False, message)


@dataclass(frozen=True)
class ValidationFailed:
    """A field-level failure collected during ``List.update_item``.

    Attributes:
        field: Path of the field that failed
        reason: Human-readable message
        kind: Which check failed
    """

    field: str
    reason: str
    kind: FailureKind = FailureKind.INVALID

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "reason": self.reason,
            "kind": self.kind.value,
        }


@dataclass
class UpdateResult:
    """Result of ``List.update_item``.

    On failure ``item`` is the caller's unchanged document and ``errors``
    maps each failing path to its ``ValidationFailed``. A beforeSave hook
    abort is reported through ``message`` with no per-field errors.
    """

    success: bool
    item: Any
    errors: dict[str, ValidationFailed] = field(default_factory=dict)
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "errors": {path: err.to_dict() for path, err in self.errors.items()},
        }
