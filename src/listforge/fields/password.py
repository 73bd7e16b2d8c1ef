"""Password field type, hashed with bcrypt."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Any

from passlib.context import CryptContext

from listforge.codecs import is_empty
from listforge.fields.base import Field
from listforge.filters import Filter, empty_match
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document


class Password(Field):
    """Stores a bcrypt hash of the offered password.

    A ``<path>_confirm`` value, when offered, must match. Submitting an
    empty password keeps the existing hash. ``format`` returns a mask whose
    length is random, so it reveals nothing about the password.
    """

    type_id = "Password"
    type_options = ("work_factor", "min", "max")
    default_options = {"work_factor": 10}
    underscore_methods = ("format", "compare")
    include_in_data = False

    def configure(self) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=int(self.options.get("work_factor")),
        )

    def validate_input(self, data: dict[str, Any]) -> FieldValidation:
        if not self.has_data_value(data):
            return FieldValidation.ok()
        value = self.get_value_from_data(data)
        if is_empty(value):
            return FieldValidation.ok()
        if not isinstance(value, str):
            return FieldValidation.fail(f"{self.label} must be a string")
        if self.has_data_value(data, "_confirm") and self.get_value_from_data(data, "_confirm") != value:
            return FieldValidation.fail("Passwords must match")
        min_length = self.options.get("min")
        max_length = self.options.get("max")
        if min_length is not None and len(value) < min_length:
            return FieldValidation.fail(f"{self.label} must be at least {min_length} characters")
        if max_length is not None and len(value) > max_length:
            return FieldValidation.fail(f"{self.label} must be at most {max_length} characters")
        return FieldValidation.ok()

    def validate_required_input(self, item: "Document", data: dict[str, Any]) -> FieldValidation:
        # An empty submission keeps the stored hash, so either satisfies it
        offered = self.get_value_from_data(data) if self.has_data_value(data) else None
        if not is_empty(offered) or item.get(self.path):
            return FieldValidation.ok()
        return FieldValidation.fail(f"{self.label} is required")

    def update_item(self, item: "Document", data: dict[str, Any]) -> None:
        if not self.has_data_value(data):
            return
        value = self.get_value_from_data(data)
        if is_empty(value):
            return
        item.set(self.path, self.hash(value))

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def compare(self, item: "Document", candidate: str) -> bool:
        """Check ``candidate`` against the stored hash."""
        stored = item.get(self.path)
        if not stored or not candidate:
            return False
        try:
            return self._context.verify(candidate, stored)
        except ValueError:
            return False

    def format(self, item: "Document", *args: Any) -> str:
        if not item.get(self.path):
            return ""
        return "*" * (8 + secrets.randbelow(12))

    def get_data(self, item: "Document") -> Any:
        return None

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        """``exists`` mode: a truthy value matches documents with a password set."""
        flt = Filter.from_value(filter)
        wants_password = bool(flt.value) and str(flt.value).lower() != "false"
        if flt.inverted:
            wants_password = not wants_password
        return empty_match(path or self.path, inverted=wants_password)
