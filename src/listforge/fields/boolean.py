"""Boolean field type."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from listforge.codecs import format_boolean, parse_boolean
from listforge.fields.base import Field
from listforge.filters import Filter
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document


class Boolean(Field):
    """True/False flag.

    Recognised input: bools, 0/1, and "true"/"false" in any case. Any other
    non-empty scalar counts as present and is stored as True.
    """

    type_id = "Boolean"
    storage_type = "INTEGER"
    default_options = {"indent": False}

    def validate_value(self, value: Any) -> FieldValidation:
        if isinstance(value, (dict, list, tuple)):
            return FieldValidation.fail(f"{self.label} must be true or false")
        return FieldValidation.ok()

    def validate_required_input(self, item: "Document", data: dict[str, Any]) -> FieldValidation:
        if self.has_data_value(data):
            value = self.get_value_from_data(data)
            present = value is not None and value != ""
        else:
            present = item.get(self.path) is not None
        if present:
            return FieldValidation.ok()
        return FieldValidation.fail(f"{self.label} is required")

    def coerce(self, value: Any) -> bool:
        return parse_boolean(value)

    def format(self, item: "Document", *args: Any) -> str:
        return format_boolean(item.get(self.path))

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        path = path or self.path
        flt = Filter.from_value(filter)
        wanted = parse_boolean(flt.value)
        if flt.inverted:
            wanted = not wanted
        # False also matches documents where the flag was never set
        return {path: True} if wanted else {path: {"$ne": True}}
