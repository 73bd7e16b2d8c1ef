"""Numeric field types."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from listforge.codecs import format_number, parse_number
from listforge.fields.base import Field
from listforge.filters import RANGE_MODES, Filter, empty_match, range_condition
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document


def numeric_filter(path: str, flt: Filter, parse: Any) -> dict[str, Any]:
    """Translate equals/gt/lt/between filters over a numeric path.

    ``between`` takes ``{"min": a, "max": b}`` and either bound may be left
    out. Inverted range modes use ``$not`` so null values are included.
    """
    mode = flt.mode_or(RANGE_MODES, "equals")
    value = flt.value
    low = high = scalar = None
    if mode == "between":
        bounds = value if isinstance(value, dict) else {}
        low = parse(bounds.get("min", flt.get("min")))
        high = parse(bounds.get("max", flt.get("max")))
    elif not isinstance(value, (dict, list)):
        scalar = parse(value)

    condition = range_condition(flt, low, high, scalar)
    if condition is None:
        return empty_match(path, flt.inverted)
    if mode == "equals":
        return {path: {"$ne": scalar}} if flt.inverted else {path: scalar}
    if flt.inverted:
        return {path: {"$not": condition}}
    return {path: condition}


class Number(Field):
    """Integer or floating point number.

    Invalid input stores None rather than failing the save.
    """

    type_id = "Number"
    storage_type = "REAL"
    type_options = ("format",)

    def parse(self, value: Any) -> int | float | None:
        return parse_number(value)

    def validate_value(self, value: Any) -> FieldValidation:
        if self.parse(value) is None:
            return FieldValidation.fail(f"{self.label} must be a number")
        return FieldValidation.ok()

    def coerce(self, value: Any) -> Any:
        return self.parse(value)

    def format(self, item: "Document", fmt: Any = None) -> str:
        return format_number(item.get(self.path), fmt if fmt is not None else self.options.get("format"))

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        return numeric_filter(path or self.path, Filter.from_value(filter), self.parse)


class Money(Number):
    """Currency amount. Input may include the currency symbol."""

    type_id = "Money"
    type_options = ("format", "currency")
    default_options = {"currency": "$", "format": ",.2f"}

    def parse(self, value: Any) -> int | float | None:
        return parse_number(value, strip="," + str(self.options.get("currency") or ""))

    def format(self, item: "Document", fmt: Any = None) -> str:
        value = item.get(self.path)
        fmt = fmt if fmt is not None else self.options.get("format")
        if value is None or fmt is False:
            return format_number(value, fmt)
        symbol = self.options.get("currency") or ""
        text = format_number(abs(value), fmt)
        return f"-{symbol}{text}" if value < 0 else f"{symbol}{text}"

    def extra_options(self) -> dict[str, Any]:
        return {"currency": self.options.get("currency")}
