"""Array field types: TextArray, NumberArray and DateArray.

Values are stored as lists. Elements that fail to parse are dropped on
update, matching the permissive single-value types. Filters match on
elements and take a ``presence`` of ``some`` (default) or ``none``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from listforge.codecs import format_date, format_number, is_empty, parse_date, parse_number
from listforge.fields.base import Field
from listforge.fields.dates import DATE_MODES, day_condition
from listforge.filters import RANGE_MODES, TEXT_MODES, Filter, range_condition, text_condition
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document


def empty_array_match(path: str, inverted: bool = False) -> dict[str, Any]:
    """Predicate for "no elements" (missing, null or ``[]``)."""
    empty = [{path: None}, {path: {"$size": 0}}]
    return {"$nor": empty} if inverted else {"$or": empty}


class _ArrayField(Field):
    storage_type = "JSON"
    type_options = ("separator", "format")
    default_options = {"separator": ", "}

    def to_list(self, value: Any) -> list[Any]:
        if value is None or value == "":
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        return [value]

    def parse_element(self, value: Any) -> Any:
        raise NotImplementedError

    def format_element(self, value: Any) -> str:
        return str(value)

    def validate_value(self, value: Any) -> FieldValidation:
        for element in self.to_list(value):
            if is_empty(element):
                continue
            if self.parse_element(element) is None:
                return FieldValidation.fail(f"{self.label} contains an invalid value: {element!r}")
        return FieldValidation.ok()

    def coerce(self, value: Any) -> list[Any]:
        parsed = (self.parse_element(v) for v in self.to_list(value) if not is_empty(v))
        return [v for v in parsed if v is not None]

    def get_data(self, item: "Document") -> list[Any]:
        return list(item.get(self.path) or [])

    def format(self, item: "Document", separator: str | None = None) -> str:
        if separator is None:
            separator = self.options.get("separator")
        return separator.join(self.format_element(v) for v in self.get_data(item))

    def element_condition(self, flt: Filter) -> dict[str, Any] | None:
        raise NotImplementedError

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        path = path or self.path
        flt = Filter.from_value(filter)
        condition = self.element_condition(flt)
        if condition is None:
            return empty_array_match(path, flt.inverted)
        presence = flt.get("presence", "some")
        if flt.inverted:
            presence = "some" if presence == "none" else "none"
        if presence == "none":
            return {path: {"$not": {"$elemMatch": condition}}}
        return {path: {"$elemMatch": condition}}


class TextArray(_ArrayField):
    type_id = "TextArray"

    def parse_element(self, value: Any) -> Any:
        if isinstance(value, (dict, list, tuple)):
            return None
        return str(value)

    def element_condition(self, flt: Filter) -> dict[str, Any] | None:
        if flt.is_empty:
            return None
        mode = flt.mode_or(TEXT_MODES, "contains")
        return text_condition(flt.value, mode, bool(flt.get("case_sensitive")))


class NumberArray(_ArrayField):
    type_id = "NumberArray"

    def parse_element(self, value: Any) -> Any:
        return parse_number(value)

    def format_element(self, value: Any) -> str:
        return format_number(value, self.options.get("format"))

    def element_condition(self, flt: Filter) -> dict[str, Any] | None:
        mode = flt.mode_or(RANGE_MODES, "equals")
        value = flt.value
        low = high = scalar = None
        if mode == "between":
            bounds = value if isinstance(value, dict) else {}
            low = parse_number(bounds.get("min", flt.get("min")))
            high = parse_number(bounds.get("max", flt.get("max")))
        elif not isinstance(value, (dict, list)):
            scalar = parse_number(value)
        return range_condition(flt, low, high, scalar)


class DateArray(_ArrayField):
    type_id = "DateArray"

    def parse_element(self, value: Any) -> Any:
        return parse_date(value)

    def format_element(self, value: Any) -> str:
        return format_date(value, self.options.get("format"))

    def element_condition(self, flt: Filter) -> dict[str, Any] | None:
        mode = flt.mode_or(DATE_MODES, "on")
        value = flt.value
        low = high = day = None
        if mode == "between":
            bounds = value if isinstance(value, dict) else {}
            low = parse_date(bounds.get("after", flt.get("after")))
            high = parse_date(bounds.get("before", flt.get("before")))
        elif not isinstance(value, dict):
            day = parse_date(value)
        return day_condition(mode, day, low, high, lambda d: d)
