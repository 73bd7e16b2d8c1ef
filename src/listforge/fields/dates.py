"""Date and Datetime field types."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from listforge.codecs import (
    DEFAULT_DATE_PARSE_FORMATS,
    DEFAULT_DATETIME_FORMAT,
    DEFAULT_DATETIME_PARSE_FORMATS,
    format_date,
    is_empty,
    parse_date,
    parse_datetime,
    parse_number,
    to_naive_utc,
)
from listforge.fields.base import Field
from listforge.filters import Filter, empty_match
from listforge.schema import SchemaFragment
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document

DATE_MODES = ("on", "after", "before", "between")


def _parse_formats(option: Any, default: list[str]) -> list[str]:
    if option is None:
        return list(default)
    if isinstance(option, str):
        return [option]
    return list(option)


def day_condition(mode: str, day: date | None, low: date | None, high: date | None, start: Any) -> dict[str, Any] | None:
    """Day-granular range condition.

    ``start(d)`` maps a calendar day to the first stored value of that day,
    so the same rules serve date and datetime storage. ``between`` is
    inclusive of both days.
    """
    one_day = timedelta(days=1)
    if mode == "between":
        condition: dict[str, Any] = {}
        if low is not None:
            condition["$gte"] = start(low)
        if high is not None:
            condition["$lt"] = start(high + one_day)
        return condition or None
    if day is None:
        return None
    if mode == "after":
        return {"$gte": start(day + one_day)}
    if mode == "before":
        return {"$lt": start(day)}
    return {"$gte": start(day), "$lt": start(day + one_day)}


def date_filter(path: str, flt: Filter, start: Any, formats: list[str]) -> dict[str, Any]:
    """Translate on/after/before/between filters.

    ``between`` reads its bounds from ``after``/``before`` on the filter or
    from a ``{"after", "before"}`` value; either may be omitted.
    """
    mode = flt.mode_or(DATE_MODES, "on")
    value = flt.value
    low = high = day = None
    if mode == "between":
        bounds = value if isinstance(value, dict) else {}
        low = parse_date(bounds.get("after", flt.get("after")), formats)
        high = parse_date(bounds.get("before", flt.get("before")), formats)
    elif not isinstance(value, dict):
        day = parse_date(value, formats)

    condition = day_condition(mode, day, low, high, start)
    if condition is None:
        return empty_match(path, flt.inverted)
    if flt.inverted:
        return {path: {"$not": condition}}
    return {path: condition}


class Date(Field):
    """Calendar date, stored as ``datetime.date``.

    ``legacy_utc_offset_minutes`` is an opt-in read-time correction for
    data that was stored as UTC midnight timestamps in a local zone.
    """

    type_id = "Date"
    storage_type = "DATE"
    type_options = ("format", "parse_format", "legacy_utc_offset_minutes")

    def configure(self) -> None:
        self.parse_formats = _parse_formats(self.options.get("parse_format"), DEFAULT_DATE_PARSE_FORMATS)
        self.legacy_offset = self.options.get("legacy_utc_offset_minutes")

    def parse(self, value: Any) -> date | None:
        return parse_date(value, self.parse_formats)

    def validate_value(self, value: Any) -> FieldValidation:
        if self.parse(value) is None:
            return FieldValidation.fail(f"{self.label} is not a valid date")
        return FieldValidation.ok()

    def coerce(self, value: Any) -> Any:
        return None if is_empty(value) else self.parse(value)

    def get_data(self, item: "Document") -> Any:
        value = item.get(self.path)
        if isinstance(value, datetime):
            if self.legacy_offset:
                value = value + timedelta(minutes=self.legacy_offset)
            return value.date()
        return value

    def format(self, item: "Document", fmt: Any = None) -> str:
        return format_date(self.get_data(item), fmt if fmt is not None else self.options.get("format"))

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        return date_filter(path or self.path, Filter.from_value(filter), lambda d: d, self.parse_formats)


def _day_start(day: date) -> datetime:
    return datetime(day.year, day.month, day.day)


class Datetime(Field):
    """Date and time, stored as naive UTC.

    Input may arrive as one value at ``<path>`` or split across
    ``<path>_date`` and ``<path>_time``, with an optional ``<path>_tz_offset``
    (minutes east of UTC) for naive input. The offset used is kept at the
    derived path ``<path>_tz`` and applied when formatting.
    """

    type_id = "Datetime"
    storage_type = "DATETIME"
    type_options = ("format", "parse_format")
    default_options = {"format": DEFAULT_DATETIME_FORMAT}

    def configure(self) -> None:
        self.parse_formats = _parse_formats(self.options.get("parse_format"), DEFAULT_DATETIME_PARSE_FORMATS)
        self.tz_path = f"{self.path}_tz"

    def has_data_value(self, data: dict[str, Any], suffix: str = "") -> bool:
        if not suffix and f"{self.path}_date" in data:
            return True
        return super().has_data_value(data, suffix)

    def get_value_from_data(self, data: dict[str, Any], suffix: str = "") -> Any:
        if not suffix and f"{self.path}_date" in data:
            day = data.get(f"{self.path}_date") or ""
            time = data.get(f"{self.path}_time") or ""
            return f"{day} {time}".strip()
        return super().get_value_from_data(data, suffix)

    def validate_value(self, value: Any) -> FieldValidation:
        if parse_datetime(value, self.parse_formats) is None:
            return FieldValidation.fail(f"{self.label} is not a valid date and time")
        return FieldValidation.ok()

    def update_item(self, item: "Document", data: dict[str, Any]) -> None:
        if not self.has_data_value(data):
            return
        parsed = parse_datetime(self.get_value_from_data(data), self.parse_formats)
        if parsed is None:
            item.set(self.path, None)
            item.set(self.tz_path, None)
            return
        offset = parse_number(data.get(f"{self.path}_tz_offset"))
        if parsed.tzinfo is not None:
            offset = parsed.utcoffset().total_seconds() / 60
            parsed = to_naive_utc(parsed)
        elif offset is not None:
            parsed = parsed - timedelta(minutes=offset)
        item.set(self.path, parsed)
        item.set(self.tz_path, offset)

    def format(self, item: "Document", fmt: Any = None) -> str:
        value = item.get(self.path)
        if value is None:
            return ""
        offset = item.get(self.tz_path)
        if offset:
            value = value + timedelta(minutes=offset)
        return format_date(value, fmt if fmt is not None else self.options.get("format"))

    def schema_fragments(self) -> list[SchemaFragment]:
        fragments = super().schema_fragments()
        fragments.append(SchemaFragment(path=self.tz_path, type_id=self.type_id, storage_type="REAL"))
        return fragments

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        return date_filter(path or self.path, Filter.from_value(filter), _day_start, DEFAULT_DATE_PARSE_FORMATS)
