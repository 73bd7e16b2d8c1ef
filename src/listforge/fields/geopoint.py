"""GeoPoint field type."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from listforge.codecs import parse_number
from listforge.fields.arrays import empty_array_match
from listforge.fields.base import Field
from listforge.filters import Filter
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document


class GeoPoint(Field):
    """A longitude/latitude pair stored as ``[lng, lat]``.

    Lists are read as ``[lng, lat]``; strings and ``format`` output use the
    familiar ``"lat, lng"`` order.
    """

    type_id = "GeoPoint"
    storage_type = "JSON"

    def parse(self, value: Any) -> list[float] | None:
        if isinstance(value, dict):
            lng, lat = value.get("lng"), value.get("lat")
        elif isinstance(value, str):
            parts = [p.strip() for p in value.split(",")]
            if len(parts) != 2:
                return None
            lat, lng = parts
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            lng, lat = value
        else:
            return None
        lng, lat = parse_number(lng), parse_number(lat)
        if lng is None or lat is None:
            return None
        if not (-180 <= lng <= 180 and -90 <= lat <= 90):
            return None
        return [float(lng), float(lat)]

    def validate_value(self, value: Any) -> FieldValidation:
        if self.parse(value) is None:
            return FieldValidation.fail(f"{self.label} must be a valid longitude/latitude pair")
        return FieldValidation.ok()

    def coerce(self, value: Any) -> Any:
        if value is None or value == "" or value == []:
            return []
        return self.parse(value) or []

    def get_data(self, item: "Document") -> list[float]:
        value = item.get(self.path)
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return [value[0], value[1]]
        return []

    def format(self, item: "Document", *args: Any) -> str:
        point = self.get_data(item)
        if not point:
            return ""
        return f"{point[1]}, {point[0]}"

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        """``near`` mode: ``value`` is a point, ``distance`` is in kilometres."""
        path = path or self.path
        flt = Filter.from_value(filter)
        point = self.parse(flt.value) if flt.value not in (None, "") else None
        if point is None:
            return empty_array_match(path, flt.inverted)
        near: dict[str, Any] = {"point": point}
        distance = parse_number(flt.get("distance"))
        if distance is not None:
            near["maxDistance"] = distance * 1000
        condition = {"$near": near}
        if flt.inverted:
            return {path: {"$not": condition}}
        return {path: condition}
