"""Filter descriptions and predicate-building helpers.

A ``Filter`` is the declarative ``{mode, value, inverted}`` request a caller
sends for one path. Field types turn it into a predicate: a backend-agnostic,
Mongo-shaped dict keyed by path (or ``$and``/``$or``/``$nor``) whose values
are literals or operator dicts (``$eq $ne $gt $gte $lt $lte $in $nin
$exists $regex $options $not $size $elemMatch $near``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from listforge.codecs import is_empty

# Matches a missing, null or empty-string value.
EMPTY_VALUES = ["", None]


@dataclass
class Filter:
    """A filter request for a single path.

    Attributes:
        mode: Type-specific mode (``contains``, ``between``, ...). None selects
            the type's default.
        value: Scalar, list, or range dict depending on the type
        inverted: Request the logical complement
        extra: Type-specific keys (``case_sensitive``, ``after``, ``before``,
            ``presence``, ``distance``)
    """

    mode: str | None = None
    value: Any = None
    inverted: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    _KNOWN = ("mode", "value", "inverted")
    _ALIASES = {"caseSensitive": "case_sensitive"}

    @classmethod
    def from_value(cls, raw: Any) -> "Filter":
        """Build a Filter from wire data.

        Dicts are read as ``{mode?, value?, inverted?, ...}``; anything else
        is taken as the value under the default mode.
        """
        if isinstance(raw, Filter):
            return raw
        if isinstance(raw, dict):
            extra = {
                cls._ALIASES.get(k, k): v for k, v in raw.items() if k not in cls._KNOWN
            }
            inverted = raw.get("inverted", False)
            if isinstance(inverted, str):
                inverted = inverted.lower() == "true"
            return cls(
                mode=raw.get("mode"),
                value=raw.get("value"),
                inverted=bool(inverted),
                extra=extra,
            )
        return cls(value=raw)

    def get(self, key: str, default: Any = None) -> Any:
        return self.extra.get(key, default)

    def mode_or(self, modes: tuple[str, ...], default: str) -> str:
        """Return the requested mode if it is one of ``modes``, else ``default``."""
        return self.mode if self.mode in modes else default

    @property
    def is_empty(self) -> bool:
        return is_empty(self.value)


def empty_match(path: str, inverted: bool = False) -> dict[str, Any]:
    """Predicate for "value is empty, null or absent" (or its complement)."""
    if inverted:
        return {path: {"$nin": list(EMPTY_VALUES)}}
    return {path: {"$in": list(EMPTY_VALUES)}}


def negate(path: str, condition: Any) -> dict[str, Any]:
    """Complement of ``{path: condition}``.

    Literal equality becomes ``$ne``; operator dicts are wrapped in ``$not``
    so values the condition cannot compare (missing, null) are included.
    """
    if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
        return {path: {"$not": condition}}
    return {path: {"$ne": condition}}


def and_predicates(predicates: list[dict[str, Any]]) -> dict[str, Any]:
    """AND-combine predicates, dropping empty ones."""
    parts = [p for p in predicates if p]
    if not parts:
        return {}
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


# Commas outside double quotes
_FILTER_SEPARATOR = re.compile(r',(?=(?:[^"]*"[^"]*")*[^"]*$)')


def parse_filter_string(filters: str) -> dict[str, dict[str, Any]]:
    """Parse ``"path:value,other:!value"`` into wire-format filters.

    ``!`` in front of a value inverts it. A value containing commas must be
    wrapped in double quotes: ``title:"a, b"``. Parts without a ``:`` are
    skipped.
    """
    parsed: dict[str, dict[str, Any]] = {}
    for part in _FILTER_SEPARATOR.split(filters):
        path, sep, value = part.partition(":")
        path = path.strip()
        if not path or not sep:
            continue
        value = value.strip()
        inverted = value.startswith("!")
        if inverted:
            value = value[1:].lstrip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        parsed[path] = {"value": value, "inverted": inverted}
    return parsed


TEXT_MODES = ("contains", "exactly", "beginsWith", "endsWith")


def text_condition(value: Any, mode: str, case_sensitive: bool = False) -> dict[str, Any]:
    """Regex condition for the text filter modes."""
    escaped = re.escape(str(value))
    if mode == "exactly":
        pattern = f"^{escaped}$"
    elif mode == "beginsWith":
        pattern = f"^{escaped}"
    elif mode == "endsWith":
        pattern = f"{escaped}$"
    else:
        pattern = escaped
    condition: dict[str, Any] = {"$regex": pattern}
    if not case_sensitive:
        condition["$options"] = "i"
    return condition


def text_filter(path: str, flt: Filter) -> dict[str, Any]:
    """Shared translator for every text-valued type."""
    if flt.is_empty:
        return empty_match(path, flt.inverted)
    mode = flt.mode_or(TEXT_MODES, "contains")
    condition = text_condition(flt.value, mode, bool(flt.get("case_sensitive")))
    if flt.inverted:
        return {path: {"$not": condition}}
    return {path: condition}


RANGE_MODES = ("equals", "gt", "lt", "between")


def range_condition(flt: Filter, low: Any, high: Any, value: Any) -> dict[str, Any] | None:
    """Operator dict for the numeric/date style modes.

    ``low``/``high`` are the parsed between bounds and ``value`` the parsed
    scalar. Returns None when the request carries no usable value.
    """
    mode = flt.mode_or(RANGE_MODES, "equals")
    if mode == "between":
        condition: dict[str, Any] = {}
        if low is not None:
            condition["$gte"] = low
        if high is not None:
            condition["$lte"] = high
        return condition or None
    if value is None:
        return None
    if mode == "gt":
        return {"$gt": value}
    if mode == "lt":
        return {"$lt": value}
    return {"$eq": value}
