"""Evaluate Mongo-shaped predicates against plain dict documents.

Used by the in-memory backend, and by the SQL backend for conditions on
JSON columns. Semantics follow the document-database conventions the
predicates are written for: ``None`` matches a missing path, a condition
on an array path matches when any element matches, and comparisons
between incomparable types are simply false.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

MISSING = object()

EARTH_RADIUS_M = 6_371_000


def resolve(doc: Any, path: str) -> Any:
    """Value at ``path`` or ``MISSING``. Traverses lists of sub-documents."""
    if isinstance(doc, dict) and path in doc:
        return doc[path]
    current: Any = doc
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, list):
            collected = [el[part] for el in current if isinstance(el, dict) and part in el]
            if not collected:
                return MISSING
            current = collected
        else:
            return MISSING
    return current


def _is_operator_dict(cond: Any) -> bool:
    return isinstance(cond, dict) and bool(cond) and all(str(k).startswith("$") for k in cond)


def _equals(value: Any, target: Any) -> bool:
    if target is None:
        return value is MISSING or value is None
    if value is MISSING:
        return False
    if value == target:
        return True
    if isinstance(value, list) and not isinstance(target, list):
        return any(v == target for v in value)
    return False


def _compare(value: Any, target: Any, op: str) -> bool:
    if value is MISSING or value is None or target is None:
        return False
    if isinstance(value, list):
        return any(_compare(v, target, op) for v in value)
    # date and datetime do not compare with each other in Python
    if isinstance(value, datetime) != isinstance(target, datetime):
        if isinstance(value, date) and isinstance(target, date):
            return False
    try:
        if op == "$gt":
            return value > target
        if op == "$gte":
            return value >= target
        if op == "$lt":
            return value < target
        return value <= target
    except TypeError:
        return False


def _regex(value: Any, pattern: str, options: str) -> bool:
    flags = 0
    for opt in options or "":
        flags |= {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}.get(opt, 0)
    compiled = re.compile(pattern, flags)
    if isinstance(value, str):
        return compiled.search(value) is not None
    if isinstance(value, list):
        return any(isinstance(v, str) and compiled.search(v) for v in value)
    return False


def haversine(a: list[float], b: list[float]) -> float:
    """Great-circle distance in metres between two ``[lng, lat]`` points."""
    lng1, lat1, lng2, lat2 = map(math.radians, (a[0], a[1], b[0], b[1]))
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def _near(value: Any, arg: dict[str, Any]) -> bool:
    if not (isinstance(value, list) and len(value) == 2):
        return False
    try:
        distance = haversine(value, arg["point"])
    except (TypeError, ValueError, KeyError):
        return False
    max_distance = arg.get("maxDistance")
    return max_distance is None or distance <= max_distance


def match_value(value: Any, cond: Any) -> bool:
    """Match an already-resolved value (possibly ``MISSING``) against a condition."""
    if not _is_operator_dict(cond):
        return _equals(value, cond)
    for op, arg in cond.items():
        if op == "$options":
            continue
        if op == "$eq":
            ok = _equals(value, arg)
        elif op == "$ne":
            ok = not _equals(value, arg)
        elif op in ("$gt", "$gte", "$lt", "$lte"):
            ok = _compare(value, arg, op)
        elif op == "$in":
            ok = any(_equals(value, t) for t in arg)
        elif op == "$nin":
            ok = not any(_equals(value, t) for t in arg)
        elif op == "$exists":
            ok = (value is not MISSING) == bool(arg)
        elif op == "$regex":
            ok = _regex(value, arg, cond.get("$options", ""))
        elif op == "$not":
            ok = not match_value(value, arg)
        elif op == "$size":
            ok = isinstance(value, list) and len(value) == arg
        elif op == "$elemMatch":
            ok = isinstance(value, list) and any(
                matches(el, arg) if isinstance(el, dict) and not _is_operator_dict(arg)
                else match_value(el, arg)
                for el in value
            )
        elif op == "$near":
            ok = _near(value, arg)
        else:
            raise ValueError(f"Unsupported query operator '{op}'")
        if not ok:
            return False
    return True


def matches(doc: dict[str, Any], predicate: dict[str, Any] | None) -> bool:
    """True when ``doc`` satisfies ``predicate`` (empty matches everything)."""
    if not predicate:
        return True
    for key, cond in predicate.items():
        if key == "$and":
            if not all(matches(doc, p) for p in cond):
                return False
        elif key == "$or":
            if not any(matches(doc, p) for p in cond):
                return False
        elif key == "$nor":
            if any(matches(doc, p) for p in cond):
                return False
        elif key.startswith("$"):
            raise ValueError(f"Unsupported top-level operator '{key}'")
        elif not match_value(resolve(doc, key), cond):
            return False
    return True


def sort_key(value: Any) -> tuple[int, Any]:
    """Total ordering across types: nulls, numbers, strings, dates, other."""
    if value is None or value is MISSING:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, datetime):
        return (3, value)
    if isinstance(value, date):
        return (3, datetime(value.year, value.month, value.day))
    return (4, str(value))
