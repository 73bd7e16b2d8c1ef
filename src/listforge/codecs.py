"""Value codecs shared by the built-in field types.

Pure parse/format helpers: raw input in, normalized stored value out, and
back again for display. Nothing here touches documents or lists.
"""

from __future__ import annotations

import html
import re
import unicodedata
from datetime import date, datetime, timezone
from typing import Any

from dateutil import parser as date_parser

DEFAULT_CROP_APPEND = "…"

_LABEL_SPLIT = re.compile(r"([a-z0-9])([A-Z])")
_NON_KEY_CHARS = re.compile(r"[^a-z0-9]+")


def is_empty(value: Any) -> bool:
    """True for None, empty strings and empty lists."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False


# =============================================================================
# Strings
# =============================================================================


def key_to_label(key: str) -> str:
    """Convert a path or key to a display label.

    ``firstName`` -> ``First Name``, ``created_at`` -> ``Created At``
    """
    spaced = _LABEL_SPLIT.sub(r"\1 \2", str(key))
    words = re.split(r"[\s_\-.]+", spaced)
    return " ".join(w[:1].upper() + w[1:] for w in words if w)


def keyify(value: Any) -> str:
    """Lowercase slug with runs of non-alphanumerics collapsed to ``-``."""
    if value is None:
        return ""
    text = unicodedata.normalize("NFKD", str(value))
    text = "".join(c for c in text if not unicodedata.combining(c))
    return _NON_KEY_CHARS.sub("-", text.lower()).strip("-")


def text_to_html(value: Any) -> str:
    """Escape text and turn newlines into ``<br>`` tags."""
    if value is None:
        return ""
    return html.escape(str(value)).replace("\r\n", "\n").replace("\n", "<br>")


def crop_string(
    value: Any,
    length: int,
    append: str = DEFAULT_CROP_APPEND,
    preserve_words: bool = False,
) -> str:
    """Truncate ``value`` to at most ``length`` characters plus ``append``.

    The cut never separates a base character from the combining marks that
    follow it. With ``preserve_words`` a cut landing inside a word backs up
    to the previous whitespace, when there is one. ``append`` is only added
    when the text was actually shortened.
    """
    if value is None:
        return ""
    text = str(value)
    if length < 0:
        length = 0
    if len(text) <= length:
        return text

    cut = length
    while cut > 0 and unicodedata.combining(text[cut]):
        cut -= 1
    cropped = text[:cut]

    if preserve_words and not text[cut].isspace():
        boundary = max(cropped.rfind(" "), cropped.rfind("\n"), cropped.rfind("\t"))
        if boundary > 0:
            cropped = cropped[:boundary]

    return cropped.rstrip() + (append or "")


# =============================================================================
# Numbers
# =============================================================================


def parse_number(value: Any, strip: str = ",") -> int | float | None:
    """Parse user input into an int or float.

    Characters in ``strip`` (thousands separators, currency symbols) are
    removed from strings first. Returns None for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and value != value:
            return None
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    for ch in strip:
        text = text.replace(ch, "")
    if not text:
        return None
    try:
        if re.fullmatch(r"[-+]?\d+", text):
            return int(text)
        number = float(text)
    except ValueError:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def format_number(value: Any, fmt: str | bool | None = None) -> str:
    """Format a number for display.

    ``fmt`` is a Python format spec (``",.2f"``, ``".1%"``). None uses
    thousands grouping with up to twelve trimmed decimals. False disables
    formatting entirely.
    """
    if value is None or value == "":
        return ""
    if fmt is False:
        return str(value)
    number = parse_number(value)
    if number is None:
        return ""
    if fmt:
        return format(number, fmt)
    if isinstance(number, int) or float(number).is_integer():
        return f"{int(number):,}"
    return f"{number:,.12f}".rstrip("0").rstrip(".")


# =============================================================================
# Booleans
# =============================================================================


def parse_boolean(value: Any) -> bool:
    """Coerce input to a bool.

    None, ``""``, False, ``0`` and the string ``"false"`` (any case) are
    False. Everything else is True.
    """
    if value is None or value is False:
        return False
    if isinstance(value, str):
        text = value.strip()
        return bool(text) and text.lower() != "false"
    if isinstance(value, (int, float)):
        return value != 0
    return bool(value)


def format_boolean(value: Any) -> str:
    return "true" if value else "false"


# =============================================================================
# Select options
# =============================================================================


def normalize_select_options(options: Any, numeric: bool = False) -> list[dict[str, Any]]:
    """Normalize Select options to an ordered list of ``{value, label}``.

    Accepts a comma-separated string, a list of scalars, or a list of
    dicts with ``value`` and optional ``label``. Extra keys on dict
    options are kept.
    """
    if options is None:
        return []
    if isinstance(options, str):
        raw: list[Any] = [part.strip() for part in options.split(",") if part.strip()]
    else:
        raw = list(options)

    normalized: list[dict[str, Any]] = []
    seen: set[Any] = set()
    for opt in raw:
        if isinstance(opt, dict):
            if "value" not in opt:
                raise ValueError(f"Select option {opt!r} has no value")
            entry = dict(opt)
        else:
            entry = {"value": opt}
        if numeric:
            number = parse_number(entry["value"])
            if number is None:
                raise ValueError(f"Numeric select option {entry['value']!r} is not a number")
            entry["value"] = number
        elif not isinstance(entry["value"], str):
            entry["value"] = str(entry["value"])
        if entry.get("label") is None:
            entry["label"] = key_to_label(str(entry["value"]))
        if entry["value"] in seen:
            continue
        seen.add(entry["value"])
        normalized.append(entry)
    return normalized


# =============================================================================
# Dates
# =============================================================================

DEFAULT_DATE_PARSE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %I:%M:%S %p",
    "%Y-%m-%d %I:%M %p",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y",
]

DEFAULT_DATETIME_PARSE_FORMATS = [
    "%Y-%m-%d %I:%M:%S %p",
    "%Y-%m-%d %I:%M %p",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
]

DEFAULT_DATETIME_FORMAT = "%Y-%m-%d %I:%M:%S %p"


def parse_datetime(value: Any, formats: list[str] | None = None) -> datetime | None:
    """Parse input to a datetime.

    Candidate ``formats`` are tried in order and the first successful parse
    wins. Strings that match none fall back to ISO-8601. Returns None when
    nothing parses.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    for fmt in formats or []:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return date_parser.isoparse(text)
    except (ValueError, OverflowError):
        return None


def parse_date(value: Any, formats: list[str] | None = None) -> date | None:
    """Parse input to a calendar date (see ``parse_datetime``)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_datetime(value, formats if formats is not None else DEFAULT_DATE_PARSE_FORMATS)
    return parsed.date() if parsed else None


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC. Naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    return f"{day}{({1: 'st', 2: 'nd', 3: 'rd'}).get(day % 10, 'th')}"


def format_date(value: Any, fmt: str | bool | None = None) -> str:
    """Format a date or datetime for display.

    ``fmt`` is a strftime pattern. None renders ``1st Jan 2016``. False
    returns the ISO representation.
    """
    if value is None or value == "":
        return ""
    if not isinstance(value, (date, datetime)):
        parsed = parse_datetime(value)
        if parsed is None:
            return ""
        value = parsed
    if fmt is False:
        return value.isoformat()
    if fmt:
        return value.strftime(fmt)
    return f"{_ordinal(value.day)} {value:%b %Y}"
