"""Text-valued field types.

Text, Textarea, Html, Email, Url and Key share length validation through a
``TextValidation`` instance and share the text filter translator. They do
not inherit behaviour from each other.
"""

from __future__ import annotations

import hashlib
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from listforge.codecs import DEFAULT_CROP_APPEND, crop_string, keyify, text_to_html
from listforge.fields.base import Field
from listforge.filters import Filter, text_filter
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PROTOCOL = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)


class TextValidation:
    """Length and shape checks for text input.

    Lengths are measured on the trimmed value.
    """

    def __init__(self, label: str, min_length: int | None = None, max_length: int | None = None):
        self.label = label
        self.min_length = min_length
        self.max_length = max_length

    def validate(self, value: Any) -> FieldValidation:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return FieldValidation.fail(f"{self.label} must be a string")
        length = len(str(value).strip())
        if self.min_length is not None and length < self.min_length:
            return FieldValidation.fail(
                f"{self.label} must be at least {self.min_length} characters"
            )
        if self.max_length is not None and length > self.max_length:
            return FieldValidation.fail(
                f"{self.label} must be at most {self.max_length} characters"
            )
        return FieldValidation.ok()


def _text_validation(field: Field) -> TextValidation:
    return TextValidation(field.label, field.options.get("min"), field.options.get("max"))


class _TextValueMixin:
    """Stored-value handling common to the text family."""

    path: str
    text: TextValidation

    def validate_value(self, value: Any) -> FieldValidation:
        return self.text.validate(value)

    def coerce(self, value: Any) -> Any:
        if value is None or value == "":
            return None if value is None else ""
        return str(value)

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        return text_filter(path or self.path, Filter.from_value(filter))

    def crop(
        self,
        item: "Document",
        length: int,
        append: str = DEFAULT_CROP_APPEND,
        preserve_words: bool = False,
    ) -> str:
        return crop_string(item.get(self.path), length, append, preserve_words)


class Text(_TextValueMixin, Field):
    type_id = "Text"
    type_options = ("min", "max")
    underscore_methods = ("format", "crop")

    def configure(self) -> None:
        self.text = _text_validation(self)


class Textarea(_TextValueMixin, Field):
    """Multi-line text. ``format`` renders escaped HTML with ``<br>`` breaks."""

    type_id = "Textarea"
    type_options = ("min", "max")
    default_options = {"height": 90}
    underscore_methods = ("format", "crop")

    def configure(self) -> None:
        self.text = _text_validation(self)

    def format(self, item: "Document", *args: Any) -> str:
        return text_to_html(item.get(self.path))


class Html(_TextValueMixin, Field):
    """Raw HTML content. Passed through unescaped."""

    type_id = "Html"
    type_options = ("min", "max")
    default_options = {"wysiwyg": False}
    underscore_methods = ("format", "crop")

    def configure(self) -> None:
        self.text = _text_validation(self)


class Email(_TextValueMixin, Field):
    """Email address, stored lowercased."""

    type_id = "Email"
    type_options = ("min", "max")
    underscore_methods = ("format", "gravatar_url")

    def configure(self) -> None:
        self.text = _text_validation(self)

    def validate_value(self, value: Any) -> FieldValidation:
        result = self.text.validate(value)
        if not result:
            return result
        if not EMAIL_PATTERN.match(str(value).strip()):
            return FieldValidation.fail(f"{self.label} must be a valid email address")
        return FieldValidation.ok()

    def coerce(self, value: Any) -> Any:
        if value is None or value == "":
            return None if value is None else ""
        return str(value).strip().lower()

    def gravatar_url(
        self,
        item: "Document",
        size: int = 80,
        default_image: str = "identicon",
        rating: str = "g",
    ) -> str:
        email = item.get(self.path)
        if not email:
            return ""
        digest = hashlib.md5(str(email).strip().lower().encode("utf-8")).hexdigest()
        query = urlencode({"s": size, "d": default_image, "r": rating})
        return f"https://www.gravatar.com/avatar/{digest}?{query}"


class Url(_TextValueMixin, Field):
    """URL. ``format`` strips the protocol unless ``format`` is disabled."""

    type_id = "Url"
    type_options = ("min", "max", "format")

    def configure(self) -> None:
        self.text = _text_validation(self)

    def format(self, item: "Document", *args: Any) -> str:
        value = item.get(self.path)
        if not value:
            return ""
        formatter = self.options.get("format")
        if formatter is False:
            return str(value)
        if callable(formatter):
            return str(formatter(value))
        return _PROTOCOL.sub("", str(value))


class Key(_TextValueMixin, Field):
    """Slug-like key: lowercase alphanumerics separated by ``-``."""

    type_id = "Key"
    type_options = ("min", "max")

    def configure(self) -> None:
        self.text = _text_validation(self)

    def validate_value(self, value: Any) -> FieldValidation:
        result = self.text.validate(value)
        if result and not keyify(value):
            return FieldValidation.fail(f"{self.label} must contain letters or numbers")
        return result

    def coerce(self, value: Any) -> Any:
        if value is None or value == "":
            return None if value is None else ""
        return keyify(value)
