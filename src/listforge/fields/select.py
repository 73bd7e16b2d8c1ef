"""Select field type."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from listforge.codecs import is_empty, normalize_select_options, parse_number
from listforge.errors import FieldDefinitionError
from listforge.fields.base import Field
from listforge.filters import Filter
from listforge.schema import Contribution
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document


class Select(Field):
    """A value chosen from a fixed set of options.

    Options may be given as a comma-separated string, a list of scalars, or
    a list of ``{"value", "label"}`` dicts. The field contributes four
    virtual paths: the selected option (``<path>Data``), its label
    (``<path>Label``), the option list (``<path>Options``) and a
    value-to-option map (``<path>OptionsMap``).
    """

    type_id = "Select"
    type_options = (
        "options",
        "numeric",
        "data_path",
        "label_path",
        "options_path",
        "map_path",
        "empty_option",
    )
    default_options = {"empty_option": True}
    underscore_methods = ("format", "pluck")

    def configure(self) -> None:
        raw = self.options.get("options")
        if raw is None or (not isinstance(raw, str) and not isinstance(raw, (list, tuple))):
            raise FieldDefinitionError(
                f"Select field '{self.path}' on list '{self.list.key}' needs an 'options' list",
                list_key=self.list.key,
                path=self.path,
            )
        self.numeric = bool(self.options.get("numeric", False))
        if self.numeric:
            self.storage_type = "REAL"
        try:
            self.ops = normalize_select_options(raw, numeric=self.numeric)
        except ValueError as e:
            raise FieldDefinitionError(str(e), list_key=self.list.key, path=self.path) from e
        self.values = [opt["value"] for opt in self.ops]
        self.labels = {opt["value"]: opt["label"] for opt in self.ops}
        self.map = {opt["value"]: opt for opt in self.ops}
        self.virtual_paths = {
            "data": self.options.get("data_path") or f"{self.path}Data",
            "label": self.options.get("label_path") or f"{self.path}Label",
            "options": self.options.get("options_path") or f"{self.path}Options",
            "map": self.options.get("map_path") or f"{self.path}OptionsMap",
        }

    def _normalize(self, value: Any) -> Any:
        if self.numeric:
            return parse_number(value)
        return None if value is None else str(value)

    def validate_value(self, value: Any) -> FieldValidation:
        if self._normalize(value) not in self.map:
            return FieldValidation.fail(f"{self.label} must be one of the available options")
        return FieldValidation.ok()

    def coerce(self, value: Any) -> Any:
        if is_empty(value):
            return None
        return self._normalize(value)

    def format(self, item: "Document", *args: Any) -> str:
        return self.labels.get(item.get(self.path), "")

    def pluck(self, item: "Document", prop: str, default: Any = None) -> Any:
        option = self.map.get(item.get(self.path))
        return option.get(prop, default) if option else default

    def contributions(self) -> list[Contribution]:
        path = self.path
        return [
            Contribution(
                self.virtual_paths["data"],
                path,
                lambda doc: copy.deepcopy(self.map.get(doc.get(path))),
            ),
            Contribution(
                self.virtual_paths["label"],
                path,
                lambda doc: self.labels.get(doc.get(path), ""),
            ),
            Contribution(
                self.virtual_paths["options"],
                path,
                lambda doc: copy.deepcopy(self.ops),
            ),
            Contribution(
                self.virtual_paths["map"],
                path,
                lambda doc: copy.deepcopy(self.map),
            ),
        ]

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        path = path or self.path
        flt = Filter.from_value(filter)
        value = flt.value
        if isinstance(value, (list, tuple)):
            if not value:
                # [] selects nothing; inverted, everything with a valid value
                return {path: {"$in": list(self.values)}} if flt.inverted else {path: {"$in": []}}
            wanted = [self._normalize(v) for v in value]
            return {path: {"$nin" if flt.inverted else "$in": wanted}}
        if value is None or value == "":
            # No selection matches documents without a valid value
            if flt.inverted:
                return {path: {"$in": list(self.values)}}
            return {path: {"$nin": list(self.values)}}
        wanted = self._normalize(value)
        return {path: {"$ne": wanted}} if flt.inverted else {path: wanted}

    def extra_options(self) -> dict[str, Any]:
        return {
            "ops": copy.deepcopy(self.ops),
            "numeric": self.numeric,
            "empty_option": self.options.get("empty_option"),
        }
