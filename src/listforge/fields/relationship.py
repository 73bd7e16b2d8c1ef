"""Relationship field type."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from listforge.errors import FieldDefinitionError, ListNotRegistered, UnresolvedReference
from listforge.fields.arrays import empty_array_match
from listforge.fields.base import Field
from listforge.filters import Filter, empty_match
from listforge.validation import FieldValidation

if TYPE_CHECKING:
    from listforge.document import Document
    from listforge.lists.list import List


class Relationship(Field):
    """Reference to one (or, with ``many``, several) items of another list.

    Stores ids. ``register()`` only needs the referenced list to exist in
    the same context, so lists may refer to each other or to lists
    registered later. Expanding references needs the referenced list to be
    registered too.
    """

    type_id = "Relationship"
    type_options = ("ref", "many")

    def configure(self) -> None:
        self.ref = self.options.get("ref")
        if not self.ref:
            raise FieldDefinitionError(
                f"Relationship '{self.path}' on list '{self.list.key}' needs a 'ref' option",
                list_key=self.list.key,
                path=self.path,
            )
        self.many = bool(self.options.get("many", False))
        if self.many:
            self.storage_type = "JSON"

    @property
    def ref_list(self) -> "List":
        return self.list.context.list(self.ref)

    def check_reference(self) -> None:
        """Fail fast when the referenced list is unknown."""
        if not self.list.context.has_list(self.ref):
            raise UnresolvedReference(self.list.key, self.path, self.ref)

    @staticmethod
    def _to_id(value: Any) -> Any:
        if isinstance(value, dict):
            value = value.get("id")
        if value is None or value == "":
            return None
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return str(value)
        return None

    def _to_ids(self, value: Any) -> list[str]:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            value = [part.strip() for part in value.split(",")]
        elif not isinstance(value, (list, tuple)):
            value = [value]
        ids: list[str] = []
        for element in value:
            ref_id = self._to_id(element)
            if ref_id is not None and ref_id not in ids:
                ids.append(ref_id)
        return ids

    def validate_value(self, value: Any) -> FieldValidation:
        elements = value if isinstance(value, (list, tuple)) else [value]
        if not self.many and isinstance(value, (list, tuple)) and len(value) > 1:
            return FieldValidation.fail(f"{self.label} accepts a single item")
        for element in elements:
            if element not in (None, "") and self._to_id(element) is None:
                return FieldValidation.fail(f"{self.label} contains an invalid reference")
        return FieldValidation.ok()

    def coerce(self, value: Any) -> Any:
        if self.many:
            return self._to_ids(value)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        return self._to_id(value)

    def get_data(self, item: "Document") -> Any:
        value = item.get(self.path)
        if self.many:
            return list(value or [])
        return value

    def format(self, item: "Document", *args: Any) -> str:
        value = self.get_data(item)
        if self.many:
            return ", ".join(str(v) for v in value)
        return "" if value is None else str(value)

    async def get_expanded_data(self, item: "Document") -> Any:
        """Resolve stored ids to ``{"id", "name"}`` dicts from the referenced list.

        Raises:
            ListNotRegistered: When the referenced list is not registered yet
        """
        ref_list = self.ref_list
        if not ref_list.registered:
            raise ListNotRegistered(
                self.ref,
                f"must be registered before '{self.list.key}.{self.path}' can be expanded",
            )
        value = self.get_data(item)
        ids = value if self.many else ([value] if value else [])
        if not ids:
            return [] if self.many else None
        docs = await ref_list.find({"id": {"$in": ids}})
        by_id = {
            doc.id: {"id": doc.id, "name": ref_list.get_document_name(doc)}
            for doc in docs
        }
        expanded = [by_id[i] for i in ids if i in by_id]
        if self.many:
            return expanded
        return expanded[0] if expanded else None

    def add_filter_to_query(self, filter: Any, path: str | None = None) -> dict[str, Any]:
        path = path or self.path
        flt = Filter.from_value(filter)
        ids = self._to_ids(flt.value)
        if not ids:
            if self.many:
                return empty_array_match(path, flt.inverted)
            return empty_match(path, flt.inverted)
        return {path: {"$nin" if flt.inverted else "$in": ids}}

    def extra_options(self) -> dict[str, Any]:
        return {"ref": self.ref, "many": self.many}
