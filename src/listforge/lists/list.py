"""The List: an ordered collection of fields compiled into one model."""

from __future__ import annotations

import asyncio
import html
import logging
import re
from typing import TYPE_CHECKING, Any

from listforge.codecs import key_to_label, keyify
from listforge.document import Document
from listforge.errors import (
    ConfigurationError,
    FieldDefinitionError,
    ListAlreadyRegistered,
    ListNotRegistered,
    UniqueValueExhausted,
    UnknownFilterPath,
)
from listforge.fields.base import Field
from listforge.fields.relationship import Relationship
from listforge.filters import Filter, and_predicates, parse_filter_string
from listforge.hooks import VALID_HOOK_POINTS, HookDefinition
from listforge.lists.csv_export import get_csv_data
from listforge.lists.pagination import Page, get_pages
from listforge.lists.query import Column, ListQuery, SortDirective, parse_column_string, parse_sort_string
from listforge.lists.update import ItemUpdater
from listforge.schema import CompiledSchema
from listforge.validation import UpdateResult

if TYPE_CHECKING:
    from listforge.context import ListForge
    from listforge.persistence.adapter import Model

logger = logging.getLogger(__name__)

DEFAULT_LIST_OPTIONS: dict[str, Any] = {
    "schema": {},
    "noedit": False,
    "nocreate": False,
    "nodelete": False,
    "sortable": False,
    "hidden": False,
    "track": False,
    "per_page": 100,
    "search_fields": "__name__",
    "default_sort": "__default__",
    "default_columns": "__name__",
}

# Paths owned by the engine
RESERVED_PATHS = frozenset({"id", "_id", "_"})

UNIQUE_VALUE_ATTEMPTS = 1000

_MAPPING_KEYS = ("name", "created_by", "created_on", "modified_by", "modified_on")

_TRACKING_PATHS = {
    "created_at": "createdAt",
    "created_by": "createdBy",
    "updated_at": "updatedAt",
    "updated_by": "updatedBy",
}


def _pluralize(word: str) -> str:
    if re.search(r"[^aeiou]y$", word):
        return word[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", word):
        return word + "es"
    return word + "s"


class List:
    """A named, ordered collection of fields.

    Lists are created through ``ListForge.create_list``. Fields are added
    with ``add``; ``register`` compiles the schema and obtains a model from
    the context's storage backend. After registration the definition is
    frozen.
    """

    def __init__(self, context: "ListForge", key: str, **options: Any):
        if not key or not isinstance(key, str):
            raise ConfigurationError(f"Invalid list key {key!r}")
        self.context = context
        self.key = key
        self.options: dict[str, Any] = {**DEFAULT_LIST_OPTIONS, **options}

        self.singular: str = self.options.get("singular") or key_to_label(key)
        self.plural: str = self.options.get("plural") or _pluralize(self.singular)
        self.label: str = self.options.get("label") or self.plural
        self.path: str = self.options.get("path") or keyify(self.plural)

        self.schema_fields: list[dict[str, Any]] = []
        self.ui_elements: list[dict[str, Any]] = []
        self.fields: dict[str, Field] = {}
        self.relationships: dict[str, dict[str, Any]] = {}
        self.mappings: dict[str, str | None] = {k: None for k in _MAPPING_KEYS}
        self.hooks: dict[str, list[HookDefinition]] = self._parse_hooks(self.options.get("hooks") or {})
        self.tracking: dict[str, str] = {}
        self.autokey: dict[str, Any] | None = None

        self._underscore_methods: dict[str, dict[str, Any]] = {}
        self.schema: CompiledSchema | None = None
        self._model: "Model | None" = None
        self._registered = False

        for mapping_key, path in (self.options.get("map") or {}).items():
            self.map(mapping_key, path)

    def __repr__(self) -> str:
        return f"<List {self.key}>"

    @staticmethod
    def _parse_hooks(hooks: dict[str, Any]) -> dict[str, list[HookDefinition]]:
        parsed: dict[str, list[HookDefinition]] = {}
        for point, definitions in hooks.items():
            if point not in VALID_HOOK_POINTS:
                raise ConfigurationError(f"Unknown hook point '{point}'")
            if not isinstance(definitions, (list, tuple)):
                definitions = [definitions]
            parsed[point] = [HookDefinition.from_value(d) for d in definitions]
        return parsed

    # =========================================================================
    # Definition
    # =========================================================================

    @property
    def registered(self) -> bool:
        return self._registered

    def _check_not_registered(self, action: str) -> None:
        if self._registered:
            raise ListAlreadyRegistered(self.key, f"is registered; cannot {action}")

    def add(self, *definitions: Any) -> "List":
        """Add fields and UI headings.

        Each definition is a heading string, a ``{"heading": ..., "depends_on":
        ...}`` dict, or a dict mapping paths to field options (or to a bare
        type). Redefining a path replaces the earlier field in place.
        """
        self._check_not_registered("add fields")
        for definition in definitions:
            if isinstance(definition, str):
                self.ui_elements.append({"type": "heading", "heading": definition, "depends_on": None})
            elif isinstance(definition, dict) and isinstance(definition.get("heading"), str):
                self.ui_elements.append(
                    {
                        "type": "heading",
                        "heading": definition["heading"],
                        "depends_on": definition.get("depends_on"),
                    }
                )
            elif isinstance(definition, dict):
                for path, options in definition.items():
                    self._add_field(path, options)
            else:
                raise FieldDefinitionError(
                    f"Invalid definition {definition!r} for list '{self.key}'", list_key=self.key
                )
        return self

    def _add_field(self, path: str, options: Any) -> Field:
        if not isinstance(options, dict):
            options = {"type": options}
        if "type" not in options:
            raise FieldDefinitionError(
                f"Field '{path}' on list '{self.key}' has no type",
                list_key=self.key,
                path=path,
            )
        if self.is_reserved(path):
            raise FieldDefinitionError(
                f"Path '{path}' is reserved on list '{self.key}'",
                list_key=self.key,
                path=path,
            )
        descriptor = self.context.field_types.resolve(options["type"], self.key, path)
        field = descriptor.create(self, path, {k: v for k, v in options.items() if k != "type"})

        if path in self.fields:
            logger.debug("Redefining field '%s' on list '%s'", path, self.key)
            self.schema_fields = [
                {path: options} if path in entry else entry for entry in self.schema_fields
            ]
        else:
            self.schema_fields.append({path: options})
            self.ui_elements.append({"type": "field", "field": path})
        self.fields[path] = field

        if isinstance(field, Relationship):
            self.relationships[path] = {"path": path, "ref": field.ref, "many": field.many}
        return field

    def field(self, path: str, options: Any = None) -> Field | None:
        """Look up a field, or (re)define it when ``options`` is given."""
        if options is None:
            return self.fields.get(path)
        self._check_not_registered("redefine fields")
        return self._add_field(path, options)

    def relationship(self, path: str, ref: str, ref_path: str | None = None, **options: Any) -> "List":
        """Declare a back-reference shown alongside this list's items."""
        self._check_not_registered("add relationships")
        if path in self.fields:
            raise FieldDefinitionError(
                f"Relationship path '{path}' clashes with a field on list '{self.key}'",
                list_key=self.key,
                path=path,
            )
        self.relationships[path] = {"path": path, "ref": ref, "ref_path": ref_path, **options}
        return self

    def map(self, mapping_key: str, path: str) -> "List":
        if mapping_key not in self.mappings:
            raise ConfigurationError(
                f"Unknown mapping '{mapping_key}' on list '{self.key}'", list_key=self.key
            )
        self.mappings[mapping_key] = path
        return self

    def automap(self, field: Field) -> None:
        """Map ``name`` (or ``title``) to the name role when unmapped."""
        if field.path in ("name", "title") and self.mappings["name"] is None:
            self.map("name", field.path)

    def underscore_method(self, path: str, name: str, fn: Any) -> "List":
        """Attach an extra per-document method reachable as ``doc._.<path>.<name>()``."""
        self._check_not_registered("add underscore methods")
        self._underscore_methods.setdefault(path, {})[name] = fn
        return self

    def is_reserved(self, path: str) -> bool:
        return path in RESERVED_PATHS

    # =========================================================================
    # Registration
    # =========================================================================

    def _apply_tracking(self) -> None:
        track = self.options.get("track")
        if not track:
            return
        user_model = self.context.get("user_model")
        if track is True:
            requested = {key: True for key in _TRACKING_PATHS}
            explicit = False
        else:
            requested = {key: track.get(key) for key in _TRACKING_PATHS}
            explicit = True

        for key, value in requested.items():
            if not value:
                continue
            path = value if isinstance(value, str) else _TRACKING_PATHS[key]
            if key.endswith("_by"):
                if not user_model:
                    if explicit:
                        raise ConfigurationError(
                            f"Tracking '{key}' on list '{self.key}' needs the 'user_model' option",
                            list_key=self.key,
                        )
                    logger.debug("No user_model; skipping %s tracking on %s", key, self.key)
                    continue
                options = {"type": "Relationship", "ref": user_model, "noedit": True, "collapse": True}
            else:
                options = {"type": "Datetime", "noedit": True, "collapse": True}
            self._add_field(path, options)
            self.tracking[key] = path

        self.mappings["created_on"] = self.mappings["created_on"] or self.tracking.get("created_at")
        self.mappings["created_by"] = self.mappings["created_by"] or self.tracking.get("created_by")
        self.mappings["modified_on"] = self.mappings["modified_on"] or self.tracking.get("updated_at")
        self.mappings["modified_by"] = self.mappings["modified_by"] or self.tracking.get("updated_by")

    def _apply_autokey(self) -> None:
        autokey = self.options.get("autokey")
        if not autokey:
            return
        if "path" not in autokey or "from" not in autokey:
            raise ConfigurationError(
                f"autokey on list '{self.key}' needs 'path' and 'from'", list_key=self.key
            )
        sources = autokey["from"]
        if isinstance(sources, str):
            sources = [p for p in re.split(r"[\s,]+", sources) if p]
        self.autokey = {
            "path": autokey["path"],
            "from": sources,
            "unique": bool(autokey.get("unique", False)),
            "fixed": bool(autokey.get("fixed", False)),
        }
        if autokey["path"] not in self.fields:
            self._add_field(
                autokey["path"], {"type": "Key", "index": True, "noedit": True}
            )

    def _compile_schema(self) -> CompiledSchema:
        schema = CompiledSchema(list_key=self.key, options=dict(self.options.get("schema") or {}))
        for field in self.fields.values():
            for fragment in field.schema_fragments():
                schema.add_fragment(fragment)
            for contribution in field.contributions():
                schema.add_contribution(contribution)
            schema.add_underscore_methods(field.path, field.underscore())
        for path, methods in self._underscore_methods.items():
            schema.add_underscore_methods(path, methods)
        return schema

    def register(self) -> "List":
        """Finalize the definition and compile the backend model.

        Raises:
            ListAlreadyRegistered: On a second call
            UnresolvedReference: When a relationship points at an unknown list
        """
        if self._registered:
            raise ListAlreadyRegistered(self.key)

        self._apply_tracking()
        if self.options.get("sortable") and "sortOrder" not in self.fields:
            self._add_field("sortOrder", {"type": "Number", "hidden": True, "noedit": True, "index": True})
        self._apply_autokey()

        for field in self.fields.values():
            self.automap(field)
            if isinstance(field, Relationship):
                field.check_reference()

        schema = self._compile_schema()
        self._model = self.context.backend.compile_schema(schema)
        self.schema = schema
        self._registered = True
        logger.debug("Registered list '%s' with %d fields", self.key, len(self.fields))
        return self

    def _require_model(self) -> "Model":
        if not self._registered or self._model is None:
            raise ListNotRegistered(self.key)
        return self._model

    @property
    def model(self) -> "Model":
        return self._require_model()

    # =========================================================================
    # Naming and columns
    # =========================================================================

    @property
    def name_path(self) -> str:
        return self.mappings["name"] or "id"

    @property
    def name_field(self) -> Field | None:
        return self.fields.get(self.name_path)

    @property
    def initial_fields(self) -> list[Field]:
        initial = [f for f in self.fields.values() if f.initial]
        name_field = self.name_field
        if name_field is not None and name_field.required and name_field not in initial:
            initial.insert(0, name_field)
        return initial

    @property
    def default_sort(self) -> str:
        sort = self.options.get("default_sort")
        if sort == "__default__":
            if self.options.get("sortable"):
                return "sortOrder"
            return self.name_path if self.name_path != "id" else ""
        return sort or ""

    @property
    def default_columns(self) -> str:
        return self.options.get("default_columns") or "__name__"

    @property
    def search_fields(self) -> list[Field]:
        return [
            self.fields[p]
            for p in self.expand_paths(self.options.get("search_fields"))
            if p in self.fields
        ]

    def get_document_name(self, item: Document, escape: bool = False) -> str:
        field = self.name_field
        name = field.format(item) if field is not None else item.get(self.name_path)
        name = "" if name is None else str(name)
        if not name:
            name = str(item.id or "")
        return html.escape(name) if escape else name

    def expand_paths(self, paths: str | list[str] | None) -> list[str]:
        """Normalize a path list, resolving ``__name__`` and dropping unknown paths."""
        if paths is None:
            return []
        if isinstance(paths, str):
            paths = [p for p in re.split(r"[\s,]+", paths) if p]
        expanded = []
        for path in paths:
            if path == "__name__":
                path = self.name_path
            if path == "id" or path in self.fields or (self.schema and path in self.schema.virtuals):
                if path not in expanded:
                    expanded.append(path)
            else:
                logger.warning("Ignoring unknown path '%s' on list '%s'", path, self.key)
        return expanded

    def expand_sort(self, sort: str | None) -> list[SortDirective]:
        """Parse ``"-createdAt,title"`` into sort directives.

        ``__default__`` (or nothing) uses the list's default sort, and
        ``__name__`` the name path. Unknown paths are skipped.
        """
        if not sort or sort == "__default__":
            sort = self.default_sort
        directives = []
        for path, direction in parse_sort_string(sort):
            if path == "__name__":
                path = self.name_path
            field = self.fields.get(path)
            if field is None and path != "id":
                logger.warning("Ignoring unknown sort path '%s' on list '%s'", path, self.key)
                continue
            label = field.label if field is not None else "ID"
            directives.append(SortDirective(path, direction, field, label))
        return directives

    def expand_columns(self, columns: str | None) -> list[Column]:
        """Parse ``"title|40%, status"`` into columns, name column first."""
        expanded: list[Column] = []
        for path, width in parse_column_string(columns or self.default_columns):
            if path == "__name__":
                path = self.name_path
            if any(c.path == path for c in expanded):
                continue
            field = self.fields.get(path)
            if field is None and path != "id":
                logger.warning("Ignoring unknown column '%s' on list '%s'", path, self.key)
                continue
            expanded.append(
                Column(
                    path=path,
                    label=field.label if field is not None else "ID",
                    field=field,
                    width=width,
                    type=field.type_id if field is not None else "id",
                )
            )
        name_field = self.name_field
        if name_field is not None and not any(c.path == name_field.path for c in expanded):
            expanded.insert(
                0, Column(name_field.path, name_field.label, name_field, None, name_field.type_id)
            )
        return expanded

    def select_columns(self, query: ListQuery, columns: list[Column]) -> ListQuery:
        paths = [self.name_path] if self.name_field else []
        for column in columns:
            if column.field is not None:
                paths.extend(column.field.paths)
        return query.select(paths)

    # =========================================================================
    # Filters and search
    # =========================================================================

    def _resolve_filter_path(self, path: str) -> Field:
        if path in self.fields:
            return self.fields[path]
        head, _, rest = path.partition(".")
        field = self.fields.get(head)
        if rest and isinstance(field, Relationship) and self.context.has_list(field.ref):
            try:
                return field.ref_list._resolve_filter_path(rest)
            except UnknownFilterPath:
                pass
        raise UnknownFilterPath(self.key, path)

    def process_filters(self, filters: str | dict[str, Any] | None) -> dict[str, Filter]:
        """Normalize filters to ``{path: Filter}``.

        Accepts a dict of wire-format filters, or the string form read by
        ``parse_filter_string`` (``"path:value,other:!value"``, with values
        that contain commas in double quotes).

        Raises:
            UnknownFilterPath: For paths that do not resolve to a field
        """
        if not filters:
            return {}
        if isinstance(filters, str):
            filters = parse_filter_string(filters)
        processed = {}
        for path, raw in filters.items():
            self._resolve_filter_path(path)
            processed[path] = Filter.from_value(raw)
        return processed

    def get_filter_predicate(self, filters: str | dict[str, Any] | None) -> dict[str, Any]:
        predicates = []
        for path, flt in self.process_filters(filters).items():
            field = self._resolve_filter_path(path)
            translate = getattr(field, "add_filter_to_query", None)
            if translate is None:
                logger.warning(
                    "Field '%s' on list '%s' is not filterable; filter ignored", path, self.key
                )
                continue
            predicates.append(translate(flt, path))
        return and_predicates(predicates)

    def add_filters_to_query(self, query: ListQuery, filters: str | dict[str, Any] | None) -> ListQuery:
        return query.where(self.get_filter_predicate(filters))

    def get_search_filters(self, search: str | None) -> dict[str, Any]:
        """Case-insensitive match of ``search`` against the search fields or the id."""
        terms = (search or "").strip()
        if not terms:
            return {}
        condition = {"$regex": re.escape(terms), "$options": "i"}
        alternatives: list[dict[str, Any]] = [
            {field.path: condition}
            for field in self.search_fields
            if field.storage_type == "TEXT" and not field.virtual
        ]
        alternatives.append({"id": terms})
        return {"$or": alternatives}

    def add_search_to_query(self, query: ListQuery, search: str | None) -> ListQuery:
        return query.where(self.get_search_filters(search))

    def query(self, filters: Any = None, search: str | None = None) -> ListQuery:
        query = ListQuery(self)
        self.add_filters_to_query(query, filters)
        self.add_search_to_query(query, search)
        return query

    # =========================================================================
    # Documents
    # =========================================================================

    def new_item(self, data: dict[str, Any] | None = None) -> Document:
        values: dict[str, Any] = {}
        for field in self.fields.values():
            if field.virtual:
                continue
            default = field.get_default_value()
            if default is not None:
                values[field.path] = default
        values.update(data or {})
        return Document(self, values, is_new=True)

    def get_data(self, item: Document, fields: list[str] | None = None) -> dict[str, Any]:
        """API representation: ``{"id", "name", "fields": {path: value}}``."""
        selected = [self.fields[p] for p in fields if p in self.fields] if fields else self.fields.values()
        return {
            "id": item.id,
            "name": self.get_document_name(item),
            "fields": {f.path: f.get_data(item) for f in selected if f.include_in_data},
        }

    async def get_expanded_data(self, item: Document, fields: list[str] | None = None) -> dict[str, Any]:
        """``get_data`` with relationship ids resolved to ``{"id", "name"}``."""
        data = self.get_data(item, fields)
        relationship_fields = [
            f for f in self.fields.values()
            if isinstance(f, Relationship) and f.path in data["fields"]
        ]
        expanded = await asyncio.gather(*(f.get_expanded_data(item) for f in relationship_fields))
        for field, value in zip(relationship_fields, expanded):
            data["fields"][field.path] = value
        return data

    def get_options(self) -> dict[str, Any]:
        """List description for an admin UI."""
        return {
            "key": self.key,
            "path": self.path,
            "label": self.label,
            "singular": self.singular,
            "plural": self.plural,
            "name_path": self.name_path,
            "name_field": self.name_field.get_options() if self.name_field else None,
            "noedit": bool(self.options.get("noedit")),
            "nocreate": bool(self.options.get("nocreate")),
            "nodelete": bool(self.options.get("nodelete")),
            "sortable": bool(self.options.get("sortable")),
            "hidden": bool(self.options.get("hidden")),
            "track": dict(self.tracking),
            "autokey": dict(self.autokey) if self.autokey else None,
            "per_page": self.options.get("per_page"),
            "default_sort": self.default_sort,
            "default_columns": self.default_columns,
            "search_fields": [f.path for f in self.search_fields],
            "initial_fields": [f.path for f in self.initial_fields],
            "fields": {path: field.get_options() for path, field in self.fields.items()},
            "ui_elements": list(self.ui_elements),
            "relationships": dict(self.relationships),
            "mappings": dict(self.mappings),
        }

    # =========================================================================
    # Runtime operations
    # =========================================================================

    def _to_documents(self, rows: list[dict[str, Any]]) -> list[Document]:
        return [Document(self, row, is_new=False) for row in rows]

    async def find(
        self,
        predicate: dict[str, Any] | None = None,
        projection: list[str] | None = None,
        sort: str | list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Document]:
        if isinstance(sort, str):
            sort = [d.to_tuple() for d in self.expand_sort(sort)]
        rows = await self.model.find(predicate or {}, projection, sort, skip, limit)
        return self._to_documents(rows)

    async def find_by_id(self, item_id: str) -> Document | None:
        docs = await self.find({"id": item_id}, limit=1)
        return docs[0] if docs else None

    async def count(self, predicate: dict[str, Any] | None = None) -> int:
        return await self.model.count(predicate or {})

    async def paginate(
        self,
        page: int = 1,
        per_page: int | None = None,
        max_pages: int | None = 10,
        filters: Any = None,
        search: str | None = None,
        sort: str | None = None,
        columns: str | None = None,
    ) -> Page:
        """Fetch one page of items.

        A page beyond the last is clamped to the last page rather than
        returning an empty result.
        """
        model = self.model
        per_page = per_page or self.options.get("per_page") or 100
        query = self.query(filters=filters, search=search).sort_by(sort)
        if columns is not None:
            self.select_columns(query, self.expand_columns(columns))

        total = await model.count(query.predicate)
        result = get_pages(total, page, per_page, max_pages)
        if total:
            query.page(result.skip, per_page)
            result.results = await query.exec()
        return result

    async def get_unique_value(
        self,
        path: str,
        value: str,
        filters: dict[str, Any] | None = None,
        separator: str = "",
        exclude_id: str | None = None,
    ) -> str:
        """First of ``value``, ``value2``, ``value3``, ... not used at ``path``.

        ``filters`` is an extra predicate limiting which documents count as
        collisions. Gives up after a bounded number of attempts.

        Raises:
            UniqueValueExhausted: When every candidate is taken
        """
        model = self.model
        for attempt in range(1, UNIQUE_VALUE_ATTEMPTS + 1):
            candidate = value if attempt == 1 else f"{value}{separator}{attempt}"
            predicate = and_predicates(
                [
                    {path: candidate},
                    filters or {},
                    {"id": {"$ne": exclude_id}} if exclude_id else {},
                ]
            )
            if not await model.count(predicate):
                return candidate
        raise UniqueValueExhausted(self.key, path, value, UNIQUE_VALUE_ATTEMPTS)

    async def update_item(
        self,
        item: Document,
        data: dict[str, Any],
        fields: list[str] | None = None,
        required: list[str] | None = None,
        user: Any = None,
        ignore_no_edit: bool = False,
    ) -> UpdateResult:
        """Validate ``data`` against every field, apply it, and save.

        Returns a failed ``UpdateResult`` (with ``item`` untouched) when any
        field rejects its input. Backend errors propagate.
        """
        self._require_model()
        updater = ItemUpdater(self, fields=fields, required=required, user=user, ignore_no_edit=ignore_no_edit)
        return await updater.run(item, data)

    async def get_csv_data(
        self,
        filters: Any = None,
        columns: str | None = None,
        search: str | None = None,
        cancel: asyncio.Event | None = None,
        batch_size: int = 100,
    ) -> str:
        self._require_model()
        return await get_csv_data(self, filters, columns, search, cancel, batch_size)
