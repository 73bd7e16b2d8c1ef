"""Query building blocks: sort directives, columns and the ListQuery."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from listforge.filters import and_predicates

if TYPE_CHECKING:
    from listforge.document import Document
    from listforge.fields.base import Field
    from listforge.lists.list import List


@dataclass
class SortDirective:
    """One sort key. ``direction`` is 1 (ascending) or -1 (descending)."""

    path: str
    direction: int = 1
    field: "Field | None" = None
    label: str = ""

    @property
    def is_descending(self) -> bool:
        return self.direction < 0

    def to_tuple(self) -> tuple[str, int]:
        return (self.path, self.direction)

    def __str__(self) -> str:
        return f"-{self.path}" if self.is_descending else self.path


def parse_sort_string(sort: str) -> list[tuple[str, int]]:
    """``"-createdAt, title"`` -> ``[("createdAt", -1), ("title", 1)]``."""
    parsed = []
    for part in re.split(r"[\s,]+", sort or ""):
        if not part:
            continue
        direction = -1 if part.startswith("-") else 1
        path = part.lstrip("+-")
        if path:
            parsed.append((path, direction))
    return parsed


@dataclass
class Column:
    """A display column. ``width`` is passed through as given (``"20%"``)."""

    path: str
    label: str
    field: "Field | None" = None
    width: str | None = None
    type: str = "id"

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "label": self.label,
            "width": self.width,
            "type": self.type,
        }


def parse_column_string(columns: str) -> list[tuple[str, str | None]]:
    """``"name|20%, status"`` -> ``[("name", "20%"), ("status", None)]``."""
    parsed = []
    for part in (columns or "").split(","):
        part = part.strip()
        if not part:
            continue
        path, _, width = part.partition("|")
        parsed.append((path.strip(), width.strip() or None))
    return parsed


@dataclass
class ListQuery:
    """Accumulates predicates, sort, projection and paging for one list."""

    list: "List"
    predicates: list[dict[str, Any]] = field(default_factory=list)
    sort: list[SortDirective] = field(default_factory=list)
    projection: list[str] | None = None
    skip: int = 0
    limit: int | None = None

    @property
    def predicate(self) -> dict[str, Any]:
        return and_predicates(self.predicates)

    def where(self, predicate: dict[str, Any] | None) -> "ListQuery":
        if predicate:
            self.predicates.append(predicate)
        return self

    def sort_by(self, sort: str | list[SortDirective] | None) -> "ListQuery":
        self.sort = self.list.expand_sort(sort) if not isinstance(sort, list) else sort
        return self

    def select(self, paths: list[str] | None) -> "ListQuery":
        self.projection = None if paths is None else list(dict.fromkeys(paths))
        return self

    def page(self, skip: int, limit: int | None) -> "ListQuery":
        self.skip = skip
        self.limit = limit
        return self

    async def exec(self) -> list["Document"]:
        return await self.list.find(
            self.predicate,
            projection=self.projection,
            sort=[s.to_tuple() for s in self.sort],
            skip=self.skip,
            limit=self.limit,
        )

    async def count(self) -> int:
        return await self.list.count(self.predicate)
