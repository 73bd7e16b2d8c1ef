"""Page-window computation for paginated list queries."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

ELLIPSIS = "..."


def compute_page_window(current_page: int, total_pages: int, max_pages: int | None) -> list[int | str]:
    """Page numbers to show around ``current_page``.

    At most ``max_pages`` entries are returned. When the window does not
    reach the first or last page, the outermost number on that side is
    replaced with ``"..."``.
    """
    if total_pages <= 0:
        return []
    if not max_pages or total_pages <= max_pages:
        return list(range(1, total_pages + 1))

    surround = max_pages // 2
    first_page = max(1, current_page - surround)
    pad_right = max(-(current_page - surround - 1), 0)
    last_page = min(total_pages, current_page + surround + pad_right)
    pad_left = max(current_page + surround - last_page, 0)
    first_page = max(first_page - pad_left, 1)

    pages: list[int | str] = list(range(first_page, last_page + 1))
    # An even max_pages leaves one page too many; drop it from the longer side
    while len(pages) > max_pages:
        if current_page - first_page >= last_page - current_page:
            pages.pop(0)
            first_page += 1
        else:
            pages.pop()
            last_page -= 1
    if first_page != 1:
        pages[0] = ELLIPSIS
    if last_page != total_pages:
        pages[-1] = ELLIPSIS
    return pages


@dataclass
class Page:
    """One page of results plus navigation data.

    ``previous``/``next`` are page numbers or False; ``first``/``last`` are
    1-based positions of the first and last result (0 when empty).
    """

    total: int
    current_page: int
    total_pages: int
    pages: list[int | str]
    previous: int | bool
    next: int | bool
    first: int
    last: int
    results: list[Any] = field(default_factory=list)

    @property
    def skip(self) -> int:
        return self.first - 1 if self.first else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "pages": list(self.pages),
            "previous": self.previous,
            "next": self.next,
            "first": self.first,
            "last": self.last,
            "results": list(self.results),
        }


def get_pages(total: int, page: Any, per_page: int, max_pages: int | None = 10) -> Page:
    """Compute page navigation for ``total`` results.

    A requested page beyond the last page is clamped to the last page;
    anything below 1 (or unparseable) becomes page 1.
    """
    if per_page < 1:
        raise ValueError("per_page must be at least 1")
    try:
        requested = int(page)
    except (TypeError, ValueError):
        requested = 1
    total_pages = math.ceil(total / per_page) if total else 0
    current = min(max(requested, 1), max(total_pages, 1))

    first = (current - 1) * per_page + 1 if total else 0
    last = min(current * per_page, total) if total else 0

    return Page(
        total=total,
        current_page=current,
        total_pages=total_pages,
        pages=compute_page_window(current, total_pages, max_pages),
        previous=current - 1 if current > 1 else False,
        next=current + 1 if current < total_pages else False,
        first=first,
        last=last,
    )
