"""Lists, queries and pagination."""

from listforge.lists.list import List
from listforge.lists.pagination import Page, compute_page_window, get_pages
from listforge.lists.query import Column, ListQuery, SortDirective

__all__ = [
    "Column",
    "List",
    "ListQuery",
    "Page",
    "SortDirective",
    "compute_page_window",
    "get_pages",
]
