"""Shared fixtures for ListForge tests."""

import pytest

from listforge import ListForge
from listforge.persistence.memory import MemoryBackend


@pytest.fixture
def forge():
    """A fresh context over an in-memory backend."""
    ctx = ListForge(backend=MemoryBackend())
    yield ctx
    ctx.close()


@pytest.fixture
def posts(forge):
    """A registered Post list with a representative set of fields."""
    forge.create_list("User").add({"name": {"type": "Text", "required": True}}).register()
    lst = forge.create_list("Post")
    lst.add(
        {"title": {"type": "Text", "required": True}},
        {"state": {"type": "Select", "options": "draft, published, archived", "default": "draft"}},
        {"views": {"type": "Number"}},
        {"published": {"type": "Boolean"}},
        {"publishedDate": {"type": "Date"}},
        {"author": {"type": "Relationship", "ref": "User"}},
        {"tags": {"type": "TextArray"}},
    )
    return lst.register()
