"""Tests for List.get_unique_value."""

import pytest
import pytest_asyncio

import listforge.lists.list as list_module
from listforge.errors import UniqueValueExhausted


@pytest_asyncio.fixture
async def slugs(forge):
    lst = forge.create_list("Post").add({"slug": "Text"}, {"site": "Text"}).register()
    for slug, site in [("post", "a"), ("post2", "a"), ("page-2", "b")]:
        await lst.model.save({"slug": slug, "site": site})
    return lst


class TestGetUniqueValue:
    @pytest.mark.asyncio
    async def test_free_value_is_returned_as_is(self, slugs):
        assert await slugs.get_unique_value("slug", "fresh") == "fresh"

    @pytest.mark.asyncio
    async def test_numbered_suffix(self, slugs):
        assert await slugs.get_unique_value("slug", "post") == "post3"

    @pytest.mark.asyncio
    async def test_separator(self, slugs):
        assert await slugs.get_unique_value("slug", "page", separator="-") == "page"
        await slugs.model.save({"slug": "page"})
        assert await slugs.get_unique_value("slug", "page", separator="-") == "page-3"

    @pytest.mark.asyncio
    async def test_filters_limit_collisions(self, slugs):
        assert await slugs.get_unique_value("slug", "post", filters={"site": "b"}) == "post"

    @pytest.mark.asyncio
    async def test_exclude_id(self, slugs):
        own = (await slugs.find({"slug": "post"}))[0]
        assert await slugs.get_unique_value("slug", "post", exclude_id=own.id) == "post"

    @pytest.mark.asyncio
    async def test_gives_up(self, slugs, monkeypatch):
        monkeypatch.setattr(list_module, "UNIQUE_VALUE_ATTEMPTS", 2)
        with pytest.raises(UniqueValueExhausted):
            await slugs.get_unique_value("slug", "post")
