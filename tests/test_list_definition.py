"""Tests for defining and registering lists."""

import pytest

from listforge import ListForge
from listforge.errors import (
    ConfigurationError,
    DuplicateListKey,
    FieldDefinitionError,
    ListAlreadyRegistered,
    ListNotFound,
    ListNotRegistered,
    UnknownFilterPath,
)
from listforge.fields import Number, Text
from listforge.persistence.memory import MemoryBackend


# =============================================================================
# Context
# =============================================================================


class TestContext:
    def test_duplicate_key(self, forge):
        forge.create_list("Post")
        with pytest.raises(DuplicateListKey):
            forge.create_list("Post")

    def test_unknown_list(self, forge):
        with pytest.raises(ListNotFound):
            forge.list("Ghost")
        with pytest.raises(KeyError):
            forge.list("Ghost")

    def test_options(self, forge):
        forge.set("user_model", "User")
        assert forge.get("user_model") == "User"
        assert forge.get("missing", 1) == 1

    def test_contexts_do_not_share_lists(self):
        a = ListForge(backend=MemoryBackend())
        b = ListForge(backend=MemoryBackend())
        a.create_list("Post")
        assert a.has_list("Post")
        assert not b.has_list("Post")

    def test_default_backend_from_env(self, monkeypatch):
        for var in ("LISTFORGE_DATABASE_URL", "DATABASE_URL", "LISTFORGE_DB_PATH"):
            monkeypatch.delenv(var, raising=False)
        assert isinstance(ListForge().backend, MemoryBackend)


# =============================================================================
# add()
# =============================================================================


class TestAdd:
    def test_naming_defaults(self, forge):
        lst = forge.create_list("BlogCategory")
        assert lst.singular == "Blog Category"
        assert lst.plural == "Blog Categories"
        assert lst.path == "blog-categories"

    def test_headings_and_fields_keep_order(self, forge):
        lst = forge.create_list("Post")
        lst.add("Main", {"title": "Text"}, {"heading": "Meta", "depends_on": {"title": True}}, {"views": "Number"})
        assert [e.get("heading") or e.get("field") for e in lst.ui_elements] == ["Main", "title", "Meta", "views"]
        assert lst.ui_elements[2]["depends_on"] == {"title": True}
        assert list(lst.fields) == ["title", "views"]

    def test_same_path_in_one_call_second_wins(self, forge):
        lst = forge.create_list("Post")
        lst.add({"title": "Text"}, {"title": {"type": "Number"}})
        assert list(lst.fields) == ["title"]
        assert isinstance(lst.fields["title"], Number)
        assert len(lst.schema_fields) == 1
        lst.register()
        assert lst.schema.paths == ["title"]

    def test_field_lookup_and_redefinition(self, forge):
        lst = forge.create_list("Post").add({"title": "Number"})
        assert lst.field("nothing") is None
        lst.field("title", "Text")
        assert isinstance(lst.field("title"), Text)

    def test_missing_type(self, forge):
        with pytest.raises(FieldDefinitionError):
            forge.create_list("Post").add({"title": {"label": "Title"}})

    def test_reserved_path(self, forge):
        with pytest.raises(FieldDefinitionError):
            forge.create_list("Post").add({"id": "Text"})

    def test_native_types(self, forge):
        lst = forge.create_list("Post").add({"title": str, "views": int})
        assert isinstance(lst.fields["title"], Text)
        assert isinstance(lst.fields["views"], Number)


# =============================================================================
# register()
# =============================================================================


class TestRegister:
    def test_register_twice(self, forge):
        lst = forge.create_list("Post").add({"title": "Text"})
        lst.register()
        with pytest.raises(ListAlreadyRegistered):
            lst.register()

    def test_no_fields_after_register(self, forge):
        lst = forge.create_list("Post").add({"title": "Text"}).register()
        with pytest.raises(ListAlreadyRegistered):
            lst.add({"body": "Text"})

    def test_model_requires_registration(self, forge):
        lst = forge.create_list("Post").add({"title": "Text"})
        with pytest.raises(ListNotRegistered):
            lst.model

    @pytest.mark.asyncio
    async def test_runtime_requires_registration(self, forge):
        lst = forge.create_list("Post").add({"title": "Text"})
        with pytest.raises(ListNotRegistered):
            await lst.find()
        with pytest.raises(ListNotRegistered):
            await lst.update_item(lst.new_item(), {"title": "x"})

    def test_automap_name(self, forge):
        lst = forge.create_list("Post").add({"title": "Text"}).register()
        assert lst.name_path == "title"
        assert lst.default_sort == "title"

    def test_explicit_map(self, forge):
        lst = forge.create_list("Post", map={"name": "headline"}).add({"headline": "Text", "title": "Text"})
        lst.register()
        assert lst.name_path == "headline"

    def test_unknown_mapping(self, forge):
        with pytest.raises(ConfigurationError):
            forge.create_list("Post", map={"colour": "x"})

    def test_sortable_adds_sort_order(self, forge):
        lst = forge.create_list("Post", sortable=True).add({"title": "Text"}).register()
        assert lst.fields["sortOrder"].hidden
        assert lst.default_sort == "sortOrder"

    def test_autokey_adds_key_field(self, forge):
        lst = forge.create_list("Post", autokey={"path": "slug", "from": "title", "unique": True})
        lst.add({"title": "Text"}).register()
        assert lst.fields["slug"].type_id == "Key"
        assert lst.autokey == {"path": "slug", "from": ["title"], "unique": True, "fixed": False}

    def test_tracking_with_user_model(self, forge):
        forge.set("user_model", "User")
        forge.create_list("User").add({"name": "Text"}).register()
        lst = forge.create_list("Post", track=True).add({"title": "Text"}).register()
        assert set(lst.tracking) == {"created_at", "created_by", "updated_at", "updated_by"}
        assert lst.fields["createdBy"].ref == "User"
        assert lst.fields["createdAt"].noedit
        assert lst.mappings["created_on"] == "createdAt"

    def test_tracking_without_user_model_skips_user_fields(self, forge):
        lst = forge.create_list("Post", track=True).add({"title": "Text"}).register()
        assert set(lst.tracking) == {"created_at", "updated_at"}

    def test_explicit_user_tracking_needs_user_model(self, forge):
        lst = forge.create_list("Post", track={"created_by": True}).add({"title": "Text"})
        with pytest.raises(ConfigurationError):
            lst.register()

    def test_unknown_hook_point(self, forge):
        with pytest.raises(ConfigurationError):
            forge.create_list("Post", hooks={"beforeDelete": ["x"]})

    def test_compiled_schema(self, forge):
        lst = forge.create_list("Post").add(
            {"title": {"type": "Text", "index": True}},
            {"state": {"type": "Select", "options": "a, b", "default": "a"}},
        ).register()
        assert lst.schema.fragments["title"].index
        assert lst.schema.defaults() == {"state": "a"}
        assert "stateLabel" in lst.schema.virtuals
        assert set(lst.schema.underscore["title"]) == {"format", "crop"}

    def test_schema_option_reaches_backend(self, forge):
        first = forge.create_list("Post", schema={"collection": "articles", "strict": True})
        first.add({"title": "Text"}).register()
        assert first.schema.options == {"collection": "articles", "strict": True}
        assert first.schema.collection == "articles"
        assert forge.create_list("Page").add({"title": "Text"}).register().schema.collection is None

    @pytest.mark.asyncio
    async def test_lists_sharing_a_collection(self, forge):
        posts = forge.create_list("Post", schema={"collection": "content"}).add({"title": "Text"}).register()
        pages = forge.create_list("Page", schema={"collection": "content"}).add({"title": "Text"}).register()
        await posts.model.save({"title": "Hello"})
        assert await pages.count() == 1

    def test_underscore_method(self, forge):
        lst = forge.create_list("Post").add({"title": "Text"})
        lst.underscore_method("title", "shout", lambda item: item.get("title").upper())
        lst.register()
        assert lst.new_item({"title": "hi"})._.title.shout() == "HI"


# =============================================================================
# Naming, sorting, columns and filters
# =============================================================================


@pytest.fixture
def posts_list(forge):
    forge.create_list("User").add({"name": "Text"}).register()
    lst = forge.create_list("Post")
    lst.add(
        {"title": {"type": "Text", "initial": True}},
        {"views": "Number"},
        {"secret": {"type": "Password", "work_factor": 4}},
        {"author": {"type": "Relationship", "ref": "User"}},
    )
    return lst.register()


class TestListHelpers:
    def test_expand_sort(self, posts_list):
        directives = posts_list.expand_sort("-views, __name__, bogus")
        assert [str(d) for d in directives] == ["-views", "title"]

    def test_expand_columns(self, posts_list):
        columns = posts_list.expand_columns("views|20%")
        assert [(c.path, c.width) for c in columns] == [("title", None), ("views", "20%")]

    def test_expand_paths(self, posts_list):
        assert posts_list.expand_paths("__name__, views, nope") == ["title", "views"]

    def test_get_document_name(self, posts_list):
        item = posts_list.new_item({"id": "1", "title": "<b>"})
        assert posts_list.get_document_name(item) == "<b>"
        assert posts_list.get_document_name(item, escape=True) == "&lt;b&gt;"
        assert posts_list.get_document_name(posts_list.new_item({"id": "7"})) == "7"

    def test_initial_fields(self, posts_list):
        assert [f.path for f in posts_list.initial_fields] == ["title"]

    def test_process_filters_unknown_path(self, posts_list):
        with pytest.raises(UnknownFilterPath):
            posts_list.process_filters({"nope": {"value": 1}})

    def test_process_filters_string_with_quoted_comma(self, posts_list):
        processed = posts_list.process_filters('title:"Hello, world",views:!3')
        assert processed["title"].value == "Hello, world"
        assert not processed["title"].inverted
        assert processed["views"].value == "3"
        assert processed["views"].inverted

    def test_relationship_subpath_filter(self, posts_list):
        predicate = posts_list.get_filter_predicate({"author.name": {"value": "ann"}})
        assert predicate == {"author.name": {"$regex": "ann", "$options": "i"}}

    def test_filters_combine_with_and(self, posts_list):
        predicate = posts_list.get_filter_predicate({"views": {"mode": "gt", "value": 1}, "title": {"value": "x"}})
        assert predicate == {
            "$and": [{"views": {"$gt": 1}}, {"title": {"$regex": "x", "$options": "i"}}]
        }

    def test_search_filters(self, posts_list):
        assert posts_list.get_search_filters("a.b") == {
            "$or": [{"title": {"$regex": r"a\.b", "$options": "i"}}, {"id": "a.b"}]
        }
        assert posts_list.get_search_filters("  ") == {}

    def test_get_data_excludes_password(self, posts_list):
        item = posts_list.new_item({"id": "1", "title": "Hi", "secret": "hash"})
        data = posts_list.get_data(item)
        assert data["id"] == "1"
        assert data["name"] == "Hi"
        assert "secret" not in data["fields"]
        assert data["fields"]["title"] == "Hi"

    def test_get_options(self, posts_list):
        options = posts_list.get_options()
        assert options["key"] == "Post"
        assert options["name_path"] == "title"
        assert options["fields"]["author"]["ref"] == "User"
        assert options["search_fields"] == ["title"]
