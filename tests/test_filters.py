"""Tests for filter translation into predicates."""

from datetime import date, datetime

import pytest
import pytest_asyncio

from listforge.filters import (
    Filter,
    and_predicates,
    empty_match,
    negate,
    parse_filter_string,
    text_condition,
)


@pytest.fixture
def things(forge):
    lst = forge.create_list("Thing")
    lst.add(
        {"title": "Text"},
        {"count": "Number"},
        {"price": "Money"},
        {"flag": "Boolean"},
        {"state": {"type": "Select", "options": "draft, live, archived"}},
        {"day": "Date"},
        {"at": "Datetime"},
        {"tags": "TextArray"},
        {"scores": "NumberArray"},
        {"days": "DateArray"},
        {"secret": {"type": "Password", "work_factor": 4}},
        {"loc": "GeoPoint"},
        {"owner": {"type": "Relationship", "ref": "Thing"}},
        {"owners": {"type": "Relationship", "ref": "Thing", "many": True}},
    )
    return lst


def translate(lst, path, flt):
    return lst.fields[path].add_filter_to_query(flt)


# =============================================================================
# Filter and helpers
# =============================================================================


class TestFilterModel:
    def test_from_dict(self):
        flt = Filter.from_value({"mode": "exactly", "value": "x", "inverted": "true", "caseSensitive": True})
        assert flt.mode == "exactly"
        assert flt.inverted is True
        assert flt.get("case_sensitive") is True

    def test_from_scalar(self):
        flt = Filter.from_value("x")
        assert flt.value == "x"
        assert flt.mode is None
        assert not flt.inverted

    def test_mode_fallback(self):
        assert Filter(mode="bogus").mode_or(("a", "b"), "a") == "a"

    def test_helpers(self):
        assert empty_match("p") == {"p": {"$in": ["", None]}}
        assert empty_match("p", inverted=True) == {"p": {"$nin": ["", None]}}
        assert negate("p", 3) == {"p": {"$ne": 3}}
        assert negate("p", {"$gt": 3}) == {"p": {"$not": {"$gt": 3}}}
        assert and_predicates([{}, {"a": 1}]) == {"a": 1}
        assert and_predicates([{"a": 1}, {"b": 2}]) == {"$and": [{"a": 1}, {"b": 2}]}
        assert and_predicates([]) == {}

    def test_filter_string(self):
        assert parse_filter_string("state:live, views:!3") == {
            "state": {"value": "live", "inverted": False},
            "views": {"value": "3", "inverted": True},
        }

    def test_filter_string_quoted_commas(self):
        assert parse_filter_string('title:"a, b",state:!"x,y"') == {
            "title": {"value": "a, b", "inverted": False},
            "state": {"value": "x,y", "inverted": True},
        }

    def test_filter_string_skips_parts_without_colon(self):
        assert parse_filter_string("junk,state:live") == {"state": {"value": "live", "inverted": False}}

    def test_text_condition_escapes(self):
        assert text_condition("a.b", "exactly") == {"$regex": r"^a\.b$", "$options": "i"}
        assert text_condition("a", "beginsWith", case_sensitive=True) == {"$regex": "^a"}


# =============================================================================
# Per-type translators
# =============================================================================


class TestTextFilters:
    def test_contains_default(self, things):
        assert translate(things, "title", {"value": "foo"}) == {"title": {"$regex": "foo", "$options": "i"}}

    def test_unknown_mode_falls_back(self, things):
        assert translate(things, "title", {"mode": "nope", "value": "foo"}) == translate(
            things, "title", {"value": "foo"}
        )

    def test_inverted(self, things):
        assert translate(things, "title", {"mode": "endsWith", "value": "x", "inverted": True}) == {
            "title": {"$not": {"$regex": "x$", "$options": "i"}}
        }

    def test_empty_value_matches_empty(self, things):
        assert translate(things, "title", {"value": ""}) == {"title": {"$in": ["", None]}}


class TestNumberFilters:
    def test_equals(self, things):
        assert translate(things, "count", {"value": "1,000"}) == {"count": 1000}
        assert translate(things, "count", {"value": "5", "inverted": True}) == {"count": {"$ne": 5}}

    def test_gt_lt(self, things):
        assert translate(things, "count", {"mode": "gt", "value": 3}) == {"count": {"$gt": 3}}
        assert translate(things, "count", {"mode": "lt", "value": 3, "inverted": True}) == {
            "count": {"$not": {"$lt": 3}}
        }

    def test_between_inclusive(self, things):
        assert translate(things, "count", {"mode": "between", "value": {"min": 1, "max": 5}}) == {
            "count": {"$gte": 1, "$lte": 5}
        }

    def test_money_strips_currency(self, things):
        assert translate(things, "price", {"mode": "gt", "value": "$10"}) == {"price": {"$gt": 10}}

    def test_no_value(self, things):
        assert translate(things, "count", {"value": "abc"}) == {"count": {"$in": ["", None]}}


class TestBooleanFilters:
    def test_truthiness(self, things):
        assert translate(things, "flag", {"value": True}) == {"flag": True}
        assert translate(things, "flag", {"value": "false"}) == {"flag": {"$ne": True}}
        assert translate(things, "flag", {"value": True, "inverted": True}) == {"flag": {"$ne": True}}


class TestSelectFilters:
    def test_single_and_list(self, things):
        assert translate(things, "state", {"value": "live"}) == {"state": "live"}
        assert translate(things, "state", {"value": ["live", "draft"]}) == {"state": {"$in": ["live", "draft"]}}
        assert translate(things, "state", {"value": ["live"], "inverted": True}) == {"state": {"$nin": ["live"]}}

    def test_empty_list(self, things):
        assert translate(things, "state", {"value": []}) == {"state": {"$in": []}}
        assert translate(things, "state", {"value": [], "inverted": True}) == {
            "state": {"$in": ["draft", "live", "archived"]}
        }

    def test_absent_value(self, things):
        assert translate(things, "state", {"value": None}) == {"state": {"$nin": ["draft", "live", "archived"]}}


class TestDateFilters:
    def test_on(self, things):
        assert translate(things, "day", {"value": "2020-01-02"}) == {
            "day": {"$gte": date(2020, 1, 2), "$lt": date(2020, 1, 3)}
        }

    def test_after_before(self, things):
        assert translate(things, "day", {"mode": "after", "value": "2020-01-02"}) == {
            "day": {"$gte": date(2020, 1, 3)}
        }
        assert translate(things, "day", {"mode": "before", "value": "2020-01-02"}) == {
            "day": {"$lt": date(2020, 1, 2)}
        }

    def test_between_bounds_from_filter(self, things):
        assert translate(things, "day", {"mode": "between", "after": "2020-01-01", "before": "2020-01-31"}) == {
            "day": {"$gte": date(2020, 1, 1), "$lt": date(2020, 2, 1)}
        }

    def test_datetime_uses_day_start(self, things):
        assert translate(things, "at", {"value": "2020-01-02"}) == {
            "at": {"$gte": datetime(2020, 1, 2), "$lt": datetime(2020, 1, 3)}
        }

    def test_inverted_and_empty(self, things):
        assert translate(things, "day", {"mode": "before", "value": "2020-01-02", "inverted": True}) == {
            "day": {"$not": {"$lt": date(2020, 1, 2)}}
        }
        assert translate(things, "day", {"value": ""}) == {"day": {"$in": ["", None]}}


class TestArrayFilters:
    def test_some_and_none(self, things):
        cond = {"$regex": "a", "$options": "i"}
        assert translate(things, "tags", {"value": "a"}) == {"tags": {"$elemMatch": cond}}
        assert translate(things, "tags", {"value": "a", "presence": "none"}) == {
            "tags": {"$not": {"$elemMatch": cond}}
        }
        assert translate(things, "tags", {"value": "a", "inverted": True}) == {
            "tags": {"$not": {"$elemMatch": cond}}
        }

    def test_number_array(self, things):
        assert translate(things, "scores", {"mode": "gt", "value": 2}) == {"scores": {"$elemMatch": {"$gt": 2}}}

    def test_date_array(self, things):
        assert translate(things, "days", {"value": "2020-01-02"}) == {
            "days": {"$elemMatch": {"$gte": date(2020, 1, 2), "$lt": date(2020, 1, 3)}}
        }

    def test_empty(self, things):
        assert translate(things, "tags", {"value": ""}) == {
            "$or": [{"tags": None}, {"tags": {"$size": 0}}]
        }


class TestOtherFilters:
    def test_password_exists(self, things):
        assert translate(things, "secret", {"value": True}) == {"secret": {"$nin": ["", None]}}
        assert translate(things, "secret", {"value": False}) == {"secret": {"$in": ["", None]}}

    def test_geopoint_near(self, things):
        assert translate(things, "loc", {"value": [2, 48], "distance": 5}) == {
            "loc": {"$near": {"point": [2.0, 48.0], "maxDistance": 5000}}
        }

    def test_relationship(self, things):
        assert translate(things, "owner", {"value": "a,b"}) == {"owner": {"$in": ["a", "b"]}}
        assert translate(things, "owner", {"value": ["a"], "inverted": True}) == {"owner": {"$nin": ["a"]}}
        assert translate(things, "owner", {"value": ""}) == {"owner": {"$in": ["", None]}}
        assert translate(things, "owners", {"value": ""}) == {
            "$or": [{"owners": None}, {"owners": {"$size": 0}}]
        }


# =============================================================================
# Filters evaluated against stored documents
# =============================================================================


@pytest_asyncio.fixture
async def stocked(forge):
    lst = forge.create_list("Item")
    lst.add(
        {"name": "Text"},
        {"state": {"type": "Select", "options": "draft, live"}},
        {"day": "Date"},
    ).register()
    rows = [
        {"name": "a", "state": "draft", "day": "2020-01-01"},
        {"name": "b", "state": "live", "day": "2020-01-05"},
        {"name": "c", "state": "live", "day": "2020-01-10"},
        {"name": "d", "day": "2020-01-11"},
        {"name": "e", "state": None},
    ]
    for row in rows:
        result = await lst.update_item(lst.new_item(), row)
        assert result.success
    return lst


async def names(lst, filters):
    docs = await lst.query(filters=filters).sort_by("name").exec()
    return [d.get("name") for d in docs]


class TestFiltersAgainstDocuments:
    @pytest.mark.asyncio
    async def test_select_empty_list_matches_nothing(self, stocked):
        assert await names(stocked, {"state": {"value": []}}) == []

    @pytest.mark.asyncio
    async def test_select_inverted_empty_list_matches_declared_values(self, stocked):
        assert await names(stocked, {"state": {"value": [], "inverted": True}}) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_select_absent_value(self, stocked):
        assert await names(stocked, {"state": {"value": None}}) == ["d", "e"]

    @pytest.mark.asyncio
    async def test_date_between_is_inclusive(self, stocked):
        result = await names(stocked, {"day": {"mode": "between", "after": "2020-01-05", "before": "2020-01-10"}})
        assert result == ["b", "c"]

    @pytest.mark.asyncio
    async def test_inverted_is_complement(self, stocked):
        flt = {"mode": "after", "value": "2020-01-05"}
        matched = await names(stocked, {"day": flt})
        complement = await names(stocked, {"day": {**flt, "inverted": True}})
        assert matched == ["c", "d"]
        assert sorted(matched + complement) == ["a", "b", "c", "d", "e"]

    @pytest.mark.asyncio
    async def test_string_filter_form(self, stocked):
        assert await names(stocked, "state:live") == ["b", "c"]
        assert await names(stocked, "state:!live") == ["a", "d", "e"]
