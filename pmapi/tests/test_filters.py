from datetime import date, datetime

import pytest

from pmapi.query import filters as f


def test_simple_operators_key_by_operator_and_column():
    assert f.eq("status", "done") == ("eq.status", "done")
    assert f.neq("status", "done") == ("neq.status", "done")
    assert f.gt("score", 5) == ("gt.score", "5")
    assert f.gte("score", 5) == ("gte.score", "5")
    assert f.lt("score", 5.5) == ("lt.score", "5.5")
    assert f.lte("due_date", "2024-01-01") == ("lte.due_date", "2024-01-01")
    assert f.like("name", "plan.%") == ("like.name", "plan.%")
    assert f.ilike("name", "PLAN.%") == ("ilike.name", "PLAN.%")


def test_in_joins_values_with_commas():
    assert f.in_("status", ["todo", "done"]) == ("in.status", "todo,done")
    assert f.in_("id", (1, 2, 3)) == ("in.id", "1,2,3")


def test_in_rejects_non_list():
    with pytest.raises(ValueError, match="in expects a list"):
        f.in_("status", "not-a-list")


def test_is_accepts_null_and_booleans_only():
    assert f.is_("deleted_at", None) == ("is.deleted_at", "null")
    assert f.is_("archived", True) == ("is.archived", "true")
    assert f.is_("archived", "FALSE") == ("is.archived", "false")
    with pytest.raises(ValueError):
        f.is_("archived", 3)


def test_not_prefixes_the_operator_key():
    assert f.not_("status", "eq", "done") == ("not.eq.status", "done")
    assert f.not_("status", "in", ["a", "b"]) == ("not.in.status", "a,b")


def test_values_render_like_the_backend_reads_them():
    assert f.encode_value(None) == "null"
    assert f.encode_value(True) == "true"
    assert f.encode_value(False) == "false"
    assert f.encode_value(0) == "0"


def test_dates_render_as_iso_strings():
    assert f.encode_value(date(2024, 1, 1)) == "2024-01-01"
    assert f.encode_value(datetime(2024, 1, 1, 10, 0)) == "2024-01-01T10:00:00"
    assert f.gte("due_date", datetime(2024, 1, 1, 10, 0)) == ("gte.due_date", "2024-01-01T10:00:00")
    qs = f.build_read_query("*", dict([f.lt("created_at", datetime(2024, 1, 1, 10, 0))]))
    assert "+" not in qs
    assert qs == "select=*&lt.created_at=2024-01-01T10%3A00%3A00"


def test_unknown_operator_and_missing_column():
    with pytest.raises(ValueError, match="Unsupported filter operator"):
        f.filter_pair("between", "x", [1, 2])
    with pytest.raises(ValueError):
        f.eq("", 1)


def test_operator_aliases():
    assert f.filter_pair("ne", "a", 1) == ("neq.a", "1")
    assert f.filter_pair("=", "a", 1) == ("eq.a", "1")


def test_read_query_string():
    qs = f.build_read_query(
        "*", {"eq.status": "done"}, order=("due_date", True), limit=5
    )
    assert qs == "select=*&eq.status=done&order=due_date.asc&limit=5"


def test_read_query_descending_and_encoding():
    qs = f.build_read_query("id,name", {"in.status": "a,b"}, order=("created_at", False))
    assert qs == "select=id%2Cname&in.status=a%2Cb&order=created_at.desc"


def test_write_query_is_bare_encoded_pairs():
    assert f.build_write_query({}) == ""
    assert f.build_write_query({"eq.id": "abc", "eq.name": "a b&c"}) == "eq.id=abc&eq.name=a%20b%26c"
