"""Unit tests for the page query builders."""

import pytest

from thingstore.db import models
from thingstore.repositories.errors import MalformedEntityError
from thingstore.repositories.filters import (
    build_page_query,
    direction,
    metadata_predicate,
    name_predicate,
    order_column,
    where_clause,
)
from thingstore.schemas.common import PageMetadata

from .conftest import compile_params, compile_sql

things = models.Thing.__table__
ORDERS = {"id": things.c.id, "name": things.c.name}


class TestNamePredicate:
    def test_empty_name_adds_nothing(self):
        assert name_predicate(things.c.name, None) is None
        assert name_predicate(things.c.name, "") is None

    def test_case_insensitive_substring(self):
        sql = compile_sql(name_predicate(things.c.name, "Lamp"))
        # Older dialects render lower(...) LIKE, newer ones ILIKE.
        assert "ILIKE" in sql or "lower(things.name) LIKE" in sql
        assert "ESCAPE '/'" in sql
        assert "Lamp" in compile_params(name_predicate(things.c.name, "Lamp")).values()

    def test_wildcards_are_escaped(self):
        params = compile_params(name_predicate(things.c.name, "50%_off"))
        assert "50/%/_off" in params.values()


class TestMetadataPredicate:
    def test_empty_metadata_adds_nothing(self):
        assert metadata_predicate(things.c["metadata"], None) is None
        assert metadata_predicate(things.c["metadata"], {}) is None

    def test_containment_operator(self):
        sql = compile_sql(metadata_predicate(things.c["metadata"], {"site": "north"}))
        assert "things.metadata @>" in sql

    def test_unserializable_metadata_is_malformed(self):
        with pytest.raises(MalformedEntityError):
            metadata_predicate(things.c["metadata"], {"bad": object()})


class TestOrdering:
    @pytest.mark.parametrize("order", [None, "", "created_at", "name; DROP TABLE things"])
    def test_unknown_order_falls_back_to_id(self, order):
        assert order_column(order, ORDERS) is things.c.id

    def test_order_is_case_insensitive(self):
        assert order_column("NAME", ORDERS) is things.c.name

    @pytest.mark.parametrize("value,expected", [("asc", "asc"), ("ASC", "asc"), ("desc", "desc"), ("up", "desc"), (None, "desc")])
    def test_direction(self, value, expected):
        assert direction(value) == expected


class TestWhereClause:
    def test_no_predicates(self):
        assert where_clause(None, None) is None

    def test_predicates_are_anded(self):
        sql = compile_sql(where_clause(things.c.name == "a", None, things.c.key == "k"))
        assert " AND " in sql


class TestBuildPageQuery:
    def _select(self):
        from sqlalchemy import select

        return select(things.c.id)

    def test_zero_limit_renders_no_window(self):
        query = build_page_query(PageMetadata(offset=5, limit=0), allowed_orders=ORDERS)
        sql = compile_sql(query.window(self._select()))
        assert "LIMIT" not in sql
        assert "OFFSET" not in sql
        assert "ORDER BY things.id DESC" in sql

    def test_positive_limit_renders_window(self):
        page = PageMetadata(offset=10, limit=5, order="name", dir="asc")
        query = build_page_query(page, allowed_orders=ORDERS)
        stmt = query.window(self._select())
        sql = compile_sql(stmt)
        assert "ORDER BY things.name ASC" in sql
        assert "LIMIT" in sql and "OFFSET" in sql
        params = compile_params(stmt)
        assert 5 in params.values()
        assert 10 in params.values()

    def test_count_mirrors_filter_without_order_or_window(self):
        page = PageMetadata(limit=5, name="lamp", metadata={"site": "north"})
        query = build_page_query(
            page,
            allowed_orders=ORDERS,
            name_column=things.c.name,
            metadata_column=things.c["metadata"],
            extra=[things.c.group_id == "2b0a6a5e-52a6-4a8e-bc6b-7f5cb8a4ad3f"],
        )
        sql = compile_sql(query.count(things))
        assert sql.startswith("SELECT count(*)")
        assert "LIKE" in sql
        assert "@>" in sql
        assert "things.group_id =" in sql
        assert "ORDER BY" not in sql
        assert "LIMIT" not in sql

    def test_absent_filters_render_no_where(self):
        query = build_page_query(PageMetadata(), allowed_orders=ORDERS, name_column=things.c.name)
        assert query.predicates == ()
        assert "WHERE" not in compile_sql(query.window(self._select()))
