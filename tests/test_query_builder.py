"""Tests for translating query descriptors into wire queries."""

import pytest

from conftest import make_schema
from crudforge.errors import FieldValueError
from crudforge.query.builder import QueryBuilder, parse_filter
from crudforge.query.types import (
    Filter,
    Operator,
    PageResult,
    QueryDescriptor,
    SortDirection,
)


@pytest.fixture
def builder() -> QueryBuilder:
    return QueryBuilder()


@pytest.fixture
def product_schema():
    return make_schema("Product", [
        {"fieldName": "name", "fieldType": "STRING"},
        {"fieldName": "price", "fieldType": "NUMBER"},
        {"fieldName": "active", "fieldType": "BOOLEAN"},
        {"fieldName": "released", "fieldType": "DATE"},
        {"fieldName": "color", "fieldType": "ENUM", "options": ["red", "blue"]},
    ])


class TestBuild:
    def test_defaults(self, builder, product_schema):
        query = builder.build(QueryDescriptor(), product_schema)
        assert query.as_params() == [("page", "0"), ("size", "10")]

    def test_text_filter_uses_like(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[Filter("name", "lap")])
        query = builder.build(descriptor, product_schema)
        assert query.get("name.like") == "lap"

    def test_number_filter_uses_eq(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[Filter("price", "100")])
        assert builder.build(descriptor, product_schema).get("price.eq") == "100"

    def test_explicit_operator(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[Filter("price", 100, Operator.GREATER)])
        assert builder.build(descriptor, product_schema).get("price.gt") == "100"

    def test_filter_values_encoded_by_type(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[
            Filter("active", True),
            Filter("released", "2024-01-31T10:00:00Z", Operator.GREATER_OR_EQUAL),
        ])
        query = builder.build(descriptor, product_schema)
        assert query.get("active.eq") == "true"
        assert query.get("released.gte") == "2024-01-31"

    def test_in_operator_joins_values(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[Filter("color", ["red", "blue"], Operator.IN)])
        assert builder.build(descriptor, product_schema).get("color.in") == "red,blue"

    def test_list_value_needs_in(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[Filter("color", ["red"], Operator.EQUALS)])
        with pytest.raises(FieldValueError):
            builder.build(descriptor, product_schema)

    def test_operator_not_accepted_by_type_is_dropped(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[
            Filter("active", True, Operator.GREATER),
            Filter("color", "red", Operator.CONTAINS),
            Filter("price", 10, Operator.GREATER),
        ])
        keys = [k for k, _ in builder.build(descriptor, product_schema).params]
        assert keys == ["price.gt", "page", "size"]

    def test_filters_on_same_field_are_all_sent(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[
            Filter("price", 10, Operator.GREATER),
            Filter("price", 5, Operator.GREATER),
        ])
        assert builder.build(descriptor, product_schema).get_all("price.gt") == ["10", "5"]

    def test_filter_order_preserved(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[Filter("price", 1), Filter("name", "a")])
        keys = [k for k, _ in builder.build(descriptor, product_schema).params]
        assert keys[:2] == ["price.eq", "name.like"]

    def test_undeclared_filter_dropped(self, builder, product_schema):
        descriptor = QueryDescriptor(filters=[Filter("weight", 3)])
        assert builder.build(descriptor, product_schema).get("weight.eq") is None

    def test_sort(self, builder, product_schema):
        descriptor = QueryDescriptor(sort_field="price", sort_direction=SortDirection.DESC)
        query = builder.build(descriptor, product_schema)
        assert query.get("sortBy") == "price"
        assert query.get("sortOrder") == "desc"

    def test_sort_defaults_to_ascending(self, builder, product_schema):
        query = builder.build(QueryDescriptor(sort_field="name"), product_schema)
        assert query.get("sortOrder") == "asc"

    def test_stale_sort_field_dropped(self, builder, product_schema):
        query = builder.build(QueryDescriptor(sort_field="removed"), product_schema)
        assert query.get("sortBy") is None
        assert query.get("sortOrder") is None

    def test_system_sort_fields(self, builder, product_schema):
        query = builder.build(QueryDescriptor(sort_field="createdAt"), product_schema)
        assert query.get("sortBy") == "createdAt"

    def test_page_and_size_clamped(self, builder, product_schema):
        query = builder.build(QueryDescriptor(page=-3, page_size=0), product_schema)
        assert query.get("page") == "0"
        assert query.get("size") == "1"


class TestBuildLookup:
    def test_single_page_of_ids(self, builder):
        query = builder.build_lookup([7, 8, "x9"])
        assert query.get("id.in") == "7,8,x9"
        assert query.get("page") == "0"
        assert query.get("size") == "3"


class TestParseFilter:
    def test_with_operator(self):
        assert parse_filter("price.gt=100") == Filter("price", "100", Operator.GREATER)

    def test_without_operator(self):
        assert parse_filter("name=Al") == Filter("name", "Al")

    def test_in_splits(self):
        assert parse_filter("color.in=red,blue").value == ["red", "blue"]

    @pytest.mark.parametrize("expression", ["novalue", "=x", "price.between=1"])
    def test_invalid(self, expression):
        with pytest.raises(ValueError):
            parse_filter(expression)


class TestPageResult:
    def test_total_pages_computed_when_absent(self):
        page = PageResult.from_dict({"content": [], "totalElements": 21, "size": 10})
        assert page.total_pages == 3

    def test_content_records(self):
        page = PageResult.from_dict({
            "content": [{"id": 1, "schemaName": "Car", "data": {"brand": "BMW"}}],
            "totalElements": 1,
            "totalPages": 1,
            "page": 0,
            "size": 10,
        })
        assert page.content[0].data == {"brand": "BMW"}
