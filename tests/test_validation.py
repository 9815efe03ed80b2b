"""Tests for local field validation and server error mapping."""

import pytest

from conftest import make_schema
from crudforge.metadata.model import field_from_dict
from crudforge.validation.fields import (
    GENERAL_FAILURE_MESSAGE,
    FieldConstraintValidator,
    map_server_errors,
    validate_values,
)


def validate(value, **field_kwargs):
    field_def = field_from_dict({"fieldName": "f", "label": "Field", **field_kwargs})
    return FieldConstraintValidator(field=field_def).validate(value)


# =============================================================================
# Field constraints
# =============================================================================


class TestRequired:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        errors = validate(value, fieldType="STRING", required=True)
        assert len(errors) == 1
        assert errors[0].code == "REQUIRED"
        assert errors[0].message == "Please enter Field"

    def test_optional_empty_passes(self):
        assert validate(None, fieldType="NUMBER") == []

    def test_false_counts_as_value(self):
        assert validate(False, fieldType="BOOLEAN", required=True) == []


class TestTypeShape:
    def test_number(self):
        errors = validate("abc", fieldType="NUMBER")
        assert errors[0].code == "INVALID_NUMBER"
        assert errors[0].message == "Field must be a number"

    def test_date(self):
        assert validate("2024-13-01", fieldType="DATE")[0].code == "INVALID_DATE"
        assert validate("2024-12-01", fieldType="DATE") == []

    def test_unsupported_not_checked(self):
        assert validate({"lat": 1}, fieldType="GEOPOINT", required=True) == []


class TestRules:
    def test_min_max(self):
        kwargs = {"fieldType": "NUMBER", "validation": {"min": 1, "max": 10}}
        assert validate("0", **kwargs)[0].code == "MIN_VALUE"
        assert validate(11, **kwargs)[0].code == "MAX_VALUE"
        assert validate(5, **kwargs) == []

    def test_lengths(self):
        kwargs = {"fieldType": "STRING", "minLength": 2, "maxLength": 3}
        assert validate("a", **kwargs)[0].code == "MIN_LENGTH"
        assert validate("abcd", **kwargs)[0].code == "MAX_LENGTH"

    def test_pattern_must_match_whole_value(self):
        kwargs = {"fieldType": "STRING", "pattern": "[A-Z]{3}"}
        assert validate("ABC", **kwargs) == []
        assert validate("ABCD", **kwargs)[0].code == "PATTERN_MISMATCH"

    def test_broken_pattern_ignored(self):
        assert validate("x", fieldType="STRING", pattern="([") == []

    def test_enum_option(self):
        kwargs = {"fieldType": "ENUM", "options": ["red", "blue"]}
        assert validate("red", **kwargs) == []
        assert validate("green", **kwargs)[0].code == "INVALID_OPTION"


class TestValidateValues:
    def test_reports_per_field(self, car_schema):
        result = validate_values(car_schema, {"brand": "", "price": "x", "unknown": 1})
        assert not result.valid
        assert result.by_field() == {
            "brand": ["Please enter Brand"],
            "price": ["Price must be a number"],
        }

    def test_valid(self, car_schema):
        assert validate_values(car_schema, {"brand": "BMW", "owner": 7}).valid


# =============================================================================
# Server errors
# =============================================================================


class TestMapServerErrors:
    @pytest.fixture
    def schema(self):
        return make_schema("Car", [
            {"fieldName": "brand", "fieldType": "STRING"},
            {"fieldName": "price", "fieldType": "NUMBER"},
        ])

    def test_matched_keys_attach_to_fields(self, schema):
        result = map_server_errors(schema, {"brand": "already taken"})
        assert result.by_field() == {"brand": ["already taken"]}
        assert result.general == []

    def test_message_lists_joined(self, schema):
        result = map_server_errors(schema, {"price": ["too low", "not round"]})
        assert result.by_field() == {"price": ["too low; not round"]}

    def test_unmatched_keys_become_general(self, schema, caplog):
        result = map_server_errors(schema, {"Brand": "bad", "price": "too low"})
        assert result.by_field() == {"price": ["too low"]}
        assert result.general == [GENERAL_FAILURE_MESSAGE]
        assert "undeclared fields ['Brand']" in caplog.text

    def test_no_details(self, schema):
        result = map_server_errors(schema, None)
        assert result.errors == []
        assert result.general == [GENERAL_FAILURE_MESSAGE]
