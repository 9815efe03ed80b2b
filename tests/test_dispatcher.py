"""Tests for the field-type dispatcher and date/time conversions."""

from datetime import date, datetime, timedelta, timezone

import pytest

from crudforge.core.types import FieldKind
from crudforge.errors import FieldValueError
from crudforge.metadata.model import field_from_dict
from crudforge.widgets.conversions import (
    date_from_wire,
    date_to_wire,
    datetime_from_wire,
    datetime_to_wire,
)
from crudforge.widgets.dispatcher import (
    UNSUPPORTED,
    decode_options,
    handler_for,
    widget_for,
)


def make_field(type_name: str, **kwargs):
    return field_from_dict({"fieldName": "f", "fieldType": type_name, "label": "F", **kwargs})


# =============================================================================
# Widget descriptors
# =============================================================================


class TestWidgetFor:
    @pytest.mark.parametrize("type_name,component", [
        ("STRING", "TextInput"),
        ("TEXT", "TextArea"),
        ("NUMBER", "NumberInput"),
        ("INTEGER", "IntegerInput"),
        ("BOOLEAN", "Switch"),
        ("DATE", "DatePicker"),
        ("DATETIME", "DateTimePicker"),
        ("ENUM", "Select"),
        ("FILE", "FileUpload"),
        ("REFERENCE", "ReferenceSelect"),
    ])
    def test_every_kind_has_a_component(self, type_name, component):
        extra = {}
        if type_name == "REFERENCE":
            extra = {"relatedSchemaName": "User", "relatedFieldName": "name"}
        widget = widget_for(make_field(type_name, **extra))
        assert widget.component == component
        assert widget.disabled is False

    def test_unsupported_type_renders_disabled_text_input(self):
        widget = widget_for(make_field("GEOPOINT"))
        assert widget.component == "TextInput"
        assert widget.disabled is True
        assert widget.kind is None
        assert widget.placeholder == "Unsupported field type: GEOPOINT"

    def test_textarea_alias(self):
        assert widget_for(make_field("TEXTAREA")).component == "TextArea"

    def test_boolean_binds_checked(self):
        assert widget_for(make_field("BOOLEAN")).value_prop == "checked"
        assert widget_for(make_field("STRING")).value_prop == "value"

    def test_required_rule_message(self):
        widget = widget_for(make_field("STRING", required=True, label="Brand"))
        assert widget.required is True
        assert widget.rules[0].kind == "required"
        assert widget.rules[0].message == "Please enter Brand"

    def test_validation_rules(self):
        widget = widget_for(make_field(
            "STRING", validation={"minLength": 2, "maxLength": 5, "pattern": "[a-z]+"}
        ))
        assert {r.kind for r in widget.rules} == {"pattern", "minLength", "maxLength"}

    def test_enum_choices_in_declared_order(self):
        widget = widget_for(make_field("ENUM", options=["red", "green", "blue"]))
        assert [c.value for c in widget.choices] == ["red", "green", "blue"]

    def test_enum_options_as_json_string(self):
        widget = widget_for(make_field("ENUM", options='["a", "b"]'))
        assert [c.label for c in widget.choices] == ["a", "b"]

    def test_numbers_right_aligned(self):
        assert widget_for(make_field("NUMBER")).alignment == "right"
        assert widget_for(make_field("STRING")).alignment == "left"

    def test_reference_carries_target(self):
        widget = widget_for(make_field(
            "REFERENCE", relatedSchemaName="User", relatedFieldName="name"
        ))
        assert widget.related_schema == "User"
        assert widget.related_display_field == "name"


class TestDecodeOptions:
    def test_list(self):
        assert decode_options(["x", "y"]) == ["x", "y"]

    def test_bytes(self):
        assert decode_options(b'["x"]') == ["x"]

    @pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', "[1, 2]", b"\xff\xfe", 42])
    def test_malformed_yields_no_choices(self, raw):
        assert decode_options(raw) == []

    def test_none(self):
        assert decode_options(None) == []


# =============================================================================
# Handlers
# =============================================================================


class TestHandlers:
    def test_handler_for_unknown(self):
        assert handler_for(make_field("GEOPOINT")) is UNSUPPORTED

    def test_number_from_string(self):
        handler = handler_for(make_field("NUMBER"))
        assert handler.to_wire("12") == 12
        assert handler.to_wire("12.5") == 12.5
        with pytest.raises(FieldValueError):
            handler.to_wire("abc")
        with pytest.raises(FieldValueError):
            handler.to_wire(True)

    def test_integer_rejects_fractions(self):
        handler = handler_for(make_field("INTEGER"))
        assert handler.to_wire("3") == 3
        assert handler.to_wire(4.0) == 4
        with pytest.raises(FieldValueError):
            handler.to_wire(4.5)

    def test_boolean(self):
        handler = handler_for(make_field("BOOLEAN"))
        assert handler.to_wire("yes") is True
        assert handler.to_wire(0) is False
        assert handler.to_query(True) == "true"
        assert handler.display(False) == "No"
        with pytest.raises(FieldValueError):
            handler.to_wire("maybe")

    def test_none_passes_through(self):
        for type_name in ("STRING", "NUMBER", "DATE", "DATETIME", "BOOLEAN"):
            handler = handler_for(make_field(type_name))
            assert handler.from_wire(None) is None
            assert handler.to_wire(None) is None

    def test_text_rejects_containers(self):
        with pytest.raises(FieldValueError):
            handler_for(make_field("STRING")).to_wire({"a": 1})

    def test_reference_keeps_id(self):
        handler = handler_for(make_field(
            "REFERENCE", relatedSchemaName="User", relatedFieldName="name"
        ))
        assert handler.to_wire(7) == 7
        assert handler.to_wire("abc") == "abc"

    def test_reference_digit_string_becomes_int(self):
        handler = handler_for(make_field(
            "REFERENCE", relatedSchemaName="User", relatedFieldName="name"
        ))
        assert handler.to_wire("12") == 12
        assert handler.to_wire(" 3 ") == 3
        assert handler.to_wire("a1") == "a1"

    def test_file_display_uses_name(self):
        handler = handler_for(make_field("FILE"))
        assert handler.display({"name": "a.pdf", "url": "/f/a.pdf"}) == "a.pdf"
        assert handler.display("/f/b.pdf") == "/f/b.pdf"

    def test_date_display_format(self):
        assert handler_for(make_field("DATE")).display("2024-03-01") == "2024-03-01"


# =============================================================================
# Date and time conversions
# =============================================================================


class TestDateConversions:
    def test_round_trip(self):
        assert date_to_wire(date_from_wire("2024-02-29")) == "2024-02-29"

    def test_timestamp_keeps_calendar_date(self):
        # Late evening in a negative offset is still that calendar day
        assert date_from_wire("2024-01-31T23:30:00-05:00") == date(2024, 1, 31)

    def test_datetime_to_date(self):
        assert date_to_wire(datetime(2024, 5, 6, 7, 8)) == "2024-05-06"

    @pytest.mark.parametrize("raw", ["2024-02-30", "yesterday", 20240101, ""])
    def test_invalid(self, raw):
        with pytest.raises(FieldValueError):
            date_from_wire(raw)

    def test_handler_round_trip(self):
        handler = handler_for(make_field("DATE"))
        in_memory = handler.from_wire("2023-12-25")
        assert in_memory == date(2023, 12, 25)
        assert handler.to_wire(in_memory) == "2023-12-25"

    def test_timestamp_round_trip_is_equal(self):
        handler = handler_for(make_field("DATE"))
        wire = "2024-01-15T10:00:00Z"
        assert handler.to_wire(handler.from_wire(wire)) == "2024-01-15"
        assert handler.equal(handler.to_wire(handler.from_wire(wire)), wire)

    def test_equality_by_calendar_date(self):
        handler = handler_for(make_field("DATE"))
        assert handler.equal(date(2024, 1, 15), "2024-01-15")
        assert not handler.equal("2024-01-15", "2024-01-16")
        assert not handler.equal(None, "2024-01-15")
        assert handler.equal(None, None)


class TestDateTimeConversions:
    def test_utc_written_with_z(self):
        value = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert datetime_to_wire(value) == "2024-01-02T03:04:05Z"

    def test_z_suffix_parsed_as_utc(self):
        parsed = datetime_from_wire("2024-01-02T03:04:05Z")
        assert parsed.utcoffset() == timedelta(0)

    def test_offset_preserved(self):
        assert datetime_to_wire("2024-01-02T03:04:05+02:00") == "2024-01-02T03:04:05+02:00"

    def test_same_instant_in_other_offset_is_equal(self):
        handler = handler_for(make_field("DATETIME"))
        assert handler.equal("2024-01-02T03:00:00Z", "2024-01-02T05:00:00+02:00")
        assert not handler.equal("2024-01-02T03:00:00Z", "2024-01-02T03:00:00")

    def test_handler_round_trip(self):
        handler = handler_for(make_field("DATETIME"))
        wire = "2024-06-30T12:00:00Z"
        assert handler.equal(handler.to_wire(handler.from_wire(wire)), wire)

    def test_invalid(self):
        with pytest.raises(FieldValueError):
            datetime_from_wire("not a time")


def test_kind_enum_values():
    assert FieldKind("REFERENCE") is FieldKind.REFERENCE
