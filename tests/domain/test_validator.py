"""
Dynamic validator tests.

Covers:
- Per-kind checks (text, number, currency, date, select)
- Required handling of None and ""
- Error collection and column-name prefixes
- Column list validation: duplicate roles, select options, shape errors
"""

import pytest

from inventory_kernel.domain.columns import ColumnDefinition, ColumnRole, ColumnType
from inventory_kernel.domain.limits import StringLimits
from inventory_kernel.domain.validator import (
    REQUIRED_MESSAGE,
    validate_column_definitions,
    validate_item_data,
    validate_value,
)
from inventory_kernel.exceptions import DuplicateRoleError, SchemaDefinitionError


def _col(col_id, type_, name=None, **kwargs) -> ColumnDefinition:
    return ColumnDefinition(id=col_id, name=name or col_id.title(), type=ColumnType(type_), **kwargs)


class TestValueChecks:

    def test_text_accepts_strings_only(self):
        column = _col("title", "text")
        assert validate_value("hello", column) is None
        assert validate_value(5, column) == "Expected text"

    @pytest.mark.parametrize("kind", ["number", "currency"])
    def test_numeric_kinds_reject_non_numbers(self, kind):
        column = _col("amount", kind)
        assert validate_value(3.5, column) is None
        assert validate_value(0, column) is None
        assert validate_value("3.5", column) == "Expected a number"
        assert validate_value(True, column) == "Expected a number"
        assert validate_value(float("nan"), column) == "Expected a number"
        assert validate_value(float("inf"), column) == "Expected a number"

    def test_date_accepts_parseable_strings(self):
        column = _col("received", "date")
        assert validate_value("2024-01-15", column) is None
        assert validate_value("January 15, 2024", column) is None
        assert validate_value("not a date", column) == "Invalid date format"
        assert validate_value("2023-02-29", column) == "Invalid date format"
        assert validate_value("2024-01-15 not a date", column) == "Invalid date format"
        assert validate_value("2024-01-15T99:99:99", column) == "Invalid date format"
        assert validate_value("01/15/2024abc", column) == "Invalid date format"

    def test_select_membership(self):
        column = _col("size", "select", options=("S", "M", "L"))
        assert validate_value("M", column) is None
        assert validate_value("XL", column) == (
            "Invalid option. Expected 'S' | 'M' | 'L', received 'XL'"
        )

    def test_select_without_options_behaves_as_text(self):
        column = _col("tag", "select")
        assert validate_value("anything", column) is None
        assert validate_value(3, column) == "Expected text"

    @pytest.mark.parametrize("blank", [None, ""])
    def test_blank_values(self, blank):
        required = _col("title", "text", required=True)
        optional = _col("title", "number")
        assert validate_value(blank, required) == REQUIRED_MESSAGE
        assert validate_value(blank, optional) is None


class TestValidateItemData:

    def test_valid_data(self):
        columns = (_col("name", "text", required=True), _col("qty", "number"))
        result = validate_item_data({"name": "Hammer", "qty": 4}, columns)
        assert result.is_valid
        assert result.errors == ()

    def test_collects_every_error_with_column_name(self):
        columns = (
            _col("name", "text", name="Name", required=True),
            _col("qty", "number", name="Quantity"),
            _col("size", "select", name="Size", options=("S", "M")),
        )
        result = validate_item_data({"qty": "four", "size": "XL"}, columns)

        assert not result.is_valid
        assert result.errors == (
            "Name: Required",
            "Quantity: Expected a number",
            "Size: Invalid option. Expected 'S' | 'M', received 'XL'",
        )
        assert result.message() == ", ".join(result.errors)

    def test_unknown_keys_are_ignored(self):
        columns = (_col("name", "text"),)
        assert validate_item_data({"name": "x", "stray": object()}, columns).is_valid

    def test_no_columns_accepts_anything(self):
        assert validate_item_data({"a": 1}, ()).is_valid


class TestValidateColumnDefinitions:

    def test_returns_columns_sorted_by_order(self):
        columns = validate_column_definitions(
            [
                {"id": "b", "name": "B", "type": "number", "order": 2},
                {"id": "a", "name": "A", "type": "text", "order": 1},
            ]
        )
        assert [c.id for c in columns] == ["a", "b"]
        assert columns[1].type == ColumnType.NUMBER

    def test_duplicate_role_rejected(self):
        with pytest.raises(DuplicateRoleError) as exc_info:
            validate_column_definitions(
                [
                    {"id": "a", "name": "Qty", "type": "number", "role": "quantity"},
                    {"id": "b", "name": "Stock", "type": "number", "role": "quantity"},
                ]
            )
        assert exc_info.value.role == "quantity"
        assert exc_info.value.column_names == ["Qty", "Stock"]
        assert "Each role can only be assigned to one column" in str(exc_info.value)

    def test_select_without_options_rejected(self):
        with pytest.raises(SchemaDefinitionError) as exc_info:
            validate_column_definitions(
                [{"id": "a", "name": "Size", "type": "select", "options": []}]
            )
        assert exc_info.value.messages == [
            'Column "Size" is a select type but has no options'
        ]

    def test_duplicate_ids_rejected(self):
        with pytest.raises(SchemaDefinitionError, match="duplicate column id"):
            validate_column_definitions(
                [
                    {"id": "a", "name": "One", "type": "text"},
                    {"id": "a", "name": "Two", "type": "text"},
                ]
            )

    def test_shape_errors_are_collected(self):
        with pytest.raises(SchemaDefinitionError) as exc_info:
            validate_column_definitions(
                [
                    {"id": "", "name": "", "type": "colour"},
                    {"id": "b", "name": "B", "type": "text", "role": "weight", "order": -1},
                ]
            )
        messages = exc_info.value.messages
        assert "Column 1: id is required" in messages
        assert "Column 1: Column name is required" in messages
        assert "Column 1: Unknown column type 'colour'" in messages
        assert "Column \"B\": Unknown column role 'weight'" in messages
        assert 'Column "B": order must be a non-negative integer' in messages

    def test_length_limits(self):
        limits = StringLimits(column_name=5, option_value=3)
        with pytest.raises(SchemaDefinitionError) as exc_info:
            validate_column_definitions(
                [
                    {"id": "a", "name": "Too long", "type": "text"},
                    {"id": "b", "name": "Size", "type": "select", "options": ["Small"]},
                ],
                limits,
            )
        assert exc_info.value.messages == [
            "Column 1: Column name must be at most 5 characters",
            'Column "Size": Option must be at most 3 characters',
        ]

    def test_accepts_column_definitions(self):
        column = ColumnDefinition(
            id="q", name="Qty", type=ColumnType.NUMBER, role=ColumnRole.QUANTITY
        )
        assert validate_column_definitions([column]) == (column,)

    def test_empty_list_is_valid(self):
        assert validate_column_definitions([]) == ()
