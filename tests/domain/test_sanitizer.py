"""Import sanitizer tests: per-kind coercion and warnings."""

from datetime import date, datetime, timezone

import pytest

from inventory_kernel.domain.columns import ColumnDefinition, ColumnType
from inventory_kernel.domain.sanitizer import (
    WarningType,
    parse_currency_format,
    sanitize_cell,
    sanitize_currency,
    sanitize_date,
    sanitize_number,
    sanitize_row,
    sanitize_string,
)


class TestText:

    def test_trims_without_warning(self):
        result = sanitize_cell("  Hammer  ", ColumnType.TEXT)
        assert result.value == "Hammer"
        assert not result.warned

    def test_collapsing_internal_whitespace_warns(self):
        result = sanitize_cell("Claw   Hammer", ColumnType.TEXT)
        assert result.value == "Claw Hammer"
        assert result.warned
        assert result.warning_type == WarningType.WHITESPACE

    def test_blank_becomes_none(self):
        assert sanitize_cell("   ", ColumnType.TEXT).value is None
        assert sanitize_cell(None, ColumnType.TEXT).value is None

    def test_non_strings_are_stringified(self):
        assert sanitize_cell(12.0, ColumnType.TEXT).value == "12"
        assert sanitize_cell(True, ColumnType.TEXT).value == "true"

    def test_sanitize_string(self):
        assert sanitize_string("\ta \n b ") == "a b"


class TestNumber:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (42, 42),
            (4.0, 4),
            ("17", 17),
            ("-3.5", -3.5),
            (".5", 0.5),
            ("1,234", 1234),
            ("1,234.56", 1234.56),
            ("1e3", 1000),
        ],
    )
    def test_clean_values_pass_silently(self, raw, expected):
        result = sanitize_number(raw)
        assert result.value == expected
        assert not result.warned

    def test_number_extracted_from_text_warns(self):
        result = sanitize_number("about 12 units")
        assert result.value == 12
        assert result.warned
        assert result.warning_type == WarningType.NUMBER_EXTRACTION
        assert result.warning_detail == 'Extracted 12 from "about 12 units"'

    def test_no_number_gives_none_with_warning(self):
        result = sanitize_number("plenty")
        assert result.value is None
        assert result.warned
        assert result.warning_detail == 'No number found in "plenty"'

    def test_blank_is_none_without_warning(self):
        assert sanitize_number("  ") == sanitize_number(None)
        assert sanitize_number("").value is None
        assert not sanitize_number("").warned

    def test_non_finite_number_warns(self):
        result = sanitize_number(float("inf"))
        assert result.value is None
        assert result.warned


class TestCurrency:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("$1,234.56", 1234.56),
            ("€12,50", 12.5),
            ("1,234.56 €", 1234.56),
            ("($45.00)", -45),
            ("-$3.25", -3.25),
        ],
    )
    def test_formatted_amounts(self, raw, expected):
        result = sanitize_currency(raw)
        assert result.value == pytest.approx(expected)
        assert not result.warned

    def test_extraction_warning_type(self):
        result = sanitize_currency("price: $5.99 each")
        assert result.value == pytest.approx(5.99)
        assert result.warning_type == WarningType.CURRENCY_PARSING

    def test_parse_currency_format(self):
        assert parse_currency_format("1,234.56") == pytest.approx(1234.56)
        assert parse_currency_format("1.234,56") == pytest.approx(1234.56)
        assert parse_currency_format("12,5") == pytest.approx(12.5)
        assert parse_currency_format("abc") is None


class TestDate:

    def test_iso_date_normalized(self):
        assert sanitize_date("2024-01-15").value == "2024-01-15T00:00:00.000Z"

    def test_us_date(self):
        assert sanitize_date("01/15/2024").value == "2024-01-15T00:00:00.000Z"

    def test_date_objects(self):
        assert sanitize_date(date(2024, 3, 1)).value == "2024-03-01T00:00:00.000Z"
        stamp = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        assert sanitize_date(stamp).value == "2024-03-01T09:30:00.000Z"

    def test_unparseable_date_warns(self):
        result = sanitize_date("someday")
        assert result.value is None
        assert result.warning_type == WarningType.DATE_PARSING

    @pytest.mark.parametrize("text", ["2024-01-15 not a date", "2024-01-15T99:99:99", "01/15/2024abc"])
    def test_partial_date_is_not_truncated(self, text):
        result = sanitize_cell(text, ColumnType.DATE)
        assert result.value is None
        assert result.warned
        assert result.warning_detail == f'Could not parse "{text}" as a date'


class TestSelect:

    def test_trims_and_never_warns(self):
        result = sanitize_cell("  Tools ", ColumnType.SELECT)
        assert result.value == "Tools"
        assert not result.warned

    def test_unknown_option_passes_through(self):
        assert sanitize_cell("Garden", ColumnType.SELECT).value == "Garden"


class TestSanitizeRow:

    def test_row_keeps_only_column_keys_and_attributes_warnings(self):
        columns = (
            ColumnDefinition(id="n", name="Name", type=ColumnType.TEXT),
            ColumnDefinition(id="q", name="Qty", type=ColumnType.NUMBER),
            ColumnDefinition(id="d", name="Date", type=ColumnType.DATE),
        )
        row = {"n": "Saw", "q": "approx 3", "d": "", "extra": "dropped"}

        result = sanitize_row(row, columns)

        assert result.data == {"n": "Saw", "q": 3, "d": None}
        assert result.warning_count == 1
        warning = result.warnings[0]
        assert warning.column_id == "q"
        assert warning.column_name == "Qty"
        assert warning.type == WarningType.NUMBER_EXTRACTION
