"""
Batch Import Sanitizer -- best-effort per-cell coercion before validation.

Responsibility:
    Turns loosely typed spreadsheet/CSV cells into values the Dynamic
    Validator can check, flagging every cell whose value had to be guessed.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Used by
    inventory_ingestion's ImportService ahead of validate_item_data().

Behaviour by column kind:
    text      Collapse internal whitespace, trim.  Warn only when internal
              whitespace was collapsed.  Blank becomes None.
    number    Clean numerals and recognised currency/thousands formats pass
              silently.  Otherwise the first number found is extracted with
              a warning; nothing extractable gives None with a warning.
    currency  As number, warning type ``currency_parsing``.
    date      Parsed to a normalized ISO instant, or None with a warning.
    select    Trimmed string or None, never a warning.  Option membership
              is the validator's job.

A None produced here still meets the validator's ``required`` check, so a
required cell that could not be read fails its row only.
"""

import math
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from inventory_kernel.domain.columns import ColumnDefinition, ColumnType
from inventory_kernel.domain.costing import normalize_number
from inventory_kernel.domain.dates import format_instant, parse_calendar_date


class WarningType(str, Enum):
    WHITESPACE = "whitespace"
    NUMBER_EXTRACTION = "number_extraction"
    CURRENCY_PARSING = "currency_parsing"
    DATE_PARSING = "date_parsing"
    OTHER = "other"


@dataclass(frozen=True)
class SanitizeResult:
    """Sanitized cell value plus whether it had to be guessed."""

    value: Any
    warned: bool = False
    warning_type: WarningType | None = None
    warning_detail: str | None = None


@dataclass(frozen=True)
class CellWarning:
    column_id: str
    column_name: str
    type: WarningType
    message: str


@dataclass(frozen=True)
class SanitizedRow:
    data: dict[str, Any]
    warnings: tuple[CellWarning, ...] = field(default_factory=tuple)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

_WHITESPACE = re.compile(r"\s+")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(normalize_number(value))
    return str(value)


def sanitize_string(value: Any) -> str:
    """Text form of value with whitespace runs collapsed to one space and trimmed."""
    return _WHITESPACE.sub(" ", _stringify(value)).strip()


def _sanitize_text(value: Any) -> SanitizeResult:
    original = _stringify(value)
    cleaned = sanitize_string(value)
    collapsed = original.strip() != cleaned and original != cleaned
    if collapsed:
        return SanitizeResult(
            value=cleaned or None,
            warned=True,
            warning_type=WarningType.WHITESPACE,
            warning_detail="Internal whitespace was normalized",
        )
    return SanitizeResult(value=cleaned or None)


def _sanitize_select(value: Any) -> SanitizeResult:
    cleaned = sanitize_string(value)
    return SanitizeResult(value=cleaned or None)


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

_SIMPLE_NUMBER = re.compile(r"^[-+]?\d*\.?\d+$")
_CURRENCY_FORMAT = re.compile(
    r"^\s*(\()?\s*-?\s*[$€£¥]\s*-?\s*\d{1,3}(?:,\d{3})+(?:[.,]\d+)?\s*[$€£¥]?\s*(\))?\s*$"
    r"|^\s*(\()?\s*-?\s*[$€£¥]\s*-?\s*\d+[.,]\d+\s*[$€£¥]?\s*(\))?\s*$"
    r"|^\s*(\()?\s*-?\s*\d{1,3}(?:,\d{3})+(?:[.,]\d+)?\s*[$€£¥]?\s*(\))?\s*$"
)
_STRIP_CURRENCY = re.compile(r"[$€£¥()\s-]")
_SCIENTIFIC = re.compile(r"[-+]?\d*\.?\d+[eE][-+]?\d+")
_EMBEDDED_CURRENCY = re.compile(r"[$€£¥]?\s*-?\s*[\d,]+(?:[.,]\d+)?")
_EMBEDDED_NEGATIVE = re.compile(r"-\s*\d+(?:\.\d+)?")
_FIRST_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_HAS_SYMBOL = re.compile(r"[$€£¥]")


def _parse_float(text: str) -> float | None:
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_currency_format(text: str) -> float | None:
    """
    Parse US (1,234.56) or European (1.234,56) formatted amounts.

    Parentheses (accounting) or a minus sign make the result negative.
    """
    negative = ("(" in text and ")" in text) or "-" in text
    cleaned = _STRIP_CURRENCY.sub("", text)

    last_comma = cleaned.rfind(",")
    last_period = cleaned.rfind(".")
    if last_comma > -1 and last_period > -1:
        if last_comma > last_period:
            cleaned = cleaned.replace(".", "").replace(",", ".", 1)
        else:
            cleaned = cleaned.replace(",", "")
    elif last_comma > -1:
        after = cleaned[last_comma + 1:]
        if len(after) == 3:
            cleaned = cleaned.replace(",", "")
        else:
            cleaned = cleaned.replace(",", ".", 1)

    match = re.match(r"[-+]?\d*\.?\d+", cleaned)
    if match is None:
        return None
    number = _parse_float(match.group(0))
    if number is None:
        return None
    return -abs(number) if negative else number


def _extract_number(text: str) -> float | None:
    match = _SCIENTIFIC.search(text)
    if match:
        number = _parse_float(match.group(0))
        if number is not None:
            return number

    match = _EMBEDDED_CURRENCY.search(text)
    if match and ("," in match.group(0) or _HAS_SYMBOL.search(match.group(0))):
        number = parse_currency_format(match.group(0))
        if number is not None:
            return number

    match = _EMBEDDED_NEGATIVE.search(text)
    if match:
        number = _parse_float(_WHITESPACE.sub("", match.group(0)))
        if number is not None:
            return number

    match = _FIRST_NUMBER.search(text)
    if match:
        return _parse_float(match.group(0))
    return None


def sanitize_number(value: Any, warning_type: WarningType = WarningType.NUMBER_EXTRACTION) -> SanitizeResult:
    """Coerce a cell to a finite number, warning when it had to be guessed."""
    if value is None:
        return SanitizeResult(value=None)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return SanitizeResult(
                value=None,
                warned=True,
                warning_type=warning_type,
                warning_detail="Value is not a finite number",
            )
        return SanitizeResult(value=normalize_number(value))

    text = str(value).strip()
    if not text:
        return SanitizeResult(value=None)

    if _SIMPLE_NUMBER.match(text):
        number = _parse_float(text)
        if number is not None:
            return SanitizeResult(value=normalize_number(number))

    if _CURRENCY_FORMAT.match(text):
        number = parse_currency_format(text)
        if number is not None:
            return SanitizeResult(value=normalize_number(number))

    # Whole-string scientific notation is clean, not extracted.
    scientific = _SCIENTIFIC.fullmatch(text)
    if scientific:
        number = _parse_float(text)
        if number is not None:
            return SanitizeResult(value=normalize_number(number))

    extracted = _extract_number(text)
    if extracted is not None:
        return SanitizeResult(
            value=normalize_number(extracted),
            warned=True,
            warning_type=warning_type,
            warning_detail=f'Extracted {normalize_number(extracted)} from "{text}"',
        )

    return SanitizeResult(
        value=None,
        warned=True,
        warning_type=warning_type,
        warning_detail=f'No number found in "{text}"',
    )


def sanitize_currency(value: Any) -> SanitizeResult:
    return sanitize_number(value, WarningType.CURRENCY_PARSING)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def sanitize_date(value: Any) -> SanitizeResult:
    """Normalize to an ISO instant string, or None with a warning."""
    if value is None:
        return SanitizeResult(value=None)
    if isinstance(value, (datetime, date)):
        return SanitizeResult(value=format_instant(parse_calendar_date(value)))

    text = str(value).strip()
    if not text:
        return SanitizeResult(value=None)

    parsed = parse_calendar_date(text)
    if parsed is None:
        return SanitizeResult(
            value=None,
            warned=True,
            warning_type=WarningType.DATE_PARSING,
            warning_detail=f'Could not parse "{text}" as a date',
        )
    return SanitizeResult(value=format_instant(parsed))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

_SANITIZERS: dict[ColumnType, Callable[[Any], SanitizeResult]] = {
    ColumnType.TEXT: _sanitize_text,
    ColumnType.NUMBER: sanitize_number,
    ColumnType.CURRENCY: sanitize_currency,
    ColumnType.DATE: sanitize_date,
    ColumnType.SELECT: _sanitize_select,
}


def sanitize_cell(value: Any, column_type: ColumnType) -> SanitizeResult:
    """Sanitize one cell according to its column's kind."""
    return _SANITIZERS[column_type](value)


def sanitize_row(
    row: Mapping[str, Any],
    columns: Iterable[ColumnDefinition],
) -> SanitizedRow:
    """
    Sanitize every column of one import row.

    Keys that match no column are dropped.  Each warned cell is attributed
    to its column so the caller can attach the row index.
    """
    data: dict[str, Any] = {}
    warnings: list[CellWarning] = []
    for column in columns:
        result = sanitize_cell(row.get(column.id), column.type)
        data[column.id] = result.value
        if result.warned:
            warnings.append(
                CellWarning(
                    column_id=column.id,
                    column_name=column.name,
                    type=result.warning_type or WarningType.OTHER,
                    message=result.warning_detail
                    or f'Value was modified during sanitization for column "{column.name}"',
                )
            )
    return SanitizedRow(data=data, warnings=tuple(warnings))
