"""Field-type validation for rows sent to AppSheet.

Each field type maps to one primitive rule (numeric, boolean, array,
string, or a string with a format check). Validation is fail-fast: the
first violation in a row raises ``ValidationError`` with the row index,
field name, expected and actual type, and offending value in ``details``.
"""

import numbers
import re
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any
from urllib.parse import urlsplit

from .errors import ValidationError
from .schema import FieldType, TableDefinition

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[\d\s+\-()]+$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T")
URL_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")

NUMERIC_TYPES = {FieldType.NUMBER, FieldType.DECIMAL, FieldType.PRICE, FieldType.CHANGE_COUNTER}
ARRAY_TYPES = {FieldType.ENUM_LIST, FieldType.REF_LIST}
DATETIME_TYPES = {FieldType.DATETIME, FieldType.CHANGE_TIMESTAMP}
FREE_STRING_TYPES = {FieldType.TIME, FieldType.DURATION}
PLAIN_TEXT_TYPES = {
    FieldType.TEXT,
    FieldType.NAME,
    FieldType.ADDRESS,
    FieldType.COLOR,
    FieldType.ENUM,
    FieldType.REF,
    FieldType.IMAGE,
    FieldType.FILE,
    FieldType.DRAWING,
    FieldType.SIGNATURE,
    FieldType.CHANGE_LOCATION,
    FieldType.SHOW,
}


def type_name(value: Any) -> str:
    """Describe a value's type the way error messages report it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, date):
        return "date"
    return "object"


def is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def is_url(value: str) -> bool:
    """True if ``value`` is an absolute URL (``scheme:rest``)."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not URL_SCHEME_RE.match(parts.scheme):
        return False
    return bool(parts.netloc or parts.path)


def coerce_field_type(field_type: FieldType | str) -> FieldType | None:
    """Return the known ``FieldType`` for a tag, or None if unrecognised."""
    try:
        return FieldType(field_type)
    except ValueError:
        return None


def _fail(message: str, row_index: int, field_name: str, value: Any, **extra: Any) -> ValidationError:
    details = {"row_index": row_index, "field_name": field_name, "value": value}
    details.update(extra)
    return ValidationError(f"Row {row_index}: Field \"{field_name}\" {message}", details)


def _expect(ok: bool, expected: str, field_name: str, field_type: str, value: Any, row_index: int) -> None:
    if not ok:
        actual = type_name(value)
        raise _fail(
            f"must be {expected} ({field_type}), got {actual}",
            row_index,
            field_name,
            value,
            expected_type=field_type,
            actual_type=actual,
        )


def _check_format(ok: bool, description: str, field_name: str, value: Any, row_index: int) -> None:
    if not ok:
        raise _fail(f"must be {description}, got: {value}", row_index, field_name, value)


def validate_value(field_name: str, field_type: FieldType | str, value: Any, row_index: int) -> None:
    """Check ``value`` against the primitive rule for ``field_type``.

    Unrecognised types pass through unchecked.
    """
    kind = coerce_field_type(field_type)
    if kind is None:
        return
    tag = kind.value

    if kind in NUMERIC_TYPES:
        _expect(is_number(value), "a number", field_name, tag, value, row_index)

    elif kind is FieldType.PERCENT:
        _expect(is_number(value), "a number", field_name, tag, value, row_index)
        _check_format(0 <= value <= 1, "a percentage between 0.00 and 1.00", field_name, value, row_index)

    elif kind is FieldType.YES_NO:
        if not isinstance(value, bool) and value not in ("Yes", "No"):
            actual = type_name(value)
            raise _fail(
                f"must be a boolean or \"Yes\"/\"No\" string, got {actual}",
                row_index,
                field_name,
                value,
                expected_type="boolean",
                actual_type=actual,
            )

    elif kind in ARRAY_TYPES:
        _expect(isinstance(value, (list, tuple)), "an array", field_name, tag, value, row_index)

    elif kind is FieldType.DATE:
        _expect(isinstance(value, (str, date)), "a date string or date object", field_name, tag, value, row_index)
        if isinstance(value, str):
            _check_format(bool(DATE_RE.match(value)), "a valid date string (YYYY-MM-DD)", field_name, value, row_index)

    elif kind in DATETIME_TYPES:
        _expect(isinstance(value, (str, date)), "a datetime string or date object", field_name, tag, value, row_index)
        if isinstance(value, str):
            _check_format(
                bool(DATETIME_RE.match(value)), "a valid datetime string (ISO 8601)", field_name, value, row_index
            )

    elif kind is FieldType.EMAIL:
        _expect(isinstance(value, str), "a string", field_name, tag, value, row_index)
        _check_format(bool(EMAIL_RE.match(value)), "a valid email address", field_name, value, row_index)

    elif kind is FieldType.URL:
        _expect(isinstance(value, str), "a string", field_name, tag, value, row_index)
        _check_format(is_url(value), "a valid URL", field_name, value, row_index)

    elif kind is FieldType.PHONE:
        _expect(isinstance(value, str), "a string", field_name, tag, value, row_index)
        _check_format(bool(PHONE_RE.match(value)), "a valid phone number", field_name, value, row_index)

    elif kind in FREE_STRING_TYPES or kind in PLAIN_TEXT_TYPES:
        _expect(isinstance(value, str), "a string", field_name, tag, value, row_index)


def validate_enum(
    field_name: str,
    field_type: FieldType | str,
    allowed_values: list[str],
    value: Any,
    row_index: int,
) -> None:
    """Check enum membership; EnumList reports every invalid element at once."""
    allowed = ", ".join(allowed_values)
    if coerce_field_type(field_type) is FieldType.ENUM_LIST:
        if not isinstance(value, (list, tuple)):
            raise _fail("must be an array for EnumList type", row_index, field_name, value)
        invalid = [v for v in value if v not in allowed_values]
        if invalid:
            raise _fail(
                f"contains invalid values: {', '.join(str(v) for v in invalid)}. Allowed: {allowed}",
                row_index,
                field_name,
                value,
                allowed_values=list(allowed_values),
                invalid_values=invalid,
            )
    elif value not in allowed_values:
        raise _fail(
            f"must be one of: {allowed}. Got: {value}",
            row_index,
            field_name,
            value,
            allowed_values=list(allowed_values),
        )


def validate_required(field_name: str, table_name: str, value: Any, row_index: int) -> None:
    if value is None:
        raise _fail(f"is required in table \"{table_name}\"", row_index, field_name, value)


def validate_rows(
    definition: TableDefinition,
    rows: Iterable[Mapping[str, Any]],
    check_required: bool = True,
) -> None:
    """Validate rows against a table definition before a mutating call.

    With ``check_required=False`` (partial updates) missing and null fields
    are skipped; present values are still type- and enum-checked.
    """
    for i, row in enumerate(rows):
        for field_name, field_def in definition.fields.items():
            value = row.get(field_name)

            if check_required and field_def.required:
                validate_required(field_name, definition.table_name, value, i)

            if value is None:
                continue

            validate_value(field_name, field_def.type, value, i)

            if field_def.allowed_values:
                validate_enum(field_name, field_def.type, field_def.allowed_values, value, i)
