"""Reverse-engineer table definitions from live rows.

The inspector samples rows from a table and runs each field's non-null
values through an ordered list of type rules; the first rule whose
predicate holds for every sampled value decides the field type. Text
fields then go through an enum heuristic based on how often values repeat.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from .errors import AppSheetError, InspectionError
from .protocol import AppSheetClientProtocol
from .responses import Row
from .schema import ConnectionDefinition, FieldDefinition, FieldType, TableDefinition, TableInspectionResult
from .validators import DATE_RE, DATETIME_RE, EMAIL_RE, PHONE_RE, is_number

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 100
KEY_CANDIDATES = ["id", "key", "ID", "Key", "_RowNumber", "Id"]
EMPTY_TABLE_WARNING = "Table is empty, could not infer field types"
APP_ID_PLACEHOLDER = "${APPSHEET_APP_ID}"
ACCESS_KEY_PLACEHOLDER = "${APPSHEET_ACCESS_KEY}"

ENUM_MAX_DISTINCT = 10
ENUM_MAX_RATIO = 0.2
MIN_PHONE_DIGITS = 7

URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)
TABLE_LIST_RE = re.compile(r"available tables?:?\s*([^\n]+)", re.IGNORECASE)


def _is_str_matching(pattern: re.Pattern) -> Callable[[Any], bool]:
    return lambda v: isinstance(v, str) and bool(pattern.match(v))


def _is_phone(value: Any) -> bool:
    return (
        isinstance(value, str)
        and bool(PHONE_RE.match(value))
        and sum(c.isdigit() for c in value) >= MIN_PHONE_DIGITS
    )


def _all_yes_no(values: list[Any]) -> bool:
    return all(isinstance(v, bool) for v in values) or all(v in ("Yes", "No") for v in values)


def _all_percent(values: list[Any]) -> bool:
    return (
        all(is_number(v) and 0 <= v <= 1 for v in values)
        and any(float(v) != int(v) for v in values)
    )


def _each(predicate: Callable[[Any], bool]) -> Callable[[list[Any]], bool]:
    return lambda values: all(predicate(v) for v in values)


# Evaluated in order against all non-null sample values of a field.
TYPE_RULES: list[tuple[Callable[[list[Any]], bool], FieldType]] = [
    (_all_yes_no, FieldType.YES_NO),
    (_all_percent, FieldType.PERCENT),
    (_each(is_number), FieldType.NUMBER),
    (_each(lambda v: isinstance(v, (list, tuple))), FieldType.ENUM_LIST),
    (_each(_is_str_matching(DATETIME_RE)), FieldType.DATETIME),
    (_each(_is_str_matching(DATE_RE)), FieldType.DATE),
    (_each(_is_str_matching(EMAIL_RE)), FieldType.EMAIL),
    (_each(_is_str_matching(URL_RE)), FieldType.URL),
    (_each(_is_phone), FieldType.PHONE),
]


def infer_field(values: list[Any]) -> FieldDefinition:
    """Infer a field definition from sampled values (nulls included)."""
    present = [v for v in values if v is not None]
    if not present:
        return FieldDefinition(type=FieldType.TEXT)

    for predicate, field_type in TYPE_RULES:
        if predicate(present):
            if field_type is FieldType.ENUM_LIST:
                options = sorted({str(item) for v in present for item in v})
                return FieldDefinition(type=field_type, allowed_values=options)
            return FieldDefinition(type=field_type)

    if looks_like_enum(present):
        return FieldDefinition(type=FieldType.ENUM, allowed_values=sorted({str(v) for v in present}))
    return FieldDefinition(type=FieldType.TEXT)


def looks_like_enum(values: list[Any]) -> bool:
    """Repeated, low-cardinality strings are treated as an enum."""
    if not all(isinstance(v, str) for v in values):
        return False
    distinct = len(set(values))
    if distinct < 2 or distinct >= len(values):
        return False
    return distinct <= ENUM_MAX_DISTINCT or distinct / len(values) < ENUM_MAX_RATIO


def guess_key_field(row: Row) -> str:
    for key in KEY_CANDIDATES:
        if key in row:
            return key
    return next(iter(row), "id")


def to_schema_name(table_name: str) -> str:
    """``extract_user`` -> ``users``, ``work_log`` -> ``worklogs``."""
    name = table_name.removeprefix("extract_").replace("_", "").lower()
    return f"{name}s"


class SchemaInspector:
    """Discovers table structures through a client."""

    def __init__(self, client: AppSheetClientProtocol):
        self.client = client

    def inspect_table(self, table_name: str) -> TableInspectionResult:
        try:
            rows = self.client.find(table_name).rows
        except Exception as exc:
            raise InspectionError(
                f'Failed to inspect table "{table_name}": {exc}', {"table_name": table_name}
            ) from exc

        if not rows:
            return TableInspectionResult(
                table_name=table_name, key_field="id", fields={}, warning=EMPTY_TABLE_WARNING
            )

        sample = rows[:SAMPLE_SIZE]
        names: dict[str, None] = {}
        for row in sample:
            names.update(dict.fromkeys(row))

        fields = {name: infer_field([row.get(name) for row in sample]) for name in names}
        return TableInspectionResult(
            table_name=table_name,
            key_field=guess_key_field(sample[0]),
            fields=fields,
        )

    def generate_schema(self, table_names: list[str]) -> ConnectionDefinition:
        """Inspect tables and assemble a connection with credential placeholders."""
        tables: dict[str, TableDefinition] = {}
        for table_name in table_names:
            logger.info("inspecting table %s", table_name)
            inspection = self.inspect_table(table_name)
            tables[to_schema_name(table_name)] = inspection.to_table_definition()
            if inspection.warning:
                logger.warning("%s: %s", table_name, inspection.warning)

        return ConnectionDefinition(
            app_id=APP_ID_PLACEHOLDER,
            application_access_key=ACCESS_KEY_PLACEHOLDER,
            tables=tables,
        )

    def discover_tables(self) -> list[str]:
        """Best-effort table discovery; the API has no list-tables action."""
        try:
            rows = self.client.find("_table_info").rows
        except AppSheetError as exc:
            logger.debug("no _table_info table: %s", exc)
        else:
            names = [row.get("tableName") or row.get("name") for row in rows]
            names = [n for n in names if n]
            if names:
                return names

        try:
            self.client.find("_nonexistent_table_xyz_123")
        except AppSheetError as exc:
            match = TABLE_LIST_RE.search(str(exc))
            if match:
                return [t.strip() for t in re.split(r"[,;]", match.group(1)) if t.strip()]
        return []

    def prompt_for_tables(self, input_fn: Callable[[str], str] = input) -> list[str]:
        print("\nAutomatic table discovery is not available.")
        print("Please enter table names manually.\n")
        answer = input_fn("Enter table names (comma-separated): ")
        return [t.strip() for t in answer.split(",") if t.strip()]
