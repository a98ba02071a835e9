"""In-memory stand-in for the AppSheet API.

``MockDatabase`` keeps one key-indexed map per table and hands out copies
so callers never alias stored rows. ``MockAppSheetClient`` implements the
client operation contract on top of it, adding key generation, audit
stamps and a minimal selector emulation.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from .config import FALLBACK_USER_EMAIL, ClientConfig, RequestProperties
from .errors import MockDatabaseError, NotFoundError, ValidationError
from .protocol import Properties
from .responses import DeleteResponse, Row, RowsResponse

logger = logging.getLogger(__name__)

DEFAULT_KEY_FIELD = "id"
UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

# Only these two selector forms are emulated; anything else returns all rows.
EQUALS_SELECTOR_RE = re.compile(r"\[(\w+)\]\s*=\s*[\"']([^\"']+)[\"']")
IN_SELECTOR_RE = re.compile(r"\[(\w+)\]\s+IN\s+\(([^)]+)\)", re.IGNORECASE)


@dataclass
class TableData:
    """Seed rows for one table, with an optional explicit key field."""

    rows: list[Row] = field(default_factory=list)
    key_field: str | None = None


class MockDataProvider(Protocol):
    """Project-specific source of seed data for ``MockAppSheetClient``."""

    def get_tables(self) -> Mapping[str, TableData]:
        ...


def detect_key_field(row: Mapping[str, Any] | None) -> str:
    """Guess a table's key field from one row.

    Order: first field ending in ``_id``, a field named ``id``, the first
    field holding a UUID string, else ``id``.
    """
    if not row:
        return DEFAULT_KEY_FIELD
    for name in row:
        if name.endswith("_id"):
            return name
    if "id" in row:
        return "id"
    for name, value in row.items():
        if isinstance(value, str) and UUID_RE.match(value):
            return name
    return DEFAULT_KEY_FIELD


def apply_selector(rows: list[Row], selector: str) -> list[Row]:
    """Filter rows by ``[field] = "value"`` or ``[field] IN ("a", "b")``.

    Unrecognised selector syntax applies no filter.
    """
    match = EQUALS_SELECTOR_RE.search(selector)
    if match:
        name, value = match.groups()
        return [row for row in rows if row.get(name) == value]

    match = IN_SELECTOR_RE.search(selector)
    if match:
        name, values_str = match.groups()
        values = [v.strip().replace('"', "").replace("'", "") for v in values_str.split(",")]
        return [row for row in rows if row.get(name) in values]

    logger.debug("selector not emulated, returning all rows: %s", selector)
    return rows


class MockDatabase:
    """Process-local table store: table name -> key value -> row."""

    def __init__(self):
        self._tables: dict[str, dict[Any, Row]] = {}
        self._key_fields: dict[str, str] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock(self, table_name: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(table_name, threading.Lock())

    def initialize_table(self, table_name: str, rows: list[Row], key_field: str | None = None) -> None:
        """Replace a table's contents with seed rows."""
        key = key_field or detect_key_field(rows[0] if rows else None)
        table: dict[Any, Row] = {}
        for row in rows:
            key_value = row.get(key)
            if not key_value:
                raise MockDatabaseError(f'Row is missing key field "{key}"')
            table[key_value] = dict(row)

        with self._lock(table_name):
            self._tables[table_name] = table
            self._key_fields[table_name] = key
        logger.debug("seeded table %s with %d rows (key field %s)", table_name, len(table), key)

    def key_field(self, table_name: str) -> str | None:
        """Key field recorded when the table was seeded, if any."""
        return self._key_fields.get(table_name)

    def insert(self, table_name: str, row: Row, key_field: str) -> Row:
        return self.insert_many(table_name, [row], key_field)[0]

    def insert_many(self, table_name: str, rows: list[Row], key_field: str) -> list[Row]:
        """Insert a batch atomically: one missing or duplicate key inserts nothing."""
        keys = []
        for row in rows:
            key_value = row.get(key_field)
            if not key_value:
                raise MockDatabaseError(f'Row is missing key field "{key_field}"')
            keys.append(key_value)

        with self._lock(table_name):
            table = self._tables.setdefault(table_name, {})
            seen = set()
            for key_value in keys:
                if key_value in table or key_value in seen:
                    raise MockDatabaseError(
                        f'Row with key "{key_value}" already exists in table "{table_name}"'
                    )
                seen.add(key_value)
            for key_value, row in zip(keys, rows):
                table[key_value] = dict(row)
            return [dict(row) for row in rows]

    def find_all(self, table_name: str) -> list[Row]:
        with self._lock(table_name):
            return [dict(row) for row in self._tables.get(table_name, {}).values()]

    def find_one(self, table_name: str, key: Any) -> Row | None:
        with self._lock(table_name):
            row = self._tables.get(table_name, {}).get(key)
            return dict(row) if row is not None else None

    def find_where(self, table_name: str, predicate: Callable[[Row], bool]) -> list[Row]:
        return [row for row in self.find_all(table_name) if predicate(row)]

    def update(self, table_name: str, key: Any, updates: Row) -> Row | None:
        """Shallow-merge ``updates`` into the stored row; None if absent."""
        with self._lock(table_name):
            table = self._tables.get(table_name)
            if table is None or key not in table:
                return None
            merged = {**table[key], **updates}
            table[key] = merged
            return dict(merged)

    def delete(self, table_name: str, key: Any) -> bool:
        with self._lock(table_name):
            table = self._tables.get(table_name)
            if table is None or key not in table:
                return False
            del table[key]
            return True

    def clear_table(self, table_name: str) -> None:
        with self._lock(table_name):
            self._tables.pop(table_name, None)
            self._key_fields.pop(table_name, None)

    def clear_all(self) -> None:
        with self._registry_lock:
            self._tables.clear()
            self._key_fields.clear()
        logger.debug("cleared mock database")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MockAppSheetClient:
    """Client with the same operations as ``AppSheetClient``, backed by memory.

    Example:
        client = MockAppSheetClient({"appId": "mock", "applicationAccessKey": "key"})
        client.seed_table("users", [{"id": "1", "name": "John"}])
        client.find_one("users", '[name] = "John"')
    """

    def __init__(
        self,
        config: ClientConfig | dict[str, Any],
        data_provider: MockDataProvider | None = None,
        key_fields: Mapping[str, str] | None = None,
    ):
        if isinstance(config, dict):
            config = ClientConfig.model_validate(config)
        self.config = config
        self.database = MockDatabase()
        self._key_fields = {**config.key_fields, **(key_fields or {})}

        if data_provider is not None:
            self.load_from_provider(data_provider)

    # -- seeding -----------------------------------------------------------

    def load_from_provider(self, provider: MockDataProvider) -> None:
        for table_name, table_data in provider.get_tables().items():
            self.seed_table(table_name, table_data.rows, table_data.key_field)

    def seed_table(self, table_name: str, rows: list[Row], key_field: str | None = None) -> None:
        self.database.initialize_table(table_name, rows, key_field or self._key_fields.get(table_name))

    def clear_database(self) -> None:
        self.database.clear_all()

    def clear_table(self, table_name: str) -> None:
        self.database.clear_table(table_name)

    def key_field(self, table_name: str) -> str:
        return self._key_fields.get(table_name) or self.database.key_field(table_name) or DEFAULT_KEY_FIELD

    # -- operations --------------------------------------------------------

    def add(self, table_name: str, rows: list[Row], properties: Properties = None) -> RowsResponse:
        key_field = self.key_field(table_name)
        user = self._acting_user(properties)
        new_rows = [
            {
                **row,
                key_field: row.get(key_field) or str(uuid.uuid4()),
                "created_at": _now(),
                "created_by": user,
            }
            for row in rows
        ]
        return RowsResponse(rows=self.database.insert_many(table_name, new_rows, key_field))

    def find(
        self, table_name: str, selector: str | None = None, properties: Properties = None
    ) -> RowsResponse:
        rows = self.database.find_all(table_name)
        if selector:
            rows = apply_selector(rows, selector)
        return RowsResponse(rows=rows)

    def update(self, table_name: str, rows: list[Row], properties: Properties = None) -> RowsResponse:
        key_field = self.key_field(table_name)
        user = self._acting_user(properties)
        updated = []
        for row in rows:
            key_value = self._require_key(row, key_field, table_name)
            merged = self.database.update(
                table_name, key_value, {**row, "modified_at": _now(), "modified_by": user}
            )
            if merged is None:
                raise NotFoundError(
                    f'Row with key "{key_value}" not found in table "{table_name}"',
                    {"key": key_value, "table_name": table_name},
                )
            updated.append(merged)
        return RowsResponse(rows=updated)

    def delete(self, table_name: str, rows: list[Row], properties: Properties = None) -> DeleteResponse:
        key_field = self.key_field(table_name)
        deleted = 0
        for row in rows:
            key_value = self._require_key(row, key_field, table_name)
            if self.database.delete(table_name, key_value):
                deleted += 1
        return DeleteResponse(success=True, deleted_count=deleted)

    def find_all(self, table_name: str) -> list[Row]:
        return self.find(table_name).rows

    def find_one(self, table_name: str, selector: str) -> Row | None:
        rows = self.find(table_name, selector).rows
        return rows[0] if rows else None

    def add_one(self, table_name: str, row: Row) -> Row | None:
        rows = self.add(table_name, [row]).rows
        return rows[0] if rows else None

    def update_one(self, table_name: str, row: Row) -> Row | None:
        rows = self.update(table_name, [row]).rows
        return rows[0] if rows else None

    def delete_one(self, table_name: str, row: Row) -> bool:
        self.delete(table_name, [row])
        return True

    def get_config(self) -> ClientConfig:
        return self.config.model_copy(deep=True)

    def _acting_user(self, properties: Properties) -> str:
        if isinstance(properties, dict):
            properties = RequestProperties.model_validate(properties)
        if properties is not None and properties.run_as_user_email:
            return properties.run_as_user_email
        return self.config.run_as_user_email or FALLBACK_USER_EMAIL

    @staticmethod
    def _require_key(row: Row, key_field: str, table_name: str) -> Any:
        key_value = row.get(key_field)
        if not key_value:
            raise ValidationError(
                f'Row is missing key field "{key_field}"',
                {"field": key_field, "table_name": table_name},
            )
        return key_value
