"""Schema-bound table client."""

from .protocol import AppSheetClientProtocol
from .responses import Row
from .schema import TableDefinition
from .validators import validate_rows


class DynamicTable:
    """Runs operations against one table, validating rows against its definition.

    Rows are validated before any call that mutates data, so a bad row in a
    batch means nothing is sent.
    """

    def __init__(self, client: AppSheetClientProtocol, definition: TableDefinition):
        self.client = client
        self.definition = definition

    @property
    def table_name(self) -> str:
        return self.definition.table_name

    @property
    def key_field(self) -> str:
        return self.definition.key_field

    def find_all(self) -> list[Row]:
        return self.client.find(self.table_name).rows

    def find_one(self, selector: str) -> Row | None:
        rows = self.client.find(self.table_name, selector).rows
        return rows[0] if rows else None

    def find(self, selector: str | None = None) -> list[Row]:
        return self.client.find(self.table_name, selector).rows

    def add(self, rows: list[Row]) -> list[Row]:
        """Insert rows; required fields must be present."""
        validate_rows(self.definition, rows)
        return self.client.add(self.table_name, rows).rows

    def update(self, rows: list[Row]) -> list[Row]:
        """Apply partial updates; only the fields present are checked."""
        validate_rows(self.definition, rows, check_required=False)
        return self.client.update(self.table_name, rows).rows

    def delete(self, keys: list[Row]) -> bool:
        self.client.delete(self.table_name, keys)
        return True
