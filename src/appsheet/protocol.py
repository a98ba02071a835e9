"""The operation contract shared by the HTTP and mock clients."""

from typing import Any, Protocol

from .config import ClientConfig, RequestProperties
from .responses import DeleteResponse, Row, RowsResponse

Properties = RequestProperties | dict[str, Any] | None


class AppSheetClientProtocol(Protocol):
    """Anything that can run AppSheet table actions.

    ``AppSheetClient`` talks to the REST API, ``MockAppSheetClient`` to an
    in-memory store; code written against this protocol works with both.
    """

    def add(self, table_name: str, rows: list[Row], properties: Properties = None) -> RowsResponse:
        ...

    def find(
        self, table_name: str, selector: str | None = None, properties: Properties = None
    ) -> RowsResponse:
        ...

    def update(self, table_name: str, rows: list[Row], properties: Properties = None) -> RowsResponse:
        ...

    def delete(self, table_name: str, rows: list[Row], properties: Properties = None) -> DeleteResponse:
        ...

    def find_all(self, table_name: str) -> list[Row]:
        ...

    def find_one(self, table_name: str, selector: str) -> Row | None:
        ...

    def add_one(self, table_name: str, row: Row) -> Row | None:
        ...

    def update_one(self, table_name: str, row: Row) -> Row | None:
        ...

    def delete_one(self, table_name: str, row: Row) -> bool:
        ...

    def get_config(self) -> ClientConfig:
        ...
