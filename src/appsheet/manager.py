"""Builds connections and table clients from a schema."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from .client import AppSheetClient
from .config import ClientConfig
from .connections import ClientFactory, ConnectionManager
from .errors import ConfigurationError
from .loader import parse_schema
from .schema import SchemaConfig
from .table import DynamicTable

logger = logging.getLogger(__name__)


class SchemaManager:
    """Entry point for schema-driven access.

    Example:
        manager = SchemaManager(load_schema("config/appsheet-schema.yaml"))
        users = manager.table("default", "users").find_all()
    """

    def __init__(
        self,
        schema: SchemaConfig | dict,
        client_factory: ClientFactory = AppSheetClient,
        env: Mapping[str, str] | None = None,
    ):
        self._env = env
        self.connection_manager = ConnectionManager(client_factory)
        self._tables: dict[str, dict[str, DynamicTable]] = {}
        self._schema = parse_schema(schema, env)
        self._initialize()

    def _initialize(self) -> None:
        for conn_name, conn in self._schema.connections.items():
            options = {"base_url": conn.base_url, "timeout": conn.timeout}
            config = ClientConfig(
                app_id=conn.app_id,
                application_access_key=conn.application_access_key,
                run_as_user_email=conn.run_as_user_email,
                key_fields={t.table_name: t.key_field for t in conn.tables.values()},
                **{key: value for key, value in options.items() if value},
            )
            client = self.connection_manager.register(conn_name, config)

            self._tables[conn_name] = {
                name: DynamicTable(client, definition) for name, definition in conn.tables.items()
            }
        logger.info(
            "initialised %d connection(s): %s",
            len(self._tables),
            ", ".join(self._tables) or "none",
        )

    def table(self, connection_name: str, table_name: str) -> DynamicTable:
        tables = self._connection_tables(connection_name)
        try:
            return tables[table_name]
        except KeyError:
            raise ConfigurationError(
                f'Table "{table_name}" not found in connection "{connection_name}". '
                f"Available tables: {', '.join(tables)}"
            ) from None

    def get_connections(self) -> list[str]:
        return list(self._tables)

    def get_tables(self, connection_name: str) -> list[str]:
        return list(self._connection_tables(connection_name))

    def get_schema(self) -> SchemaConfig:
        return self._schema

    def reload(self, schema: SchemaConfig | dict) -> None:
        """Replace the schema and rebuild every connection and table client."""
        new_schema = parse_schema(schema, self._env)
        self._tables.clear()
        self.connection_manager.clear()
        self._schema = new_schema
        self._initialize()

    def _connection_tables(self, connection_name: str) -> dict[str, DynamicTable]:
        try:
            return self._tables[connection_name]
        except KeyError:
            raise ConfigurationError(f'Connection "{connection_name}" not found') from None
