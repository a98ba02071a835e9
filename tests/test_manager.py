"""Tests for the connection registry and the schema manager."""

import logging

import pytest

from appsheet.config import ClientConfig
from appsheet.connections import ConnectionManager
from appsheet.errors import AuthenticationError, ConfigurationError, ValidationError
from appsheet.manager import SchemaManager
from appsheet.mock import MockAppSheetClient
from appsheet.responses import RowsResponse
from appsheet.table import DynamicTable


class FailingClient(MockAppSheetClient):
    """A client whose every Find is rejected by the server."""

    def find(self, table_name, selector=None, properties=None):
        raise AuthenticationError("Invalid access key")


class RecordingClient(MockAppSheetClient):
    def __init__(self, config):
        super().__init__(config)
        self.finds = []

    def find(self, table_name, selector=None, properties=None):
        self.finds.append((table_name, selector))
        return RowsResponse(rows=[])


CONFIG = {"appId": "app", "applicationAccessKey": "key"}


class TestConnectionManager:
    def test_register_and_get(self):
        """A registered client is returned by name."""
        manager = ConnectionManager(MockAppSheetClient)
        client = manager.register("main", CONFIG)
        assert manager.get("main") is client
        assert manager.has("main")
        assert client.get_config().app_id == "app"

    def test_register_accepts_config_model(self):
        """A ClientConfig can be registered directly."""
        manager = ConnectionManager(MockAppSheetClient)
        client = manager.register("main", ClientConfig(app_id="a", application_access_key="k"))
        assert client.get_config().application_access_key == "k"

    def test_duplicate_name_fails(self):
        """Registering a name twice is a configuration error."""
        manager = ConnectionManager(MockAppSheetClient)
        manager.register("main", CONFIG)
        with pytest.raises(ConfigurationError, match='"main" is already registered'):
            manager.register("main", CONFIG)

    def test_unknown_name_lists_available(self):
        """Lookup failures list the registered names."""
        manager = ConnectionManager(MockAppSheetClient)
        manager.register("a", CONFIG)
        manager.register("b", CONFIG)
        with pytest.raises(ConfigurationError, match="Available connections: a, b"):
            manager.get("c")

    def test_unknown_name_when_empty(self):
        """An empty registry reports "none"."""
        with pytest.raises(ConfigurationError, match="Available connections: none"):
            ConnectionManager(MockAppSheetClient).get("c")

    def test_remove_list_clear(self):
        """Connections can be listed, removed and cleared."""
        manager = ConnectionManager(MockAppSheetClient)
        manager.register("a", CONFIG)
        manager.register("b", CONFIG)
        assert manager.list() == ["a", "b"]
        assert manager.remove("a") is True
        assert manager.remove("a") is False
        assert manager.list() == ["b"]
        manager.clear()
        assert manager.list() == []

    def test_ping_issues_minimal_find(self):
        """Ping runs a Find on _system with an always-false selector."""
        manager = ConnectionManager(RecordingClient)
        client = manager.register("main", CONFIG)
        assert manager.ping("main") is True
        assert client.finds == [("_system", "1=0")]

    def test_ping_failure(self, caplog):
        """A failed ping returns False and logs a warning."""
        manager = ConnectionManager(FailingClient)
        manager.register("main", CONFIG)
        with caplog.at_level(logging.WARNING, logger="appsheet.connections"):
            assert manager.ping("main") is False
        assert "Invalid access key" in caplog.text

    def test_ping_unknown_connection(self):
        """Pinging an unknown connection returns False."""
        assert ConnectionManager(MockAppSheetClient).ping("nope") is False

    def test_health_check(self):
        """Every connection is pinged and reported by name."""

        def factory(config):
            return FailingClient(config) if config.app_id == "bad" else MockAppSheetClient(config)

        manager = ConnectionManager(factory)
        manager.register("good", CONFIG)
        manager.register("bad", {"appId": "bad", "applicationAccessKey": "key"})
        assert manager.health_check() == {"good": True, "bad": False}

    def test_health_check_empty(self):
        """No connections gives an empty report."""
        assert ConnectionManager().health_check() == {}


@pytest.fixture
def manager(schema_document, env):
    return SchemaManager(schema_document, client_factory=MockAppSheetClient, env=env)


class TestSchemaManager:
    def test_connections_and_tables(self, manager):
        """Connections and tables are listed in schema order."""
        assert manager.get_connections() == ["default", "hr"]
        assert manager.get_tables("default") == ["users", "worklogs"]
        assert manager.get_tables("hr") == []

    def test_table_client(self, manager):
        """Table lookups return DynamicTables bound to the connection."""
        users = manager.table("default", "users")
        assert isinstance(users, DynamicTable)
        assert users.table_name == "extract_user"
        users.add([{"id": "1", "email": "a@example.com", "status": "Active"}])
        assert manager.table("default", "users").find_all()[0]["email"] == "a@example.com"

    def test_mock_uses_schema_key_fields(self, manager):
        """Rows of a table keyed by worklog_id round-trip through the mock by that key."""
        worklogs = manager.table("default", "worklogs")
        created = worklogs.add([{"worklog_id": "w1", "date": "2024-01-01"}])[0]
        assert "id" not in created

        updated = worklogs.update([{"worklog_id": "w1", "hours": 2.5}])[0]
        assert updated["hours"] == 2.5
        assert updated["date"] == "2024-01-01"

        assert worklogs.delete([{"worklog_id": "w1"}]) is True
        assert worklogs.find_all() == []

    def test_key_fields_reach_client_config(self, manager):
        """Each connection's config maps AppSheet table names to key fields."""
        config = manager.connection_manager.get("default").get_config()
        assert config.key_fields == {"extract_user": "id", "extract_worklog": "worklog_id"}

    def test_tables_share_connection_client(self, manager):
        """Tables of one connection share its client."""
        users = manager.table("default", "users")
        worklogs = manager.table("default", "worklogs")
        assert users.client is worklogs.client
        assert users.client is manager.connection_manager.get("default")

    def test_connection_options_applied(self, manager):
        """baseUrl and timeout from the schema reach the client config."""
        config = manager.connection_manager.get("hr").get_config()
        assert config.base_url == "https://example.test/api/v2"
        assert config.timeout == 5
        default = manager.connection_manager.get("default").get_config()
        assert default.app_id == "app-123"
        assert default.timeout == 30.0

    def test_unknown_table(self, manager):
        """An unknown table lists the connection's tables."""
        with pytest.raises(ConfigurationError) as excinfo:
            manager.table("default", "projects")
        assert str(excinfo.value) == (
            'Table "projects" not found in connection "default". Available tables: users, worklogs'
        )

    def test_unknown_connection(self, manager):
        """An unknown connection is a configuration error."""
        with pytest.raises(ConfigurationError, match='Connection "crm" not found'):
            manager.table("crm", "users")
        with pytest.raises(ConfigurationError):
            manager.get_tables("crm")

    def test_get_schema(self, manager):
        """The parsed schema is exposed."""
        assert manager.get_schema().connections["default"].tables["users"].key_field == "id"

    def test_invalid_schema_rejected(self, env):
        """An incomplete schema fails construction."""
        with pytest.raises(ValidationError, match="Invalid schema"):
            SchemaManager({"connections": {"x": {"appId": "a"}}}, client_factory=MockAppSheetClient, env=env)

    def test_reload_rebuilds(self, manager, env):
        """Reload replaces every connection and table."""
        old_users = manager.table("default", "users")
        manager.reload(
            {
                "connections": {
                    "crm": {
                        "appId": "${APP_ID}",
                        "applicationAccessKey": "${ACCESS_KEY}",
                        "tables": {"leads": {"tableName": "Leads", "keyField": "lead_id", "fields": {}}},
                    }
                }
            }
        )
        assert manager.get_connections() == ["crm"]
        assert manager.table("crm", "leads").key_field == "lead_id"
        assert manager.connection_manager.list() == ["crm"]
        assert old_users.table_name == "extract_user"

    def test_invalid_reload_keeps_current_state(self, manager):
        """A failed reload leaves the current schema in place."""
        with pytest.raises(ValidationError):
            manager.reload({"connections": {"broken": {}}})
        assert manager.get_connections() == ["default", "hr"]
        assert manager.table("default", "users")
