"""Tests for type inference and schema generation from live rows."""

import pytest

from appsheet.errors import InspectionError, NotFoundError
from appsheet.inspector import (
    EMPTY_TABLE_WARNING,
    SchemaInspector,
    guess_key_field,
    infer_field,
    looks_like_enum,
    to_schema_name,
)
from appsheet.mock import MockAppSheetClient
from appsheet.responses import RowsResponse
from appsheet.schema import FieldType


def seeded(**tables):
    client = MockAppSheetClient({"appId": "a", "applicationAccessKey": "k"})
    for name, rows in tables.items():
        client.seed_table(name, rows)
    return client


class TestTypeInference:
    @pytest.mark.parametrize(
        "values,expected",
        [
            (["john@example.com", "jane@example.com"], FieldType.EMAIL),
            (["https://example.com", "http://test.org/path"], FieldType.URL),
            (["+1 234 567 8900", "(555) 123-4567"], FieldType.PHONE),
            (["2025-11-20", "2024-01-01"], FieldType.DATE),
            (["2025-11-20T10:30:00Z", "2024-01-01T00:00:00.000Z"], FieldType.DATETIME),
            ([0.25, 0.5, 1], FieldType.PERCENT),
            ([42, 100, 7], FieldType.NUMBER),
            ([0, 1, 1], FieldType.NUMBER),
            ([1.5, 2.75], FieldType.NUMBER),
            ([True, False], FieldType.YES_NO),
            (["Yes", "No", "Yes"], FieldType.YES_NO),
            (["anything", "goes here"], FieldType.TEXT),
            ([None, None], FieldType.TEXT),
        ],
    )
    def test_infers(self, values, expected):
        """Each value pattern infers its field type."""
        assert infer_field(values).type == expected

    def test_nulls_are_ignored(self):
        """Null samples do not affect inference."""
        assert infer_field([None, "a@example.com", None]).type == FieldType.EMAIL

    def test_short_numbers_are_not_phones(self):
        """Phone needs at least seven digits."""
        assert infer_field(["12", "3"]).type != FieldType.PHONE

    def test_enum_list_collects_sorted_options(self):
        """EnumList options are the sorted union of elements."""
        field = infer_field([["b", "a"], ["c"], []])
        assert field.type == FieldType.ENUM_LIST
        assert field.allowed_values == ["a", "b", "c"]


class TestEnumHeuristic:
    def test_repeated_values_become_enum(self):
        """A few repeated strings become an Enum."""
        values = ["Active", "Inactive", "Pending", "Active", "Active", "Inactive", "Pending", "Active"]
        field = infer_field(values)
        assert field.type == FieldType.ENUM
        assert field.allowed_values == ["Active", "Inactive", "Pending"]

    def test_low_cardinality_over_many_rows(self):
        """Five distinct values over 100 rows is an Enum."""
        values = [f"state-{i % 5}" for i in range(100)]
        assert infer_field(values).type == FieldType.ENUM

    def test_high_cardinality_stays_text(self):
        """Fifty distinct values over 100 rows stays Text."""
        values = [f"name-{i % 50}" for i in range(100)]
        assert infer_field(values).type == FieldType.TEXT

    def test_all_distinct_is_not_enum(self):
        """Values that never repeat are not an Enum."""
        assert not looks_like_enum(["a", "b", "c"])

    def test_single_value_is_not_enum(self):
        """One distinct value is not an Enum."""
        assert infer_field(["only"]).type == FieldType.TEXT
        assert not looks_like_enum(["x", "x", "x"])


class TestNaming:
    @pytest.mark.parametrize(
        "row,expected",
        [
            ({"name": "x", "id": "1"}, "id"),
            ({"key": "k", "value": 1}, "key"),
            ({"_RowNumber": 3, "name": "x"}, "_RowNumber"),
            ({"solution_id": "s", "name": "x"}, "solution_id"),
        ],
    )
    def test_guess_key_field(self, row, expected):
        """Known key names win, else the first field."""
        assert guess_key_field(row) == expected

    @pytest.mark.parametrize(
        "table,expected",
        [("extract_user", "users"), ("work_log", "worklogs"), ("extract_worklog", "worklogs")],
    )
    def test_to_schema_name(self, table, expected):
        """Table names become pluralised schema names."""
        assert to_schema_name(table) == expected


class TestInspectTable:
    def test_inspects_rows(self):
        """Field types and key field are inferred from sampled rows."""
        client = seeded(
            extract_user=[
                {"id": "1", "email": "a@example.com", "age": 30, "active": True},
                {"id": "2", "email": "b@example.com", "age": 41, "active": False},
            ]
        )
        result = SchemaInspector(client).inspect_table("extract_user")
        assert result.table_name == "extract_user"
        assert result.key_field == "id"
        assert result.warning is None
        assert result.fields["email"].type == FieldType.EMAIL
        assert result.fields["age"].type == FieldType.NUMBER
        assert result.fields["active"].type == FieldType.YES_NO

    def test_fields_seen_only_in_later_rows(self):
        """Fields missing from the first row are still picked up."""
        client = seeded(t=[{"id": "1"}, {"id": "2", "note": "late"}])
        result = SchemaInspector(client).inspect_table("t")
        assert list(result.fields) == ["id", "note"]

    def test_empty_table(self):
        """An empty table gives the default key field and a warning."""
        result = SchemaInspector(seeded()).inspect_table("nothing")
        assert result.key_field == "id"
        assert result.fields == {}
        assert result.warning == EMPTY_TABLE_WARNING

    def test_failures_are_wrapped(self):
        """Client failures are wrapped in InspectionError naming the table."""
        class Broken(MockAppSheetClient):
            def find(self, table_name, selector=None, properties=None):
                raise NotFoundError("Table not found")

        inspector = SchemaInspector(Broken({"appId": "a", "applicationAccessKey": "k"}))
        with pytest.raises(InspectionError, match='Failed to inspect table "ghost": Table not found') as excinfo:
            inspector.inspect_table("ghost")
        assert isinstance(excinfo.value.__cause__, NotFoundError)
        assert excinfo.value.code == "INSPECTION_ERROR"


class TestGenerateSchema:
    def test_uses_placeholders_and_schema_names(self):
        """The generated connection uses credential placeholders."""
        client = seeded(
            extract_user=[{"id": "1", "email": "a@example.com"}],
            work_log=[{"worklog_id": "w1", "date": "2025-11-20", "hours": 7.5}],
        )
        connection = SchemaInspector(client).generate_schema(["extract_user", "work_log"])
        assert connection.app_id == "${APPSHEET_APP_ID}"
        assert connection.application_access_key == "${APPSHEET_ACCESS_KEY}"
        assert list(connection.tables) == ["users", "worklogs"]

        worklogs = connection.tables["worklogs"]
        assert worklogs.table_name == "work_log"
        assert worklogs.key_field == "worklog_id"
        assert worklogs.fields["date"].type == FieldType.DATE
        assert worklogs.fields["hours"].type == FieldType.NUMBER

    def test_document_form(self):
        """The generated schema dumps under schema-file key names."""
        client = seeded(task=[{"id": "1", "tags": ["a"]}])
        document = SchemaInspector(client).generate_schema(["task"]).to_document()
        assert document["tables"]["tasks"] == {
            "tableName": "task",
            "keyField": "id",
            "fields": {
                "id": {"type": "Text", "required": False},
                "tags": {"type": "EnumList", "required": False, "allowedValues": ["a"]},
            },
        }


class ScriptedClient(MockAppSheetClient):
    """Returns canned rows or raises per table name."""

    def __init__(self, outcomes):
        super().__init__({"appId": "a", "applicationAccessKey": "k"})
        self.outcomes = outcomes

    def find(self, table_name, selector=None, properties=None):
        outcome = self.outcomes.get(table_name, [])
        if isinstance(outcome, Exception):
            raise outcome
        return RowsResponse(rows=outcome)


class TestDiscovery:
    def test_from_table_info(self):
        """Table names are read from _table_info when it exists."""
        client = ScriptedClient({"_table_info": [{"tableName": "users"}, {"name": "tasks"}, {}]})
        assert SchemaInspector(client).discover_tables() == ["users", "tasks"]

    def test_from_error_message(self):
        """Table names are parsed from an unknown-table error."""
        client = ScriptedClient(
            {
                "_table_info": NotFoundError("no such table"),
                "_nonexistent_table_xyz_123": NotFoundError("Unknown table. Available tables: users, tasks; logs"),
            }
        )
        assert SchemaInspector(client).discover_tables() == ["users", "tasks", "logs"]

    def test_nothing_discovered(self):
        """Discovery gives an empty list when both strategies fail."""
        client = ScriptedClient(
            {
                "_table_info": NotFoundError("no such table"),
                "_nonexistent_table_xyz_123": NotFoundError("no such table"),
            }
        )
        assert SchemaInspector(client).discover_tables() == []

    def test_prompt_for_tables(self, capsys):
        """Prompted names are split on commas and stripped."""
        inspector = SchemaInspector(ScriptedClient({}))
        answers = iter([" users, tasks ,, "])
        assert inspector.prompt_for_tables(lambda prompt: next(answers)) == ["users", "tasks"]
        assert "enter table names manually" in capsys.readouterr().out
