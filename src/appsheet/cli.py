"""Command-line tool for AppSheet schema files.

Usage:
    appsheet init [-o PATH] [-f yaml|json]
    appsheet inspect --app-id ID --access-key KEY [--tables a,b] [--auto-discover]
    appsheet validate [-s PATH]
    appsheet add-table CONNECTION TABLE [-s PATH]

Exit status is 1 on any error, 0 otherwise.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml

from .client import AppSheetClient
from .config import ClientConfig
from .errors import AppSheetError, ConfigurationError
from .inspector import ACCESS_KEY_PLACEHOLDER, APP_ID_PLACEHOLDER, SchemaInspector, to_schema_name
from .loader import dump_schema, read_document, resolve_placeholders, validate_schema
from .schema import ConnectionDefinition, SchemaConfig

DEFAULT_SCHEMA_PATH = "config/appsheet-schema.yaml"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="appsheet", description="AppSheet schema management")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="Initialize a new schema file")
    init.add_argument("-o", "--output", default=DEFAULT_SCHEMA_PATH, help="Output file path")
    init.add_argument("-f", "--format", choices=["yaml", "json"], default="yaml", help="Output format")

    inspect = sub.add_parser("inspect", help="Inspect an AppSheet app and generate a schema")
    inspect.add_argument("--app-id", required=True, help="AppSheet App ID")
    inspect.add_argument("--access-key", required=True, help="AppSheet Access Key")
    inspect.add_argument("--tables", help="Comma-separated list of table names")
    inspect.add_argument("--run-as-user-email", help="Run API calls as this user (for security filters)")
    inspect.add_argument("--connection-name", default="default", help="Connection name")
    inspect.add_argument("-o", "--output", default=DEFAULT_SCHEMA_PATH, help="Output file path")
    inspect.add_argument("-f", "--format", choices=["yaml", "json"], default="yaml", help="Output format")
    inspect.add_argument(
        "--auto-discover", action="store_true", help="Attempt to discover all tables automatically"
    )

    validate = sub.add_parser("validate", help="Validate a schema file")
    validate.add_argument("-s", "--schema", default=DEFAULT_SCHEMA_PATH, help="Schema file path")

    add_table = sub.add_parser("add-table", help="Add an inspected table to an existing connection")
    add_table.add_argument("connection", help="Connection name in the schema file")
    add_table.add_argument("table_name", help="AppSheet table name")
    add_table.add_argument("-s", "--schema", default=DEFAULT_SCHEMA_PATH, help="Schema file path")

    return parser


def _write(path: str, content: str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


def cmd_init(args: argparse.Namespace) -> int:
    schema = SchemaConfig(
        connections={
            "default": ConnectionDefinition(
                app_id=APP_ID_PLACEHOLDER, application_access_key=ACCESS_KEY_PLACEHOLDER
            )
        }
    )
    _write(args.output, dump_schema(schema, args.format))
    print(f"Schema file created: {args.output}")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    client = AppSheetClient(
        ClientConfig(
            app_id=args.app_id,
            application_access_key=args.access_key,
            run_as_user_email=args.run_as_user_email,
        )
    )
    inspector = SchemaInspector(client)

    if args.tables:
        table_names = [t.strip() for t in args.tables.split(",") if t.strip()]
    else:
        print("No tables specified. Attempting auto-discovery...")
        table_names = inspector.discover_tables()
        if table_names:
            print(f"Discovered {len(table_names)} tables: {', '.join(table_names)}")
        elif not args.auto_discover:
            table_names = inspector.prompt_for_tables()

    if not table_names:
        print("No tables specified. Aborting.", file=sys.stderr)
        return 1

    print(f"\nInspecting {len(table_names)} tables...")
    connection = inspector.generate_schema(table_names)
    schema = SchemaConfig(connections={args.connection_name: connection})
    _write(args.output, dump_schema(schema, args.format))

    print(f"\nSchema generated: {args.output}")
    print(f"Inspected tables: {', '.join(table_names)}")
    print("\nPlease review and update:")
    print("  - Key fields may need manual adjustment")
    print("  - Field types are inferred and may need refinement")
    print("  - Add required, enum, and description properties as needed")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    result = validate_schema(read_document(args.schema))
    if result.valid:
        print("Schema is valid")
        return 0
    print("Schema validation failed:", file=sys.stderr)
    for error in result.errors:
        print(f"  - {error}", file=sys.stderr)
    return 1


def cmd_add_table(args: argparse.Namespace) -> int:
    document = read_document(args.schema)
    connections = (document or {}).get("connections") or {}
    if args.connection not in connections:
        raise ConfigurationError(f'Connection "{args.connection}" not found in schema')

    conn = connections[args.connection]
    credentials = resolve_placeholders(
        {"appId": conn.get("appId", ""), "applicationAccessKey": conn.get("applicationAccessKey", "")}
    )
    client = AppSheetClient(ClientConfig.model_validate(credentials))
    inspector = SchemaInspector(client)

    print(f'Inspecting table "{args.table_name}"...')
    inspection = inspector.inspect_table(args.table_name)
    conn.setdefault("tables", {})[to_schema_name(args.table_name)] = (
        inspection.to_table_definition().to_document()
    )

    fmt = "json" if args.schema.endswith(".json") else "yaml"
    _write(args.schema, dump_schema(document, fmt))
    print(f'Table "{args.table_name}" added to connection "{args.connection}"')
    return 0


COMMANDS = {
    "init": cmd_init,
    "inspect": cmd_inspect,
    "validate": cmd_validate,
    "add-table": cmd_add_table,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``appsheet``."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        code = COMMANDS[args.command](args)
    except (AppSheetError, OSError, ValueError, yaml.YAMLError) as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":  # pragma: no cover
    main()
