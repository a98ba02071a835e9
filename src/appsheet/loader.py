"""Load, resolve and check schema documents.

Schema files are YAML or JSON. String values may contain ``${VAR}``
placeholders which are resolved against an environment mapping when the
schema is loaded; an unresolved placeholder fails the load.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .errors import ValidationError
from .schema import SchemaConfig, SchemaValidationResult

PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")


def read_document(path: str | Path) -> Any:
    """Read a schema file without resolving placeholders."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(content)
    return yaml.safe_load(content)


def resolve_placeholders(obj: Any, env: Mapping[str, str] | None = None) -> Any:
    """Substitute ``${VAR}`` in every string inside ``obj``."""
    env = os.environ if env is None else env

    if isinstance(obj, str):

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name not in env:
                raise ValidationError(f"Environment variable {name} is not defined", {"variable": name})
            return env[name]

        return PLACEHOLDER_RE.sub(substitute, obj)

    if isinstance(obj, list):
        return [resolve_placeholders(item, env) for item in obj]

    if isinstance(obj, dict):
        return {key: resolve_placeholders(value, env) for key, value in obj.items()}

    return obj


def validate_schema(schema: Any) -> SchemaValidationResult:
    """Structural check: one error per missing connection or table element."""
    if isinstance(schema, SchemaConfig):
        schema = schema.to_document()

    errors: list[str] = []

    connections = schema.get("connections") if isinstance(schema, dict) else None
    if not isinstance(connections, dict):
        return SchemaValidationResult(valid=False, errors=['Schema must have "connections" object'])

    for conn_name, conn in connections.items():
        if not isinstance(conn, dict):
            errors.append(f'Connection "{conn_name}": must be an object')
            continue
        if not conn.get("appId"):
            errors.append(f'Connection "{conn_name}": missing appId')
        if not conn.get("applicationAccessKey"):
            errors.append(f'Connection "{conn_name}": missing applicationAccessKey')

        tables = conn.get("tables")
        if not isinstance(tables, dict):
            errors.append(f'Connection "{conn_name}": missing or invalid tables')
            continue

        for table_name, table in tables.items():
            prefix = f'Connection "{conn_name}", table "{table_name}"'
            if not isinstance(table, dict):
                errors.append(f"{prefix}: must be an object")
                continue
            if not table.get("tableName"):
                errors.append(f"{prefix}: missing tableName")
            if not table.get("keyField"):
                errors.append(f"{prefix}: missing keyField")
            fields = table.get("fields")
            if not isinstance(fields, dict):
                errors.append(f"{prefix}: missing or invalid fields")
                continue
            for field_name, field in fields.items():
                if not isinstance(field, dict) or not field.get("type"):
                    errors.append(f'{prefix}, field "{field_name}": missing type')

    return SchemaValidationResult(valid=not errors, errors=errors)


def parse_schema(document: Any, env: Mapping[str, str] | None = None) -> SchemaConfig:
    """Resolve placeholders, check structure and build a ``SchemaConfig``."""
    if isinstance(document, SchemaConfig):
        document = document.to_document()
    resolved = resolve_placeholders(document, env)
    result = validate_schema(resolved)
    if not result.valid:
        raise ValidationError(f"Invalid schema: {', '.join(result.errors)}", result.errors)
    return SchemaConfig.model_validate(resolved)


def load_schema(path: str | Path, env: Mapping[str, str] | None = None) -> SchemaConfig:
    """Load a YAML or JSON schema file."""
    return parse_schema(read_document(path), env)


def dump_schema(schema: SchemaConfig | dict, fmt: str = "yaml") -> str:
    """Serialise a schema for writing back to disk."""
    document = schema.to_document() if isinstance(schema, SchemaConfig) else schema
    if fmt == "json":
        return json.dumps(document, indent=2) + "\n"
    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
