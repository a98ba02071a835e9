"""Typed client for the AppSheet REST API with schema-driven validation."""

from .client import AppSheetClient, backoff_delay, classify_error
from .config import ClientConfig, RequestProperties
from .connections import ConnectionManager
from .errors import (
    AppSheetError,
    AuthenticationError,
    ConfigurationError,
    InspectionError,
    MockDatabaseError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from .inspector import SchemaInspector
from .loader import load_schema, parse_schema, resolve_placeholders, validate_schema
from .manager import SchemaManager
from .mock import MockAppSheetClient, MockDatabase, MockDataProvider, TableData
from .protocol import AppSheetClientProtocol
from .responses import DeleteResponse, RowsResponse
from .schema import (
    ConnectionDefinition,
    FieldDefinition,
    FieldType,
    SchemaConfig,
    SchemaValidationResult,
    TableDefinition,
    TableInspectionResult,
)
from .table import DynamicTable
from .validators import validate_enum, validate_rows, validate_value

__all__ = [
    # Clients
    "AppSheetClient",
    "AppSheetClientProtocol",
    "MockAppSheetClient",
    "MockDatabase",
    "MockDataProvider",
    "TableData",
    "ClientConfig",
    "RequestProperties",
    "RowsResponse",
    "DeleteResponse",
    "backoff_delay",
    "classify_error",
    # Errors
    "AppSheetError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "RateLimitError",
    "NetworkError",
    "ConfigurationError",
    "InspectionError",
    "MockDatabaseError",
    # Schema
    "FieldType",
    "FieldDefinition",
    "TableDefinition",
    "ConnectionDefinition",
    "SchemaConfig",
    "SchemaValidationResult",
    "TableInspectionResult",
    "load_schema",
    "parse_schema",
    "resolve_placeholders",
    "validate_schema",
    # Validation
    "validate_value",
    "validate_enum",
    "validate_rows",
    # Schema-driven access
    "DynamicTable",
    "ConnectionManager",
    "SchemaManager",
    "SchemaInspector",
]
