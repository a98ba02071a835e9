"""Schema model for AppSheet connections, tables and fields.

A schema document names one or more connections (app credentials plus a
set of tables). Each table declares its key field and a typed field map
that drives runtime validation of rows.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldType(str, Enum):
    """AppSheet column types."""

    # core
    TEXT = "Text"
    NUMBER = "Number"
    DATE = "Date"
    DATETIME = "DateTime"
    TIME = "Time"
    DURATION = "Duration"
    YES_NO = "YesNo"
    # specialised text
    NAME = "Name"
    EMAIL = "Email"
    URL = "URL"
    PHONE = "Phone"
    ADDRESS = "Address"
    # specialised numbers
    DECIMAL = "Decimal"
    PERCENT = "Percent"
    PRICE = "Price"
    # selection
    ENUM = "Enum"
    ENUM_LIST = "EnumList"
    # media
    IMAGE = "Image"
    FILE = "File"
    DRAWING = "Drawing"
    SIGNATURE = "Signature"
    # tracking
    CHANGE_COUNTER = "ChangeCounter"
    CHANGE_TIMESTAMP = "ChangeTimestamp"
    CHANGE_LOCATION = "ChangeLocation"
    # references
    REF = "Ref"
    REF_LIST = "RefList"
    # special
    COLOR = "Color"
    SHOW = "Show"


class _SchemaModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """Dump using schema-file key names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class FieldDefinition(_SchemaModel):
    """A typed field on a table."""

    type: FieldType | str  # unknown type names are kept and not validated
    required: bool = False
    allowed_values: list[str] | None = Field(None, alias="allowedValues")
    referenced_table: str | None = Field(None, alias="referencedTable")
    description: str | None = None


class TableDefinition(_SchemaModel):
    """A table in a connection."""

    table_name: str = Field(alias="tableName")  # actual AppSheet table name
    key_field: str = Field(alias="keyField")
    fields: dict[str, FieldDefinition] = {}


class ConnectionDefinition(_SchemaModel):
    """App credentials plus the tables reachable through them."""

    app_id: str = Field(alias="appId")
    application_access_key: str = Field(alias="applicationAccessKey")
    base_url: str | None = Field(None, alias="baseUrl")
    timeout: float | None = None  # seconds
    run_as_user_email: str | None = Field(None, alias="runAsUserEmail")
    tables: dict[str, TableDefinition] = {}


class SchemaConfig(_SchemaModel):
    """Complete schema document."""

    connections: dict[str, ConnectionDefinition] = {}


class TableInspectionResult(_SchemaModel):
    """Table structure discovered from sample rows."""

    table_name: str = Field(alias="tableName")
    key_field: str = Field(alias="keyField")
    fields: dict[str, FieldDefinition] = {}
    warning: str | None = None

    def to_table_definition(self) -> TableDefinition:
        return TableDefinition(
            table_name=self.table_name,
            key_field=self.key_field,
            fields=self.fields,
        )


class SchemaValidationResult(BaseModel):
    """Outcome of a structural schema check."""

    valid: bool
    errors: list[str] = []
