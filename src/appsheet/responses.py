"""Results returned by client operations."""

from dataclasses import dataclass, field
from typing import Any

Row = dict[str, Any]


@dataclass
class RowsResponse:
    """Result of Add, Find and Edit: the rows the API returned."""

    rows: list[Row] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class DeleteResponse:
    success: bool
    deleted_count: int
    warnings: list[str] = field(default_factory=list)
