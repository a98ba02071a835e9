"""HTTP client for the AppSheet REST API (v2).

Every operation is a POST to ``/apps/{appId}/tables/{tableName}/Action``
with a JSON body ``{Action, Properties, Rows}``. Transient failures (no
response, request timeout, 5xx) are retried with exponential backoff;
everything else is translated into a typed ``AppSheetError``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import requests

from .config import ClientConfig, merge_properties
from .errors import (
    AppSheetError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from .protocol import Properties
from .responses import DeleteResponse, Row, RowsResponse

logger = logging.getLogger(__name__)

MAX_BACKOFF = 10.0  # seconds
RETRYABLE_STATUS = {408}


def backoff_delay(attempt: int) -> float:
    """Delay in seconds after failed attempt number ``attempt`` (1-based)."""
    return min(1.0 * 2 ** (attempt - 1), MAX_BACKOFF)


def _response_payload(response: requests.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("error", "message"):
            if payload.get(key):
                return str(payload[key])
    if isinstance(payload, str) and payload:
        return payload
    return fallback or "Unknown error"


def classify_error(status: int | None, payload: Any, fallback: str = "") -> AppSheetError:
    """Map a terminal HTTP status (None: no response) to a typed error."""
    message = _error_message(payload, fallback)
    match status:
        case None:
            return NetworkError(message, payload)
        case 401 | 403:
            return AuthenticationError(message, payload, status_code=status)
        case 400:
            return ValidationError(message, payload)
        case 404:
            return NotFoundError(message, payload)
        case 429:
            return RateLimitError(message, payload)
        case _:
            return AppSheetError(message, "API_ERROR", status, payload)


class AppSheetClient:
    """CRUD client for the tables of one AppSheet app.

    Example:
        client = AppSheetClient(ClientConfig(app_id="...", application_access_key="..."))
        users = client.find_all("Users")
        client.add_one("Users", {"name": "John", "email": "john@example.com"})
    """

    def __init__(
        self,
        config: ClientConfig | dict[str, Any],
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if isinstance(config, dict):
            config = ClientConfig.model_validate(config)
        self.config = config
        self._session = session if session is not None else requests.Session()
        self._sleep = sleep
        self._headers = {
            "Content-Type": "application/json",
            "ApplicationAccessKey": config.application_access_key,
        }

    def action_url(self, table_name: str) -> str:
        base = self.config.base_url.rstrip("/")
        return f"{base}/apps/{self.config.app_id}/tables/{quote(table_name, safe='')}/Action"

    # -- operations --------------------------------------------------------

    def add(self, table_name: str, rows: list[Row], properties: Properties = None) -> RowsResponse:
        """Create rows; returns them with server-generated fields filled in."""
        response = self._action(table_name, "Add", rows, properties)
        return RowsResponse(rows=response.get("Rows") or [], warnings=response.get("Warnings") or [])

    def find(
        self, table_name: str, selector: str | None = None, properties: Properties = None
    ) -> RowsResponse:
        """Read rows, optionally filtered by an AppSheet selector expression."""
        response = self._action(table_name, "Find", [], properties, selector=selector)
        return RowsResponse(rows=response.get("Rows") or [], warnings=response.get("Warnings") or [])

    def update(self, table_name: str, rows: list[Row], properties: Properties = None) -> RowsResponse:
        """Edit rows; each row must carry its key field."""
        response = self._action(table_name, "Edit", rows, properties)
        return RowsResponse(rows=response.get("Rows") or [], warnings=response.get("Warnings") or [])

    def delete(self, table_name: str, rows: list[Row], properties: Properties = None) -> DeleteResponse:
        """Delete rows identified by their key field."""
        response = self._action(table_name, "Delete", rows, properties)
        return DeleteResponse(
            success=True,
            deleted_count=len(rows),
            warnings=response.get("Warnings") or [],
        )

    def find_all(self, table_name: str) -> list[Row]:
        return self.find(table_name).rows

    def find_one(self, table_name: str, selector: str) -> Row | None:
        rows = self.find(table_name, selector).rows
        return rows[0] if rows else None

    def add_one(self, table_name: str, row: Row) -> Row | None:
        rows = self.add(table_name, [row]).rows
        return rows[0] if rows else None

    def update_one(self, table_name: str, row: Row) -> Row | None:
        rows = self.update(table_name, [row]).rows
        return rows[0] if rows else None

    def delete_one(self, table_name: str, row: Row) -> bool:
        self.delete(table_name, [row])
        return True

    def get_config(self) -> ClientConfig:
        return self.config.model_copy(deep=True)

    # -- transport ---------------------------------------------------------

    def _action(
        self,
        table_name: str,
        action: str,
        rows: list[Row],
        properties: Properties,
        selector: str | None = None,
    ) -> dict[str, Any]:
        payload = {
            "Action": action,
            "Properties": merge_properties(properties, self.config.run_as_user_email, selector),
            "Rows": list(rows),
        }
        return self.request(self.action_url(table_name), payload)

    def request(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST ``payload`` to ``url`` with retry and error classification."""
        attempts = self.config.retry_attempts
        for attempt in range(1, attempts + 1):
            logger.debug("POST %s %s (attempt %d/%d)", url, payload.get("Action"), attempt, attempts)
            try:
                response = self._session.post(
                    url, json=payload, headers=self._headers, timeout=self.config.timeout
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                if attempt < attempts:
                    self._wait(attempt, f"{type(exc).__name__}: {exc}")
                    continue
                raise NetworkError(str(exc) or "Network error", {"exception": type(exc).__name__}) from exc
            except requests.RequestException as exc:
                # not retried: broken body, bad URL, redirect loop
                raise NetworkError(str(exc) or "Network error", {"exception": type(exc).__name__}) from exc

            status = response.status_code
            if 200 <= status < 300:
                data = _response_payload(response)
                if isinstance(data, list):
                    return {"Rows": data}
                return data if isinstance(data, dict) else {}

            if attempt < attempts and (status in RETRYABLE_STATUS or status >= 500):
                self._wait(attempt, f"HTTP {status}")
                continue

            raise classify_error(status, _response_payload(response), response.reason or "")

        # unreachable: retry_attempts >= 1 and every branch returns or raises
        raise AppSheetError("Request failed without a response")

    def _wait(self, attempt: int, cause: str) -> None:
        delay = backoff_delay(attempt)
        logger.warning("retrying after %s in %.1fs (attempt %d)", cause, delay, attempt)
        self._sleep(delay)
