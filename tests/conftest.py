"""Shared fixtures for AppSheet client tests."""

import json

import pytest
import requests


def make_response(status: int, body=None, reason: str = "") -> requests.Response:
    """Build a real requests.Response with a JSON (or raw text) body."""
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    if body is None:
        response._content = b""
    elif isinstance(body, (str, bytes)):
        response._content = body.encode() if isinstance(body, str) else body
    else:
        response._content = json.dumps(body).encode()
    return response


class FakeSession:
    """Stands in for requests.Session: replays scripted outcomes in order.

    Each outcome is either a Response to return or an exception to raise.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def schema_document():
    """A complete schema document as it would be read from YAML."""
    return {
        "connections": {
            "default": {
                "appId": "${APP_ID}",
                "applicationAccessKey": "${ACCESS_KEY}",
                "tables": {
                    "users": {
                        "tableName": "extract_user",
                        "keyField": "id",
                        "fields": {
                            "id": {"type": "Text", "required": True},
                            "email": {"type": "Email", "required": True},
                            "age": {"type": "Number"},
                            "status": {
                                "type": "Enum",
                                "required": True,
                                "allowedValues": ["Active", "Inactive", "Pending"],
                            },
                        },
                    },
                    "worklogs": {
                        "tableName": "extract_worklog",
                        "keyField": "worklog_id",
                        "fields": {
                            "worklog_id": {"type": "Text", "required": True},
                            "date": {"type": "Date", "required": True},
                            "hours": {"type": "Decimal"},
                        },
                    },
                },
            },
            "hr": {
                "appId": "hr-app",
                "applicationAccessKey": "hr-key",
                "baseUrl": "https://example.test/api/v2",
                "timeout": 5,
                "tables": {},
            },
        }
    }


@pytest.fixture
def env():
    return {"APP_ID": "app-123", "ACCESS_KEY": "secret-key"}
