"""Client configuration and per-request properties."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BASE_URL = "https://api.appsheet.com/api/v2"
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_RETRY_ATTEMPTS = 3
FALLBACK_USER_EMAIL = "mock@example.com"


class ClientConfig(BaseModel):
    """Configuration shared by the HTTP and mock clients."""

    model_config = ConfigDict(populate_by_name=True)

    app_id: str = Field(alias="appId")
    application_access_key: str = Field(alias="applicationAccessKey")
    base_url: str = Field(DEFAULT_BASE_URL, alias="baseUrl")
    timeout: float = DEFAULT_TIMEOUT
    retry_attempts: int = Field(DEFAULT_RETRY_ATTEMPTS, alias="retryAttempts", ge=1)
    run_as_user_email: str | None = Field(None, alias="runAsUserEmail")
    # AppSheet table name -> key field, from the schema; the HTTP client ignores it
    key_fields: dict[str, str] = Field(default_factory=dict, alias="keyFields")


class RequestProperties(BaseModel):
    """Optional ``Properties`` block sent with every Action call."""

    model_config = ConfigDict(populate_by_name=True)

    locale: str | None = Field(None, alias="Locale")
    location: str | None = Field(None, alias="Location")  # "latitude,longitude"
    timezone: str | None = Field(None, alias="Timezone")
    user_id: str | None = Field(None, alias="UserId")
    run_as_user_email: str | None = Field(None, alias="RunAsUserEmail")
    selector: str | None = Field(None, alias="Selector")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def merge_properties(
    properties: RequestProperties | dict[str, Any] | None,
    default_user_email: str | None = None,
    selector: str | None = None,
) -> dict[str, Any]:
    """Build the wire ``Properties`` dict.

    Caller-supplied values win over the client-wide ``RunAsUserEmail``;
    ``selector`` (Find only) overrides any selector already present.
    """
    if properties is None:
        props = RequestProperties()
    elif isinstance(properties, RequestProperties):
        props = properties
    else:
        props = RequestProperties.model_validate(properties)

    payload: dict[str, Any] = {}
    if default_user_email:
        payload["RunAsUserEmail"] = default_user_email
    payload.update(props.to_payload())
    if selector:
        payload["Selector"] = selector
    return payload
