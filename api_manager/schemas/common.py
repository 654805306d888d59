"""Shared request and response schemas."""

from typing import Any, Dict, Literal, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

UsagePeriod = Literal["7d", "30d", "90d"]

_http_url_adapter = TypeAdapter(AnyHttpUrl)


class RequestModel(BaseModel):
    """Base for inbound bodies: snake_case or camelCase keys, unknown keys rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class StatusUpdate(RequestModel):
    """Toggle request for the active flag."""

    is_active: bool


class DispatchRequest(RequestModel):
    """Body of a test call: path parameters and an optional JSON body."""

    params: Dict[str, Any] = Field(default_factory=dict)
    body: Optional[Any] = None


def normalize_method(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


def require_text(value: Optional[str], field: str) -> Optional[str]:
    """Strip a string and reject it when blank."""
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError(f"{field} must not be blank")
    return value


def validate_base_url(value: Optional[str]) -> Optional[str]:
    """Check that a base URL is absolute http(s) and drop a trailing slash."""
    if value is None:
        return value
    value = require_text(value, "base_url")
    try:
        _http_url_adapter.validate_python(value)
    except ValueError:
        raise ValueError("Invalid base URL")
    return value.rstrip("/")


def ok(data: Any = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Build a success envelope."""
    payload: Dict[str, Any] = {"success": True}
    if data is not None:
        payload["data"] = data
    if message is not None:
        payload["message"] = message
    payload.update({k: v for k, v in extra.items() if v is not None})
    return payload


def mask_secret(secret: Optional[str]) -> str:
    """Mask a secret for display - show only first 3 and last 4 characters."""
    if not secret:
        return ""
    if len(secret) > 10:
        return f"{secret[:3]}{'*' * 15}{secret[-4:]}"
    return "*" * len(secret)
