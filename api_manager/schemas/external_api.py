"""Legacy external API request schemas."""

from typing import Optional

from pydantic import Field, field_validator

from api_manager.schemas.auth import AuthDescriptor
from api_manager.schemas.common import (
    HttpMethod,
    RequestModel,
    normalize_method,
    require_text,
    validate_base_url,
)


class ExternalAPICreate(RequestModel):
    """External API creation request."""

    name: str
    description: str
    base_url: str
    endpoint: str
    method: HttpMethod
    requires_auth: bool = False
    auth: Optional[AuthDescriptor] = None
    rate_limit: Optional[int] = Field(default=None, ge=1)
    timeout: Optional[int] = Field(default=None, ge=1)
    is_active: bool = True

    @field_validator("name", "description", "endpoint")
    @classmethod
    def _not_blank(cls, value: str, info) -> str:
        return require_text(value, info.field_name)

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value):
        return validate_base_url(value)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value):
        return normalize_method(value)


class ExternalAPIUpdate(RequestModel):
    """External API update request.

    Omitted fields are left unchanged and an explicit null is ignored, except
    for ``auth``: null or ``{"type": "none"}`` drops the stored credentials.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    base_url: Optional[str] = None
    endpoint: Optional[str] = None
    method: Optional[HttpMethod] = None
    requires_auth: Optional[bool] = None
    auth: Optional[AuthDescriptor] = None
    rate_limit: Optional[int] = Field(default=None, ge=1)
    timeout: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None

    @field_validator("name", "description", "endpoint")
    @classmethod
    def _not_blank(cls, value: Optional[str], info) -> Optional[str]:
        return require_text(value, info.field_name)

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value):
        return validate_base_url(value)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value):
        return normalize_method(value)
