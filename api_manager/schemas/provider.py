"""Provider and endpoint request schemas."""

from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from api_manager.schemas.auth import AuthDescriptor
from api_manager.schemas.common import (
    HttpMethod,
    RequestModel,
    normalize_method,
    require_text,
    validate_base_url,
)


class EndpointCreate(RequestModel):
    """Endpoint creation request."""

    path: str
    method: HttpMethod = "GET"
    description: str = ""
    is_active: bool = True

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value):
        return normalize_method(value)

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        value = require_text(value, "path")
        if not value.startswith("/"):
            value = "/" + value
        return value


def _check_auth(requires_auth: Optional[bool], auth_configs: Optional[list]) -> None:
    if requires_auth and not any(d.enabled and d.type != "none" for d in auth_configs or []):
        raise ValueError("At least one enabled auth config is required when requires_auth is true")


class ProviderCreate(RequestModel):
    """Provider creation request."""

    name: str
    description: str
    base_url: str
    documentation: Optional[str] = None
    requires_auth: bool = False
    auth_configs: List[AuthDescriptor] = Field(default_factory=list)
    rate_limit: Optional[int] = Field(default=None, ge=1)
    timeout: Optional[int] = Field(default=None, ge=1)
    is_active: bool = True
    endpoints: List[EndpointCreate] = Field(default_factory=list)

    @field_validator("name", "description")
    @classmethod
    def _not_blank(cls, value: str, info) -> str:
        return require_text(value, info.field_name)

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value):
        return validate_base_url(value)

    @model_validator(mode="after")
    def _check_consistency(self):
        _check_auth(self.requires_auth, self.auth_configs)
        seen = set()
        for endpoint in self.endpoints:
            key = (endpoint.path, endpoint.method)
            if key in seen:
                raise ValueError(f"Duplicate endpoint {endpoint.method} {endpoint.path}")
            seen.add(key)
        return self


class ProviderUpdate(RequestModel):
    """Provider update request. Endpoints are managed separately.

    Omitted fields are left unchanged. An explicit null clears
    ``documentation`` and is ignored for every other field.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    base_url: Optional[str] = None
    documentation: Optional[str] = None
    requires_auth: Optional[bool] = None
    auth_configs: Optional[List[AuthDescriptor]] = None
    rate_limit: Optional[int] = Field(default=None, ge=1)
    timeout: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None

    @field_validator("name", "description")
    @classmethod
    def _not_blank(cls, value: Optional[str], info) -> Optional[str]:
        return require_text(value, info.field_name)

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value):
        return validate_base_url(value)

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.requires_auth and self.auth_configs is not None:
            _check_auth(self.requires_auth, self.auth_configs)
        return self
