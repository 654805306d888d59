"""Auth descriptor schemas.

An auth descriptor tells the proxy how to authenticate outbound calls to a
provider. Descriptors are a tagged union on ``type``:

    none     no credentials
    api_key  one custom header (header_name / header_value)
    bearer   a token sent in ``header_name`` (default ``Authorization``);
             ``scheme="raw"`` sends the token verbatim, ``scheme="bearer"``
             prefixes it with ``Bearer ``
    basic    username / password encoded as HTTP basic auth
    oauth2   client credentials, stored only (no token exchange)

Both snake_case and camelCase keys are accepted so that JSON written by the
previous dashboard (``headerName``, ``headerValue``...) reads back unchanged.
"""

import json
import logging
import re
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from api_manager.schemas.common import mask_secret

logger = logging.getLogger(__name__)

# RFC 9110 token characters for field names; values are visible ASCII plus
# space and tab
_HEADER_NAME = re.compile(r"[!#$%&'*+.^_`|~0-9A-Za-z-]+")
_HEADER_VALUE = re.compile(r"[\t\x20-\x7e]*")


class _AuthBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    enabled: bool = True

    @field_validator("header_name", check_fields=False)
    @classmethod
    def _check_header_name(cls, value: str) -> str:
        if not _HEADER_NAME.fullmatch(value):
            raise ValueError("header_name must be an HTTP header name (ASCII letters, digits and !#$%&'*+-.^_`|~)")
        return value

    @field_validator("header_value", "token", check_fields=False)
    @classmethod
    def _check_header_value(cls, value: str, info) -> str:
        if not _HEADER_VALUE.fullmatch(value):
            raise ValueError(f"{info.field_name} must contain printable ASCII characters only")
        return value

    def masked(self) -> Dict[str, Any]:
        """Serialize with secret fields masked, for API responses."""
        return self.model_dump()


class NoAuth(_AuthBase):
    type: Literal["none"] = "none"


class ApiKeyAuth(_AuthBase):
    type: Literal["api_key"] = "api_key"
    header_name: str = Field(min_length=1)
    header_value: str = Field(min_length=1)

    def masked(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["header_value"] = mask_secret(self.header_value)
        return data


class BearerAuth(_AuthBase):
    type: Literal["bearer"] = "bearer"
    token: str = Field(min_length=1)
    header_name: str = Field(default="Authorization", min_length=1)
    scheme: Literal["raw", "bearer"] = "raw"

    @model_validator(mode="before")
    @classmethod
    def _accept_header_value(cls, data: Any) -> Any:
        # Older records keep the token under headerValue
        if isinstance(data, dict) and "token" not in data:
            for key in ("header_value", "headerValue"):
                if key in data:
                    data = dict(data)
                    data["token"] = data.pop(key)
                    break
        return data

    def masked(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["token"] = mask_secret(self.token)
        return data


class BasicAuth(_AuthBase):
    type: Literal["basic"] = "basic"
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

    def masked(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["password"] = mask_secret(self.password)
        return data


class OAuth2Auth(_AuthBase):
    type: Literal["oauth2"] = "oauth2"
    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)
    token_url: str = Field(min_length=1)

    def masked(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["client_secret"] = mask_secret(self.client_secret)
        return data


AuthDescriptor = Annotated[
    Union[NoAuth, ApiKeyAuth, BearerAuth, BasicAuth, OAuth2Auth],
    Field(discriminator="type"),
]

_descriptor_adapter = TypeAdapter(AuthDescriptor)
_descriptor_list_adapter = TypeAdapter(List[AuthDescriptor])

# Fields each legacy auth type carries; everything else in the stored
# JSON (empty form fields, mostly) is dropped when lifting.
_LEGACY_FIELDS = {
    "api_key": ("headerName", "headerValue", "header_name", "header_value"),
    "bearer": ("headerName", "headerValue", "header_name", "header_value", "token", "scheme"),
    "basic": ("username", "password"),
    "oauth2": ("clientId", "clientSecret", "tokenUrl", "client_id", "client_secret", "token_url"),
}


def parse_descriptor(data: Any):
    """Validate one descriptor from a dict."""
    return _descriptor_adapter.validate_python(data)


def parse_descriptor_list(data: Any) -> list:
    """Validate a list of descriptors from a list of dicts."""
    return _descriptor_list_adapter.validate_python(data)


def dump_descriptor_list(descriptors: list) -> str:
    """Serialize descriptors to a JSON string (secrets in clear)."""
    return json.dumps([d.model_dump() for d in descriptors])


def descriptor_from_legacy(auth_type: Optional[str], auth_config: Optional[Dict[str, Any]]):
    """Lift a legacy ``authType`` / ``authConfig`` pair into a descriptor.

    Returns None when the pair carries no usable credentials.
    """
    if not auth_type or auth_type == "none":
        return None
    config = auth_config or {}
    if isinstance(config, str):
        config = json.loads(config)

    fields = _LEGACY_FIELDS.get(auth_type)
    if fields is None:
        logger.warning(f"Ignoring unknown legacy auth type '{auth_type}'")
        return None

    data = {key: value for key, value in config.items() if key in fields and value not in (None, "")}
    data["type"] = auth_type
    try:
        return parse_descriptor(data)
    except ValueError as e:
        logger.warning(f"Ignoring incomplete legacy '{auth_type}' auth config: {e}")
        return None
