"""Request and response schemas."""

from api_manager.schemas.auth import (
    AuthDescriptor,
    NoAuth,
    ApiKeyAuth,
    BearerAuth,
    BasicAuth,
    OAuth2Auth,
)
from api_manager.schemas.common import DispatchRequest, StatusUpdate
from api_manager.schemas.provider import ProviderCreate, ProviderUpdate, EndpointCreate
from api_manager.schemas.external_api import ExternalAPICreate, ExternalAPIUpdate

__all__ = [
    "AuthDescriptor",
    "NoAuth",
    "ApiKeyAuth",
    "BearerAuth",
    "BasicAuth",
    "OAuth2Auth",
    "DispatchRequest",
    "StatusUpdate",
    "ProviderCreate",
    "ProviderUpdate",
    "EndpointCreate",
    "ExternalAPICreate",
    "ExternalAPIUpdate",
]
