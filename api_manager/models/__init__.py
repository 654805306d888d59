"""Database models package."""

from api_manager.models.provider import Provider
from api_manager.models.endpoint import ProviderEndpoint
from api_manager.models.external_api import ExternalAPI
from api_manager.models.call_log import CallLog, TARGET_PROVIDER, TARGET_EXTERNAL_API

__all__ = [
    "Provider",
    "ProviderEndpoint",
    "ExternalAPI",
    "CallLog",
    "TARGET_PROVIDER",
    "TARGET_EXTERNAL_API",
]
