"""Services package."""

from api_manager.services.encryption_service import EncryptionService
from api_manager.services.provider_service import ProviderService
from api_manager.services.external_api_service import ExternalAPIService
from api_manager.services.dispatcher import Dispatcher, DispatchResult
from api_manager.services.call_logger import CallLogger
from api_manager.services.usage_service import UsageService
from api_manager.services.proxy_service import ProxyService
from api_manager.services.seed_service import SeedService

__all__ = [
    "EncryptionService",
    "ProviderService",
    "ExternalAPIService",
    "Dispatcher",
    "DispatchResult",
    "CallLogger",
    "UsageService",
    "ProxyService",
    "SeedService",
]
