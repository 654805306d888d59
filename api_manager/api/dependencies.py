"""FastAPI dependencies shared by the routers."""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, Request

from api_manager.config import settings
from api_manager.services.dispatcher import DispatchResult, Dispatcher
from api_manager.services.encryption_service import EncryptionService
from api_manager.services.external_api_service import ExternalAPIService
from api_manager.services.provider_service import ProviderService
from api_manager.services.proxy_service import ProxyService
from api_manager.services.usage_service import UsageService


def get_encryption_service(request: Request) -> EncryptionService:
    """Get the encryption service created at startup."""
    return request.app.state.encryption_service


def get_dispatcher(request: Request) -> Dispatcher:
    """Get the shared outbound dispatcher."""
    return request.app.state.dispatcher


def get_provider_service(
    encryption_service: EncryptionService = Depends(get_encryption_service),
) -> ProviderService:
    """Get provider service instance."""
    return ProviderService(encryption_service)


def get_external_api_service(
    encryption_service: EncryptionService = Depends(get_encryption_service),
) -> ExternalAPIService:
    """Get external API service instance."""
    return ExternalAPIService(encryption_service)


def get_usage_service() -> UsageService:
    return UsageService()


def get_proxy_service(
    dispatcher: Dispatcher = Depends(get_dispatcher),
    provider_service: ProviderService = Depends(get_provider_service),
    external_api_service: ExternalAPIService = Depends(get_external_api_service),
) -> ProxyService:
    """Get proxy service instance."""
    return ProxyService(dispatcher, provider_service, external_api_service)


def verify_proxy_api_key(request: Request, x_api_key: Optional[str] = Header(default=None)) -> None:
    """Require ``X-API-Key`` on proxy routes when PROXY_API_KEY is set."""
    expected = getattr(request.app.state, "settings", settings).proxy_api_key
    if expected and x_api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def dispatch_result_to_dict(result: DispatchResult) -> Dict[str, Any]:
    """Shape a test call result for the response envelope."""
    return {
        "status": result.status_code,
        "status_text": result.status_text,
        "headers": result.headers,
        "data": result.data,
        "duration": result.duration_ms,
        "timestamp": datetime.utcnow().isoformat(),
    }
