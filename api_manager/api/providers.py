"""API provider endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api_manager.api.dependencies import (
    dispatch_result_to_dict,
    get_provider_service,
    get_proxy_service,
    get_usage_service,
)
from api_manager.database.database import get_db
from api_manager.models.call_log import TARGET_PROVIDER
from api_manager.schemas.common import DispatchRequest, StatusUpdate, UsagePeriod, ok
from api_manager.schemas.provider import EndpointCreate, ProviderCreate, ProviderUpdate
from api_manager.services.provider_service import ProviderService, endpoint_to_dict
from api_manager.services.proxy_service import ProxyService
from api_manager.services.usage_service import UsageService

router = APIRouter(prefix="/api/api-providers", tags=["api-providers"])


@router.get("")
async def list_providers(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    """List all providers with masked credentials, newest first."""
    return ok(service.list_providers(db, include_inactive))


@router.get("/{provider_id}")
async def get_provider(
    provider_id: int,
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    """Get provider details by ID."""
    provider = service.require_provider(db, provider_id)
    return ok(service.provider_to_dict(provider, include_inactive))


@router.post("", status_code=201)
async def create_provider(
    provider: ProviderCreate,
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    """Create a new provider with its endpoints.

    Auth descriptors are encrypted before storage.
    """
    new_provider = service.create_provider(db, provider)
    return ok(service.provider_to_dict(new_provider), "API Provider created successfully")


@router.put("/{provider_id}")
async def update_provider(
    provider_id: int,
    provider_update: ProviderUpdate,
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    """Update provider fields. Endpoints are managed through their own routes."""
    updated = service.update_provider(db, provider_id, provider_update)
    return ok(service.provider_to_dict(updated), "API Provider updated successfully")


@router.delete("/{provider_id}")
async def delete_provider(
    provider_id: int,
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    """Delete a provider and its endpoints. Call logs are kept."""
    service.delete_provider(db, provider_id)
    return ok(message="API Provider deleted successfully")


@router.patch("/{provider_id}/status")
async def update_provider_status(
    provider_id: int,
    status: StatusUpdate,
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    provider = service.set_status(db, provider_id, status.is_active)
    state = "activated" if provider.is_active else "deactivated"
    return ok(service.provider_to_dict(provider), f"API Provider {state} successfully")


@router.post("/{provider_id}/endpoints", status_code=201)
async def add_endpoint(
    provider_id: int,
    endpoint: EndpointCreate,
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    """Add an endpoint. A duplicate path and method is rejected."""
    created = service.add_endpoint(db, provider_id, endpoint)
    return ok(endpoint_to_dict(created), "Endpoint added successfully")


@router.patch("/{provider_id}/endpoints/{endpoint_id}/status")
async def update_endpoint_status(
    provider_id: int,
    endpoint_id: int,
    status: StatusUpdate,
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    endpoint = service.set_endpoint_status(db, provider_id, endpoint_id, status.is_active)
    return ok(endpoint_to_dict(endpoint), "Endpoint status updated successfully")


@router.delete("/{provider_id}/endpoints/{endpoint_id}")
async def delete_endpoint(
    provider_id: int,
    endpoint_id: int,
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
):
    service.delete_endpoint(db, provider_id, endpoint_id)
    return ok(message="Endpoint deleted successfully")


@router.post("/{provider_id}/endpoints/{endpoint_id}/test")
async def test_endpoint(
    provider_id: int,
    endpoint_id: int,
    test_request: Optional[DispatchRequest] = None,
    db: Session = Depends(get_db),
    proxy: ProxyService = Depends(get_proxy_service),
):
    """Call one endpoint with the given path parameters and body.

    One call log row is written whatever the outcome.
    """
    test_request = test_request or DispatchRequest()
    outcome = await proxy.test_provider_endpoint(
        db, provider_id, endpoint_id, params=test_request.params, body=test_request.body
    )
    payload = dispatch_result_to_dict(outcome.result)
    payload["url"] = outcome.result.url
    payload["endpoint"] = endpoint_to_dict(outcome.endpoint)
    return ok(payload, "Endpoint test completed successfully")


@router.get("/{provider_id}/usage")
async def get_provider_usage(
    provider_id: int,
    period: UsagePeriod = Query(default="30d"),
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
    usage: UsageService = Depends(get_usage_service),
):
    """Call counts for a provider: total, today, this month, daily and hourly."""
    provider = service.require_provider(db, provider_id)
    return ok(usage.get_usage(db, TARGET_PROVIDER, provider.id, period))


@router.get("/{provider_id}/logs")
async def get_provider_logs(
    provider_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    service: ProviderService = Depends(get_provider_service),
    usage: UsageService = Depends(get_usage_service),
):
    provider = service.require_provider(db, provider_id)
    return ok(usage.list_logs(db, TARGET_PROVIDER, provider.id, page, limit))


@router.delete("/{provider_id}/logs")
async def purge_provider_logs(
    provider_id: int,
    older_than_days: int = Query(default=30, ge=0),
    db: Session = Depends(get_db),
    usage: UsageService = Depends(get_usage_service),
):
    """Delete this provider's call logs older than the given age.

    Works for deleted providers too, so orphaned logs can be cleaned up.
    """
    deleted = usage.purge_logs(db, older_than_days, TARGET_PROVIDER, provider_id)
    return ok({"deleted": deleted}, f"Deleted {deleted} call logs")
