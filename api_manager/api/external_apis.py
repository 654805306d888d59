"""Legacy external API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api_manager.api.dependencies import (
    dispatch_result_to_dict,
    get_external_api_service,
    get_proxy_service,
    get_usage_service,
)
from api_manager.database.database import get_db
from api_manager.models.call_log import TARGET_EXTERNAL_API
from api_manager.schemas.common import DispatchRequest, StatusUpdate, UsagePeriod, ok
from api_manager.schemas.external_api import ExternalAPICreate, ExternalAPIUpdate
from api_manager.services.external_api_service import ExternalAPIService
from api_manager.services.proxy_service import ProxyService
from api_manager.services.usage_service import UsageService

router = APIRouter(prefix="/api/external-apis", tags=["external-apis"])


@router.get("")
async def list_external_apis(
    db: Session = Depends(get_db),
    service: ExternalAPIService = Depends(get_external_api_service),
):
    return ok(service.list_external_apis(db))


@router.get("/{external_api_id}")
async def get_external_api(
    external_api_id: int,
    db: Session = Depends(get_db),
    service: ExternalAPIService = Depends(get_external_api_service),
):
    return ok(service.to_dict(service.require_external_api(db, external_api_id)))


@router.post("", status_code=201)
async def create_external_api(
    external_api: ExternalAPICreate,
    db: Session = Depends(get_db),
    service: ExternalAPIService = Depends(get_external_api_service),
):
    """Create an external API. The auth descriptor is encrypted before storage."""
    created = service.create_external_api(db, external_api)
    return ok(service.to_dict(created), "External API created successfully")


@router.put("/{external_api_id}")
async def update_external_api(
    external_api_id: int,
    external_api_update: ExternalAPIUpdate,
    db: Session = Depends(get_db),
    service: ExternalAPIService = Depends(get_external_api_service),
):
    updated = service.update_external_api(db, external_api_id, external_api_update)
    return ok(service.to_dict(updated), "External API updated successfully")


@router.delete("/{external_api_id}")
async def delete_external_api(
    external_api_id: int,
    db: Session = Depends(get_db),
    service: ExternalAPIService = Depends(get_external_api_service),
):
    service.delete_external_api(db, external_api_id)
    return ok(message="External API deleted successfully")


@router.patch("/{external_api_id}/status")
async def update_external_api_status(
    external_api_id: int,
    status: StatusUpdate,
    db: Session = Depends(get_db),
    service: ExternalAPIService = Depends(get_external_api_service),
):
    external_api = service.set_status(db, external_api_id, status.is_active)
    state = "activated" if external_api.is_active else "deactivated"
    return ok(service.to_dict(external_api), f"External API {state} successfully")


@router.post("/{external_api_id}/test")
async def test_external_api(
    external_api_id: int,
    test_request: Optional[DispatchRequest] = None,
    db: Session = Depends(get_db),
    proxy: ProxyService = Depends(get_proxy_service),
):
    """Make one call to the external API.

    Returns status, status text, headers, data, duration and timestamp. A
    failed call answers 500 with the upstream message; either way one call
    log row is written and the last test status is updated.
    """
    test_request = test_request or DispatchRequest()
    outcome = await proxy.test_external_api(
        db, external_api_id, params=test_request.params, body=test_request.body
    )
    return ok(dispatch_result_to_dict(outcome.result), "API test completed successfully")


@router.get("/{external_api_id}/usage")
async def get_external_api_usage(
    external_api_id: int,
    period: UsagePeriod = Query(default="30d"),
    db: Session = Depends(get_db),
    service: ExternalAPIService = Depends(get_external_api_service),
    usage: UsageService = Depends(get_usage_service),
):
    external_api = service.require_external_api(db, external_api_id)
    return ok(usage.get_usage(db, TARGET_EXTERNAL_API, external_api.id, period))


@router.get("/{external_api_id}/logs")
async def get_external_api_logs(
    external_api_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    service: ExternalAPIService = Depends(get_external_api_service),
    usage: UsageService = Depends(get_usage_service),
):
    external_api = service.require_external_api(db, external_api_id)
    return ok(usage.list_logs(db, TARGET_EXTERNAL_API, external_api.id, page, limit))


@router.delete("/{external_api_id}/logs")
async def purge_external_api_logs(
    external_api_id: int,
    older_than_days: int = Query(default=30, ge=0),
    db: Session = Depends(get_db),
    usage: UsageService = Depends(get_usage_service),
):
    deleted = usage.purge_logs(db, older_than_days, TARGET_EXTERNAL_API, external_api_id)
    return ok({"deleted": deleted}, f"Deleted {deleted} call logs")
