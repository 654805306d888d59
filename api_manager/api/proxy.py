"""Proxy endpoints forwarding requests to registered APIs."""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from api_manager.api.dependencies import get_proxy_service, verify_proxy_api_key
from api_manager.database.database import get_db
from api_manager.errors import ValidationError
from api_manager.schemas.common import HTTP_METHODS, ok
from api_manager.services.proxy_service import ProxyService

router = APIRouter(
    prefix="/api/proxy",
    tags=["proxy"],
    dependencies=[Depends(verify_proxy_api_key)],
)

PROXIED_BY = "API Manager"


async def _read_json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise ValidationError("Request body must be valid JSON")


@router.api_route("/provider/{provider_id}/{endpoint_path:path}", methods=list(HTTP_METHODS))
async def proxy_provider(
    provider_id: int,
    endpoint_path: str,
    request: Request,
    db: Session = Depends(get_db),
    proxy: ProxyService = Depends(get_proxy_service),
):
    """Forward a request to one of a provider's active endpoints.

    The path must match an endpoint template for the same method; query
    parameters are forwarded unchanged.
    """
    body = await _read_json_body(request)
    outcome = await proxy.proxy_provider(
        db,
        provider_id,
        request.method,
        "/" + endpoint_path,
        query=dict(request.query_params),
        body=body,
    )
    result = outcome.result
    return ok(
        result.data,
        metadata={
            "provider": outcome.target.name,
            "provider_id": outcome.target.id,
            "endpoint": outcome.endpoint.path,
            "status": result.status_code,
            "response_time": f"{result.duration_ms}ms",
            "proxied_by": PROXIED_BY,
        },
    )


@router.api_route("/dynamic/{external_api_id}", methods=list(HTTP_METHODS))
async def proxy_external_api(
    external_api_id: int,
    request: Request,
    db: Session = Depends(get_db),
    proxy: ProxyService = Depends(get_proxy_service),
):
    """Forward a request to an external API.

    Top-level keys of a JSON object body fill the endpoint placeholders.
    """
    body = await _read_json_body(request)
    outcome = await proxy.proxy_external_api(
        db, external_api_id, body=body, query=dict(request.query_params)
    )
    result = outcome.result
    return ok(
        result.data,
        metadata={
            "external_api": outcome.target.name,
            "external_api_id": outcome.target.id,
            "status": result.status_code,
            "response_time": f"{result.duration_ms}ms",
            "response_size": result.response_size,
            "proxied_by": PROXIED_BY,
        },
    )
