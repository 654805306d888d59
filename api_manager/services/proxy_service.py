"""Dispatch calls to registered providers and external APIs.

Every entry point follows the same sequence: look the target up, reject it
when inactive, resolve the URL and headers, make one outbound call and write
one call log row whatever the outcome. The log write is best effort and never
replaces the dispatch outcome returned to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from api_manager.errors import InactiveTargetError, NotFoundError, UpstreamDispatchError
from api_manager.services.auth_resolver import resolve_auth_headers
from api_manager.services.call_logger import CallLogger
from api_manager.services.dispatcher import DispatchResult, Dispatcher
from api_manager.services.external_api_service import ExternalAPIService
from api_manager.services.provider_service import ProviderService
from api_manager.services.templating import join_url, match_endpoint, placeholders, render_path

logger = logging.getLogger(__name__)


@dataclass
class ProxyOutcome:
    """A successful dispatch and the records it was made for."""

    target: Any
    result: DispatchResult
    endpoint: Any = None


def _upstream_message(result: DispatchResult) -> str:
    data = result.data
    if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"]:
        return data["message"]
    return f"Request failed with status code {result.status_code}"


def _warn_unfilled(url: str) -> None:
    missing = placeholders(url)
    if missing:
        logger.warning(f"Dispatching with unfilled path parameters {missing}: {url}")


class ProxyService:
    """Orchestrates lookup, templating, auth, dispatch and logging."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        provider_service: ProviderService,
        external_api_service: ExternalAPIService,
        call_logger: Optional[CallLogger] = None,
    ):
        self.dispatcher = dispatcher
        self.provider_service = provider_service
        self.external_api_service = external_api_service
        self.call_logger = call_logger or CallLogger()

    async def _dispatch_and_log(
        self,
        db: Session,
        target,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        endpoint_id: Optional[int] = None,
    ) -> DispatchResult:
        """Make the call and write exactly one call log row.

        Raises:
            UpstreamDispatchError: On transport failure or a non-2xx status,
                after the failure has been logged.
        """
        try:
            result = await self.dispatcher.dispatch(
                method,
                url,
                headers=headers,
                body=body,
                params=params,
                timeout_ms=target.timeout,
            )
        except UpstreamDispatchError as e:
            self.call_logger.record_failure(db, target, method, e, endpoint_id=endpoint_id)
            raise

        self.call_logger.record_result(db, target, result, endpoint_id=endpoint_id)

        if not result.success:
            raise UpstreamDispatchError(
                _upstream_message(result),
                status=result.status_code,
                url=result.url,
                duration_ms=result.duration_ms,
                data=result.data,
            )
        return result

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def _active_provider(self, db: Session, provider_id: int):
        provider = self.provider_service.require_provider(db, provider_id)
        if not provider.is_active:
            raise InactiveTargetError("API Provider is not active")
        return provider

    def _provider_headers(self, provider) -> Dict[str, str]:
        descriptors = self.provider_service.load_auth_configs(provider) if provider.requires_auth else []
        return resolve_auth_headers(provider.requires_auth, descriptors)

    async def test_provider_endpoint(
        self,
        db: Session,
        provider_id: int,
        endpoint_id: int,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> ProxyOutcome:
        """Call one stored endpoint, filling its template from ``params``.

        Raises:
            NotFoundError: Unknown provider or endpoint.
            InactiveTargetError: Provider or endpoint disabled; nothing is sent.
            UpstreamDispatchError: The call failed (already logged).
        """
        provider = self._active_provider(db, provider_id)
        endpoint = self.provider_service.get_endpoint(db, provider_id, endpoint_id)
        if not endpoint.is_active:
            raise InactiveTargetError("Endpoint is not active")

        url = join_url(provider.base_url, render_path(endpoint.path, params))
        _warn_unfilled(url)
        headers = self._provider_headers(provider)

        result = await self._dispatch_and_log(
            db, provider, endpoint.method, url, headers, body=body, endpoint_id=endpoint.id
        )
        return ProxyOutcome(target=provider, result=result, endpoint=endpoint)

    async def proxy_provider(
        self,
        db: Session,
        provider_id: int,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> ProxyOutcome:
        """Forward a request for a concrete path to a provider.

        The path must match one of the provider's active endpoints for the
        same method; query parameters are forwarded unchanged.
        """
        provider = self._active_provider(db, provider_id)
        endpoint = match_endpoint(provider.endpoints, method, path)
        if endpoint is None:
            available = [f"{e.method} {e.path}" for e in provider.endpoints if e.is_active]
            raise NotFoundError(
                "Endpoint not found or not supported",
                data={"available_endpoints": available},
            )

        url = join_url(provider.base_url, path)
        headers = self._provider_headers(provider)

        result = await self._dispatch_and_log(
            db, provider, method.upper(), url, headers, body=body, params=query, endpoint_id=endpoint.id
        )
        return ProxyOutcome(target=provider, result=result, endpoint=endpoint)

    # ------------------------------------------------------------------
    # External APIs
    # ------------------------------------------------------------------

    def _active_external_api(self, db: Session, external_api_id: int):
        external_api = self.external_api_service.require_external_api(db, external_api_id)
        if not external_api.is_active:
            raise InactiveTargetError("External API is not active")
        return external_api

    def _external_api_headers(self, external_api) -> Dict[str, str]:
        descriptors = (
            self.external_api_service.load_auth_configs(external_api)
            if external_api.requires_auth
            else []
        )
        return resolve_auth_headers(external_api.requires_auth, descriptors)

    async def test_external_api(
        self,
        db: Session,
        external_api_id: int,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> ProxyOutcome:
        """Test an external API with explicit path parameters and body."""
        external_api = self._active_external_api(db, external_api_id)
        url = render_path(join_url(external_api.base_url, external_api.endpoint), params)
        _warn_unfilled(url)
        headers = self._external_api_headers(external_api)

        result = await self._dispatch_and_log(
            db, external_api, external_api.method, url, headers, body=body
        )
        return ProxyOutcome(target=external_api, result=result)

    async def proxy_external_api(
        self,
        db: Session,
        external_api_id: int,
        body: Any = None,
        query: Optional[Dict[str, Any]] = None,
    ) -> ProxyOutcome:
        """Forward a request to an external API.

        Top-level keys of a JSON object body fill the path placeholders; the
        body itself is forwarded for non-GET methods.
        """
        external_api = self._active_external_api(db, external_api_id)
        params = body if isinstance(body, dict) else {}
        url = render_path(join_url(external_api.base_url, external_api.endpoint), params)
        _warn_unfilled(url)
        headers = self._external_api_headers(external_api)

        result = await self._dispatch_and_log(
            db, external_api, external_api.method, url, headers, body=body, params=query
        )
        return ProxyOutcome(target=external_api, result=result)
