"""Outbound HTTP dispatcher for proxied calls."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from api_manager.config import settings
from api_manager.errors import UpstreamDispatchError

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of one outbound call that produced an HTTP response."""

    method: str
    url: str
    status_code: int
    status_text: str
    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None
    duration_ms: int = 0
    response_size: int = 0

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000))


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class Dispatcher:
    """Issues single outbound requests through a shared ``httpx.AsyncClient``.

    The client is opened at application startup and closed at shutdown. Each
    call makes exactly one attempt bounded by the target's timeout; there is
    no retry.
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: Optional[str] = None,
    ):
        """Initialize dispatcher.

        Args:
            transport: Optional httpx transport (tests pass a MockTransport).
            user_agent: User-Agent sent upstream (defaults to settings.proxy_user_agent).
        """
        self.transport = transport
        self.user_agent = user_agent or settings.proxy_user_agent
        self._client: Optional[httpx.AsyncClient] = None

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self.transport,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
            )
            logger.info("Outbound HTTP client opened")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Outbound HTTP client closed")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        """Get the HTTP client.

        Raises:
            RuntimeError: If the dispatcher has not been opened.
        """
        if self._client is None:
            raise RuntimeError("Dispatcher must be opened before dispatching")
        return self._client

    async def dispatch(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        timeout_ms: Optional[int] = None,
    ) -> DispatchResult:
        """Perform one outbound request.

        Args:
            method: HTTP method.
            url: Fully resolved URL.
            headers: Headers to send (auth and content type).
            body: JSON body, sent only for non-GET methods.
            params: Query string parameters.
            timeout_ms: Timeout bound in milliseconds.

        Returns:
            DispatchResult for any HTTP response, including non-2xx ones.

        Raises:
            UpstreamDispatchError: If no response was received (network error,
                invalid URL, unencodable request or timeout). ``status`` is 0.
        """
        client = self._get_client()
        method = method.upper()
        timeout_ms = timeout_ms or settings.default_timeout_ms

        request_kwargs: Dict[str, Any] = {
            "headers": headers or {},
            "params": params or None,
            "timeout": httpx.Timeout(timeout_ms / 1000),
        }
        if method != "GET" and body is not None:
            request_kwargs["json"] = body

        started = time.perf_counter()
        try:
            # httpx bounds each connect/read/write step; this bounds the whole call
            response = await asyncio.wait_for(
                client.request(method, url, **request_kwargs), timeout_ms / 1000
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            duration = _elapsed_ms(started)
            logger.error(f"Timeout after {duration}ms for {method} {url}")
            raise UpstreamDispatchError(
                f"Request timed out after {timeout_ms}ms",
                url=url,
                duration_ms=duration,
            )
        except (httpx.RequestError, httpx.InvalidURL, ValueError) as e:
            # ValueError covers requests httpx cannot build, e.g. non-ASCII header values
            duration = _elapsed_ms(started)
            message = str(e) or e.__class__.__name__
            logger.error(f"Request error for {method} {url}: {message}")
            raise UpstreamDispatchError(message, url=url, duration_ms=duration)

        duration = _elapsed_ms(started)
        result = DispatchResult(
            method=method,
            url=url,
            status_code=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            data=_parse_body(response),
            duration_ms=duration,
            response_size=len(response.content),
        )

        if result.success:
            logger.info(f"{method} {url} -> {response.status_code} in {duration}ms")
        else:
            logger.warning(f"{method} {url} -> {response.status_code} in {duration}ms")
        return result
