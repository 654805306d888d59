"""Error types raised by services and translated into response envelopes."""

from typing import Any, Dict, List, Optional


class APIManagerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.data = data
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class ValidationError(APIManagerError):
    """Missing or malformed input."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class NotFoundError(APIManagerError):
    status_code = 404


class ConflictError(APIManagerError):
    """Duplicate unique key on create or update."""

    status_code = 400


class InactiveTargetError(APIManagerError):
    """Dispatch requested against a disabled provider or external API."""

    status_code = 400


class UpstreamDispatchError(APIManagerError):
    """The outbound call failed or returned a non-2xx status."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status: int = 0,
        url: str = "",
        duration_ms: int = 0,
        data: Any = None,
    ):
        super().__init__(message)
        self.status = status
        self.url = url
        self.duration_ms = duration_ms
        self.upstream_data = data

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["data"] = {
            "status": self.status,
            "duration": self.duration_ms,
            "error": self.upstream_data,
        }
        return payload


class PersistenceError(APIManagerError):
    status_code = 500


class ConfigurationError(APIManagerError):
    """Required configuration is missing or malformed; the process cannot start."""

    status_code = 500
