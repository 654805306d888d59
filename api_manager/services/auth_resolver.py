"""Turn stored auth descriptors into outbound request headers."""

import base64
import logging
from typing import Dict, Iterable, Optional

from api_manager.schemas.auth import ApiKeyAuth, BasicAuth, BearerAuth, OAuth2Auth

logger = logging.getLogger(__name__)

BASE_HEADERS = {"Content-Type": "application/json"}


def select_descriptor(descriptors: Optional[Iterable]):
    """Pick the descriptor used for a call: the first enabled one."""
    for descriptor in descriptors or []:
        if descriptor.enabled:
            return descriptor
    return None


def descriptor_headers(descriptor) -> Dict[str, str]:
    """Headers contributed by a single descriptor."""
    if isinstance(descriptor, ApiKeyAuth):
        return {descriptor.header_name: descriptor.header_value}

    if isinstance(descriptor, BearerAuth):
        if descriptor.scheme == "bearer":
            return {descriptor.header_name: f"Bearer {descriptor.token}"}
        return {descriptor.header_name: descriptor.token}

    if isinstance(descriptor, BasicAuth):
        credentials = f"{descriptor.username}:{descriptor.password}".encode()
        return {"Authorization": f"Basic {base64.b64encode(credentials).decode()}"}

    if isinstance(descriptor, OAuth2Auth):
        logger.warning("OAuth2 token exchange is not supported; sending request without credentials")
        return {}

    return {}


def resolve_auth_headers(requires_auth: bool, descriptors: Optional[Iterable]) -> Dict[str, str]:
    """Build the headers for an outbound call.

    Always contains ``Content-Type: application/json``. Credentials are added
    only when ``requires_auth`` is set, from the first enabled descriptor.

    Args:
        requires_auth: The target's auth requirement flag.
        descriptors: The target's auth descriptors, in stored order.

    Returns:
        Header name to value mapping.
    """
    headers = dict(BASE_HEADERS)
    if not requires_auth:
        return headers

    descriptor = select_descriptor(descriptors)
    if descriptor is None:
        logger.warning("Target requires auth but has no enabled auth config")
        return headers

    headers.update(descriptor_headers(descriptor))
    return headers
