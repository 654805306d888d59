"""Path template substitution and matching."""

import re
from typing import Any, Iterable, Mapping, Optional

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


def render_path(template: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Replace ``{key}`` placeholders with values from ``params``.

    Every occurrence of each key present in ``params`` is replaced with
    ``str(value)``. Placeholders without a matching key stay as they are.
    Values are interpolated as given, without URL encoding.
    """
    result = template
    for key, value in (params or {}).items():
        result = result.replace("{" + str(key) + "}", str(value))
    return result


def placeholders(template: str) -> list:
    """Names of the placeholders in a template, in order of appearance."""
    return _PLACEHOLDER.findall(template)


def template_to_regex(template: str) -> "re.Pattern":
    """Compile a template into a regex matching concrete paths.

    Each placeholder matches exactly one path segment. A leading slash is
    optional on both sides.
    """
    parts = _PLACEHOLDER.split(template.lstrip("/"))
    # split() alternates literal text and placeholder names
    pattern = "".join(
        re.escape(part) if i % 2 == 0 else "[^/]+"
        for i, part in enumerate(parts)
    )
    return re.compile(f"^{pattern}$")


def match_endpoint(endpoints: Iterable, method: str, path: str):
    """Find the active endpoint whose method and template match ``path``.

    Exact template matches win over placeholder matches so that
    ``/posts/latest`` is preferred to ``/posts/{id}``.

    Args:
        endpoints: Objects with ``path``, ``method`` and ``is_active``.
        method: HTTP method of the inbound request.
        path: Concrete path, with or without a leading slash.

    Returns:
        The matching endpoint or None.
    """
    method = method.upper()
    clean_path = path.lstrip("/")
    candidates = [e for e in endpoints if e.is_active and e.method == method]

    for endpoint in candidates:
        if endpoint.path.lstrip("/") == clean_path:
            return endpoint

    for endpoint in candidates:
        if template_to_regex(endpoint.path).match(clean_path):
            return endpoint

    return None


def join_url(base_url: str, path: str) -> str:
    """Join a base URL and a path with exactly one slash between them."""
    if not path:
        return base_url
    return base_url.rstrip("/") + "/" + path.lstrip("/")
