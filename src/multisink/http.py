"""
HTTP POST delivery.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx

from .exceptions import DeliveryError

# Request options forwarded to ``httpx.AsyncClient.request``. ``method`` and
# ``timeout`` are consumed separately.
REQUEST_OPTION_KEYS = frozenset(
    {"method", "headers", "params", "cookies", "auth", "follow_redirects", "timeout", "extensions"}
)

POST_OPTIONS: Mapping[str, Any] = {"method": "POST"}


def merge_post_options(options: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Merge user request options with the fixed POST method."""
    return {**(options or {}), **POST_OPTIONS}


async def post_payload(
    url: str,
    payload: str,
    *,
    options: Mapping[str, Any],
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: Optional[float] = None,
) -> dict[str, Any]:
    """POST ``payload`` to ``url`` and read the full response.

    Any status code counts as delivered. Connection failures and responses cut
    off before the body is complete raise ``DeliveryError``.
    """
    request_options = dict(options)
    method = request_options.pop("method")
    timeout = request_options.pop("timeout", timeout)

    async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
        try:
            response = await client.request(method, url, content=payload.encode("utf-8"), **request_options)
        except httpx.HTTPError as exc:
            raise DeliveryError(target=url, reason=str(exc) or type(exc).__name__) from exc

    return {
        "status": response.status_code,
        "headers": dict(response.headers),
        "body": response.text,
    }
