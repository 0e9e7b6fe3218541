"""Shared request helper for the async HTTP clients.

Transport failures are turned into typed upstream errors so callers can tell
"service down" from "service answered with no route".
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..core.errors import UpstreamTimeoutError, UpstreamUnavailableError


async def request(
    method: str,
    base_urls: List[str],
    path: str,
    *,
    provider: str,
    timeout_s: float,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    chain: Optional[str] = None,
    **kwargs: Any,
) -> httpx.Response:
    """Try each base URL in order and return the first successful response.

    An empty ``path`` posts to the base URL itself (JSON-RPC endpoints).
    HTTP status errors are raised as-is so the caller can read the body;
    timeouts and connection failures move on to the next host.
    """
    last_error: Optional[Exception] = None

    for index, base_url in enumerate(base_urls):
        try:
            async with httpx.AsyncClient(base_url=base_url, timeout=timeout_s, transport=transport) as client:
                response = await client.request(method, path or base_url, headers=headers, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as exc:
            # Some hosts omit routes; fall through when another host exists.
            if exc.response.status_code in (404, 405) and index < len(base_urls) - 1:
                last_error = exc
                continue
            raise
        except httpx.RequestError as exc:
            last_error = exc
            continue

    operation = f"{provider} {method} {path}"
    if isinstance(last_error, httpx.TimeoutException):
        raise UpstreamTimeoutError(operation, provider=provider, chain=chain) from last_error
    if last_error is not None:
        raise UpstreamUnavailableError(operation, provider=provider, chain=chain, reason=str(last_error)) from last_error
    raise UpstreamUnavailableError(operation, provider=provider, chain=chain, reason="no hosts configured")


def to_int(value: Any, default: int = 0) -> int:
    """Parse decimal or 0x-hex integers as returned by routing APIs."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    text = str(value)
    try:
        return int(text, 16) if text.startswith("0x") else int(text)
    except ValueError:
        return default


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
