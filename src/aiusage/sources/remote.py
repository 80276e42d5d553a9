from __future__ import annotations

import httpx
import structlog

from aiusage.errors import AuthFailure, MalformedRecord, NetworkFailure, ProviderTimeout, RateLimited

logger = structlog.get_logger()

USER_AGENT = "aiusage/0.1"


def make_client(timeout: float, headers: dict[str, str] | None = None) -> httpx.AsyncClient:
    merged = {"Accept": "application/json", "User-Agent": USER_AGENT}
    merged.update(headers or {})
    return httpx.AsyncClient(timeout=timeout, headers=merged)


async def get_json(client: httpx.AsyncClient, url: str, params: dict[str, object] | None = None) -> dict:
    """GET ``url`` and decode a JSON object, mapping failures onto the error taxonomy.

    There are no retries: a failed request fails the provider row.
    """
    logger.debug("remote_get", url=url)
    try:
        resp = await client.get(url, params=params)
    except httpx.TimeoutException as exc:
        timeout = client.timeout.read or 0.0
        raise ProviderTimeout(timeout) from exc
    except httpx.HTTPError as exc:
        raise NetworkFailure(f"network error: {exc}") from exc

    status = resp.status_code
    if status == 401:
        raise AuthFailure("authentication failed (401): check the token")
    if status == 403:
        raise AuthFailure("permission denied (403): token lacks the required scope")
    if status == 404:
        raise NetworkFailure("endpoint not found (404)")
    if status == 429:
        raise RateLimited("rate limited (429): try again later")
    if status >= 400:
        raise NetworkFailure(f"unexpected HTTP status {status}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise MalformedRecord(f"response from {url} is not JSON") from exc
    if not isinstance(data, dict):
        raise MalformedRecord(f"response from {url} is not a JSON object")
    return data
