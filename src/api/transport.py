# manages the http connection to the REST backend, provides helpers internal to api package
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx

from db import store
from utils import config
from utils.logger import get_logger

_logger = get_logger(__name__)

BASE_URL = config.API_BASE_URL or config.MOCK_BASE_URL
TIMEOUT = config.API_TIMEOUT

# set to an httpx.MockTransport to talk to the in-process mock backend
_transport: Optional[httpx.AsyncBaseTransport] = None


class ApiError(Exception):
    """
    Raised for non-2xx responses and transport failures.
    status is None when no response was received.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class NotFoundError(ApiError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, 404)


def use_transport(transport: Optional[httpx.AsyncBaseTransport]) -> None:
    """Route all requests through the given transport (None restores the network)."""
    global _transport
    _transport = transport


async def auth_headers() -> Dict[str, str]:
    """Bearer header if a token is stored; the header is omitted otherwise."""
    token = await store.get_token()
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


@asynccontextmanager
async def connect() -> httpx.AsyncClient:
    """Async context manager yielding a client bound to the backend base URL."""
    client = httpx.AsyncClient(
        base_url=BASE_URL,
        timeout=TIMEOUT,
        transport=_transport,
        headers={"Accept": "application/json", **await auth_headers()},
    )
    try:
        yield client
    finally:
        await client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


async def request(
    method: str,
    path: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    json: Any = None,
) -> Any:
    """
    Issue one request and return the decoded JSON body.
    Raises NotFoundError on 404 and ApiError on any other failure.
    """
    _logger.debug(f"{method} {path} params={params}")
    try:
        async with connect() as client:
            response = await client.request(method, path, params=params, json=json)
    except httpx.HTTPError as e:
        _logger.warning(f"{method} {path} failed: {e!r}")
        raise ApiError(f"Network error: {e}") from e

    if response.status_code == 404:
        raise NotFoundError(_error_message(response))
    if response.is_error:
        message = _error_message(response)
        _logger.warning(f"{method} {path} -> {response.status_code}: {message}")
        raise ApiError(message, response.status_code)
    if not response.content:
        return None
    return response.json()
