# pmapi/services/rest_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from pmapi.http.errors import ApiError
from pmapi.http.transport import HttpResponse, Transport

logger = logging.getLogger("api.rest")


def _with_params(endpoint: str, params: Optional[Dict[str, Any]]) -> str:
    if not params:
        return endpoint
    kept = [(k, str(v)) for k, v in params.items() if v is not None]
    if not kept:
        return endpoint
    sep = "&" if "?" in endpoint else "?"
    return f"{endpoint}{sep}{urlencode(kept)}"


def _payload(resp: HttpResponse) -> Any:
    if resp.is_empty:
        return None
    try:
        return resp.json()
    except ValueError as e:
        raise ApiError(
            "invalid JSON in response", status=resp.status, code="INVALID_RESPONSE", details=e
        ) from e


async def _send(
    transport: Transport,
    method: str,
    endpoint: str,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> HttpResponse:
    try:
        return await transport.send(method, endpoint, headers=headers, body=body)
    except (requests.RequestException, OSError) as e:
        logger.debug("%s %s: request failed: %s", method, endpoint, e)
        raise ApiError.from_exception(e) from e


async def request(
    transport: Transport,
    endpoint: str,
    method: str = "GET",
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """
    Throwing convention: returns the parsed payload (None for an empty body)
    and raises ApiError on any non-2xx or network failure.
    """
    resp = await _send(transport, method, endpoint, body, headers)
    if not resp.ok:
        err = resp.error()
        logger.debug("%s %s: HTTP %d: %s", method, endpoint, resp.status, err.message)
        raise err
    return _payload(resp)


class RestClient:
    """
    Verb helpers for endpoints outside the table grammar. Raises ApiError on
    failure, with two deliberate soft spots: get() treats 404 as an empty
    list, delete() treats an empty body as {"deleted": 0}.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = _with_params(endpoint, params)
        resp = await _send(self._transport, "GET", url)
        if resp.status == 404:
            # list endpoints answer 404 for "nothing here"
            return []
        if not resp.ok:
            raise resp.error()
        return _payload(resp)

    async def post(self, endpoint: str, data: Any = None, headers: Optional[Dict[str, str]] = None) -> Any:
        return await request(self._transport, endpoint, "POST", data, headers)

    async def put(self, endpoint: str, data: Any = None) -> Any:
        return await request(self._transport, endpoint, "PUT", data)

    async def patch(self, endpoint: str, data: Any = None) -> Any:
        return await request(self._transport, endpoint, "PATCH", data)

    async def delete(self, endpoint: str) -> Any:
        payload = await request(self._transport, endpoint, "DELETE")
        if payload is None:
            return {"deleted": 0}
        return payload
