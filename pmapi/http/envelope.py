# pmapi/http/envelope.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from pmapi.http.errors import ApiError, ApiResult
from pmapi.http.headers import parse_content_range_total
from pmapi.http.transport import Transport


async def send_enveloped(
    transport: Transport,
    method: str,
    endpoint: str,
    *,
    logger: logging.Logger,
    operation: str,
    target: str,
    headers: Optional[Dict[str, str]] = None,
    body: Any = None,
    binary: bool = False,
) -> ApiResult:
    """
    Fire one request and fold every outcome into ApiResult; never raises for
    HTTP or network failures.

    Success data is the parsed JSON (None for an empty body) or the raw bytes
    when binary=True. count comes from Content-Range when the backend sends it.
    """
    try:
        resp = await transport.send(method, endpoint, headers=headers, body=body)
    except (requests.RequestException, OSError) as e:
        err = ApiError.from_exception(e)
        logger.warning("%s %s: request failed: %s", operation, target, err.message)
        return ApiResult.failure(err)
    except (TypeError, ValueError) as e:
        # body could not be encoded; nothing was sent
        err = ApiError(
            f"invalid request body: {e}", code="INVALID_REQUEST", details=e
        )
        logger.warning("%s %s: %s", operation, target, err.message)
        return ApiResult.failure(err)

    if not resp.ok:
        err = resp.error()
        logger.warning(
            "%s %s: HTTP %d: %s", operation, target, resp.status, err.message
        )
        return ApiResult.failure(err)

    if binary:
        return ApiResult.success(resp.body, status=resp.status)

    try:
        payload = None if resp.is_empty else resp.json()
    except ValueError as e:
        err = ApiError(
            "invalid JSON in response",
            status=resp.status,
            code="INVALID_RESPONSE",
            details=e,
        )
        logger.warning("%s %s: %s", operation, target, err.message)
        return ApiResult.failure(err)

    count = parse_content_range_total(resp.header("Content-Range"))
    return ApiResult.success(payload, status=resp.status, count=count)
