# pmapi/services/rpc.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from pmapi.http.envelope import send_enveloped
from pmapi.http.errors import ApiResult
from pmapi.http.transport import Transport

logger = logging.getLogger("api.rpc")


async def call_rpc(
    transport: Transport, name: str, params: Optional[Dict[str, Any]] = None
) -> ApiResult:
    """
    POST /rest/v1/rpc/<name> with params as the JSON body.
    Envelope result; a 204 resolves to data=None, error=None.
    """
    if not name or not isinstance(name, str):
        raise ValueError("rpc name (str) is required")
    if params is not None and not isinstance(params, dict):
        raise ValueError("rpc params must be an object")

    return await send_enveloped(
        transport,
        "POST",
        f"/rest/v1/rpc/{quote(name, safe='')}",
        logger=logger,
        operation="rpc",
        target=name,
        body=params if params is not None else {},
    )
