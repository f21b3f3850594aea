# pmapi/http/transport.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time as dt_time
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import asyncio
import json
import logging
import mimetypes
import threading
import time

import requests

from pmapi.http.errors import ApiError
from pmapi.http.headers import decode_text, get_ci, parse_json_body
from pmapi.logging_utils import current_correlation_id
from pmapi.services.token_store import KeyValueStorage, get_token

logger = logging.getLogger("api.transport")

_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD")


def _guess_ct(filename: str | None, fallback: str = "application/octet-stream") -> str:
    if not filename:
        return fallback
    ctype, _ = mimetypes.guess_type(filename)
    return ctype or fallback


def json_default(o: Any) -> Any:
    """json.dumps hook for the column values rows commonly carry."""
    if isinstance(o, (datetime, date, dt_time)):
        return o.isoformat()
    if isinstance(o, (Decimal, UUID)):
        return str(o)
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def encode_json_body(body: Any) -> bytes:
    return json.dumps(body, ensure_ascii=False, default=json_default).encode("utf-8")


# ---- multipart container ----


class FormData:
    """
    Multipart body. Plain values become form fields; bytes, file objects and
    Paths become file parts. The transport never sets Content-Type for it,
    requests writes the header together with the boundary.
    """

    def __init__(self) -> None:
        self._fields: List[Tuple[str, str]] = []
        self._files: List[Tuple[str, Tuple[str, Any, str]]] = []

    def append(
        self,
        name: str,
        value: Any,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> "FormData":
        if not name:
            raise ValueError("FormData field name is required")

        if isinstance(value, Path):
            if not value.is_file():
                raise ValueError(f"file not found or not a file: {value}")
            filename = filename or value.name
            value = value.read_bytes()

        is_file = (
            filename is not None
            or isinstance(value, (bytes, bytearray))
            or hasattr(value, "read")
        )
        if not is_file:
            self._fields.append((name, "" if value is None else str(value)))
            return self

        if not filename:
            filename = Path(str(getattr(value, "name", "") or "upload.bin")).name
        if isinstance(value, bytearray):
            value = bytes(value)
        ctype = content_type or _guess_ct(filename)
        self._files.append((name, (filename, value, ctype)))
        return self

    @property
    def fields(self) -> List[Tuple[str, str]]:
        return list(self._fields)

    @property
    def files(self) -> List[Tuple[str, Tuple[str, Any, str]]]:
        return list(self._files)


# ---- response model ----


@dataclass
class HttpResponse:
    status: int
    url: str
    headers: Dict[str, str]
    body: bytes
    elapsed_ms: int

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_empty(self) -> bool:
        return self.status == 204 or not self.body or not self.body.strip()

    def header(self, name: str) -> Optional[str]:
        return get_ci(self.headers, name)

    def json(self) -> Any:
        return parse_json_body(self.body, self.headers)

    def text(self) -> str:
        return decode_text(self.body, self.headers)

    def error(self) -> ApiError:
        return ApiError.from_response(self)


# ---- sender ----


class Transport:
    """
    Single entry point for every HTTP call the client makes.

    send() attaches Content-Type / Authorization / X-Correlation-ID, runs the
    blocking requests call in a worker thread and returns an HttpResponse for
    any status. Network-level failures raise requests.RequestException; a
    body that cannot be encoded raises TypeError/ValueError before any I/O.

    The session is not thread-safe, so calls into it are serialized with a
    lock held only inside the worker thread.
    """

    def __init__(
        self,
        base_url: str,
        storage: KeyValueStorage,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self.session = session or requests.Session()
        self.timeout = timeout
        self._lock = threading.Lock()

    def url_for(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return f"{self.base_url}{endpoint}"

    def build_headers(
        self, headers: Optional[Dict[str, str]] = None, body: Any = None
    ) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if not isinstance(body, FormData):
            out["Content-Type"] = "application/json"
        for k, v in (headers or {}).items():
            if isinstance(body, FormData) and k.lower() == "content-type":
                continue
            # caller headers replace defaults case-insensitively
            for existing in [e for e in out if e.lower() == k.lower()]:
                del out[existing]
            out[k] = v

        # read lazily so a token swapped after the chain was built is used
        token = get_token(self.storage)
        if token:
            out["Authorization"] = f"Bearer {token}"

        cid = current_correlation_id()
        if cid:
            out.setdefault("X-Correlation-ID", cid)
        return out

    @staticmethod
    def _body_kwargs(body: Any) -> Dict[str, Any]:
        if body is None:
            return {}
        if isinstance(body, FormData):
            return {"data": body.fields, "files": body.files}
        if isinstance(body, (dict, list)):
            return {"data": encode_json_body(body)}
        if isinstance(body, str):
            return {"data": body.encode("utf-8")}
        if isinstance(body, (bytes, bytearray)):
            return {"data": bytes(body)}
        raise ValueError("Unsupported body type; expected dict/list/str/bytes/FormData")

    def send_sync(
        self,
        method: str,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> HttpResponse:
        method = method.upper()
        if method not in _METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        url = self.url_for(endpoint)
        hdrs = self.build_headers(headers, body)
        kwargs = self._body_kwargs(body)

        t0 = time.time()
        try:
            with self._lock:
                resp = self.session.request(
                    method, url, headers=hdrs, timeout=self.timeout, **kwargs
                )
        except requests.RequestException as e:
            logger.debug("%s %s failed after %dms: %s", method, url, int((time.time() - t0) * 1000), e)
            raise

        out = HttpResponse(
            status=resp.status_code,
            url=url,
            headers=dict(resp.headers or {}),
            body=resp.content or b"",
            elapsed_ms=int((time.time() - t0) * 1000),
        )
        logger.debug("%s %s -> %d %dms", method, url, out.status, out.elapsed_ms)
        return out

    async def send(
        self,
        method: str,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> HttpResponse:
        return await asyncio.to_thread(self.send_sync, method, endpoint, headers, body)
