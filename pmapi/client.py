# pmapi/client.py
from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from pmapi.config.app_config import Settings, load_settings
from pmapi.http.errors import ApiResult
from pmapi.http.transport import Transport
from pmapi.query.builders import Database, TableQuery
from pmapi.services.auth import AuthClient
from pmapi.services.rest_client import RestClient, request
from pmapi.services.rpc import call_rpc
from pmapi.services.storage import StorageClient
from pmapi.services.token_store import KeyValueStorage, LocalStorage


class ApiClient:
    """
    One backend, two error conventions:
      envelope (ApiResult, never raises for HTTP/network failures):
        db.from_(...) builders, rpc(), storage.*
      throwing (ApiError):
        auth.*, request(), rest.*
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self.db = Database(transport)
        self.auth = AuthClient(transport)
        self.storage = StorageClient(transport)
        self.rest = RestClient(transport)

    @property
    def base_url(self) -> str:
        return self.transport.base_url

    def from_(self, table: str) -> TableQuery:
        return self.db.from_(table)

    table = from_

    async def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> ApiResult:
        return await call_rpc(self.transport, name, params)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        return await request(self.transport, endpoint, method, body, headers)


def create_client(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorage] = None,
    session: Optional[requests.Session] = None,
) -> ApiClient:
    settings = settings or load_settings()
    storage = storage if storage is not None else LocalStorage(settings.storage_file)
    transport = Transport(
        settings.api_url, storage, session=session, timeout=settings.timeout
    )
    return ApiClient(transport)
