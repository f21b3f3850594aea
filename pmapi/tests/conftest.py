import json
from unittest.mock import MagicMock

import pytest

from pmapi.client import create_client
from pmapi.config.app_config import Settings
from pmapi.services.token_store import MemoryStorage

BASE = "http://api.test"


def make_response(status=200, body=None, headers=None, raw=None):
    resp = MagicMock()
    resp.status_code = status
    hdrs = {}
    if raw is not None:
        content = raw
    elif body is None:
        content = b""
    else:
        content = json.dumps(body).encode("utf-8")
        hdrs["Content-Type"] = "application/json; charset=utf-8"
    hdrs.update(headers or {})
    resp.headers = hdrs
    resp.content = content
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def token_storage():
    return MemoryStorage({"access_token": "tok-1"})


@pytest.fixture
def client(session, token_storage):
    return create_client(Settings(api_url=BASE), storage=token_storage, session=session)


@pytest.fixture
def respond(session):
    """respond(status, body, headers=None, raw=None) -> next response(s)."""

    def _respond(status=200, body=None, headers=None, raw=None):
        session.request.return_value = make_response(status, body, headers, raw)

    return _respond


@pytest.fixture
def last_request(session):
    def _last():
        args, kwargs = session.request.call_args
        out = {"method": args[0], "url": args[1]}
        out.update(kwargs)
        return out

    return _last
