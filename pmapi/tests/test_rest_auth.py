import asyncio
import json

import pytest
import requests

from pmapi.http.errors import ApiError
from pmapi.models.messages import Session, User

BASE = "http://api.test"


# ---- convenience rest client ----


def test_get_soft_404_returns_empty_list(client, respond):
    respond(404, {"message": "not found"})
    assert asyncio.run(client.rest.get("/api/projects/p1/suppliers")) == []


def test_get_appends_params_skipping_none(client, respond, last_request):
    respond(200, [{"id": 1}])
    out = asyncio.run(client.rest.get("/api/duplicate-check", {"name": "Acme", "phone": None, "limit": 5}))
    assert out == [{"id": 1}]
    assert last_request()["url"] == BASE + "/api/duplicate-check?name=Acme&limit=5"


def test_non_2xx_raises_with_backend_message(client, respond):
    respond(409, {"message": "X", "code": "DUPLICATE_ENTRY"})
    with pytest.raises(ApiError) as exc:
        asyncio.run(client.rest.post("/api/things", {"a": 1}))
    assert exc.value.message == "X"
    assert str(exc.value) == "X"
    assert exc.value.status == 409


def test_get_non_404_errors_still_raise(client, respond):
    respond(500, raw=b"oops", headers={"Content-Type": "text/plain"})
    with pytest.raises(ApiError, match="HTTP 500"):
        asyncio.run(client.rest.get("/api/things"))


def test_delete_empty_body_synthesizes_count(client, respond):
    respond(204)
    assert asyncio.run(client.rest.delete("/api/things/1")) == {"deleted": 0}


def test_delete_404_throws_unlike_table_delete(client, respond):
    respond(404, {"message": "missing"})
    with pytest.raises(ApiError, match="missing"):
        asyncio.run(client.rest.delete("/x/missing"))


def test_put_and_patch_send_json(client, respond, last_request):
    respond(200, {"ok": True})
    asyncio.run(client.rest.put("/api/things/1", {"a": 1}))
    assert last_request()["method"] == "PUT"
    assert json.loads(last_request()["data"]) == {"a": 1}
    asyncio.run(client.rest.patch("/api/things/1", {"b": 2}))
    assert last_request()["method"] == "PATCH"


def test_network_error_raises_api_error(client, session):
    session.request.side_effect = requests.ConnectionError("down")
    with pytest.raises(ApiError) as exc:
        asyncio.run(client.request("/anything"))
    assert exc.value.code == "NETWORK_ERROR"
    assert isinstance(exc.value.__cause__, requests.ConnectionError)


def test_request_returns_none_for_empty_body(client, respond):
    respond(204)
    assert asyncio.run(client.request("/auth/v1/logout", "POST")) is None


# ---- auth ----


def _session_payload():
    return {
        "access_token": "a.b.c",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": 1700000000,
        "refresh_token": "r1",
        "user": {
            "id": "u1",
            "email": "pm@example.com",
            "user_metadata": {"full_name": "PM", "role": "admin", "avatar_url": None},
            "created_at": "2024-01-01T00:00:00Z",
        },
    }


def test_sign_in_parses_session_and_does_not_store_tokens(client, respond, last_request, token_storage):
    respond(200, _session_payload())
    session = asyncio.run(client.auth.sign_in("pm@example.com", "secret"))
    assert isinstance(session, Session)
    assert session.user.user_metadata.role == "admin"
    assert last_request()["url"] == BASE + "/auth/v1/token?grant_type=password"
    assert json.loads(last_request()["data"]) == {"email": "pm@example.com", "password": "secret"}
    assert token_storage.get_item("access_token") == "tok-1"


def test_sign_in_failure_throws(client, respond):
    respond(401, {"message": "邮箱或密码错误"})
    with pytest.raises(ApiError) as exc:
        asyncio.run(client.auth.sign_in("pm@example.com", "bad"))
    assert exc.value.status == 401


def test_get_and_update_user(client, respond, last_request):
    respond(200, _session_payload()["user"])
    user = asyncio.run(client.auth.get_user())
    assert isinstance(user, User) and user.id == "u1"

    asyncio.run(client.auth.update_user(full_name="New Name"))
    req = last_request()
    assert req["method"] == "PUT"
    assert json.loads(req["data"]) == {"full_name": "New Name"}


def test_update_password_and_sign_up(client, respond, last_request):
    respond(200, {"message": "ok"})
    asyncio.run(client.auth.update_password("old", "newpass"))
    assert json.loads(last_request()["data"]) == {"old_password": "old", "new_password": "newpass"}

    respond(201, {"user": {"id": "u2"}, "session": None})
    out = asyncio.run(client.auth.sign_up("n@example.com", "pw123456", full_name="N"))
    assert out.user == {"id": "u2"}
    assert last_request()["url"] == BASE + "/auth/v1/signup"
