import asyncio
import json

import pytest
import requests

from pmapi.models.messages import SignedUrl, StorageObject

BASE = "http://api.test"


# ---- rpc ----


def test_rpc_posts_params_as_json(client, respond, last_request):
    respond(200, {"total": 3})
    res = asyncio.run(client.rpc("project_stats", {"project_id": "p1"}))
    req = last_request()
    assert req["method"] == "POST"
    assert req["url"] == BASE + "/rest/v1/rpc/project_stats"
    assert json.loads(req["data"]) == {"project_id": "p1"}
    assert res.data == {"total": 3}
    assert res.error is None


def test_rpc_204_is_empty_success(client, respond):
    respond(204)
    res = asyncio.run(client.rpc("touch"))
    assert (res.data, res.error) == (None, None)


def test_rpc_failure_is_enveloped(client, respond, session):
    respond(500, {"message": "function failed"})
    res = asyncio.run(client.rpc("broken"))
    assert res.data is None
    assert res.error.message == "function failed"

    session.request.side_effect = requests.Timeout("timed out")
    res = asyncio.run(client.rpc("slow"))
    assert res.error.code == "NETWORK_ERROR"


# ---- storage ----


def test_upload_is_multipart_and_returns_object(client, respond, last_request):
    respond(
        201,
        {
            "Key": "proj/1/logo-123.png",
            "bucket": "avatars",
            "path": "proj/1/logo-123.png",
            "url": "http://cdn/avatars/proj/1/logo-123.png",
            "size": 4,
            "mimetype": "image/png",
        },
    )
    res = asyncio.run(client.storage.upload("avatars", "proj/1/logo.png", b"\x89PNG"))

    req = last_request()
    assert req["url"] == BASE + "/storage/v1/object/avatars/proj/1/logo.png"
    assert "Content-Type" not in req["headers"]
    assert req["headers"]["Authorization"] == "Bearer tok-1"
    assert req["files"] == [("file", ("logo.png", b"\x89PNG", "image/png"))]

    assert isinstance(res.data, StorageObject)
    assert res.data.path == "proj/1/logo-123.png"
    assert res.data.size == 4
    assert res.data.checksum is None


def test_download_returns_bytes(client, respond, last_request):
    respond(200, raw=b"%PDF-1.7", headers={"Content-Type": "application/pdf"})
    res = asyncio.run(client.storage.from_("contracts").download("c/1.pdf"))
    assert res.data == b"%PDF-1.7"
    assert last_request()["headers"]["Accept"] == "*/*"


def test_public_url_needs_no_request(client, session):
    url = client.storage.get_public_url("avatars", "u/1.png")
    assert url == BASE + "/storage/v1/object/public/avatars/u/1.png"
    session.request.assert_not_called()


def test_remove_sends_prefixes(client, respond, last_request):
    respond(200, {"message": "ok", "bucket": "docs", "deleted": 2})
    res = asyncio.run(client.storage.remove("docs", ["a.txt", "b/c.txt"]))
    req = last_request()
    assert req["url"] == BASE + "/storage/v1/object/delete/docs"
    assert json.loads(req["data"]) == {"prefixes": ["a.txt", "b/c.txt"]}
    assert res.data["deleted"] == 2


def test_remove_requires_paths(client):
    with pytest.raises(ValueError):
        asyncio.run(client.storage.remove("docs", []))


def test_list_buckets_unwraps(client, respond):
    respond(200, {"buckets": [{"name": "avatars"}]})
    res = asyncio.run(client.storage.list_buckets())
    assert res.data == [{"name": "avatars"}]


def test_list_files_with_prefix(client, respond, last_request):
    respond(200, {"bucket": "docs", "prefix": "p1", "files": [{"name": "p1/a.txt", "size": 10, "lastModified": "2024-01-01"}]})
    res = asyncio.run(client.storage.from_("docs").list("p1"))
    assert last_request()["url"] == BASE + "/storage/v1/bucket/docs/p1"
    assert res.data[0].name == "p1/a.txt"
    assert res.data[0].last_modified == "2024-01-01"


def test_signed_url(client, respond, last_request):
    respond(200, {"signedURL": "http://minio/x?sig=1", "path": "a.txt", "bucket": "docs", "expiresIn": 60})
    res = asyncio.run(client.storage.create_signed_url("docs", "a.txt", expires_in=60))
    assert json.loads(last_request()["data"]) == {"expiry": 60, "method": "GET"}
    assert isinstance(res.data, SignedUrl)
    assert res.data.signed_url == "http://minio/x?sig=1"


def test_storage_failures_are_enveloped(client, respond):
    respond(413, {"message": "file too large"})
    res = asyncio.run(client.storage.upload("avatars", "big.bin", b"0" * 10))
    assert res.data is None
    assert res.error.message == "file too large"


def test_malformed_upload_response_is_an_error(client, respond):
    respond(201, {"bucket": "avatars"})
    res = asyncio.run(client.storage.upload("avatars", "a.png", b"x"))
    assert res.data is None
    assert res.error.code == "INVALID_RESPONSE"
