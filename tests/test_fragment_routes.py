"""Tests for the fragments HTTP API."""

import hashlib

import pytest
from fastapi import Request

from fragments.exceptions import PayloadTooLargeError
from fragments.routes.fragment_routes import read_body
from fragments.schemas import ErrorResponse


def create(client, auth, body=b"hello", content_type="text/plain"):
    response = client.post(
        "/v1/fragments",
        content=body,
        headers={"Content-Type": content_type},
        auth=auth,
    )
    assert response.status_code == 201, response.text
    return response.json()["fragment"]


def assert_error(response, status_code):
    assert response.status_code == status_code
    body = ErrorResponse.model_validate(response.json())
    assert body.status == "error"
    assert body.error.code == status_code
    assert body.error.message


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == "fragments"


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_openapi_documents_error_envelope(client):
    schemas = client.get("/openapi.json").json()["components"]["schemas"]
    assert "ErrorResponse" in schemas


def test_request_id_header(client):
    response = client.get("/health")
    assert len(response.headers["X-Request-ID"]) == 36


class TestAuthentication:
    def test_missing_credentials(self, client):
        response = client.get("/v1/fragments")
        assert response.status_code == 401

    def test_wrong_password(self, client):
        response = client.get("/v1/fragments", auth=("user1@email.com", "nope"))
        assert_error(response, 401)
        assert response.headers["WWW-Authenticate"] == "Basic"

    def test_unknown_user(self, client):
        response = client.get("/v1/fragments", auth=("ghost@email.com", "password1"))
        assert_error(response, 401)

    def test_valid_credentials(self, client, user1):
        response = client.get("/v1/fragments", auth=user1)
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "fragments": []}


class TestCreateFragment:
    def test_create_returns_metadata_and_location(self, client, user1):
        response = client.post(
            "/v1/fragments",
            content=b"hello world",
            headers={"Content-Type": "text/plain; charset=utf-8"},
            auth=user1,
        )

        assert response.status_code == 201
        body = response.json()
        fragment = body["fragment"]
        assert body["status"] == "ok"
        assert fragment["ownerId"] == hashlib.sha256(b"user1@email.com").hexdigest()
        assert fragment["type"] == "text/plain; charset=utf-8"
        assert fragment["size"] == 11
        assert fragment["created"] and fragment["updated"]
        assert response.headers["Location"] == f"http://testserver/v1/fragments/{fragment['id']}"

    def test_location_uses_configured_api_url(self, client, user1, monkeypatch):
        monkeypatch.setattr("fragments.config.API_URL", "https://fragments.example.com/")

        response = client.post(
            "/v1/fragments", content=b"x", headers={"Content-Type": "text/plain"}, auth=user1
        )

        fragment_id = response.json()["fragment"]["id"]
        assert response.headers["Location"] == f"https://fragments.example.com/v1/fragments/{fragment_id}"

    def test_unsupported_type(self, client, user1):
        response = client.post(
            "/v1/fragments", content=b"ID3", headers={"Content-Type": "audio/mpeg"}, auth=user1
        )
        assert_error(response, 415)

    def test_malformed_content_type(self, client, user1):
        response = client.post(
            "/v1/fragments", content=b"x", headers={"Content-Type": "not a type"}, auth=user1
        )
        assert_error(response, 415)

    def test_empty_body(self, client, user1):
        response = client.post(
            "/v1/fragments", content=b"", headers={"Content-Type": "text/plain"}, auth=user1
        )
        assert_error(response, 400)

    def test_body_too_large(self, client, user1, monkeypatch):
        monkeypatch.setattr("fragments.config.MAX_BODY_BYTES", 4)

        response = client.post(
            "/v1/fragments", content=b"12345", headers={"Content-Type": "text/plain"}, auth=user1
        )
        assert_error(response, 413)

    def test_streamed_body_too_large(self, client, user1, monkeypatch):
        monkeypatch.setattr("fragments.config.MAX_BODY_BYTES", 4)

        response = client.post(
            "/v1/fragments",
            content=iter([b"12", b"34", b"56"]),
            headers={"Content-Type": "text/plain"},
            auth=user1,
        )
        assert_error(response, 413)

    def test_replace_body_too_large(self, client, user1, monkeypatch):
        fragment = create(client, user1, b"ok")
        monkeypatch.setattr("fragments.config.MAX_BODY_BYTES", 4)

        response = client.put(
            f"/v1/fragments/{fragment['id']}",
            content=b"12345",
            headers={"Content-Type": "text/plain"},
            auth=user1,
        )
        assert_error(response, 413)


def make_request(headers, chunks):
    messages = [
        {"type": "http.request", "body": chunk, "more_body": index < len(chunks) - 1}
        for index, chunk in enumerate(chunks)
    ]

    async def receive():
        assert messages, "body read past the last chunk"
        return messages.pop(0)

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/v1/fragments",
        "query_string": b"",
        "headers": [(name.encode("latin-1"), value.encode("latin-1")) for name, value in headers.items()],
    }
    return Request(scope, receive), messages


class TestReadBody:
    @pytest.mark.asyncio
    async def test_reads_all_chunks_within_limit(self):
        request, _ = make_request({}, [b"ab", b"cd"])

        assert await read_body(request, 4) == b"abcd"

    @pytest.mark.asyncio
    async def test_declared_length_rejected_before_reading(self):
        request, messages = make_request({"content-length": "100"}, [b"x" * 100])

        with pytest.raises(PayloadTooLargeError):
            await read_body(request, 10)

        assert len(messages) == 1

    @pytest.mark.asyncio
    async def test_stream_stops_at_limit(self):
        request, messages = make_request({}, [b"12", b"34", b"56", b"78"])

        with pytest.raises(PayloadTooLargeError):
            await read_body(request, 4)

        assert messages == [{"type": "http.request", "body": b"78", "more_body": False}]


class TestListFragments:
    def test_list_ids_in_creation_order(self, client, user1):
        first = create(client, user1, b"a")
        second = create(client, user1, b"b")

        response = client.get("/v1/fragments", auth=user1)

        assert response.json()["fragments"] == [first["id"], second["id"]]

    def test_list_expanded(self, client, user1):
        fragment = create(client, user1, b'{"a": 1}', "application/json")

        response = client.get("/v1/fragments?expand=true", auth=user1)

        assert response.json()["fragments"] == [fragment]

    def test_owners_are_isolated(self, client, user1, user2):
        create(client, user1)

        response = client.get("/v1/fragments", auth=user2)

        assert response.json()["fragments"] == []

    def test_corrupt_record_is_server_error(self, client, user1):
        owner_id = hashlib.sha256(user1[0].encode()).hexdigest()
        client.app.state.storage.metadata.db[owner_id] = {"broken": "{not json"}

        response = client.get("/v1/fragments", auth=user1)

        assert_error(response, 500)


class TestGetFragment:
    def test_raw_data(self, client, user1):
        fragment = create(client, user1, b"hello", "text/plain")

        response = client.get(f"/v1/fragments/{fragment['id']}", auth=user1)

        assert response.status_code == 200
        assert response.content == b"hello"
        assert response.headers["Content-Type"].startswith("text/plain")

    def test_raw_image(self, client, user1, png_bytes):
        fragment = create(client, user1, png_bytes, "image/png")

        response = client.get(f"/v1/fragments/{fragment['id']}", auth=user1)

        assert response.content == png_bytes
        assert response.headers["Content-Type"] == "image/png"

    def test_markdown_as_html(self, client, user1):
        fragment = create(client, user1, b"# Title", "text/markdown")

        response = client.get(f"/v1/fragments/{fragment['id']}.html", auth=user1)

        assert response.status_code == 200
        assert response.headers["Content-Type"].startswith("text/html")
        assert "<h1>Title</h1>" in response.text

    def test_same_extension_returns_raw(self, client, user1):
        fragment = create(client, user1, b"# Title", "text/markdown")

        response = client.get(f"/v1/fragments/{fragment['id']}.md", auth=user1)

        assert response.content == b"# Title"

    def test_png_as_jpeg(self, client, user1, png_bytes):
        fragment = create(client, user1, png_bytes, "image/png")

        response = client.get(f"/v1/fragments/{fragment['id']}.jpg", auth=user1)

        assert response.status_code == 200
        assert response.headers["Content-Type"] == "image/jpeg"
        assert response.content.startswith(b"\xff\xd8")

    def test_impossible_conversion(self, client, user1):
        fragment = create(client, user1, b"hello", "text/plain")

        response = client.get(f"/v1/fragments/{fragment['id']}.png", auth=user1)

        assert_error(response, 415)

    def test_unknown_extension(self, client, user1):
        fragment = create(client, user1, b"hello", "text/plain")

        response = client.get(f"/v1/fragments/{fragment['id']}.exe", auth=user1)

        assert_error(response, 415)

    def test_unknown_extension_on_missing_fragment(self, client, user1):
        response = client.get("/v1/fragments/missing-id.xyz", auth=user1)

        assert_error(response, 404)

    def test_conversion_failure(self, client, user1):
        fragment = create(client, user1, b"{broken", "application/json")

        response = client.get(f"/v1/fragments/{fragment['id']}.yaml", auth=user1)

        assert_error(response, 422)

    def test_missing_fragment(self, client, user1):
        response = client.get("/v1/fragments/does-not-exist", auth=user1)
        assert_error(response, 404)

    def test_other_owner_cannot_read(self, client, user1, user2):
        fragment = create(client, user1)

        response = client.get(f"/v1/fragments/{fragment['id']}", auth=user2)

        assert_error(response, 404)


class TestFragmentInfo:
    def test_info_includes_formats(self, client, user1):
        fragment = create(client, user1, b"# Title", "text/markdown")

        response = client.get(f"/v1/fragments/{fragment['id']}/info", auth=user1)

        assert response.status_code == 200
        body = response.json()
        assert body["fragment"] == fragment
        assert body["formats"] == ["text/markdown", "text/html", "text/plain"]

    def test_info_missing(self, client, user1):
        response = client.get("/v1/fragments/missing/info", auth=user1)
        assert_error(response, 404)


class TestUpdateFragment:
    def test_replace_data(self, client, user1):
        fragment = create(client, user1, b"old")

        response = client.put(
            f"/v1/fragments/{fragment['id']}",
            content=b"new data",
            headers={"Content-Type": "text/plain"},
            auth=user1,
        )

        assert response.status_code == 200
        updated = response.json()["fragment"]
        assert updated["id"] == fragment["id"]
        assert updated["created"] == fragment["created"]
        assert updated["size"] == 8
        assert updated["updated"] > fragment["updated"]
        assert client.get(f"/v1/fragments/{fragment['id']}", auth=user1).content == b"new data"

    def test_parameters_do_not_cause_mismatch(self, client, user1):
        fragment = create(client, user1, b'{"a": 1}', "application/json")

        response = client.put(
            f"/v1/fragments/{fragment['id']}",
            content=b'{"a": 2}',
            headers={"Content-Type": "application/json; charset=utf-8"},
            auth=user1,
        )

        assert response.status_code == 200
        assert response.json()["fragment"]["type"] == "application/json"

    def test_type_mismatch(self, client, user1):
        fragment = create(client, user1, b"old", "text/plain")

        response = client.put(
            f"/v1/fragments/{fragment['id']}",
            content=b"# new",
            headers={"Content-Type": "text/markdown"},
            auth=user1,
        )

        assert_error(response, 400)

    def test_update_missing(self, client, user1):
        response = client.put(
            "/v1/fragments/missing",
            content=b"x",
            headers={"Content-Type": "text/plain"},
            auth=user1,
        )
        assert_error(response, 404)

    @pytest.mark.parametrize("body,content_type,status_code", [
        (b"", "text/plain", 400),
        (b"x", "audio/mpeg", 415),
    ])
    def test_invalid_body(self, client, user1, body, content_type, status_code):
        fragment = create(client, user1)

        response = client.put(
            f"/v1/fragments/{fragment['id']}",
            content=body,
            headers={"Content-Type": content_type},
            auth=user1,
        )

        assert_error(response, status_code)


class TestDeleteFragment:
    def test_delete_then_missing(self, client, user1):
        fragment = create(client, user1)

        response = client.delete(f"/v1/fragments/{fragment['id']}", auth=user1)

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert_error(client.get(f"/v1/fragments/{fragment['id']}", auth=user1), 404)
        assert client.get("/v1/fragments", auth=user1).json()["fragments"] == []

    def test_delete_missing(self, client, user1):
        response = client.delete("/v1/fragments/missing", auth=user1)
        assert_error(response, 404)

    def test_delete_other_owners_fragment(self, client, user1, user2):
        fragment = create(client, user1)

        assert_error(client.delete(f"/v1/fragments/{fragment['id']}", auth=user2), 404)
        assert client.get(f"/v1/fragments/{fragment['id']}", auth=user1).status_code == 200
