"""Tests for the CredHub client facade over httpx.MockTransport."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from conftest import API_URL, AUTH_URL, FakeIssuer, RecordingHandler, json_response
from credhub_cli.auth.oauth import OAuthStrategy
from credhub_cli.client import CredHub
from credhub_cli.exceptions import DecodeError, ServerError
from credhub_cli.models import GrantParameters


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _credhub(
    route: Callable[[httpx.Request], httpx.Response],
    server_version: str | None = None,
) -> tuple[CredHub, RecordingHandler]:
    handler = RecordingHandler(route)
    ch = CredHub(API_URL, server_version=server_version, http_transport=handler.transport())
    return ch, handler


def _info(version: str = "2.0.0") -> dict:
    return {"app": {"name": "CredHub", "version": version}, "auth-server": {"url": AUTH_URL}}


def _paths(handler: RecordingHandler) -> list[str]:
    return [f"{r.method} {r.url.path}" for r in handler.requests]


@pytest.fixture(autouse=True)
def _quiet(quiet_output) -> None:
    pass


# ---------------------------------------------------------------------------
# Server info
# ---------------------------------------------------------------------------


class TestServerInfo:
    def test_info(self) -> None:
        ch, handler = _credhub(lambda r: json_response(_info("2.4.0")))

        info = ch.info()

        assert info.app.version == "2.4.0"
        assert info.auth_server.url == AUTH_URL
        assert "Authorization" not in handler.requests[0].headers

    def test_server_version_from_info(self) -> None:
        ch, handler = _credhub(lambda r: json_response(_info("2.4.0")))

        assert ch.server_version() == "2.4.0"
        assert _paths(handler) == ["GET /info"]

    def test_server_version_falls_back_to_version_endpoint(self) -> None:
        def route(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/info":
                return json_response({"auth-server": {"url": AUTH_URL}})
            return json_response({"version": "1.6.0"})

        ch, handler = _credhub(route)

        assert ch.server_version() == "1.6.0"
        assert _paths(handler) == ["GET /info", "GET /version"]

    def test_auth_url_discovered_once(self) -> None:
        ch, handler = _credhub(lambda r: json_response(_info()))

        assert ch.auth_url() == AUTH_URL
        assert ch.auth_url() == AUTH_URL
        assert len(handler.requests) == 1


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestCredentials:
    def test_get_latest_version(self) -> None:
        ch, handler = _credhub(lambda r: json_response({"data": [
            {"id": "v2", "name": "/example-password", "type": "password", "value": "new"},
        ]}))

        credential = ch.get_latest_version("/example-password")

        assert credential.id == "v2"
        params = handler.requests[0].url.params
        assert params["name"] == "/example-password"
        assert params["current"] == "true"

    def test_get_latest_version_empty(self) -> None:
        ch, _ = _credhub(lambda r: json_response({"data": []}))

        with pytest.raises(DecodeError, match="no versions returned"):
            ch.get_latest_version("/missing")

    def test_get_by_id(self) -> None:
        ch, handler = _credhub(lambda r: json_response({"id": "abc", "name": "/n", "type": "value", "value": "v"}))

        assert ch.get_by_id("abc").name == "/n"
        assert handler.requests[0].url.path == "/api/v1/data/abc"

    def test_set_credential(self) -> None:
        ch, handler = _credhub(lambda r: json_response(
            {"id": "1", "name": "/j", "type": "json", "value": {"k": [1, 2]}},
        ))

        credential = ch.set_credential("/j", "json", {"k": [1, 2]})

        assert credential.value == {"k": [1, 2]}
        assert handler.requests[0].method == "PUT"
        assert handler.body(0) == {"name": "/j", "type": "json", "value": {"k": [1, 2]}}

    def test_regenerate(self) -> None:
        ch, handler = _credhub(lambda r: json_response({"id": "2", "name": "/p", "type": "password", "value": "x"}))

        ch.regenerate("/p")

        assert _paths(handler) == ["POST /api/v1/regenerate"]
        assert handler.body(0) == {"name": "/p"}

    def test_find_by_path(self) -> None:
        ch, handler = _credhub(lambda r: json_response({"credentials": [
            {"name": "/team/a", "version_created_at": "2019-01-01T00:00:00Z"},
        ]}))

        results = ch.find_by_path("/team")

        assert [c.name for c in results.credentials] == ["/team/a"]
        assert handler.requests[0].url.params["path"] == "/team"

    def test_find_by_partial_name(self) -> None:
        ch, handler = _credhub(lambda r: json_response({"credentials": []}))

        ch.find_by_partial_name("db")

        assert handler.requests[0].url.params["name-like"] == "db"

    def test_find_all_paths(self) -> None:
        ch, handler = _credhub(lambda r: json_response({"paths": [{"path": "/a/"}, {"path": "/b/"}]}))

        assert [p.path for p in ch.find_all_paths().paths] == ["/a/", "/b/"]
        assert handler.requests[0].url.params["paths"] == "true"

    def test_delete_by_name_encodes_query(self) -> None:
        ch, handler = _credhub(lambda r: httpx.Response(204))

        ch.delete_by_name("/example-password")

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/api/v1/data"
        assert request.url.query == b"name=%2Fexample-password"

    def test_delete_by_name_server_error(self) -> None:
        ch, _ = _credhub(lambda r: json_response({"error": "does not exist"}, status_code=404))

        with pytest.raises(ServerError, match="does not exist"):
            ch.delete_by_name("/missing")


# ---------------------------------------------------------------------------
# Bulk delete
# ---------------------------------------------------------------------------


def _bulk_route(fail_name: str | None = None, list_status: int = 200):
    def route(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            if list_status != 200:
                return json_response({"error": "listing failed"}, status_code=list_status)
            return json_response({"credentials": [
                {"name": "/path/one"}, {"name": "/path/two"}, {"name": "/path/three"},
            ]})
        if request.url.params["name"] == fail_name:
            return httpx.Response(500)
        return httpx.Response(204)

    return route


class TestDeleteByPath:
    def test_all_deleted(self) -> None:
        ch, handler = _credhub(_bulk_route())
        deleted: list[str] = []

        failures = ch.delete_by_path("/path", on_deleted=deleted.append)

        assert failures == []
        assert deleted == ["/path/one", "/path/two", "/path/three"]
        assert handler.requests[0].url.params["path"] == "/path"

    def test_partial_failure_continues(self) -> None:
        ch, handler = _credhub(_bulk_route(fail_name="/path/two"))

        failures = ch.delete_by_path("/path")

        assert len(failures) == 1
        assert failures[0].identifier == "/path/two"
        assert "could not be decoded" in failures[0].error
        deletes = [r.url.params["name"] for r in handler.requests if r.method == "DELETE"]
        assert deletes == ["/path/one", "/path/two", "/path/three"]

    def test_undecodable_delete_response_does_not_stop_the_rest(self) -> None:
        def route(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return _bulk_route()(request)
            if request.url.params["name"] == "/path/two":
                return httpx.Response(
                    200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not-gzip"),
                )
            return httpx.Response(204)

        ch, handler = _credhub(route)

        failures = ch.delete_by_path("/path")

        assert [f.identifier for f in failures] == ["/path/two"]
        assert "could not be decoded" in failures[0].error
        deletes = [r.url.params["name"] for r in handler.requests if r.method == "DELETE"]
        assert deletes == ["/path/one", "/path/two", "/path/three"]

    def test_network_failure_on_one_item_does_not_stop_the_rest(self) -> None:
        def route(request: httpx.Request) -> httpx.Response:
            if request.method == "DELETE" and request.url.params["name"] == "/path/one":
                raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request)
            return _bulk_route()(request)

        ch, _ = _credhub(route)

        failures = ch.delete_by_path("/path")

        assert [f.identifier for f in failures] == ["/path/one"]

    def test_listing_failure_aborts(self) -> None:
        ch, handler = _credhub(_bulk_route(list_status=500))

        with pytest.raises(ServerError, match="listing failed"):
            ch.delete_by_path("/path")
        assert [r for r in handler.requests if r.method == "DELETE"] == []

    def test_default_notification_goes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        from credhub_cli.output import OutputManager, set_output

        set_output(OutputManager(no_color=True))
        ch, _ = _credhub(_bulk_route())

        ch.delete_by_path("/path")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Successfully deleted /path/one" in captured.err


# ---------------------------------------------------------------------------
# Permissions across API generations
# ---------------------------------------------------------------------------


class TestPermissions:
    def test_add_permission_v1(self) -> None:
        def route(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/info":
                return json_response(_info("1.9.0"))
            return json_response({}, status_code=201)

        ch, handler = _credhub(route)

        assert ch.add_permission("/example", "some-actor", ["read", "write"]) is None
        assert _paths(handler) == ["GET /info", "POST /api/v1/permissions"]
        assert handler.body(1) == {
            "credential_name": "/example",
            "permissions": [{"actor": "some-actor", "operations": ["read", "write"]}],
        }

    def test_add_permission_v2(self) -> None:
        def route(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/info":
                return json_response(_info("2.0.0"))
            return json_response({
                "path": "/example", "actor": "some-actor",
                "operations": ["read", "write"], "uuid": "1234",
            }, status_code=201)

        ch, handler = _credhub(route)

        permission = ch.add_permission("/example", "some-actor", ["read", "write"])

        assert permission is not None
        assert permission.uuid == "1234"
        assert _paths(handler) == ["GET /info", "POST /api/v2/permissions"]
        assert handler.body(1) == {
            "path": "/example", "actor": "some-actor", "operations": ["read", "write"],
        }

    def test_get_permission_v1_first_entry(self) -> None:
        ch, handler = _credhub(lambda r: json_response({
            "credential_name": "/example",
            "permissions": [
                {"actor": "a1", "operations": ["read"]},
                {"actor": "a2", "operations": ["write"]},
            ],
        }), server_version="1.9.0")

        permission = ch.get_permission("/example")

        assert permission is not None
        assert permission.actor == "a1"
        assert permission.path == "/example"
        assert handler.requests[0].url.params["credential_name"] == "/example"

    def test_get_permission_v1_empty(self) -> None:
        ch, _ = _credhub(
            lambda r: json_response({"credential_name": "/example", "permissions": []}),
            server_version="1.9.0",
        )

        assert ch.get_permission("/example") is None

    def test_get_permission_v2(self) -> None:
        ch, handler = _credhub(lambda r: json_response({
            "path": "/example", "actor": "a", "operations": ["read"], "uuid": "uuid-1",
        }), server_version="2.0.0")

        assert ch.get_permission("uuid-1").uuid == "uuid-1"
        assert _paths(handler) == ["GET /api/v2/permissions/uuid-1"]

    def test_version_discovered_once_across_operations(self) -> None:
        def route(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/info":
                return json_response(_info("2.0.0"))
            return json_response({"path": "/p", "actor": "a", "operations": ["read"], "uuid": "u"})

        ch, handler = _credhub(route)

        ch.add_permission("/p", "a", ["read"])
        ch.get_permission("u")

        assert [p for p in _paths(handler) if p == "GET /info"] == ["GET /info"]

    def test_invalid_version_fails_operation(self) -> None:
        ch, handler = _credhub(lambda r: json_response(_info("garbage")))

        with pytest.raises(DecodeError):
            ch.add_permission("/p", "a", ["read"])
        assert _paths(handler) == ["GET /info"]


# ---------------------------------------------------------------------------
# Authenticated pipeline
# ---------------------------------------------------------------------------


class TestAuthenticatedPipeline:
    def test_expired_token_is_refreshed_transparently(self) -> None:
        issuer = FakeIssuer()

        def build(ch: CredHub) -> OAuthStrategy:
            strategy = OAuthStrategy(
                ch.transport, issuer, GrantParameters(client_id="c", client_secret="s"),
            )
            strategy.set_tokens("old-access", "old-refresh")
            return strategy

        def route(request: httpx.Request) -> httpx.Response:
            if request.headers["Authorization"] == "Bearer old-access":
                return json_response({"error": "access_token_expired"}, status_code=401)
            return json_response({"paths": []})

        handler = RecordingHandler(route)
        ch = CredHub(API_URL, auth=build, http_transport=handler.transport())

        assert ch.find_all_paths().paths == []
        assert len(handler.requests) == 2
        assert [c[0] for c in issuer.calls] == ["refresh_token"]
