"""Shared test fixtures for credhub_cli.

Provides isolated config directories, output state management, a fake
token issuer, and helpers for building clients on top of
:class:`httpx.MockTransport`. These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from credhub_cli.auth.base import TokenIssuer
from credhub_cli.models import TokenPair
from credhub_cli.output import OutputManager, reset_output, set_output

API_URL = "https://credhub.example.com:8844"
AUTH_URL = "https://uaa.example.com:8443"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references become stale. Resetting forces a
    fresh manager to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless output manager."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Forces XDG path resolution, points XDG_CONFIG_HOME and XDG_DATA_HOME
    at subdirectories of tmp_path and clears every CREDHUB_* variable.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("credhub_cli.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("NO_COLOR", "1")

    for var in ["CREDHUB_SERVER", "CREDHUB_CLIENT", "CREDHUB_SECRET", "CREDHUB_CA_CERT"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    """Build an httpx.Response with a JSON body."""
    return httpx.Response(status_code=status_code, json=data)


class RecordingHandler:
    """MockTransport handler that records requests and answers from a routing function.

    ``route`` receives each request and returns the response to send.
    """

    def __init__(self, route: Callable[[httpx.Request], httpx.Response]) -> None:
        self._route = route
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self._route(request)

    def body(self, index: int) -> Any:
        return json.loads(self.requests[index].content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


# ---------------------------------------------------------------------------
# Fake token issuer
# ---------------------------------------------------------------------------


class FakeIssuer(TokenIssuer):
    """TokenIssuer that records grant calls and returns scripted tokens.

    Each grant returns the next pair from ``tokens``, or raises ``error``
    when set.
    """

    def __init__(
        self,
        tokens: Optional[list[TokenPair]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.tokens = list(tokens or [TokenPair(access_token="new-access", refresh_token="new-refresh")])
        self.error = error
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.revoked: list[str] = []

    def _issue(self, grant: str, *args: str) -> TokenPair:
        self.calls.append((grant, args))
        if self.error is not None:
            raise self.error
        if len(self.tokens) > 1:
            return self.tokens.pop(0)
        return self.tokens[0]

    def password_grant(self, client_id, client_secret, username, password):
        return self._issue("password", client_id, client_secret, username, password)

    def refresh_grant(self, client_id, client_secret, refresh_token):
        return self._issue("refresh_token", client_id, client_secret, refresh_token)

    def client_credentials_grant(self, client_id, client_secret):
        return self._issue("client_credentials", client_id, client_secret)

    def revoke_token(self, token):
        self.revoked.append(token)


@pytest.fixture
def fake_issuer() -> FakeIssuer:
    return FakeIssuer()
