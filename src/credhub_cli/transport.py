"""Bare HTTP exchange with no auth and no retry semantics.

This module provides the two leaf types of the request pipeline:

- :class:`ApiRequest` -- an immutable description of one logical API call.
  Auth strategies attach headers by deriving copies with
  :meth:`ApiRequest.with_header`, so the original request can be resent
  verbatim after a token refresh.
- :class:`Transport` -- executes an :class:`ApiRequest` against the
  server's base URL through an :class:`httpx.Client`.

TLS configuration is limited to a "skip verification" toggle and optional
PEM-encoded CA certificates; everything else is httpx's defaults.

See Also:
    :class:`~credhub_cli.auth.base.AuthStrategy` -- wraps a transport.
    :class:`~credhub_cli.client.dispatcher.RequestDispatcher` -- maps
    transport failures to :class:`~credhub_cli.exceptions.NetworkError`.
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field, replace
from typing import Any, Optional

import httpx


@dataclass(frozen=True)
class ApiRequest:
    """Immutable description of one API call.

    Attributes:
        method: HTTP method (e.g. ``"GET"``).
        path: URL path relative to the server's base URL.
        query: Query parameters; values are URL-encoded by httpx.
        body: JSON-serialisable request body, or ``None``.
        headers: Extra request headers.
    """

    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    def with_header(self, name: str, value: str) -> ApiRequest:
        """Return a copy of this request with one header set."""
        return replace(self, headers={**self.headers, name: value})


def build_verify(
    skip_tls_validation: bool = False,
    ca_certs: Optional[list[str]] = None,
) -> bool | ssl.SSLContext:
    """Translate the TLS flags into an httpx ``verify`` argument.

    Args:
        skip_tls_validation: Disable certificate verification entirely.
        ca_certs: PEM-encoded CA certificates trusted in addition to the
            system store.

    Returns:
        ``False`` when verification is skipped, an :class:`ssl.SSLContext`
        when extra CAs are given, ``True`` otherwise.
    """
    if skip_tls_validation:
        return False
    if not ca_certs:
        return True
    context = ssl.create_default_context()
    for pem in ca_certs:
        context.load_verify_locations(cadata=pem)
    return context


class Transport:
    """Execute :class:`ApiRequest` objects over an :class:`httpx.Client`.

    Raises whatever :class:`httpx.RequestError` the exchange produces;
    mapping to domain errors happens further up the pipeline.

    Args:
        base_url: The server's API URL.
        verify: httpx ``verify`` argument (see :func:`build_verify`).
        timeout: Request timeout in seconds.
        http_transport: Optional httpx transport, mainly
            :class:`httpx.MockTransport` in tests.

    Example::

        with Transport("https://credhub.example.com:8844") as transport:
            response = transport.execute(ApiRequest("GET", "/info"))
    """

    def __init__(
        self,
        base_url: str,
        verify: bool | ssl.SSLContext = True,
        timeout: float = 30.0,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            verify=verify,
            timeout=timeout,
            transport=http_transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def http(self) -> httpx.Client:
        """The underlying client, shared with the token issuer."""
        return self._client

    def execute(self, request: ApiRequest) -> httpx.Response:
        """Send *request* once and return the raw response."""
        headers = {"Accept": "application/json", **request.headers}
        http_request = self._client.build_request(
            request.method,
            request.path,
            params=request.query or None,
            json=request.body,
            headers=headers,
        )
        return self._client.send(http_request)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
