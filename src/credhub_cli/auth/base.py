"""Abstract bases for the auth subsystem.

This module defines the two seams of the authenticated request pipeline:

- :class:`AuthStrategy` -- produces "the request executed as the
  authenticated principal". Built once per client and immutable apart from
  its internal token state.
- :class:`TokenIssuer` -- the OAuth2 grant operations an
  :class:`~credhub_cli.auth.oauth.OAuthStrategy` needs from a UAA-style
  authorization server.

:class:`NoopStrategy` is the pass-through variant used when the server does
not require authentication.

See Also:
    :mod:`credhub_cli.auth.builders` for constructing strategies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from credhub_cli.models import TokenPair
from credhub_cli.transport import ApiRequest, Transport


class AuthStrategy(ABC):
    """Execute requests as an authenticated principal.

    Implementations receive a raw :class:`~credhub_cli.transport.Transport`
    at construction and expose a single capability, :meth:`do`. Responses are
    returned uninterpreted: status codes and error bodies are the
    dispatcher's business.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    @abstractmethod
    def do(self, request: ApiRequest) -> httpx.Response:
        """Execute *request* and return the raw response.

        Raises:
            httpx.RequestError: If the exchange itself fails.
            AuthGrantError: If a required token grant is rejected.
        """
        ...


class NoopStrategy(AuthStrategy):
    """Pass requests straight through to the transport."""

    def do(self, request: ApiRequest) -> httpx.Response:
        return self._transport.execute(request)


class TokenIssuer(ABC):
    """OAuth2 grant operations of a UAA-style authorization server.

    Every grant returns a fresh :class:`~credhub_cli.models.TokenPair` or
    raises; implementations never retry.
    """

    @abstractmethod
    def password_grant(
        self, client_id: str, client_secret: str, username: str, password: str
    ) -> TokenPair:
        ...

    @abstractmethod
    def refresh_grant(
        self, client_id: str, client_secret: str, refresh_token: str
    ) -> TokenPair:
        ...

    @abstractmethod
    def client_credentials_grant(self, client_id: str, client_secret: str) -> TokenPair:
        ...

    def revoke_token(self, token: str) -> None:
        """Revoke *token* on the server. The default does nothing."""
