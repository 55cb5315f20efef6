"""UAA-style OAuth2 token issuer.

:class:`UaaClient` implements :class:`~credhub_cli.auth.base.TokenIssuer`
against a UAA authorization server. Every grant is a form-encoded
``POST <auth_url>/oauth/token`` (:rfc:`6749` sections 4.3, 4.4 and 6);
revocation uses UAA's ``DELETE /oauth/token/revoke/<token-id>`` extension.

Grant failures are raised as :class:`~credhub_cli.exceptions.AuthGrantError`
carrying the server's ``error_description``; network failures are raised as
:class:`~credhub_cli.exceptions.NetworkError`, and bodies that cannot be
content-decoded as :class:`~credhub_cli.exceptions.DecodeError`. Nothing is
retried here.
"""

from __future__ import annotations

import base64
import json
from typing import Any

import httpx
from pydantic import ValidationError

from credhub_cli.auth.base import TokenIssuer
from credhub_cli.exceptions import AuthGrantError, DecodeError, NetworkError
from credhub_cli.models import TokenPair
from credhub_cli.output import debug


class UaaClient(TokenIssuer):
    """Issue tokens from a UAA server.

    Args:
        auth_url: Base URL of the UAA server (e.g.
            ``https://uaa.example.com:8443``).
        http: Client used for the exchanges. Shares the API transport's TLS
            settings when built through :func:`~credhub_cli.auth.builders.uaa`.
    """

    def __init__(self, auth_url: str, http: httpx.Client) -> None:
        self._auth_url = auth_url.rstrip("/")
        self._http = http

    @property
    def auth_url(self) -> str:
        return self._auth_url

    def password_grant(
        self, client_id: str, client_secret: str, username: str, password: str
    ) -> TokenPair:
        return self._token_request({
            "grant_type": "password",
            "response_type": "token",
            "client_id": client_id,
            "client_secret": client_secret,
            "username": username,
            "password": password,
        })

    def refresh_grant(
        self, client_id: str, client_secret: str, refresh_token: str
    ) -> TokenPair:
        return self._token_request({
            "grant_type": "refresh_token",
            "response_type": "token",
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
        })

    def client_credentials_grant(self, client_id: str, client_secret: str) -> TokenPair:
        return self._token_request({
            "grant_type": "client_credentials",
            "response_type": "token",
            "client_id": client_id,
            "client_secret": client_secret,
        })

    def revoke_token(self, token: str) -> None:
        """Revoke *token*, authenticating with the token itself.

        Raises:
            AuthGrantError: If the server refuses the revocation.
            NetworkError: If the server cannot be reached.
        """
        url = f"{self._auth_url}/oauth/token/revoke/{token_id(token)}"
        try:
            response = self._http.delete(
                url,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            )
        except httpx.DecodingError as exc:
            raise DecodeError.from_exception(exc) from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Token revocation failed: {exc}") from exc
        if not response.is_success:
            raise AuthGrantError(_error_message(response))

    def _token_request(self, form: dict[str, str]) -> TokenPair:
        debug(f"POST {self._auth_url}/oauth/token grant_type={form['grant_type']}")
        try:
            response = self._http.post(
                f"{self._auth_url}/oauth/token",
                data=form,
                headers={"Accept": "application/json"},
            )
        except httpx.DecodingError as exc:
            raise DecodeError.from_exception(exc) from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Token request failed: {exc}") from exc

        if not response.is_success:
            raise AuthGrantError(_error_message(response))

        try:
            return TokenPair.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthGrantError(f"Token response could not be decoded: {exc}") from exc


def token_id(token: str) -> str:
    """Return the ``jti`` claim of a JWT, or the token itself if it has none.

    The signature is not verified; the claim is only used to address the
    token on the server that issued it.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return token
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims: Any = json.loads(base64.urlsafe_b64decode(payload))
    except ValueError:
        return token
    if isinstance(claims, dict) and claims.get("jti"):
        return str(claims["jti"])
    return token


def _error_message(response: httpx.Response) -> str:
    """Extract the issuer's error description from a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("error_description") or body.get("error")
        if message:
            return str(message)
    return f"Token request failed with status {response.status_code}"
