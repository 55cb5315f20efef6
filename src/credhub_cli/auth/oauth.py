"""OAuth2 bearer-token strategy with transparent acquisition and refresh.

:class:`OAuthStrategy` wraps a raw transport and turns every exchange into
one made as the authenticated principal:

1. When no access token is held, one is acquired before the first request.
2. The current token is attached as ``Authorization: Bearer <token>``.
3. When the server answers with the expiry signal (a non-2xx response whose
   JSON body is ``{"error": "access_token_expired"}``), the strategy
   refreshes once and resends a fresh copy of the original request. The
   second response is returned whatever it is; there is no further retry.

Which grant is used is decided each time a token is needed:

- a held refresh token -> refresh-token grant;
- client id set, empty client secret, username and password set ->
  password grant;
- otherwise -> client-credentials grant.

The token pair is guarded by a re-entrant lock. When two callers sharing a
strategy both see the expiry signal, only the first refreshes; the second
notices the token already changed and resends with the new one.

See Also:
    :class:`~credhub_cli.auth.uaa.UaaClient` -- the production
    :class:`~credhub_cli.auth.base.TokenIssuer`.
"""

from __future__ import annotations

import json
import threading

import httpx

from credhub_cli.auth.base import AuthStrategy, TokenIssuer
from credhub_cli.models import GrantParameters, TokenPair
from credhub_cli.output import debug
from credhub_cli.transport import ApiRequest, Transport

EXPIRED_TOKEN_ERROR = "access_token_expired"


class OAuthStrategy(AuthStrategy):
    """Attach, acquire and refresh OAuth2 bearer tokens around requests.

    Args:
        transport: The raw transport requests are executed on.
        issuer: Token issuer used for every grant.
        grant: Client and user credentials deciding the grant type.

    Example::

        strategy = OAuthStrategy(transport, UaaClient(auth_url, transport.http),
                                 GrantParameters(client_id="credhub_cli",
                                                 username="admin", password="pw"))
        strategy.set_tokens(saved_access, saved_refresh)
        response = strategy.do(ApiRequest("GET", "/api/v1/data", {"path": "/"}))
    """

    def __init__(
        self,
        transport: Transport,
        issuer: TokenIssuer,
        grant: GrantParameters,
    ) -> None:
        super().__init__(transport)
        self._issuer = issuer
        self._grant = grant
        self._access_token = ""
        self._refresh_token = ""
        self._lock = threading.RLock()

    @property
    def grant(self) -> GrantParameters:
        return self._grant

    @property
    def access_token(self) -> str:
        with self._lock:
            return self._access_token

    @property
    def refresh_token(self) -> str:
        with self._lock:
            return self._refresh_token

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        """Seed the token pair, typically from a saved config at build time."""
        with self._lock:
            self._access_token = access_token
            self._refresh_token = refresh_token

    # ------------------------------------------------------------------ #
    # Request execution
    # ------------------------------------------------------------------ #

    def do(self, request: ApiRequest) -> httpx.Response:
        """Execute *request* with a bearer token, refreshing once on expiry.

        Raises:
            AuthGrantError: If the initial login or the refresh is rejected.
                The original request is not resent after a failed refresh.
            NetworkError: If the token issuer cannot be reached.
            httpx.RequestError: If the API exchange itself fails.
        """
        with self._lock:
            self.login()
            token = self._access_token

        response = self._transport.execute(_with_bearer(request, token))
        if not _is_expired_token(response):
            return response
        response.close()

        with self._lock:
            if self._access_token == token:
                debug("Access token expired, refreshing")
                self.refresh()
            else:
                debug("Access token already refreshed by another caller")
            token = self._access_token

        return self._transport.execute(_with_bearer(request, token))

    # ------------------------------------------------------------------ #
    # Token lifecycle
    # ------------------------------------------------------------------ #

    def login(self) -> None:
        """Acquire a token pair unless an access token is already held.

        Never re-authenticates proactively: a held token is trusted until the
        server reports it expired.
        """
        with self._lock:
            if self._access_token:
                return
            self.refresh()

    def refresh(self) -> None:
        """Run the grant selected by the precedence rules and store its tokens.

        Both tokens are overwritten, so a refresh grant that returns no new
        refresh token leaves the stored refresh token empty.

        Raises:
            AuthGrantError: Propagated verbatim from the issuer.
            NetworkError: Propagated verbatim from the issuer.
        """
        with self._lock:
            tokens = self._run_grant()
            self._access_token = tokens.access_token
            self._refresh_token = tokens.refresh_token

    def logout(self) -> None:
        """Revoke the held token on the issuer and forget both tokens.

        The tokens are forgotten even when the revocation is rejected; the
        issuer's error is then re-raised.
        """
        with self._lock:
            token = self._refresh_token or self._access_token
            try:
                if token:
                    self._issuer.revoke_token(token)
            finally:
                self._access_token = ""
                self._refresh_token = ""

    def _run_grant(self) -> TokenPair:
        grant = self._grant
        if self._refresh_token:
            debug("Requesting token with refresh_token grant")
            return self._issuer.refresh_grant(
                grant.client_id, grant.client_secret, self._refresh_token
            )
        if grant.uses_password_grant:
            debug("Requesting token with password grant")
            return self._issuer.password_grant(
                grant.client_id, grant.client_secret, grant.username, grant.password
            )
        debug("Requesting token with client_credentials grant")
        return self._issuer.client_credentials_grant(grant.client_id, grant.client_secret)


def _with_bearer(request: ApiRequest, token: str) -> ApiRequest:
    return request.with_header("Authorization", f"Bearer {token}")


def _is_expired_token(response: httpx.Response) -> bool:
    """Return True when *response* carries the expiry signal."""
    if response.status_code < 400:
        return False
    try:
        body = json.loads(response.read())
    except ValueError:
        return False
    return isinstance(body, dict) and body.get("error") == EXPIRED_TOKEN_ERROR
