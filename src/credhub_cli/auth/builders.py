"""Builders that construct an auth strategy for a client.

A builder is a callable taking the :class:`~credhub_cli.client.CredHub`
being constructed and returning the :class:`~credhub_cli.auth.base.AuthStrategy`
it will use. Builders run once, at client-build time; the resulting strategy
is never swapped afterwards.

Example::

    from credhub_cli.auth import builders

    ch = CredHub(api_url, auth=builders.uaa("credhub_client", "secret"))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from credhub_cli.auth.base import AuthStrategy, NoopStrategy
from credhub_cli.auth.oauth import OAuthStrategy
from credhub_cli.auth.uaa import UaaClient
from credhub_cli.models import GrantParameters

if TYPE_CHECKING:
    from credhub_cli.client.credhub import CredHub

Builder = Callable[["CredHub"], AuthStrategy]


def noop(ch: CredHub) -> AuthStrategy:
    """Build a :class:`NoopStrategy` on the client's transport."""
    return NoopStrategy(ch.transport)


def uaa(
    client_id: str,
    client_secret: str = "",
    username: str = "",
    password: str = "",
    access_token: str = "",
    refresh_token: str = "",
) -> Builder:
    """Return a builder for an :class:`OAuthStrategy` backed by the server's UAA.

    The UAA URL is discovered from the client (``GET /info``) unless it was
    given explicitly to the client. Saved tokens, if any, seed the strategy
    so no grant is issued until one is needed.
    """

    def build(ch: CredHub) -> AuthStrategy:
        issuer = UaaClient(ch.auth_url(), ch.transport.http)
        grant = GrantParameters(
            client_id=client_id,
            client_secret=client_secret,
            username=username,
            password=password,
        )
        strategy = OAuthStrategy(ch.transport, issuer, grant)
        strategy.set_tokens(access_token, refresh_token)
        return strategy

    return build
