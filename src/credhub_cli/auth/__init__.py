"""Authentication strategies for credhub_cli.

The main entry points are:

- :class:`AuthStrategy` -- abstract "execute this request as the
  authenticated principal" capability.
- :class:`NoopStrategy` -- pass-through strategy for unauthenticated servers.
- :class:`OAuthStrategy` -- bearer-token strategy with transparent
  acquisition and a single refresh-and-retry cycle.
- :class:`UaaClient` -- the UAA token issuer used by :class:`OAuthStrategy`.
- :mod:`~credhub_cli.auth.builders` -- ``noop`` and ``uaa`` builders passed to
  :class:`~credhub_cli.client.CredHub`.
"""

from credhub_cli.auth.base import AuthStrategy, NoopStrategy, TokenIssuer
from credhub_cli.auth.oauth import OAuthStrategy
from credhub_cli.auth.uaa import UaaClient

__all__ = [
    "AuthStrategy",
    "NoopStrategy",
    "OAuthStrategy",
    "TokenIssuer",
    "UaaClient",
]
