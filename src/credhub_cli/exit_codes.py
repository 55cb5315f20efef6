"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to an error category and is referenced by the
corresponding :class:`~credhub_cli.exceptions.CredhubError` subclass, so
shell wrappers can tell failure classes apart without parsing stderr.

Example::

    $ credhub get -n /missing
    $ echo $?
    5   # EXIT_SERVER_ERROR -- the server rejected the request
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid or missing arguments."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed or the token was rejected."""

EXIT_SERVER_ERROR = 5
"""The server returned an error or an undecodable response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
