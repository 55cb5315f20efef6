"""Exception hierarchy for credhub_cli.

All exceptions inherit from :class:`CredhubError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`credhub_cli.exit_codes`. The top-level handler in
:func:`credhub_cli.app.main` catches ``CredhubError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log and exit
with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    CredhubError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- UnauthorizedError      (exit 3)
    |   +-- RevokedTokenError  (exit 3)
    +-- AuthGrantError         (exit 3)
    +-- ServerError            (exit 5)
    +-- DecodeError            (exit 5)
    +-- NetworkError           (exit 6)
    +-- ConfigError            (exit 1)
"""

from credhub_cli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SERVER_ERROR,
)


class CredhubError(Exception):
    """Base exception for all credhub_cli errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(CredhubError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class UnauthorizedError(CredhubError):
    """Raised when the server answers HTTP 401.

    Distinct from :class:`ServerError` so callers can stop early (for
    example the ``--version`` command skips its lookup on a revoked token).
    """

    exit_code = EXIT_AUTH_FAILURE


class RevokedTokenError(UnauthorizedError):
    """Raised when the stored token has been revoked and a new login is required."""

    def __init__(self, message: str = "You are not currently authenticated. Please log in to continue."):
        super().__init__(message)


class AuthGrantError(CredhubError):
    """Raised when the token issuer rejects a password, refresh, or client-credentials grant."""

    exit_code = EXIT_AUTH_FAILURE


class ServerError(CredhubError):
    """Raised with the ``error`` message of a non-2xx response body."""

    exit_code = EXIT_SERVER_ERROR


class DecodeError(CredhubError):
    """Raised when a response body is present but is not the expected JSON."""

    exit_code = EXIT_SERVER_ERROR

    @classmethod
    def from_exception(cls, exc: Exception) -> "DecodeError":
        """Wrap a parse or validation failure, naming the underlying cause."""
        return cls(f"The response body could not be decoded: {exc}")


class NetworkError(CredhubError):
    """Raised when the transport fails to complete an exchange (timeout, DNS, refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(CredhubError):
    """Raised for configuration problems (missing target, invalid JSON)."""

    exit_code = EXIT_GENERIC_FAILURE
