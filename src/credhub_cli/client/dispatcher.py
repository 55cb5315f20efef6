"""Request dispatch, response decoding and error mapping.

:class:`RequestDispatcher` sits between the auth strategy and the
operations of :class:`~credhub_cli.client.credhub.CredHub`. It builds
:class:`~credhub_cli.transport.ApiRequest` objects, runs them through the
strategy, and turns each raw :class:`httpx.Response` into either a decoded
model or a typed error:

=====================  =============================================
Outcome                Raised / returned
=====================  =============================================
transport failure      :class:`~credhub_cli.exceptions.NetworkError`
content-decoding fail  :class:`~credhub_cli.exceptions.DecodeError`
2xx                    response, or model via :meth:`decode`
2xx, malformed body    :class:`~credhub_cli.exceptions.DecodeError`
401                    :class:`~credhub_cli.exceptions.UnauthorizedError`
other non-2xx          :class:`~credhub_cli.exceptions.ServerError`
non-2xx, bad body      :class:`~credhub_cli.exceptions.DecodeError`
=====================  =============================================

Every decode path reads the body in full and closes the response, so the
pooled connection can be reused.
"""

from __future__ import annotations

import json
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from credhub_cli.auth.base import AuthStrategy
from credhub_cli.exceptions import (
    DecodeError,
    NetworkError,
    RevokedTokenError,
    ServerError,
    UnauthorizedError,
)
from credhub_cli.output import debug
from credhub_cli.transport import ApiRequest

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestDispatcher:
    """Execute API calls through an auth strategy and map their outcomes.

    Args:
        auth: The strategy every request is executed with.
    """

    def __init__(self, auth: AuthStrategy) -> None:
        self._auth = auth

    @property
    def auth(self) -> AuthStrategy:
        return self._auth

    def request(
        self,
        method: str,
        path: str,
        query: Optional[dict[str, str]] = None,
        body: Any = None,
        check_errors: bool = True,
    ) -> httpx.Response:
        """Execute one API call.

        Args:
            method: HTTP method.
            path: URL path relative to the server's API URL.
            query: Query parameters.
            body: JSON-serialisable request body.
            check_errors: When ``True``, non-2xx responses are raised as
                typed errors; when ``False`` they are returned as-is.

        Returns:
            The raw response. Its body has not been consumed unless an
            error was raised.

        Raises:
            NetworkError: If the exchange could not be completed.
            DecodeError: If the response body cannot be content-decoded.
            UnauthorizedError: On HTTP 401.
            ServerError: On any other non-2xx status.
            DecodeError: On a non-2xx status whose body is not JSON.
        """
        api_request = ApiRequest(method=method, path=path, query=query or {}, body=body)
        try:
            response = self._auth.do(api_request)
        except httpx.DecodingError as exc:
            raise DecodeError.from_exception(exc) from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        debug(f"{method} {path} -> HTTP {response.status_code}")
        if check_errors:
            self.check(response)
        return response

    def fetch(
        self,
        model: type[ModelT],
        method: str,
        path: str,
        query: Optional[dict[str, str]] = None,
        body: Any = None,
    ) -> ModelT:
        """Execute one API call and decode its 2xx body into *model*."""
        return self.decode(self.request(method, path, query=query, body=body), model)

    def check(self, response: httpx.Response) -> None:
        """Raise the domain error for a non-2xx *response*.

        The body is drained and the response closed before raising.
        """
        if response.is_success:
            return

        content = _drain(response)

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise _unauthorized(content)

        try:
            payload = json.loads(content)
        except ValueError as exc:
            raise DecodeError.from_exception(exc) from exc

        message = payload.get("error") if isinstance(payload, dict) else None
        raise ServerError(str(message) if message else f"HTTP {response.status_code}")

    def decode(self, response: httpx.Response, model: type[ModelT]) -> ModelT:
        """Decode the body of a 2xx *response* into *model*.

        Raises:
            DecodeError: If the body is not valid JSON for *model*.
        """
        content = _drain(response)
        try:
            return model.model_validate_json(content)
        except ValidationError as exc:
            raise DecodeError.from_exception(exc) from exc

    def discard(self, response: httpx.Response) -> None:
        """Drain and close a response whose body is not needed."""
        _drain(response)


def _drain(response: httpx.Response) -> bytes:
    """Read the full body of *response* and close it."""
    try:
        return response.read()
    except httpx.DecodingError as exc:
        raise DecodeError.from_exception(exc) from exc
    finally:
        response.close()


def _unauthorized(content: bytes) -> UnauthorizedError:
    """Build the error for a 401 body, recognising revoked tokens."""
    try:
        payload = json.loads(content)
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        return UnauthorizedError("The request was not authorized (HTTP 401)")

    description = str(payload.get("error_description") or payload.get("error") or "")
    if "revoked" in description.lower():
        return RevokedTokenError()
    return UnauthorizedError(description or "The request was not authorized (HTTP 401)")
