"""Client facade for a CredHub-style credential server.

:class:`CredHub` assembles the authenticated request pipeline::

    Transport  ->  AuthStrategy  ->  RequestDispatcher  ->  operations
                                                   \\->  VersionGate
                                                   \\->  run_bulk

and exposes the credential, permission and server-info operations on top of
it. The auth strategy is built once, during construction, by the builder
passed as ``auth``.

Example::

    from credhub_cli.auth import builders
    from credhub_cli.client import CredHub

    with CredHub("https://credhub.example.com:8844",
                 auth=builders.uaa("credhub_client", "secret"),
                 auth_url="https://uaa.example.com:8443") as ch:
        cred = ch.get_latest_version("/team/db-password")
        failures = ch.delete_by_path("/team/old")
"""

from __future__ import annotations

import ssl
from typing import Any, Callable, Optional

import httpx

from credhub_cli.auth import builders
from credhub_cli.auth.base import AuthStrategy, NoopStrategy
from credhub_cli.client.bulk import run_bulk
from credhub_cli.client.dispatcher import RequestDispatcher
from credhub_cli.client.versioning import ApiGeneration, VersionGate
from credhub_cli.exceptions import DecodeError
from credhub_cli.models import (
    Credential,
    CredentialList,
    DeleteFailure,
    FindResults,
    FoundCredential,
    PathResults,
    Permission,
    ServerInfo,
    ServerVersion,
    V1PermissionsResponse,
)
from credhub_cli.output import info
from credhub_cli.transport import Transport, build_verify

DATA_PATH = "/api/v1/data"
REGENERATE_PATH = "/api/v1/regenerate"
V1_PERMISSIONS_PATH = "/api/v1/permissions"
V2_PERMISSIONS_PATH = "/api/v2/permissions"


class CredHub:
    """Authenticated client for one credential server.

    Args:
        api_url: The server's API URL.
        auth: Builder for the auth strategy (default: no auth).
        auth_url: UAA URL. When empty it is discovered from ``GET /info`` the
            first time it is needed.
        skip_tls_validation: Disable TLS certificate verification.
        ca_certs: Extra PEM-encoded CA certificates to trust.
        server_version: Known server version; skips version discovery.
        timeout: Per-request timeout in seconds.
        http_transport: Optional httpx transport (tests use
            :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        api_url: str,
        auth: builders.Builder = builders.noop,
        auth_url: str = "",
        skip_tls_validation: bool = False,
        ca_certs: Optional[list[str]] = None,
        server_version: Optional[str] = None,
        timeout: float = 30.0,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        verify: bool | ssl.SSLContext = build_verify(skip_tls_validation, ca_certs)
        self._transport = Transport(
            api_url, verify=verify, timeout=timeout, http_transport=http_transport,
        )
        self._auth_url = auth_url.rstrip("/")
        self._public = RequestDispatcher(NoopStrategy(self._transport))
        self._versions = VersionGate(self.server_version, server_version)
        self._auth = auth(self)
        self._dispatcher = RequestDispatcher(self._auth)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def api_url(self) -> str:
        return self._transport.base_url

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def auth(self) -> AuthStrategy:
        return self._auth

    @property
    def versions(self) -> VersionGate:
        return self._versions

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> CredHub:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Server info
    # ------------------------------------------------------------------ #

    def info(self) -> ServerInfo:
        """Return ``GET /info``. Does not require authentication."""
        return self._public.fetch(ServerInfo, "GET", "/info")

    def auth_url(self) -> str:
        """Return the UAA URL, discovering it from ``/info`` if not configured."""
        if not self._auth_url:
            self._auth_url = self.info().auth_server.url.rstrip("/")
        return self._auth_url

    def server_version(self) -> str:
        """Discover the server version.

        Uses ``app.version`` from ``GET /info`` when the server reports one and
        falls back to the authenticated ``GET /version`` endpoint otherwise.
        Prefer :attr:`versions` to read the cached value.
        """
        version = self.info().app.version
        if version:
            return version
        return self._dispatcher.fetch(ServerVersion, "GET", "/version").version

    # ------------------------------------------------------------------ #
    # Credentials
    # ------------------------------------------------------------------ #

    def get_latest_version(self, name: str) -> Credential:
        """Return the current version of the credential called *name*."""
        result = self._dispatcher.fetch(
            CredentialList, "GET", DATA_PATH, query={"name": name, "current": "true"},
        )
        if not result.data:
            raise DecodeError(
                f"The response body could not be decoded: no versions returned for {name}"
            )
        return result.data[0]

    def get_by_id(self, credential_id: str) -> Credential:
        """Return the credential version with the given id."""
        return self._dispatcher.fetch(Credential, "GET", f"{DATA_PATH}/{credential_id}")

    def set_credential(self, name: str, credential_type: str, value: Any) -> Credential:
        """Store a new version of *name* with the given type and value."""
        body = {"name": name, "type": credential_type, "value": value}
        return self._dispatcher.fetch(Credential, "PUT", DATA_PATH, body=body)

    def regenerate(self, name: str) -> Credential:
        """Ask the server to generate a new value for *name* using its stored parameters."""
        return self._dispatcher.fetch(
            Credential, "POST", REGENERATE_PATH, body={"name": name},
        )

    def find_by_path(self, path: str) -> FindResults:
        """List credentials stored under *path*."""
        return self._dispatcher.fetch(FindResults, "GET", DATA_PATH, query={"path": path})

    def find_by_partial_name(self, name_like: str) -> FindResults:
        """List credentials whose name contains *name_like*."""
        return self._dispatcher.fetch(
            FindResults, "GET", DATA_PATH, query={"name-like": name_like},
        )

    def find_all_paths(self) -> PathResults:
        """List every path that holds at least one credential."""
        return self._dispatcher.fetch(PathResults, "GET", DATA_PATH, query={"paths": "true"})

    def delete_by_name(self, name: str) -> None:
        """Delete all versions of the credential called *name*."""
        response = self._dispatcher.request("DELETE", DATA_PATH, query={"name": name})
        self._dispatcher.discard(response)

    def delete_by_path(
        self,
        path: str,
        on_deleted: Optional[Callable[[str], None]] = None,
    ) -> list[DeleteFailure]:
        """Delete every credential under *path*, collecting per-credential failures.

        Args:
            path: Path whose credentials are deleted.
            on_deleted: Called with each deleted name. Defaults to an
                informational message on stderr.

        Returns:
            One :class:`~credhub_cli.models.DeleteFailure` per credential that
            could not be deleted. An empty list means everything was deleted.

        Raises:
            CredhubError: Only when listing the credentials fails; no delete
                is attempted in that case.
        """

        def list_credentials() -> list[FoundCredential]:
            return self.find_by_path(path).credentials

        def delete(credential: FoundCredential) -> None:
            self.delete_by_name(credential.name)

        return run_bulk(
            list_credentials,
            delete,
            identify=lambda credential: credential.name,
            on_success=on_deleted or _report_deleted,
        )

    # ------------------------------------------------------------------ #
    # Permissions
    # ------------------------------------------------------------------ #

    def get_permission(self, param: str) -> Optional[Permission]:
        """Return a permission, using the API generation the server supports.

        Args:
            param: The credential name on servers before 2.0, the permission
                UUID from 2.0 on.

        Returns:
            The permission. On pre-2.0 servers this is the first entry of the
            credential's permission list (with ``path`` set to the credential
            name), or ``None`` if the list is empty.
        """
        if self._versions.resolve_api_generation() is ApiGeneration.LEGACY:
            legacy = self._dispatcher.fetch(
                V1PermissionsResponse, "GET", V1_PERMISSIONS_PATH,
                query={"credential_name": param},
            )
            if not legacy.permissions:
                return None
            return legacy.permissions[0].model_copy(update={"path": legacy.credential_name})

        return self._dispatcher.fetch(Permission, "GET", f"{V2_PERMISSIONS_PATH}/{param}")

    def add_permission(
        self, path: str, actor: str, operations: list[str]
    ) -> Optional[Permission]:
        """Grant *actor* the given *operations* on *path*.

        Returns:
            The created permission on 2.0+ servers. Pre-2.0 servers return no
            usable single permission, so the result is ``None``.
        """
        if self._versions.resolve_api_generation() is ApiGeneration.LEGACY:
            body = {
                "credential_name": path,
                "permissions": [{"actor": actor, "operations": list(operations)}],
            }
            response = self._dispatcher.request("POST", V1_PERMISSIONS_PATH, body=body)
            self._dispatcher.discard(response)
            return None

        body = {"path": path, "actor": actor, "operations": list(operations)}
        return self._dispatcher.fetch(Permission, "POST", V2_PERMISSIONS_PATH, body=body)


def _report_deleted(name: str) -> None:
    info(f"Successfully deleted {name}")
