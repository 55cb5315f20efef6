"""Canonical Pydantic models shared across credhub_cli.

The models fall into three groups:

**Auth models** -- :class:`GrantParameters` and :class:`TokenPair`, the
inputs and outputs of the OAuth2 grants issued by
:class:`~credhub_cli.auth.uaa.UaaClient`.

**Wire models** -- response shapes decoded by
:class:`~credhub_cli.client.dispatcher.RequestDispatcher`:
:class:`ServerInfo`, :class:`ServerVersion`, :class:`Permission`,
:class:`V1PermissionsResponse`, :class:`Credential`,
:class:`CredentialList`, :class:`FoundCredential`, :class:`FindResults`,
:class:`FoundPath` and :class:`PathResults`.

**Local models** -- :class:`BulkItemFailure` for bulk operation results and
:class:`Config` for the persisted CLI snapshot.

Wire models ignore unknown keys so newer servers can add fields without
breaking older clients.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Auth ---


class GrantParameters(BaseModel):
    """Static inputs that decide which OAuth2 grant is used.

    Frozen once the auth strategy is built. ``client_secret`` being empty
    while ``username``/``password`` are set selects the password grant;
    otherwise the client-credentials grant is used.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = ""
    client_secret: str = ""
    username: str = ""
    password: str = ""

    @property
    def uses_password_grant(self) -> bool:
        return bool(
            self.client_id
            and not self.client_secret
            and self.username
            and self.password
        )


class TokenPair(BaseModel):
    """Access and refresh token returned by a successful grant."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str = ""


# --- Server info ---


class AppInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    version: str = ""


class AuthServerInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = ""


class ServerInfo(BaseModel):
    """Response of ``GET /info``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    app: AppInfo = Field(default_factory=AppInfo)
    auth_server: AuthServerInfo = Field(default_factory=AuthServerInfo, alias="auth-server")


class ServerVersion(BaseModel):
    """Response of ``GET /version``."""

    model_config = ConfigDict(extra="ignore")

    version: str = ""


# --- Permissions ---


class Permission(BaseModel):
    """A single permission entry.

    The v2 API returns all four fields; v1 entries only carry ``actor`` and
    ``operations``.
    """

    model_config = ConfigDict(extra="ignore")

    actor: str = ""
    operations: list[str] = Field(default_factory=list)
    path: Optional[str] = None
    uuid: Optional[str] = None


class V1PermissionsResponse(BaseModel):
    """Response of ``GET /api/v1/permissions?credential_name=...``."""

    model_config = ConfigDict(extra="ignore")

    credential_name: str = ""
    permissions: list[Permission] = Field(default_factory=list)


# --- Credentials ---


class Credential(BaseModel):
    """One version of a stored credential.

    ``value`` is left untyped: its shape depends on ``type`` (a plain string
    for ``value``/``password``, an object for ``certificate``, ``ssh``,
    ``rsa``, ``user`` and ``json``).
    """

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str
    type: str = ""
    value: Any = None
    version_created_at: str = ""


class CredentialList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[Credential] = Field(default_factory=list)


class FoundCredential(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    version_created_at: str = ""


class FindResults(BaseModel):
    """Response of the find-by-path and find-by-name listing calls."""

    model_config = ConfigDict(extra="ignore")

    credentials: list[FoundCredential] = Field(default_factory=list)


class FoundPath(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str


class PathResults(BaseModel):
    model_config = ConfigDict(extra="ignore")

    paths: list[FoundPath] = Field(default_factory=list)


# --- Bulk operations ---


class BulkItemFailure(BaseModel):
    """One failed sub-operation of a bulk operation."""

    identifier: str
    error: str


DeleteFailure = BulkItemFailure


# --- Local config ---


class Config(BaseModel):
    """Snapshot of the CLI's persisted state.

    Read once at client construction by
    :func:`~credhub_cli.config.build_client`; the core never re-reads it
    mid-operation.
    """

    model_config = ConfigDict(extra="ignore")

    api_url: str = ""
    auth_url: str = ""
    access_token: str = ""
    refresh_token: str = ""
    skip_tls_validation: bool = False
    ca_certs: list[str] = Field(default_factory=list)
    server_version: str = ""
