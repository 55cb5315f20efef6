"""Configuration management with XDG paths, atomic writes, and env overrides.

This module handles the CLI's persistent state:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.credhub/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Config file** -- a single :class:`~credhub_cli.models.Config` JSON file
  holding the targeted API URL, the UAA URL, saved tokens and TLS flags.
  Written with ``0o600`` permissions because it contains tokens.
* **Environment overrides** -- ``CREDHUB_SERVER``, ``CREDHUB_CA_CERT``,
  ``CREDHUB_CLIENT`` and ``CREDHUB_SECRET``.
* **Client construction** -- :func:`build_client` turns a read-once config
  snapshot into a :class:`~credhub_cli.client.CredHub`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from credhub_cli.exceptions import ConfigError, RevokedTokenError
from credhub_cli.models import Config, GrantParameters

if TYPE_CHECKING:
    from credhub_cli.client import CredHub

_APP_NAME = "credhub"
_CONFIG_FILENAME = "config.json"

DEFAULT_CLIENT_ID = "credhub_cli"
REVOKED_TOKEN = "revoked"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/credhub/`` (default ``~/.config/credhub/``).
    On macOS/Windows: ``~/.credhub/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/credhub/`` (default ``~/.local/share/credhub/``).
    On macOS/Windows: ``~/.credhub/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: int = 0o600) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. Permissions are set
    before any content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_config() -> Config:
    """Load the saved config.

    Returns:
        The deserialised :class:`~credhub_cli.models.Config`, or a default
        instance when no file exists yet.

    Raises:
        ConfigError: If the file exists but is not valid JSON or fails
            validation.
    """
    path = config_path()
    if not path.is_file():
        return Config()
    try:
        text = path.read_text(encoding="utf-8")
        return Config.model_validate(json.loads(text))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc


def save_config(config: Config) -> None:
    """Persist *config* atomically with ``0o600`` permissions."""
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(config_path(), text)


def apply_env_overrides(config: Config) -> Config:
    """Return a copy of *config* with ``CREDHUB_SERVER``/``CREDHUB_CA_CERT`` applied.

    ``CREDHUB_CA_CERT`` may hold PEM content or a path to a PEM file.
    """
    updates: dict[str, object] = {}
    server = os.environ.get("CREDHUB_SERVER", "")
    if server:
        updates["api_url"] = server
    ca_cert = os.environ.get("CREDHUB_CA_CERT", "")
    if ca_cert:
        updates["ca_certs"] = [*config.ca_certs, read_cert(ca_cert)]
    return config.model_copy(update=updates) if updates else config


def read_cert(value: str) -> str:
    """Return *value* as PEM content, reading it from disk if it names a file."""
    if "-----BEGIN" in value:
        return value
    path = Path(value).expanduser()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read CA certificate {path}: {exc}") from exc


def grant_from_env(username: str = "", password: str = "") -> GrantParameters:
    """Build grant parameters from ``CREDHUB_CLIENT``/``CREDHUB_SECRET``.

    Without those variables the CLI's public client id is used with an empty
    secret, which selects the password grant when *username* and *password*
    are given.
    """
    client_id = os.environ.get("CREDHUB_CLIENT", "")
    client_secret = os.environ.get("CREDHUB_SECRET", "")
    if client_id and client_secret:
        return GrantParameters(client_id=client_id, client_secret=client_secret)
    return GrantParameters(
        client_id=DEFAULT_CLIENT_ID, username=username, password=password,
    )


def build_client(
    config: Config,
    grant: Optional[GrantParameters] = None,
    **kwargs: object,
) -> CredHub:
    """Build a :class:`~credhub_cli.client.CredHub` from a config snapshot.

    The snapshot's saved tokens seed the OAuth strategy; the config is not
    read again for the life of the client.

    Args:
        config: The config snapshot (env overrides already applied).
        grant: Grant parameters; defaults to :func:`grant_from_env`.
        **kwargs: Forwarded to :class:`~credhub_cli.client.CredHub`.

    Raises:
        ConfigError: If no API URL is targeted.
        RevokedTokenError: If the saved token was revoked by ``logout`` and no
            client credentials are available in the environment.
    """
    from credhub_cli.auth import builders
    from credhub_cli.client import CredHub

    if not config.api_url:
        raise ConfigError(
            "An API target is not set. Please target the location of your "
            "server with `credhub api` to continue."
        )

    grant = grant or grant_from_env()
    access_token, refresh_token = config.access_token, config.refresh_token
    if access_token == REVOKED_TOKEN:
        if not grant.client_secret and not grant.password:
            raise RevokedTokenError()
        access_token, refresh_token = "", ""

    return CredHub(
        config.api_url,
        auth=builders.uaa(
            grant.client_id,
            grant.client_secret,
            grant.username,
            grant.password,
            access_token,
            refresh_token,
        ),
        auth_url=config.auth_url,
        skip_tls_validation=config.skip_tls_validation,
        ca_certs=config.ca_certs or None,
        server_version=config.server_version or None,
        **kwargs,  # type: ignore[arg-type]
    )
