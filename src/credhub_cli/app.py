"""Typer application and CLI entry point for credhub_cli.

The commands are a thin layer over :class:`~credhub_cli.client.CredHub`:
each one loads the config snapshot once, builds a client, calls one
operation, renders the result, and saves any tokens the auth strategy
acquired or refreshed along the way.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. :class:`~credhub_cli.exceptions.CredhubError` instances
exit with their ``exit_code``; anything else writes a crash log under the
data directory.
"""

from __future__ import annotations

import json
import signal
import sys
import traceback
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

import typer

from credhub_cli import __version__
from credhub_cli.auth.oauth import OAuthStrategy
from credhub_cli.config import (
    REVOKED_TOKEN,
    apply_env_overrides,
    build_client,
    grant_from_env,
    load_config,
    read_cert,
    save_config,
)
from credhub_cli.exceptions import (
    CredhubError,
    InvalidUsageError,
    RevokedTokenError,
)
from credhub_cli.exit_codes import EXIT_GENERIC_FAILURE
from credhub_cli.models import Config, GrantParameters
from credhub_cli.output import (
    OutputFormat,
    OutputManager,
    error,
    format_data,
    print_data,
    print_error_data,
    set_output,
    success,
    suggest,
    warning,
)

app = typer.Typer(
    name="credhub",
    help="Manage credentials stored on a CredHub server.",
    no_args_is_help=True,
    add_completion=False,
)

NOT_FOUND_VERSION = "Not Found. Have you targeted and authenticated against a CredHub server?"
STRUCTURED_TYPES = {"json", "certificate", "ssh", "rsa", "user"}


def _version_callback(value: bool) -> None:
    """Print CLI and server versions and exit when --version is passed."""
    if not value:
        return
    print_data(f"CLI Version: {__version__}")
    print_data(f"Server Version: {_server_version()}")
    raise typer.Exit()


def _server_version() -> str:
    """Look up the targeted server's version, or a hint when that is impossible.

    An authenticated listing call runs first so an expired session is
    refreshed (and a revoked one is reported) before the version lookup.
    """
    config = apply_env_overrides(load_config())
    if not config.api_url:
        return NOT_FOUND_VERSION
    try:
        with _client(config) as ch:
            ch.find_all_paths()
            ch.versions.resolve_version()
            return ch.versions.cached_version
    except RevokedTokenError:
        return NOT_FOUND_VERSION
    except CredhubError as exc:
        warning(str(exc))
        return NOT_FOUND_VERSION


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show CLI and server version and exit.",
    ),
    output_json: bool = typer.Option(
        False, "--output-json", "-j", help="Render output as JSON instead of YAML."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise the global output manager from CLI flags."""
    set_output(OutputManager(
        format=OutputFormat.JSON if output_json else OutputFormat.YAML,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    ))


@contextmanager
def _client(config: Config, grant: Optional[GrantParameters] = None) -> Iterator[Any]:
    """Yield a client for *config* and save its tokens when they changed."""
    ch = build_client(config, grant)
    try:
        yield ch
    finally:
        ch.close()
        _save_tokens(config, ch.auth)


def _save_tokens(config: Config, strategy: object) -> None:
    if not isinstance(strategy, OAuthStrategy):
        return
    access, refresh = strategy.access_token, strategy.refresh_token
    if not access or (access, refresh) == (config.access_token, config.refresh_token):
        return
    saved = load_config()
    save_config(saved.model_copy(update={"access_token": access, "refresh_token": refresh}))


def _current_config() -> Config:
    return apply_env_overrides(load_config())


# ------------------------------------------------------------------ #
# Target and session
# ------------------------------------------------------------------ #


@app.command("api")
def api_command(
    server: str = typer.Argument(help="API URL of the server to target."),
    skip_tls_validation: bool = typer.Option(
        False, "--skip-tls-validation", help="Skip TLS certificate verification."
    ),
    ca_cert: list[str] = typer.Option(
        [], "--ca-cert", help="Trusted CA certificate (PEM content or file path)."
    ),
) -> None:
    """Target a server and record its UAA URL and version."""
    from credhub_cli.client import CredHub

    if not server.startswith(("http://", "https://")):
        server = f"https://{server}"

    ca_certs = [read_cert(value) for value in ca_cert]
    with CredHub(server, skip_tls_validation=skip_tls_validation, ca_certs=ca_certs) as ch:
        info = ch.info()
        version = info.app.version

    previous = load_config()
    config = Config(
        api_url=server,
        auth_url=info.auth_server.url,
        skip_tls_validation=skip_tls_validation,
        ca_certs=ca_certs,
        server_version=version,
    )
    if previous.api_url == server and previous.auth_url == config.auth_url:
        config = config.model_copy(update={
            "access_token": previous.access_token,
            "refresh_token": previous.refresh_token,
        })
    save_config(config)

    if skip_tls_validation:
        warning("The targeted TLS certificate has not been verified for this connection.")
    success(f"Setting the target url: {server}")


@app.command("login")
def login_command(
    username: str = typer.Option("", "--username", "-u", help="UAA username."),
    password: str = typer.Option("", "--password", "-p", help="UAA password."),
    client_name: str = typer.Option("", "--client-name", help="Client id for client-credentials login."),
    client_secret: str = typer.Option("", "--client-secret", help="Client secret for client-credentials login."),
) -> None:
    """Authenticate with the UAA and save the resulting tokens."""
    config = _current_config()
    if client_name or client_secret:
        if not (client_name and client_secret):
            raise InvalidUsageError("Both --client-name and --client-secret must be provided.")
        if username or password:
            raise InvalidUsageError("Client and user credentials cannot be combined.")
        grant = GrantParameters(client_id=client_name, client_secret=client_secret)
    else:
        grant = grant_from_env(username, password)
        if not grant.client_secret:
            if not grant.username:
                grant = grant.model_copy(update={"username": typer.prompt("username")})
            if not grant.password:
                grant = grant.model_copy(update={
                    "password": typer.prompt("password", hide_input=True),
                })

    fresh = config.model_copy(update={"access_token": "", "refresh_token": ""})
    with _client(fresh, grant) as ch:
        strategy = ch.auth
        if isinstance(strategy, OAuthStrategy):
            strategy.login()
    success("Login Successful")


@app.command("logout")
def logout_command() -> None:
    """Revoke the saved token and forget it."""
    config = load_config()
    if config.access_token and config.access_token != REVOKED_TOKEN:
        try:
            ch = build_client(apply_env_overrides(config))
            try:
                strategy = ch.auth
                if isinstance(strategy, OAuthStrategy):
                    strategy.logout()
            finally:
                ch.close()
        except CredhubError as exc:
            warning(f"Token could not be revoked on the server: {exc}")
    save_config(config.model_copy(update={"access_token": REVOKED_TOKEN, "refresh_token": ""}))
    success("Logout Successful")


@app.command("token")
def token_command() -> None:
    """Print a fresh bearer token for the current session."""
    config = _current_config()
    with _client(config) as ch:
        strategy = ch.auth
        if isinstance(strategy, OAuthStrategy):
            strategy.refresh()
            print_data(f"Bearer {strategy.access_token}")


# ------------------------------------------------------------------ #
# Credentials
# ------------------------------------------------------------------ #


@app.command("get")
def get_command(
    name: str = typer.Option("", "--name", "-n", help="Name of the credential to retrieve."),
    credential_id: str = typer.Option("", "--id", help="ID of the credential version to retrieve."),
) -> None:
    """Show a credential by name (current version) or by version id."""
    if bool(name) == bool(credential_id):
        raise InvalidUsageError("Exactly one of --name or --id must be provided.")
    with _client(_current_config()) as ch:
        credential = ch.get_latest_version(name) if name else ch.get_by_id(credential_id)
    format_data(credential)


@app.command("set")
def set_command(
    name: str = typer.Option(..., "--name", "-n", help="Name of the credential to set."),
    credential_type: str = typer.Option(..., "--type", "-t", help="Credential type (value, password, json, user, certificate, ssh, rsa)."),
    value: str = typer.Option(..., "--value", "-v", help="Value; JSON for structured types."),
) -> None:
    """Store a new version of a credential."""
    credential_type = credential_type.lower()
    payload: Any = value
    if credential_type in STRUCTURED_TYPES:
        try:
            payload = json.loads(value)
        except json.JSONDecodeError as exc:
            raise InvalidUsageError(f"The value for type '{credential_type}' must be JSON: {exc}") from exc
    with _client(_current_config()) as ch:
        credential = ch.set_credential(name, credential_type, payload)
    format_data(credential)


@app.command("regenerate")
def regenerate_command(
    name: str = typer.Option(..., "--name", "-n", help="Name of the credential to regenerate."),
) -> None:
    """Regenerate a credential using its stored generation parameters."""
    with _client(_current_config()) as ch:
        credential = ch.regenerate(name)
    format_data(credential)


@app.command("find")
def find_command(
    name_like: str = typer.Option("", "--name-like", "-n", help="Find credentials whose name contains this text."),
    path: str = typer.Option("", "--path", "-p", help="Find credentials under this path."),
) -> None:
    """Find credentials by partial name or path, or list all paths."""
    if name_like and path:
        raise InvalidUsageError("Only one of --name-like or --path may be provided.")
    with _client(_current_config()) as ch:
        if name_like:
            results: Any = ch.find_by_partial_name(name_like)
        elif path:
            results = ch.find_by_path(path)
        else:
            results = ch.find_all_paths()
    format_data(results)


@app.command("delete")
def delete_command(
    name: str = typer.Option("", "--name", "-n", help="Name of the credential to delete."),
    path: str = typer.Option("", "--path", "-p", help="Path of the credentials to delete."),
) -> None:
    """Delete one credential by name, or every credential under a path."""
    if name:
        with _client(_current_config()) as ch:
            ch.delete_by_name(name)
        success("Credential successfully deleted")
        return
    if not path:
        raise InvalidUsageError("A name or path must be provided. Please update and retry your request.")

    with _client(_current_config()) as ch:
        failures = ch.delete_by_path(path)

    if not failures:
        success("All credentials successfully deleted.")
        return
    error("The following credentials failed to delete:")
    print_error_data(failures)
    raise typer.Exit(code=EXIT_GENERIC_FAILURE)


# ------------------------------------------------------------------ #
# Permissions
# ------------------------------------------------------------------ #


@app.command("get-permission")
def get_permission_command(
    param: str = typer.Argument(help="Permission UUID (servers 2.0+) or credential name (older servers)."),
) -> None:
    """Show a permission."""
    with _client(_current_config()) as ch:
        permission = ch.get_permission(param)
    if permission is None:
        warning(f"No permissions found for {param}")
        return
    format_data(permission)


@app.command("set-permission")
def set_permission_command(
    path: str = typer.Option(..., "--path", "-p", help="Credential path the permission applies to."),
    actor: str = typer.Option(..., "--actor", "-a", help="Actor receiving the permission."),
    operations: str = typer.Option(..., "--operations", "-o", help="Comma-separated operations (read,write,delete,read_acl,write_acl)."),
) -> None:
    """Grant an actor operations on a credential path."""
    ops = [op.strip() for op in operations.split(",") if op.strip()]
    if not ops:
        raise InvalidUsageError("At least one operation must be provided.")
    with _client(_current_config()) as ch:
        permission = ch.add_permission(path, actor, ops)
    if permission is not None:
        format_data(permission)
    else:
        success("Permission successfully added")
        suggest(f"View it with: credhub get-permission {path}")


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from credhub_cli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``credhub`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except CredhubError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
