"""credhub_cli -- client library and CLI for CredHub-style credential servers.

The package talks to a credential server protected by a UAA-style OAuth2
token issuer. Its core is the authenticated request pipeline:

* :mod:`credhub_cli.auth` -- token acquisition, bearer injection, and a
  single refresh-and-retry cycle around every HTTP exchange.
* :mod:`credhub_cli.client` -- request dispatch and error mapping, server
  version gating for the v1/v2 permission APIs, and bulk operations that
  collect per-item failures.

Typical usage::

    from credhub_cli.auth import builders
    from credhub_cli.client import CredHub

    ch = CredHub("https://credhub.example.com:8844",
                 auth=builders.uaa("credhub_cli", "", "admin", "secret"))
    failures = ch.delete_by_path("/team/old")

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for wire payloads and the local config.
    config: XDG-aware config persistence.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting.
"""

__version__ = "0.3.0"
