"""Output formatting system with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (credentials, permissions, tokens).
* **stderr** -- all diagnostics (status, warnings, errors, debug traces,
  per-item bulk notifications).
* **TTY detection** -- Rich syntax highlighting when stdout is an
  interactive terminal, plain text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

Structured data is rendered as YAML by default and as JSON when
``--output-json`` is passed.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding format preferences,
   Rich consoles, and quiet/verbose flags. Created once in
   :func:`~credhub_cli.app.main_callback` and installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, etc.) that delegate to the global ``OutputManager``.
   Library code (the auth strategy, dispatcher, bulk aggregator) logs
   through these so it never needs a manager passed in.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

import yaml
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax


class OutputFormat(str, Enum):
    """Enumeration of supported output formats."""

    YAML = "yaml"
    JSON = "json"


class OutputManager:
    """Central manager for all CLI output with stdout/stderr discipline.

    Args:
        format: Structured data format, YAML or JSON.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential informational messages on stderr.
        verbose: Enable debug-level messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.YAML,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._format = format
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=_is_tty() and not self._no_color,
        )
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_data(self, data: Any) -> None:
        """Render structured data to stdout in the active format.

        Pydantic models are dumped first (``None`` fields omitted, aliases
        applied). Rich highlighting is only used on an interactive terminal.

        Args:
            data: A model, list of models, dict, list, or scalar.
        """
        text = self.render(data)
        if _is_tty() and not self._no_color:
            lexer = "json" if self._format == OutputFormat.JSON else "yaml"
            self._stdout.print(Syntax(text, lexer, theme="monokai", word_wrap=True))
        else:
            self.print_data(text)

    def render(self, data: Any) -> str:
        """Serialise *data* to a string in the active format."""
        plain = _to_plain(data)
        if self._format == OutputFormat.JSON:
            return json.dumps(plain, indent=2, ensure_ascii=False, default=str)
        return yaml.safe_dump(plain, default_flow_style=False, sort_keys=False).rstrip("\n")

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def print_error_data(self, data: Any) -> None:
        """Render structured data to stderr. Never suppressed.

        Used for failure listings that must not contaminate stdout.
        """
        print(self.render(data), file=sys.stderr, flush=True)

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(message, markup=False)

    def success(self, message: str) -> None:
        """Print a green success message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(message, style="green", markup=False)

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. NOT suppressed by ``--quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def suggest(self, message: str) -> None:
        """Print a dimmed next-step suggestion to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            formatted = f"→ {message}"
            if self._no_color:
                print(formatted, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]{escape(formatted)}[/dim]")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when ``--verbose`` is active."""
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]\\[debug] {escape(message)}[/dim]")


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _to_plain(data: Any) -> Any:
    """Convert pydantic models (possibly nested in lists) to plain data."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(data, list):
        return [_to_plain(item) for item in data]
    return data


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set (any value) or TERM=dumb."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def format_data(data: Any) -> None:
    get_output().format_data(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_error_data(data: Any) -> None:
    get_output().print_error_data(data)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
