"""Server-version gating for endpoints whose shape changed between API generations.

The permissions API exists in two incompatible generations: v1
(``/api/v1/permissions``, keyed by credential name) on servers before 2.0
and v2 (``/api/v2/permissions``, keyed by path and UUID) from 2.0 on.

:class:`VersionGate` discovers the server version at most once per client,
caches the raw version string for the life of the process, and reduces it to
an :class:`ApiGeneration` that every version-sensitive operation branches on.
Only the major version component is consulted.
"""

from __future__ import annotations

import enum
import threading
from typing import Callable, Optional

import semver

from credhub_cli.exceptions import DecodeError
from credhub_cli.output import debug

CURRENT_API_MAJOR_VERSION = 2


class ApiGeneration(enum.Enum):
    """Shape of version-sensitive endpoints."""

    LEGACY = "v1"
    CURRENT = "v2"


class VersionGate:
    """Lazily discover, cache and interpret the server version.

    Args:
        discover: Callable returning the server's raw version string. Called
            at most once; its errors propagate to the calling operation.
        version: Optional known version. When given, discovery never runs.

    Example::

        gate = VersionGate(ch.server_version)
        if gate.resolve_api_generation() is ApiGeneration.LEGACY:
            ...
    """

    def __init__(self, discover: Callable[[], str], version: Optional[str] = None) -> None:
        self._discover = discover
        self._cached = version or ""
        self._lock = threading.RLock()

    @property
    def cached_version(self) -> str:
        """The raw cached version string, empty until discovered."""
        with self._lock:
            return self._cached

    def resolve_version(self) -> semver.Version:
        """Return the parsed server version, discovering it on first use.

        Raises:
            DecodeError: If the cached version string is not a valid version.
                The failure is not retried or defaulted.
        """
        with self._lock:
            if not self._cached:
                debug("Discovering server version")
                self._cached = self._discover()
            raw = self._cached
        try:
            return semver.Version.parse(raw, optional_minor_and_patch=True)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"Invalid server version '{raw}': {exc}") from exc

    def resolve_api_generation(self) -> ApiGeneration:
        """Map the server's major version onto an :class:`ApiGeneration`."""
        if self.resolve_version().major < CURRENT_API_MAJOR_VERSION:
            return ApiGeneration.LEGACY
        return ApiGeneration.CURRENT
