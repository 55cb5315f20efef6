"""Client module for credhub_cli.

Classes and functions:
    :class:`CredHub` -- facade exposing credential, permission and
    server-info operations over the authenticated pipeline.
    :class:`RequestDispatcher` -- status/decoding/error mapping.
    :class:`VersionGate` and :class:`ApiGeneration` -- cached
    server-version selection between v1 and v2 endpoint shapes.
    :func:`run_bulk` -- list-then-act aggregation of per-item failures.
"""

from credhub_cli.client.bulk import run_bulk
from credhub_cli.client.credhub import CredHub
from credhub_cli.client.dispatcher import RequestDispatcher
from credhub_cli.client.versioning import ApiGeneration, VersionGate

__all__ = [
    "ApiGeneration",
    "CredHub",
    "RequestDispatcher",
    "VersionGate",
    "run_bulk",
]
