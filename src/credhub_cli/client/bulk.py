"""List-then-act bulk operations with partial-failure collection.

A bulk operation runs one listing call and then one independent action per
listed item, strictly in order. The listing call failing aborts everything;
an item failing is recorded and processing moves on to the next item. The
caller learns about item failures only through the returned sequence.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, TypeVar

from credhub_cli.exceptions import CredhubError
from credhub_cli.models import BulkItemFailure
from credhub_cli.output import debug

ItemT = TypeVar("ItemT")


def run_bulk(
    list_items: Callable[[], Iterable[ItemT]],
    action: Callable[[ItemT], object],
    identify: Callable[[ItemT], str] = str,
    on_success: Optional[Callable[[str], None]] = None,
) -> list[BulkItemFailure]:
    """Apply *action* to every item produced by *list_items*.

    Args:
        list_items: The listing call. Any error it raises propagates and no
            action is run.
        action: The per-item action. A :class:`CredhubError` it raises is
            collected as a :class:`BulkItemFailure`; other exceptions are
            programming errors and propagate.
        identify: Maps an item to the identifier used in notifications and
            failure entries.
        on_success: Called with the identifier after each successful action.

    Returns:
        The failures, in listing order. Empty when every action succeeded.
    """
    items = list(list_items())
    debug(f"Bulk operation over {len(items)} item(s)")

    failures: list[BulkItemFailure] = []
    for item in items:
        identifier = identify(item)
        try:
            action(item)
        except CredhubError as exc:
            debug(f"{identifier}: {exc}")
            failures.append(BulkItemFailure(identifier=identifier, error=str(exc)))
            continue
        if on_success is not None:
            on_success(identifier)
    return failures
