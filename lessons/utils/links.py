"""Many-to-many link reconciliation.

`reconcile_links` makes the stored set of related ids for one parent
match a desired set by inserting the missing links and deleting the
surplus ones. It works on plain id collections; the caller supplies the
storage callbacks, so the same routine maintains lesson and activity
links of a lesson plan.

Rows are applied one at a time. A failing row is logged and reported in
`LinkDelta.failed` and the remaining rows are still processed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List

from sqlalchemy.exc import SQLAlchemyError

_LOGGER = logging.getLogger("lessons.links")


@dataclass
class LinkDelta:
    """Outcome of one reconciliation pass."""
    inserted: List[int] = field(default_factory=list)
    deleted: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.deleted)


def _ordered_unique(ids: Iterable[int]) -> List[int]:
    seen = set()
    out = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


def link_diff(current: Iterable[int], desired: Iterable[int]) -> tuple[List[int], List[int]]:
    """Return `(to_insert, to_delete)` preserving the input orders."""
    current_ids = _ordered_unique(current)
    desired_ids = _ordered_unique(desired)
    current_set = set(current_ids)
    desired_set = set(desired_ids)
    to_insert = [i for i in desired_ids if i not in current_set]
    to_delete = [i for i in current_ids if i not in desired_set]
    return to_insert, to_delete


def reconcile_links(
    current: Iterable[int],
    desired: Iterable[int],
    *,
    exists: Callable[[int], bool],
    link: Callable[[int], None],
    unlink: Callable[[int], bool],
    on_error: Callable[[], None] | None = None,
) -> LinkDelta:
    """Apply the minimal inserts and deletes turning `current` into `desired`.

    - `exists(id)` is checked again right before each insert, so a link
      created concurrently since `current` was read is skipped.
    - `link(id)` persists a new link.
    - `unlink(id)` deletes the link if present and returns whether a row
      was removed.
    - `on_error()` runs after a failed row, typically a session rollback.

    Ids present in both sets are not touched. The insert pass runs before
    the delete pass.
    """
    to_insert, to_delete = link_diff(current, desired)
    delta = LinkDelta()
    for related_id in to_insert:
        try:
            if exists(related_id):
                continue
            link(related_id)
        except SQLAlchemyError as exc:
            # a duplicate from a concurrent writer still leaves the link in place
            _LOGGER.warning("link_insert_failed related_id=%s error=%s", related_id, exc.__class__.__name__)
            delta.failed.append(related_id)
            if on_error is not None:
                on_error()
            continue
        delta.inserted.append(related_id)
    for related_id in to_delete:
        try:
            removed = unlink(related_id)
        except SQLAlchemyError as exc:
            _LOGGER.warning("link_delete_failed related_id=%s error=%s", related_id, exc.__class__.__name__)
            delta.failed.append(related_id)
            if on_error is not None:
                on_error()
            continue
        if removed:
            delta.deleted.append(related_id)
    return delta
