from __future__ import annotations

from datetime import datetime

from ..catalog.models import VisitedEntry

VISITED_CAPACITY = 20


def push_visit(
    entries: list[VisitedEntry],
    item_id: str,
    visited_at: datetime,
    capacity: int = VISITED_CAPACITY,
) -> list[VisitedEntry]:
    """Return a new visit log with ``item_id`` moved to the front.

    Any earlier entry for the same id is dropped and the log is cut to
    ``capacity`` entries, oldest last.
    """
    kept = [e for e in entries if e.item_id != item_id]
    kept.insert(0, VisitedEntry(item_id=item_id, visited_at=visited_at))
    return kept[:capacity]
