from __future__ import annotations

from typing import Iterable, Iterator, TypeVar

T = TypeVar("T")


class DeduplicationTracker:
    """Ids already placed in a recommendation list.

    Shared by every cascade stage so an item is only ever emitted once.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def consumed(self) -> frozenset[str]:
        return frozenset(self._seen)

    def claim(self, item_id: str) -> bool:
        """Mark ``item_id`` as used. Returns False if it already was."""
        if item_id in self._seen:
            return False
        self._seen.add(item_id)
        return True

    def admit(self, items: Iterable[T]) -> Iterator[T]:
        """Yield the items (anything with an ``id``) not yet claimed, claiming them."""
        for item in items:
            if self.claim(item.id):  # type: ignore[attr-defined]
                yield item
