"""A growable list with an optional deleter for replaced items."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional


class ArrayList:
    """Ordered items that may have empty (None) slots.

    *on_delete*, when given, is called with every item that is replaced or
    cleared away.
    """

    def __init__(self, on_delete: Optional[Callable[[Any], None]] = None) -> None:
        self._items: list[Any] = []
        self._on_delete = on_delete

    def set(self, index: int, item: Any) -> None:
        """Put *item* at *index*, growing the list with empty slots as needed."""
        if index < 0:
            raise IndexError(f"negative index {index}")
        if index >= len(self._items):
            self._items.extend([None] * (index + 1 - len(self._items)))
        old = self._items[index]
        if old is not None and self._on_delete is not None:
            self._on_delete(old)
        self._items[index] = item

    def add(self, item: Any) -> None:
        """Append *item*."""
        self.set(len(self._items), item)

    def sortadd(self, compare: Callable[[Any, Any], int], item: Any) -> None:
        """Insert *item* before the first element that compares greater.

        An empty slot at that position is filled instead of shifting.
        """
        for index, current in enumerate(self._items):
            if compare(current, item) > 0:
                break
        else:
            self.add(item)
            return
        if self._items[index] is None:
            self._items[index] = item
        else:
            self._items.insert(index, item)

    def get(self, index: int) -> Any:
        """Return the item at *index*, or None past the end."""
        if index < 0:
            raise IndexError(f"negative index {index}")
        if index >= len(self._items):
            return None
        return self._items[index]

    def clear(self) -> None:
        """Remove every item, passing each to the deleter."""
        items, self._items = self._items, []
        if self._on_delete is not None:
            for item in items:
                if item is not None:
                    self._on_delete(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items))