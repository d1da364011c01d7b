"""A chained hash table with pluggable hash, equality and deleters."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

from zlog.profile import error

_MASK32 = 0xFFFFFFFF
_LOAD_FACTOR = 1.3


def str_hash(text: str) -> int:
    """Return the 32-bit djb2 hash of *text* (``h * 33 + c``, seeded with 5381).

    Bytes of the UTF-8 encoding are taken as signed chars.
    """
    value = 5381
    for byte in text.encode("utf-8"):
        if byte >= 128:
            byte -= 256
        value = (value * 33 + byte) & _MASK32
    return value


def str_equal(first: str, second: str) -> bool:
    """Return True when both strings are equal."""
    return first == second


class HashTable:
    """Keys and values in buckets chosen by ``hash_fn(key) % size``.

    The table doubles its bucket count once it holds more than 1.3 entries
    per bucket. *key_del* and *value_del*, when given, are called with every
    key and value that is replaced, removed or cleaned away.
    """

    def __init__(
        self,
        size: int = 20,
        hash_fn: Callable[[Any], int] = str_hash,
        equal_fn: Callable[[Any, Any], bool] = str_equal,
        key_del: Optional[Callable[[Any], None]] = None,
        value_del: Optional[Callable[[Any], None]] = None,
    ) -> None:
        if size <= 0:
            raise ValueError(f"hash table size must be positive, got {size}")
        self._buckets: list[list[list[Any]]] = [[] for _ in range(size)]
        self._count = 0
        self._hash = hash_fn
        self._equal = equal_fn
        self._key_del = key_del
        self._value_del = value_del

    def _bucket(self, hash_key: int) -> list[list[Any]]:
        return self._buckets[hash_key % len(self._buckets)]

    def _find(self, key: Any) -> Optional[list[Any]]:
        for entry in self._bucket(self._hash(key)):
            if self._equal(key, entry[1]):
                return entry
        return None

    def _dispose(self, key: Any, value: Any) -> None:
        if self._key_del is not None:
            self._key_del(key)
        if self._value_del is not None:
            self._value_del(value)

    def _rehash(self) -> None:
        old = self._buckets
        self._buckets = [[] for _ in range(2 * len(old))]
        for bucket in old:
            for entry in bucket:
                self._bucket(entry[0]).insert(0, entry)

    def put(self, key: Any, value: Any) -> None:
        """Store *value* under *key*, replacing and disposing of any old entry."""
        entry = self._find(key)
        if entry is not None:
            self._dispose(entry[1], entry[2])
            entry[1] = key
            entry[2] = value
            return
        if self._count > len(self._buckets) * _LOAD_FACTOR:
            self._rehash()
        hash_key = self._hash(key)
        self._bucket(hash_key).insert(0, [hash_key, key, value])
        self._count += 1

    def get(self, key: Any) -> Any:
        """Return the value stored under *key*, or None."""
        entry = self._find(key)
        return None if entry is None else entry[2]

    def remove(self, key: Any) -> None:
        """Remove *key* and dispose of its entry; raise KeyError if absent."""
        bucket = self._bucket(self._hash(key))
        for position, entry in enumerate(bucket):
            if self._equal(key, entry[1]):
                break
        else:
            error("key[%s] not found in hashtable", key)
            raise KeyError(key)
        self._dispose(entry[1], entry[2])
        del bucket[position]
        self._count -= 1

    def clean(self) -> None:
        """Remove every entry, disposing of each."""
        buckets = self._buckets
        self._buckets = [[] for _ in range(len(buckets))]
        self._count = 0
        for bucket in buckets:
            for _, key, value in bucket:
                self._dispose(key, value)

    def items(self) -> Iterator[tuple[Any, Any]]:
        """Yield ``(key, value)`` pairs in bucket order."""
        for bucket in self._buckets:
            for _, key, value in list(bucket):
                yield key, value

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Any]:
        for key, _ in self.items():
            yield key

    def __contains__(self, key: Any) -> bool:
        return self._find(key) is not None