"""Disk-backed physical storage using diskcache."""

from contextlib import AbstractContextManager
from typing import Iterable, cast

from .base import KVStore

ONE_GB = 1024 * 1024 * 1024


class Disk(KVStore):
    """KV store backed by diskcache (SQLite + mmap).

    Any number of ``Disk`` objects, in this process or others, may open
    the same directory. SQLite's ``BEGIN IMMEDIATE`` transactions (via
    ``Cache.transact``) serialize their writers.
    """

    def __init__(self, directory: str, size_limit: int = ONE_GB) -> None:
        from diskcache import Cache as DiskCache

        # Records must never be evicted.
        self.store = DiskCache(directory, size_limit=size_limit, eviction_policy="none")

    def get(self, key: str) -> bytes | None:
        return cast(bytes | None, self.store.get(key))

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            if not isinstance(value, bytes):
                raise TypeError(f"Expected bytes for {key}, got {type(value).__name__}")
        with self.store.transact():
            for key, value in kwargs.items():
                self.store[key] = value

    def items(self, prefix: str = "") -> Iterable[tuple[str, bytes]]:
        with self.store.transact():
            result = []
            for key in self.keys(prefix):
                value = self.get(key)
                if value is not None:
                    result.append((key, value))
            return result

    def keys(self, prefix: str = "") -> Iterable[str]:
        return [str(key) for key in self.store.iterkeys() if str(key).startswith(prefix)]

    def __contains__(self, key: str) -> bool:
        return key in self.store

    def remove_many(self, *keys: str) -> None:
        with self.store.transact():
            for key in keys:
                self.store.delete(key, retry=False)

    def cas(self, key: str, value: bytes, expected: bytes | None) -> bool:
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        with self.store.transact():
            current = cast(bytes | None, self.store.get(key))
            if current == expected:
                self.store[key] = value
                return True
            return False

    def transact(self) -> AbstractContextManager[None]:
        return self.store.transact()

    def clear(self, prefix: str = "") -> None:
        if not prefix:
            self.store.clear()
            return
        with self.store.transact():
            for key in self.keys(prefix):
                self.store.delete(key, retry=False)

    def close(self) -> None:
        self.store.close()
