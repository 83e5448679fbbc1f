"""In-memory physical storage."""

import threading
from contextlib import contextmanager
from typing import Iterable, Iterator

from .base import KVStore


class Memory(KVStore):
    """A memory-backed KV store.

    Shared by every data store instance in the process that is handed
    the same ``Memory`` object. All access goes through one re-entrant
    lock so ``transact`` blocks are atomic to readers too.
    """

    def __init__(self) -> None:
        self.memory: dict[str, bytes] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self.memory.get(key)

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            if not isinstance(value, bytes):
                raise TypeError(f"Expected bytes for {key}, got {type(value).__name__}")
        with self._lock:
            self.memory.update(kwargs)

    def items(self, prefix: str = "") -> Iterable[tuple[str, bytes]]:
        with self._lock:
            return [(k, v) for k, v in self.memory.items() if k.startswith(prefix)]

    def keys(self, prefix: str = "") -> Iterable[str]:
        with self._lock:
            return [k for k in self.memory if k.startswith(prefix)]

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self.memory

    def remove_many(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self.memory.pop(key, None)

    def cas(self, key: str, value: bytes, expected: bytes | None) -> bool:
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        with self._lock:
            current = self.memory.get(key)
            if current == expected:
                self.memory[key] = value
                return True
            return False

    @contextmanager
    def transact(self) -> Iterator[None]:
        with self._lock:
            yield

    def clear(self, prefix: str = "") -> None:
        with self._lock:
            if not prefix:
                self.memory.clear()
                return
            for key in [k for k in self.memory if k.startswith(prefix)]:
                del self.memory[key]
