"""Abstract physical storage interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Iterable


class KVStore(ABC):
    """Physical key-value storage operating on bytes only.

    Several data store instances may share one ``KVStore`` (or, for
    disk storage, one directory across processes). The store is the
    arbiter between those writers: ``cas`` and ``transact`` are the
    only primitives that give atomicity across instances.
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Get bytes value for key, or None if not found."""

    @abstractmethod
    def set_many(self, **kwargs: bytes) -> None:
        """Set multiple key-value pairs."""

    @abstractmethod
    def items(self, prefix: str = "") -> Iterable[tuple[str, bytes]]:
        """Iterate over key-value pairs whose key starts with prefix."""

    @abstractmethod
    def keys(self, prefix: str = "") -> Iterable[str]:
        """Iterate over keys starting with prefix."""

    @abstractmethod
    def __contains__(self, key: str) -> bool:
        """Check if key exists in store."""

    @abstractmethod
    def remove_many(self, *keys: str) -> None:
        """Remove multiple keys, ignoring missing ones."""

    @abstractmethod
    def cas(self, key: str, value: bytes, expected: bytes | None) -> bool:
        """Atomic compare-and-swap.

        Set value only if current value equals expected.
        None means "key must not exist".

        Returns True if swap succeeded, False otherwise.
        """

    @abstractmethod
    def transact(self) -> AbstractContextManager[None]:
        """Context manager grouping operations into one atomic unit.

        Other writers (and ``cas``) are excluded until the block exits.
        Re-entrant within one thread.
        """

    @abstractmethod
    def clear(self, prefix: str = "") -> None:
        """Remove all items whose key starts with prefix."""

    def close(self) -> None:
        """Release any resources held by the store."""
