"""Store protocols and factory function."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .dataset import FullDataSet
    from .kv.base import KVStore
    from .model import DataKind, Record


UpdateHook = Callable[[], None]
"""Pre-commit callback: runs after an upsert is accepted, before it is written."""


@runtime_checkable
class PersistentDataStore(Protocol):
    """Blocking store contract.

    Implementations: ``KVDataStore``.
    """

    def initialized(self) -> bool: ...
    def init(self, dataset: FullDataSet) -> None: ...
    def get(self, kind: DataKind, key: str) -> Record | None: ...
    def get_all(self, kind: DataKind) -> dict[str, Record]: ...
    def upsert(self, kind: DataKind, key: str, record: Record) -> bool: ...
    def close(self) -> None: ...


@runtime_checkable
class AsyncPersistentDataStore(Protocol):
    """Coroutine store contract. Same semantics as ``PersistentDataStore``.

    Implementations: ``AsyncKVDataStore``.
    """

    async def initialized(self) -> bool: ...
    async def init(self, dataset: FullDataSet) -> None: ...
    async def get(self, kind: DataKind, key: str) -> Record | None: ...
    async def get_all(self, kind: DataKind) -> dict[str, Record]: ...
    async def upsert(self, kind: DataKind, key: str, record: Record) -> bool: ...
    async def close(self) -> None: ...


def data_store(
    storage: KVStore,
    *,
    prefix: str | None = None,
    mode: Literal["sync", "async"] = "sync",
    update_hook: UpdateHook | None = None,
) -> PersistentDataStore | AsyncPersistentDataStore:
    """Create a reference data store over physical storage.

    Args:
        storage: Physical storage, shared by every instance that should
            see the same data (see ``pdskit.kv.storage``).
        prefix: Namespace for all keys. ``None`` selects the default.
        mode: ``"sync"`` (default) for ``KVDataStore``, ``"async"`` for
            ``AsyncKVDataStore``.
        update_hook: Optional pre-commit callback.

    Returns:
        A store instance implementing one of the store protocols.
    """
    if mode == "sync":
        from .datastore import KVDataStore

        return KVDataStore(storage, prefix=prefix, update_hook=update_hook)
    if mode == "async":
        from .async_datastore import AsyncKVDataStore

        return AsyncKVDataStore(storage, prefix=prefix, update_hook=update_hook)
    raise ValueError(f"Unknown mode: {mode!r}")
