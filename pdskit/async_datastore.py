"""AsyncKVDataStore: the reference coroutine store."""

import asyncio
import logging

from .datastore import ITEM_KEY, INITED_KEY, decode, encode, kind_prefix, plan_init, resolve_prefix
from .dataset import FullDataSet
from .kv.base import KVStore
from .model import DataKind, Record
from .store import UpdateHook

logger = logging.getLogger(__name__)


class AsyncKVDataStore:
    """Coroutine data store over a ``KVStore``.

    Same key layout and upsert algorithm as ``KVDataStore``; storage
    calls run in worker threads so the event loop is never blocked on
    I/O. The update hook is called directly from the coroutine.

    Implements the ``AsyncPersistentDataStore`` protocol.
    """

    def __init__(
        self,
        storage: KVStore,
        *,
        prefix: str | None = None,
        update_hook: UpdateHook | None = None,
    ) -> None:
        self._store = storage
        self.prefix = resolve_prefix(prefix)
        self._update_hook = update_hook

    def set_update_hook(self, hook: UpdateHook | None) -> None:
        self._update_hook = hook

    async def initialized(self) -> bool:
        return await asyncio.to_thread(self._store.__contains__, INITED_KEY % self.prefix)

    async def get(self, kind: DataKind, key: str) -> Record | None:
        data = await asyncio.to_thread(self._store.get, ITEM_KEY % (self.prefix, kind.name, key))
        return None if data is None else decode(key, data)

    async def get_all(self, kind: DataKind) -> dict[str, Record]:
        prefix = kind_prefix(self.prefix, kind)
        items = await asyncio.to_thread(self._store.items, prefix)
        return {k[len(prefix):]: decode(k[len(prefix):], data) for k, data in items}

    async def init(self, dataset: FullDataSet) -> None:
        await asyncio.to_thread(self._init, dataset)

    def _init(self, dataset: FullDataSet) -> None:
        # One worker thread for the whole transaction; Memory's lock and
        # SQLite transactions are both per thread.
        with self._store.transact():
            updates, removals = plan_init(self.prefix, dataset, self._store.keys(f"{self.prefix}:"))
            self._store.remove_many(*removals)
            self._store.set_many(**updates)
        logger.debug(
            "init %s: wrote %d keys, removed %d", self.prefix, len(updates) - 1, len(removals)
        )

    async def upsert(self, kind: DataKind, key: str, record: Record) -> bool:
        item_key = ITEM_KEY % (self.prefix, kind.name, key)
        new_data = encode(record)
        while True:
            old_data = await asyncio.to_thread(self._store.get, item_key)
            if old_data is not None:
                old_version = decode(key, old_data).version
                if old_version >= record.version:
                    logger.debug(
                        "Rejected %s/%s version %d: stored version is %d",
                        kind, key, record.version, old_version,
                    )
                    return False
            if self._update_hook is not None:
                self._update_hook()
            if await asyncio.to_thread(self._store.cas, item_key, new_data, old_data):
                return True
            logger.debug("Concurrent modification of %s/%s, retrying", kind, key)

    async def close(self) -> None:
        pass
