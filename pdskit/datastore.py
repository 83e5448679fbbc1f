"""KVDataStore: the reference blocking store over physical storage."""

import logging
import pickle
from typing import Iterable

from .dataset import FullDataSet
from .kv.base import KVStore
from .model import DataKind, Record
from .store import UpdateHook

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "pdskit"

ITEM_KEY = "%s:items:%s:%s"
ITEMS_PREFIX = "%s:items:"
INITED_KEY = "%s:$inited"


def resolve_prefix(prefix: str | None) -> str:
    """Validate a namespace prefix, mapping None or "" to the default."""
    if not prefix:
        return DEFAULT_PREFIX
    if ":" in prefix:
        raise ValueError("Prefixes cannot contain ':'")
    return prefix


def kind_prefix(prefix: str, kind: DataKind) -> str:
    return ITEM_KEY % (prefix, kind.name, "")


def encode(record: Record) -> bytes:
    return pickle.dumps((record.version, record.value))


def decode(key: str, data: bytes) -> Record:
    version, value = pickle.loads(data)
    return Record(key, version, value)


def plan_init(
    prefix: str, dataset: FullDataSet, existing: Iterable[str]
) -> tuple[dict[str, bytes], list[str]]:
    """Work out the writes and removals that replace all data with dataset.

    Args:
        prefix: Resolved namespace prefix.
        dataset: The new data.
        existing: Stored keys under this prefix, read inside the same
            transaction that will apply the result.

    Returns:
        ``(updates, removals)`` over physical keys, updates including
        the initialized marker.
    """
    updates: dict[str, bytes] = {}
    for kind, items in dataset.items():
        for key, record in items.items():
            updates[ITEM_KEY % (prefix, kind.name, key)] = encode(record)
    # Kinds missing from dataset are emptied too.
    items_prefix = ITEMS_PREFIX % prefix
    removals = [k for k in existing if k.startswith(items_prefix) and k not in updates]
    updates[INITED_KEY % prefix] = b"1"
    return updates, removals


class KVDataStore:
    """Blocking data store over a ``KVStore``.

    Keys are laid out as ``<prefix>:items:<kind>:<key>``. Instances
    built on the same storage with the same prefix see each other's
    data; different prefixes are isolated.

    Upserts are optimistic: read, compare versions, run the update
    hook, then compare-and-swap against the bytes read. A failed swap
    means another writer got in first, so the whole sequence retries.

    Implements the ``PersistentDataStore`` protocol.

    Args:
        storage: Physical storage, possibly shared.
        prefix: Namespace prefix (must not contain ``:``).
        update_hook: Called after an upsert is accepted and before it is
            written.
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
        """Install (or with None, remove) the pre-commit hook."""
        self._update_hook = hook

    def _item_key(self, kind: DataKind, key: str) -> str:
        return ITEM_KEY % (self.prefix, kind.name, key)

    # -- Read operations --

    def initialized(self) -> bool:
        return INITED_KEY % self.prefix in self._store

    def get(self, kind: DataKind, key: str) -> Record | None:
        data = self._store.get(self._item_key(kind, key))
        return None if data is None else decode(key, data)

    def get_all(self, kind: DataKind) -> dict[str, Record]:
        prefix = kind_prefix(self.prefix, kind)
        return {
            k[len(prefix):]: decode(k[len(prefix):], data)
            for k, data in self._store.items(prefix)
        }

    # -- Write operations --

    def init(self, dataset: FullDataSet) -> None:
        with self._store.transact():
            updates, removals = plan_init(self.prefix, dataset, self._store.keys(f"{self.prefix}:"))
            self._store.remove_many(*removals)
            self._store.set_many(**updates)
        logger.debug(
            "init %s: wrote %d keys, removed %d", self.prefix, len(updates) - 1, len(removals)
        )

    def upsert(self, kind: DataKind, key: str, record: Record) -> bool:
        item_key = self._item_key(kind, key)
        new_data = encode(record)
        while True:
            old_data = self._store.get(item_key)
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
            if self._store.cas(item_key, new_data, expected=old_data):
                return True
            logger.debug("Concurrent modification of %s/%s, retrying", kind, key)

    def close(self) -> None:
        """Nothing to release: the storage belongs to whoever created it."""
