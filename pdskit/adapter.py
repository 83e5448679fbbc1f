"""StoreAdapter: one blocking call surface over sync or async stores."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from typing import Any, Callable

from .dataset import FullDataSet
from .errors import ConfigurationError
from .model import DataKind, Record
from .store import UpdateHook

logger = logging.getLogger(__name__)

CONTRACT_METHODS = ("initialized", "init", "get", "get_all", "upsert")

HookInstaller = Callable[[Any, UpdateHook], None]
"""``(store, hook) -> None``: installs a pre-commit hook on a store."""


def is_async_store(store: Any) -> bool:
    """Decide the calling convention of a store from its contract methods.

    Raises:
        ConfigurationError: A contract method is missing, or the
            methods mix blocking and coroutine conventions.
    """
    missing = [name for name in CONTRACT_METHODS if not callable(getattr(store, name, None))]
    if missing:
        raise ConfigurationError(
            f"{type(store).__name__} does not implement the store contract "
            f"(missing: {', '.join(missing)})"
        )
    flags = {inspect.iscoroutinefunction(getattr(store, name)) for name in CONTRACT_METHODS}
    if len(flags) > 1:
        raise ConfigurationError(
            f"{type(store).__name__} mixes blocking and coroutine contract methods"
        )
    return flags.pop()


class StoreAdapter:
    """Blocking view of one store instance.

    Blocking stores are called directly. Coroutine stores run on an
    event loop owned by this adapter, on its own daemon thread; each
    call blocks until its coroutine finishes. Because every adapter has
    its own loop, an update hook running inside one store's upsert can
    drive another adapter without re-entering a running loop.

    Calls are serialized: at most one is in flight per adapter.

    Args:
        store: A ``PersistentDataStore`` or ``AsyncPersistentDataStore``.
        set_update_hook: Optional installer for pre-commit hooks.
        name: Label used in thread names and log messages.
    """

    def __init__(
        self,
        store: Any,
        *,
        set_update_hook: HookInstaller | None = None,
        name: str = "store",
    ) -> None:
        self.is_async = is_async_store(store)
        self._store = store
        self._set_update_hook = set_update_hook
        self.name = name
        self._lock = threading.Lock()
        self._closed = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        if self.is_async:
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(
                target=self._loop.run_forever, name=f"pdskit-{name}", daemon=True
            )
            self._thread.start()

    @property
    def store(self) -> Any:
        """The wrapped store instance."""
        return self._store

    @property
    def supports_update_hook(self) -> bool:
        return self._set_update_hook is not None

    def set_update_hook(self, hook: UpdateHook) -> None:
        """Install a pre-commit hook on the wrapped store.

        Raises:
            ConfigurationError: No hook installer was configured.
        """
        if self._set_update_hook is None:
            raise ConfigurationError(
                f"{type(self._store).__name__} has no update hook installer configured"
            )
        self._set_update_hook(self._store, hook)

    def _call(self, name: str, *args: Any) -> Any:
        if self._closed:
            raise RuntimeError(f"Adapter {self.name!r} is closed")
        method = getattr(self._store, name)
        with self._lock:
            if self._loop is None:
                return method(*args)
            return asyncio.run_coroutine_threadsafe(method(*args), self._loop).result()

    # -- Store contract --

    def initialized(self) -> bool:
        return self._call("initialized")

    def init(self, dataset: FullDataSet) -> None:
        self._call("init", dataset)

    def get(self, kind: DataKind, key: str) -> Record | None:
        return self._call("get", kind, key)

    def get_all(self, kind: DataKind) -> dict[str, Record]:
        return dict(self._call("get_all", kind))

    def upsert(self, kind: DataKind, key: str, record: Record) -> bool:
        return self._call("upsert", kind, key, record)

    # -- Lifecycle --

    def close(self) -> None:
        """Close the store, then stop the adapter's loop. Idempotent."""
        if self._closed:
            return
        try:
            close = getattr(self._store, "close", None)
            if close is not None:
                if inspect.iscoroutinefunction(close) and self._loop is not None:
                    asyncio.run_coroutine_threadsafe(close(), self._loop).result()
                elif inspect.iscoroutinefunction(close):
                    asyncio.run(close())
                else:
                    close()
        finally:
            self._closed = True
            if self._loop is not None and self._thread is not None:
                self._stop_loop(self._loop, self._thread)
        logger.debug("Closed adapter %s", self.name)

    @staticmethod
    def _stop_loop(loop: asyncio.AbstractEventLoop, thread: threading.Thread) -> None:
        asyncio.run_coroutine_threadsafe(loop.shutdown_default_executor(), loop).result()
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()

    def __enter__(self) -> StoreAdapter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
