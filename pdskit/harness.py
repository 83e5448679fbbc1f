"""Harness: builds store instances for conformance scenarios."""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator

from .adapter import HookInstaller, StoreAdapter
from .errors import ConfigurationError
from .store import UpdateHook

logger = logging.getLogger(__name__)

StoreFactory = Callable[[str | None], Any]
"""``(prefix) -> store``: builds a sync or async store instance."""

ClearData = Callable[[str | None], "None | Awaitable[None]"]
"""``(prefix) -> None``: wipes physical storage before a scenario."""


@dataclass(frozen=True)
class SuiteConfig:
    """How the suite reaches one store implementation.

    Attributes:
        store_factory: Builds a fresh instance for a prefix. Instances
            built with the same prefix must share data.
        clear_data: Removes all stored data (for one prefix, or all when
            given None). May be a coroutine function.
        set_update_hook: Installs a pre-commit hook on an instance.
            Leave unset if the store has no such extension point; the
            race scenarios are then skipped.
    """

    store_factory: StoreFactory | None = None
    clear_data: ClearData | None = None
    set_update_hook: HookInstaller | None = None


class Harness:
    """Opens adapters for a ``SuiteConfig`` and guarantees their release.

    Raises:
        ConfigurationError: The config has no store factory or no
            clear-data hook.
    """

    def __init__(self, config: SuiteConfig) -> None:
        if config.store_factory is None:
            raise ConfigurationError("SuiteConfig.store_factory was not set")
        if config.clear_data is None:
            raise ConfigurationError("SuiteConfig.clear_data was not set")
        self.config = config
        self._store_factory: StoreFactory = config.store_factory
        self._clear_data: ClearData = config.clear_data
        self._open: list[StoreAdapter] = []

    @property
    def supports_update_hook(self) -> bool:
        return self.config.set_update_hook is not None

    def clear_all_data(self, prefix: str | None = None) -> None:
        result = self._clear_data(prefix)
        if inspect.isawaitable(result):
            asyncio.run(_await(result))

    def open_store(
        self, prefix: str | None = None, *, update_hook: UpdateHook | None = None
    ) -> StoreAdapter:
        """Build an instance and wrap it. Closed by ``close()`` at the latest."""
        instance = self._store_factory(prefix)
        try:
            adapter = StoreAdapter(
                instance,
                set_update_hook=self.config.set_update_hook,
                name=f"{prefix or 'default'}-{len(self._open)}",
            )
        except ConfigurationError:
            _close_instance(instance)
            raise
        self._open.append(adapter)
        if update_hook is not None:
            try:
                adapter.set_update_hook(update_hook)
            except ConfigurationError:
                self._release(adapter)
                raise
        return adapter

    @contextmanager
    def store(
        self, prefix: str | None = None, *, update_hook: UpdateHook | None = None
    ) -> Iterator[StoreAdapter]:
        """Scoped ``open_store``: the adapter is closed on exit, even on failure."""
        adapter = self.open_store(prefix, update_hook=update_hook)
        try:
            yield adapter
        finally:
            self._release(adapter)

    def _release(self, adapter: StoreAdapter) -> None:
        if adapter in self._open:
            self._open.remove(adapter)
        adapter.close()

    def close(self) -> None:
        """Close every adapter still open, newest first."""
        errors: list[Exception] = []
        while self._open:
            adapter = self._open.pop()
            try:
                adapter.close()
            except Exception as e:
                logger.warning("Error closing %s: %s", adapter.name, e)
                errors.append(e)
        if errors:
            raise errors[0]

    def __enter__(self) -> Harness:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


async def _await(awaitable: Awaitable[None]) -> None:
    await awaitable


def _close_instance(instance: Any) -> None:
    """Close a store that never got an adapter."""
    close = getattr(instance, "close", None)
    if close is None:
        return
    if inspect.iscoroutinefunction(close):
        asyncio.run(close())
    else:
        close()
