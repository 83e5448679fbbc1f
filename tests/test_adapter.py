"""Tests for StoreAdapter."""

import threading

import pytest

from pdskit import (
    FEATURES,
    AsyncKVDataStore,
    ConfigurationError,
    DataBuilder,
    KVDataStore,
    Record,
    StoreAdapter,
)
from pdskit.adapter import is_async_store
from pdskit.kv.memory import Memory


def install(store, hook):
    store.set_update_hook(hook)


class MixedStore:
    def initialized(self):
        return False

    async def init(self, dataset):
        pass

    def get(self, kind, key):
        return None

    def get_all(self, kind):
        return {}

    def upsert(self, kind, key, record):
        return True


class FailingAsyncStore(AsyncKVDataStore):
    async def get(self, kind, key):
        raise OSError("connection reset")


class TestCallingConvention:
    def test_sync_store(self):
        assert not is_async_store(KVDataStore(Memory()))

    def test_async_store(self):
        assert is_async_store(AsyncKVDataStore(Memory()))

    def test_mixed_store_rejected(self):
        with pytest.raises(ConfigurationError, match="mixes blocking and coroutine"):
            StoreAdapter(MixedStore())

    def test_missing_methods_rejected(self):
        with pytest.raises(ConfigurationError, match="missing: initialized, init"):
            StoreAdapter(object())


@pytest.fixture(params=["sync", "async"])
def adapter(request):
    store_type = KVDataStore if request.param == "sync" else AsyncKVDataStore
    adapter = StoreAdapter(store_type(Memory()), set_update_hook=install)
    yield adapter
    adapter.close()


class TestAdapterCalls:
    def test_contract_round_trip(self, adapter):
        item = Record.of("first", 5, "value1")
        assert not adapter.initialized()
        adapter.init(DataBuilder().add(FEATURES, item).build())
        assert adapter.initialized()
        assert adapter.get(FEATURES, "first") == item
        assert adapter.get_all(FEATURES) == {"first": item}
        assert not adapter.upsert(FEATURES, "first", item.with_version(4).with_value("x"))
        assert adapter.get(FEATURES, "first") == item

    def test_unknown_key_tombstone(self, adapter):
        assert adapter.upsert(FEATURES, "unknownkey", Record.tombstone("unknownkey", 99))
        assert adapter.get(FEATURES, "unknownkey") == Record.tombstone("unknownkey", 99)

    def test_hook_installation(self, adapter):
        calls = []
        adapter.set_update_hook(lambda: calls.append(threading.current_thread().name))
        adapter.upsert(FEATURES, "k", Record.of("k", 1, "v"))
        assert len(calls) == 1

    def test_closed_adapter_refuses_calls(self, adapter):
        adapter.close()
        adapter.close()
        with pytest.raises(RuntimeError, match="is closed"):
            adapter.initialized()

    def test_close_stops_loop_thread(self):
        adapter = StoreAdapter(AsyncKVDataStore(Memory()), name="stopping")
        assert adapter.get(FEATURES, "k") is None
        adapter.close()
        assert "pdskit-stopping" not in [t.name for t in threading.enumerate()]


class TestAdapterHooks:
    def test_no_installer(self):
        with StoreAdapter(KVDataStore(Memory())) as adapter:
            assert not adapter.supports_update_hook
            with pytest.raises(ConfigurationError, match="no update hook installer"):
                adapter.set_update_hook(lambda: None)

    def test_async_hook_runs_on_adapter_thread(self):
        with StoreAdapter(AsyncKVDataStore(Memory()), set_update_hook=install, name="a") as adapter:
            threads = []
            adapter.set_update_hook(lambda: threads.append(threading.current_thread().name))
            adapter.upsert(FEATURES, "k", Record.of("k", 1, "v"))
            assert threads == ["pdskit-a"]

    def test_nested_async_adapters(self):
        storage = Memory()
        with StoreAdapter(AsyncKVDataStore(storage)) as other:
            hook_calls = []

            def hook():
                if not hook_calls:
                    hook_calls.append(other.upsert(FEATURES, "k", Record.of("k", 3, "other")))

            store = StoreAdapter(AsyncKVDataStore(storage), set_update_hook=install)
            with store:
                store.set_update_hook(hook)
                assert not store.upsert(FEATURES, "k", Record.of("k", 2, "mine"))
                assert hook_calls == [True]
                assert store.get(FEATURES, "k") == Record.of("k", 3, "other")


class TestAdapterErrors:
    def test_backend_errors_propagate_from_loop_thread(self):
        with StoreAdapter(FailingAsyncStore(Memory())) as adapter:
            with pytest.raises(OSError, match="connection reset"):
                adapter.get(FEATURES, "k")
            assert not adapter.initialized()
