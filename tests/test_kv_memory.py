"""Tests for the Memory KV store."""

import threading

import pytest

from pdskit.kv.memory import Memory


class TestMemoryBasic:
    def test_set_many_get(self):
        m = Memory()
        m.set_many(k=b"v")
        assert m.get("k") == b"v"

    def test_get_missing(self):
        m = Memory()
        assert m.get("nope") is None

    def test_contains(self):
        m = Memory()
        m.set_many(k=b"v")
        assert "k" in m
        assert "nope" not in m

    def test_keys_by_prefix(self):
        m = Memory()
        m.set_many(**{"a:1": b"1", "a:2": b"2", "b:1": b"3"})
        assert set(m.keys()) == {"a:1", "a:2", "b:1"}
        assert set(m.keys("a:")) == {"a:1", "a:2"}

    def test_items_by_prefix(self):
        m = Memory()
        m.set_many(**{"a:1": b"1", "b:1": b"2"})
        assert dict(m.items("b:")) == {"b:1": b"2"}

    def test_type_error_on_non_bytes(self):
        m = Memory()
        with pytest.raises(TypeError, match="Expected bytes"):
            m.set_many(k="not bytes")  # type: ignore


class TestMemoryClear:
    def test_clear_all(self):
        m = Memory()
        m.set_many(a=b"1", b=b"2")
        m.clear()
        assert list(m.keys()) == []

    def test_clear_prefix(self):
        m = Memory()
        m.set_many(**{"x:a": b"1", "y:a": b"2"})
        m.clear("x:")
        assert m.get("x:a") is None
        assert m.get("y:a") == b"2"

    def test_remove_many(self):
        m = Memory()
        m.set_many(a=b"1", b=b"2", c=b"3")
        m.remove_many("a", "c", "missing")
        assert m.get("a") is None
        assert m.get("b") == b"2"
        assert m.get("c") is None


class TestMemoryCAS:
    def test_cas_success(self):
        m = Memory()
        m.set_many(k=b"old")
        assert m.cas("k", b"new", expected=b"old")
        assert m.get("k") == b"new"

    def test_cas_failure(self):
        m = Memory()
        m.set_many(k=b"old")
        assert not m.cas("k", b"new", expected=b"wrong")
        assert m.get("k") == b"old"

    def test_cas_create(self):
        m = Memory()
        assert m.cas("k", b"val", expected=None)
        assert m.get("k") == b"val"

    def test_cas_create_fails_if_exists(self):
        m = Memory()
        m.set_many(k=b"existing")
        assert not m.cas("k", b"new", expected=None)
        assert m.get("k") == b"existing"

    def test_cas_thread_safety(self):
        m = Memory()
        m.set_many(counter=b"0")
        wins = []

        def try_cas(thread_id):
            if m.cas("counter", f"thread-{thread_id}".encode(), expected=b"0"):
                wins.append(thread_id)

        threads = [threading.Thread(target=try_cas, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(wins) == 1


class TestMemoryTransact:
    def test_transact_is_reentrant(self):
        m = Memory()
        with m.transact():
            m.set_many(a=b"1")
            assert m.cas("a", b"2", expected=b"1")
        assert m.get("a") == b"2"

    def test_transact_excludes_other_threads(self):
        m = Memory()
        m.set_many(k=b"0")
        entered = threading.Event()
        release = threading.Event()
        seen = []

        def hold():
            with m.transact():
                m.set_many(k=b"inside")
                entered.set()
                release.wait(5)
                m.set_many(k=b"done")

        t = threading.Thread(target=hold)
        t.start()
        entered.wait(5)
        reader = threading.Thread(target=lambda: seen.append(m.get("k")))
        reader.start()
        release.set()
        reader.join()
        t.join()
        assert seen == [b"done"]
