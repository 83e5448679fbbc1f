"""Conformance scenarios every persistent data store must pass.

Subclass ``PersistentDataStoreTests`` in a module pytest collects, name
the subclass ``Test...`` and override ``make_config``::

    class TestMyStore(PersistentDataStoreTests):
        def make_config(self) -> SuiteConfig:
            return SuiteConfig(
                store_factory=lambda prefix: MyStore(prefix=prefix),
                clear_data=lambda prefix: wipe_my_database(prefix),
                set_update_hook=lambda store, hook: store.set_update_hook(hook),
            )

A store under test must:

1. Scope all of its data by a prefix string, so instances with
   different prefixes on the same database never see each other's data.
2. Let two instances with the same configuration and prefix see each
   other's data.

Set ``prefix`` on the subclass to run every scenario in a namespace
other than the default.
"""

from __future__ import annotations

from typing import Iterator

import pytest

from .assertions import assert_missing, assert_record_equals, assert_records, assert_upsert_result
from .dataset import DataBuilder
from .harness import Harness, SuiteConfig
from .hooks import ConcurrentModifier
from .model import ALL_KINDS, FEATURES, SEGMENTS, Record

ITEM1 = Record.of("first", 5, "value1")
ITEM2 = Record.of("second", 5, "value2")
OTHER1 = Record.of("third", 5, "othervalue1")
UNUSED_KEY = "whatever"


class PersistentDataStoreTests:
    """Store-agnostic scenario suite; not collected until subclassed as ``Test*``."""

    prefix: str | None = None
    isolated_prefixes: tuple[str, str] = ("aaa", "bbb")

    def make_config(self) -> SuiteConfig:
        raise NotImplementedError(f"{type(self).__name__} must override make_config()")

    @pytest.fixture
    def harness(self) -> Iterator[Harness]:
        harness = Harness(self.make_config())
        harness.clear_all_data(self.prefix)
        try:
            yield harness
        finally:
            harness.close()

    def _init(self, store, *records: Record) -> None:
        store.init(DataBuilder().add(FEATURES, *records).build())

    # -- Initialization --

    def test_store_not_initialized_before_init(self, harness: Harness):
        with harness.store(self.prefix) as store:
            assert not store.initialized()

    def test_one_instance_can_detect_if_another_instance_has_initialized_store(
        self, harness: Harness
    ):
        with harness.store(self.prefix) as store1:
            self._init(store1, ITEM1)
            with harness.store(self.prefix) as store2:
                assert store2.initialized()

    def test_store_initialized_after_init(self, harness: Harness):
        with harness.store(self.prefix) as store:
            store.init(DataBuilder().build())
            assert store.initialized()

    def test_init_completely_replaces_existing_data(self, harness: Harness):
        with harness.store(self.prefix) as store:
            store.init(DataBuilder().add(FEATURES, ITEM1, ITEM2).add(SEGMENTS, OTHER1).build())

            item2v2 = ITEM2.next_version()
            store.init(DataBuilder().add(FEATURES, item2v2).add(SEGMENTS).build())

            assert_missing(ITEM1.key, store.get(FEATURES, ITEM1.key))
            assert_record_equals(item2v2, store.get(FEATURES, ITEM2.key))
            assert_missing(OTHER1.key, store.get(SEGMENTS, OTHER1.key))
            assert_records(store.get_all(SEGMENTS))

    def test_init_empties_kinds_absent_from_data_set(self, harness: Harness):
        with harness.store(self.prefix) as store:
            store.init(DataBuilder().add(FEATURES, ITEM1).add(SEGMENTS, OTHER1).build())
            store.init(DataBuilder().add(FEATURES, ITEM2).build())
            assert_records(store.get_all(FEATURES), ITEM2)
            assert_records(store.get_all(SEGMENTS))
            assert_missing(OTHER1.key, store.get(SEGMENTS, OTHER1.key))

    def test_init_with_empty_data_set_empties_every_kind(self, harness: Harness):
        with harness.store(self.prefix) as store:
            store.init(DataBuilder().add(FEATURES, ITEM1, ITEM2).add(SEGMENTS, OTHER1).build())
            store.init(DataBuilder().build())
            assert store.initialized()
            for kind in ALL_KINDS:
                assert_records(store.get_all(kind))

    # -- Reads --

    def test_get_existing_item(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            assert_record_equals(ITEM1, store.get(FEATURES, ITEM1.key))

    def test_get_nonexisting_item(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            assert_missing(UNUSED_KEY, store.get(FEATURES, UNUSED_KEY))

    def test_get_all_items(self, harness: Harness):
        with harness.store(self.prefix) as store:
            store.init(DataBuilder().add(FEATURES, ITEM1, ITEM2).add(SEGMENTS, OTHER1).build())
            assert_records(store.get_all(FEATURES), ITEM1, ITEM2)

    def test_get_all_with_deleted_item(self, harness: Harness):
        with harness.store(self.prefix) as store:
            deleted = Record.tombstone(UNUSED_KEY, 1)
            store.init(
                DataBuilder().add(FEATURES, ITEM1, ITEM2, deleted).add(SEGMENTS, OTHER1).build()
            )
            assert_records(store.get_all(FEATURES), ITEM1, ITEM2, deleted)

    def test_get_all_for_empty_kind(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1)
            assert_records(store.get_all(SEGMENTS))

    # -- Upserts --

    def test_upsert_with_newer_version(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            newer = ITEM1.next_version()
            assert_upsert_result(True, store.upsert(FEATURES, ITEM1.key, newer), newer)
            assert_record_equals(newer, store.get(FEATURES, ITEM1.key))

    def test_upsert_with_same_version(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            same_version = ITEM1.with_value("modified")
            assert_upsert_result(False, store.upsert(FEATURES, ITEM1.key, same_version), same_version)
            assert_record_equals(ITEM1, store.get(FEATURES, ITEM1.key))

    def test_upsert_with_older_version(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            older = ITEM1.with_version(ITEM1.version - 1).with_value("x")
            assert_upsert_result(False, store.upsert(FEATURES, ITEM1.key, older), older)
            assert_record_equals(ITEM1, store.get(FEATURES, ITEM1.key))

    def test_upsert_new_item(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            new_item = Record.of(UNUSED_KEY, 1, "newvalue")
            assert_upsert_result(True, store.upsert(FEATURES, UNUSED_KEY, new_item), new_item)
            assert_record_equals(new_item, store.get(FEATURES, UNUSED_KEY))

    @pytest.mark.parametrize("version", [0, -1])
    def test_first_write_accepted_at_any_version(self, harness: Harness, version: int):
        with harness.store(self.prefix) as store:
            self._init(store)
            item = Record.of(UNUSED_KEY, version, "first")
            assert_upsert_result(True, store.upsert(FEATURES, UNUSED_KEY, item), item)
            assert_record_equals(item, store.get(FEATURES, UNUSED_KEY))

    def test_upsert_keeps_kinds_apart(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1)
            segment = ITEM1.with_version(1).with_value("segment")
            assert_upsert_result(True, store.upsert(SEGMENTS, ITEM1.key, segment), segment)
            assert_record_equals(ITEM1, store.get(FEATURES, ITEM1.key))
            assert_record_equals(segment, store.get(SEGMENTS, ITEM1.key))

    # -- Deletes (tombstones) --

    def test_delete_with_newer_version(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            deleted = Record.tombstone(ITEM1.key, ITEM1.version + 1)
            assert_upsert_result(True, store.upsert(FEATURES, ITEM1.key, deleted), deleted)
            assert_record_equals(deleted, store.get(FEATURES, ITEM1.key))

    def test_delete_with_same_version(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            deleted = Record.tombstone(ITEM1.key, ITEM1.version)
            assert_upsert_result(False, store.upsert(FEATURES, ITEM1.key, deleted), deleted)
            assert_record_equals(ITEM1, store.get(FEATURES, ITEM1.key))

    def test_delete_with_older_version(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1, ITEM2)
            deleted = Record.tombstone(ITEM1.key, ITEM1.version - 1)
            assert_upsert_result(False, store.upsert(FEATURES, ITEM1.key, deleted), deleted)
            assert_record_equals(ITEM1, store.get(FEATURES, ITEM1.key))

    def test_delete_unknown_item(self, harness: Harness):
        with harness.store(self.prefix) as store:
            self._init(store, ITEM1)
            deleted = Record.tombstone(UNUSED_KEY, 99)
            assert_upsert_result(True, store.upsert(FEATURES, UNUSED_KEY, deleted), deleted)
            assert_record_equals(deleted, store.get(FEATURES, UNUSED_KEY))

    def test_tombstone_replaced_by_newer_value(self, harness: Harness):
        with harness.store(self.prefix) as store:
            deleted = Record.tombstone(ITEM1.key, ITEM1.version)
            self._init(store, deleted)
            same = ITEM1
            assert_upsert_result(False, store.upsert(FEATURES, ITEM1.key, same), same)
            revived = ITEM1.next_version()
            assert_upsert_result(True, store.upsert(FEATURES, ITEM1.key, revived), revived)
            assert_record_equals(revived, store.get(FEATURES, ITEM1.key))

    # -- Namespaces --

    def test_stores_with_different_prefix_are_independent(self, harness: Harness):
        # Init, get, get_all and upsert must all respect the prefix.
        prefix1, prefix2 = self.isolated_prefixes
        harness.clear_all_data(prefix1)
        harness.clear_all_data(prefix2)
        with harness.store(prefix1) as store1, harness.store(prefix2) as store2:
            assert not store1.initialized()
            assert not store2.initialized()

            store1_item1 = Record.of("a", 1, "1a")
            store1_item2 = Record.of("b", 1, "1b")
            store1_item3 = Record.of("c", 1, "1c")
            store2_item1 = Record.of("a", 99, "2a")
            # No "b" here: store2's init must not delete store1's "b".
            store2_item2 = Record.of("bb", 1, "2b")
            store2_item3 = Record.of("c", 2, "2c")
            self._init(store1, store1_item1, store1_item2)
            self._init(store2, store2_item1, store2_item2)
            store1.upsert(FEATURES, store1_item3.key, store1_item3)
            store2.upsert(FEATURES, store2_item3.key, store2_item3)

            assert_records(store1.get_all(FEATURES), store1_item1, store1_item2, store1_item3)
            assert_records(store2.get_all(FEATURES), store2_item1, store2_item2, store2_item3)
            assert_record_equals(store1_item1, store1.get(FEATURES, "a"))
            assert_missing("bb", store1.get(FEATURES, "bb"))

    def test_stores_with_same_prefix_share_data(self, harness: Harness):
        with harness.store(self.prefix) as store1, harness.store(self.prefix) as store2:
            self._init(store1, ITEM1)
            newer = ITEM1.next_version()
            assert_upsert_result(True, store2.upsert(FEATURES, ITEM1.key, newer), newer)
            assert_record_equals(newer, store1.get(FEATURES, ITEM1.key))
            assert_records(store1.get_all(FEATURES), newer)

    # -- Races (need an update hook) --

    def _require_update_hook(self, harness: Harness) -> None:
        if not harness.supports_update_hook:
            pytest.skip("store has no update hook installer")

    def _race(self, harness: Harness, candidate_version: int, *versions: int, per_call: int = 1):
        self._require_update_hook(harness)
        key = "key"
        item = Record.of(key, 1, "value1")
        with harness.store(self.prefix) as store2:
            modifier = ConcurrentModifier(store2, FEATURES, key, *versions, per_call=per_call)
            with harness.store(self.prefix, update_hook=modifier) as store1:
                self._init(store1, item)
                candidate = item.with_version(candidate_version)
                accepted = store1.upsert(FEATURES, key, candidate)

                assert modifier.calls > 0, "update hook was never invoked"
                winner = modifier.winner(candidate)
                assert_upsert_result(winner is candidate, accepted, candidate)
                assert_record_equals(winner, store1.get(FEATURES, key))
                assert_record_equals(winner, store2.get(FEATURES, key))
        return winner

    def test_upsert_race_against_other_client_with_lower_version(self, harness: Harness):
        winner = self._race(harness, 10, 2, 3, 4)
        assert winner.version == 10

    def test_upsert_race_against_other_client_with_higher_version(self, harness: Harness):
        winner = self._race(harness, 2, 3, 4, 5)
        assert winner.version == 3

    def test_upsert_race_against_several_writes_in_one_hook_call(self, harness: Harness):
        winner = self._race(harness, 2, 3, 4, 5, per_call=3)
        assert winner.version == 5
