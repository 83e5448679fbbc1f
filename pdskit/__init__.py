"""pdskit: conformance kit for versioned persistent data stores."""

from .adapter import StoreAdapter
from .assertions import assert_missing, assert_record_equals, assert_records, assert_upsert_result
from .async_datastore import AsyncKVDataStore
from .dataset import DataBuilder, FullDataSet
from .datastore import DEFAULT_PREFIX, KVDataStore
from .errors import ConfigurationError, ContractViolation
from .harness import Harness, SuiteConfig
from .hooks import ConcurrentModifier
from .kv import KVStore, storage
from .model import ALL_KINDS, FEATURES, SEGMENTS, DataKind, Record
from .store import AsyncPersistentDataStore, PersistentDataStore, UpdateHook, data_store

__all__ = [
    "ALL_KINDS",
    "AsyncKVDataStore",
    "AsyncPersistentDataStore",
    "ConcurrentModifier",
    "ConfigurationError",
    "ContractViolation",
    "DEFAULT_PREFIX",
    "DataBuilder",
    "DataKind",
    "FEATURES",
    "FullDataSet",
    "Harness",
    "KVDataStore",
    "KVStore",
    "PersistentDataStore",
    "Record",
    "SEGMENTS",
    "StoreAdapter",
    "SuiteConfig",
    "UpdateHook",
    "assert_missing",
    "assert_record_equals",
    "assert_records",
    "assert_upsert_result",
    "data_store",
    "storage",
]
