"""Races against a writer in another process, through shared disk storage."""

import subprocess
import sys

from pdskit import FEATURES, DataBuilder, KVDataStore, Record
from pdskit.kv.disk import Disk

WRITER = """
import sys
from pdskit import FEATURES, KVDataStore, Record
from pdskit.kv.disk import Disk

directory, prefix, key, version = sys.argv[1:5]
disk = Disk(directory)
accepted = KVDataStore(disk, prefix=prefix).upsert(
    FEATURES, key, Record.of(key, int(version), "value" + version)
)
disk.close()
print("accepted" if accepted else "rejected")
"""


def write_from_other_process(directory: str, prefix: str, key: str, version: int) -> str:
    result = subprocess.run(
        [sys.executable, "-c", WRITER, directory, prefix, key, str(version)],
        capture_output=True,
        text=True,
        check=True,
        timeout=60,
    )
    return result.stdout.strip()


class TestCrossProcessRace:
    def test_other_process_wins_with_higher_version(self, tmp_path):
        directory = str(tmp_path)
        disk = Disk(directory)
        outcomes = []

        def hook():
            if not outcomes:
                outcomes.append(write_from_other_process(directory, "race", "key", 5))

        store = KVDataStore(disk, prefix="race", update_hook=hook)
        store.init(DataBuilder().add(FEATURES, Record.of("key", 1, "value1")).build())
        assert not store.upsert(FEATURES, "key", Record.of("key", 2, "value2"))
        assert outcomes == ["accepted"]
        assert store.get(FEATURES, "key") == Record.of("key", 5, "value5")
        disk.close()

    def test_local_write_wins_with_higher_version(self, tmp_path):
        directory = str(tmp_path)
        disk = Disk(directory)
        outcomes = []

        def hook():
            if not outcomes:
                outcomes.append(write_from_other_process(directory, "race", "key", 3))

        store = KVDataStore(disk, prefix="race", update_hook=hook)
        store.init(DataBuilder().add(FEATURES, Record.of("key", 1, "value1")).build())
        assert store.upsert(FEATURES, "key", Record.of("key", 10, "value10"))
        assert outcomes == ["accepted"]
        assert store.get(FEATURES, "key") == Record.of("key", 10, "value10")
        disk.close()

    def test_other_process_sees_prefix_isolation(self, tmp_path):
        directory = str(tmp_path)
        disk = Disk(directory)
        store = KVDataStore(disk, prefix="mine")
        store.init(DataBuilder().add(FEATURES, Record.of("key", 7, "value7")).build())
        assert write_from_other_process(directory, "theirs", "key", 1) == "accepted"
        assert write_from_other_process(directory, "mine", "key", 6) == "rejected"
        assert store.get(FEATURES, "key") == Record.of("key", 7, "value7")
        assert KVDataStore(disk, prefix="theirs").get(FEATURES, "key") == Record.of("key", 1, "value1")
        disk.close()
