"""Update hooks that simulate another client racing on a key."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .model import DataKind, Record

if TYPE_CHECKING:
    from .adapter import StoreAdapter


class ConcurrentModifier:
    """Update hook that writes to a second store mid-upsert.

    Installed on store A, each invocation upserts the next ``per_call``
    versions of ``key`` through ``other`` (store B, same storage and
    prefix), as if another process won the race between A's version
    check and its write. Each write blocks until it completes.

    Args:
        other: Adapter for store B.
        kind: Kind of the raced key.
        key: The raced key.
        *versions: Versions to write, in order. Values are
            ``"value<version>"``.
        per_call: How many versions to write per invocation.

    Attributes:
        written: Records actually upserted through ``other``.
        calls: Number of times the hook ran.
    """

    def __init__(
        self, other: StoreAdapter, kind: DataKind, key: str, *versions: int, per_call: int = 1
    ) -> None:
        if per_call < 1:
            raise ValueError("per_call must be at least 1")
        self.other = other
        self.kind = kind
        self.key = key
        self.versions = versions
        self.per_call = per_call
        self.written: list[Record] = []
        self.calls = 0
        self._next = 0

    def __call__(self) -> None:
        self.calls += 1
        for _ in range(self.per_call):
            if self._next >= len(self.versions):
                return
            version = self.versions[self._next]
            self._next += 1
            record = Record.of(self.key, version, f"value{version}")
            self.other.upsert(self.kind, self.key, record)
            self.written.append(record)

    def winner(self, candidate: Record) -> Record:
        """The record that must end up stored: highest version attempted.

        On a tie the earlier write wins, and the hook's writes always
        land before the candidate's.
        """
        return max([*self.written, candidate], key=lambda r: r.version)
