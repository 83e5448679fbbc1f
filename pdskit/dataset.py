"""Full data sets for bulk ``init``."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping

from .model import DataKind, Record


class FullDataSet(Mapping[DataKind, Mapping[str, Record]]):
    """Immutable snapshot: kind -> (key -> record).

    ``init`` replaces all stored data with it: kinds declared with no
    records, and kinds that are absent, end up empty.
    """

    def __init__(self, data: Mapping[DataKind, Mapping[str, Record]]) -> None:
        self._data = MappingProxyType(
            {kind: MappingProxyType(dict(items)) for kind, items in data.items()}
        )

    def __getitem__(self, kind: DataKind) -> Mapping[str, Record]:
        return self._data[kind]

    def __iter__(self) -> Iterator[DataKind]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        inner = ", ".join(f"{kind}: {sorted(items)}" for kind, items in self._data.items())
        return f"FullDataSet({{{inner}}})"


class DataBuilder:
    """Accumulates records per kind and builds ``FullDataSet`` snapshots.

    Example::

        data = DataBuilder().add(FEATURES, flag1, flag2).add(SEGMENTS).build()
    """

    def __init__(self) -> None:
        self._data: dict[DataKind, dict[str, Record]] = {}

    def add(self, kind: DataKind, *records: Record) -> DataBuilder:
        """Add records for a kind. A later record for a key replaces an earlier one."""
        items = self._data.setdefault(kind, {})
        for record in records:
            items[record.key] = record
        return self

    def build(self) -> FullDataSet:
        return FullDataSet(self._data)
