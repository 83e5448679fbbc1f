"""Versioned records and the kinds that hold them."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class DataKind:
    """A named logical collection of records.

    Kinds are disjoint: the same key in two kinds names two records.
    """

    name: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Kind name cannot be empty")
        if ":" in self.name:
            raise ValueError("Kind names cannot contain ':'")

    def __str__(self) -> str:
        return self.name


FEATURES = DataKind("features")
SEGMENTS = DataKind("segments")

ALL_KINDS = (FEATURES, SEGMENTS)


@dataclass(frozen=True)
class Record:
    """One versioned entity as a store persists it.

    ``value`` is the serialized item. ``None`` marks a tombstone: the
    key is still occupied and its version still gates later writes.

    Attributes:
        key: Unique within a kind and namespace.
        version: Compared on upsert. Need not grow by exactly one.
        value: Opaque serialized bytes, or None for a tombstone.
    """

    key: str
    version: int
    value: bytes | None

    def __post_init__(self) -> None:
        if self.value is not None and not isinstance(self.value, bytes):
            raise TypeError(f"Expected bytes or None, got {type(self.value).__name__}")

    @classmethod
    def of(cls, key: str, version: int, text: str | None) -> Record:
        """Build a record from a text value, encoded as UTF-8."""
        return cls(key, version, None if text is None else text.encode("utf-8"))

    @classmethod
    def tombstone(cls, key: str, version: int) -> Record:
        return cls(key, version, None)

    @property
    def deleted(self) -> bool:
        return self.value is None

    def next_version(self) -> Record:
        return replace(self, version=self.version + 1)

    def with_version(self, version: int) -> Record:
        return replace(self, version=version)

    def with_value(self, value: bytes | str | None) -> Record:
        """Copy with a different value and the same version."""
        if isinstance(value, str):
            value = value.encode("utf-8")
        return replace(self, value=value)
