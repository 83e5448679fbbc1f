"""Physical storage backends."""

from .base import KVStore
from .disk import Disk
from .memory import Memory

__all__ = ["Disk", "KVStore", "Memory", "storage"]


def storage(kind: str = "memory", *, path: str | None = None) -> KVStore:
    """Create physical storage.

    Args:
        kind: ``"memory"`` (default) or ``"disk"``.
        path: Required when ``kind="disk"``. Directory path for the
            diskcache database; may be shared with other processes.

    Returns:
        A ``KVStore`` to hand to one or more data store instances.
    """
    if kind == "memory":
        if path is not None:
            raise ValueError("path is only valid for kind='disk'")
        return Memory()
    if kind == "disk":
        if path is None:
            raise ValueError("path is required when kind='disk'")
        return Disk(path)
    raise ValueError(f"Unknown storage: {kind!r}")
