"""Shared test doubles: re-export memory backends."""

from __future__ import annotations

from planlink.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryFileStore,
    MemoryRecordStore,
)

__all__ = ["MemoryCacheBackend", "MemoryFileStore", "MemoryRecordStore"]
