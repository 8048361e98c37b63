"""Protocol interfaces for all PlanLink abstractions.

All inter-layer communication uses these Protocols: structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Persistence: Record Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecordStore(Protocol):
    """Normalized relational tables behind filtered selects, inserts and updates.

    ``select`` filters are equality matches; a ``None`` filter value matches a
    null or missing column. ``insert`` assigns an ``id`` when the row has none
    and raises ``UniqueViolationError`` when a unique key is already taken.
    """

    def select(self, table: str, **filters: Any) -> list[dict[str, Any]]: ...

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]: ...

    def update(self, table: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any]: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# Persistence: File Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IFileStore(Protocol):
    """S3-compatible file storage interface."""

    def read(self, path: str) -> bytes: ...

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str: ...

    def list_files(self, prefix: str) -> list[str]: ...
