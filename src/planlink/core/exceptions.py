"""PlanLink exception hierarchy."""

from __future__ import annotations

from typing import Any


class PlanLinkError(Exception):
    """Base exception for all PlanLink errors."""


class StoreError(PlanLinkError):
    """Record store operation failed."""


class UniqueViolationError(StoreError):
    """Insert collided with an existing row on a unique key."""

    def __init__(self, table: str, key: tuple[Any, ...]) -> None:
        self.table = table
        self.key = key
        super().__init__(f"Duplicate key {key!r} in {table}")


class RecordNotFoundError(StoreError):
    """Update targeted a record id that does not exist."""

    def __init__(self, table: str, record_id: str) -> None:
        self.table = table
        self.record_id = record_id
        super().__init__(f"No {table} record with id {record_id!r}")


class CacheError(PlanLinkError):
    """Redis cache operation failed."""


class FileStoreError(PlanLinkError):
    """Upload archive (S3) operation failed."""


class ImportFileError(PlanLinkError):
    """Upload cannot be processed at all; no rows were attempted."""
