"""In-memory backends for unit tests and the default local store: dict-backed fakes."""

from __future__ import annotations

import copy
import uuid
from typing import Any

from planlink.core.exceptions import FileStoreError, RecordNotFoundError, UniqueViolationError
from planlink.core.types import Row
from planlink.persistence.schema import matches, unique_key


class MemoryRecordStore:
    """Dict-backed IRecordStore enforcing the same unique keys as DynamoDB."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Row]] = {}

    def _rows(self, table: str) -> dict[str, Row]:
        return self._tables.setdefault(table, {})

    def select(self, table: str, **filters: Any) -> list[Row]:
        return [copy.deepcopy(r) for r in self._rows(table).values() if matches(r, filters)]

    def insert(self, table: str, row: Row) -> Row:
        rows = self._rows(table)
        new = dict(row)
        if not new.get("id"):
            new["id"] = uuid.uuid4().hex
        if new["id"] in rows:
            raise UniqueViolationError(table, (new["id"],))

        key = unique_key(table, new)
        if key is not None and any(unique_key(table, r) == key for r in rows.values()):
            raise UniqueViolationError(table, key)

        rows[new["id"]] = new
        return copy.deepcopy(new)

    def update(self, table: str, record_id: str, changes: Row) -> Row:
        rows = self._rows(table)
        if record_id not in rows:
            raise RecordNotFoundError(table, record_id)
        rows[record_id].update({k: v for k, v in changes.items() if k != "id"})
        return copy.deepcopy(rows[record_id])


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class MemoryFileStore:
    """Dict-backed IFileStore for unit tests."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}

    def read(self, path: str) -> bytes:
        try:
            return self._files[path]
        except KeyError as exc:
            raise FileStoreError(f"No file at {path!r}") from exc

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self._files[path] = data
        return path

    def list_files(self, prefix: str) -> list[str]:
        return [k for k in self._files if k.startswith(prefix)]
