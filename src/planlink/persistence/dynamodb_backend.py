"""DynamoDB backend implementing IRecordStore with optional Redis caching.

Each logical table is a DynamoDB table keyed on ``id``. Unique keys are
guarded by conditional puts into a separate ``unique-keys`` table.
"""

from __future__ import annotations

import json
import logging
import uuid
from decimal import Decimal
from functools import reduce
from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from planlink.core.exceptions import (
    CacheError,
    RecordNotFoundError,
    StoreError,
    UniqueViolationError,
)
from planlink.core.types import Row
from planlink.persistence.schema import REFERENCE_TABLES, matches, unique_key

logger = logging.getLogger(__name__)

UNIQUE_KEYS_TABLE = "unique-keys"


class _DecimalEncoder(json.JSONEncoder):
    """Encode Decimal values as int or float for JSON serialization."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return int(o) if o == int(o) else float(o)
        return super().default(o)


def _to_item(row: Row) -> Row:
    """DynamoDB rejects floats; store them as Decimal."""
    return {k: Decimal(str(v)) if isinstance(v, float) else v for k, v in row.items()}


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class DynamoDBRecordStore:
    """Production IRecordStore backed by DynamoDB + optional Redis cache."""

    CACHE_TTL = 300  # 5 minutes

    def __init__(self, table_prefix: str = "planlink-", table_suffix: str = "",
                 region: str = "us-east-1", endpoint_url: str | None = None,
                 cache: Any = None, cache_ttl: int | None = None) -> None:
        self._table_prefix = table_prefix
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        self._cache = cache
        self._cache_ttl = cache_ttl or self.CACHE_TTL
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    def table_name(self, base: str) -> str:
        return f"{self._table_prefix}{base}{self._table_suffix}"

    def _table(self, base: str):
        return self._ddb.Table(self.table_name(base))

    def _scan(self, table: str, filters: dict[str, Any]) -> list[Row]:
        kwargs: dict[str, Any] = {}
        if filters:
            conditions = [
                Attr(k).not_exists() if v is None else Attr(k).eq(v)
                for k, v in filters.items()
            ]
            kwargs["FilterExpression"] = reduce(lambda a, b: a & b, conditions)

        tbl = self._table(table)
        items: list[Row] = []
        try:
            while True:
                resp = tbl.scan(**kwargs)
                items.extend(resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    break
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except ClientError as exc:
            raise StoreError(f"DynamoDB scan failed for {table!r}: {exc}") from exc
        return items

    # ---- cache ----

    def _cache_key(self, table: str) -> str:
        return f"planlink:table:{self.table_name(table)}"

    def _reference_rows(self, table: str) -> list[Row]:
        """Whole reference table, served from cache when possible."""
        cache_key = self._cache_key(table)

        # Check cache first
        if self._cache is not None:
            try:
                cached = self._cache.get(cache_key)
            except CacheError:
                logger.warning("Cache read failed for %s; reading DynamoDB", table, exc_info=True)
                cached = None
            if cached is not None:
                return json.loads(cached, parse_float=Decimal)

        rows = self._scan(table, {})

        # Write to cache
        if self._cache is not None:
            try:
                self._cache.setex(cache_key, self._cache_ttl, json.dumps(rows, cls=_DecimalEncoder))
            except CacheError:
                logger.warning("Cache write failed for %s", table, exc_info=True)
        return rows

    def _invalidate(self, table: str) -> None:
        if self._cache is None or table not in REFERENCE_TABLES:
            return
        try:
            self._cache.delete(self._cache_key(table))
        except CacheError:
            logger.warning("Cache invalidation failed for %s", table, exc_info=True)

    # ---- IRecordStore methods ----

    def select(self, table: str, **filters: Any) -> list[Row]:
        if table in REFERENCE_TABLES:
            return [r for r in self._reference_rows(table) if matches(r, filters)]

        record_id = filters.get("id")
        if record_id is not None:
            try:
                resp = self._table(table).get_item(Key={"id": record_id})
            except ClientError as exc:
                raise StoreError(f"DynamoDB get failed for {table!r}: {exc}") from exc
            item = resp.get("Item")
            return [item] if item and matches(item, filters) else []

        return self._scan(table, filters)

    def insert(self, table: str, row: Row) -> Row:
        item = _to_item(row)
        if not item.get("id"):
            item["id"] = uuid.uuid4().hex

        key = unique_key(table, item)
        guard = self._claim_unique_key(table, key, item["id"]) if key is not None else None

        try:
            self._table(table).put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(#id)",
                ExpressionAttributeNames={"#id": "id"},
            )
        except ClientError as exc:
            if guard is not None:
                self._release_unique_key(guard)
            if _is_conditional_failure(exc):
                raise UniqueViolationError(table, (item["id"],)) from exc
            raise StoreError(f"DynamoDB put failed for {table!r}: {exc}") from exc

        self._invalidate(table)
        return item

    def _claim_unique_key(self, table: str, key: tuple[Any, ...], record_id: str) -> str:
        guard = f"{table}#" + "|".join("" if v is None else str(v) for v in key)
        try:
            self._table(UNIQUE_KEYS_TABLE).put_item(
                Item={"id": guard, "record_id": record_id},
                ConditionExpression="attribute_not_exists(#id)",
                ExpressionAttributeNames={"#id": "id"},
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise UniqueViolationError(table, key) from exc
            raise StoreError(f"DynamoDB unique-key claim failed for {table!r}: {exc}") from exc
        return guard

    def _release_unique_key(self, guard: str) -> None:
        """Drop a guard whose record was never written."""
        try:
            self._table(UNIQUE_KEYS_TABLE).delete_item(Key={"id": guard})
        except ClientError as exc:
            logger.error("Could not release unique key %s: %s", guard, exc)

    def update(self, table: str, record_id: str, changes: Row) -> Row:
        changes = {k: v for k, v in _to_item(changes).items() if k != "id"}
        if not changes:
            rows = self.select(table, id=record_id)
            if not rows:
                raise RecordNotFoundError(table, record_id)
            return rows[0]

        names = {f"#c{i}": k for i, k in enumerate(changes)}
        names["#id"] = "id"
        values = {f":v{i}": v for i, v in enumerate(changes.values())}
        expression = "SET " + ", ".join(f"#c{i} = :v{i}" for i in range(len(changes)))
        try:
            resp = self._table(table).update_item(
                Key={"id": record_id},
                UpdateExpression=expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ConditionExpression="attribute_exists(#id)",
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise RecordNotFoundError(table, record_id) from exc
            raise StoreError(f"DynamoDB update failed for {table!r}: {exc}") from exc

        self._invalidate(table)
        return resp["Attributes"]
