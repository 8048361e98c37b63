"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from planlink.core.config import AppSettings
from planlink.persistence.dynamodb_backend import DynamoDBRecordStore
from planlink.persistence.memory_backend import MemoryRecordStore
from planlink.persistence.redis_backend import RedisCacheBackend
from planlink.persistence.s3_backend import S3FileStore


def create_persistence(settings: AppSettings | None = None):
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (record_store, cache, file_store). ``cache`` is None unless
        Redis is enabled; ``file_store`` is None unless uploads are archived.
    """
    if settings is None:
        settings = AppSettings()

    cache = None
    if settings.redis.enabled:
        cache = RedisCacheBackend(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
            key_prefix=settings.redis.key_prefix,
        )

    if settings.store.backend == "dynamodb":
        record_store = DynamoDBRecordStore(
            table_prefix=settings.dynamodb.table_prefix,
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
            cache=cache,
            cache_ttl=settings.redis.ttl,
        )
    else:
        record_store = MemoryRecordStore()

    file_store = None
    if settings.s3.archive_uploads:
        file_store = S3FileStore(
            bucket=settings.s3.bucket,
            region=settings.s3.region,
            endpoint_url=settings.s3.endpoint_url,
        )

    return record_store, cache, file_store
