"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class StoreConfig(BaseSettings):
    """Record store selection."""

    model_config = {"env_prefix": "PLANLINK_STORE_"}

    backend: Literal["memory", "dynamodb"] = "memory"


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "PLANLINK_DYNAMO_"}

    table_prefix: str = "planlink-"
    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache for reference-table lookups."""

    model_config = {"env_prefix": "PLANLINK_REDIS_"}

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    ttl: int = 300
    key_prefix: str = ""


class S3Config(BaseSettings):
    """S3 archive for uploaded enrollment files."""

    model_config = {"env_prefix": "PLANLINK_S3_"}

    archive_uploads: bool = False
    bucket: str = "planlink-uploads"
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class ImportConfig(BaseSettings):
    """Bulk upload limits."""

    model_config = {"env_prefix": "PLANLINK_IMPORT_"}

    max_rows: int = 5000
    two_digit_year_pivot: int = 50


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "PLANLINK_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    store: StoreConfig = StoreConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    s3: S3Config = S3Config()
    imports: ImportConfig = ImportConfig()
