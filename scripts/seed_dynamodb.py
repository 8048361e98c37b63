"""Create PlanLink DynamoDB tables and seed a demo provider, group and plans.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import boto3

from planlink.persistence.dynamodb_backend import UNIQUE_KEYS_TABLE
from planlink.persistence.schema import all_tables

DEFAULT_PREFIX = "planlink-"


def table_names(prefix: str = DEFAULT_PREFIX, suffix: str = "") -> list[str]:
    return [f"{prefix}{base}{suffix}" for base in all_tables() + [UNIQUE_KEYS_TABLE]]


def create_tables(ddb: Any, prefix: str = DEFAULT_PREFIX, suffix: str = "") -> None:
    """Create every record table plus the unique-key guard table. Skips existing ones."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for table_name in table_names(prefix, suffix):
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {table_name}")


def _json_to_dynamodb(obj: Any) -> Any:
    """Convert JSON-parsed floats to Decimal for DynamoDB."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _json_to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_json_to_dynamodb(i) for i in obj]
    return obj


def load_demo_data() -> dict[str, list[dict[str, Any]]]:
    seed_path = Path(__file__).resolve().parent.parent / "config" / "demo_seed.json"
    return json.loads(seed_path.read_text())


def seed_demo_data(ddb: Any, prefix: str = DEFAULT_PREFIX, suffix: str = "") -> None:
    """Load demo_seed.json: one provider, one group, Age Banded and Composite plans, Medigap."""
    data = load_demo_data()
    for base, items in data.items():
        tbl = ddb.Table(f"{prefix}{base}{suffix}")
        with tbl.batch_writer() as batch:
            for item in items:
                batch.put_item(Item=_json_to_dynamodb(item))
        print(f"  Seeded {len(items)} {base}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for PlanLink")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-prefix", default=DEFAULT_PREFIX, help="Table name prefix")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--no-demo-data", action="store_true", help="Create tables only")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, prefix=args.table_prefix, suffix=args.table_suffix)

    if not args.no_demo_data:
        print("Seeding data...")
        seed_demo_data(ddb, prefix=args.table_prefix, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
