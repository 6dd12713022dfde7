"""Create the DynamoDB table backing the devsweep key-value store.

Usage:
    python scripts/create_state_table.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

from devsweep.persistence.dynamodb_backend import STATE_TABLE


def create_tables(ddb: Any, suffix: str = "") -> bool:
    """Create the state table. Returns False if it already existed."""
    client = ddb.meta.client
    table_name = f"{STATE_TABLE}{suffix}"
    if table_name in client.list_tables().get("TableNames", []):
        print(f"  Table {table_name} already exists, skipping")
        return False
    client.create_table(
        TableName=table_name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)
    print(f"  Created table {table_name}")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the devsweep DynamoDB state table")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    print("Creating tables...")
    create_tables(boto3.resource("dynamodb", **kwargs), suffix=args.table_suffix)
    print("Done!")


if __name__ == "__main__":
    main()
