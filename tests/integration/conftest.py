"""Integration fixtures: devsweep state table on LocalStack DynamoDB."""

from __future__ import annotations

import os

import boto3
import pytest
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from create_state_table import create_tables
from devsweep.persistence.dynamodb_backend import STATE_TABLE

LOCALSTACK_URL = os.environ.get("LOCALSTACK_URL", "http://localhost:4566")
REGION = "us-east-1"
TABLE_SUFFIX = "-inttest"

# Fail fast when nothing listens on the endpoint.
_PROBE_CONFIG = Config(connect_timeout=1, read_timeout=2, retries={"max_attempts": 0})


def _localstack_available() -> bool:
    client = boto3.client("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL, config=_PROBE_CONFIG)
    try:
        client.list_tables(Limit=1)
    except (BotoCoreError, ClientError):
        return False
    return True


skip_no_localstack = pytest.mark.skipif(
    not _localstack_available(),
    reason=f"LocalStack not reachable at {LOCALSTACK_URL}",
)


@pytest.fixture(scope="session")
def state_table():
    """Create the state table once per session and drop it afterwards."""
    ddb = boto3.resource("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL)
    create_tables(ddb, suffix=TABLE_SUFFIX)
    yield TABLE_SUFFIX
    ddb.Table(f"{STATE_TABLE}{TABLE_SUFFIX}").delete()
