"""Shared fixtures: mocked DynamoDB tables for records and sync logs."""
from datetime import datetime, timezone

import boto3
import pytest
from moto import mock_aws

from storage.reconciler import Reconciler
from storage.run_log import RunLogStore

EVENTS_TABLE = 'test-public-events'
TASKS_TABLE = 'test-public-tasks'
SYNC_LOG_TABLE = 'test-sync-log'


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Keep boto3 away from real credentials."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


def _create_record_table(dynamodb, name):
    return dynamodb.create_table(
        TableName=name,
        KeySchema=[
            {'AttributeName': 'id', 'KeyType': 'HASH'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'id', 'AttributeType': 'S'},
            {'AttributeName': 'sheet_id', 'AttributeType': 'S'},
            {'AttributeName': 'sheet_row_index', 'AttributeType': 'N'}
        ],
        GlobalSecondaryIndexes=[
            {
                'IndexName': 'source-index',
                'KeySchema': [
                    {'AttributeName': 'sheet_id', 'KeyType': 'HASH'},
                    {'AttributeName': 'sheet_row_index', 'KeyType': 'RANGE'}
                ],
                'Projection': {'ProjectionType': 'ALL'}
            }
        ],
        BillingMode='PAY_PER_REQUEST'
    )


@pytest.fixture
def dynamodb():
    """Mock DynamoDB with the events, tasks and sync log tables."""
    with mock_aws():
        resource = boto3.resource('dynamodb', region_name='us-east-1')
        _create_record_table(resource, EVENTS_TABLE)
        _create_record_table(resource, TASKS_TABLE)
        resource.create_table(
            TableName=SYNC_LOG_TABLE,
            KeySchema=[
                {'AttributeName': 'id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )
        yield resource


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2025-04-01 12:00 UTC."""
    return lambda: datetime(2025, 4, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def reconciler(dynamodb, fixed_clock):
    """Reconciler bound to the mocked tables."""
    return Reconciler(EVENTS_TABLE, TASKS_TABLE, dynamodb=dynamodb, clock=fixed_clock)


@pytest.fixture
def run_log(dynamodb):
    """RunLogStore bound to the mocked sync log table."""
    return RunLogStore(SYNC_LOG_TABLE, dynamodb=dynamodb)


@pytest.fixture
def scan_table(dynamodb):
    """Return every item of the 'events', 'tasks' or 'sync_log' table."""
    names = {'events': EVENTS_TABLE, 'tasks': TASKS_TABLE, 'sync_log': SYNC_LOG_TABLE}

    def scan(kind):
        return dynamodb.Table(names[kind]).scan()['Items']

    return scan
