"""Unit tests for DynamoDB manager."""
import os
from unittest.mock import patch

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from processor.event_processor import compute_key
from processor.models import Event, SyncResult
from storage.dynamodb_manager import DynamoDBManager


@pytest.fixture(autouse=True)
def aws_credentials():
    """Fake credentials so boto3 never reaches a real account."""
    with patch.dict(os.environ, {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_DEFAULT_REGION': 'us-east-1'
    }):
        yield


@pytest.fixture
def dynamodb_table():
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName='test-kraland-events',
            KeySchema=[
                {'AttributeName': 'event_key', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'event_key', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


@pytest.fixture
def dynamodb_manager(dynamodb_table):
    """Create DynamoDBManager instance with mock table."""
    return DynamoDBManager('test-kraland-events')


def make_event(text='Une rumeur court.', **overrides):
    fields = {
        'date': '2024-03-01',
        'time': '10:00',
        'empire': 'Empire Brun',
        'province': 'Baronnie',
        'city': 'Castel',
        'text': text,
        'first_seen': '2024-03-01T12:00:00Z'
    }
    fields.update(overrides)
    event = Event(**fields)
    event.key = compute_key(event)
    return event


def test_put_events_empty_list(dynamodb_manager):
    """Test put_events with nothing to write."""
    result = dynamodb_manager.put_events([])

    assert result == SyncResult(added=0, skipped=0, errors=[])


def test_put_events_writes_items(dynamodb_manager, dynamodb_table):
    """Test put_events stores one item per key."""
    events = [make_event(f"Événement {i}") for i in range(3)]

    result = dynamodb_manager.put_events(events)

    assert result.added == 3
    assert result.skipped == 0
    assert result.errors == []
    assert dynamodb_table.scan()['Count'] == 3


def test_put_events_item_round_trip(dynamodb_manager):
    event = make_event()

    dynamodb_manager.put_events([event])
    stored = dynamodb_manager.get_event(event.key)

    assert stored == event


def test_put_events_optional_fields_omitted(dynamodb_manager, dynamodb_table):
    event = make_event(time='', province='', city='')

    dynamodb_manager.put_events([event])
    item = dynamodb_table.get_item(Key={'event_key': event.key})['Item']

    assert 'event_time' not in item
    assert 'province' not in item
    assert 'city' not in item
    assert item['empire'] == 'Empire Brun'


def test_duplicate_key_is_silent_no_op(dynamodb_manager, dynamodb_table):
    """A key already archived is skipped without error."""
    event = make_event()
    dynamodb_manager.put_events([event])

    rewritten = make_event(first_seen='2024-04-15T08:00:00Z')
    result = dynamodb_manager.put_events([rewritten])

    assert result.added == 0
    assert result.skipped == 1
    assert result.errors == []
    item = dynamodb_table.get_item(Key={'event_key': event.key})['Item']
    assert item['first_seen'] == '2024-03-01T12:00:00Z'


def test_other_client_errors_are_collected(dynamodb_manager):
    """Write failures other than duplicates are reported and skipped."""
    error = ClientError(
        {'Error': {'Code': 'ProvisionedThroughputExceededException', 'Message': 'slow'}},
        'PutItem'
    )
    events = [make_event('a'), make_event('b')]

    with patch.object(
        dynamodb_manager.table, 'put_item', side_effect=[error, None]
    ):
        result = dynamodb_manager.put_events(events)

    assert result.added == 1
    assert result.skipped == 0
    assert len(result.errors) == 1
    assert 'ProvisionedThroughputExceededException' in result.errors[0]


def test_get_event_missing(dynamodb_manager):
    assert dynamodb_manager.get_event('nope') is None
