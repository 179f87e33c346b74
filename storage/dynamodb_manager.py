"""DynamoDB manager for the best-effort event archive."""
import logging
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from processor.models import Event, SyncResult

logger = logging.getLogger(__name__)


class DynamoDBManager:
    """Writes newly admitted events to DynamoDB, one item per canonical key."""

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBManager for table: {table_name}")

    def put_events(self, events: List[Event]) -> SyncResult:
        """
        Insert events that are not archived yet.

        Items already present under the same key are skipped silently;
        other write errors are logged and do not stop the remaining writes.

        Args:
            events: Newly admitted events

        Returns:
            SyncResult with counts of added and skipped events
        """
        if not events:
            return SyncResult(added=0, skipped=0, errors=[])

        logger.info(f"Archiving {len(events)} events to DynamoDB")
        added = 0
        skipped = 0
        errors = []

        for event in events:
            try:
                self.table.put_item(
                    Item=self._event_to_item(event),
                    ConditionExpression='attribute_not_exists(event_key)'
                )
                added += 1
            except ClientError as e:
                code = e.response.get('Error', {}).get('Code')
                if code == 'ConditionalCheckFailedException':
                    skipped += 1
                    continue
                error_msg = f"Error archiving event {event.key[:60]}: {e}"
                logger.warning(error_msg)
                errors.append(error_msg)

        logger.info(f"Archive complete: {added} added, {skipped} already present")
        return SyncResult(added=added, skipped=skipped, errors=errors)

    def get_event(self, key: str) -> Optional[Event]:
        """Fetch one archived event by canonical key."""
        response = self.table.get_item(Key={'event_key': key})
        item = response.get('Item')
        if not item:
            return None
        return self._item_to_event(item)

    def _event_to_item(self, event: Event) -> dict:
        item = {
            'event_key': event.key,
            'event_date': event.date,
            'empire': event.empire,
            'text': event.text,
            'first_seen': event.first_seen
        }

        # Add optional fields if present
        if event.time:
            item['event_time'] = event.time
        if event.province:
            item['province'] = event.province
        if event.city:
            item['city'] = event.city

        return item

    def _item_to_event(self, item: dict) -> Event:
        return Event(
            date=item['event_date'],
            time=item.get('event_time', ''),
            empire=item['empire'],
            province=item.get('province', ''),
            city=item.get('city', ''),
            text=item['text'],
            key=item['event_key'],
            first_seen=item.get('first_seen')
        )
