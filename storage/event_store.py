"""Event log and identity index with time-bounded re-admission."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from processor.event_processor import compute_key, sort_events
from processor.models import AdmitResult, Event
from storage.json_store import JsonStore

logger = logging.getLogger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


class EventStore:
    """
    Owns the append-only event log and the key -> latest record index.

    Both are loaded from the JSON store on construction and written back
    by :meth:`save`.
    """

    TTL_DAYS = 30

    def __init__(self, json_store: JsonStore, ttl_days: int = TTL_DAYS):
        self.json_store = json_store
        self.ttl = timedelta(days=ttl_days)
        self.events: List[Event] = [
            Event.from_item(item)
            for item in self.json_store.load(JsonStore.EVENTS_FILE, [])
        ]
        self.index: Dict[str, Event] = {}
        for item in self.json_store.load(JsonStore.INDEX_FILE, []):
            record = Event.from_item(item)
            if record.key:
                self.index[record.key] = record
        logger.info(
            f"Loaded {len(self.events)} logged events and "
            f"{len(self.index)} indexed keys"
        )

    def is_expired(self, record: Event, now: datetime) -> bool:
        first_seen = parse_timestamp(record.first_seen)
        if first_seen is None:
            logger.warning(f"Unreadable firstSeen '{record.first_seen}', treating as expired")
            return True
        return now - first_seen > self.ttl

    def admit(self, event: Event, now: Optional[datetime] = None) -> AdmitResult:
        """
        Offer an event to the store.

        New keys and keys whose record outlived the TTL are accepted with
        a fresh firstSeen; anything else is a duplicate and changes nothing.
        """
        now = now or datetime.now(timezone.utc)
        key = event.key or compute_key(event)
        existing = self.index.get(key)

        if existing is not None and not self.is_expired(existing, now):
            return AdmitResult(accepted=False, record=existing)

        record = Event(
            date=event.date,
            time=event.time,
            empire=event.empire,
            province=event.province,
            city=event.city,
            text=event.text,
            key=key,
            first_seen=format_timestamp(now)
        )
        self.index[key] = record
        self.events.append(record)

        readmitted = existing is not None
        if readmitted:
            logger.info(f"Event re-admitted after expiry ({record.date} {record.time})")
        return AdmitResult(accepted=True, record=record, readmitted=readmitted)

    def active_records(self, now: Optional[datetime] = None) -> List[Event]:
        """Indexed records still inside the TTL window, oldest first."""
        now = now or datetime.now(timezone.utc)
        return sort_events([
            record for record in self.index.values()
            if not self.is_expired(record, now)
        ])

    def unique_events(self) -> List[Event]:
        """The log with re-admitted repeats of a key left out."""
        seen = set()
        unique = []
        for event in self.events:
            key = event.key or compute_key(event)
            if key in seen:
                continue
            seen.add(key)
            unique.append(event)
        return unique

    def save(self) -> None:
        sort_events(self.events)
        self.json_store.save(
            JsonStore.EVENTS_FILE, [e.to_item() for e in self.events]
        )
        self.json_store.save(
            JsonStore.INDEX_FILE, [e.to_item() for e in self.index.values()]
        )
        logger.info(f"Saved {len(self.events)} events and {len(self.index)} keys")
