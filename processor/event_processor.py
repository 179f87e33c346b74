"""Event processor for validating and normalizing scraped feed rows."""
import logging
from typing import Dict, Iterable, List, Optional

from processor.models import Event, RawRecord
from processor.normalizer import normalize, normalize_for_identity

logger = logging.getLogger(__name__)


EMPIRE_MAP: Dict[str, str] = {
    'f0': 'Mondial',
    'f1': 'République de Kraland',
    'f2': 'Empire Brun',
    'f3': 'Palladium Corporation',
    'f4': 'Théocratie Seelienne',
    'f5': 'Paradigme Vert',
    'f6': 'Khanat Elmérien',
    'f7': 'Confédération Libre',
    'f8': 'Royaume de Ruthvénie',
    'f9': 'Provinces indépendantes',
    'f10': 'ADMIN',
}

UNKNOWN_EMPIRE = 'Inconnu'

KEY_SEPARATOR = '|'


def compute_key(event: Event) -> str:
    """
    Build the canonical identity of an event.

    The six descriptive fields are folded with normalize_for_identity and
    joined in a fixed order, so surface formatting never changes the key.
    """
    return KEY_SEPARATOR.join(
        normalize_for_identity(value)
        for value in (
            event.date,
            event.time,
            event.empire,
            event.province,
            event.city,
            event.text,
        )
    )


def sort_events(events: List[Event]) -> List[Event]:
    """Sort events in place by date then time, oldest first."""
    events.sort(key=lambda e: (e.date, e.time or '00:00'))
    return events


class EventProcessor:
    """Processor for validating and normalizing feed rows."""

    def __init__(self, empire_map: Optional[Dict[str, str]] = None):
        self.empire_map = dict(empire_map if empire_map is not None else EMPIRE_MAP)
        self.discarded = 0

    def process_records(self, raw_records: Iterable[RawRecord]) -> List[Event]:
        """
        Process and validate raw feed rows.

        Args:
            raw_records: Rows yielded by the feed scraper

        Returns:
            List of normalized Event objects with their canonical key
        """
        events = []
        total = 0

        for record in raw_records:
            total += 1
            event = self._process_single_record(record)
            if event:
                events.append(event)
            else:
                self.discarded += 1

        logger.debug(f"Processed {len(events)} valid events out of {total} rows")
        return events

    def _process_single_record(self, record: RawRecord) -> Optional[Event]:
        event = Event(
            date=normalize(record.date),
            time=normalize(record.time),
            empire=normalize(self.resolve_empire(record.empire)),
            province=normalize(record.province),
            city=normalize(record.city),
            text=normalize(record.text)
        )

        if not self._validate_required_fields(event):
            return None

        event.key = compute_key(event)
        return event

    def _validate_required_fields(self, event: Event) -> bool:
        if not event.date:
            logger.debug("Row missing required field: date")
            return False

        if not event.text:
            logger.debug(f"Row dated {event.date} missing required field: text")
            return False

        return True

    def resolve_empire(self, code: Optional[str]) -> str:
        """Map a feed empire code to its display name."""
        if not code:
            return UNKNOWN_EMPIRE
        return self.empire_map.get(code, code)
