"""Delivery of event notifications and daily finance reports."""
import logging
import time
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from notifier.pagination import paginate_fields
from notifier.reports import (
    FIELDS_PER_CARD,
    build_daily_sections,
    daily_header,
    paged_title,
    render_event_pages,
)
from notifier.webhook import WebhookClient
from processor.classifier import EventRouter
from processor.finance import FinanceExtractor
from processor.models import DailyFinanceTable, Event
from storage.json_store import JsonStore

logger = logging.getLogger(__name__)


class DeliveryEngine:
    """
    Sends rendered pages and keeps the sent-marker ledgers.

    Identifiers (event keys, report days) are added to their ledger and the
    ledger is saved only after every page carrying them was accepted.
    """

    def __init__(
        self,
        client: WebhookClient,
        json_store: JsonStore,
        router: EventRouter,
        extractor: FinanceExtractor,
        webhooks: Mapping[str, str],
        stats_webhook: Optional[str] = None,
        mentions: Optional[Mapping[str, str]] = None,
        silent_destinations: Iterable[str] = ('tunnel', 'events'),
        page_delay: float = 0.2,
        section_delay: float = 0.3,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.client = client
        self.json_store = json_store
        self.router = router
        self.extractor = extractor
        self.webhooks = dict(webhooks)
        self.stats_webhook = stats_webhook
        self.mentions = dict(mentions or {})
        self.silent_destinations = frozenset(silent_destinations)
        self.page_delay = page_delay
        self.section_delay = section_delay
        self.sleep = sleep

    def deliver(self, url: str, pages: Sequence[dict]) -> int:
        """Send pages in order, pausing between them. Errors propagate."""
        for page in pages:
            self.client.send(url, page)
            self.sleep(self.page_delay)
        return len(pages)

    def resolve_webhook(self, destination: str) -> Optional[str]:
        return self.webhooks.get(destination) or self.webhooks.get(
            self.router.default_destination
        )

    def release_keys(self, keys: Iterable[str]) -> None:
        """Drop re-admitted keys from the notification ledger so they are sent again."""
        keys = set(keys)
        if not keys:
            return
        sent = self.json_store.load_set(JsonStore.SENT_FILE)
        if sent & keys:
            self.json_store.save_set(JsonStore.SENT_FILE, sent - keys)
            logger.info(f"Released {len(sent & keys)} re-admitted keys for notification")

    def send_event_notifications(self, events: Sequence[Event]) -> int:
        """
        Notify events not yet in the ledger, grouped by date, empire and
        destination.

        Returns:
            Number of events notified
        """
        sent = self.json_store.load_set(JsonStore.SENT_FILE)
        timeline: Dict[str, Dict[str, Dict[str, List[Event]]]] = {}
        skipped_finance = 0

        for event in events:
            if event.key in sent:
                continue

            destination = self.router.select(
                event, self.extractor.is_financial(event.text)
            )
            if destination is None:
                skipped_finance += 1
                continue

            timeline.setdefault(event.date, {}).setdefault(
                event.empire, {}
            ).setdefault(destination, []).append(event)

        if skipped_finance:
            logger.info(f"Financial events withheld from notifications: {skipped_finance}")

        notified = 0
        for date, empires in timeline.items():
            for empire, destinations in empires.items():
                for destination, group in destinations.items():
                    url = self.resolve_webhook(destination)
                    if not url:
                        logger.warning(
                            f"No webhook for destination '{destination}', "
                            f"{len(group)} events left pending"
                        )
                        continue

                    mention = None
                    if destination not in self.silent_destinations:
                        mention = self.mentions.get(empire)

                    self.deliver(url, render_event_pages(date, empire, group, mention))

                    sent.update(e.key for e in group)
                    self.json_store.save_set(JsonStore.SENT_FILE, sent)
                    notified += len(group)

        logger.info(f"Notified {notified} events")
        return notified

    def send_daily_rankings(self, tables: Mapping[str, DailyFinanceTable]) -> List[str]:
        """
        Send the finance report of every day not yet in the ledger.

        Returns:
            Days reported during this call
        """
        sent_days = self.json_store.load_set(JsonStore.STATS_SENT_FILE)
        pending = [day for day in sorted(tables) if day not in sent_days]
        if not pending:
            return []

        if not self.stats_webhook:
            logger.warning(f"No statistics webhook, {len(pending)} daily reports left pending")
            return []

        reported = []
        for day in pending:
            self.client.send(self.stats_webhook, daily_header(day))

            for section in build_daily_sections(day, tables[day]):
                if not section.fields:
                    logger.info(f"Section skipped (empty): {section.title}")
                    continue

                chunks = paginate_fields(section.fields, FIELDS_PER_CARD)
                pages = [
                    {'embeds': [{
                        'title': paged_title(section.title, i, len(chunks)),
                        'color': section.color,
                        'fields': chunk
                    }]}
                    for i, chunk in enumerate(chunks)
                ]
                self.deliver(self.stats_webhook, pages)
                self.sleep(self.section_delay)

            sent_days.add(day)
            self.json_store.save_set(JsonStore.STATS_SENT_FILE, sent_days)
            reported.append(day)
            logger.info(f"Daily finance report sent for {day}")

        return reported
