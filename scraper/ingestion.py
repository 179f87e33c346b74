"""Paging loop that feeds scraped rows into the event store."""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from processor.event_processor import EventProcessor
from processor.models import IngestionResult, ScrapedPage
from storage.event_store import EventStore

logger = logging.getLogger(__name__)


STOP_NO_NEXT_PAGE = 'no_next_page'
STOP_MAX_PAGES = 'max_pages'
STOP_EMPTY_PAGES = 'empty_pages'


class IngestionLoop:
    """
    Drives paged retrieval: fetch a page, normalize its rows, admit them.

    Stops when there is no next page, when ``max_pages`` pages were read,
    or after ``max_empty_pages`` consecutive pages admitted nothing.
    """

    def __init__(
        self,
        fetch_page: Callable[[str], ScrapedPage],
        processor: EventProcessor,
        store: EventStore,
        max_pages: int = 500,
        max_empty_pages: int = 5
    ):
        self.fetch_page = fetch_page
        self.processor = processor
        self.store = store
        self.max_pages = max_pages
        self.max_empty_pages = max_empty_pages

    def run(self, start_url: str, now: Optional[datetime] = None) -> IngestionResult:
        now = now or datetime.now(timezone.utc)
        admitted = []
        readmitted = []
        discarded_before = self.processor.discarded

        next_url = start_url
        page_count = 0
        empty_pages = 0
        stop_reason = STOP_NO_NEXT_PAGE

        while next_url:
            if page_count >= self.max_pages:
                stop_reason = STOP_MAX_PAGES
                break
            page_count += 1

            page = self.fetch_page(next_url)
            events = self.processor.process_records(page.records)

            new_count = 0
            for event in events:
                result = self.store.admit(event, now)
                if not result.accepted:
                    continue
                new_count += 1
                admitted.append(result.record)
                if result.readmitted:
                    readmitted.append(result.record)

            logger.info(f"Page {page_count} -> +{new_count}")

            if new_count == 0:
                empty_pages += 1
                if empty_pages >= self.max_empty_pages:
                    logger.info(f"{self.max_empty_pages} pages without new events, stopping")
                    stop_reason = STOP_EMPTY_PAGES
                    break
            else:
                empty_pages = 0

            next_url = page.next_url

        return IngestionResult(
            pages=page_count,
            admitted=admitted,
            readmitted=readmitted,
            discarded=self.processor.discarded - discarded_before,
            stop_reason=stop_reason
        )
