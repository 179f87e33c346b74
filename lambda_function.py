"""AWS Lambda handler for the Kraland events feed watcher."""
import json
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any

import requests

from config import Settings
from notifier.delivery import DeliveryEngine
from notifier.webhook import WebhookClient, WebhookError
from processor.aggregator import FinanceAggregator
from processor.classifier import EventRouter
from processor.event_processor import EventProcessor
from processor.finance import FinanceExtractor
from processor.territories import TerritoryRegistry
from scraper.ingestion import IngestionLoop
from scraper.kraland_feed import KralandFeedScraper
from storage.dynamodb_manager import DynamoDBManager
from storage.event_store import EventStore
from storage.json_store import JsonStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _error_response(message: str, error: Exception, start_time: float, **extra) -> Dict[str, Any]:
    body = {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    }
    body.update(extra)
    return {'statusCode': 500, 'body': json.dumps(body, ensure_ascii=False)}


def write_finance_snapshots(
    json_store: JsonStore,
    aggregator: FinanceAggregator,
    events
):
    """Write the flat daily tables and the write-once daily trees."""
    tables = aggregator.build_daily_tables(events)
    json_store.save(
        JsonStore.STATS_FILE,
        {day: table.to_item() for day, table in tables.items()}
    )

    written = 0
    for day, log in aggregator.build_daily_logs(tables).items():
        name = f"{JsonStore.DAILY_FINANCES_DIR}/{day}.json"
        if json_store.save_once(name, log.to_item()):
            written += 1
    return tables, written


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Run one polling batch: ingest the feed, archive new events, write
    finance snapshots, then deliver reports and notifications.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    settings = Settings.from_env()

    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    now = datetime.now(timezone.utc)
    logger.info(
        "Lambda execution started",
        extra={
            'feed_url': settings.feed_url,
            'max_pages': settings.max_pages,
            'max_empty_pages': settings.max_empty_pages
        }
    )

    try:
        json_store = JsonStore(settings.data_dir)
        event_store = EventStore(json_store, ttl_days=settings.event_ttl_days)
        processor = EventProcessor()
        scraper = KralandFeedScraper(timeout=settings.timeout_seconds)
        extractor = FinanceExtractor()
        aggregator = FinanceAggregator(
            extractor, TerritoryRegistry.load(settings.territories_file)
        )
        router = EventRouter(financial_exclusion=settings.financial_exclusion)
        engine = DeliveryEngine(
            client=WebhookClient(timeout=settings.timeout_seconds),
            json_store=json_store,
            router=router,
            extractor=extractor,
            webhooks=settings.webhooks,
            stats_webhook=settings.stats_webhook,
            mentions=settings.empire_roles,
            page_delay=settings.page_delay_seconds,
            section_delay=settings.section_delay_seconds
        )
        ingestion = IngestionLoop(
            scraper.fetch_page,
            processor,
            event_store,
            max_pages=settings.max_pages,
            max_empty_pages=settings.max_empty_pages
        )

        try:
            logger.info("Fetching events from feed")
            result = ingestion.run(settings.feed_url, now)
            logger.info(
                f"Ingested {len(result.admitted)} new events from {result.pages} pages "
                f"(stop: {result.stop_reason})"
            )
        except Exception as e:
            logger.error(
                f"Failed to fetch feed events: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response('Failed to fetch feed events', e, start_time)

        event_store.save()
        engine.release_keys(e.key for e in result.readmitted)

        archived = 0
        if settings.table_name and result.admitted:
            try:
                sync_result = DynamoDBManager(settings.table_name).put_events(result.admitted)
                archived = sync_result.added
            except Exception as e:
                # Archive is best-effort
                logger.error(
                    f"Error during DynamoDB archive: {str(e)}",
                    extra={'error_type': type(e).__name__},
                    exc_info=True
                )

        tables, snapshots = write_finance_snapshots(
            json_store, aggregator, event_store.unique_events()
        )

        try:
            reported_days = engine.send_daily_rankings(tables)
            notified = engine.send_event_notifications(event_store.active_records(now))
        except (WebhookError, requests.RequestException) as e:
            logger.error(
                f"Delivery aborted: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(
                'Failed to deliver notifications', e, start_time,
                note='Sent markers only include confirmed deliveries'
            )

        duration = time.time() - start_time
        statistics = {
            'pages_fetched': result.pages,
            'stop_reason': result.stop_reason,
            'events_admitted': len(result.admitted),
            'events_readmitted': len(result.readmitted),
            'rows_discarded': result.discarded,
            'events_archived': archived,
            'finance_snapshots_written': snapshots,
            'daily_reports_sent': len(reported_days),
            'events_notified': notified,
            'duration_seconds': round(duration, 2)
        }
        logger.info("Lambda execution completed successfully", extra=statistics)

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Run completed successfully',
                'statistics': statistics
            })
        }

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response('Run failed', e, start_time)


if __name__ == '__main__':
    print(json.dumps(lambda_handler({}, None), indent=2))
