"""Per-day rollups of financial flows and the rankings derived from them."""
import logging
import math
from typing import Dict, Iterable, List, Optional, Tuple

from processor.finance import FinanceExtractor
from processor.models import (
    DailyFinanceLog,
    DailyFinanceTable,
    Event,
    FinanceRow,
    RankedEntry,
    Totals,
)
from processor.territories import TerritoryRegistry

logger = logging.getLogger(__name__)


LEVELS = ('empire', 'province', 'city')
METRICS = ('income', 'expense')

HEADLINE_LIMIT = 9
BAR_WIDTH = 10


def progress_units(value: float, max_value: float, width: int = BAR_WIDTH) -> int:
    """Filled units of a proportional bar, rounded half up and clamped."""
    if max_value <= 0:
        return 0
    filled = math.floor(value / max_value * width + 0.5)
    return max(0, min(width, filled))


def entity_label(row: FinanceRow, level: str) -> str:
    if level == 'empire':
        return row.empire
    if level == 'province':
        return f"{row.empire} :: {row.province}"
    return f"{row.empire} :: {row.province} :: {row.city}"


def aggregate_rows(rows: Iterable[FinanceRow], level: str) -> Dict[str, Totals]:
    """Sum rows per entity label, keeping first-seen label order."""
    result: Dict[str, Totals] = {}

    for row in rows:
        label = entity_label(row, level)
        totals = result.get(label)
        if totals is None:
            totals = result[label] = Totals(currency=row.currency)
        totals.add(row.income or 0, row.expense or 0)

    return result


def rank_totals(
    entries: Dict[str, Totals],
    metric: str,
    limit: Optional[int] = HEADLINE_LIMIT,
    width: int = BAR_WIDTH
) -> List[RankedEntry]:
    """
    Rank labelled totals by income or expense, highest first.

    Zero values are dropped, ties keep input order and the list is cut to
    ``limit`` entries (None for no cut).
    """
    if metric not in METRICS:
        raise ValueError(f"Unknown metric: {metric}")

    ranked = [
        (name, totals) for name, totals in entries.items()
        if getattr(totals, metric) > 0
    ]
    ranked.sort(key=lambda item: getattr(item[1], metric), reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    if not ranked:
        return []

    max_value = getattr(ranked[0][1], metric)
    return [
        RankedEntry(
            rank=i + 1,
            name=name,
            value=getattr(totals, metric),
            currency=totals.currency,
            bar_units=progress_units(getattr(totals, metric), max_value, width)
        )
        for i, (name, totals) in enumerate(ranked)
    ]


def rank_rows_by_empire(
    rows: Iterable[FinanceRow],
    metric: str,
    level: str,
    width: int = BAR_WIDTH
) -> Dict[str, List[RankedEntry]]:
    """
    Rank provinces or cities across all empires, grouped by empire.

    Ranks and bars are global; groups appear in the order of their best
    ranked entity. No truncation is applied.
    """
    if level not in ('province', 'city'):
        raise ValueError(f"Per-empire ranking needs province or city level, got {level}")

    per_entity: Dict[Tuple[str, str], Totals] = {}
    for row in rows:
        name = row.city if level == 'city' else row.province
        if not row.empire or not name:
            continue
        totals = per_entity.get((row.empire, name))
        if totals is None:
            totals = per_entity[(row.empire, name)] = Totals(currency=row.currency)
        totals.add(row.income or 0, row.expense or 0)

    flat = [
        (empire, name, totals) for (empire, name), totals in per_entity.items()
        if getattr(totals, metric) > 0
    ]
    flat.sort(key=lambda item: getattr(item[2], metric), reverse=True)
    if not flat:
        return {}

    max_value = getattr(flat[0][2], metric)
    grouped: Dict[str, List[RankedEntry]] = {}
    for i, (empire, name, totals) in enumerate(flat):
        value = getattr(totals, metric)
        grouped.setdefault(empire, []).append(RankedEntry(
            rank=i + 1,
            name=name,
            value=value,
            currency=totals.currency,
            bar_units=progress_units(value, max_value, width),
            empire=empire
        ))
    return grouped


class FinanceAggregator:
    """Builds flat per-day tables and nested per-day trees from events."""

    def __init__(
        self,
        extractor: Optional[FinanceExtractor] = None,
        registry: Optional[TerritoryRegistry] = None
    ):
        self.extractor = extractor or FinanceExtractor()
        self.registry = registry or TerritoryRegistry()

    def attribute(self, event: Event) -> Tuple[str, Optional[str], Optional[str]]:
        """
        Return (level, province, city) for an event's flow.

        A city without a province is placed under the province the registry
        knows it by; otherwise the flow stays at empire level.
        """
        province = event.province or None
        city = event.city or None

        if city and not province:
            province = self.registry.province_of(city)
            if not province:
                logger.debug(f"City '{city}' has no known province, using empire level")
                return 'empire', None, None

        if province and city:
            return 'city', province, city
        if province:
            return 'province', province, None
        return 'empire', None, None

    def build_daily_tables(self, events: Iterable[Event]) -> Dict[str, DailyFinanceTable]:
        """One row per financial event, filed under its day and entity level."""
        days: Dict[str, DailyFinanceTable] = {}

        for event in events:
            flow = self.extractor.extract(event.text)
            if flow is None:
                continue

            level, province, city = self.attribute(event)
            row = FinanceRow(
                empire=event.empire,
                province=province,
                city=city,
                income=flow.income,
                expense=flow.expense,
                currency=flow.currency
            )
            days.setdefault(event.date, DailyFinanceTable()).rows(level).append(row)

        return days

    def build_daily_logs(
        self,
        tables: Dict[str, DailyFinanceTable]
    ) -> Dict[str, DailyFinanceLog]:
        """
        Fold flat tables into empire -> province -> city trees.

        Each row is added once at every level on its own path. When the
        registry is loaded, empires it does not list are left out.
        """
        logs: Dict[str, DailyFinanceLog] = {}

        for day, table in tables.items():
            log = DailyFinanceLog(date=day)

            for level in LEVELS:
                for row in table.rows(level):
                    if self.registry and not self.registry.knows(row.empire):
                        logger.debug(f"Empire '{row.empire}' not in registry, skipped")
                        continue

                    currency = self.registry.currency_of(row.empire) or row.currency
                    empire = log.empire(row.empire, currency)
                    empire.income += row.income
                    empire.expense += row.expense

                    if row.province:
                        province = empire.province(row.province)
                        province.income += row.income
                        province.expense += row.expense

                        if row.city:
                            city = province.city(row.city)
                            city.income += row.income
                            city.expense += row.expense

            logs[day] = log

        return logs
