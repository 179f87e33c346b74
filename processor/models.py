"""Data models for event processing."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class RawRecord:
    """Raw row from the events feed scraper."""
    date: str
    time: str
    empire: str
    province: str
    city: str
    text: str
    id: Optional[str] = None


@dataclass
class ScrapedPage:
    """One page of the feed: its rows and the next page reference."""
    records: List[RawRecord]
    next_url: Optional[str] = None


@dataclass
class Event:
    """Validated and normalized event."""
    date: str
    time: str
    empire: str
    province: str
    city: str
    text: str
    key: str = ''
    first_seen: Optional[str] = None

    def to_item(self) -> dict:
        return {
            'date': self.date,
            'time': self.time,
            'empire': self.empire,
            'province': self.province,
            'city': self.city,
            'text': self.text,
            'key': self.key,
            'firstSeen': self.first_seen
        }

    @classmethod
    def from_item(cls, item: dict) -> 'Event':
        return cls(
            date=item.get('date') or '',
            time=item.get('time') or '',
            empire=item.get('empire') or '',
            province=item.get('province') or '',
            city=item.get('city') or '',
            text=item.get('text') or '',
            key=item.get('key') or '',
            first_seen=item.get('firstSeen') or item.get('first_seen')
        )


@dataclass
class AdmitResult:
    """Outcome of offering one event to the event store."""
    accepted: bool
    record: Event
    readmitted: bool = False


@dataclass
class IngestionResult:
    """Summary of one paging run."""
    pages: int
    admitted: List[Event]
    readmitted: List[Event]
    discarded: int
    stop_reason: str


@dataclass
class Flow:
    """Money extracted from one event's text."""
    income: int = 0
    expense: int = 0
    currency: Optional[str] = None
    distribution: int = 0


@dataclass
class FinanceRow:
    """One financial event attributed to a single entity level."""
    empire: str
    province: Optional[str]
    city: Optional[str]
    income: int
    expense: int
    currency: Optional[str]

    def to_item(self) -> dict:
        return {
            'empire': self.empire,
            'province': self.province,
            'city': self.city,
            'income': self.income,
            'expense': self.expense,
            'currency': self.currency
        }


@dataclass
class DailyFinanceTable:
    """Flat finance rows for one day, split by entity level."""
    empire: List[FinanceRow] = field(default_factory=list)
    province: List[FinanceRow] = field(default_factory=list)
    city: List[FinanceRow] = field(default_factory=list)

    def rows(self, level: str) -> List[FinanceRow]:
        return getattr(self, level)

    def to_item(self) -> dict:
        return {
            level: [row.to_item() for row in self.rows(level)]
            for level in ('empire', 'province', 'city')
        }


@dataclass
class Totals:
    """Income and expense for one labelled entity."""
    income: int = 0
    expense: int = 0
    currency: Optional[str] = None

    def add(self, income: int, expense: int) -> None:
        self.income += income
        self.expense += expense


@dataclass
class CityTotals:
    income: int = 0
    expense: int = 0

    def to_item(self) -> dict:
        return {'income': self.income, 'expense': self.expense}


@dataclass
class ProvinceTotals:
    income: int = 0
    expense: int = 0
    cities: Dict[str, CityTotals] = field(default_factory=dict)

    def city(self, name: str) -> CityTotals:
        return self.cities.setdefault(name, CityTotals())

    def to_item(self) -> dict:
        return {
            'income': self.income,
            'expense': self.expense,
            'cities': {name: c.to_item() for name, c in self.cities.items()}
        }


@dataclass
class EmpireTotals:
    currency: Optional[str] = None
    income: int = 0
    expense: int = 0
    provinces: Dict[str, ProvinceTotals] = field(default_factory=dict)

    def province(self, name: str) -> ProvinceTotals:
        return self.provinces.setdefault(name, ProvinceTotals())

    def to_item(self) -> dict:
        return {
            'currency': self.currency,
            'income': self.income,
            'expense': self.expense,
            'provinces': {
                name: p.to_item() for name, p in self.provinces.items()
            }
        }


@dataclass
class DailyFinanceLog:
    """Nested empire -> province -> city rollup for one day."""
    date: str
    empires: Dict[str, EmpireTotals] = field(default_factory=dict)

    def empire(self, name: str, currency: Optional[str] = None) -> EmpireTotals:
        if name not in self.empires:
            self.empires[name] = EmpireTotals(currency=currency)
        return self.empires[name]

    def to_item(self) -> dict:
        return {
            'date': self.date,
            'empires': {
                name: e.to_item() for name, e in self.empires.items()
            }
        }


@dataclass
class RankedEntry:
    """One row of a ranking report."""
    rank: int
    name: str
    value: int
    currency: Optional[str]
    bar_units: int
    empire: Optional[str] = None


@dataclass
class SyncResult:
    """Result of an aggregate storage write."""
    added: int
    skipped: int
    errors: List[str]
