"""Rendering of event timelines and finance rankings as webhook payloads."""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from notifier.pagination import chunk_lines
from processor.aggregator import BAR_WIDTH, rank_rows_by_empire, rank_totals, aggregate_rows
from processor.models import DailyFinanceTable, Event, RankedEntry

# Notification platform limits
TITLE_LIMIT = 256
DESCRIPTION_LIMIT = 4096
FIELDS_PER_CARD = 25
FIELD_VALUE_LIMIT = 1024

BAR_FILLED = '█'
BAR_EMPTY = '░'
HEADER_SPACER = '\u200b'

INCOME_COLOR = 0x2ECC71
EXPENSE_COLOR = 0xE74C3C
DEFAULT_COLOR = 0x34495E

EMPIRE_COLOR: Dict[str, int] = {
    'Mondial': 0xBDC3C7,
    'République de Kraland': 0xFF6B6B,
    'Empire Brun': 0xA97100,
    'Palladium Corporation': 0xFFFF99,
    'Théocratie Seelienne': 0xE6F58F,
    'Paradigme Vert': 0x7CFF7C,
    'Khanat Elmérien': 0xD18CFF,
    'Confédération Libre': 0xBDBDBD,
    'Royaume de Ruthvénie': 0x7FA36A,
    'Provinces indépendantes': 0xB5B34A,
    'ADMIN': 0x2C2C2C,
}

MEDALS = {1: '🥇', 2: '🥈', 3: '🥉'}

INCOME_LABEL = '💰 Revenus'
EXPENSE_LABEL = '💸 Dépenses'


@dataclass
class Section:
    """One titled ranking of a daily report."""
    title: str
    color: int
    fields: List[dict]


def empire_color(empire: str) -> int:
    return EMPIRE_COLOR.get(empire, DEFAULT_COLOR)


def progress_bar(units: int, width: int = BAR_WIDTH) -> str:
    return BAR_FILLED * units + BAR_EMPTY * (width - units)


def format_amount(value: int, currency: Optional[str]) -> str:
    amount = f"{value:,}"
    return f"{amount} {currency}" if currency else amount


def paged_title(title: str, index: int, total: int) -> str:
    if total > 1:
        title = f"{title} ({index + 1}/{total})"
    return title[:TITLE_LIMIT]


def render_event_pages(
    date: str,
    empire: str,
    events: Sequence[Event],
    mention: Optional[str] = None
) -> List[dict]:
    """Timeline cards for one date/empire group, split to the description limit."""
    lines = [f"**{e.time or '--:--'}** — {e.text}" for e in events]
    chunks = chunk_lines(lines, DESCRIPTION_LIMIT)

    pages = []
    for i, chunk in enumerate(chunks):
        payload = {
            'embeds': [{
                'title': paged_title(f"📅 {date} — {empire}", i, len(chunks)),
                'color': empire_color(empire),
                'description': chunk,
                'footer': {'text': f"{len(events)} événements"}
            }]
        }
        if mention and i == 0:
            payload['content'] = mention
        pages.append(payload)
    return pages


def _entry_value(entry: RankedEntry, label: str, width: int) -> str:
    medal = MEDALS.get(entry.rank, '')
    value = (
        f"{label} : **{format_amount(entry.value, entry.currency)}**\n"
        f"{progress_bar(entry.bar_units, width)} {medal}"
    )
    return value.rstrip()[:FIELD_VALUE_LIMIT]


def ranking_fields(
    entries: Sequence[RankedEntry],
    label: str,
    width: int = BAR_WIDTH
) -> List[dict]:
    return [
        {
            'name': f"{entry.rank}. 🏰 {entry.name}",
            'value': _entry_value(entry, label, width),
            'inline': True
        }
        for entry in entries
    ]


def grouped_ranking_fields(
    grouped: Dict[str, List[RankedEntry]],
    label: str,
    width: int = BAR_WIDTH
) -> List[dict]:
    """Ranking fields with a non-inline header field before each empire."""
    fields = []
    for empire, entries in grouped.items():
        fields.append({'name': f"🏰 {empire}", 'value': HEADER_SPACER, 'inline': False})
        for entry in entries:
            fields.append({
                'name': f"{entry.rank}. {entry.name}",
                'value': _entry_value(entry, label, width),
                'inline': True
            })
    return fields


def build_daily_sections(day: str, table: DailyFinanceTable) -> List[Section]:
    """The six ranking sections of a daily finance report."""
    empire_totals = aggregate_rows(table.empire, 'empire')

    sections = [
        Section(
            title=f"🏆 Empires — {day} • Revenus",
            color=INCOME_COLOR,
            fields=ranking_fields(rank_totals(empire_totals, 'income'), INCOME_LABEL)
        ),
        Section(
            title=f"💸 Empires — {day} • Dépenses",
            color=EXPENSE_COLOR,
            fields=ranking_fields(rank_totals(empire_totals, 'expense'), EXPENSE_LABEL)
        ),
    ]

    for level, plural in (('province', 'Provinces'), ('city', 'Villes')):
        rows = table.rows(level)
        sections.append(Section(
            title=f"🏆 {plural} — {day} • Revenus",
            color=INCOME_COLOR,
            fields=grouped_ranking_fields(
                rank_rows_by_empire(rows, 'income', level), INCOME_LABEL
            )
        ))
        sections.append(Section(
            title=f"💸 {plural} — {day} • Dépenses",
            color=EXPENSE_COLOR,
            fields=grouped_ranking_fields(
                rank_rows_by_empire(rows, 'expense', level), EXPENSE_LABEL
            )
        ))

    return sections


def daily_header(day: str) -> dict:
    return {'content': f"📅 **Rapport financier — {day}**"}
