"""Unit tests for EventProcessor and canonical keys."""
from processor.event_processor import (
    EventProcessor,
    UNKNOWN_EMPIRE,
    compute_key,
    sort_events,
)
from processor.models import Event, RawRecord


def make_record(**overrides):
    fields = {
        'date': '2024-01-15',
        'time': '10:00',
        'empire': 'f2',
        'province': 'Baronnie',
        'city': 'Port-Vieux',
        'text': 'Le maire a prononcé un discours.'
    }
    fields.update(overrides)
    return RawRecord(**fields)


class TestEventProcessor:
    """Test cases for EventProcessor class."""

    def test_process_records_valid_record(self):
        """Test processing a valid row."""
        processor = EventProcessor()

        events = processor.process_records([make_record()])

        assert len(events) == 1
        event = events[0]
        assert event.date == '2024-01-15'
        assert event.time == '10:00'
        assert event.empire == 'Empire Brun'
        assert event.province == 'Baronnie'
        assert event.city == 'Port-Vieux'
        assert event.text == 'Le maire a prononcé un discours.'
        assert event.key == compute_key(event)
        assert event.first_seen is None

    def test_process_records_missing_required_fields(self):
        """Rows without date or text are discarded and counted."""
        processor = EventProcessor()

        events = processor.process_records([
            make_record(date=''),
            make_record(text='   '),
            make_record(text=None),
            make_record(time=''),
        ])

        assert len(events) == 1
        assert events[0].time == ''
        assert processor.discarded == 3

    def test_process_records_normalizes_whitespace(self):
        processor = EventProcessor()

        events = processor.process_records([
            make_record(text='  Une   rumeur\n court ', province=' Baronnie  ')
        ])

        assert events[0].text == 'Une rumeur court'
        assert events[0].province == 'Baronnie'

    def test_resolve_empire(self):
        processor = EventProcessor()

        assert processor.resolve_empire('f1') == 'République de Kraland'
        assert processor.resolve_empire('f42') == 'f42'
        assert processor.resolve_empire('') == UNKNOWN_EMPIRE
        assert processor.resolve_empire(None) == UNKNOWN_EMPIRE

    def test_custom_empire_map(self):
        processor = EventProcessor(empire_map={'x1': 'Test Empire'})

        events = processor.process_records([make_record(empire='x1')])

        assert events[0].empire == 'Test Empire'


class TestComputeKey:
    """Test cases for canonical event keys."""

    def test_key_joins_folded_fields_in_order(self):
        event = Event(
            date='2024-01-15', time='10:00', empire='Empire Brun',
            province='Baronnie', city='Port-Vieux', text='Texte Été'
        )

        assert compute_key(event) == (
            '2024-01-15|10:00|empire brun|baronnie|port-vieux|texte ete'
        )

    def test_surface_differences_collide(self):
        first = Event(
            date='2024-01-15', time='10:00', empire='Khanat Elmérien',
            province='Île Rouge', city='', text="Le maire s'est versé une prime."
        )
        second = Event(
            date='2024-01-15', time='10:00', empire='KHANAT ELMERIEN',
            province='Ile   Rouge', city='',
            text='le maire s\N{RIGHT SINGLE QUOTATION MARK}est  verse une prime.'
        )

        assert compute_key(first) == compute_key(second)

    def test_field_order_matters(self):
        first = Event(
            date='2024-01-15', time='', empire='A', province='B', city='', text='t'
        )
        second = Event(
            date='2024-01-15', time='', empire='B', province='A', city='', text='t'
        )

        assert compute_key(first) != compute_key(second)

    def test_different_text_gives_different_key(self):
        first = Event(date='2024-01-15', time='10:00', empire='A', province='',
                      city='', text='un')
        second = Event(date='2024-01-15', time='10:00', empire='A', province='',
                       city='', text='deux')

        assert compute_key(first) != compute_key(second)


def test_sort_events_by_date_then_time():
    events = [
        Event(date='2024-01-16', time='08:00', empire='A', province='', city='', text='c'),
        Event(date='2024-01-15', time='12:00', empire='A', province='', city='', text='b'),
        Event(date='2024-01-15', time='', empire='A', province='', city='', text='a'),
    ]

    sort_events(events)

    assert [e.text for e in events] == ['a', 'b', 'c']
