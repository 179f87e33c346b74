"""Unit tests for EventRouter."""
import logging

import pytest

from processor.classifier import (
    DEFAULT_DESTINATION,
    DEFAULT_RULES,
    FINANCIAL_EXCLUSION_DEFAULT_ONLY,
    EventRouter,
    Rule,
    keyword_rule,
)
from processor.models import Event


def make_event(text):
    return Event(date='2024-03-01', time='10:00', empire='Empire Brun',
                 province='', city='', text=text)


@pytest.fixture
def router():
    return EventRouter()


class TestRoute:
    """Test cases for routing by text."""

    @pytest.mark.parametrize('text, destination', [
        ('Un tunnel termondique de magnitude 4 est apparu.', 'tunnel'),
        ('Le Khanat déclare la guerre à l\'Empire Brun.', 'war'),
        ('Bob a tenté de voler la banque.', 'crime'),
        ('Alice a découvert la technologie Vapeur.', 'recherche'),
        ('Le roi a prononcé un discours.', 'discours'),
        ('Une rumeur court sur le ministre.', 'rumeur'),
        ('Le duc a nommé Bob au poste de ministre.', 'politique'),
        ('Le trésor a versé 500 Co au ministère.', 'finance'),
        ('Il pleut sur la capitale.', DEFAULT_DESTINATION),
    ])
    def test_routes_by_rule(self, router, text, destination):
        assert router.route(make_event(text)) == destination

    def test_matching_ignores_accents_case_and_quotes(self, router):
        event = make_event('LE ROI A PRONONCÉ UN DISCOURS')
        assert router.route(event) == 'discours'

        event = make_event('Bob vient d\N{RIGHT SINGLE QUOTATION MARK}achever sa peine.')
        assert router.route(event) == 'crime'

    def test_crime_rule_wins_over_broad_finance_regex(self, router):
        """Embezzlement mentions a payment but must stay a crime."""
        event = make_event(
            "Bob a tenté de détourner de l'argent et a versé 200 Co au trésor."
        )

        assert router.route(event) == 'crime'

    def test_rule_order_is_fixed(self):
        names = [rule.name for rule in DEFAULT_RULES]

        assert names == [
            'Tunnel', 'War', 'Crime', 'Recherche', 'Discours',
            'Rumeur', 'Politique', 'Finance'
        ]

    def test_reordering_changes_result(self):
        crime_first = EventRouter(rules=[
            keyword_rule('Crime', 'crime', ['a tente de voler']),
            keyword_rule('Money', 'finance', patterns=[r'a verse .+ au']),
        ])
        money_first = EventRouter(rules=list(reversed(crime_first.rules)))
        event = make_event('Bob a tenté de voler puis a versé 10 Co au duc.')

        assert crime_first.route(event) == 'crime'
        assert money_first.route(event) == 'finance'

    def test_faulty_rule_is_skipped_and_logged(self, caplog):
        def broken(text):
            raise RuntimeError('bad rule')

        router = EventRouter(rules=[
            Rule(name='Broken', destination='broken', match=broken),
            keyword_rule('Rumeur', 'rumeur', ['une rumeur court']),
        ])

        with caplog.at_level(logging.WARNING):
            destination = router.route(make_event('Une rumeur court.'))

        assert destination == 'rumeur'
        assert any('rule fault' in r.getMessage() and 'Broken' in r.getMessage()
                   for r in caplog.records)

    def test_custom_default_destination(self):
        router = EventRouter(rules=[], default_destination='general')

        assert router.route(make_event('anything')) == 'general'

    def test_unknown_financial_mode_rejected(self):
        with pytest.raises(ValueError):
            EventRouter(financial_exclusion='sometimes')


class TestSelect:
    """Test cases for the financial exclusion policy."""

    def test_financial_events_withheld_everywhere_by_default(self, router):
        event = make_event('Le trésor a versé 500 Co au ministère.')

        assert router.select(event, is_financial=True) is None

    def test_non_financial_events_follow_route(self, router):
        event = make_event('Une rumeur court.')

        assert router.select(event, is_financial=False) == 'rumeur'

    def test_default_only_mode_keeps_topical_destination(self):
        router = EventRouter(financial_exclusion=FINANCIAL_EXCLUSION_DEFAULT_ONLY)

        topical = make_event('Le trésor a versé 500 Co au ministère.')
        generic = make_event('La ville récolte 500 Co.')

        assert router.select(topical, is_financial=True) == 'finance'
        assert router.select(generic, is_financial=True) is None
