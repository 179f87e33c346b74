"""Unit tests for Settings."""
from config import Settings


def test_defaults_from_empty_environment():
    settings = Settings.from_env({})

    assert settings.feed_url == 'http://www.kraland.org/monde/evenements'
    assert settings.max_pages == 500
    assert settings.max_empty_pages == 5
    assert settings.event_ttl_days == 30
    assert settings.table_name is None
    assert settings.financial_exclusion == 'all'
    assert settings.webhooks == {}
    assert settings.stats_webhook is None


def test_reads_values_and_webhooks():
    settings = Settings.from_env({
        'MAX_PAGES': '12',
        'MAX_EMPTY_PAGES': '2',
        'PAGE_DELAY_SECONDS': '0.5',
        'DATA_DIR': '/tmp/state',
        'TABLE_NAME': 'kraland-events',
        'DISCORD_EVENTS_WEBHOOK': 'https://hooks.example.com/events',
        'DISCORD_RUMEURS_WEBHOOK': 'https://hooks.example.com/rumeurs',
        'DISCORD_STATS_WEBHOOK': 'https://hooks.example.com/stats',
        'EMPIRE_ROLES': '{"Empire Brun": "<@&1>"}',
        'FINANCIAL_EXCLUSION': 'default_only',
    })

    assert settings.max_pages == 12
    assert settings.max_empty_pages == 2
    assert settings.page_delay_seconds == 0.5
    assert settings.data_dir == '/tmp/state'
    assert settings.table_name == 'kraland-events'
    assert settings.webhooks == {
        'events': 'https://hooks.example.com/events',
        'rumeur': 'https://hooks.example.com/rumeurs',
    }
    assert settings.stats_webhook == 'https://hooks.example.com/stats'
    assert settings.empire_roles == {'Empire Brun': '<@&1>'}
    assert settings.financial_exclusion == 'default_only'


def test_malformed_values_fall_back_to_defaults():
    settings = Settings.from_env({
        'MAX_PAGES': 'lots',
        'SECTION_DELAY_SECONDS': 'soon',
        'EMPIRE_ROLES': '[1, 2]',
    })

    assert settings.max_pages == 500
    assert settings.section_delay_seconds == 0.3
    assert settings.empire_roles == {}
