"""Unit tests for JsonStore."""
import json
from unittest.mock import patch

import pytest

from storage.json_store import JsonStore, StateSaveError


@pytest.fixture
def store(tmp_path):
    return JsonStore(str(tmp_path / 'data'))


def test_load_missing_returns_default(store):
    assert store.load('nothing.json') == []
    assert store.load('nothing.json', {}) == {}


def test_save_creates_directories(store):
    store.save('daily_finances/2024-03-01.json', {'Empire Brun': {}})

    path = store.path('daily_finances/2024-03-01.json')
    assert json.loads(path.read_text(encoding='utf-8')) == {'Empire Brun': {}}


def test_save_keeps_non_ascii(store):
    store.save('events.json', [{'text': 'récolte 10 ÐE'}])

    assert 'ÐE' in store.path('events.json').read_text(encoding='utf-8')


def test_corrupt_document_falls_back(store, caplog):
    store.path('sent_keys.json').parent.mkdir(parents=True)
    store.path('sent_keys.json').write_text('[oops', encoding='utf-8')

    assert store.load_set('sent_keys.json') == set()
    assert 'starting from default' in caplog.text


def test_failed_save_leaves_previous_document(store):
    store.save('events.json', [1])

    with patch('storage.json_store.os.replace', side_effect=OSError('disk full')):
        with pytest.raises(StateSaveError):
            store.save('events.json', [1, 2])

    assert store.load('events.json') == [1]
    leftovers = [p.name for p in store.base_dir.iterdir() if p.suffix == '.tmp']
    assert leftovers == []


def test_unserializable_data_raises(store):
    with pytest.raises(StateSaveError):
        store.save('events.json', {'when': object()})


def test_save_once(store):
    assert store.save_once('day.json', {'v': 1}) is True
    assert store.save_once('day.json', {'v': 2}) is False
    assert store.load('day.json') == {'v': 1}


def test_sets_round_trip_sorted(store):
    store.save_set('stats_sent_days.json', {'2024-03-02', '2024-03-01'})

    assert store.load('stats_sent_days.json') == ['2024-03-01', '2024-03-02']
    assert store.load_set('stats_sent_days.json') == {'2024-03-01', '2024-03-02'}


def test_legacy_mapping_set(store):
    store.save('sent_keys.json', {'a': True, 'b': True})

    assert store.load_set('sent_keys.json') == {'a', 'b'}
