"""
Unit tests for the in-memory store and the insights upsert.
"""

import threading

import pytest

from scrape_pipeline.models import Heading, Link, PageRecord
from scrape_pipeline.store import InMemoryStore, StoreError, upsert_insights


def _saved_page(store, user_id='user-1'):
    return store.insert_page(PageRecord(user_id=user_id, project_id='project-1', url='https://example.com'))


def _fields(summary='Summary'):
    return {'summary_short': summary, 'summary_long': None, 'tags': ['t'], 'key_points': ['k']}


class TestUpsertInsights:
    """Tests for upsert_insights()"""

    def test_creates_when_absent(self):
        store = InMemoryStore()
        page = _saved_page(store)

        insights, created = upsert_insights(store, page.id, _fields())

        assert created is True
        assert insights.scrape_id == page.id
        assert insights.summary_short == 'Summary'
        assert len(store.insights) == 1

    def test_replaces_in_place_when_present(self):
        store = InMemoryStore()
        page = _saved_page(store)
        first, _ = upsert_insights(store, page.id, _fields('First'))

        second, created = upsert_insights(store, page.id, {
            'summary_short': 'Second', 'summary_long': 'Long', 'tags': [], 'key_points': [],
        })

        assert created is False
        assert second.id == first.id
        assert second.scrape_id == page.id
        assert second.summary_short == 'Second'
        assert second.summary_long == 'Long'
        assert second.tags == []
        assert len(store.insights) == 1

    def test_ignores_unknown_fields(self):
        store = InMemoryStore()
        page = _saved_page(store)
        insights, _ = upsert_insights(store, page.id, dict(_fields(), id='forged', scrape_id='other'))
        assert insights.id != 'forged'
        assert insights.scrape_id == page.id

    def test_unknown_page_raises(self):
        with pytest.raises(StoreError):
            upsert_insights(InMemoryStore(), 'missing', _fields())

    def test_concurrent_regeneration_keeps_one_row(self):
        store = InMemoryStore()
        page = _saved_page(store)
        results = []

        def regenerate(n):
            results.append(upsert_insights(store, page.id, _fields(f'Run {n}')))

        threads = [threading.Thread(target=regenerate, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.insights) == 1
        assert sum(1 for _, created in results if created) == 1
        assert len({insights.id for insights, _ in results}) == 1


class TestInMemoryStore:
    """Tests for InMemoryStore ownership scoping and cascade delete."""

    def test_get_page_scoped_to_owner(self):
        store = InMemoryStore()
        page = _saved_page(store, user_id='owner')
        assert store.get_page(page.id, 'owner') is not None
        assert store.get_page(page.id, 'someone-else') is None

    def test_get_page_returns_children_in_order(self):
        store = InMemoryStore()
        page = _saved_page(store)
        store.insert_headings(page.id, [Heading(level=2, text='B', order_index=1),
                                        Heading(level=1, text='A', order_index=0)])
        store.insert_links(page.id, [Link(url='/x', anchor_text='x', is_external=False, order_index=0)])

        loaded = store.get_page(page.id, 'user-1')

        assert [h.text for h in loaded.headings] == ['A', 'B']
        assert loaded.links[0].scrape_id == page.id

    def test_delete_cascades(self):
        store = InMemoryStore()
        page = _saved_page(store)
        store.insert_headings(page.id, [Heading(level=1, text='A', order_index=0)])
        store.insert_links(page.id, [Link(url='/x', anchor_text='x', is_external=False, order_index=0)])
        upsert_insights(store, page.id, _fields())

        store.delete_page(page.id)

        assert page.id not in store.pages
        assert page.id not in store.headings
        assert page.id not in store.links
        assert store.get_insights(page.id) is None
        assert page.id not in store._page_locks

    def test_upsert_on_missing_page_leaves_no_lock(self):
        store = InMemoryStore()
        with pytest.raises(StoreError):
            upsert_insights(store, 'missing', _fields())
        assert store._page_locks == {}

    def test_children_require_existing_page(self):
        with pytest.raises(StoreError):
            InMemoryStore().insert_headings('missing', [Heading(level=1, text='A', order_index=0)])
