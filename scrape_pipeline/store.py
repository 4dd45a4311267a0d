"""
Storage for scrapes, their headings/links and AI insights.

Two implementations share the Store interface:
- SupabaseStore: PostgREST over HTTP with the service role key
- InMemoryStore: process-local tables for tests and local runs

Store methods raise StoreError; callers turn it into a Result with the
write policy that applies to them.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests

from .models import Heading, Insights, Link, PageRecord

logger = logging.getLogger(__name__)

INSIGHT_FIELDS = ('summary_short', 'summary_long', 'tags', 'key_points')


class StoreError(Exception):
    """A store call failed. `detail` carries the raw store response."""

    def __init__(self, message: str, detail: Any = None):
        self.detail = detail
        super().__init__(message)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Store(ABC):

    @abstractmethod
    def insert_page(self, record: PageRecord) -> PageRecord:
        """Insert a scrape and return it with its generated id."""

    @abstractmethod
    def insert_headings(self, scrape_id: str, headings: List[Heading]) -> None:
        pass

    @abstractmethod
    def insert_links(self, scrape_id: str, links: List[Link]) -> None:
        pass

    @abstractmethod
    def get_page(self, scrape_id: str, user_id: str) -> Optional[PageRecord]:
        """Load a scrape with headings and links, scoped to its owner."""

    @abstractmethod
    def delete_page(self, scrape_id: str) -> None:
        """Delete a scrape and, by cascade, its headings, links and insights."""

    @abstractmethod
    def get_insights(self, scrape_id: str) -> Optional[Insights]:
        pass

    @abstractmethod
    def upsert_insights(self, scrape_id: str, fields: Dict[str, Any]) -> Tuple[Insights, bool]:
        """Replace the page's insights or create them. Returns (insights, created)."""


def upsert_insights(store: Store, scrape_id: str, fields: Dict[str, Any]) -> Tuple[Insights, bool]:
    """
    Apply an enrichment result so each page keeps at most one insights row.

    An existing row is updated in place (same id, same scrape_id); otherwise
    a new row is created. The store performs the lookup and the write as one
    operation for the page id.
    """
    payload = {key: fields.get(key) for key in INSIGHT_FIELDS}
    insights, created = store.upsert_insights(scrape_id, payload)
    logger.info("%s AI insights for scrape %s", 'Created' if created else 'Replaced', scrape_id)
    return insights, created


class InMemoryStore(Store):
    """Dict-backed tables with cascade delete and a unique scrape_id on insights."""

    def __init__(self):
        self.pages: Dict[str, Dict[str, Any]] = {}
        self.headings: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.links: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.insights: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._page_locks: Dict[str, threading.Lock] = {}

    def insert_page(self, record: PageRecord) -> PageRecord:
        row = record.to_row()
        row['id'] = row.get('id') or str(uuid.uuid4())
        row['created_at'] = row['updated_at'] = _now()
        self.pages[row['id']] = row
        return PageRecord.from_row(row)

    def _require_page(self, scrape_id: str) -> None:
        if scrape_id not in self.pages:
            raise StoreError(f'scrape {scrape_id} does not exist')

    def insert_headings(self, scrape_id: str, headings: List[Heading]) -> None:
        self._require_page(scrape_id)
        for heading in headings:
            row = heading.to_row()
            row.update({'id': str(uuid.uuid4()), 'scrape_id': scrape_id})
            self.headings[scrape_id].append(row)

    def insert_links(self, scrape_id: str, links: List[Link]) -> None:
        self._require_page(scrape_id)
        for link in links:
            row = link.to_row()
            row.update({'id': str(uuid.uuid4()), 'scrape_id': scrape_id})
            self.links[scrape_id].append(row)

    def get_page(self, scrape_id: str, user_id: str) -> Optional[PageRecord]:
        row = self.pages.get(scrape_id)
        if not row or row['user_id'] != user_id:
            return None
        return PageRecord.from_row(dict(
            row,
            headings=self.headings.get(scrape_id, []),
            links=self.links.get(scrape_id, []),
        ))

    def delete_page(self, scrape_id: str) -> None:
        self.pages.pop(scrape_id, None)
        self.headings.pop(scrape_id, None)
        self.links.pop(scrape_id, None)
        self.insights.pop(scrape_id, None)
        with self._lock:
            self._page_locks.pop(scrape_id, None)

    def get_insights(self, scrape_id: str) -> Optional[Insights]:
        row = self.insights.get(scrape_id)
        return Insights.from_row(row) if row else None

    def upsert_insights(self, scrape_id: str, fields: Dict[str, Any]) -> Tuple[Insights, bool]:
        with self._lock:
            # Locks exist only for live pages; delete_page drops them.
            self._require_page(scrape_id)
            page_lock = self._page_locks.setdefault(scrape_id, threading.Lock())
        with page_lock:
            self._require_page(scrape_id)
            existing = self.insights.get(scrape_id)
            if existing:
                existing.update(fields)
                return Insights.from_row(existing), False
            row = dict(fields, id=str(uuid.uuid4()), scrape_id=scrape_id, created_at=_now())
            self.insights[scrape_id] = row
            return Insights.from_row(row), True


class SupabaseStore(Store):
    """
    PostgREST-backed store.

    Expects `ai_insights.scrape_id` to carry a unique constraint so the
    insights upsert can merge on conflict, and ON DELETE CASCADE foreign
    keys from headings, links and ai_insights to scrapes.
    """

    def __init__(self, supabase_url: str, service_role_key: str, timeout: float = 30.0):
        self.rest_url = f'{supabase_url}/rest/v1'
        self.service_role_key = service_role_key
        self.timeout = timeout

    def _headers(self, prefer: str = None) -> Dict[str, str]:
        headers = {
            'apikey': self.service_role_key,
            'Authorization': f'Bearer {self.service_role_key}',
            'Content-Type': 'application/json',
        }
        if prefer:
            headers['Prefer'] = prefer
        return headers

    def _request(self, method: str, table: str, params: Dict[str, str] = None,
                 json_body: Any = None, prefer: str = None) -> Any:
        try:
            response = requests.request(
                method,
                f'{self.rest_url}/{table}',
                params=params,
                json=json_body,
                headers=self._headers(prefer),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StoreError(f'{method} {table} failed', detail=str(e)) from e

        if not response.ok:
            raise StoreError(f'{method} {table} returned {response.status_code}', detail=response.text)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f'{method} {table} returned invalid JSON', detail=response.text) from e

    @staticmethod
    def _single(rows: Any, what: str) -> Dict[str, Any]:
        if not isinstance(rows, list) or len(rows) != 1:
            raise StoreError(f'expected exactly one {what} row', detail=rows)
        return rows[0]

    def insert_page(self, record: PageRecord) -> PageRecord:
        rows = self._request('POST', 'scrapes', json_body=record.to_row(), prefer='return=representation')
        return PageRecord.from_row(self._single(rows, 'scrapes'))

    def insert_headings(self, scrape_id: str, headings: List[Heading]) -> None:
        body = [dict(h.to_row(), scrape_id=scrape_id) for h in headings]
        self._request('POST', 'headings', json_body=body, prefer='return=minimal')

    def insert_links(self, scrape_id: str, links: List[Link]) -> None:
        body = [dict(l.to_row(), scrape_id=scrape_id) for l in links]
        self._request('POST', 'links', json_body=body, prefer='return=minimal')

    def get_page(self, scrape_id: str, user_id: str) -> Optional[PageRecord]:
        rows = self._request('GET', 'scrapes', params={
            'select': '*,headings(*),links(*)',
            'id': f'eq.{scrape_id}',
            'user_id': f'eq.{user_id}',
        })
        if not rows:
            return None
        return PageRecord.from_row(rows[0])

    def delete_page(self, scrape_id: str) -> None:
        self._request('DELETE', 'scrapes', params={'id': f'eq.{scrape_id}'}, prefer='return=minimal')

    def get_insights(self, scrape_id: str) -> Optional[Insights]:
        rows = self._request('GET', 'ai_insights', params={
            'select': '*',
            'scrape_id': f'eq.{scrape_id}',
        })
        if not rows:
            return None
        return Insights.from_row(rows[0])

    def upsert_insights(self, scrape_id: str, fields: Dict[str, Any]) -> Tuple[Insights, bool]:
        created = self.get_insights(scrape_id) is None
        rows = self._request(
            'POST',
            'ai_insights',
            params={'on_conflict': 'scrape_id'},
            json_body=dict(fields, scrape_id=scrape_id),
            prefer='resolution=merge-duplicates,return=representation',
        )
        return Insights.from_row(self._single(rows, 'ai_insights')), created
