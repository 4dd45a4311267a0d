"""
Record assembly and persistence for one ingestion.

Write policies:
- scrapes row:  FATAL, nothing else is written without its id
- headings:     BEST_EFFORT, logged and reported as a warning
- links:        BEST_EFFORT, first MAX_LINKS_PER_PAGE only

With strict=True every write is FATAL and a failed child write deletes
the page again.
"""

import enum
import logging
from typing import Callable, List, Optional

from .errors import PersistenceError, Result
from .html_utils import extract_head_metadata
from .markdown_utils import ParsedMarkdown
from .models import DEFAULT_PAGE_TITLE, PageRecord
from .scraper import ScrapedPage
from .store import Store, StoreError

logger = logging.getLogger(__name__)

MAX_LINKS_PER_PAGE = 100


class WritePolicy(enum.Enum):
    FATAL = 'fatal'
    BEST_EFFORT = 'best_effort'


def build_page_record(user_id: str, project_id: str, url: str, scraped: ScrapedPage) -> PageRecord:
    """Combine scraped metadata and raw content into an unsaved PageRecord."""
    metadata = scraped.metadata or {}
    title = metadata.get('title')
    description = metadata.get('description')
    favicon = metadata.get('favicon')

    if scraped.html and not (title and description and favicon):
        head = extract_head_metadata(scraped.html, base_url=url)
        title = title or head['title']
        description = description or head['description']
        favicon = favicon or head['favicon']

    return PageRecord(
        user_id=user_id,
        project_id=project_id,
        url=url,
        page_title=title or DEFAULT_PAGE_TITLE,
        meta_description=description or None,
        favicon_url=favicon or None,
        raw_content=scraped.raw,
        tags=[],
    )


def _write(stage: str, policy: WritePolicy, write: Callable[[], object]) -> Result:
    try:
        return Result.success(write())
    except StoreError as e:
        error = PersistenceError(stage=stage, detail=e.detail)
        if policy is WritePolicy.FATAL:
            logger.error("%s failed: %s %s", stage, e, e.detail)
            return Result.failure(error)
        logger.warning("%s failed (best effort, continuing): %s %s", stage, e, e.detail)
        return Result.success(warnings=[error])


def save_page(store: Store, record: PageRecord) -> Result[PageRecord]:
    """Insert the page record (FATAL). The saved record carries the generated id."""
    return _write('persisting_page', WritePolicy.FATAL, lambda: store.insert_page(record))


def save_children(store: Store, page: PageRecord, parsed: ParsedMarkdown,
                  strict: bool = False) -> Result[PageRecord]:
    """
    Insert headings and links for a saved page.

    Empty child lists are skipped; links beyond the first MAX_LINKS_PER_PAGE
    are dropped. Best-effort failures come back as warnings and the page is
    returned with only the children that were written.

    Returns:
        Result with the page (children attached), or a PersistenceError when
        strict and a child write failed (the page is deleted again)
    """
    child_policy = WritePolicy.FATAL if strict else WritePolicy.BEST_EFFORT
    warnings: List = []

    headings = [_attach(h, page.id) for h in parsed.headings]
    links = [_attach(l, page.id) for l in parsed.links[:MAX_LINKS_PER_PAGE]]
    if len(parsed.links) > MAX_LINKS_PER_PAGE:
        logger.info("Truncating %d links to %d", len(parsed.links), MAX_LINKS_PER_PAGE)

    page.headings, page.links = [], []
    children = (
        ('persisting_headings', headings, store.insert_headings, 'headings'),
        ('persisting_links', links, store.insert_links, 'links'),
    )
    for stage, rows, insert, attr in children:
        if not rows:
            continue
        result = _write(stage, child_policy, lambda insert=insert, rows=rows: insert(page.id, rows))
        if not result.ok:
            _rollback(store, page.id)
            return Result.failure(result.error, warnings)
        if result.warnings:
            warnings.extend(result.warnings)
        else:
            setattr(page, attr, rows)

    return Result.success(page, warnings)


def _attach(child, scrape_id: str):
    child.scrape_id = scrape_id
    return child


def _rollback(store: Store, scrape_id: Optional[str]) -> None:
    try:
        store.delete_page(scrape_id)
        logger.info("Rolled back scrape %s after child write failure", scrape_id)
    except StoreError as e:
        logger.error("Rollback of scrape %s failed: %s %s", scrape_id, e, e.detail)
