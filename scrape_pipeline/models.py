"""Entities persisted by the scrape pipeline.

Field names match the store columns so records serialize straight into rows.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_PAGE_TITLE = 'Untitled'
NO_SUMMARY_PLACEHOLDER = 'No summary available'


@dataclass
class Heading:
    level: int
    text: str
    order_index: int
    scrape_id: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Link:
    url: str
    anchor_text: str
    is_external: bool
    order_index: int
    scrape_id: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PageRecord:
    """One scraped URL and its metadata (a row of `scrapes`)."""

    user_id: str
    project_id: str
    url: str
    page_title: str = DEFAULT_PAGE_TITLE
    meta_description: Optional[str] = None
    favicon_url: Optional[str] = None
    raw_content: Any = None
    notes: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    headings: List[Heading] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    def to_row(self) -> Dict[str, Any]:
        """Columns for an insert. Store-assigned fields are left out when unset."""
        row = {
            'project_id': self.project_id,
            'user_id': self.user_id,
            'url': self.url,
            'page_title': self.page_title or DEFAULT_PAGE_TITLE,
            'meta_description': self.meta_description,
            'favicon_url': self.favicon_url,
            'raw_content': self.raw_content,
            'notes': self.notes,
            'tags': list(self.tags),
        }
        for key in ('id', 'created_at', 'updated_at'):
            value = getattr(self, key)
            if value is not None:
                row[key] = value
        return row

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_row()
        data.update({'id': self.id, 'created_at': self.created_at, 'updated_at': self.updated_at})
        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'PageRecord':
        headings = sorted(
            (Heading(**_pick(h, Heading)) for h in row.get('headings') or []),
            key=lambda h: h.order_index,
        )
        links = sorted(
            (Link(**_pick(l, Link)) for l in row.get('links') or []),
            key=lambda l: l.order_index,
        )
        return cls(
            id=row.get('id'),
            user_id=row['user_id'],
            project_id=row['project_id'],
            url=row['url'],
            page_title=row.get('page_title') or DEFAULT_PAGE_TITLE,
            meta_description=row.get('meta_description'),
            favicon_url=row.get('favicon_url'),
            raw_content=row.get('raw_content'),
            notes=row.get('notes'),
            tags=list(row.get('tags') or []),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            headings=headings,
            links=links,
        )


@dataclass
class Insights:
    """AI-generated summary attached to a page (a row of `ai_insights`)."""

    scrape_id: str
    summary_short: str = NO_SUMMARY_PLACEHOLDER
    summary_long: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    key_points: List[str] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Insights':
        return cls(**_pick(row, cls))


def _pick(row: Dict[str, Any], model) -> Dict[str, Any]:
    """Keep only the keys `model` declares; stores may return extra columns."""
    names = model.__dataclass_fields__.keys()
    return {k: v for k, v in row.items() if k in names}
