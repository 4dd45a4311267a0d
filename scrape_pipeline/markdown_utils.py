"""
Markdown structure extraction for the scrape pipeline.

Pulls headings and inline links out of the markdown returned by the
scraping service. Parsing is pure and never fails: empty input yields
empty output and malformed syntax is skipped.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from .models import Heading, Link

# 1-6 hashes, whitespace, then the heading text
HEADING_PATTERN = re.compile(r'^(#{1,6})\s+(.+)$')

# [anchor](target) - anchor excludes "]", target excludes ")"
LINK_PATTERN = re.compile(r'\[([^\]]*)\]\(([^)]+)\)')


@dataclass
class ParsedMarkdown:
    headings: List[Heading] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)


def is_external_url(target: str) -> bool:
    """A link is external when its target starts with `http` (case-sensitive)."""
    return bool(target) and target.startswith('http')


def _match_heading(line: str) -> Optional[tuple]:
    match = HEADING_PATTERN.match(line)
    if not match:
        return None
    text = match.group(2).strip()
    if not text:
        return None
    return len(match.group(1)), text


def parse_markdown(markdown: Optional[str]) -> ParsedMarkdown:
    """
    Extract headings and links from markdown text.

    Lines are processed in document order. Headings only match at the start
    of a line; every `[anchor](target)` on a line is captured left to right.
    Heading and link order indices are independent counters over the whole
    document.

    Args:
        markdown: Raw markdown, may be None or empty

    Returns:
        ParsedMarkdown with ordered headings and links

    Examples:
        >>> parsed = parse_markdown("# Title\\n\\nSee [docs](https://example.com/docs).")
        >>> [(h.level, h.text) for h in parsed.headings]
        [(1, 'Title')]
        >>> [(l.url, l.is_external) for l in parsed.links]
        [('https://example.com/docs', True)]
    """
    parsed = ParsedMarkdown()
    if not markdown:
        return parsed

    for line in markdown.split('\n'):
        line = line.rstrip('\r')

        heading = _match_heading(line)
        if heading:
            level, text = heading
            parsed.headings.append(Heading(
                level=level,
                text=text,
                order_index=len(parsed.headings),
            ))

        for match in LINK_PATTERN.finditer(line):
            anchor_text, target = match.group(1), match.group(2)
            parsed.links.append(Link(
                url=target,
                anchor_text=anchor_text if anchor_text.strip() else target,
                is_external=is_external_url(target),
                order_index=len(parsed.links),
            ))

    return parsed
