"""
HTML head metadata extraction.

Used when the scraping service returns HTML but leaves title, description
or favicon out of its metadata block.
"""

from typing import Dict, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup


def extract_head_metadata(html: Optional[str], base_url: str = None) -> Dict[str, Optional[str]]:
    """Extract title, description and favicon from an HTML document."""
    metadata = {
        'title': None,
        'description': None,
        'favicon': None,
    }

    if not html:
        return metadata

    soup = BeautifulSoup(html, 'html.parser')

    # Title - try multiple sources
    og_title = soup.find('meta', property='og:title')
    title_tag = soup.find('title')
    h1_tag = soup.find('h1')

    metadata['title'] = (
        og_title.get('content') if og_title and og_title.get('content') else
        title_tag.get_text(strip=True) if title_tag and title_tag.get_text(strip=True) else
        h1_tag.get_text(strip=True) if h1_tag and h1_tag.get_text(strip=True) else
        None
    )

    # Description
    og_desc = soup.find('meta', property='og:description')
    meta_desc = soup.find('meta', attrs={'name': 'description'})

    metadata['description'] = (
        og_desc.get('content') if og_desc and og_desc.get('content') else
        meta_desc.get('content') if meta_desc and meta_desc.get('content') else
        None
    )

    # Favicon - rel is multi-valued, bs4 tests each value ("shortcut", "icon")
    icon_link = soup.find('link', rel=lambda value: bool(value) and 'icon' in value.lower())
    if icon_link and icon_link.get('href'):
        href = icon_link['href']
        metadata['favicon'] = urljoin(base_url, href) if base_url else href

    return metadata
