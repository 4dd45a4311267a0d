"""
Scraping service client (Firecrawl).

Fetches a URL through the scraping service and returns its markdown, HTML
and page metadata. Upstream error bodies are logged, never returned.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .errors import ConfigurationError, Result, UpstreamFetchError

logger = logging.getLogger(__name__)


@dataclass
class ScrapedPage:
    url: str
    markdown: str = ''
    html: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)


def normalize_url(url: str) -> str:
    """
    Trim the URL and default to https when no scheme is given.

    Examples:
        >>> normalize_url("  example.com/docs ")
        'https://example.com/docs'
        >>> normalize_url("http://example.com")
        'http://example.com'
    """
    url = (url or '').strip()
    if not url:
        return ''
    if not url.startswith('http://') and not url.startswith('https://'):
        return f'https://{url}'
    return url


class FirecrawlClient:
    """Thin wrapper around `POST /v1/scrape`."""

    def __init__(self, api_key: str, base_url: str = 'https://api.firecrawl.dev', timeout: float = 30.0):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout

    def scrape(self, url: str) -> Result[ScrapedPage]:
        if not self.api_key:
            return Result.failure(ConfigurationError(
                'Scraping service is not configured. Please contact support.',
                stage='fetching_source',
            ))

        logger.info("Scraping URL: %s", url)

        try:
            response = requests.post(
                f'{self.base_url}/v1/scrape',
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json',
                },
                json={'url': url, 'formats': ['markdown', 'html']},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.error("Scraping service timed out for %s", url)
            return Result.failure(UpstreamFetchError(stage='fetching_source', detail='Request timed out'))
        except requests.exceptions.RequestException as e:
            logger.error("Scraping service request failed for %s: %s", url, e)
            return Result.failure(UpstreamFetchError(stage='fetching_source', detail=str(e)))

        if not response.ok:
            logger.error("Scraping service error %s: %s", response.status_code, response.text[:500])
            return Result.failure(UpstreamFetchError(stage='fetching_source', detail=response.text))

        try:
            payload = response.json()
        except ValueError:
            logger.error("Scraping service returned non-JSON body for %s", url)
            return Result.failure(UpstreamFetchError(stage='fetching_source', detail=response.text))

        content = payload.get('data') if isinstance(payload, dict) else None
        if not isinstance(content, dict):
            logger.error("Scraping service response has no data for %s", url)
            return Result.failure(UpstreamFetchError(stage='fetching_source', detail=payload))

        logger.info("Scraping service response received")
        return Result.success(ScrapedPage(
            url=url,
            markdown=content.get('markdown') or '',
            html=content.get('html'),
            metadata=content.get('metadata') or {},
            raw=content,
        ))
