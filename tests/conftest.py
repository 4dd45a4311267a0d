"""
Shared pytest fixtures for scrape pipeline tests.
"""

import pytest
import sys
import importlib.util
from pathlib import Path

from scrape_pipeline.errors import AuthError, Result
from scrape_pipeline.pipeline import ScrapePipeline
from scrape_pipeline.scraper import ScrapedPage
from scrape_pipeline.store import InMemoryStore

# Project root for finding Cloud Function modules
PROJECT_ROOT = Path(__file__).parent.parent


def _load_module_from_path(module_name: str, file_path: Path):
    """Load a module from a specific file path."""
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


# Load Cloud Function modules with unique names at module load time
_scrape_url_module = _load_module_from_path(
    'scrape_url_main',
    PROJECT_ROOT / 'scrape-url' / 'main.py'
)

_generate_ai_insights_module = _load_module_from_path(
    'generate_ai_insights_main',
    PROJECT_ROOT / 'generate-ai-insights' / 'main.py'
)


SUPABASE_URL = 'https://project.supabase.co'
FIRECRAWL_URL = 'https://api.firecrawl.dev'

SAMPLE_MARKDOWN = """# Getting Started

Welcome to the docs. See [installation](https://example.com/install) first.

## Configuration

Read [settings](/docs/settings) and [env vars](/docs/env).

### Advanced
"""


# ============================================================================
# Cloud Function Fixtures
# ============================================================================

@pytest.fixture
def scrape_url():
    """Returns main entry point from scrape-url."""
    return _scrape_url_module.scrape_url


@pytest.fixture
def handle_scrape():
    """Returns handle_scrape from scrape-url."""
    return _scrape_url_module.handle_scrape


@pytest.fixture
def generate_ai_insights():
    """Returns main entry point from generate-ai-insights."""
    return _generate_ai_insights_module.generate_ai_insights


@pytest.fixture
def handle_regenerate():
    """Returns handle_regenerate from generate-ai-insights."""
    return _generate_ai_insights_module.handle_regenerate


@pytest.fixture
def mock_flask_request():
    """Factory for creating mock Flask request objects."""
    class MockRequest:
        def __init__(self, json_data=None, method='POST', token='valid-token', headers=None):
            self._json = json_data
            self.method = method
            self.data = b''
            self.headers = dict(headers or {})
            if token is not None:
                self.headers.setdefault('Authorization', f'Bearer {token}')

        def get_json(self, force=False, silent=False):
            return self._json

    return MockRequest


# ============================================================================
# Pipeline Collaborator Fixtures
# ============================================================================

class FakeAuth:
    """Accepts one token and maps it to a user id."""

    def __init__(self, token='valid-token', user_id='user-1'):
        self.token = token
        self.user_id = user_id

    def get_user_id(self, token):
        if token != self.token:
            return Result.failure(AuthError(stage='authenticating'))
        return Result.success(self.user_id)


class FakeScraper:
    """Returns a canned page, or a canned failure."""

    def __init__(self, page=None, error=None):
        self.page = page
        self.error = error
        self.calls = []

    def scrape(self, url):
        self.calls.append(url)
        if self.error:
            return Result.failure(self.error)
        page = self.page or ScrapedPage(url=url)
        page.url = url
        return Result.success(page)


class FakeInsights:
    """Stands in for InsightsClient; returns fixed fields or raises."""

    def __init__(self, reply=None, error=None, api_key='test-key'):
        self.reply = reply or {
            'summary_short': 'A short summary.',
            'summary_long': 'A longer summary of the page.',
            'tags': ['docs'],
            'key_points': ['Install first'],
        }
        self.error = error
        self.api_key = api_key
        self.calls = []
        self.prompt_headings = []
        self.prompt_links = []

    def generate(self, page, headings=None, links=None):
        from scrape_pipeline.insights import normalize_reply
        from scrape_pipeline.models import Insights

        self.calls.append(page)
        self.prompt_headings.append(page.headings if headings is None else headings)
        self.prompt_links.append(page.links if links is None else links)
        if self.error:
            raise self.error
        return Insights(scrape_id=page.id, **normalize_reply(self.reply))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_auth():
    return FakeAuth()


@pytest.fixture
def sample_scraped_page():
    return ScrapedPage(
        url='https://example.com/docs',
        markdown=SAMPLE_MARKDOWN,
        html=None,
        metadata={
            'title': 'Docs Home',
            'description': 'Project documentation',
            'favicon': 'https://example.com/favicon.ico',
        },
        raw={'markdown': SAMPLE_MARKDOWN, 'metadata': {'title': 'Docs Home'}},
    )


@pytest.fixture
def make_pipeline(store, fake_auth, sample_scraped_page):
    """Factory for ScrapePipeline wired to in-memory fakes."""
    def _make(scraper=None, insights=None, strict=False, pipeline_store=None):
        return ScrapePipeline(
            auth=fake_auth,
            scraper=scraper or FakeScraper(page=sample_scraped_page),
            store=pipeline_store or store,
            insights=insights,
            strict_persistence=strict,
        )
    return _make


@pytest.fixture
def fake_scraper_cls():
    return FakeScraper


@pytest.fixture
def fake_insights_cls():
    return FakeInsights


# ============================================================================
# Integration Test Fixtures (HTTP services)
# ============================================================================

@pytest.fixture
def supabase_env(monkeypatch):
    """Environment for the deployed functions, pointing at mocked services."""
    monkeypatch.setenv('SUPABASE_URL', SUPABASE_URL)
    monkeypatch.setenv('SUPABASE_SERVICE_ROLE_KEY', 'service-role-key')
    monkeypatch.setenv('FIRECRAWL_API_KEY', 'fc-test-key')
    monkeypatch.setenv('FIRECRAWL_BASE_URL', FIRECRAWL_URL)
    monkeypatch.delenv('GEMINI_API_KEY', raising=False)
    monkeypatch.delenv('STRICT_PERSISTENCE', raising=False)
    return {'supabase_url': SUPABASE_URL, 'firecrawl_url': FIRECRAWL_URL}
