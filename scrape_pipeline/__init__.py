"""Content extraction and enrichment pipeline for the scrape bookmarking tool."""

from .errors import (
    AuthError,
    ConfigurationError,
    EnrichmentError,
    NotFoundError,
    PersistenceError,
    PipelineError,
    Result,
    UpstreamFetchError,
    ValidationError,
)

from .markdown_utils import (
    ParsedMarkdown,
    is_external_url,
    parse_markdown,
)

from .models import (
    DEFAULT_PAGE_TITLE,
    NO_SUMMARY_PLACEHOLDER,
    Heading,
    Insights,
    Link,
    PageRecord,
)

from .records import (
    MAX_LINKS_PER_PAGE,
    WritePolicy,
    build_page_record,
    save_children,
    save_page,
)

from .store import (
    InMemoryStore,
    Store,
    StoreError,
    SupabaseStore,
    upsert_insights,
)

from .insights import (
    InsightsClient,
    build_prompt,
    normalize_reply,
    parse_reply,
)

from .pipeline import (
    PipelineResult,
    ScrapePipeline,
    Stage,
    build_pipeline,
)

__all__ = [
    # Errors
    'AuthError',
    'ConfigurationError',
    'EnrichmentError',
    'NotFoundError',
    'PersistenceError',
    'PipelineError',
    'Result',
    'UpstreamFetchError',
    'ValidationError',
    # Markdown parsing
    'ParsedMarkdown',
    'is_external_url',
    'parse_markdown',
    # Records
    'DEFAULT_PAGE_TITLE',
    'NO_SUMMARY_PLACEHOLDER',
    'Heading',
    'Insights',
    'Link',
    'PageRecord',
    'MAX_LINKS_PER_PAGE',
    'WritePolicy',
    'build_page_record',
    'save_children',
    'save_page',
    # Storage
    'InMemoryStore',
    'Store',
    'StoreError',
    'SupabaseStore',
    'upsert_insights',
    # Insights
    'InsightsClient',
    'build_prompt',
    'normalize_reply',
    'parse_reply',
    # Orchestration
    'PipelineResult',
    'ScrapePipeline',
    'Stage',
    'build_pipeline',
]
