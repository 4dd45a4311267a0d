"""
Scrape pipeline orchestrator.

Ingestion stages:
    AUTHENTICATING -> FETCHING_SOURCE -> PARSING -> PERSISTING_PAGE
        -> PERSISTING_CHILDREN -> ENRICHING (opt-in) -> DONE
    FAILED is reachable from every stage.

Regeneration stages:
    AUTHENTICATING -> LOADING_PAGE -> ENRICHING -> PERSISTING_INSIGHTS -> DONE

Fatal vs non-fatal:
- Ingestion succeeds once the page record exists. Child writes and
  enrichment only add warnings.
- Regeneration fails on any error, enrichment included.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import (
    ConfigurationError,
    NotFoundError,
    PersistenceError,
    PipelineError,
    Result,
    ValidationError,
)
from .insights import InsightsClient
from .markdown_utils import parse_markdown
from .models import Heading, Insights, Link, PageRecord
from .records import MAX_LINKS_PER_PAGE, build_page_record, save_children, save_page
from .scraper import normalize_url
from .store import Store, StoreError, upsert_insights

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    AUTHENTICATING = 'authenticating'
    VALIDATING = 'validating'
    FETCHING_SOURCE = 'fetching_source'
    PARSING = 'parsing'
    PERSISTING_PAGE = 'persisting_page'
    PERSISTING_CHILDREN = 'persisting_children'
    LOADING_PAGE = 'loading_page'
    ENRICHING = 'enriching'
    PERSISTING_INSIGHTS = 'persisting_insights'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class IngestRequest:
    url: str
    project_id: str
    use_ai: bool = False

    @classmethod
    def from_body(cls, body: Optional[Dict[str, Any]]) -> Result['IngestRequest']:
        if body is None:
            return Result.failure(ValidationError(stage=Stage.VALIDATING.value))
        url = body.get('url')
        project_id = body.get('projectId') or body.get('targetCollectionId')
        url = normalize_url(url) if isinstance(url, str) else ''
        if not url or not isinstance(project_id, str) or not project_id.strip():
            return Result.failure(ValidationError(
                'Please provide both a website URL and select a project.',
                stage=Stage.VALIDATING.value,
            ))
        # Only a JSON true opts in; "false" or 1 do not.
        use_ai = body.get('useAi') is True or body.get('enrich') is True
        return Result.success(cls(url=url, project_id=project_id, use_ai=use_ai))


@dataclass
class RegenerateRequest:
    scrape_id: str

    @classmethod
    def from_body(cls, body: Optional[Dict[str, Any]]) -> Result['RegenerateRequest']:
        if body is None:
            return Result.failure(ValidationError(stage=Stage.VALIDATING.value))
        scrape_id = body.get('pageId') or body.get('scrapeId')
        if not isinstance(scrape_id, str) or not scrape_id.strip():
            return Result.failure(ValidationError(
                'Missing required field: pageId',
                stage=Stage.VALIDATING.value,
            ))
        return Result.success(cls(scrape_id=scrape_id))


@dataclass
class PipelineResult:
    stage: Stage
    page: Optional[PageRecord] = None
    insights: Optional[Insights] = None
    error: Optional[PipelineError] = None
    warnings: List[PipelineError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class ScrapePipeline:
    """
    Runs ingestion and regeneration requests.

    Collaborators are passed in: an auth client with
    `get_user_id(token) -> Result[str]`, a scraper with
    `scrape(url) -> Result[ScrapedPage]`, a Store, and an optional
    InsightsClient (None disables enrichment).
    """

    def __init__(self, auth, scraper, store: Store, insights: Optional[InsightsClient] = None,
                 strict_persistence: bool = False):
        self.auth = auth
        self.scraper = scraper
        self.store = store
        self.insights = insights
        self.strict_persistence = strict_persistence

    def _fail(self, stage: Stage, error: PipelineError, warnings: List = None) -> PipelineResult:
        logger.error("Pipeline failed at %s: %s (%s)", stage.value, error.message, error.kind)
        if error.detail is not None:
            logger.debug("Failure detail: %s", error.detail)
        return PipelineResult(stage=Stage.FAILED, error=error, warnings=list(warnings or []))

    def _enter(self, stage: Stage) -> Stage:
        logger.info("Stage: %s", stage.value)
        return stage

    def _enrich(self, page: PageRecord, headings: List[Heading] = None,
                links: List[Link] = None) -> Result[Insights]:
        """Generate and store insights; prompt children default to the page's own."""
        if self.insights is None:
            return Result.failure(ConfigurationError(
                'AI insights are not configured', stage=Stage.ENRICHING.value,
            ))
        try:
            generated = self.insights.generate(page, headings, links)
        except PipelineError as e:
            return Result.failure(e)

        try:
            fields = generated.to_dict()
            stored, _ = upsert_insights(self.store, page.id, fields)
        except StoreError as e:
            return Result.failure(PersistenceError(
                'Unable to save AI insights. Please try again.',
                stage=Stage.PERSISTING_INSIGHTS.value,
                detail=e.detail,
            ))
        return Result.success(stored)

    def ingest(self, token: Optional[str], body: Optional[Dict[str, Any]]) -> PipelineResult:
        stage = self._enter(Stage.AUTHENTICATING)
        user = self.auth.get_user_id(token)
        if not user.ok:
            return self._fail(stage, user.error)

        stage = self._enter(Stage.VALIDATING)
        request = IngestRequest.from_body(body)
        if not request.ok:
            return self._fail(stage, request.error)
        req: IngestRequest = request.value

        stage = self._enter(Stage.FETCHING_SOURCE)
        scraped = self.scraper.scrape(req.url)
        if not scraped.ok:
            return self._fail(stage, scraped.error)

        stage = self._enter(Stage.PARSING)
        parsed = parse_markdown(scraped.value.markdown)
        logger.info("Extracted %d headings and %d links", len(parsed.headings), len(parsed.links))

        stage = self._enter(Stage.PERSISTING_PAGE)
        record = build_page_record(user.value, req.project_id, req.url, scraped.value)
        saved = save_page(self.store, record)
        if not saved.ok:
            return self._fail(stage, saved.error)

        stage = self._enter(Stage.PERSISTING_CHILDREN)
        children = save_children(self.store, saved.value, parsed, strict=self.strict_persistence)
        if not children.ok:
            return self._fail(stage, children.error, children.warnings)
        page = children.value
        warnings = list(children.warnings)

        insights = None
        if req.use_ai:
            self._enter(Stage.ENRICHING)
            if self.insights is None or not self.insights.api_key:
                logger.info("Gemini API key not configured, skipping AI insights")
            else:
                # Prompt from the parsed children, saved or not.
                enriched = self._enrich(page, parsed.headings, parsed.links[:MAX_LINKS_PER_PAGE])
                if enriched.ok:
                    insights = enriched.value
                else:
                    logger.warning("AI insights failed (non-fatal): %s %s",
                                   enriched.error.message, enriched.error.detail)
                    warnings.append(enriched.error)

        self._enter(Stage.DONE)
        return PipelineResult(stage=Stage.DONE, page=page, insights=insights, warnings=warnings)

    def regenerate(self, token: Optional[str], body: Optional[Dict[str, Any]]) -> PipelineResult:
        stage = self._enter(Stage.AUTHENTICATING)
        user = self.auth.get_user_id(token)
        if not user.ok:
            return self._fail(stage, user.error)

        stage = self._enter(Stage.VALIDATING)
        request = RegenerateRequest.from_body(body)
        if not request.ok:
            return self._fail(stage, request.error)

        stage = self._enter(Stage.LOADING_PAGE)
        try:
            page = self.store.get_page(request.value.scrape_id, user.value)
        except StoreError as e:
            return self._fail(stage, NotFoundError(stage=stage.value, detail=e.detail))
        if page is None:
            return self._fail(stage, NotFoundError(stage=stage.value))

        stage = self._enter(Stage.ENRICHING)
        enriched = self._enrich(page)
        if not enriched.ok:
            return self._fail(stage, enriched.error)

        self._enter(Stage.DONE)
        return PipelineResult(stage=Stage.DONE, page=page, insights=enriched.value)


def build_pipeline(settings) -> ScrapePipeline:
    """Construct the pipeline and its collaborators from Settings."""
    from .auth import SupabaseAuth
    from .scraper import FirecrawlClient
    from .store import SupabaseStore

    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise ConfigurationError('Database is not configured. Please contact support.')

    insights = None
    if settings.enrichment_enabled:
        insights = InsightsClient(settings.gemini_api_key, model_name=settings.gemini_model)

    return ScrapePipeline(
        auth=SupabaseAuth(settings.supabase_url, settings.supabase_service_role_key,
                          timeout=settings.http_timeout),
        scraper=FirecrawlClient(settings.firecrawl_api_key, base_url=settings.firecrawl_base_url,
                                timeout=settings.http_timeout),
        store=SupabaseStore(settings.supabase_url, settings.supabase_service_role_key,
                            timeout=settings.http_timeout),
        insights=insights,
        strict_persistence=settings.strict_persistence,
    )
