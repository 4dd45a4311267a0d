"""
Scrape URL Cloud Function

Scrapes a URL and saves it as a scrape in one of the caller's projects.

Responsibilities:
- Authenticate the caller (Supabase bearer token)
- Fetch markdown/HTML through the scraping service
- Extract headings and links from the markdown
- Save the scrape, then its headings and links (best effort)
- Optionally generate AI insights (best effort)

Does NOT:
- Retry failed upstream calls
- Expose upstream error bodies to the caller
"""

import functions_framework
import logging
import os
import sys

# Add shared package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from scrape_pipeline.config import Settings, configure_logging
from scrape_pipeline.errors import PipelineError
from scrape_pipeline.http_utils import (
    bearer_token,
    error_response,
    json_response,
    preflight_response,
    read_json_body,
)
from scrape_pipeline.pipeline import build_pipeline

logger = logging.getLogger(__name__)


def handle_scrape(request, pipeline):
    """Run one ingestion request against an already-built pipeline."""
    result = pipeline.ingest(bearer_token(request), read_json_body(request))
    if not result.ok:
        return error_response(result.error)

    page = result.page.to_dict()
    body = {'success': True, 'scrape': page, 'page': page}
    if result.insights is not None:
        body['insights'] = result.insights.to_dict()
    if result.warnings:
        body['warnings'] = [w.to_warning() for w in result.warnings]
    return json_response(body, 200)


@functions_framework.http
def scrape_url(request):
    """
    Main Cloud Function entry point.

    Expected JSON input (Authorization: Bearer <token>):
    {
        "url": "example.com/article",
        "projectId": "<project uuid>",
        "useAi": true
    }
    """
    # Handle CORS
    if request.method == 'OPTIONS':
        return preflight_response()

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    try:
        pipeline = build_pipeline(settings)
        return handle_scrape(request, pipeline)
    except PipelineError as e:
        logger.error("Scrape request failed: %s", e.message)
        return error_response(e)
    except Exception:
        logger.exception("Unhandled error in scrape_url")
        return error_response(PipelineError(stage='processing'))
