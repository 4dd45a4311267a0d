"""
Generate AI Insights Cloud Function

Regenerates the AI summary, tags and key points for an existing scrape.
The scrape is not re-fetched or re-parsed; its stored headings and links
feed the prompt. An existing insights row is replaced, never duplicated.
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


def handle_regenerate(request, pipeline):
    result = pipeline.regenerate(bearer_token(request), read_json_body(request))
    if not result.ok:
        return error_response(result.error)
    return json_response({'success': True, 'insights': result.insights.to_dict()}, 200)


@functions_framework.http
def generate_ai_insights(request):
    """
    Main Cloud Function entry point.

    Expected JSON input (Authorization: Bearer <token>):
    {
        "pageId": "<scrape uuid>"
    }
    """
    # Handle CORS
    if request.method == 'OPTIONS':
        return preflight_response()

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    try:
        pipeline = build_pipeline(settings)
        return handle_regenerate(request, pipeline)
    except PipelineError as e:
        logger.error("Insights request failed: %s", e.message)
        return error_response(e)
    except Exception:
        logger.exception("Unhandled error in generate_ai_insights")
        return error_response(PipelineError(stage='processing'))
