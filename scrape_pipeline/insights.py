"""
AI insights generation for scraped pages using Gemini.

Builds a bounded prompt from a page's title, description, headings and
link anchors, asks the model for a JSON reply and normalizes it into the
ai_insights shape.
"""

import json
import logging
import re
from typing import Any, Dict, List

import google.generativeai as genai

from .errors import ConfigurationError, EnrichmentError
from .models import NO_SUMMARY_PLACEHOLDER, Heading, Insights, Link, PageRecord

logger = logging.getLogger(__name__)

MAX_PROMPT_HEADINGS = 20
MAX_PROMPT_LINKS = 10

SYSTEM_INSTRUCTION = (
    'You are an expert content analyzer. Analyze the provided web page content and '
    'generate a concise summary, relevant tags, and key takeaways. Respond in JSON '
    'format with: summary_short (1-2 sentences), summary_long (2-4 sentences), '
    'tags (array of 3-7 keywords), key_points (array of 3-5 bullet points).'
)


def build_prompt(page: PageRecord, headings: List[Heading], links: List[Link]) -> str:
    """Render page content for the model, in stored order."""
    ordered_headings = sorted(headings, key=lambda h: h.order_index)[:MAX_PROMPT_HEADINGS]
    ordered_links = sorted(links, key=lambda l: l.order_index)[:MAX_PROMPT_LINKS]

    heading_lines = '\n'.join(f"{'#' * h.level} {h.text}" for h in ordered_headings)
    link_lines = '\n'.join(l.anchor_text for l in ordered_links)

    return (
        f"Title: {page.page_title}\n\n"
        f"Meta Description: {page.meta_description or 'N/A'}\n\n"
        f"Headings:\n{heading_lines}\n\n"
        f"Top Links:\n{link_lines}"
    )


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            items.append(text)
    return items


def normalize_reply(reply: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fill in defaults for a parsed model reply.

    Examples:
        >>> normalize_reply({'tags': ['ai', 'tools']})
        {'summary_short': 'No summary available', 'summary_long': None, 'tags': ['ai', 'tools'], 'key_points': []}
    """
    summary_short = reply.get('summary_short')
    summary_long = reply.get('summary_long')
    return {
        'summary_short': summary_short.strip() if isinstance(summary_short, str) and summary_short.strip()
        else NO_SUMMARY_PLACEHOLDER,
        'summary_long': summary_long.strip() if isinstance(summary_long, str) and summary_long.strip()
        else None,
        'tags': _string_list(reply.get('tags')),
        'key_points': _string_list(reply.get('key_points')),
    }


def parse_reply(text: str) -> Dict[str, Any]:
    """Parse the model's JSON reply. Raises EnrichmentError when malformed."""
    if not text or not text.strip():
        raise EnrichmentError(stage='enriching', detail='Empty model reply')

    # Extract JSON from response (models sometimes wrap it in a code fence)
    json_match = re.search(r'\{[\s\S]*\}', text)
    if not json_match:
        raise EnrichmentError(stage='enriching', detail=text)

    try:
        parsed = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        raise EnrichmentError(stage='enriching', detail=f'{e}: {text[:500]}') from e

    if not isinstance(parsed, dict):
        raise EnrichmentError(stage='enriching', detail=text)
    return parsed


class InsightsClient:
    """Calls Gemini and returns normalized insights for a page."""

    def __init__(self, api_key: str, model_name: str = 'gemini-2.0-flash', temperature: float = 0.7):
        self.api_key = api_key
        self.model_name = model_name
        self.temperature = temperature

    def generate(self, page: PageRecord, headings: List[Heading] = None,
                 links: List[Link] = None) -> Insights:
        if not self.api_key:
            raise ConfigurationError('GEMINI_API_KEY is not configured', stage='enriching')

        prompt = build_prompt(
            page,
            page.headings if headings is None else headings,
            page.links if links is None else links,
        )

        try:
            genai.configure(api_key=self.api_key)
            model = genai.GenerativeModel(self.model_name, system_instruction=SYSTEM_INSTRUCTION)
            response = model.generate_content(
                prompt,
                generation_config={
                    'response_mime_type': 'application/json',
                    'temperature': self.temperature,
                },
            )
            response_text = response.text
        except Exception as e:
            logger.error("Gemini request failed: %s", e)
            raise EnrichmentError(stage='enriching', detail=str(e)) from e

        fields = normalize_reply(parse_reply(response_text))
        logger.info("AI insights generated for scrape %s", page.id)
        return Insights(scrape_id=page.id, **fields)
