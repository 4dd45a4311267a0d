"""HTTP helpers shared by the Cloud Function entry points."""

import json
from typing import Any, Dict, Optional, Tuple

from .errors import PipelineError

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization, X-Client-Info, Apikey',
    'Access-Control-Max-Age': '3600',
}

HttpResponse = Tuple[str, int, Dict[str, str]]


def preflight_response() -> HttpResponse:
    return ('', 200, dict(CORS_HEADERS))


def json_response(body: Dict[str, Any], status: int = 200) -> HttpResponse:
    headers = dict(CORS_HEADERS)
    headers['Content-Type'] = 'application/json'
    return (json.dumps(body), status, headers)


def error_response(error: PipelineError) -> HttpResponse:
    return json_response(error.to_response(), error.status)


def bearer_token(request) -> Optional[str]:
    """Return the token from `Authorization: Bearer <token>`, or None."""
    header = request.headers.get('Authorization') or ''
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def read_json_body(request) -> Optional[Dict[str, Any]]:
    """Parse a JSON object body; None when the body is missing or not JSON."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else None
