"""
Configuration for the scrape pipeline Cloud Functions.

All settings come from environment variables set on the deployed function.
Settings are read per request and handed to the collaborators that need
them; nothing here holds a client.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_FIRECRAWL_BASE_URL = 'https://api.firecrawl.dev'
DEFAULT_GEMINI_MODEL = 'gemini-2.0-flash'
DEFAULT_HTTP_TIMEOUT = 30.0

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

logger = logging.getLogger(__name__)


def _as_bool(value: Optional[str]) -> bool:
    return (value or '').strip().lower() in ('1', 'true', 'yes', 'on')


def _as_timeout(value: Optional[str]) -> float:
    if not value:
        return DEFAULT_HTTP_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        timeout = 0.0
    if not 0 < timeout < float('inf'):
        logger.warning("Invalid HTTP_TIMEOUT_SECONDS %r, using %s", value, DEFAULT_HTTP_TIMEOUT)
        return DEFAULT_HTTP_TIMEOUT
    return timeout


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    firecrawl_api_key: Optional[str] = None
    firecrawl_base_url: str = DEFAULT_FIRECRAWL_BASE_URL
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    strict_persistence: bool = False
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'Settings':
        env = os.environ if environ is None else environ
        return cls(
            supabase_url=(env.get('SUPABASE_URL') or '').rstrip('/') or None,
            supabase_service_role_key=env.get('SUPABASE_SERVICE_ROLE_KEY'),
            firecrawl_api_key=env.get('FIRECRAWL_API_KEY'),
            firecrawl_base_url=(env.get('FIRECRAWL_BASE_URL') or DEFAULT_FIRECRAWL_BASE_URL).rstrip('/'),
            gemini_api_key=env.get('GEMINI_API_KEY'),
            gemini_model=env.get('GEMINI_MODEL') or DEFAULT_GEMINI_MODEL,
            http_timeout=_as_timeout(env.get('HTTP_TIMEOUT_SECONDS')),
            strict_persistence=_as_bool(env.get('STRICT_PERSISTENCE')),
            log_level=(env.get('LOG_LEVEL') or 'INFO').upper(),
        )

    @property
    def enrichment_enabled(self) -> bool:
        return bool(self.gemini_api_key)


def configure_logging(level: str = 'INFO') -> None:
    """Set up root logging once per process (Cloud Functions reuse instances)."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)
