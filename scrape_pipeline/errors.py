"""
Error taxonomy and result type for the scrape pipeline.

Every fallible step returns a Result carrying either a value or a tagged
PipelineError. The orchestrator decides which errors are fatal.

Error Classification:
====================

FATAL (non-2xx, {"error": message}):
- AuthError            missing/invalid/expired credential
- ValidationError      missing required input field
- UpstreamFetchError   scraping service unreachable or non-success
- PersistenceError     page record could not be saved
- NotFoundError        page missing or owned by another user
- ConfigurationError   required service key not configured

FATAL ONLY FOR STANDALONE REGENERATION:
- EnrichmentError      malformed model reply or model failure

`message` is safe to show to the caller. `detail` holds upstream bodies and
is only ever logged.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar('T')


class PipelineError(Exception):
    """Base class for every error the pipeline reports to a caller."""

    status = 500
    default_message = 'An unexpected error occurred'

    def __init__(self, message: str = None, stage: str = None, detail: Any = None):
        self.message = message or self.default_message
        self.stage = stage
        self.detail = detail
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_response(self) -> dict:
        return {'error': self.message}

    def to_warning(self) -> dict:
        return {'stage': self.stage, 'message': self.message}


class AuthError(PipelineError):
    status = 401
    default_message = 'Authentication required. Please log in again.'


class ValidationError(PipelineError):
    status = 400
    default_message = 'Invalid request. Please try again.'


class UpstreamFetchError(PipelineError):
    status = 502
    default_message = (
        'Something went wrong. Please check if the website link is valid '
        'or try again in some time.'
    )


class PersistenceError(PipelineError):
    status = 500
    default_message = 'Unable to save the scraped data. Please try again.'


class EnrichmentError(PipelineError):
    status = 502
    default_message = 'Unable to generate AI insights. Please try again.'


class NotFoundError(PipelineError):
    status = 404
    default_message = 'Scrape not found or access denied'


class ConfigurationError(PipelineError):
    status = 500
    default_message = 'Service is not configured. Please contact support.'


@dataclass
class Result(Generic[T]):
    """Outcome of one pipeline step: a value, or an error, plus warnings."""

    value: Optional[T] = None
    error: Optional[PipelineError] = None
    warnings: List[PipelineError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None, warnings: List[PipelineError] = None) -> 'Result[T]':
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: PipelineError, warnings: List[PipelineError] = None) -> 'Result[T]':
        return cls(error=error, warnings=list(warnings or []))
