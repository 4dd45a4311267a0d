"""
Error Contract Tests - Defines what the caller sees when something fails.

These tests serve as guardrails to ensure consistent error handling.

RULE: Every fatal error collapses to a single {"error": message} body with a
non-2xx status. Upstream detail is logged, never returned.

Error Classification:
====================

FATAL (non-2xx):
- AuthError (401), ValidationError (400), UpstreamFetchError (502),
  PersistenceError on the page (500), NotFoundError (404),
  ConfigurationError (500)

NON-FATAL DURING INGESTION (200 with warnings array):
- Heading/link writes, AI insights generation or storage

FATAL DURING REGENERATION:
- EnrichmentError (502)
"""

import json

import pytest

from scrape_pipeline.errors import (
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
from scrape_pipeline.http_utils import bearer_token, error_response, json_response


class TestErrorClassification:
    """Tests that verify status codes per error kind."""

    @pytest.mark.parametrize("error_cls,status", [
        (AuthError, 401),
        (ValidationError, 400),
        (UpstreamFetchError, 502),
        (PersistenceError, 500),
        (EnrichmentError, 502),
        (NotFoundError, 404),
        (ConfigurationError, 500),
        (PipelineError, 500),
    ])
    def test_status_codes(self, error_cls, status):
        assert error_cls().status == status

    @pytest.mark.parametrize("error_cls", [
        AuthError, ValidationError, UpstreamFetchError, PersistenceError,
        EnrichmentError, NotFoundError, ConfigurationError,
    ])
    def test_every_error_has_user_facing_default(self, error_cls):
        error = error_cls()
        assert isinstance(error.message, str)
        assert len(error.message) > 0

    def test_custom_message_overrides_default(self):
        assert ValidationError('Missing required field: pageId').message == 'Missing required field: pageId'

    def test_kind_is_class_name(self):
        assert UpstreamFetchError().kind == 'UpstreamFetchError'


class TestErrorResponseShape:
    """The response body carries only the message."""

    def test_response_body_is_single_error_field(self):
        error = UpstreamFetchError(stage='fetching_source', detail='HTTP 500: stack trace with secrets')
        body, status, headers = error_response(error)

        assert status == 502
        assert json.loads(body) == {'error': error.message}
        assert 'secrets' not in body
        assert headers['Content-Type'] == 'application/json'
        assert headers['Access-Control-Allow-Origin'] == '*'

    def test_warning_shape(self):
        warning = PersistenceError(stage='persisting_links').to_warning()
        assert set(warning) == {'stage', 'message'}
        assert warning['stage'] == 'persisting_links'

    def test_success_response_has_no_error_field(self):
        body, status, _ = json_response({'success': True, 'page': {'id': 'x'}})
        assert status == 200
        assert 'error' not in json.loads(body)


class TestResult:
    """Tests for the Result value/error carrier."""

    def test_success(self):
        result = Result.success('value')
        assert result.ok
        assert result.value == 'value'
        assert result.error is None

    def test_failure(self):
        error = AuthError()
        result = Result.failure(error)
        assert not result.ok
        assert result.error is error
        assert result.value is None

    def test_warnings_are_copied(self):
        warnings = [PersistenceError(stage='persisting_headings')]
        result = Result.success('page', warnings)
        warnings.clear()
        assert len(result.warnings) == 1


class TestBearerToken:
    """Tests for bearer_token()"""

    class _Request:
        def __init__(self, headers):
            self.headers = headers

    @pytest.mark.parametrize("header,expected", [
        ('Bearer abc.def', 'abc.def'),
        ('bearer abc', 'abc'),
        ('Bearer   padded  ', 'padded'),
        ('Basic abc', None),
        ('Bearer ', None),
        ('', None),
    ])
    def test_parsing(self, header, expected):
        assert bearer_token(self._Request({'Authorization': header})) == expected

    def test_missing_header(self):
        assert bearer_token(self._Request({})) is None
