"""Caller authentication against the Supabase auth service."""

import logging
from typing import Optional

import requests

from .errors import AuthError, ConfigurationError, Result

logger = logging.getLogger(__name__)


class SupabaseAuth:
    """Resolves a bearer token to a user id via `GET /auth/v1/user`."""

    def __init__(self, supabase_url: str, api_key: str, timeout: float = 10.0):
        self.supabase_url = supabase_url
        self.api_key = api_key
        self.timeout = timeout

    def get_user_id(self, token: Optional[str]) -> Result[str]:
        if not token:
            return Result.failure(AuthError(stage='authenticating'))

        if not self.supabase_url or not self.api_key:
            return Result.failure(ConfigurationError(
                'Authentication service is not configured. Please contact support.',
                stage='authenticating',
            ))

        try:
            response = requests.get(
                f'{self.supabase_url}/auth/v1/user',
                headers={
                    'apikey': self.api_key,
                    'Authorization': f'Bearer {token}',
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("Auth service unreachable: %s", e)
            return Result.failure(AuthError(stage='authenticating', detail=str(e)))

        if response.status_code != 200:
            logger.warning("Token rejected by auth service: %s %s",
                           response.status_code, response.text[:200])
            return Result.failure(AuthError(
                'Your session has expired. Please log in again.',
                stage='authenticating',
                detail=response.text,
            ))

        try:
            user = response.json()
        except ValueError:
            user = None
        user_id = user.get('id') if isinstance(user, dict) else None

        if not user_id:
            return Result.failure(AuthError(
                'Your session has expired. Please log in again.',
                stage='authenticating',
            ))

        return Result.success(user_id)
