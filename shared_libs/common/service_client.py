"""
HTTP client for calling the analysis functions from the workflow.

Requests carry an OIDC ID token for the target function and are retried
with bounded exponential backoff on transport errors, 429 and 5xx.
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple

import google.auth.transport.requests
import google.oauth2.id_token
import httpx
from google.api_core import retry as api_retry

from shared_libs.config.all_config import (
    RetryConfig,
    ServiceEndpointsConfig,
    retry_config,
    service_endpoints_config,
)

logger = logging.getLogger(__name__)

# ID tokens expire after an hour; refresh 5 minutes early
_TOKEN_TTL_SECONDS = 3300


class ServiceCallError(RuntimeError):
    """A downstream function answered with a non-success status."""

    def __init__(self, url: str, status_code: int, detail: str):
        super().__init__(f"POST {url} failed with status {status_code}: {detail}")
        self.url = url
        self.status_code = status_code
        self.detail = detail


class RetryableServiceError(ServiceCallError):
    """A non-success status worth retrying (429 or 5xx)."""


def _is_retryable(exc: Exception) -> bool:
    return isinstance(exc, (httpx.TransportError, RetryableServiceError))


def build_retry_policy(config: RetryConfig = retry_config) -> api_retry.Retry:
    """Bounded exponential backoff for calls to external services."""
    return api_retry.Retry(
        predicate=_is_retryable,
        initial=config.initial_delay,
        maximum=config.max_delay,
        multiplier=config.multiplier,
        timeout=config.timeout,
        on_error=lambda exc: logger.warning(f"Retrying after error: {exc}"),
    )


class CloudFunctionClient:
    """Calls HTTP functions by name with ID token caching and retries."""

    def __init__(
        self,
        endpoints: ServiceEndpointsConfig = service_endpoints_config,
        retry_settings: RetryConfig = retry_config,
        http_client: Optional[httpx.Client] = None,
    ):
        self.endpoints = endpoints
        self.client = http_client or httpx.Client(timeout=endpoints.request_timeout)
        self._retry = build_retry_policy(retry_settings)
        # audience -> (token, expiry)
        self._token_cache: Dict[str, Tuple[str, float]] = {}

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _get_cached_token(self, audience: str) -> str:
        """Get a cached ID token for the audience, refreshing if necessary."""
        current_time = time.time()
        cached = self._token_cache.get(audience)
        if cached and current_time < cached[1]:
            return cached[0]

        auth_req = google.auth.transport.requests.Request()
        token = google.oauth2.id_token.fetch_id_token(auth_req, audience)
        self._token_cache[audience] = (token, current_time + _TOKEN_TTL_SECONDS)
        return token

    def _post_once(
        self, url: str, body: Dict[str, Any], extra_headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json", **(extra_headers or {})}
        if self.endpoints.use_oidc_auth:
            headers["Authorization"] = f"Bearer {self._get_cached_token(url)}"

        response = self.client.post(url, json=body, headers=headers)
        if response.status_code == 429 or response.status_code >= 500:
            raise RetryableServiceError(url, response.status_code, response.text)
        if response.status_code >= 400:
            raise ServiceCallError(url, response.status_code, response.text)
        return response.json()

    def call(
        self, function_name: str, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        POST a JSON body to a function and return its JSON response.

        Raises:
            ServiceCallError: On a non-retryable error status.
            google.api_core.exceptions.RetryError: If the retry timeout elapses
                while the call keeps failing with retryable errors.
        """
        url = self.endpoints.function_url(function_name)
        logger.info(f"Calling {function_name} at {url}")
        return self._retry(self._post_once)(url, body, headers)
