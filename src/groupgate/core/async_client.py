"""
Groupgate Async ESI Client

Async HTTP client for EVE Online ESI API using httpx.
Used by the affiliation refresher to pull character, corporation and
alliance data from the identity provider's public API.

Uses httpx.AsyncClient for true async I/O and tenacity for retries.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import TYPE_CHECKING, Any, Optional, Union

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import get_settings
from .logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = get_logger(__name__)

JSONValue = Union[dict, list, int, float, None]

# HTTP status codes that should trigger retry
RETRYABLE_STATUS_CODES = {
    429,  # Too Many Requests (rate limited)
    502,  # Bad Gateway
    503,  # Service Unavailable
    504,  # Gateway Timeout
}


# =============================================================================
# Exceptions
# =============================================================================


class AsyncESIError(Exception):
    """Exception raised for async ESI API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        result: dict[str, Any] = {"error": "esi_error", "message": self.message}
        if self.status_code:
            result["status_code"] = self.status_code
        return result


class RetryableESIError(AsyncESIError):
    """
    ESI error that should trigger retry logic.

    Raised for rate limiting and gateway failures.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


# =============================================================================
# Async Retry Decorator
# =============================================================================


def esi_retry_async(
    max_attempts: int = 5,
    min_wait: float = 0.5,
    max_wait: float = 30.0,
) -> Any:
    """
    Async retry decorator for ESI requests with exponential backoff.

    Retries on:
    - 429 Too Many Requests
    - 502/503/504 Gateway errors
    - Network errors (httpx.RequestError)

    Args:
        max_attempts: Maximum attempts (default: 5)
        min_wait: Minimum wait between retries in seconds (default: 0.5)
        max_wait: Maximum wait between retries in seconds (default: 30)

    Returns:
        Decorator applying the retry policy
    """
    return retry(
        retry=retry_if_exception_type((RetryableESIError, httpx.RequestError)),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        reraise=True,
    )


# =============================================================================
# Async Client
# =============================================================================


class AsyncESIClient:
    """
    Async HTTP client for ESI API requests.

    Must be used as an async context manager to ensure proper
    connection pooling.

    Usage:
        async with AsyncESIClient() as client:
            corp = await client.get("/corporations/98755820/")
            affiliations = await client.post("/characters/affiliation/", [2118500443])
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        enable_retry: Optional[bool] = None,
        max_attempts: Optional[int] = None,
        min_wait: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize async ESI client.

        Args:
            timeout: Request timeout in seconds (default: settings.esi_timeout)
            enable_retry: Whether to enable retry logic (default: not settings.no_retry)
            max_attempts: Attempts per request (default: settings.esi_max_attempts)
            min_wait: Minimum backoff between attempts in seconds
            transport: Optional httpx transport (tests inject httpx.MockTransport)
        """
        settings = get_settings()
        self.base_url: str = settings.esi_base_url
        self.datasource: str = settings.esi_datasource
        self.timeout: float = timeout if timeout is not None else settings.esi_timeout
        self.enable_retry: bool = (
            enable_retry if enable_retry is not None else not settings.no_retry
        )
        self.max_attempts: int = (
            max_attempts if max_attempts is not None else settings.esi_max_attempts
        )
        self.min_wait = min_wait
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        # Rate limiting state
        self._error_limit_remain: int = 100
        self._error_limit_reset: float = 0
        self._rate_limit_backoff_threshold: int = 20
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> AsyncESIClient:
        """Enter async context and create httpx client."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        """Exit async context and close httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _params(self, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        query_params: dict[str, Any] = {"datasource": self.datasource}
        if params:
            query_params.update(params)
        return query_params

    @staticmethod
    def _endpoint(endpoint: str) -> str:
        return endpoint if endpoint.startswith("/") else "/" + endpoint

    def _update_rate_limits(self, headers: Mapping[str, str]) -> None:
        """Update rate limit tracking from ESI response headers."""
        if "x-esi-error-limit-remain" in headers:
            try:
                self._error_limit_remain = int(headers["x-esi-error-limit-remain"])
            except (ValueError, TypeError):
                pass

        if "x-esi-error-limit-reset" in headers:
            try:
                reset_seconds = int(headers["x-esi-error-limit-reset"])
                self._error_limit_reset = time.time() + reset_seconds
            except (ValueError, TypeError):
                pass

    async def _check_rate_limit(self) -> None:
        """Check rate limit status and back off if approaching limit."""
        async with self._lock:
            if time.time() > self._error_limit_reset:
                self._error_limit_remain = 100

            if self._error_limit_remain < self._rate_limit_backoff_threshold:
                wait_time = max(0, self._error_limit_reset - time.time())
                wait_time = min(wait_time, 5.0)
                if wait_time > 0:
                    await asyncio.sleep(wait_time)

    def _raise_for_status(self, error: httpx.HTTPStatusError) -> None:
        """Translate an httpx status error into an ESI error."""
        self._update_rate_limits(error.response.headers)
        try:
            error_json = error.response.json()
            message = error_json.get("error", str(error))
        except json.JSONDecodeError:
            message = error.response.text or str(error)

        status_code = error.response.status_code
        if status_code in RETRYABLE_STATUS_CODES:
            retry_after = error.response.headers.get("retry-after")
            raise RetryableESIError(
                message,
                status_code=status_code,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        raise AsyncESIError(message, status_code=status_code)

    async def _send(self, method: str, endpoint: str, **kwargs: Any) -> JSONValue:
        """Execute a single request without retry."""
        if not self._client:
            raise AsyncESIError("Client not initialized. Use 'async with' context manager.")

        await self._check_rate_limit()

        response = await self._client.request(method, self._endpoint(endpoint), **kwargs)
        self._update_rate_limits(response.headers)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self._raise_for_status(e)

        return response.json()

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> JSONValue:
        """Run a request, retrying transient failures when enabled."""

        async def attempt() -> JSONValue:
            return await self._send(method, endpoint, **kwargs)

        try:
            if not self.enable_retry:
                return await attempt()
            policy = esi_retry_async(max_attempts=self.max_attempts, min_wait=self.min_wait)
            return await policy(attempt)()
        except httpx.RequestError as e:
            raise AsyncESIError(f"Network error: {e}") from e

    async def get(
        self,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> JSONValue:
        """
        Make GET request to ESI API.

        Args:
            endpoint: API endpoint path
            params: Optional query parameters

        Returns:
            Parsed JSON response

        Raises:
            AsyncESIError: On HTTP errors or request failures
        """
        return await self._request("GET", endpoint, params=self._params(params))

    async def get_safe(
        self,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> JSONValue:
        """
        Make GET request, returning None on 404 errors.

        Useful for lookups where missing data is expected.
        """
        try:
            return await self.get(endpoint, params)
        except AsyncESIError as e:
            if e.status_code == 404:
                logger.debug("get_safe swallowed 404 for %s: %s", endpoint, e.message)
                return None
            raise

    async def post(self, endpoint: str, data: Any) -> JSONValue:
        """
        Make POST request to ESI API.

        Args:
            endpoint: API endpoint path
            data: Request body (will be JSON encoded)

        Returns:
            Parsed JSON response

        Raises:
            AsyncESIError: On HTTP errors or request failures
        """
        return await self._request("POST", endpoint, params=self._params(), json=data)
