"""
Rate-limited fetcher for the Spotify Web API.

Every request of the export pipeline goes through RateLimitedFetcher.fetch(),
which performs one authorized GET and hides the provider's transient
failures from its callers:

    Status      Handling
    2xx         decoded JSON is returned
    401         AuthenticationError, the whole session is over
    403         fallback returned and session invalidated if the caller
                supplied one (audio features), else PermissionDeniedError
    429         wait Retry-After seconds, retry (unbounded unless capped)
    502         wait attempt * step ms, retry until the budget is spent
    other       SpotifyError carrying the status

Pacing:
    Callers spread a wave of parallel requests by passing initial_delay_ms.
    The stagger applies to the first attempt only; a retry waits for its
    backoff delay alone.

Retries are a loop around one attempt, and every wait goes through the
injected sleep function so tests can run without real delays.

Usage:
    async with RateLimitedFetcher(session, config.fetch) as fetcher:
        profile = await fetcher.fetch(f"{API_BASE}/me")
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Mapping

import aiohttp

from spot_exporter.core.config import FetchConfig
from spot_exporter.core.exceptions import (
    AuthenticationError,
    PermissionDeniedError,
    SpotifyError,
)
from spot_exporter.core.logger import get_logger
from spot_exporter.core.session import SessionContext

logger = get_logger(__name__)


API_BASE = "https://api.spotify.com/v1"

# Used when a 429 response carries no usable Retry-After header
DEFAULT_RETRY_AFTER_SECONDS = 1.0

Sleep = Callable[[float], Awaitable[None]]


def parse_retry_after(value: str | None) -> float:
    """Retry-After is given in seconds; fall back to one second if absent or garbled."""
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        seconds = float(value)
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS
    return seconds if seconds >= 0 else DEFAULT_RETRY_AFTER_SECONDS


class RateLimitedFetcher:
    """
    Issues authorized GET requests with transparent 429/502 retry.

    Attributes:
        session: Session context supplying the bearer token.
        config: Retry policy (bad gateway budget and step, rate limit cap,
                request timeout).
        request_count: Number of HTTP requests sent, retries included.

    Thread Safety:
        Not thread-safe. One fetcher belongs to one event loop; many
        fetch() coroutines may run concurrently on it.
    """

    def __init__(
        self,
        session: SessionContext,
        config: FetchConfig | None = None,
        http_session: aiohttp.ClientSession | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Args:
            session: Session context holding the access token.
            config: Retry policy, defaults to FetchConfig().
            http_session: Optional pre-built aiohttp session. When given,
                          the caller owns it and close() leaves it open.
            sleep: Awaitable used for every delay, in seconds.
        """
        self.session = session
        self.config = config or FetchConfig()
        self.request_count = 0
        self._http_session = http_session
        self._owns_http_session = http_session is None
        self._sleep = sleep

    async def __aenter__(self) -> "RateLimitedFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_http_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _get_http_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)
            self._http_session = aiohttp.ClientSession(timeout=timeout)
        return self._http_session

    async def fetch(
        self,
        url: str,
        initial_delay_ms: float = 0,
        max_bad_gateway_retries: int | None = None,
        forbidden_fallback: Any = None,
    ) -> Any:
        """
        GET a Spotify API URL and return its decoded JSON body.

        Args:
            url: Absolute API URL including query string.
            initial_delay_ms: Stagger delay before the first attempt.
            max_bad_gateway_retries: 502 retry budget for this request,
                                     None uses config.bad_gateway_retries.
            forbidden_fallback: Value returned on 403 instead of raising.
                                Supplying it also invalidates the session.

        Returns:
            The decoded JSON body (dict for every endpoint in use).

        Raises:
            AuthenticationError: No fresh token, or Spotify answered 401.
            PermissionDeniedError: 403 and no fallback supplied.
            SpotifyError: Any other failure, including transport errors
                          (http_status None), an exhausted 502 budget
                          (http_status 502) and an exhausted 429 cap.
        """
        bad_gateway_budget = (
            self.config.bad_gateway_retries
            if max_bad_gateway_retries is None
            else max_bad_gateway_retries
        )
        bad_gateway_attempts = 0
        rate_limit_attempts = 0

        if initial_delay_ms > 0:
            await self._sleep(initial_delay_ms / 1000)

        while True:
            status, headers, body = await self._send(url)

            if 200 <= status < 300:
                return self._decode(url, body)

            if status == 401:
                raise AuthenticationError(
                    "Spotify rejected the access token (401). Please log in again.",
                    details={"url": url},
                    http_status=401,
                )

            if status == 403:
                if forbidden_fallback is not None:
                    logger.error(
                        f"403 Forbidden for {url}. The app may lack access to this "
                        "endpoint, or the token was issued without the needed scopes. "
                        "Session cleared, log in again to retry."
                    )
                    self.session.invalidate()
                    return forbidden_fallback
                raise PermissionDeniedError(
                    f"Access denied (403): {body[:200]}",
                    details={"url": url},
                )

            if status == 429:
                cap = self.config.rate_limit_retries
                if cap is not None and rate_limit_attempts >= cap:
                    raise SpotifyError(
                        f"Rate limited (429) after {rate_limit_attempts} retries",
                        details={"url": url, "retry_after": headers.get("Retry-After")},
                        http_status=429,
                        is_rate_limit=True,
                    )
                rate_limit_attempts += 1
                wait_seconds = parse_retry_after(headers.get("Retry-After"))
                logger.warning(
                    f"Rate limited (429), retrying in {wait_seconds:g}s "
                    f"(attempt {rate_limit_attempts}): {url}"
                )
                await self._sleep(wait_seconds)
                continue

            if status == 502 and bad_gateway_attempts < bad_gateway_budget:
                bad_gateway_attempts += 1
                wait_ms = bad_gateway_attempts * self.config.bad_gateway_step_ms
                logger.warning(
                    f"Bad gateway (502), retry {bad_gateway_attempts}/{bad_gateway_budget} "
                    f"in {wait_ms}ms: {url}"
                )
                await self._sleep(wait_ms / 1000)
                continue

            raise SpotifyError(
                f"Request failed with status {status}",
                details={"url": url, "body": body[:500]},
                http_status=status,
            )

    async def _send(self, url: str) -> tuple[int, Mapping[str, str], str]:
        """Perform one attempt. Checks the token before anything goes on the wire."""
        if not self.session.is_fresh():
            raise AuthenticationError(
                "Not logged in or session expired. Please log in again.",
                details={"url": url},
            )

        http_session = self._get_http_session()
        self.request_count += 1
        logger.debug(f"GET {url}")

        try:
            async with http_session.get(url, headers=self.session.authorization_header()) as response:
                body = await response.text()
                return response.status, response.headers, body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SpotifyError(
                f"Network error while requesting Spotify: {e}",
                details={"url": url, "original_error": repr(e)},
            ) from e

    @staticmethod
    def _decode(url: str, body: str) -> Any:
        if not body:
            return {}
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise SpotifyError(
                "Spotify returned a response that is not valid JSON",
                details={"url": url, "original_error": str(e)},
            ) from e
