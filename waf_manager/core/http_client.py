"""
Retrying HTTP client for outbound Cloudflare API calls.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional

import httpx

from waf_manager.exceptions.custom_exceptions import RequestError

logger = logging.getLogger(__name__)

RATE_LIMITED = 429
GATEWAY_ERRORS = (502, 503, 504)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff settings for one call site."""
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    multiplier: float = 2.0

    def with_overrides(self, retries: Optional[int] = None, delay: Optional[float] = None,
                       backoff: Optional[float] = None) -> "RetryPolicy":
        return replace(
            self,
            max_attempts=self.max_attempts if retries is None else retries,
            base_delay=self.base_delay if delay is None else delay,
            multiplier=self.multiplier if backoff is None else backoff,
        )


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _body_of(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class RetryingClient:
    """
    Decorator over an ``httpx.AsyncClient`` that retries rate limits,
    gateway errors and network failures with exponential backoff.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        timeout: float = 15.0,
    ):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def request(self, method: str, url: str, policy: Optional[RetryPolicy] = None,
                      **kwargs) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Args:
            method: HTTP method
            url: Absolute URL
            policy: Per-call retry policy, defaults to the client's
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Returns:
            The first 2xx response

        Raises:
            RequestError: On a non-retryable status or once attempts run out
        """
        policy = policy or self.policy
        delay = policy.base_delay
        attempt = 0

        while True:
            attempt += 1
            attempts_left = attempt < policy.max_attempts
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                if not attempts_left:
                    logger.error(f"{method} {url} failed after {attempt} attempts: {str(e)}")
                    raise RequestError(f"Cloudflare request failed after {attempt} attempts: {type(e).__name__}",
                                       url=url) from e
                logger.warning(f"{method} {url} failed ({str(e)}), retrying in {delay:.2f}s "
                               f"(attempt {attempt}/{policy.max_attempts})")
                await self._sleep(delay)
                delay *= policy.multiplier
                continue

            if response.is_success:
                return response

            status = response.status_code
            if status == RATE_LIMITED or status in GATEWAY_ERRORS:
                if not attempts_left:
                    logger.error(f"{method} {url} still failing with {status} after {attempt} attempts")
                    raise RequestError(
                        f"Cloudflare request failed with status {status} after {attempt} attempts",
                        status=status, url=url, body=_body_of(response),
                    )
                wait = delay
                if status == RATE_LIMITED:
                    retry_after = _retry_after_seconds(response)
                    if retry_after is not None:
                        wait = max(retry_after, delay)
                    logger.warning(f"Rate limited on {url}, retrying after {wait:.2f}s")
                else:
                    logger.warning(f"{method} {url} returned {status}, retrying after {wait:.2f}s")
                await self._sleep(wait)
                delay = wait * policy.multiplier
                continue

            body = _body_of(response)
            logger.error(f"{method} {url} failed with status {status}: {body}")
            raise RequestError(f"Cloudflare request failed with status {status}",
                               status=status, url=url, body=body)

    async def request_json(self, method: str, url: str, **kwargs) -> Any:
        """Send a request and decode its JSON body."""
        response = await self.request(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {url} returned a malformed body")
            raise RequestError("Malformed response body from Cloudflare",
                               status=response.status_code, url=url, body=response.text) from e

    async def aclose(self):
        await self._client.aclose()
