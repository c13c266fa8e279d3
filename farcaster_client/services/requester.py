"""Outbound HTTP requests with admission control and retry on throttling."""

import asyncio
import logging
import random
from typing import Optional

import httpx

from ..exceptions import (
    ConfigurationError,
    RemoteRejectedError,
    RequestTransportError,
    RetryLimitExceededError,
)

logger = logging.getLogger(__name__)


class RateLimitedRequester:
    """Issues requests to an API that penalizes bursts.

    At most ``max_concurrent_requests`` calls are in flight at once across
    every caller sharing the instance. A 429 response is retried after
    ``base_delay * (attempt + 1)`` seconds plus a random jitter; any other
    failure is returned to the caller immediately.
    """

    def __init__(
        self,
        api_key: str,
        max_concurrent_requests: int = 2,
        max_retries: int = 12,
        base_delay: float = 1.0,
        max_jitter_ms: int = 2000,
        default_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ):
        if not api_key:
            raise ConfigurationError("API key is required")
        self.api_key = api_key
        self.max_concurrent_requests = max_concurrent_requests
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_jitter_ms = max_jitter_ms
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)
        self._rng = rng or random.Random()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(default_timeout),
            transport=transport,
        )

    def _get_headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "api_key": self.api_key,
            "Content-Type": "application/json",
        }

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after the given (zero-based) throttled attempt."""
        jitter_ms = self._rng.randrange(self.max_jitter_ms) if self.max_jitter_ms > 0 else 0
        return self.base_delay * (attempt + 1) + jitter_ms / 1000

    async def execute(
        self,
        url: str,
        method: str = "GET",
        body: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        """Perform one logical request and return the response body.

        Args:
            url: Absolute URL.
            method: HTTP method.
            body: Serialized JSON body, if any.
            timeout: Seconds allowed per attempt. None or 0 uses the client default.

        Returns:
            Raw body of the 200 response.

        Raises:
            RequestTransportError: The call failed before a usable response arrived.
            RemoteRejectedError: The API answered with a non-200, non-429 status.
            RetryLimitExceededError: Every attempt was throttled.
        """
        request_timeout = timeout if timeout else httpx.USE_CLIENT_DEFAULT

        for attempt in range(self.max_retries):
            logger.debug(
                "%s %s (attempt %d/%d)", method, url, attempt + 1, self.max_retries
            )
            # Permit covers the network call only, never the backoff.
            async with self._semaphore:
                try:
                    response = await self._client.request(
                        method,
                        url,
                        content=body,
                        headers=self._get_headers(),
                        timeout=request_timeout,
                    )
                except httpx.RequestError as e:
                    logger.error("Transport error for %s %s: %s", method, url, e)
                    raise RequestTransportError(f"error performing request: {e}", url) from e

            if response.status_code == 429:
                if attempt + 1 >= self.max_retries:
                    break
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "Rate limited on %s %s, retrying in %.2f seconds", method, url, delay
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code != 200:
                logger.error(
                    "Request %s %s rejected: %d %s",
                    method,
                    url,
                    response.status_code,
                    response.reason_phrase,
                )
                raise RemoteRejectedError(response.status_code, response.reason_phrase, url)

            return response.content

        logger.error("Giving up on %s %s after %d attempts", method, url, self.max_retries)
        raise RetryLimitExceededError(self.max_retries, url)

    async def close(self) -> None:
        """Close the HTTP client connection."""
        await self._client.aclose()
