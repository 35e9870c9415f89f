"""
Outbound HTTP access for the crawlers.

Every request carries the crawler User-Agent and is retried with a
linearly increasing backoff. Once the attempts are exhausted the last
transport error is wrapped in ``FetchException``.
"""

from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from grantflow.core.config import get_settings
from grantflow.core.exceptions import FetchException
from grantflow.core.logging import get_logger

logger = get_logger(__name__)


class Fetcher:
    """
    HTTP GET with retry, shared by all crawlers.

    Args:
        client: Optional pre-built client (tests pass one backed by
            ``httpx.MockTransport``). When omitted, a client is created
            on first use and released by ``aclose``.
        user_agent: Overrides the configured crawler User-Agent
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        user_agent: str | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self._owns_client = client is None
        self.user_agent = user_agent or settings.crawler_user_agent
        self.default_retries = settings.crawler_max_retries
        self.default_delay = settings.crawler_retry_delay
        self.default_timeout = settings.crawler_timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get(
        self,
        url: str,
        params: dict[str, Any] | None,
        retries: int | None,
        delay: float | None,
        timeout: float | None,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        attempts = self.default_retries if retries is None else max(1, retries)
        backoff = self.default_delay if delay is None else delay
        request_headers = {**(headers or {}), "User-Agent": self.user_agent}

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_incrementing(start=backoff, increment=backoff),
                retry=retry_if_exception_type(httpx.HTTPError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.debug(
                            "Retrying request",
                            url=url,
                            attempt=attempt.retry_state.attempt_number,
                        )
                    response = await self.client.get(
                        url,
                        params=params,
                        headers=request_headers,
                        timeout=timeout or self.default_timeout,
                    )
                    response.raise_for_status()
                    return response
        except httpx.HTTPError as e:
            logger.warning("Request failed", url=url, attempts=attempts, error=str(e))
            raise FetchException(url, str(e) or type(e).__name__, attempts) from e

        # Unreachable: AsyncRetrying either returns or re-raises
        raise FetchException(url, "no attempts made", attempts)

    async def fetch(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        retries: int | None = None,
        delay: float | None = None,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        """
        Fetch a URL and return the response body as text.

        Args:
            url: Absolute URL
            params: Query string parameters
            retries: Total attempts (defaults to ``crawler_max_retries``)
            delay: Base backoff in seconds; attempt n waits ``delay * n``
            timeout: Per-attempt timeout in seconds
            headers: Extra request headers; User-Agent is always ours

        Raises:
            FetchException: All attempts failed
        """
        response = await self._get(url, params, retries, delay, timeout, headers)
        return response.text

    async def fetch_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        retries: int | None = None,
        delay: float | None = None,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Fetch a URL and decode the JSON body.

        Raises:
            FetchException: All attempts failed or the body is not JSON
        """
        json_headers = {"Accept": "application/json", **(headers or {})}
        response = await self._get(url, params, retries, delay, timeout, json_headers)
        try:
            return response.json()
        except ValueError as e:
            raise FetchException(url, "response is not valid JSON", 1) from e
