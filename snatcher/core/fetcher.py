"""HTTP fetcher used by every network step of a snatch."""

import logging
from typing import Optional

import httpx


logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Transport level failure (connection refused, DNS, timeout...)."""
    pass


class HttpFetcher:
    """Thin wrapper around httpx.AsyncClient.

    Non-2xx responses are returned as-is so callers can branch on the status
    code. Only transport errors and timeouts raise, as FetchError.
    """

    def __init__(self, timeout: float = 15.0, user_agent: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"User-Agent": user_agent} if user_agent else None
        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def get(self, url: str) -> httpx.Response:
        """GET a URL and return the response whatever its status."""
        return await self._request("GET", url)

    async def head(self, url: str) -> httpx.Response:
        """Lightweight existence probe, no body is downloaded."""
        return await self._request("HEAD", url)

    async def get_bytes(self, url: str) -> bytes:
        """GET a binary resource, raising FetchError unless the status is 2xx."""
        response = await self.get(url)
        if not response.is_success:
            raise FetchError(f"HTTP {response.status_code} for {url}")
        return response.content

    async def _request(self, method: str, url: str) -> httpx.Response:
        logger.debug(f"{method} {url}")
        try:
            response = await self.client.request(method, url)
        except httpx.TimeoutException as e:
            raise FetchError(f"{method} {url} timed out: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"{method} {url} failed: {e}") from e
        logger.debug(f"Response code for {url} => {response.status_code}")
        return response

    async def aclose(self) -> None:
        await self.client.aclose()
