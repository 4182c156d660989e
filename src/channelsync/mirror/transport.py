"""
Transport collaborators used by the cache engine.

The engine only needs `fetch(url) -> bytes`. `SchemeDispatcher` rejects URL
schemes it cannot serve before any network access and routes HTTP(S) to an
`HttpDownloader` backed by a shared aiohttp session. Tests inject their own
`Downloader` implementations instead.
"""

import asyncio
import time
from typing import Any, Optional, Protocol
from urllib.parse import urlsplit

import aiohttp

from channelsync.constants import (
    BYTES_PER_MEGABYTE,
    DEFAULT_JOBS,
    DEFAULT_REQUEST_TIMEOUT,
    HTTP_STATUS_SUCCESS_MAX,
    HTTP_STATUS_SUCCESS_MIN,
    SUPPORTED_URL_SCHEMES,
)
from channelsync.exceptions import HTTPError, NetworkError, UnsupportedSchemeError
from channelsync.log_utils import logger


class Downloader(Protocol):
    """Anything that can fetch the full body of a URL."""

    async def fetch(self, url: str) -> bytes:
        """
        Fetch `url` and return its body.

        Raises:
            UnsupportedSchemeError: If the URL scheme cannot be fetched.
            NetworkError: On transport failures.
            HTTPError: On non-success response statuses.
        """
        ...


class HttpDownloader:
    """
    HTTP(S) downloader using a lazily created, reusable aiohttp session.

    Example:
        async with HttpDownloader(max_connections=4) as http:
            body = await http.fetch("https://static.example.org/dist/file.tar.xz")
    """

    def __init__(
        self,
        max_connections: int = DEFAULT_JOBS,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """
        Parameters:
            max_connections (int): Connection pool limit, normally the job count.
            timeout (float): Total per-request timeout in seconds.
        """
        self.max_connections = max(1, int(max_connections))
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Create or return the shared aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=self.max_connections)
            self._session = aiohttp.ClientSession(
                connector=connector, timeout=self.timeout
            )
        return self._session

    async def close(self) -> None:
        """Close the shared aiohttp session, if active."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "HttpDownloader":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def fetch(self, url: str) -> bytes:
        """
        GET `url` and return the whole response body.

        Raises:
            HTTPError: If the final response status is not 2xx (redirects are followed first).
            NetworkError: On connection errors, payload errors and timeouts.
        """
        session = await self._ensure_session()
        start_time = time.time()
        try:
            async with session.get(url) as response:
                if not (
                    HTTP_STATUS_SUCCESS_MIN <= response.status <= HTTP_STATUS_SUCCESS_MAX
                ):
                    raise HTTPError(
                        f"HTTP error {response.status}",
                        status_code=response.status,
                        url=url,
                        details=response.reason,
                    )
                body = await response.read()
        except aiohttp.ClientResponseError as e:
            raise HTTPError(
                f"HTTP error {e.status}",
                status_code=e.status,
                url=url,
                details=e.message,
            ) from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error: {e}", url=url) from e
        except asyncio.TimeoutError as e:
            raise NetworkError("Request timed out", url=url) from e

        elapsed = time.time() - start_time
        logger.debug(
            f"Fetched {url} ({len(body) / BYTES_PER_MEGABYTE:.1f} MB) in {elapsed:.2f}s"
        )
        return body


class SchemeDispatcher:
    """
    Route a URL to the downloader for its scheme.

    Only `http` and `https` are supported; anything else is rejected without
    touching the network.
    """

    def __init__(self, http: Optional[HttpDownloader] = None) -> None:
        self.http = http if http is not None else HttpDownloader()

    async def fetch(self, url: str) -> bytes:
        scheme = urlsplit(url).scheme.lower()
        if scheme not in SUPPORTED_URL_SCHEMES:
            raise UnsupportedSchemeError(scheme, url=url)
        return await self.http.fetch(url)

    async def close(self) -> None:
        await self.http.close()

    async def __aenter__(self) -> "SchemeDispatcher":
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
