"""
Resource Fetcher
================

aiohttp client used to load pages and sub-resources.

Cache modes:
- ``"none"``: bypass HTTP caches by appending a cache-busting query
  parameter and sending ``Cache-Control: no-cache``; the cache bucket is
  neither read nor written
- anything else: normal requests; with a cache bucket (any mutable
  mapping) responses are stored by URL and reused across calls
"""

import asyncio
import mimetypes
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, MutableMapping, Optional
from urllib.parse import urlsplit, urlunsplit
from urllib.request import url2pathname

import aiohttp

from rasterizer.config.logging import get_logger
from rasterizer.config.settings import get_settings
from rasterizer.core.errors import RasterizerError
from rasterizer.models.schemas import CacheMode

logger = get_logger(__name__)


class ResourceFetchError(RasterizerError):
    """Exception raised when a resource cannot be fetched."""

    def __init__(self, message: str, url: str, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


@dataclass(frozen=True)
class FetchedResource:
    """Body and type of a fetched resource."""

    url: str
    content: bytes
    content_type: str = "application/octet-stream"
    charset: Optional[str] = None

    def text(self) -> str:
        return self.content.decode(self.charset or "utf-8", errors="replace")


def cache_busted(url: str) -> str:
    """Append a timestamp query parameter to defeat HTTP caches."""
    parts = urlsplit(url)
    stamp = f"_={int(time.time() * 1000)}"
    query = f"{parts.query}&{stamp}" if parts.query else stamp
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


class ResourceFetcher:
    """Fetches http(s) and file resources."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.logger: Any = logger.bind(component="resource_fetcher")  # structlog.BoundLoggerBase
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=self.settings.http_timeout, connect=self.settings.http_connect_timeout
            )
            headers = {"User-Agent": self.settings.user_agent} if self.settings.user_agent else None
            self._session = aiohttp.ClientSession(timeout=timeout, headers=headers)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def fetch(
        self,
        url: str,
        cache: Optional[str] = None,
        cache_bucket: Optional[MutableMapping[str, Any]] = None,
    ) -> FetchedResource:
        """
        Fetch a resource.

        Args:
            url: Absolute http(s) or file URL
            cache: Cache mode
            cache_bucket: Optional mapping shared between calls

        Returns:
            FetchedResource with the response body

        Raises:
            ResourceFetchError: If the resource cannot be fetched
        """
        use_bucket = cache_bucket is not None and cache != CacheMode.NONE.value
        if use_bucket and url in cache_bucket:
            self.logger.debug("Resource served from cache bucket", url=url)
            return cache_bucket[url]

        scheme = urlsplit(url).scheme.lower()
        if scheme == "file":
            resource = await self._read_file(url)
        elif scheme in ("http", "https"):
            resource = await self._request(url, cache)
        else:
            raise ResourceFetchError(f"Unsupported URL: {url}", url=url)

        if use_bucket:
            cache_bucket[url] = resource
        return resource

    async def _request(self, url: str, cache: Optional[str]) -> FetchedResource:
        headers = {}
        request_url = url
        if cache == CacheMode.NONE.value:
            request_url = cache_busted(url)
            headers["Cache-Control"] = "no-cache"

        try:
            session = await self._get_session()
            async with session.get(request_url, headers=headers) as response:
                if response.status >= 400:
                    raise ResourceFetchError(
                        f"Request failed with status {response.status}", url=url, status=response.status
                    )
                content = await response.read()
                self.logger.debug("Resource fetched", url=url, status=response.status, size=len(content))
                return FetchedResource(
                    url=str(response.url) if cache != CacheMode.NONE.value else url,
                    content=content,
                    content_type=response.content_type,
                    charset=response.charset,
                )
        except ResourceFetchError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning("Resource fetch failed", url=url, error=str(e))
            raise ResourceFetchError(f"Request failed: {e}", url=url) from e

    async def _read_file(self, url: str) -> FetchedResource:
        path = Path(url2pathname(urlsplit(url).path))
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ResourceFetchError(f"Cannot read file: {e}", url=url) from e
        return FetchedResource(url=url, content=content, content_type=_guess_type(path))


def _guess_type(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"
