"""
HTTP probe client for CheckoutForge.

Provides an async HTTP client with proxy support, rate limiting and timing.
One call to send() is one request/response round-trip.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx


class TransportError(Exception):
    """Raised when a request never produced an HTTP response."""


@dataclass
class ProbeRequest:
    """A fully built outbound request."""
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] | None = None
    json: Any = None


@dataclass
class HTTPResponse:
    """Wrapper for HTTP response data."""
    url: str
    status_code: int
    headers: dict[str, str]
    body: str
    elapsed: float  # seconds
    request_headers: dict[str, str] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return self.elapsed * 1000.0

    @classmethod
    def empty(cls, url: str = "") -> "HTTPResponse":
        """Placeholder for a request that never got an answer."""
        return cls(url=url, status_code=0, headers={}, body="", elapsed=0.0)


class ProbeClient(Protocol):
    """Anything that can send a ProbeRequest."""

    async def send(self, request: ProbeRequest) -> HTTPResponse:
        ...


@dataclass
class HTTPConfig:
    """HTTP client configuration."""
    timeout: float = 15.0
    max_redirects: int = 5
    verify_ssl: bool = False
    proxy: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    rate_limit: float = 0.0  # Requests per second (0 = unlimited)
    max_retries: int = 1
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"


class HTTPClient:
    """Async HTTP client with rate limiting and retry logic."""

    def __init__(self, config: HTTPConfig | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config or HTTPConfig()
        self.request_count = 0
        self._transport = transport
        self._last_request_time = 0.0
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        await self._init_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _init_client(self):
        """Initialize the async HTTP client."""
        default_headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Connection": "keep-alive",
        }
        default_headers.update(self.config.headers)

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            follow_redirects=True,
            max_redirects=self.config.max_redirects,
            verify=self.config.verify_ssl,
            proxy=self.config.proxy,
            headers=default_headers,
            cookies=self.config.cookies,
            transport=self._transport,
        )

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _rate_limit(self):
        """Apply rate limiting between requests."""
        if self.config.rate_limit > 0:
            min_interval = 1.0 / self.config.rate_limit
            elapsed = time.time() - self._last_request_time
            if elapsed < min_interval:
                await asyncio.sleep(min_interval - elapsed)
        self._last_request_time = time.time()

    async def send(self, request: ProbeRequest) -> HTTPResponse:
        """Send a probe request and time the round-trip."""
        headers = dict(request.headers)
        content = None
        if request.json is not None:
            # NaN and Infinity probes must reach the target as written
            content = json.dumps(request.json, allow_nan=True)
            headers.setdefault("Content-Type", "application/json")
        return await self._request(
            request.method.upper(),
            request.url,
            params=request.params,
            content=content,
            headers=headers,
        )

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, str] | None = None,
        content: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> HTTPResponse:
        """Perform HTTP request with retry logic."""
        if not self._client:
            await self._init_client()

        await self._rate_limit()

        last_error: Exception | None = None
        for attempt in range(max(1, self.config.max_retries)):
            try:
                started = time.perf_counter()
                response = await self._client.request(
                    method,
                    url,
                    params=params,
                    content=content,
                    headers=headers,
                )
                elapsed = time.perf_counter() - started
                self.request_count += 1

                return HTTPResponse(
                    url=str(response.url),
                    status_code=response.status_code,
                    headers={k.lower(): v for k, v in response.headers.items()},
                    body=response.text,
                    elapsed=elapsed,
                    request_headers=dict(response.request.headers),
                )

            except httpx.TimeoutException as e:
                last_error = e
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)  # Exponential backoff
            except httpx.HTTPError as e:
                last_error = e
                break  # Don't retry on HTTP errors

        raise TransportError(f"{method} {url} failed: {last_error}") from last_error
