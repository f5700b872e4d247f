from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import aiohttp
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from ..util.logging import get_logger


logger = get_logger(__name__)


class UpstreamStatusError(Exception):
    """Non-2xx response from an external API."""

    def __init__(self, status: int, url: str, body: str = "") -> None:
        super().__init__(f"HTTP {status} from {url}")
        self.status = status
        self.url = url
        self.body = body


def _is_transient(exc: BaseException) -> bool:
    # 429 and 5xx are worth another attempt; 4xx are not
    if isinstance(exc, UpstreamStatusError):
        return exc.status == 429 or 500 <= exc.status < 600
    return isinstance(exc, (aiohttp.ClientConnectionError, asyncio.TimeoutError))


class HttpClient:
    """JSON-over-HTTP helper shared by the source adapters.

    Owns one lazily created aiohttp session. Transient failures are retried
    with exponential jitter; anything else raises to the adapter.
    """

    def __init__(
        self,
        user_agent: str,
        connect_timeout: float = 10.0,
        read_timeout: float = 20.0,
        retries: int = 3,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = aiohttp.ClientTimeout(sock_connect=connect_timeout, sock_read=read_timeout)
        self.retries = max(1, int(retries))
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        session = await self._get_session()
        async with session.request(method, url, **kwargs) as resp:
            if resp.status < 200 or resp.status >= 300:
                body = await resp.text(errors="ignore")
                raise UpstreamStatusError(resp.status, url, body[:500])
            # Some APIs send JSON with a text/plain content type
            return await resp.json(content_type=None)

    async def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_exponential_jitter(initial=1, max=8),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "http_retry",
                        extra={"method": method, "url": url, "attempt": attempt.retry_state.attempt_number},
                    )
                return await self._request(method, url, **kwargs)

    async def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        return await self._send("GET", url, headers=headers)

    async def post_json(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Any:
        return await self._send("POST", url, json=payload, headers=headers)
