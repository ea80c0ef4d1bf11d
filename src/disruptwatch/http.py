"""Async HTTP client with bounded retries and linear backoff."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import aiohttp
import structlog

from .errors import SourceUnavailable

logger = structlog.get_logger(__name__)

_USER_AGENT = "DisruptWatchIngestor/1.0"


class HttpClient:
    """Thin wrapper over an aiohttp session.

    Each request is attempted up to ``retries`` times. Between attempts the
    client sleeps ``retry_delay * attempt`` seconds. When every attempt fails
    the last error is raised as :class:`SourceUnavailable`.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        retries: int = 3,
        retry_delay: float = 1.0,
        session: aiohttp.ClientSession | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.timeout = timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": _USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request("GET", url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        payload: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request("POST", url, json=payload, headers=headers)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        session = self._get_session()
        last_error: Exception | None = None

        for attempt in range(1, self.retries + 1):
            logger.debug("http_attempt", method=method, url=url, attempt=attempt, retries=self.retries)
            try:
                async with session.request(method, url, **kwargs) as response:
                    response.raise_for_status()
                    return await response.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
                last_error = exc
                logger.warning(
                    "http_attempt_failed",
                    method=method,
                    url=url,
                    attempt=attempt,
                    status=getattr(exc, "status", None),
                    error=str(exc),
                )

            if attempt < self.retries:
                await self._sleep(self.retry_delay * attempt)

        raise SourceUnavailable(f"{method} {url} failed after {self.retries} attempts: {last_error}")
