"""
Brave web search client.

One client (and one aiohttp session) per request:

    async with BraveSearchClient(settings) as client:
        results = await client.search_many(queries, count=8)

Searching fails soft. A query that keeps failing, or that gets a non-retryable
4xx, contributes no results but never aborts the batch.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from bs4 import BeautifulSoup

from core.config import Settings
from core.exceptions import UpstreamError, UpstreamTimeoutError, error_for_status
from services.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

USER_AGENT = "LearningPath/1.0"


@dataclass
class SearchResult:
    """One web result: the snippet text we mine plus the page URL."""
    title: str
    description: str
    url: str

    @property
    def text(self) -> str:
        return f"{self.title} {self.description}"


def strip_markup(text: str) -> str:
    """Brave wraps matched terms in <strong>; keep the plain text only."""
    if not text or "<" not in text:
        return (text or "").strip()
    return BeautifulSoup(text, "html.parser").get_text().strip()


def parse_results(payload: Any) -> List[SearchResult]:
    """Pull {title, description, url} out of a `{web: {results: [...]}}` body."""
    if not isinstance(payload, dict):
        return []
    web = payload.get("web") or {}
    raw_results = web.get("results") if isinstance(web, dict) else None
    if not isinstance(raw_results, list):
        return []

    results = []
    for item in raw_results:
        if not isinstance(item, dict):
            continue
        title = item.get("title")
        description = item.get("description")
        url = item.get("url")
        results.append(
            SearchResult(
                title=strip_markup(title) if isinstance(title, str) else "",
                description=strip_markup(description) if isinstance(description, str) else "",
                url=url if isinstance(url, str) else "",
            )
        )
    return results


class BraveSearchClient:
    def __init__(
        self,
        settings: Settings,
        policy: Optional[RetryPolicy] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = settings
        self.api_key = settings.brave_api_key
        self.base_url = settings.brave_api_base.rstrip("/")
        self.timeout = settings.search_timeout
        self.policy = policy or settings.search_policy()
        self.query_interval = settings.search_query_interval
        self.concurrency = max(1, settings.search_concurrency)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "BraveSearchClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    def get_headers(self) -> Dict[str, str]:
        return {
            "X-Subscription-Token": self.api_key or "",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    async def _fetch(self, query: str, count: int) -> Any:
        """One attempt. Raises an UpstreamError subclass on a non-OK status."""
        session = self._get_session()
        url = f"{self.base_url}/web/search"
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with session.get(
                url,
                params={"q": query, "count": str(count)},
                headers=self.get_headers(),
                timeout=timeout,
            ) as response:
                if 200 <= response.status < 300:
                    return await response.json(content_type=None)
                error_text = await response.text()
                logger.error(
                    "search_api_error",
                    extra={"query": query, "status": response.status, "error": error_text[:200]},
                )
                raise error_for_status(response.status, error_text)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError(f"search timed out after {self.timeout}s") from e

    async def search(self, query: str, count: int = 8) -> List[SearchResult]:
        """Run one query with retries; returns [] when it cannot be answered."""
        try:
            async for attempt in self.policy.retrying():
                with attempt:
                    payload = await self._fetch(query, count)
        except UpstreamError as e:
            logger.warning(
                "search_query_failed",
                extra={"query": query, "status": e.status, "error": str(e), "error_type": type(e).__name__},
            )
            return []
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(
                "search_query_failed",
                extra={"query": query, "error": str(e), "error_type": type(e).__name__},
            )
            return []

        results = parse_results(payload)
        logger.info("search_query_completed", extra={"query": query, "results": len(results)})
        return results

    async def search_many(self, queries: Sequence[str], count: int = 8) -> List[SearchResult]:
        """Run every query and concatenate the results in query order."""
        if self.concurrency > 1:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def _bounded(query: str) -> List[SearchResult]:
                async with semaphore:
                    return await self.search(query, count)

            batches = await asyncio.gather(*(_bounded(q) for q in queries))
        else:
            batches = []
            for index, query in enumerate(queries):
                if index > 0 and self.query_interval > 0:
                    await asyncio.sleep(self.query_interval)
                batches.append(await self.search(query, count))

        return [result for batch in batches for result in batch]
