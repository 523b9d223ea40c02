"""Shared fetch plumbing for every external source."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

import httpx
from bs4 import BeautifulSoup

from hera.core.exceptions import SourceUnavailableError
from hera.pipeline.retry import RetryPolicy, retry_async
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

ResultT = TypeVar("ResultT")

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; HERA/1.0; +https://www.hera.org)"


class BaseSource(Generic[ResultT]):
    """One external source queried per state.

    Subclasses implement ``fetch``. ``collect`` is what pipelines call: it
    never raises for network or parse problems and returns ``empty_result``
    instead, so one bad source only costs its own contribution.
    """

    name: str = "source"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        retry_policy: RetryPolicy,
        user_agent: str = DEFAULT_USER_AGENT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the source.

        Args:
            http_client: Shared client; its timeout applies to every call
            retry_policy: Backoff schedule for transient failures
            user_agent: User-Agent header sent with every request
            sleep: Awaitable sleep for retries and pacing, injectable for tests
        """
        self.http_client = http_client
        self.retry_policy = retry_policy
        self.user_agent = user_agent
        self._sleep = sleep

    def _headers(self, accept: Optional[str] = None) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if accept:
            headers["Accept"] = accept
        return headers

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None, accept: Optional[str] = None) -> httpx.Response:
        async def _attempt() -> httpx.Response:
            response = await self.http_client.get(url, params=params, headers=self._headers(accept))
            response.raise_for_status()
            return response

        return await retry_async(
            _attempt,
            self.retry_policy,
            sleep=self._sleep,
            description=f"{self.name} GET {url}",
        )

    async def fetch_text(self, url: str, params: Optional[Dict[str, Any]] = None) -> str:
        """GET ``url`` with retries and return the body text."""
        response = await self._get(url, params=params)
        return response.text

    async def fetch_html(self, url: str, params: Optional[Dict[str, Any]] = None) -> BeautifulSoup:
        return BeautifulSoup(await self.fetch_text(url, params=params), "html.parser")

    async def fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``url`` with retries and decode the JSON body.

        Raises:
            ValueError: If the body is not JSON
        """
        response = await self._get(url, params=params, accept="application/json")
        return response.json()

    async def fetch(self, state: str) -> ResultT:
        raise NotImplementedError

    def empty_result(self, state: str) -> ResultT:
        raise NotImplementedError

    async def collect(self, state: str) -> ResultT:
        """``fetch`` for ``state``, degraded to ``empty_result`` on failure."""
        try:
            return await self.fetch(state)
        except (httpx.HTTPError, ValueError) as e:
            error = SourceUnavailableError(self.name, state, original_error=e)
            LOGGER.warning(
                f"{error}: {e}",
                extra={"source": self.name, "state": state, "error_type": type(e).__name__},
            )
            return self.empty_result(state)


def text_of(node) -> str:
    """Whitespace-trimmed text of a BeautifulSoup node, "" for None."""
    if node is None:
        return ""
    return node.get_text(" ", strip=True)
